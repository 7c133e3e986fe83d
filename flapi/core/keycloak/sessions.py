"""Keycloak session operations (OIDC token, userinfo and logout endpoints)."""
from __future__ import annotations
import logging
from typing import Dict

import requests

from .client import KeycloakClient, REQUEST_TIMEOUT
from .exceptions import KeycloakAPIError, KeycloakConnectionError

logger = logging.getLogger(__name__)


class SessionService:
    """Service for end-user sessions issued by the realm."""

    def __init__(self, client: KeycloakClient, client_id: str, client_secret: str):
        """Initialize session service.

        Args:
            client: Keycloak client (only its base URL and realm are used)
            client_id: Confidential client used for the password grant
            client_secret: Secret of that client
        """
        self.client = client
        self.client_id = client_id
        self.client_secret = client_secret

    @property
    def _oidc_base(self) -> str:
        return f"{self.client.base_url}/realms/{self.client.realm}/protocol/openid-connect"

    def login_user(self, email: str, password: str) -> Dict:
        """Exchange user credentials for tokens (password grant).

        Returns:
            Token payload (access_token, expires_in, refresh_token, ...)

        Raises:
            KeycloakAPIError: If Keycloak rejects the credentials
            KeycloakConnectionError: If Keycloak is unreachable
        """
        url = f"{self._oidc_base}/token"
        data = {
            "grant_type": "password",
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "username": email,
            "password": password,
            "scope": "openid",
        }
        try:
            resp = requests.post(url, data=data, timeout=REQUEST_TIMEOUT)
        except requests.RequestException as exc:
            raise KeycloakConnectionError(f"Token endpoint unreachable: {exc}") from exc
        if resp.status_code != 200:
            raise KeycloakAPIError(resp.status_code, resp.text, url)
        try:
            return resp.json()
        except ValueError as exc:
            raise KeycloakConnectionError("Unreadable token response") from exc

    def check_session(self, access_token: str) -> bool:
        """Return True when the access token still maps to a live session."""
        try:
            resp = requests.get(
                f"{self._oidc_base}/userinfo",
                headers={"Authorization": f"Bearer {access_token}"},
                timeout=REQUEST_TIMEOUT,
            )
        except requests.RequestException as exc:
            logger.warning("Keycloak userinfo call failed: %s", exc)
            return False
        return resp.status_code == 200

    def logout_user(self, refresh_token: str) -> None:
        """End the session bound to a refresh token.

        Raises:
            KeycloakAPIError: If Keycloak refuses the logout
        """
        url = f"{self._oidc_base}/logout"
        data = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "refresh_token": refresh_token,
        }
        try:
            resp = requests.post(url, data=data, timeout=REQUEST_TIMEOUT)
        except requests.RequestException as exc:
            raise KeycloakConnectionError(f"Logout endpoint unreachable: {exc}") from exc
        if resp.status_code not in (200, 204):
            raise KeycloakAPIError(resp.status_code, resp.text, url)
        logger.info("Keycloak session closed")
