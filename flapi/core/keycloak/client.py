"""Low-level HTTP client for Keycloak Admin API.

Handles service-account authentication, token management, and HTTP operations.
"""
from __future__ import annotations
import logging
from typing import Optional, Dict, Any
from datetime import datetime, timedelta

import requests

from .exceptions import KeycloakAPIError, KeycloakConnectionError

REQUEST_TIMEOUT = 5

logger = logging.getLogger(__name__)


class KeycloakClient:
    """HTTP client for Keycloak Admin API with automatic token management.

    Features:
    - Service account (client_credentials) authentication
    - Automatic token refresh when expired
    - Centralized error handling

    Usage:
        client = KeycloakClient("http://keycloak:8080", realm="flapi")
        client.authenticate_service_account("flapi-backend", "secret")
        response = client.get("/admin/realms/flapi/users")
    """

    def __init__(self, base_url: str, realm: str):
        """Initialize Keycloak client.

        Args:
            base_url: Keycloak base URL (without /realms/...)
            realm: Realm holding both the service client and the platform users
        """
        self.base_url = base_url.rstrip("/")
        self.realm = realm
        self._token: Optional[str] = None
        self._token_expires_at: Optional[datetime] = None
        self._auth_params: Dict[str, Any] = {}

    @property
    def token_endpoint(self) -> str:
        return f"{self.base_url}/realms/{self.realm}/protocol/openid-connect/token"

    @property
    def admin_path(self) -> str:
        return f"/admin/realms/{self.realm}"

    def authenticate_service_account(self, client_id: str, client_secret: str) -> str:
        """Authenticate as service account and store credentials for auto-refresh.

        Args:
            client_id: Service account client ID
            client_secret: Service account client secret

        Returns:
            Access token
        """
        self._auth_params = {"client_id": client_id, "client_secret": client_secret}
        self._token, expires_in = self._get_service_account_token(client_id, client_secret)
        self._token_expires_at = datetime.now() + timedelta(seconds=expires_in)
        logger.info("Keycloak service account authenticated (client_id=%s)", client_id)
        return self._token

    def _ensure_authenticated(self) -> None:
        """Ensure we have a valid token, refreshing if necessary."""
        if not self._token or not self._token_expires_at:
            raise KeycloakAPIError(401, "Not authenticated - call authenticate_service_account first", "")

        # Refresh if token expired or expiring soon (within 10 seconds)
        if datetime.now() >= self._token_expires_at - timedelta(seconds=10):
            self._token, expires_in = self._get_service_account_token(
                self._auth_params["client_id"],
                self._auth_params["client_secret"],
            )
            self._token_expires_at = datetime.now() + timedelta(seconds=expires_in)

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        self._ensure_authenticated()
        url = f"{self.base_url}{path}"
        headers = kwargs.pop("headers", {})
        headers["Authorization"] = f"Bearer {self._token}"

        try:
            resp = requests.request(method, url, headers=headers, timeout=REQUEST_TIMEOUT, **kwargs)
        except requests.RequestException as exc:
            raise KeycloakConnectionError(f"{method} {url} failed: {exc}") from exc
        self._handle_error(resp)
        return resp

    def get(self, path: str, params: Optional[Dict] = None, **kwargs) -> requests.Response:
        """Execute GET request with automatic authentication.

        Raises:
            KeycloakAPIError: On HTTP error
        """
        return self._request("GET", path, params=params, **kwargs)

    def post(self, path: str, json: Any = None, data: Optional[Dict] = None, **kwargs) -> requests.Response:
        """Execute POST request with automatic authentication.

        Raises:
            KeycloakAPIError: On HTTP error
        """
        return self._request("POST", path, json=json, data=data, **kwargs)

    def put(self, path: str, json: Any = None, **kwargs) -> requests.Response:
        return self._request("PUT", path, json=json, **kwargs)

    def delete(self, path: str, **kwargs) -> requests.Response:
        return self._request("DELETE", path, **kwargs)

    def _get_service_account_token(self, client_id: str, client_secret: str) -> tuple[str, int]:
        """Fetch a service account token using client credentials flow."""
        data = {
            "grant_type": "client_credentials",
            "client_id": client_id,
            "client_secret": client_secret,
        }
        try:
            resp = requests.post(self.token_endpoint, data=data, timeout=REQUEST_TIMEOUT)
        except requests.RequestException as exc:
            raise KeycloakConnectionError(f"Token endpoint unreachable: {exc}") from exc
        if resp.status_code != 200:
            raise KeycloakAPIError(resp.status_code, resp.text, self.token_endpoint)
        try:
            payload = resp.json()
            # Conservative expiry: assume 60 seconds when Keycloak does not say
            return payload["access_token"], int(payload.get("expires_in", 60))
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            raise KeycloakConnectionError("Unreadable token response") from exc

    def _handle_error(self, resp: requests.Response) -> None:
        """Centralized error handling for HTTP responses.

        Raises:
            KeycloakAPIError: If response status indicates error
        """
        if resp.status_code >= 400:
            raise KeycloakAPIError(resp.status_code, resp.text, resp.url)
