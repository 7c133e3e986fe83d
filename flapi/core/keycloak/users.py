"""Keycloak user management operations."""
from __future__ import annotations
import logging
from typing import Optional

from .client import KeycloakClient
from .exceptions import KeycloakAPIError, RoleNotFoundError, UserAlreadyExistsError, UserNotFoundError

logger = logging.getLogger(__name__)


class UserService:
    """Service for managing platform users in the Keycloak realm."""

    def __init__(self, client: KeycloakClient):
        """Initialize user service.

        Args:
            client: Authenticated Keycloak client
        """
        self.client = client

    def find_by_email(self, email: str) -> Optional[dict]:
        """Return the user representation that exactly matches the email.

        Args:
            email: Email address to search for

        Returns:
            User representation or None if not found
        """
        resp = self.client.get(
            f"{self.client.admin_path}/users",
            params={"email": email, "exact": "true"},
        )
        for user in resp.json():
            if (user.get("email") or "").lower() == email.lower():
                return user
        return None

    def create_user(self, email: str, password: str, first: str, last: str) -> str:
        """Create an enabled user with a permanent password.

        The username is the email address.

        Returns:
            Keycloak user id

        Raises:
            UserAlreadyExistsError: If the email is already registered in the realm
        """
        if self.find_by_email(email):
            raise UserAlreadyExistsError(f"User '{email}' already exists")

        payload = {
            "username": email,
            "email": email,
            "firstName": first,
            "lastName": last,
            "enabled": True,
            "emailVerified": False,
            "credentials": [{"type": "password", "value": password, "temporary": False}],
        }
        resp = self.client.post(f"{self.client.admin_path}/users", json=payload)

        # Keycloak answers 201 with the new resource in the Location header
        location = resp.headers.get("Location", "")
        user_id = location.rstrip("/").rsplit("/", 1)[-1] if location else None
        if not user_id:
            created = self.find_by_email(email)
            if not created:
                raise UserNotFoundError(f"User '{email}' not found after creation")
            user_id = created["id"]

        logger.info("Keycloak user created (id=%s)", user_id)
        return user_id

    def add_realm_role(self, user_id: str, role: str) -> None:
        """Assign a realm role to a user.

        Raises:
            RoleNotFoundError: If the role does not exist in the realm
        """
        try:
            role_rep = self.client.get(f"{self.client.admin_path}/roles/{role}").json()
        except KeycloakAPIError as exc:
            if exc.status_code == 404:
                raise RoleNotFoundError(f"Role '{role}' not found in realm '{self.client.realm}'") from exc
            raise

        self.client.post(
            f"{self.client.admin_path}/users/{user_id}/role-mappings/realm",
            json=[{"id": role_rep["id"], "name": role_rep["name"]}],
        )
        logger.info("Assigned realm role '%s' to user %s", role, user_id)

    def delete_user(self, user_id: str) -> None:
        """Delete a user.

        Raises:
            UserNotFoundError: If the user id is unknown
        """
        try:
            self.client.delete(f"{self.client.admin_path}/users/{user_id}")
        except KeycloakAPIError as exc:
            if exc.status_code == 404:
                raise UserNotFoundError(f"User '{user_id}' not found") from exc
            raise
        logger.info("Keycloak user deleted (id=%s)", user_id)
