"""Keycloak client library.

Architecture:
- client.py: HTTP client with service-account authentication and auto-refresh
- users.py: User lifecycle operations (create, role assignment, delete)
- sessions.py: End-user login, session check and logout
- exceptions.py: Typed exceptions for error handling

Usage:
    from flapi.core.keycloak import build_keycloak

    users, sessions = build_keycloak(cfg)
    user_id = users.create_user("alice@example.com", "S3cret!pw", "Alice", "Martin")
    tokens = sessions.login_user("alice@example.com", "S3cret!pw")
"""
from __future__ import annotations
from typing import Tuple

from .client import KeycloakClient, REQUEST_TIMEOUT
from .exceptions import (
    KeycloakError,
    KeycloakAPIError,
    KeycloakConnectionError,
    UserNotFoundError,
    UserAlreadyExistsError,
    RoleNotFoundError,
)
from .users import UserService
from .sessions import SessionService


def build_keycloak(cfg) -> Tuple[UserService, SessionService]:
    """Authenticate the service account and return user/session services.

    Raises:
        KeycloakAPIError: If the service account is refused
        KeycloakConnectionError: If Keycloak is unreachable
    """
    client = KeycloakClient(cfg.keycloak_url, cfg.keycloak_realm)
    client.authenticate_service_account(cfg.keycloak_client_id, cfg.keycloak_client_secret)
    return (
        UserService(client),
        SessionService(client, cfg.keycloak_client_id, cfg.keycloak_client_secret),
    )


__all__ = [
    "KeycloakClient",
    "REQUEST_TIMEOUT",
    "KeycloakError",
    "KeycloakAPIError",
    "KeycloakConnectionError",
    "UserNotFoundError",
    "UserAlreadyExistsError",
    "RoleNotFoundError",
    "UserService",
    "SessionService",
    "build_keycloak",
]
