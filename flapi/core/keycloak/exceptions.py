"""Keycloak-specific exceptions for error handling."""


class KeycloakError(Exception):
    """Base exception for all Keycloak operations."""
    pass


class KeycloakAPIError(KeycloakError):
    """HTTP error from Keycloak Admin API or OIDC endpoints.

    Attributes:
        status_code: HTTP status code
        message: Error message from response
        endpoint: API endpoint that failed
    """

    def __init__(self, status_code: int, message: str, endpoint: str):
        self.status_code = status_code
        self.message = message
        self.endpoint = endpoint
        super().__init__(f"[{status_code}] {endpoint}: {message}")


class KeycloakConnectionError(KeycloakError):
    """Keycloak could not be reached or answered with an unreadable body."""
    pass


class UserNotFoundError(KeycloakError):
    """User lookup failed."""
    pass


class UserAlreadyExistsError(KeycloakError):
    """User creation failed - email already registered in the realm."""
    pass


class RoleNotFoundError(KeycloakError):
    """Role does not exist in realm."""
    pass
