"""
Flask decorators for authentication.

Resource endpoints accept OAuth 2.0 Bearer tokens (RFC 6750) issued by the
Keycloak realm. Tokens are RS256 JWTs verified against the realm JWKS.

Security:
- RSA-SHA256 signature verification via JWKS (RFC 7517)
- Expiration, not-before and issuer validation (RFC 7519)
- JWKS caching (1-hour refresh)
"""
import hashlib
import logging
from functools import wraps
from typing import Any, Dict, Optional

import jwt
from jwt import PyJWKClient
from jwt.exceptions import (
    DecodeError,
    ExpiredSignatureError,
    InvalidIssuerError,
    InvalidSignatureError,
    InvalidTokenError,
    PyJWKClientError,
)
from flask import current_app, g, jsonify, request

logger = logging.getLogger(__name__)

# Global JWKS client (cached singleton)
_jwks_client: Optional[PyJWKClient] = None


class TokenValidationError(Exception):
    """Exception raised when JWT token validation fails."""
    pass


def get_jwks_client() -> PyJWKClient:
    """
    Get cached JWKS client (singleton pattern).

    Returns:
        PyJWKClient: Client for the configured Keycloak realm
    """
    global _jwks_client

    if _jwks_client is None:
        cfg = current_app.config["APP_CONFIG"]
        jwks_url = f"{cfg.keycloak_issuer}/protocol/openid-connect/certs"
        logger.info("Initializing JWKS client for: %s", jwks_url)
        _jwks_client = PyJWKClient(
            jwks_url,
            cache_keys=True,
            max_cached_keys=16,
            lifespan=3600,
            headers={"User-Agent": "Flapi-Backend/1.0"},
        )

    return _jwks_client


def reset_jwks_client() -> None:
    """Drop the cached JWKS client (configuration change, tests)."""
    global _jwks_client
    _jwks_client = None


def validate_jwt_token(token: str) -> Dict[str, Any]:
    """
    Validate a JWT Bearer token.

    Validations performed:
    1. Signature verification (RSA-SHA256 via JWKS)
    2. Expiration (exp claim) and not-before (nbf claim)
    3. Issuer (iss claim) equal to the realm issuer

    Args:
        token: JWT token string (without "Bearer " prefix)

    Returns:
        dict: Validated token claims

    Raises:
        TokenValidationError: If any validation fails
    """
    cfg = current_app.config["APP_CONFIG"]

    try:
        signing_key = get_jwks_client().get_signing_key_from_jwt(token)
        claims = jwt.decode(
            token,
            signing_key.key,
            algorithms=["RS256"],
            issuer=cfg.keycloak_issuer,
            options={
                "verify_signature": True,
                "verify_exp": True,
                "verify_nbf": True,
                "verify_iss": True,
                # Keycloak access tokens carry aud=["account"] by default
                "verify_aud": False,
                "require": ["exp", "iat"],
            },
            leeway=5,
        )
    except ExpiredSignatureError:
        raise TokenValidationError("Token expired (exp claim)")
    except InvalidIssuerError as e:
        raise TokenValidationError(f"Invalid issuer (token from wrong Keycloak realm): {e}")
    except InvalidSignatureError:
        raise TokenValidationError("Invalid signature (token tampered or wrong key)")
    except DecodeError as e:
        raise TokenValidationError(f"Token decode error (malformed JWT): {e}")
    except (InvalidTokenError, PyJWKClientError) as e:
        logger.error("JWT validation failed: %s", e)
        raise TokenValidationError(f"Token validation failed: {e}")

    logger.debug("JWT validated for subject: %s", claims.get("sub"))
    return claims


def _unauthorized(message: str):
    return jsonify({"message": message, "code": "E_UNAUTHORIZED"}), 401


def require_oauth_token(fn):
    """
    Require a valid Bearer token when ``AUTH_REQUIRED`` is enabled.

    Validated claims are exposed as ``g.oauth_claims``.

    Example:
        @bp.route("/projects")
        @require_oauth_token
        def list_projects():
            ...
    """

    @wraps(fn)
    def wrapper(*args, **kwargs):
        cfg = current_app.config["APP_CONFIG"]
        if not cfg.auth_required:
            g.oauth_claims = None
            return fn(*args, **kwargs)

        # Unit tests mock authentication explicitly
        if current_app.config.get("TESTING") and current_app.config.get("SKIP_OAUTH_FOR_TESTS"):
            g.oauth_claims = {"sub": "test-user", "iss": cfg.keycloak_issuer}
            return fn(*args, **kwargs)

        auth_header = request.headers.get("Authorization", "")
        if not auth_header:
            logger.warning("Request to %s missing Authorization header", request.path)
            return _unauthorized("Authorization header required. Use 'Authorization: Bearer <token>'")

        if not auth_header.startswith("Bearer "):
            return _unauthorized("Invalid Authorization header format. Expected 'Bearer <token>'")

        token = auth_header[7:].strip()
        if not token:
            return _unauthorized("Bearer token is empty")

        try:
            claims = validate_jwt_token(token)
        except TokenValidationError as e:
            token_hash = hashlib.sha256(token.encode()).hexdigest()[:12]
            logger.warning("JWT validation failed | token_hash=%s | path=%s | %s", token_hash, request.path, e)
            return _unauthorized(str(e))

        g.oauth_claims = claims
        return fn(*args, **kwargs)

    return wrapper


def get_oauth_claims() -> Optional[dict]:
    """Claims of the token validated for the current request."""
    return getattr(g, "oauth_claims", None)
