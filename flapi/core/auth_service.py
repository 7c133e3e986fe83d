"""
Account service: sign-up, sign-in, sign-out and account activation.

Architecture:
    /signup, /signIn, ... ──> auth_service.py ──> flapi.core.keycloak ──> Keycloak
                                     │
                                     ├──> models (local user record)
                                     └──> mail_service (activation code)

Local users hold the profile, the password hash and the activation code.
Tokens are issued by Keycloak; this module never mints its own.
"""
from __future__ import annotations
import datetime
import logging
import secrets
from typing import Any

from werkzeug.security import check_password_hash, generate_password_hash

from flapi.config import get_config
from flapi.core import audit
from flapi.core.db import db
from flapi.core.exceptions import ApiError, AuthenticationError, ConflictError, ExternalServiceError, NotFoundError
from flapi.core.keycloak import (
    KeycloakError,
    KeycloakAPIError,
    UserAlreadyExistsError,
    build_keycloak,
)
from flapi.core.mail_service import send_email
from flapi.core.models import User, UserRole
from flapi.core.validators import (
    ACTIVE_CODE_MAX,
    ACTIVE_CODE_MIN,
    PayloadValidator,
    validate_resend_code_payload,
    validate_sign_in_payload,
    validate_sign_up_payload,
    validate_string,
    validate_verify_code_payload,
)

logger = logging.getLogger(__name__)

WELCOME_SUBJECT = "Welcome to Flapi!"
NEW_CODE_SUBJECT = "Your new Flapi activation code"


def generate_active_code() -> int:
    """Random 6-digit activation code."""
    return ACTIVE_CODE_MIN + secrets.randbelow(ACTIVE_CODE_MAX - ACTIVE_CODE_MIN + 1)


def _activation_link(code: int) -> str:
    base = get_config().frontend_account_validate_uri
    return f"{base}?code={code}" if base else ""


def _find_user_by_email(email: str) -> User | None:
    return db.session.execute(db.select(User).filter_by(email=email)).scalar_one_or_none()


def _role_exists(role_id: int) -> bool:
    return db.session.get(UserRole, role_id) is not None


def _email_taken(email: str) -> bool:
    return _find_user_by_email(email) is not None


def _discard_keycloak_user(users, keycloak_id: str) -> None:
    """Delete an identity left behind by a failed sign-up so the email stays usable."""
    try:
        users.delete_user(keycloak_id)
    except KeycloakError as exc:
        logger.error("Keycloak user %s left behind after failed sign-up: %s", keycloak_id, exc)
    else:
        logger.info("Keycloak user %s removed after failed sign-up", keycloak_id)


# ─────────────────────────────────────────────────────────────────────────────
# Sign-up / sign-in
# ─────────────────────────────────────────────────────────────────────────────

def sign_up(payload: Any) -> User:
    """Register a new, inactive account.

    Steps: validate, store the local user, create the Keycloak user with the
    realm role named after the local role, then email the activation code.

    Raises:
        ValidationError: On invalid payload (unknown role, taken email, weak password...)
        ConflictError: If the email already exists in Keycloak
        ExternalServiceError: If Keycloak rejects the user or is unreachable
    """
    cfg = get_config()
    data = validate_sign_up_payload(payload, role_exists=_role_exists, email_taken=_email_taken)

    user = User(
        role_id=data["role_id"],
        lastname=data["lastname"],
        firstname=data["firstname"],
        email=data["email"],
        password=generate_password_hash(data["password"]),
        currency_code=data["currency_code"],
        ip_address=data["ip_address"],
        ip_region=data["ip_region"],
        is_active=False,
        active_code=generate_active_code(),
    )
    db.session.add(user)
    db.session.flush()

    role = db.session.get(UserRole, data["role_id"])
    realm_role = role.name if role else cfg.keycloak_default_role

    try:
        users, _ = build_keycloak(cfg)
        user.keycloak_id = users.create_user(data["email"], data["password"], data["firstname"], data["lastname"])
        users.add_realm_role(user.keycloak_id, realm_role)
    except UserAlreadyExistsError as exc:
        db.session.rollback()
        raise ConflictError("The email is already registered with the identity provider") from exc
    except KeycloakError as exc:
        logger.error("Keycloak sign-up failed for user %s: %s", user.id, exc)
        if user.keycloak_id:
            _discard_keycloak_user(users, user.keycloak_id)
        db.session.rollback()
        raise ExternalServiceError("keycloak", "Unable to register the account") from exc

    db.session.commit()
    logger.info("Account created (id=%s, role=%s)", user.id, realm_role)

    send_email(
        user.email,
        "welcome",
        WELCOME_SUBJECT,
        {"username": user.firstname, "code": user.active_code, "redirect_uri": _activation_link(user.active_code)},
    )
    audit.safe_log_event(
        "user_signup",
        user.email,
        details={"user_id": user.id, "role": realm_role},
        signing_key=cfg.audit_log_signing_key,
    )
    return user


def sign_in(payload: Any) -> dict:
    """Check local credentials then open a Keycloak session.

    Returns:
        ``{"token", "type": "bearer", "expiresAt", "refreshToken"}``

    Raises:
        ValidationError: On malformed payload
        AuthenticationError: Unknown email, wrong password, Keycloak refusal or outage
    """
    data = validate_sign_in_payload(payload)
    user = _find_user_by_email(data["email"])
    if user is None or not check_password_hash(user.password, data["password"]):
        raise AuthenticationError("Authentication failed")

    try:
        _, sessions = build_keycloak(get_config())
        tokens = sessions.login_user(data["email"], data["password"])
    except KeycloakError as exc:
        logger.warning("Keycloak login refused for user %s: %s", user.id, exc)
        raise AuthenticationError("Authentication failed") from exc

    expires_at = datetime.datetime.now(datetime.timezone.utc) + datetime.timedelta(
        seconds=int(tokens.get("expires_in", 0))
    )
    return {
        "token": tokens["access_token"],
        "type": "bearer",
        "expiresAt": expires_at.isoformat(),
        "refreshToken": tokens.get("refresh_token"),
    }


def sign_out(payload: Any) -> None:
    """Close the Keycloak session bound to ``refreshToken``.

    Raises:
        ValidationError: If the refresh token is missing
        ApiError: If Keycloak refuses the logout
    """
    v = PayloadValidator(payload)
    refresh_token = v.field("refreshToken", validate_string, "refreshToken", max_length=8192)
    v.raise_if_errors()

    try:
        _, sessions = build_keycloak(get_config())
        sessions.logout_user(refresh_token)
    except KeycloakAPIError as exc:
        if exc.status_code in (400, 401):
            raise AuthenticationError("No active session found") from exc
        logger.error("Keycloak logout failed: %s", exc)
        raise ApiError("Unable to logout", status=500, code="E_LOGOUT_FAILED") from exc
    except KeycloakError as exc:
        logger.error("Keycloak logout failed: %s", exc)
        raise ApiError("Unable to logout", status=500, code="E_LOGOUT_FAILED") from exc


# ─────────────────────────────────────────────────────────────────────────────
# Account activation
# ─────────────────────────────────────────────────────────────────────────────

def verify_code(payload: Any) -> User:
    """Activate the account when the code matches.

    Raises:
        NotFoundError: Unknown email
        ApiError: 400 when the code does not match
    """
    data = validate_verify_code_payload(payload)
    user = _find_user_by_email(data["email"])
    if user is None:
        raise NotFoundError("User not found")
    if user.active_code != data["code"]:
        raise ApiError("Invalid activation code", status=400, code="E_INVALID_CODE")

    user.is_active = True
    db.session.commit()
    logger.info("Account activated (id=%s)", user.id)
    audit.safe_log_event(
        "user_activated",
        user.email,
        details={"user_id": user.id},
        signing_key=get_config().audit_log_signing_key,
    )
    return user


def resend_new_code_verification_account(payload: Any) -> None:
    """Generate, store and email a fresh activation code.

    Raises:
        NotFoundError: Unknown email
    """
    data = validate_resend_code_payload(payload)
    user = _find_user_by_email(data["email"])
    if user is None:
        raise NotFoundError("User not found")

    user.active_code = generate_active_code()
    db.session.commit()

    send_email(
        user.email,
        "new_code",
        NEW_CODE_SUBJECT,
        {"username": user.firstname, "code": user.active_code, "redirect_uri": _activation_link(user.active_code)},
    )
    audit.safe_log_event(
        "code_resent",
        user.email,
        details={"user_id": user.id},
        signing_key=get_config().audit_log_signing_key,
    )
