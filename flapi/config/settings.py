"""Settings loader with environment variable and Docker secrets integration."""
from __future__ import annotations
import os
import secrets
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from flask import current_app

APP_ENVIRONMENTS = ("development", "development-remote", "staging", "production", "test")

# Environments that deliver mail through the local SMTP relay instead of Mailjet
SMTP_ENVIRONMENTS = ("development", "test")


def _load_secret_from_file(secret_name: str, env_var: str | None = None) -> str | None:
    """
    Load secret from /run/secrets (Docker secrets pattern).

    Priority:
    1. /run/secrets/{secret_name} (Docker secrets mount)
    2. Environment variable (fallback)

    Args:
        secret_name: Name of the secret file in /run/secrets
        env_var: Optional environment variable name to check as fallback

    Returns:
        Secret value or None if not found
    """
    secret_file = Path("/run/secrets") / secret_name

    if secret_file.exists() and secret_file.is_file():
        try:
            secret_value = secret_file.read_text().strip()
            if secret_value:
                print(f"[settings] ✓ Loaded {secret_name} from /run/secrets")
                return secret_value
        except OSError as e:
            print(f"[settings] ✗ Failed to read /run/secrets/{secret_name}: {e}")

    if env_var:
        secret_value = os.getenv(env_var)
        if secret_value:
            return secret_value

    return None


def _env_bool(var_name: str, default: bool) -> bool:
    value = os.environ.get(var_name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(var_name: str, default: int) -> int:
    value = os.environ.get(var_name, "").strip()
    if not value:
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise RuntimeError(f"Environment variable {var_name} must be an integer (got {value!r})") from exc


@dataclass
class AppConfig:
    """Application configuration container."""
    # Runtime
    app_env: str
    secret_key: str
    log_level: str = "INFO"
    database_url: str = "sqlite:///flapi.db"
    health_secret: str = ""
    auth_required: bool = True

    # AWS Route 53
    aws_access_key_id: str = ""
    aws_secret_access_key: str = ""
    aws_region: str = "us-east-1"
    aws_hosted_zone_id: str = ""
    aws_domain: str = ""
    aws_loadbalancer_ip: str = ""

    # GitHub
    github_token: str = ""
    github_owner: str = ""
    workflow_dispatch_delay: int = 15

    # cPanel (o2switch)
    cpanel_host: str = ""
    cpanel_username: str = ""
    cpanel_api_token: str = ""
    cpanel_database_prefix: str = ""
    cpanel_database_username: str = ""
    cpanel_database_password: str = ""
    cpanel_backup_path: str = ""

    # Keycloak
    keycloak_url: str = ""
    keycloak_realm: str = "flapi"
    keycloak_client_id: str = "flapi-backend"
    keycloak_client_secret: str = ""
    keycloak_default_role: str = "app_manager"

    # Mail
    mailjet_api_key: str = ""
    mailjet_api_secret: str = ""
    mailjet_api_version: str = "3.1"
    smtp_host: str = "localhost"
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    mail_username: str = "support@flapi.org"

    # SMS (Textbee)
    textbee_api_key: str = ""
    textbee_device_id: str = ""

    # Frontend
    frontend_base_url: str = ""
    frontend_account_validate_uri: str = ""

    # Audit
    audit_log_signing_key: str = ""

    @property
    def keycloak_issuer(self) -> str:
        """Issuer expected in access tokens delivered by the realm."""
        return f"{self.keycloak_url.rstrip('/')}/realms/{self.keycloak_realm}"

    @property
    def uses_smtp(self) -> bool:
        """Whether outgoing mail goes through SMTP rather than Mailjet."""
        return self.app_env in SMTP_ENVIRONMENTS


def _get_or_generate(var_name: str, dev_default: Optional[str] = None, required: bool = True, relaxed: bool = False) -> str:
    """Get environment variable or fall back to a development default."""
    value = os.environ.get(var_name)
    if value:
        return value

    if relaxed and dev_default is not None:
        print(f"[settings] Using development default for {var_name}")
        return dev_default

    if not required:
        return ""

    raise RuntimeError(f"Environment variable {var_name} is required in the {os.environ.get('APP_ENV', 'production')} environment.")


def load_settings() -> AppConfig:
    """Load application settings from environment and /run/secrets."""
    app_env = os.environ.get("APP_ENV", "development").strip().lower()
    if app_env not in APP_ENVIRONMENTS:
        raise RuntimeError(f"APP_ENV must be one of {', '.join(APP_ENVIRONMENTS)} (got {app_env!r})")

    # Local environments may boot without the full set of platform credentials
    relaxed = app_env in SMTP_ENVIRONMENTS

    secret_key = _load_secret_from_file("flask_secret_key", "FLASK_SECRET_KEY")
    if not secret_key:
        if not relaxed:
            raise RuntimeError("FLASK_SECRET_KEY not found in /run/secrets or environment")
        secret_key = secrets.token_urlsafe(48)
        os.environ["FLASK_SECRET_KEY"] = secret_key
        print(f"[settings] Generated temporary FLASK_SECRET_KEY ({app_env})")

    keycloak_client_secret = _load_secret_from_file("keycloak_client_secret", "KEYCLOAK_CLIENT_SECRET") or ""
    github_token = _load_secret_from_file("github_personal_access_token", "GITHUB_PERSONAL_ACCESS_TOKEN") or ""
    cpanel_api_token = _load_secret_from_file("o2switch_api_token", "O2SWITCH_API_TOKEN") or ""
    cpanel_database_password = _load_secret_from_file("o2switch_database_password", "O2SWITCH_DATABASE_PASSWORD") or ""
    aws_secret_access_key = _load_secret_from_file("aws_secret_access_key", "AWS_SECRET_ACCESS_KEY") or ""
    mailjet_api_secret = _load_secret_from_file("mailjet_api_secret_key", "MAILJET_API_SECRET_KEY") or ""
    smtp_password = _load_secret_from_file("smtp_password", "SMTP_PASSWORD") or ""
    audit_log_signing_key = _load_secret_from_file("audit_log_signing_key", "AUDIT_LOG_SIGNING_KEY") or ""

    keycloak_url = _get_or_generate("KEYCLOAK_URL", dev_default="http://localhost:8080", relaxed=relaxed)
    database_url = _get_or_generate("DATABASE_URL", dev_default="sqlite:///flapi.db", relaxed=relaxed)

    cfg = AppConfig(
        app_env=app_env,
        secret_key=secret_key,
        log_level=os.environ.get("LOG_LEVEL", "INFO").strip().upper(),
        database_url=database_url,
        health_secret=_load_secret_from_file("health_secret", "HEALTH_SECRET") or "",
        auth_required=_env_bool("AUTH_REQUIRED", True),
        aws_access_key_id=os.environ.get("AWS_ACCESS_KEY_ID", ""),
        aws_secret_access_key=aws_secret_access_key,
        aws_region=os.environ.get("AWS_REGION", "us-east-1"),
        aws_hosted_zone_id=os.environ.get("AWS_DOMAIN_FLAPI_HOSTED_ZONE_ID", ""),
        aws_domain=os.environ.get("AWS_DOMAIN_FLAPI", ""),
        aws_loadbalancer_ip=os.environ.get("AWS_SERVER_LOADBALANCER_CLUSTER_K3S", ""),
        github_token=github_token,
        github_owner=os.environ.get("GITHUB_USERNAME_OR_ORGANIZATION", ""),
        workflow_dispatch_delay=_env_int("WORKFLOW_DISPATCH_DELAY", 15),
        cpanel_host=os.environ.get("O2SWITCH_HOST", ""),
        cpanel_username=os.environ.get("O2SWITCH_USERNAME", ""),
        cpanel_api_token=cpanel_api_token,
        cpanel_database_prefix=os.environ.get("O2SWITCH_BEGINNING_DATABASE_NAME", ""),
        cpanel_database_username=os.environ.get("O2SWITCH_DATABASE_USERNAME", ""),
        cpanel_database_password=cpanel_database_password,
        cpanel_backup_path=os.environ.get("O2SWITCH_BACKUP_DATABASE_PATH", ""),
        keycloak_url=keycloak_url,
        keycloak_realm=os.environ.get("KEYCLOAK_REALM", "flapi"),
        keycloak_client_id=os.environ.get("KEYCLOAK_CLIENT_ID", "flapi-backend"),
        keycloak_client_secret=keycloak_client_secret,
        keycloak_default_role=os.environ.get("KEYCLOAK_DEFAULT_ROLE", "app_manager"),
        mailjet_api_key=os.environ.get("MAILJET_API_KEY", ""),
        mailjet_api_secret=mailjet_api_secret,
        mailjet_api_version=os.environ.get("MAILJET_API_VERSION", "3.1"),
        smtp_host=os.environ.get("SMTP_HOST", "localhost"),
        smtp_port=_env_int("SMTP_PORT", 587),
        smtp_username=os.environ.get("SMTP_USERNAME", ""),
        smtp_password=smtp_password,
        mail_username=os.environ.get("MAIL_USERNAME", "support@flapi.org"),
        textbee_api_key=_load_secret_from_file("textbee_api_key", "TEXTBEE_API_KEY") or "",
        textbee_device_id=os.environ.get("TEXTBEE_DEVICE_ID", ""),
        frontend_base_url=os.environ.get("FRONTEND_APP_BASE_URL", ""),
        frontend_account_validate_uri=os.environ.get("FRONTEND_APP_REDIRECT_URI_ACCOUNT_VALIDATE", ""),
        audit_log_signing_key=audit_log_signing_key,
    )

    print(f"[settings] Env={app_env}; realm={cfg.keycloak_realm}; client_id={cfg.keycloak_client_id}")
    if not cfg.auth_required:
        print("[settings] WARNING: AUTH_REQUIRED=false, resource endpoints accept anonymous requests")

    return cfg


def get_config() -> AppConfig:
    """Return the configuration bound to the running Flask application."""
    return current_app.config["APP_CONFIG"]
