"""Pytest shared fixtures for the Flapi backend."""
import json
import os
import pathlib
import sys

# Add project root to Python path
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Configure test environment BEFORE any app imports
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
import requests
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from flapi.config.settings import AppConfig
from flapi.core.db import db
from flapi.core.models import seed_user_roles
from flapi.flask_app import create_app


def make_config(**overrides) -> AppConfig:
    """Complete test configuration; every external endpoint is fake."""
    base = dict(
        app_env="test",
        secret_key="test-secret-key",
        database_url="sqlite://",
        auth_required=False,
        aws_access_key_id="AKIATEST",
        aws_secret_access_key="aws-secret",
        aws_region="us-east-1",
        aws_hosted_zone_id="Z0123456789",
        aws_domain="flapi.org",
        aws_loadbalancer_ip="203.0.113.10",
        github_token="gh-token",
        github_owner="flapi-org",
        workflow_dispatch_delay=0,
        cpanel_host="cpanel.example.net",
        cpanel_username="acme",
        cpanel_api_token="cp-token",
        cpanel_database_prefix="acme_",
        cpanel_database_username="acme_app",
        cpanel_database_password="db-password",
        cpanel_backup_path="/home/acme/backups/",
        keycloak_url="http://keycloak.test",
        keycloak_realm="flapi",
        keycloak_client_id="flapi-backend",
        keycloak_client_secret="kc-secret",
        mailjet_api_key="mj-key",
        mailjet_api_secret="mj-secret",
        mail_username="support@flapi.org",
        textbee_api_key="tb-key",
        textbee_device_id="device-42",
        frontend_account_validate_uri="https://app.flapi.org/account/validate",
        audit_log_signing_key="test-signing-key",
    )
    base.update(overrides)
    return AppConfig(**base)


class StubResponse:
    """Minimal stand-in for ``requests.Response``."""

    def __init__(self, payload=None, status_code: int = 200, headers: dict | None = None, url: str = ""):
        self._payload = payload if payload is not None else {}
        self.status_code = status_code
        self.headers = headers or {}
        self.url = url
        self.text = json.dumps(self._payload)
        self.reason = "stub"

    def json(self):
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error", response=self)


# ─────────────────────────────────────────────────────────────────────────────
# Network Guard Rails
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture(autouse=True)
def _block_network(monkeypatch, request):
    """
    Prevent unit tests from reaching Keycloak, GitHub, cPanel or Mailjet.

    Tests marked with @pytest.mark.integration keep real HTTP access.
    Tests that expect a call replace these stubs with their own.
    """
    if request.node.get_closest_marker("integration"):
        return

    def _refuse(*args, **kwargs):
        raise RuntimeError(f"Unexpected network access in tests: {args[:2]}")

    monkeypatch.setattr(requests, "request", _refuse)
    monkeypatch.setattr(requests, "get", _refuse)
    monkeypatch.setattr(requests, "post", _refuse)


@pytest.fixture(autouse=True)
def _audit_dir(monkeypatch, tmp_path):
    """Each test writes its audit trail under its own tmp directory."""
    audit_dir = tmp_path / "audit"
    monkeypatch.setenv("AUDIT_LOG_DIR", str(audit_dir))
    return audit_dir


# ─────────────────────────────────────────────────────────────────────────────
# Flask Application
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture()
def cfg():
    return make_config()


@pytest.fixture()
def app(cfg):
    """Application bound to a fresh in-memory database, context pushed."""
    flask_app = create_app(cfg, TESTING=True)
    with flask_app.app_context():
        yield flask_app
        db.session.remove()


@pytest.fixture()
def client(app):
    with app.test_client() as client:
        yield client


@pytest.fixture()
def roles(app):
    """Seed the platform roles; returns ``{name: id}``."""
    from flapi.core.models import UserRole

    seed_user_roles()
    return {role.name: role.id for role in db.session.execute(db.select(UserRole)).scalars()}


# ─────────────────────────────────────────────────────────────────────────────
# RSA Key Pair for JWT Testing
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture(scope="session")
def rsa_key_pair():
    """Generate RSA key pair for JWT signing in tests."""
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    return {
        "private_key": private_key,
        "private_pem": private_pem,
        "public_key": private_key.public_key(),
    }
