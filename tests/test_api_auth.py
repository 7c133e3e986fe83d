"""Account routes through the Flask test client."""
from unittest.mock import MagicMock

import pytest
import requests

from flapi.core import auth_service
from flapi.core import keycloak as keycloak_package
from flapi.core.db import db
from flapi.core.keycloak import KeycloakAPIError
from flapi.core.models import User

PASSWORD = "Str0ng!pass"


@pytest.fixture()
def keycloak(monkeypatch):
    users = MagicMock()
    users.create_user.return_value = "kc-uuid-1"
    sessions = MagicMock()
    sessions.login_user.return_value = {"access_token": "access", "expires_in": 300, "refresh_token": "refresh"}
    monkeypatch.setattr(auth_service, "build_keycloak", lambda cfg: (users, sessions))
    return users, sessions


@pytest.fixture()
def outbox(monkeypatch):
    sent = []
    monkeypatch.setattr(auth_service, "send_email", lambda *args: sent.append(args))
    return sent


@pytest.fixture()
def signed_up(client, roles, keycloak, outbox):
    response = client.post(
        "/signup",
        json={
            "role_id": roles["admin"],
            "lastname": "Martin",
            "firstname": "Alice",
            "email": "alice@example.com",
            "password": PASSWORD,
            "password_confirmation": PASSWORD,
            "ip_address": "198.51.100.7",
            "ip_region": "Europe/Paris",
            "currency_code": "EUR",
        },
    )
    assert response.status_code == 201
    return db.session.execute(db.select(User).filter_by(email="alice@example.com")).scalar_one()


def test_signup_created(signed_up, outbox, keycloak):
    assert signed_up.is_active is False
    assert len(outbox) == 1
    keycloak[0].add_realm_role.assert_called_once_with("kc-uuid-1", "admin")


def test_signup_validation_errors(client, roles, keycloak, outbox):
    response = client.post("/signup", json={"email": "not-an-email"})

    assert response.status_code == 400
    body = response.get_json()
    assert body["code"] == "E_VALIDATION_ERROR"
    fields = {error["field"] for error in body["errors"]}
    assert {"email", "password", "role_id", "firstname"} <= fields


def test_signup_rejects_non_json_body(client, roles):
    response = client.post("/signup", data="email=alice", content_type="application/x-www-form-urlencoded")
    assert response.status_code == 400
    assert response.get_json()["errors"][0]["field"] == "body"


def test_sign_in_success(client, signed_up):
    response = client.post("/signIn", json={"email": "alice@example.com", "password": PASSWORD})

    assert response.status_code == 200
    body = response.get_json()
    assert body["token"] == "access"
    assert body["type"] == "bearer"
    assert body["refreshToken"] == "refresh"
    assert "expiresAt" in body


@pytest.mark.parametrize(
    "payload",
    [
        {"email": "alice@example.com", "password": "Wrong!pass1"},
        {"email": "nobody@example.com", "password": PASSWORD},
        {"email": "broken"},
    ],
)
def test_sign_in_failures_are_401(client, signed_up, payload):
    response = client.post("/signIn", json=payload)
    assert response.status_code == 401
    assert response.get_json() == {"message": "Authentication failed", "code": "E_UNAUTHORIZED"}


def test_sign_in_with_keycloak_down_is_401(client, signed_up, monkeypatch):
    def _refused(*args, **kwargs):
        raise requests.ConnectionError("Connection refused")

    monkeypatch.setattr(auth_service, "build_keycloak", keycloak_package.build_keycloak)
    monkeypatch.setattr(requests, "post", _refused)

    response = client.post("/signIn", json={"email": "alice@example.com", "password": PASSWORD})

    assert response.status_code == 401
    assert response.get_json()["message"] == "Authentication failed"


def test_signup_with_keycloak_down_is_502(client, roles, outbox, monkeypatch):
    def _refused(*args, **kwargs):
        raise requests.ConnectionError("Connection refused")

    monkeypatch.setattr(requests, "post", _refused)

    response = client.post(
        "/signup",
        json={
            "role_id": roles["admin"],
            "lastname": "Martin",
            "firstname": "Alice",
            "email": "alice@example.com",
            "password": PASSWORD,
            "password_confirmation": PASSWORD,
            "ip_address": "198.51.100.7",
            "ip_region": "Europe/Paris",
            "currency_code": "EUR",
        },
    )

    assert response.status_code == 502
    assert response.get_json()["code"] == "E_EXTERNAL_SERVICE"
    assert outbox == []


def test_sign_out(client, keycloak):
    response = client.post("/signOut", json={"refreshToken": "refresh"})
    assert response.status_code == 200
    keycloak[1].logout_user.assert_called_once_with("refresh")


def test_sign_out_without_session(client, keycloak):
    keycloak[1].logout_user.side_effect = KeycloakAPIError(400, "invalid_grant", "logout")
    response = client.post("/signOut", json={"refreshToken": "expired"})
    assert response.status_code == 401
    assert response.get_json()["message"] == "No active session found"


def test_verify_code_flow(client, signed_up):
    wrong_code = 100000 if signed_up.active_code != 100000 else 100001
    wrong = client.post("/verify-code", json={"email": "alice@example.com", "code": wrong_code})
    assert wrong.status_code == 400
    assert wrong.get_json()["code"] == "E_INVALID_CODE"

    response = client.post("/verify-code", json={"email": "alice@example.com", "code": signed_up.active_code})
    assert response.status_code == 200
    assert response.get_json() == {"message": "Account is active"}


def test_verify_code_unknown_user(client):
    response = client.post("/verify-code", json={"email": "ghost@example.com", "code": 123456})
    assert response.status_code == 404
    assert response.get_json()["code"] == "E_ROW_NOT_FOUND"


def test_resend_code(client, signed_up, outbox):
    response = client.post("/resend-code", json={"email": "alice@example.com"})
    assert response.status_code == 200
    assert len(outbox) == 2
    assert outbox[-1][1] == "new_code"
