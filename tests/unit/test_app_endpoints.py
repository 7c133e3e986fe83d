"""Health, documentation and error handling on the assembled application."""
from pathlib import Path

import pytest
from sqlalchemy.exc import OperationalError

from flapi.api import docs, health
from flapi.core.exceptions import ApiError
from tests.conftest import make_config


def test_root(client):
    assert client.get("/").get_json() == {"hello": "world"}


def test_readiness_check(client):
    response = client.get("/ready")
    assert response.status_code == 200
    assert response.data == b"ready"
    assert response.content_type.startswith("text/plain")


def test_health_report(client):
    response = client.get("/health")

    assert response.status_code == 200
    body = response.get_json()
    assert body["isHealthy"] is True
    assert body["status"] == "ok"
    assert body["checks"] == [
        {"name": "Database connection", "status": "ok", "message": "Connected successfully", "isCached": False}
    ]
    assert {"pid", "ppid", "uptime", "version", "platform"} <= set(body["debugInfo"])


@pytest.mark.parametrize("cfg", [make_config(health_secret="monitor-me")])
def test_health_requires_monitoring_secret(client):
    assert client.get("/health").status_code == 401
    assert client.get("/health", headers={"X-Monitoring-Secret": "nope"}).status_code == 401
    assert client.get("/health", headers={"X-Monitoring-Secret": "monitor-me"}).status_code == 200


@pytest.mark.parametrize("cfg", [make_config(health_secret="monitor-me")])
def test_health_non_ascii_secret_is_rejected(client):
    response = client.get("/health", headers={"X-Monitoring-Secret": "café"})
    assert response.status_code == 401
    assert response.get_json() == {"message": "Unauthorized access"}


def test_health_reports_database_failure(client, monkeypatch):
    def _broken():
        raise OperationalError("SELECT 1", {}, Exception("database is locked"))

    monkeypatch.setattr(health.db.session, "execute", lambda *a, **kw: _broken())

    response = client.get("/health")

    assert response.status_code == 503
    body = response.get_json()
    assert body["isHealthy"] is False
    assert body["checks"][0]["status"] == "error"


def test_openapi_document(client):
    response = client.get("/swagger")
    assert response.status_code == 200
    spec = response.get_json()
    assert spec["openapi"].startswith("3.")
    for path in ("/signup", "/signIn", "/project", "/teams", "/aws/domain/check", "/client/app/create"):
        assert path in spec["paths"]


def test_redoc_page(client):
    response = client.get("/docs")
    assert response.status_code == 200
    html = response.get_data(as_text=True)
    assert "<redoc" in html
    assert "/swagger" in html


def test_spec_path_override(app, tmp_path):
    spec = tmp_path / "spec.yaml"
    spec.write_text("openapi: 3.0.3\ninfo:\n  title: Test API\npaths: {}\n", encoding="utf-8")
    app.config["OPENAPI_SPEC_PATH"] = str(spec)
    assert docs._spec_path() == spec
    assert docs._load_spec()["info"]["title"] == "Test API"


def test_unknown_route_is_json(client):
    response = client.get("/nowhere")
    assert response.status_code == 404
    assert response.get_json()["error"] == "Not Found"


def test_method_not_allowed_is_json(client):
    response = client.get("/signup")
    assert response.status_code == 405
    assert response.get_json()["error"] == "Method Not Allowed"


def test_api_error_and_unhandled_exception(app, client):
    @app.route("/raise-api-error")
    def raise_api_error():
        raise ApiError("Quota exceeded", status=429, code="E_QUOTA", limit=3)

    @app.route("/raise-bug")
    def raise_bug():
        raise KeyError("secret detail")

    body = client.get("/raise-api-error").get_json()
    assert body == {"message": "Quota exceeded", "code": "E_QUOTA", "limit": 3}

    response = client.get("/raise-bug")
    assert response.status_code == 500
    assert "secret detail" not in response.get_data(as_text=True)


def test_app_factory_config(app, cfg):
    assert app.config["APP_CONFIG"] is cfg
    assert app.config["SQLALCHEMY_DATABASE_URI"] == "sqlite://"
    assert Path(app.config["OPENAPI_SPEC_PATH"]).name == "flapi_openapi.yaml"
    rules = {rule.rule for rule in app.url_map.iter_rules()}
    assert {"/teams/<int:team_id>/users", "/project/user/<int:user_id>", "/client/app/create"} <= rules
