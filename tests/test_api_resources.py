"""Project, database and team routes through the Flask test client."""
import pytest
from werkzeug.security import generate_password_hash

from flapi.core.db import db
from flapi.core.models import Database, User
from tests.conftest import make_config


@pytest.fixture()
def user(app):
    user = User(email="owner@example.com", password=generate_password_hash("x"), active_code=123456)
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture()
def project_body(user):
    database = Database(name="acme_shop_prod")
    db.session.add(database)
    db.session.commit()
    return {
        "application_name": "Acme Shop",
        "user_id": user.id,
        "domain_name": "shop.flapi.org",
        "file_id": 1,
        "database_id": database.id,
    }


def test_project_crud(client, user, project_body):
    created = client.post("/project", json=project_body)
    assert created.status_code == 201
    project_id = created.get_json()["id"]

    listed = client.get("/projects").get_json()
    assert [p["application_name"] for p in listed] == ["Acme Shop"]

    by_user = client.get(f"/project/user/{user.id}").get_json()
    assert [p["id"] for p in by_user] == [project_id]

    updated = client.put(f"/project/{project_id}", json={"application_name": "Acme Store"})
    assert updated.get_json() == {"message": "Project updated successfully"}
    assert client.get(f"/project/{project_id}").get_json()["application_name"] == "Acme Store"

    deleted = client.delete(f"/project/{project_id}")
    assert deleted.status_code == 200
    assert client.get(f"/project/{project_id}").status_code == 404


def test_project_not_found_body(client):
    response = client.get("/project/999")
    assert response.status_code == 404
    assert response.get_json() == {"message": "Project not found", "code": "E_ROW_NOT_FOUND"}


def test_project_validation(client, project_body):
    response = client.post("/project", json={**project_body, "application_name": "ab"})
    assert response.status_code == 400
    assert response.get_json()["errors"][0]["field"] == "application_name"


def test_database_crud(client):
    created = client.post("/databases", json={"name": "acme_shop_dev"})
    assert created.status_code == 201
    database_id = created.get_json()["id"]

    assert client.get(f"/databases/{database_id}").get_json()["name"] == "acme_shop_dev"
    client.put(f"/databases/{database_id}", json={"name": "acme_shop_qa"})
    assert [d["name"] for d in client.get("/databases").get_json()] == ["acme_shop_qa"]
    assert client.delete(f"/databases/{database_id}").status_code == 200
    assert client.get(f"/databases/{database_id}").status_code == 404


def test_team_routes(client, user):
    created = client.post("/teams", json={"name": "Platform", "owner_id": user.id})
    assert created.status_code == 201
    team_id = created.get_json()["id"]

    added = client.post(f"/teams/{team_id}/users", json={"user_id": user.id, "role": "admin"})
    assert added.status_code == 201
    assert added.get_json()["members"] == [{"user_id": user.id, "role": "admin"}]

    duplicate = client.post(f"/teams/{team_id}/users", json={"user_id": user.id})
    assert duplicate.status_code == 409

    changed = client.put(f"/teams/{team_id}/users/{user.id}", json={"role": "member"})
    assert changed.get_json()["members"] == [{"user_id": user.id, "role": "member"}]

    removed = client.delete(f"/teams/{team_id}/users/{user.id}")
    assert removed.get_json()["members"] == []

    renamed = client.put(f"/teams/{team_id}", json={"name": "Infra"})
    assert renamed.get_json()["name"] == "Infra"

    assert client.delete(f"/teams/{team_id}").status_code == 204
    assert client.get("/teams").get_json() == []


def test_team_member_requires_user_id(client, user):
    team_id = client.post("/teams", json={"name": "Platform"}).get_json()["id"]
    response = client.post(f"/teams/{team_id}/users", json={"role": "admin"})
    assert response.status_code == 400
    assert response.get_json()["errors"][0]["field"] == "user_id"


@pytest.mark.parametrize("cfg", [make_config(auth_required=True)])
@pytest.mark.parametrize(
    "method, path",
    [
        ("get", "/projects"),
        ("post", "/project"),
        ("get", "/databases"),
        ("get", "/teams"),
        ("get", "/aws/domain/check?domain=acme.com"),
        ("post", "/client/app/create"),
    ],
)
def test_resource_routes_require_bearer_token(client, method, path):
    response = getattr(client, method)(path)
    assert response.status_code == 401
    assert response.get_json()["code"] == "E_UNAUTHORIZED"


@pytest.mark.parametrize("cfg", [make_config(auth_required=True)])
def test_account_routes_stay_public(client):
    response = client.post("/verify-code", json={"email": "ghost@example.com", "code": 123456})
    assert response.status_code == 404
