"""Tests for payload validators."""
import pytest

from flapi.core.exceptions import ValidationError
from flapi.core.validators import (
    FieldError,
    validate_create_application_payload,
    validate_domain,
    validate_email,
    validate_environments,
    validate_integer,
    validate_password,
    validate_project_payload,
    validate_sign_up_payload,
    validate_subdomain_prefix,
    validate_verify_code_payload,
)


def _sign_up(**overrides):
    payload = {
        "role_id": 1,
        "lastname": "Martin",
        "firstname": "Alice",
        "email": "Alice@Example.com",
        "password": "Str0ng!pass",
        "password_confirmation": "Str0ng!pass",
        "ip_address": "198.51.100.7",
        "ip_region": "Europe/Paris",
        "currency_code": "EUR",
    }
    payload.update(overrides)
    return payload


def _app_payload(**overrides):
    payload = {
        "templateRepo": "template-node",
        "newRepoName": "acme-shop",
        "newPrivateRepo": True,
        "workflowName": "deploy.yml",
        "subdomain": "acme",
    }
    payload.update(overrides)
    return payload


def _fields(exc_info) -> set:
    return {error["field"] for error in exc_info.value.errors}


def test_email_is_normalized():
    assert validate_email("  Bob@Example.ORG ") == "bob@example.org"


@pytest.mark.parametrize("value", ["bob", "bob@", "bob@example", "b ob@example.com"])
def test_email_rejects_malformed(value):
    with pytest.raises(FieldError):
        validate_email(value)


def test_password_strength_applies_on_sign_up_only():
    assert validate_password("lowercase") == "lowercase"
    with pytest.raises(FieldError) as exc:
        validate_password("lowercase1", "lowercase1", check_confirmation=True)
    assert exc.value.rule == "regex"


def test_password_confirmation_must_match():
    with pytest.raises(FieldError) as exc:
        validate_password("Str0ng!pass", "Str0ng!pasS", check_confirmation=True)
    assert exc.value.rule == "confirmed"


def test_integer_accepts_numeric_strings_but_not_booleans():
    assert validate_integer("42", "id") == 42
    with pytest.raises(FieldError):
        validate_integer(True, "id")
    with pytest.raises(FieldError):
        validate_integer(1.5, "id")


def test_domain_scheme_is_stripped():
    assert validate_domain("https://flapi.org") == "flapi.org"
    assert validate_domain("http://Shop.Acme.com") == "shop.acme.com"
    with pytest.raises(FieldError):
        validate_domain("not a domain")


def test_sign_up_payload_is_cleaned():
    data = validate_sign_up_payload(_sign_up(), role_exists=lambda _: True, email_taken=lambda _: False)
    assert data["email"] == "alice@example.com"
    assert data["role_id"] == 1
    assert data["password"] == "Str0ng!pass"


def test_sign_up_collects_every_error():
    payload = _sign_up(email="nope", ip_address="999.1.1.1", firstname="<script>")
    with pytest.raises(ValidationError) as exc:
        validate_sign_up_payload(payload, role_exists=lambda _: True, email_taken=lambda _: False)
    assert _fields(exc) == {"email", "ip_address", "firstname"}


def test_sign_up_checks_role_and_email_uniqueness():
    with pytest.raises(ValidationError) as exc:
        validate_sign_up_payload(_sign_up(), role_exists=lambda _: False, email_taken=lambda _: True)
    rules = {(error["field"], error["rule"]) for error in exc.value.errors}
    assert rules == {("role_id", "exists"), ("email", "unique")}


@pytest.mark.parametrize("role_id, rule", [(None, "required"), ("admin", "number")])
def test_sign_up_role_id_must_be_a_number(role_id, rule):
    with pytest.raises(ValidationError) as exc:
        validate_sign_up_payload(_sign_up(role_id=role_id), role_exists=lambda _: True, email_taken=lambda _: False)
    assert exc.value.errors == [
        {"field": "role_id", "rule": rule, "message": exc.value.errors[0]["message"]}
    ]
    assert "role_id" in exc.value.errors[0]["message"]


def test_body_must_be_an_object():
    with pytest.raises(ValidationError) as exc:
        validate_verify_code_payload(["not", "an", "object"])
    assert _fields(exc) == {"body"}


def test_activation_code_range():
    with pytest.raises(ValidationError) as exc:
        validate_verify_code_payload({"email": "a@b.io", "code": 12})
    assert exc.value.errors[0]["rule"] == "min"


def test_project_partial_update_keeps_only_given_keys():
    data = validate_project_payload({"domain_name": "shop.flapi.org"}, user_exists=lambda _: True, partial=True)
    assert data == {"domain_name": "shop.flapi.org"}


def test_project_application_name_minimum_length():
    payload = {"application_name": "ab", "user_id": 1, "domain_name": "x.io", "file_id": 1, "database_id": 1}
    with pytest.raises(ValidationError) as exc:
        validate_project_payload(payload, user_exists=lambda _: True)
    assert exc.value.errors[0]["rule"] == "minLength"


def test_subdomain_prefix_accepts_labels_only():
    assert validate_subdomain_prefix("EU.Acme") == "eu.acme"
    for value in ("-acme", "acme..shop", "acme_shop", "acme.flapi.org/"):
        with pytest.raises(FieldError):
            validate_subdomain_prefix(value)


def test_environments_default_and_duplicates():
    assert validate_environments(None) == ["dev", "staging", "prod"]
    with pytest.raises(FieldError):
        validate_environments(["dev", "dev"])
    with pytest.raises(FieldError):
        validate_environments([])


def test_create_application_defaults():
    data = validate_create_application_payload(_app_payload())
    assert data["new_repo_name"] == "acme-shop"
    assert data["new_description_repo"] == ""
    assert data["workflow_branch"] == "main"
    assert data["environments"] == ["dev", "staging", "prod"]
    assert data["database_name"] is None
    assert data["workflow_inputs"] == {}


def test_create_application_stringifies_workflow_inputs():
    data = validate_create_application_payload(_app_payload(workflowInputs={"replicas": 2, "debug": False}))
    assert data["workflow_inputs"] == {"replicas": "2", "debug": "False"}


def test_create_application_rejects_bad_fields():
    payload = _app_payload(workflowName="deploy", newRepoName="acme shop", workflowInputs=["x"])
    with pytest.raises(ValidationError) as exc:
        validate_create_application_payload(payload)
    assert _fields(exc) == {"workflowName", "newRepoName", "workflowInputs"}


def test_create_application_requires_core_fields():
    with pytest.raises(ValidationError) as exc:
        validate_create_application_payload({})
    assert {"templateRepo", "newRepoName", "workflowName", "subdomain"} <= _fields(exc)
