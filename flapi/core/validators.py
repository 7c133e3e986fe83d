"""Input validation helpers for request payloads.

Field validators raise ``FieldError`` (a ``ValueError``); payload validators
collect them into a single ``ValidationError`` listing every failing field.
"""
from __future__ import annotations
import ipaddress
import re
from typing import Any, Callable, Optional

from flapi.core.exceptions import ValidationError

EMAIL_MAX_LENGTH = 254
NAME_MAX_LENGTH = 255
APPLICATION_NAME_MIN_LENGTH = 3
PASSWORD_MIN_LENGTH = 8
ACTIVE_CODE_MIN = 100000
ACTIVE_CODE_MAX = 999999

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
DOMAIN_PATTERN = re.compile(r"^(https?://)?([a-zA-Z0-9-]+\.)+[a-zA-Z]{2,}$")
SUBDOMAIN_LABEL_PATTERN = re.compile(r"^[a-z0-9]([a-z0-9-]{0,61}[a-z0-9])?$")
SUBDOMAIN_PREFIX_PATTERN = re.compile(r"^[a-z0-9]([a-z0-9-]{0,61}[a-z0-9])?(\.[a-z0-9]([a-z0-9-]{0,61}[a-z0-9])?)*$")
WORKFLOW_FILE_PATTERN = re.compile(r"^[A-Za-z0-9._-]+\.ya?ml$")
DEFAULT_ENVIRONMENTS = ("dev", "staging", "prod")
# At least one lowercase, one uppercase, one digit and one special character
PASSWORD_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[^A-Za-z\d\s])[A-Za-z\d\S]{8,}$")
REPOSITORY_NAME_PATTERN = re.compile(r"^[A-Za-z0-9._-]{1,100}$")


class FieldError(ValueError):
    """A single field failed a rule."""

    def __init__(self, rule: str, message: str):
        self.rule = rule
        super().__init__(message)


def validate_string(value: Any, field: str, *, min_length: int = 1, max_length: int = NAME_MAX_LENGTH) -> str:
    """Validate and trim a free-text field.

    Raises:
        FieldError: If the value is missing, not a string or out of bounds
    """
    if value is None:
        raise FieldError("required", f"The {field} field must be defined")
    if not isinstance(value, str):
        raise FieldError("string", f"The {field} field must be a string")
    value = value.strip()
    if len(value) < min_length:
        if min_length == 1:
            raise FieldError("required", f"The {field} field must be defined")
        raise FieldError("minLength", f"The {field} field must have at least {min_length} characters")
    if len(value) > max_length:
        raise FieldError("maxLength", f"The {field} field must not be greater than {max_length} characters")
    return value


def validate_email(email: Any, field: str = "email") -> str:
    """Validate email address.

    Returns:
        Normalized (trimmed, lowercased) email address
    """
    email = validate_string(email, field, max_length=EMAIL_MAX_LENGTH).lower()
    if not EMAIL_PATTERN.match(email):
        raise FieldError("email", f"The {field} field must be a valid email address")
    return email


def validate_name(name: Any, field: str) -> str:
    """Validate first/last name fields."""
    name = validate_string(name, field)
    if any(char in name for char in "<>\"'`;&|$"):
        raise FieldError("regex", f"The {field} field contains invalid characters")
    return name


def validate_password(password: Any, confirmation: Any = None, *, check_confirmation: bool = False) -> str:
    """Validate password strength (and confirmation on sign-up)."""
    if not isinstance(password, str) or not password:
        raise FieldError("required", "The password field must be defined")
    if len(password) < PASSWORD_MIN_LENGTH:
        raise FieldError("minLength", f"The password field must have at least {PASSWORD_MIN_LENGTH} characters")
    if check_confirmation:
        if password != confirmation:
            raise FieldError("confirmed", "The password field and password_confirmation field must be the same")
        if not PASSWORD_PATTERN.match(password):
            raise FieldError(
                "regex",
                "The password must contain a lowercase letter, an uppercase letter, a digit and a special character",
            )
    return password


def validate_integer(value: Any, field: str, *, minimum: Optional[int] = None, maximum: Optional[int] = None) -> int:
    """Validate an integer field (accepts numeric strings)."""
    if value is None or value == "":
        raise FieldError("required", f"The {field} field must be defined")
    if isinstance(value, bool):
        raise FieldError("number", f"The {field} field must be a number")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise FieldError("number", f"The {field} field must be a number")
    if isinstance(value, float) and number != value:
        raise FieldError("number", f"The {field} field must be a number")
    if minimum is not None and number < minimum:
        raise FieldError("min", f"The {field} field must be at least {minimum}")
    if maximum is not None and number > maximum:
        raise FieldError("max", f"The {field} field must not be greater than {maximum}")
    return number


def validate_ipv4(value: Any, field: str = "ip_address") -> str:
    value = validate_string(value, field, max_length=45)
    try:
        ipaddress.IPv4Address(value)
    except ValueError:
        raise FieldError("ipAddress", f"The {field} field must be a valid IPv4 address")
    return value


def validate_domain(value: Any, field: str = "domain") -> str:
    """Validate a domain name.

    An http/https scheme is tolerated and stripped, so the bare lowercased
    host name is returned.
    """
    value = validate_string(value, field)
    match = DOMAIN_PATTERN.match(value)
    if not match:
        raise FieldError("regex", f"The {field} field format is invalid")
    return value[len(match.group(1) or ""):].lower()


def validate_subdomain_label(value: Any, field: str = "subdomain") -> str:
    """Validate a single DNS label (``myapp``, not ``myapp.flapi.org``)."""
    value = validate_string(value, field, max_length=63).lower()
    if not SUBDOMAIN_LABEL_PATTERN.match(value):
        raise FieldError("regex", f"The {field} field must be a valid DNS label")
    return value


def validate_repository_name(value: Any, field: str) -> str:
    value = validate_string(value, field, max_length=100)
    if not REPOSITORY_NAME_PATTERN.match(value):
        raise FieldError("regex", f"The {field} field must only contain letters, digits, '.', '-' or '_'")
    return value


def validate_boolean(value: Any, field: str, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in {"true", "false", "1", "0"}:
        return value.lower() in {"true", "1"}
    raise FieldError("boolean", f"The {field} field must be a boolean")


# ─────────────────────────────────────────────────────────────────────────────
# Payload validation
# ─────────────────────────────────────────────────────────────────────────────

class PayloadValidator:
    """Collect field errors while extracting a cleaned payload.

    Usage:
        v = PayloadValidator(request_json)
        email = v.field("email", validate_email)
        v.raise_if_errors()
    """

    def __init__(self, payload: Any):
        if not isinstance(payload, dict):
            raise ValidationError([{"field": "body", "rule": "object", "message": "The request body must be a JSON object"}])
        self.payload = payload
        self.errors: list[dict] = []

    def field(self, name: str, validator: Callable[..., Any], *args, optional: bool = False, **kwargs) -> Any:
        value = self.payload.get(name)
        if optional and value is None:
            return None
        try:
            return validator(value, *args, **kwargs)
        except FieldError as exc:
            self.add_error(name, exc.rule, str(exc))
            return None

    def add_error(self, field: str, rule: str, message: str) -> None:
        self.errors.append({"field": field, "rule": rule, "message": message})

    def raise_if_errors(self) -> None:
        if self.errors:
            raise ValidationError(self.errors)


def validate_sign_up_payload(payload: Any, *, role_exists: Callable[[int], bool], email_taken: Callable[[str], bool]) -> dict:
    """Validate the sign-up form.

    Args:
        payload: Raw JSON body
        role_exists: Lookup telling whether a role id is known
        email_taken: Lookup telling whether an email is already registered

    Returns:
        Cleaned payload (password kept as provided)

    Raises:
        ValidationError: Listing every invalid field
    """
    v = PayloadValidator(payload)
    role_id = v.field("role_id", validate_integer, "role_id")
    if role_id is not None and not role_exists(role_id):
        v.add_error("role_id", "exists", "The selected role_id is invalid")
    data = {
        "role_id": role_id,
        "lastname": v.field("lastname", validate_name, "lastname"),
        "firstname": v.field("firstname", validate_name, "firstname"),
        "email": v.field("email", validate_email),
        "password": v.field(
            "password",
            validate_password,
            payload.get("password_confirmation"),
            check_confirmation=True,
        ),
        "ip_address": v.field("ip_address", validate_ipv4),
        "ip_region": v.field("ip_region", validate_string, "ip_region", max_length=45),
        "currency_code": v.field("currency_code", validate_string, "currency_code", max_length=8),
    }
    if data["email"] and email_taken(data["email"]):
        v.add_error("email", "unique", "The email has already been taken")
    v.raise_if_errors()
    return data


def validate_sign_in_payload(payload: Any) -> dict:
    v = PayloadValidator(payload)
    data = {
        "email": v.field("email", validate_email),
        "password": v.field("password", validate_password),
    }
    v.raise_if_errors()
    return data


def validate_verify_code_payload(payload: Any) -> dict:
    v = PayloadValidator(payload)
    data = {
        "email": v.field("email", validate_email),
        "code": v.field("code", validate_integer, "code", minimum=ACTIVE_CODE_MIN, maximum=ACTIVE_CODE_MAX),
    }
    v.raise_if_errors()
    return data


def validate_resend_code_payload(payload: Any) -> dict:
    v = PayloadValidator(payload)
    data = {"email": v.field("email", validate_email)}
    v.raise_if_errors()
    return data


def validate_project_payload(payload: Any, *, user_exists: Callable[[int], bool], partial: bool = False) -> dict:
    """Validate a project create (or partial update) payload.

    On partial updates only the provided keys are returned.
    """
    v = PayloadValidator(payload)
    rules: dict[str, tuple] = {
        "application_name": (validate_string, ("application_name",), {"min_length": APPLICATION_NAME_MIN_LENGTH}),
        "user_id": (validate_integer, ("user_id",), {}),
        "domain_name": (validate_string, ("domain_name",), {}),
        "file_id": (validate_integer, ("file_id",), {}),
        "database_id": (validate_integer, ("database_id",), {}),
    }
    data = {}
    for name, (validator, args, kwargs) in rules.items():
        if partial and name not in payload:
            continue
        data[name] = v.field(name, validator, *args, **kwargs)
    if data.get("user_id") is not None and not user_exists(data["user_id"]):
        v.add_error("user_id", "exists", "The selected user_id is invalid")
    v.raise_if_errors()
    return data


def validate_team_payload(payload: Any, *, partial: bool = False) -> dict:
    v = PayloadValidator(payload)
    data = {}
    if not partial or "name" in payload:
        data["name"] = v.field("name", validate_string, "name")
    if "description" in payload:
        data["description"] = v.field("description", validate_string, "description", min_length=0, max_length=2000, optional=True)
    if "owner_id" in payload:
        data["owner_id"] = v.field("owner_id", validate_integer, "owner_id", optional=True)
    v.raise_if_errors()
    return data


def validate_database_payload(payload: Any) -> dict:
    v = PayloadValidator(payload)
    data = {"name": v.field("name", validate_string, "name")}
    v.raise_if_errors()
    return data


def validate_domain_query(args: dict) -> dict:
    v = PayloadValidator(dict(args))
    data = {"domain": v.field("domain", validate_domain)}
    v.raise_if_errors()
    return data


def validate_subdomain_query(args: dict) -> dict:
    v = PayloadValidator(dict(args))
    data = {"subdomain": v.field("subdomain", validate_domain, "subdomain")}
    v.raise_if_errors()
    return data


def validate_subdomain_prefix(value: Any, field: str = "subdomain") -> str:
    """Validate the part placed before the platform domain (``myapp`` or ``eu.myapp``)."""
    value = validate_string(value, field, max_length=190).lower()
    if not SUBDOMAIN_PREFIX_PATTERN.match(value):
        raise FieldError("regex", f"The {field} field must be made of valid DNS labels")
    return value


def validate_environments(value: Any, field: str = "environments") -> list[str]:
    if value is None:
        return list(DEFAULT_ENVIRONMENTS)
    if not isinstance(value, list) or not value:
        raise FieldError("array", f"The {field} field must be a non-empty list")
    environments = [validate_subdomain_label(item, field) for item in value]
    if len(set(environments)) != len(environments):
        raise FieldError("distinct", f"The {field} field must not contain duplicates")
    return environments


def validate_create_application_payload(payload: Any) -> dict:
    """Validate the /client/app/create payload.

    Returns:
        Cleaned payload using snake_case keys
    """
    v = PayloadValidator(payload)
    data = {
        "template_repo": v.field("templateRepo", validate_repository_name, "templateRepo"),
        "new_repo_name": v.field("newRepoName", validate_repository_name, "newRepoName"),
        "new_description_repo": v.field(
            "newDescriptionRepo", validate_string, "newDescriptionRepo", min_length=0, max_length=350, optional=True
        ) or "",
        "new_private_repo": v.field("newPrivateRepo", validate_boolean, "newPrivateRepo"),
        "workflow_name": v.field("workflowName", validate_string, "workflowName"),
        "workflow_branch": v.field("workflowBranch", validate_string, "workflowBranch", optional=True) or "main",
        "subdomain": v.field("subdomain", validate_subdomain_prefix),
        "environments": v.field("environments", validate_environments),
        "database_name": v.field("databaseName", validate_repository_name, "databaseName", optional=True),
    }
    if data["workflow_name"] and not WORKFLOW_FILE_PATTERN.match(data["workflow_name"]):
        v.add_error("workflowName", "regex", "The workflowName field must be a workflow file name (e.g. deploy.yml)")

    inputs = payload.get("workflowInputs")
    if inputs is None:
        inputs = {}
    elif not isinstance(inputs, dict) or not all(isinstance(k, str) for k in inputs):
        v.add_error("workflowInputs", "object", "The workflowInputs field must be an object")
        inputs = {}
    # workflow_dispatch inputs are strings on GitHub's side
    data["workflow_inputs"] = {key: str(value) for key, value in inputs.items()}

    v.raise_if_errors()
    return data
