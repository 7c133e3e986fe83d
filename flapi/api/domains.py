"""Domain and subdomain availability checks (Route 53)."""
from botocore.exceptions import ClientError
from flask import Blueprint, current_app, jsonify, request

from flapi.api.decorators import require_oauth_token
from flapi.core.exceptions import ExternalServiceError
from flapi.core.route53 import Route53Service
from flapi.core.validators import validate_domain_query, validate_subdomain_query

bp = Blueprint("domains", __name__, url_prefix="/aws")


def _route53() -> Route53Service:
    return Route53Service(current_app.config["APP_CONFIG"])


@bp.route("/domain/check", methods=["GET"])
@require_oauth_token
def check_domain():
    """``isAvailable`` is true when the registrar reports the domain as free."""
    domain = validate_domain_query(request.args)["domain"]
    try:
        taken = _route53().check_domain_availability(domain)
    except ClientError as exc:
        raise ExternalServiceError("route53domains", "Unable to check the domain availability") from exc
    return jsonify({"domain": domain, "isAvailable": not taken})


@bp.route("/subdomain/check", methods=["GET"])
@require_oauth_token
def check_subdomain():
    """``isAvailable`` is true when no record set exists for the name."""
    subdomain = validate_subdomain_query(request.args)["subdomain"]
    try:
        exists = _route53().check_subdomain_availability(subdomain)
    except ClientError as exc:
        raise ExternalServiceError("route53", "Unable to check the subdomain availability") from exc
    return jsonify({"subdomain": subdomain, "isAvailable": not exists})
