"""Customer application provisioning route."""
from flask import Blueprint, jsonify, request

from flapi.api.decorators import require_oauth_token
from flapi.core import provisioning_service

bp = Blueprint("client", __name__, url_prefix="/client")


@bp.route("/app/create", methods=["POST"])
@require_oauth_token
def create_application():
    """Provision subdomains, databases, repository and CI workflow.

    Errors carry ``completed_steps``: resources created before the failure
    are not rolled back.
    """
    result = provisioning_service.create_new_application(request.get_json(silent=True))
    return jsonify(result), 201
