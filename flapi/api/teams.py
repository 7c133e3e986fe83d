"""Team and team membership routes."""
from flask import Blueprint, jsonify, request

from flapi.api.decorators import require_oauth_token
from flapi.core import team_service
from flapi.core.validators import PayloadValidator, validate_integer

bp = Blueprint("teams", __name__, url_prefix="/teams")


@bp.route("", methods=["GET"])
@require_oauth_token
def list_teams():
    return jsonify([team.to_dict() for team in team_service.get_all_teams()])


@bp.route("", methods=["POST"])
@require_oauth_token
def create_team():
    team = team_service.create_team(request.get_json(silent=True))
    return jsonify(team.to_dict()), 201


@bp.route("/<int:team_id>", methods=["GET"])
@require_oauth_token
def get_team(team_id: int):
    return jsonify(team_service.get_team_by_id(team_id).to_dict())


@bp.route("/<int:team_id>", methods=["PUT"])
@require_oauth_token
def update_team(team_id: int):
    return jsonify(team_service.update_team(team_id, request.get_json(silent=True)).to_dict())


@bp.route("/<int:team_id>", methods=["DELETE"])
@require_oauth_token
def delete_team(team_id: int):
    team_service.delete_team(team_id)
    return "", 204


@bp.route("/<int:team_id>/users", methods=["POST"])
@require_oauth_token
def add_user(team_id: int):
    """Body: ``{"user_id": 3, "role": "member"}`` (role optional)."""
    v = PayloadValidator(request.get_json(silent=True))
    user_id = v.field("user_id", validate_integer, "user_id")
    v.raise_if_errors()
    team = team_service.add_user_to_team(team_id, user_id, v.payload.get("role"))
    return jsonify(team.to_dict()), 201


@bp.route("/<int:team_id>/users/<int:user_id>", methods=["PUT"])
@require_oauth_token
def update_user_role(team_id: int, user_id: int):
    payload = request.get_json(silent=True)
    role = payload.get("role") if isinstance(payload, dict) else None
    return jsonify(team_service.update_user_role(team_id, user_id, role).to_dict())


@bp.route("/<int:team_id>/users/<int:user_id>", methods=["DELETE"])
@require_oauth_token
def remove_user(team_id: int, user_id: int):
    return jsonify(team_service.remove_user_from_team(team_id, user_id).to_dict())
