"""Project routes."""
from flask import Blueprint, jsonify, request

from flapi.api.decorators import require_oauth_token
from flapi.core import project_service

bp = Blueprint("projects", __name__)


@bp.route("/project", methods=["POST"])
@require_oauth_token
def create_project():
    project = project_service.create_project(request.get_json(silent=True))
    return jsonify({"message": "Project created successfully", "id": project.id}), 201


@bp.route("/projects", methods=["GET"])
@require_oauth_token
def list_projects():
    return jsonify([project.to_dict() for project in project_service.get_projects()])


@bp.route("/project/<int:project_id>", methods=["GET"])
@require_oauth_token
def get_project(project_id: int):
    return jsonify(project_service.get_project_by_id(project_id).to_dict())


@bp.route("/project/user/<int:user_id>", methods=["GET"])
@require_oauth_token
def list_user_projects(user_id: int):
    return jsonify([project.to_dict() for project in project_service.get_projects_by_user_id(user_id)])


@bp.route("/project/<int:project_id>", methods=["PUT"])
@require_oauth_token
def update_project(project_id: int):
    project_service.update_project(project_id, request.get_json(silent=True))
    return jsonify({"message": "Project updated successfully"})


@bp.route("/project/<int:project_id>", methods=["DELETE"])
@require_oauth_token
def delete_project(project_id: int):
    project_service.delete_project(project_id)
    return jsonify({"message": "Project deleted successfully"})
