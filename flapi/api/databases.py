"""Database catalogue routes."""
from flask import Blueprint, jsonify, request

from flapi.api.decorators import require_oauth_token
from flapi.core import database_service

bp = Blueprint("databases", __name__, url_prefix="/databases")


@bp.route("", methods=["POST"])
@require_oauth_token
def create_database():
    database = database_service.create_database(request.get_json(silent=True))
    return jsonify({"message": "Database created successfully", "id": database.id}), 201


@bp.route("", methods=["GET"])
@require_oauth_token
def list_databases():
    return jsonify([database.to_dict() for database in database_service.get_databases()])


@bp.route("/<int:database_id>", methods=["GET"])
@require_oauth_token
def get_database(database_id: int):
    return jsonify(database_service.get_database_by_id(database_id).to_dict())


@bp.route("/<int:database_id>", methods=["PUT"])
@require_oauth_token
def update_database(database_id: int):
    database_service.update_database(database_id, request.get_json(silent=True))
    return jsonify({"message": "Database updated successfully"})


@bp.route("/<int:database_id>", methods=["DELETE"])
@require_oauth_token
def delete_database(database_id: int):
    database_service.delete_database(database_id)
    return jsonify({"message": "Database deleted successfully"})
