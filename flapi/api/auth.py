"""Account routes: sign-up, sign-in, sign-out and activation."""
from __future__ import annotations
import logging

from flask import Blueprint, jsonify, request

from flapi.core import auth_service
from flapi.core.exceptions import AuthenticationError, ValidationError

bp = Blueprint("auth", __name__)

logger = logging.getLogger(__name__)


@bp.route("/signup", methods=["POST"])
def sign_up():
    auth_service.sign_up(request.get_json(silent=True))
    return jsonify({"message": "Account created successfully"}), 201


@bp.route("/signIn", methods=["POST"])
def sign_in():
    """Any failure (including a malformed payload) answers 401."""
    try:
        tokens = auth_service.sign_in(request.get_json(silent=True))
    except ValidationError as exc:
        logger.info("Sign-in rejected: invalid payload (%d errors)", len(exc.errors))
        raise AuthenticationError("Authentication failed") from exc
    return jsonify(tokens), 200


@bp.route("/signOut", methods=["POST"])
def sign_out():
    auth_service.sign_out(request.get_json(silent=True))
    return jsonify({"message": "Logged out from all sessions"}), 200


@bp.route("/verify-code", methods=["POST"])
def verify_code():
    auth_service.verify_code(request.get_json(silent=True))
    return jsonify({"message": "Account is active"}), 200


@bp.route("/resend-code", methods=["POST"])
def resend_code():
    auth_service.resend_new_code_verification_account(request.get_json(silent=True))
    return jsonify({"message": "New code sent"}), 200
