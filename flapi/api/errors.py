"""Error handlers for the application.

Every error leaves the API as JSON:
- ``ApiError`` subclasses -> ``{"message", "code", ...details}``
- werkzeug HTTP errors    -> ``{"error", "message"}``
- anything else           -> logged with traceback, generic 500
"""
import logging

from flask import jsonify
from werkzeug.exceptions import HTTPException

from flapi.core.exceptions import ApiError

logger = logging.getLogger(__name__)


def register_error_handlers(app):
    """Register error handlers with the Flask app."""

    @app.errorhandler(ApiError)
    def handle_api_error(error: ApiError):
        """Typed errors raised by the service layer."""
        if error.status >= 500:
            logger.error("API error %s: %s", error.code, error.message)
        return jsonify(error.to_dict()), error.status

    @app.errorhandler(HTTPException)
    def handle_http_exception(error: HTTPException):
        """Routing and protocol errors (404, 405, 415...)."""
        return jsonify({"error": error.name, "message": error.description}), error.code

    @app.errorhandler(Exception)
    def handle_exception(error):
        """Handle uncaught exceptions."""
        # ALWAYS log the full error (even in production) - logs are secure
        logger.error("Unhandled exception: %s", error, exc_info=True)
        return jsonify({"error": "Internal Server Error", "message": "An unexpected error occurred"}), 500
