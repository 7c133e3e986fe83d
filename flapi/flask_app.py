"""Flask application factory and bootstrap.

This module provides the create_app() factory function for initializing
the Flask application with all blueprints, persistence and configuration.

Gunicorn entry point: ``flapi.flask_app:create_app()``
"""
from __future__ import annotations
import logging
from pathlib import Path
from typing import Optional

from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix

from flapi.config import AppConfig, load_settings
from flapi.core.db import db

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def _configure_logging(level: str) -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("flapi").setLevel(level)
    # botocore and urllib3 are chatty at DEBUG
    for noisy in ("botocore", "urllib3"):
        logging.getLogger(noisy).setLevel(max(logging.getLevelName(level), logging.INFO))


# ─────────────────────────────────────────────────────────────────────────────
# Application Factory
# ─────────────────────────────────────────────────────────────────────────────
def create_app(cfg: Optional[AppConfig] = None, **overrides) -> Flask:
    """Create and configure Flask application.

    Args:
        cfg: Configuration to use instead of the environment
        **overrides: Extra Flask config values (``TESTING=True``...)
    """
    cfg = cfg or load_settings()
    _configure_logging(cfg.log_level)

    app = Flask(__name__)
    app.config.setdefault(
        "OPENAPI_SPEC_PATH",
        str(Path(app.root_path).parent / "openapi" / "flapi_openapi.yaml"),
    )

    # Store config for easy access in routes
    app.config["APP_CONFIG"] = cfg
    app.config["SECRET_KEY"] = cfg.secret_key
    app.config["SQLALCHEMY_DATABASE_URI"] = cfg.database_url
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    app.config.update(overrides)

    # Trust X-Forwarded-* headers from the reverse proxy
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)  # type: ignore

    db.init_app(app)
    with app.app_context():
        from flapi.core import models  # noqa: F401  (register tables)
        db.create_all()

    # Register blueprints
    from flapi.api import auth, client, databases, docs, domains, errors, health, projects, teams

    app.register_blueprint(health.bp)
    app.register_blueprint(auth.bp)
    app.register_blueprint(projects.bp)
    app.register_blueprint(teams.bp)
    app.register_blueprint(databases.bp)
    app.register_blueprint(domains.bp)
    app.register_blueprint(client.bp)
    app.register_blueprint(docs.bp)

    # Register error handlers
    errors.register_error_handlers(app)

    print(f"[flask_app] Env={cfg.app_env}; database={cfg.database_url.split(':', 1)[0]}")
    if not cfg.auth_required:
        print("[flask_app] WARNING: bearer token guard disabled on resource endpoints")

    return app


if __name__ == "__main__":
    create_app().run(host="0.0.0.0", port=5000, debug=True)
