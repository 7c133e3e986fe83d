"""Documentation blueprint exposing the OpenAPI description and a ReDoc UI."""
from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from flask import Blueprint, Response, current_app, jsonify, url_for

bp = Blueprint("docs", __name__)

REDOC_SCRIPT_URL = "https://cdn.redoc.ly/redoc/latest/bundles/redoc.standalone.js"


def _spec_path() -> Path:
    """Resolve the OpenAPI specification path."""
    override = current_app.config.get("OPENAPI_SPEC_PATH")
    if override:
        return Path(override)
    return Path(current_app.root_path).parent / "openapi" / "flapi_openapi.yaml"


def _load_spec() -> dict[str, Any]:
    """Load the OpenAPI spec from disk (YAML)."""
    path = _spec_path()
    if not path.exists():
        raise FileNotFoundError(f"OpenAPI spec not found: {path}")
    with path.open("r", encoding="utf-8") as handle:
        return yaml.safe_load(handle)


@bp.route("/swagger", methods=["GET"])
def openapi_document() -> Response:
    """Serve the OpenAPI document as JSON."""
    return jsonify(_load_spec())


@bp.route("/docs", methods=["GET"])
def api_docs() -> Response:
    """Serve a read-only ReDoc page for the API."""
    spec_url = url_for("docs.openapi_document", _external=False)
    html = f"""<!DOCTYPE html>
<html lang="en">
  <head>
    <meta charset="utf-8"/>
    <title>Flapi API Reference</title>
    <meta name="robots" content="noindex,nofollow"/>
    <meta name="referrer" content="no-referrer"/>
    <style>
      body {{
        margin: 0;
        font-family: "Segoe UI", Roboto, sans-serif;
        background-color: #f8fafc;
      }}
      .banner {{
        background: #0f172a;
        color: #f8fafc;
        padding: 12px 24px;
        font-size: 14px;
        display: flex;
        justify-content: space-between;
      }}
    </style>
  </head>
  <body>
    <div class="banner">
      <div><strong>Flapi</strong> backend API reference. Resource endpoints require a Keycloak bearer token.</div>
      <div><a href="{spec_url}" style="color:#38bdf8;text-decoration:none;">OpenAPI JSON</a></div>
    </div>
    <redoc spec-url="{spec_url}" expand-responses="200,201"></redoc>
    <script src="{REDOC_SCRIPT_URL}"></script>
  </body>
</html>"""
    return Response(html, status=200, mimetype="text/html")
