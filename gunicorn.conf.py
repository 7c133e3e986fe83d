"""Gunicorn configuration.

Run: ``gunicorn -c gunicorn.conf.py "flapi.flask_app:create_app()"``

Requests are served by sync workers. The application provisioning request
sleeps WORKFLOW_DISPATCH_DELAY seconds before dispatching the CI workflow,
so the worker timeout must stay well above that delay.
"""
import os
from pathlib import Path

bind = os.environ.get("GUNICORN_BIND", "0.0.0.0:5000")
workers = int(os.environ.get("GUNICORN_WORKERS", "2"))
worker_class = "sync"

# Provisioning chains DNS, cPanel and GitHub calls around a blind wait
_dispatch_delay = int(os.environ.get("WORKFLOW_DISPATCH_DELAY", "15"))
timeout = max(int(os.environ.get("GUNICORN_TIMEOUT", "120")), _dispatch_delay + 90)

accesslog = "-"
errorlog = "-"
loglevel = os.environ.get("LOG_LEVEL", "info").lower()


def post_fork(server, worker):
    """Report whether Docker secrets are mounted; settings.py reads them itself."""
    secrets_dir = Path("/run/secrets")
    if secrets_dir.exists() and secrets_dir.is_dir():
        secret_files = list(secrets_dir.glob("*"))
        worker.log.info(f"Found {len(secret_files)} secrets in /run/secrets")
    else:
        worker.log.info("No /run/secrets mount; secrets come from the environment")
