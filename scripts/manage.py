"""Operational commands for the Flapi backend.

Usage:
    python scripts/manage.py init-db
    python scripts/manage.py seed-roles
    python scripts/manage.py list-databases
    python scripts/manage.py authorize-host --host 203.0.113.7
    python scripts/manage.py restore-database --backup acme_backup.sql.gz --timeout 7200 --verbose
    python scripts/manage.py protect-branches --repo my-app
    python scripts/manage.py verify-audit
"""
from __future__ import annotations
import argparse
import json
import sys
from pathlib import Path
from typing import Optional, Sequence

SCRIPT_DIR = Path(__file__).parent
PROJECT_ROOT = SCRIPT_DIR.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from flapi.core import audit
from flapi.core.cpanel import CpanelService
from flapi.core.db import db
from flapi.core.exceptions import ExternalServiceError
from flapi.core.github import GitHubService
from flapi.core.models import seed_user_roles
from flapi.flask_app import create_app


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Flapi backend management")
    sub = parser.add_subparsers(dest="cmd")

    sub.add_parser("init-db", help="Create the database tables")
    sub.add_parser("seed-roles", help="Insert the platform user roles")
    sub.add_parser("list-databases", help="List the hosted MySQL databases")

    ah = sub.add_parser("authorize-host", help="Allow a remote host to reach the hosted MySQL server")
    ah.add_argument("--host", required=True)

    rd = sub.add_parser("restore-database", help="Restore hosted databases from a backup file")
    rd.add_argument("--backup", required=True, help="Backup file name inside O2SWITCH_BACKUP_DATABASE_PATH")
    rd.add_argument("--timeout", type=int, default=0, help="Seconds, 0 for no limit")
    rd.add_argument("--verbose", action="store_true")

    pb = sub.add_parser("protect-branches", help="Protect main, staging and develop of a repository")
    pb.add_argument("--repo", required=True)

    sub.add_parser("verify-audit", help="Check the audit trail signatures")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Command-line entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.cmd:
        parser.print_help()
        return 1

    app = create_app()
    cfg = app.config["APP_CONFIG"]

    try:
        with app.app_context():
            if args.cmd == "init-db":
                db.create_all()
                print("[manage] Tables created")
            elif args.cmd == "seed-roles":
                created = seed_user_roles()
                print(f"[manage] Roles created: {', '.join(created) or 'none (already seeded)'}")
            elif args.cmd == "list-databases":
                print(json.dumps(CpanelService(cfg).list_databases(), indent=2))
            elif args.cmd == "authorize-host":
                if not CpanelService(cfg).add_authorized_remote_host(args.host):
                    print(f"[manage] Failed to authorize {args.host}", file=sys.stderr)
                    return 1
                print(f"[manage] {args.host} authorized")
            elif args.cmd == "restore-database":
                if not CpanelService(cfg).restore_database(args.backup, args.timeout, args.verbose):
                    print(f"[manage] Restore of {args.backup} failed", file=sys.stderr)
                    return 1
                print(f"[manage] {args.backup} restored")
            elif args.cmd == "protect-branches":
                GitHubService(cfg).protect_branches(args.repo)
                print(f"[manage] Branches of {args.repo} protected")
            elif args.cmd == "verify-audit":
                total, valid = audit.verify_audit_log(cfg.audit_log_signing_key)
                print(f"[manage] {valid}/{total} audit events carry a valid signature")
                if valid != total:
                    return 1
    except ExternalServiceError as exc:
        print(f"[manage] {exc}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
