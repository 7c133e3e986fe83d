"""cPanel UAPI client for the MySQL databases hosted on o2switch.

Every database name is prefixed with the account prefix
(``O2SWITCH_BEGINNING_DATABASE_NAME``). A call succeeds when the UAPI
envelope carries ``status == 1``.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

import requests

from flapi.core.exceptions import ExternalServiceError

REQUEST_TIMEOUT = 30

logger = logging.getLogger(__name__)


@dataclass
class MySQLServerData:
    host: str
    is_remote: bool
    version: str


class CpanelService:
    """MySQL database management through cPanel UAPI."""

    def __init__(self, cfg):
        self.base_url = f"https://{cfg.cpanel_host}/execute"
        self.prefix = cfg.cpanel_database_prefix
        self.db_username = cfg.cpanel_database_username
        self.db_password = cfg.cpanel_database_password
        self.backup_path = cfg.cpanel_backup_path.rstrip("/")
        # https://docs.cpanel.net/knowledge-base/security/how-to-use-cpanel-api-tokens/
        self.headers = {"Authorization": f"cpanel {cfg.cpanel_username}:{cfg.cpanel_api_token}"}

    def _full_name(self, name: str) -> str:
        return f"{self.prefix}{name}"

    def _call(self, method: str, endpoint: str, data: Optional[Dict[str, str]] = None) -> dict:
        """Call a UAPI function and return the decoded envelope.

        Raises:
            ExternalServiceError: On transport error, HTTP error status or a
                body that is not a JSON object (e.g. the cPanel login page)
        """
        url = f"{self.base_url}/{endpoint}"
        try:
            resp = requests.request(method, url, headers=self.headers, data=data, timeout=REQUEST_TIMEOUT)
            resp.raise_for_status()
            envelope = resp.json()
        except requests.RequestException as exc:
            logger.error("cPanel %s failed: %s", endpoint, exc)
            status_code = getattr(getattr(exc, "response", None), "status_code", None)
            raise ExternalServiceError("cpanel", str(exc), status_code) from exc
        except ValueError as exc:
            logger.error("cPanel %s returned a non-JSON body", endpoint)
            raise ExternalServiceError("cpanel", "Invalid UAPI response", resp.status_code) from exc
        if not isinstance(envelope, dict):
            logger.error("cPanel %s returned an unexpected payload", endpoint)
            raise ExternalServiceError("cpanel", "Invalid UAPI response", resp.status_code)
        return envelope

    @staticmethod
    def _ok(envelope: dict) -> bool:
        return envelope.get("status") == 1

    def create_database(self, name: str) -> bool:
        envelope = self._call("POST", "Mysql/create_database", {"name": self._full_name(name), "prefix-size": "16"})
        return self._ok(envelope)

    def delete_database(self, name: str) -> bool:
        envelope = self._call("POST", "Mysql/delete_database", {"name": self._full_name(name)})
        return self._ok(envelope)

    def link_user_to_database(self, name: str) -> bool:
        """Grant ALL PRIVILEGES on the database to the configured MySQL user."""
        envelope = self._call(
            "POST",
            "Mysql/set_privileges_on_database",
            {
                "privileges": "ALL PRIVILEGES",
                "database": self._full_name(name),
                "user": self.db_username,
                "password": self.db_password,
            },
        )
        return self._ok(envelope)

    def rename_database(self, old_name: str, new_name: str) -> bool:
        envelope = self._call(
            "POST",
            "Mysql/rename_database",
            {"oldname": self._full_name(old_name), "newname": self._full_name(new_name)},
        )
        logger.debug("cPanel rename_database response: %s", envelope)
        return self._ok(envelope)

    def validate_database_integrity(self, name: str) -> bool:
        envelope = self._call("POST", "Mysql/check_database", {"name": self._full_name(name)})
        return self._ok(envelope)

    def repair_database_tables(self, name: str) -> bool:
        envelope = self._call("POST", "Mysql/repair_database", {"name": self._full_name(name)})
        return self._ok(envelope)

    def restore_database(self, backup_file_name: str, timeout: int = 0, verbose: bool = False) -> bool:
        """Restore databases from a backup stored under the account backup path.

        Args:
            backup_file_name: e.g. ``acme_production_backup-17-12-2024-21-38-29.sql.gz``
            timeout: Restore timeout in seconds (0 means no limit)
            verbose: Ask cPanel for detailed messages
        """
        envelope = self._call(
            "POST",
            "Backup/restore_databases",
            {
                "backup": f"{self.backup_path}/{backup_file_name}",
                "timeout": str(timeout),
                "verbose": "1" if verbose else "0",
            },
        )
        if self._ok(envelope):
            messages = envelope.get("messages") or ["No specific message returned."]
            logger.info("Database restoration successful: %s", messages[0])
            return True
        logger.warning("Database restoration failed: %s", envelope.get("errors"))
        return False

    def get_mysql_server_information(self) -> Optional[MySQLServerData]:
        envelope = self._call("GET", "Mysql/get_server_information")
        if not self._ok(envelope):
            logger.warning("Failed to fetch MySQL server information: %s", envelope.get("errors") or "Unknown error")
            return None
        data = envelope.get("data") or {}
        return MySQLServerData(
            host=data.get("host", ""),
            is_remote=bool(data.get("is_remote")),
            version=data.get("version", ""),
        )

    def list_databases(self) -> List[dict]:
        """List the account databases (``database``, ``disk_usage``, ``users``).

        Returns an empty list when cPanel reports a failure.
        """
        envelope = self._call("GET", "Mysql/list_databases")
        if not self._ok(envelope):
            logger.warning("Failed to retrieve MySQL databases: %s", envelope.get("errors") or "Unknown error")
            return []
        logger.info("Successfully retrieved MySQL databases.")
        return envelope.get("data") or []

    def add_authorized_remote_host(self, host: str) -> bool:
        envelope = self._call("POST", "Mysql/add_host", {"host": host})
        if self._ok(envelope):
            logger.info("Authorized remote host for databases: %s", host)
            return True
        logger.warning("Failed to authorize remote host for databases: %s (%s)", host, envelope.get("errors"))
        return False

    def get_authorized_remote_hosts(self) -> Optional[Dict[str, str]]:
        """Return the authorized remote hosts mapped to their notes."""
        envelope = self._call("GET", "Mysql/get_host_notes")
        if not self._ok(envelope):
            logger.warning("Failed to retrieve authorized remote hosts: %s", envelope.get("errors"))
            return None
        return envelope.get("data") or {}
