"""Audit trail for platform operations (provisioning steps, account lifecycle).

Events are appended to a JSONL file, one JSON object per line, and signed
with HMAC-SHA256 when a signing key is configured.
"""
from __future__ import annotations
import datetime
import hashlib
import hmac
import json
import logging
import os
from pathlib import Path
from typing import Any, Literal, Optional

logger = logging.getLogger(__name__)

EventType = Literal[
    "user_signup", "user_activated", "code_resent",
    "provisioning_started", "provisioning_completed", "provisioning_failed",
]


def audit_log_file() -> Path:
    """Location of the JSONL trail (``AUDIT_LOG_DIR``, default ``.runtime/audit``)."""
    return Path(os.environ.get("AUDIT_LOG_DIR", ".runtime/audit")) / "flapi-events.jsonl"


def _ensure_audit_dir(path: Path) -> None:
    """Create audit directory with restricted permissions."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.parent.chmod(0o700)


def _sign_event(event: dict[str, Any], signing_key: str) -> str:
    """Generate HMAC-SHA256 signature for audit event."""
    if not signing_key:
        return ""
    canonical = json.dumps(event, sort_keys=True, separators=(",", ":"))
    return hmac.new(signing_key.encode("utf-8"), canonical.encode("utf-8"), hashlib.sha256).hexdigest()


def log_event(
    event_type: EventType,
    subject: str,
    *,
    operator: str = "system",
    details: dict[str, Any] | None = None,
    success: bool = True,
    signing_key: str = "",
    log_file: Optional[Path] = None,
) -> dict[str, Any]:
    """Append an event to the audit trail.

    Args:
        event_type: Kind of operation
        subject: What the event is about (email, repository name, ...)
        operator: Who performed the operation
        details: Additional context (completed steps, error message, ...)
        success: Whether the operation succeeded
        signing_key: HMAC key; the event is left unsigned when empty
        log_file: Override of the trail location

    Returns:
        The written event
    """
    path = log_file or audit_log_file()
    _ensure_audit_dir(path)

    event = {
        "timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat(),
        "event_type": event_type,
        "subject": subject,
        "operator": operator,
        "success": success,
        "details": details or {},
    }

    signature = _sign_event(event, signing_key)
    if signature:
        event["signature"] = signature

    with path.open("a", encoding="utf-8") as f:
        f.write(json.dumps(event, ensure_ascii=False) + "\n")

    path.chmod(0o600)
    return event


def safe_log_event(event_type: EventType, subject: str, **kwargs) -> bool:
    """Log an event without ever raising.

    Audit failures must not break the request that triggered them.

    Returns:
        True if the event was written, False otherwise
    """
    try:
        log_event(event_type, subject, **kwargs)
        return True
    except (OSError, TypeError, ValueError) as e:
        logger.warning("Failed to log %s event for %s: %s", event_type, subject, e)
        return False


def verify_audit_log(signing_key: str, log_file: Optional[Path] = None) -> tuple[int, int]:
    """Verify all signatures in the audit trail.

    Returns:
        Tuple of (total_events, valid_signatures)
    """
    path = log_file or audit_log_file()
    if not path.exists():
        return 0, 0

    total = 0
    valid = 0

    with path.open("r", encoding="utf-8") as f:
        for line in f:
            if not line.strip():
                continue
            total += 1
            try:
                event = json.loads(line)
            except json.JSONDecodeError:
                continue
            stored_sig = event.pop("signature", "")
            if not stored_sig:
                continue
            if hmac.compare_digest(stored_sig, _sign_event(event, signing_key)):
                valid += 1

    return total, valid
