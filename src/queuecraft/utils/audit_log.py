"""Audit logging for queue changes.

Every change operation the executor runs (or previews) is written as one JSON
line to a dedicated rotating audit file, separate from the diagnostic log.
"""
import json
import logging
import os
from dataclasses import dataclass, asdict, field
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

audit_logger = logging.getLogger("queuecraft.audit")
audit_logger.addHandler(logging.NullHandler())
audit_logger.propagate = False

DEFAULT_AUDIT_DIR = "~/.queuecraft"


def setup_audit_logging(log_dir: Optional[str] = None) -> Path:
    """Configure audit logging to file.

    Args:
        log_dir: Directory for audit logs. Defaults to ~/.queuecraft/

    Returns:
        Path of the audit log file
    """
    log_dir = os.path.expanduser(log_dir or DEFAULT_AUDIT_DIR)
    Path(log_dir).mkdir(parents=True, exist_ok=True)

    audit_file = Path(log_dir) / "audit.log"

    audit_logger.setLevel(logging.INFO)
    for handler in list(audit_logger.handlers):
        audit_logger.removeHandler(handler)
        handler.close()

    handler = RotatingFileHandler(
        audit_file,
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=10,
        encoding="utf-8",
    )
    # JSON lines, nothing else
    handler.setFormatter(logging.Formatter("%(message)s"))
    audit_logger.addHandler(handler)

    return audit_file


@dataclass
class ChangeRecord:
    """Record of one change operation against a queue."""
    timestamp: str
    queue: str
    operation: str  # create, delete, access, option, ...
    user: str
    dry_run: bool
    success: bool
    value: object = None
    previous: object = None
    commands: list[list[str]] = field(default_factory=list)
    error: Optional[str] = None

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(asdict(self), default=str)

    @classmethod
    def from_json(cls, json_str: str) -> "ChangeRecord":
        """Parse from JSON string."""
        return cls(**json.loads(json_str))


class AuditTrail:
    """Write change records for one queue."""

    def __init__(self, queue: str, user: str = "system"):
        self.queue = queue
        self.user = user

    def log_change(
        self,
        operation: str,
        success: bool,
        value: object = None,
        previous: object = None,
        commands: Optional[list[list[str]]] = None,
        error: Optional[str] = None,
        dry_run: bool = False,
    ) -> ChangeRecord:
        """Log a change operation.

        Returns:
            The ChangeRecord that was logged
        """
        record = ChangeRecord(
            timestamp=datetime.now(timezone.utc).isoformat(),
            queue=self.queue,
            operation=operation,
            user=self.user,
            dry_run=dry_run,
            success=success,
            value=value,
            previous=previous,
            commands=commands or [],
            error=error[:1000] if error else None,  # Truncate long output
        )

        audit_logger.info(record.to_json())

        return record


def get_recent_changes(
    log_file: Optional[str] = None,
    queue: Optional[str] = None,
    operation: Optional[str] = None,
    limit: int = 100,
) -> list[ChangeRecord]:
    """Read recent changes from the audit log.

    Args:
        log_file: Path to audit log. Defaults to ~/.queuecraft/audit.log
        queue: Filter by queue name
        operation: Filter by operation kind
        limit: Maximum number of records to return

    Returns:
        List of ChangeRecords, most recent first
    """
    if log_file is None:
        log_file = os.path.join(os.path.expanduser(DEFAULT_AUDIT_DIR), "audit.log")

    if not os.path.exists(log_file):
        return []

    records = []
    with open(log_file, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                record = ChangeRecord.from_json(line)
            except (json.JSONDecodeError, TypeError):
                continue  # Skip malformed lines

            if queue and record.queue != queue:
                continue
            if operation and record.operation != operation:
                continue

            records.append(record)

    return list(reversed(records[-limit:]))
