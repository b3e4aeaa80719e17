"""Runtime settings: where the spooler is and which binaries talk to it."""
import os
from dataclasses import dataclass, fields
from typing import Any, Optional


@dataclass
class Settings:
    """Spooler endpoint, command names and retry policy."""
    server: str = "ipp://localhost"
    ipptool: str = "ipptool"
    lpadmin: str = "lpadmin"
    lpoptions: str = "lpoptions"
    cupsaccept: str = "cupsaccept"
    cupsreject: str = "cupsreject"
    cupsenable: str = "cupsenable"
    cupsdisable: str = "cupsdisable"
    # Attempts for read-only snapshot queries; mutations are never retried
    retries: int = 3
    retry_min_wait: float = 1
    retry_max_wait: float = 10
    audit_log_dir: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]] = None) -> "Settings":
        """Build settings from a ``settings:`` block, ignoring unknown keys.

        ``QUEUECRAFT_SERVER`` overrides the configured server.
        """
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in (data or {}).items() if k in known}

        server = os.environ.get("QUEUECRAFT_SERVER")
        if server:
            values["server"] = server

        return cls(**values)
