"""Queue state as the spooler reports it."""
from .commands import CommandError, QueueCommands, parse_vendor_options
from .snapshot import (
    ALL_USERS,
    UNRESTRICTED,
    AccessPolicy,
    Ensure,
    QueueSnapshot,
    SnapshotBuilder,
    queue_resource,
)

__all__ = [
    "CommandError",
    "QueueCommands",
    "parse_vendor_options",
    "ALL_USERS",
    "UNRESTRICTED",
    "AccessPolicy",
    "Ensure",
    "QueueSnapshot",
    "SnapshotBuilder",
    "queue_resource",
]
