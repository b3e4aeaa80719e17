"""Config Engine - declarative CUPS queue management.

The Config Engine converges print queues to a declared state:
- Send desired state, not individual lpadmin calls
- Snapshot the queue through ipptool and diff against it
- Apply the minimal ordered set of native commands
- Verify convergence with a fresh snapshot

Usage:
    from queuecraft.config_engine import ReconciliationEngine

    engine = ReconciliationEngine()
    result = engine.apply_config({
        "name": "Office",
        "ensure": "printer",
        "location": "Room 101",
        "options": {"Duplex": "DuplexNoTumble"},
    }, dry_run=True)
"""

from .engine import ReconciliationEngine
from .schema import (
    DesiredState,
    OperationKind,
    Outcome,
    ChangeOperation,
    ValidationResult,
    DiffResult,
    ExecuteOptions,
    ExecuteResult,
)
from .parser import ConfigParser, ParseError, compute_checksum
from .validator import ConfigValidator
from .diff import DiffEngine, summarize_diff
from .generator import CommandGenerator
from .executor import ConfigExecutor

__all__ = [
    # Main engine
    "ReconciliationEngine",
    # Schema classes
    "DesiredState",
    "OperationKind",
    "Outcome",
    "ChangeOperation",
    "ValidationResult",
    "DiffResult",
    "ExecuteOptions",
    "ExecuteResult",
    # Parser
    "ConfigParser",
    "ParseError",
    "compute_checksum",
    # Components (for advanced use)
    "ConfigValidator",
    "DiffEngine",
    "summarize_diff",
    "CommandGenerator",
    "ConfigExecutor",
]
