"""Schema definitions for the Config Engine.

Defines the desired state format and all related dataclasses.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from ..queue.snapshot import AccessPolicy, Ensure


class OperationKind(str, Enum):
    """What a change operation does to a queue."""
    CREATE = "create"
    DELETE = "delete"
    MEMBERS = "members"
    ACCESS = "access"
    ACCEPTING = "accepting"
    DESCRIPTION = "description"
    ENABLED = "enabled"
    HELD = "held"
    LOCATION = "location"
    OPTION = "option"
    SHARED = "shared"
    URI = "uri"


EXISTENCE_KINDS = frozenset({OperationKind.CREATE, OperationKind.DELETE})


class Outcome(str, Enum):
    """Result of one reconciliation run, as the caller sees it."""
    NO_CHANGES = "no_changes"
    CHANGED = "changed"
    FAILED = "failed"


@dataclass
class DesiredState:
    """Desired state for a single queue.

    ``None`` leaves a property unmanaged. Property changes are applied in the
    order of ``diff.PROPERTIES``: class members and access first, then the
    fields below in declaration order.
    """
    name: str
    ensure: Optional[Ensure] = None
    access: Optional[AccessPolicy] = None
    accepting: Optional[bool] = None
    description: Optional[str] = None
    enabled: Optional[bool] = None
    held: Optional[bool] = None
    location: Optional[str] = None
    options: dict[str, str] = field(default_factory=dict)
    shared: Optional[bool] = None
    # Creation parameters
    members: Optional[tuple[str, ...]] = None  # classes
    uri: Optional[str] = None                  # printers
    model: Optional[str] = None
    ppd: Optional[str] = None
    interface: Optional[str] = None


# --- Validation Results ---

@dataclass
class ValidationResult:
    """Result of desired state validation."""
    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


# --- Diff Results ---

@dataclass(frozen=True)
class ChangeOperation:
    """A single change to a queue.

    ``value`` is the desired value; ``previous`` what the snapshot held.
    For CREATE, ``value`` is the queue type and ``params`` carries the
    creation parameters (uri, model, ppd, interface or members).
    """
    kind: OperationKind
    queue: str
    value: Any = None
    previous: Any = None
    key: Optional[str] = None
    params: tuple[tuple[str, Any], ...] = ()

    def describe(self) -> str:
        """One-line description for logs and summaries."""
        if self.kind == OperationKind.CREATE:
            return f"create {Ensure(self.value).value} {self.queue}"
        if self.kind == OperationKind.DELETE:
            return f"delete {self.queue}"
        if self.kind == OperationKind.ACCESS:
            return f"access: {_show(self.previous)} -> {_show(self.value)}"
        if self.kind == OperationKind.OPTION:
            return f"option {self.key}: {self.previous!r} -> {self.value!r}"
        return f"{self.kind.value}: {_show(self.previous)} -> {_show(self.value)}"


def _show(value: Any) -> str:
    if isinstance(value, AccessPolicy):
        return value.to_argument()
    if isinstance(value, tuple):
        return ",".join(value)
    return repr(value)


@dataclass
class DiffResult:
    """Ordered operations converging one queue."""
    queue: str
    operations: list[ChangeOperation] = field(default_factory=list)

    @property
    def no_change(self) -> bool:
        """Check if there are any changes."""
        return len(self.operations) == 0

    @property
    def total_changes(self) -> int:
        """Total number of changes."""
        return len(self.operations)


# --- Execution Results ---

@dataclass
class ExecuteOptions:
    """Options for applying a diff."""
    dry_run: bool = False
    stop_on_error: bool = False
    user: Optional[str] = None


@dataclass
class ExecuteResult:
    """Result of applying a diff to one queue."""
    queue: str
    outcome: Outcome = Outcome.NO_CHANGES
    dry_run: bool = False
    operations_applied: list[str] = field(default_factory=list)
    commands_executed: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    converged: Optional[bool] = None

    @property
    def success(self) -> bool:
        return self.outcome != Outcome.FAILED

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "queue": self.queue,
            "outcome": self.outcome.value,
            "dry_run": self.dry_run,
            "operations_applied": self.operations_applied,
            "commands_executed": self.commands_executed,
            "errors": self.errors,
            "warnings": self.warnings,
            "converged": self.converged,
        }
