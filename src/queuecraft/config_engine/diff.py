"""Diff engine for calculating changes between desired and current state.

Computes the minimal, ordered set of operations needed to reach the desired
state. The diff is pure: it works on a snapshot that was already taken.
"""
from dataclasses import dataclass
from typing import Optional

from ..queue.snapshot import Ensure, QueueSnapshot
from .schema import (
    ChangeOperation,
    DesiredState,
    DiffResult,
    OperationKind,
)


@dataclass(frozen=True)
class MembersProperty:
    """Member printers of a class, compared as a set."""

    def changes(self, desired: DesiredState, current: Optional[QueueSnapshot]) -> list[ChangeOperation]:
        # New classes get their members from the create operation
        if desired.members is None or current is None or current.ensure != Ensure.CLASS:
            return []
        wanted = tuple(dict.fromkeys(desired.members))
        if set(wanted) == set(current.members):
            return []
        return [ChangeOperation(OperationKind.MEMBERS, desired.name, wanted, current.members)]


@dataclass(frozen=True)
class AccessProperty:
    """Access policy, compared after normalization."""

    def changes(self, desired: DesiredState, current: Optional[QueueSnapshot]) -> list[ChangeOperation]:
        if desired.access is None:
            return []
        if current is not None and desired.access.matches(current.access):
            return []
        previous = current.access if current else None
        return [ChangeOperation(OperationKind.ACCESS, desired.name, desired.access, previous)]


@dataclass(frozen=True)
class BooleanProperty:
    """A flag with its own on/off command pair."""
    name: str
    kind: OperationKind

    def changes(self, desired: DesiredState, current: Optional[QueueSnapshot]) -> list[ChangeOperation]:
        wanted = getattr(desired, self.name)
        if wanted is None:
            return []
        previous = getattr(current, self.name) if current else None
        if wanted == previous:
            return []
        return [ChangeOperation(self.kind, desired.name, wanted, previous)]


@dataclass(frozen=True)
class StringProperty:
    """Free text compared by exact equality; empty means unmanaged."""
    name: str
    kind: OperationKind
    applies_to: Optional[Ensure] = None
    set_on_create: bool = False

    def changes(self, desired: DesiredState, current: Optional[QueueSnapshot]) -> list[ChangeOperation]:
        wanted = getattr(desired, self.name)
        if not wanted:
            return []
        if current is None:
            if self.set_on_create:
                return []
            previous = None
        else:
            if self.applies_to is not None and current.ensure != self.applies_to:
                return []
            previous = getattr(current, self.name)
        if wanted == previous:
            return []
        return [ChangeOperation(self.kind, desired.name, wanted, previous)]


@dataclass(frozen=True)
class OptionsProperty:
    """Device options; only keys named in the desired state are compared."""

    def changes(self, desired: DesiredState, current: Optional[QueueSnapshot]) -> list[ChangeOperation]:
        operations = []
        for key, wanted in desired.options.items():
            previous = current.options.get(key) if current else None
            if wanted != previous:
                operations.append(
                    ChangeOperation(OperationKind.OPTION, desired.name, wanted, previous, key=key)
                )
        return operations


# Managed properties in application order
PROPERTIES = (
    MembersProperty(),
    AccessProperty(),
    BooleanProperty("accepting", OperationKind.ACCEPTING),
    StringProperty("description", OperationKind.DESCRIPTION),
    BooleanProperty("enabled", OperationKind.ENABLED),
    BooleanProperty("held", OperationKind.HELD),
    StringProperty("location", OperationKind.LOCATION),
    OptionsProperty(),
    BooleanProperty("shared", OperationKind.SHARED),
    StringProperty("uri", OperationKind.URI, applies_to=Ensure.PRINTER, set_on_create=True),
)


class DiffEngine:
    """Calculate differences between desired and current state."""

    def diff(
        self,
        current: Optional[QueueSnapshot],
        desired: DesiredState,
    ) -> DiffResult:
        """
        Calculate the operations that converge ``current`` to ``desired``.

        Args:
            current: Snapshot of the queue, or None if it does not exist
            desired: Desired state of the queue

        Returns:
            DiffResult with operations in application order
        """
        result = DiffResult(queue=desired.name)

        if desired.ensure == Ensure.ABSENT:
            if current is not None:
                # Terminal: nothing else applies to a deleted queue
                result.operations.append(
                    ChangeOperation(OperationKind.DELETE, desired.name, previous=current.ensure)
                )
            return result

        if current is None and desired.ensure is None:
            # Properties of a queue nobody asked to create are not managed
            return result

        if current is not None and desired.ensure is not None and current.ensure != desired.ensure:
            # A printer cannot turn into a class in place
            result.operations.append(
                ChangeOperation(OperationKind.DELETE, desired.name, previous=current.ensure)
            )
            current = None

        if current is None:
            result.operations.append(self._create(desired))

        for prop in PROPERTIES:
            result.operations.extend(prop.changes(desired, current))

        return result

    def _create(self, desired: DesiredState) -> ChangeOperation:
        if desired.ensure == Ensure.CLASS:
            params = (("members", tuple(dict.fromkeys(desired.members or ()))),)
        else:
            params = tuple(
                (name, getattr(desired, name))
                for name in ("uri", "model", "ppd", "interface")
                if getattr(desired, name)
            )
        return ChangeOperation(
            OperationKind.CREATE, desired.name, value=desired.ensure, params=params
        )


def summarize_diff(diff: DiffResult) -> str:
    """
    Create a human-readable summary of a diff.

    Useful for dry-run output and logging.
    """
    if diff.no_change:
        return f"{diff.queue}: no changes needed - current state matches desired state"

    lines = [f"{diff.queue}: {diff.total_changes} change(s) to apply:"]

    for op in diff.operations:
        if op.kind == OperationKind.CREATE:
            lines.append(f"  [+] Create {Ensure(op.value).value} {op.queue}")
            for name, value in op.params:
                shown = ", ".join(value) if isinstance(value, tuple) else value
                lines.append(f"      {name}: {shown}")
        elif op.kind == OperationKind.DELETE:
            lines.append(f"  [-] Delete {op.queue}")
        else:
            lines.append(f"  [~] {op.describe()}")

    return "\n".join(lines)
