"""Command generator: renders change operations into CUPS admin commands.

Every command is an argv list; nothing goes through a shell.
"""
from typing import Optional

from ..config.settings import Settings
from ..queue.snapshot import Ensure
from .schema import ChangeOperation, OperationKind

# lpadmin needs a device for a new printer; this one discards output
DEFAULT_DEVICE_URI = "file:///dev/null"


class CommandGenerator:
    """Generate the native commands that perform a change operation."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or Settings()

    def generate(self, op: ChangeOperation) -> list[list[str]]:
        """
        Generate the commands for one operation.

        Args:
            op: Change operation from the diff

        Returns:
            Commands to run in order
        """
        s = self.settings
        name = op.queue

        if op.kind == OperationKind.CREATE:
            return self._create(op)

        if op.kind == OperationKind.DELETE:
            return [[s.lpadmin, "-E", "-x", name]]

        if op.kind == OperationKind.MEMBERS:
            return self._members(op)

        if op.kind == OperationKind.ACCESS:
            return [self._lpadmin(name, "-u", op.value.to_argument())]

        if op.kind == OperationKind.ACCEPTING:
            return [[s.cupsaccept if op.value else s.cupsreject, "-E", name]]

        if op.kind == OperationKind.ENABLED:
            return [[s.cupsenable if op.value else s.cupsdisable, "-E", name]]

        if op.kind == OperationKind.HELD:
            # --hold/--release switch to Hold-New-Jobs / Release-Held-New-Jobs
            # and leave the printer state alone
            if op.value:
                return [[s.cupsdisable, "-E", "--hold", name]]
            return [[s.cupsenable, "-E", "--release", name]]

        if op.kind == OperationKind.DESCRIPTION:
            return [self._lpadmin(name, "-D", op.value)]

        if op.kind == OperationKind.LOCATION:
            return [self._lpadmin(name, "-L", op.value)]

        if op.kind == OperationKind.SHARED:
            return [self._lpadmin(name, "-o", f"printer-is-shared={'true' if op.value else 'false'}")]

        if op.kind == OperationKind.OPTION:
            return [self._lpadmin(name, "-o", f"{op.key}={op.value}")]

        if op.kind == OperationKind.URI:
            return [self._lpadmin(name, "-v", op.value)]

        raise ValueError(f"Unsupported operation: {op.kind}")

    def generate_all(self, operations: list[ChangeOperation]) -> list[list[str]]:
        """Commands for a whole diff, in order."""
        commands = []
        for op in operations:
            commands.extend(self.generate(op))
        return commands

    def _lpadmin(self, name: str, *args: str) -> list[str]:
        return [self.settings.lpadmin, "-E", "-p", name, *args]

    def _create(self, op: ChangeOperation) -> list[list[str]]:
        params = dict(op.params)

        if op.value == Ensure.CLASS:
            # A class comes into existence with its first member
            return [
                [self.settings.lpadmin, "-E", "-p", member, "-c", op.queue]
                for member in params.get("members", ())
            ]

        command = self._lpadmin(op.queue, "-v", params.get("uri") or DEFAULT_DEVICE_URI)
        if params.get("model"):
            command += ["-m", params["model"]]
        if params.get("ppd"):
            command += ["-P", params["ppd"]]
        if params.get("interface"):
            command += ["-i", params["interface"]]
        return [command]

    def _members(self, op: ChangeOperation) -> list[list[str]]:
        wanted = list(op.value)
        present = set(op.previous or ())
        commands = [
            [self.settings.lpadmin, "-E", "-p", member, "-c", op.queue]
            for member in wanted
            if member not in present
        ]
        # Removals after additions: lpadmin deletes a class left without members
        commands.extend(
            [self.settings.lpadmin, "-E", "-p", member, "-r", op.queue]
            for member in (op.previous or ())
            if member not in set(wanted)
        )
        return commands
