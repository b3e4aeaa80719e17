"""Executor for applying change operations to a queue.

Operations run one by one in diff order. There is no rollback: whatever was
applied before a failure stays applied and shows up in the next diff.
"""
import logging
import shlex

from ..queue.commands import CommandError, QueueCommands
from ..utils.audit_log import AuditTrail
from .generator import CommandGenerator
from .schema import (
    EXISTENCE_KINDS,
    ChangeOperation,
    DiffResult,
    ExecuteOptions,
    ExecuteResult,
    Outcome,
)

logger = logging.getLogger(__name__)


class ConfigExecutor:
    """Apply a diff through the native CUPS commands."""

    def __init__(self, commands: QueueCommands, generator: CommandGenerator):
        self.commands = commands
        self.generator = generator

    def execute(self, diff: DiffResult, options: ExecuteOptions) -> ExecuteResult:
        """
        Apply the operations of a diff.

        A failed operation is recorded and, unless ``stop_on_error`` is set,
        the remaining operations still run. A failed create or delete always
        stops the run, since every later operation depends on it.

        Args:
            diff: Operations to apply
            options: Execution options (dry_run, stop_on_error, user)

        Returns:
            ExecuteResult with the applied operations and any errors
        """
        result = ExecuteResult(queue=diff.queue, dry_run=options.dry_run)
        if diff.no_change:
            return result

        audit = AuditTrail(diff.queue, user=options.user or "system")

        if options.dry_run:
            return self._dry_run(diff, result, audit)

        logger.info(f"Applying {diff.total_changes} operation(s) to {diff.queue}")

        for op in diff.operations:
            commands = self.generator.generate(op)
            try:
                self._run(commands, result)
            except (CommandError, OSError) as e:
                logger.error(f"{diff.queue}: {op.describe()} failed: {e}")
                result.errors.append(f"{op.describe()}: {e}")
                self._audit(audit, op, commands, success=False, error=str(e))
                if options.stop_on_error or op.kind in EXISTENCE_KINDS:
                    break
                continue

            logger.info(f"{diff.queue}: {op.describe()}")
            result.operations_applied.append(op.describe())
            self._audit(audit, op, commands, success=True)

        result.outcome = Outcome.FAILED if result.errors else Outcome.CHANGED
        return result

    def _run(self, commands: list[list[str]], result: ExecuteResult) -> None:
        for argv in commands:
            self.commands.run(argv)
            result.commands_executed.append(shlex.join(argv))

    def _dry_run(
        self,
        diff: DiffResult,
        result: ExecuteResult,
        audit: AuditTrail,
    ) -> ExecuteResult:
        """Handle dry-run mode - preview without executing."""
        for op in diff.operations:
            commands = self.generator.generate(op)
            result.commands_executed.extend(
                f"[DRY-RUN] {shlex.join(argv)}" for argv in commands
            )
            result.operations_applied.append(f"[PREVIEW] {op.describe()}")
            self._audit(audit, op, commands, success=True, dry_run=True)

        result.outcome = Outcome.CHANGED
        return result

    def _audit(
        self,
        audit: AuditTrail,
        op: ChangeOperation,
        commands: list[list[str]],
        success: bool,
        error: str | None = None,
        dry_run: bool = False,
    ) -> None:
        operation = f"{op.kind.value}:{op.key}" if op.key else op.kind.value
        audit.log_change(
            operation=operation,
            success=success,
            value=op.value,
            previous=op.previous,
            commands=commands,
            error=error,
            dry_run=dry_run,
        )
