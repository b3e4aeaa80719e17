"""Reconciliation engine - orchestrates the full apply workflow for a queue.

Provides a single entry point for:
1. Parsing desired state
2. Validating configuration
3. Snapshotting the queue and calculating the diff
4. Applying the operations
5. Verifying convergence with a fresh snapshot and diff
"""
import logging
from typing import Any, Optional

from ..config.settings import Settings
from ..ipp.client import ProtocolClient
from ..ipp.errors import ProtocolError
from ..queue.commands import CommandError, QueueCommands
from ..queue.snapshot import QueueSnapshot, SnapshotBuilder
from ..utils.logging_config import timed_section
from ..utils.process import ProcessRunner
from ..utils.retry import with_retry
from .diff import DiffEngine, summarize_diff
from .executor import ConfigExecutor
from .generator import CommandGenerator
from .parser import ConfigParser
from .schema import (
    DesiredState,
    DiffResult,
    ExecuteOptions,
    ExecuteResult,
    Outcome,
    ValidationResult,
)
from .validator import ConfigValidator

logger = logging.getLogger(__name__)

# Snapshot reads that may be retried; they never change spooler state
SNAPSHOT_RETRY_EXCEPTIONS = (ProtocolError, CommandError, OSError)


class ReconciliationEngine:
    """
    Converge CUPS queues to their desired state.

    Usage:
        engine = ReconciliationEngine(Settings())
        result = engine.apply_config({"name": "Office", "ensure": "printer"})
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        runner: Optional[ProcessRunner] = None,
    ):
        """
        Initialize the engine.

        Args:
            settings: Spooler endpoint, command names and retry policy
            runner: Process runner shared by ipptool and the admin commands
        """
        self.settings = settings or Settings()
        self.client = ProtocolClient(
            server=self.settings.server,
            ipptool=self.settings.ipptool,
            runner=runner,
        )
        self.commands = QueueCommands(self.settings, runner=runner)
        self.builder = SnapshotBuilder(self.client, self.commands)
        self.parser = ConfigParser()
        self.validator = ConfigValidator()
        self.diff_engine = DiffEngine()
        self.generator = CommandGenerator(self.settings)
        self.executor = ConfigExecutor(self.commands, self.generator)

    def snapshot(self, desired: DesiredState) -> Optional[QueueSnapshot]:
        """Snapshot the queue named by ``desired``, retrying failed reads."""
        build = with_retry(
            max_attempts=max(1, self.settings.retries),
            min_wait=self.settings.retry_min_wait,
            max_wait=self.settings.retry_max_wait,
            exceptions=SNAPSHOT_RETRY_EXCEPTIONS,
        )(self.builder.build)
        return build(desired.name, option_keys=list(desired.options))

    def plan(self, desired: DesiredState) -> DiffResult:
        """Snapshot and diff without changing anything (the dry-run diff)."""
        return self.diff_engine.diff(self.snapshot(desired), desired)

    def apply(
        self,
        desired: DesiredState,
        dry_run: bool = False,
        stop_on_error: bool = False,
        user: Optional[str] = None,
    ) -> ExecuteResult:
        """
        Converge one queue to its desired state.

        ProtocolError and CommandError raised while taking the snapshot are
        reported as a failed result; nothing has been changed at that point.

        Args:
            desired: Desired state of the queue
            dry_run: If True, preview changes without applying
            stop_on_error: Stop at the first failed operation
            user: User identifier for the audit log

        Returns:
            ExecuteResult with outcome, applied operations and errors
        """
        result = ExecuteResult(queue=desired.name, dry_run=dry_run)

        validation = self.validator.validate(desired)
        result.warnings.extend(validation.warnings)
        for warning in validation.warnings:
            logger.warning(warning)
        if not validation.valid:
            result.outcome = Outcome.FAILED
            result.errors.extend(f"Validation failed: {e}" for e in validation.errors)
            return result

        try:
            diff = self.plan(desired)
        except (ProtocolError, CommandError, OSError) as e:
            logger.error(f"Failed to get current state of {desired.name}: {e}")
            result.outcome = Outcome.FAILED
            result.errors.append(f"Failed to get current state: {e}")
            return result

        if diff.no_change:
            logger.info(f"{desired.name}: no changes needed")
            result.converged = True
            return result

        logger.info(summarize_diff(diff))

        options = ExecuteOptions(dry_run=dry_run, stop_on_error=stop_on_error, user=user)
        with timed_section("apply", queue=desired.name, operations=diff.total_changes):
            executed = self.executor.execute(diff, options)
        executed.warnings = result.warnings

        if not dry_run:
            executed.converged = self.verify(desired)

        return executed

    def verify(self, desired: DesiredState) -> bool:
        """Re-snapshot and re-diff; True when nothing is left to change."""
        try:
            remaining = self.plan(desired)
        except (ProtocolError, CommandError, OSError) as e:
            logger.warning(f"Could not verify {desired.name}: {e}")
            return False

        if not remaining.no_change:
            logger.warning(
                f"{desired.name} has not converged:\n{summarize_diff(remaining)}"
            )
        return remaining.no_change

    def apply_config(
        self,
        config: dict[str, Any],
        dry_run: bool = False,
        stop_on_error: bool = False,
        user: Optional[str] = None,
    ) -> ExecuteResult:
        """Parse a queue config dict and apply it."""
        desired = self.parser.parse(config)
        return self.apply(desired, dry_run=dry_run, stop_on_error=stop_on_error, user=user)

    def validate(self, desired: DesiredState) -> ValidationResult:
        """Validate a DesiredState (for external use)."""
        return self.validator.validate(desired)

    def preview(self, config: dict[str, Any]) -> str:
        """
        Preview changes without applying.

        Returns human-readable diff summary.
        """
        desired = self.parser.parse(config)

        validation = self.validator.validate(desired)
        if not validation.valid:
            return "Validation failed:\n" + "\n".join(validation.errors)

        summary = summarize_diff(self.plan(desired))

        if validation.warnings:
            summary += "\n\nWarnings:\n" + "\n".join(
                f"  - {w}" for w in validation.warnings
            )

        return summary
