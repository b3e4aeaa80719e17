#!/usr/bin/env python3
"""Queue reconciliation CLI.

Usage:
    queuecraft [--config QUEUES_YAML] [--queue NAME ...] [--group NAME] [--dry-run]

Exit codes (bit flags, as in ``puppet agent --detailed-exitcodes``):
    0   no changes
    2   changes applied (or pending, with --dry-run)
    4   failures
    6   changes and failures
"""
import argparse
import json
import logging
import sys
from typing import Optional

from .config.inventory import QueueInventory
from .config_engine import (
    ConfigParser,
    ExecuteResult,
    Outcome,
    ParseError,
    ReconciliationEngine,
    compute_checksum,
)
from .utils.audit_log import setup_audit_logging
from .utils.logging_config import global_stats, setup_logging

logger = logging.getLogger(__name__)

EXIT_CHANGES = 2
EXIT_FAILURES = 4


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="queuecraft",
        description="Converge CUPS print queues to the state declared in queues.yaml",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Preview every queue
    queuecraft --dry-run

    # Apply a single queue from a custom inventory
    queuecraft --config /etc/queuecraft/queues.yaml --queue Office

Environment:
    QUEUECRAFT_SERVER       ipptool target, e.g. ipp://printhost:631
    QUEUECRAFT_LOG_LEVEL    Console log level (default: INFO)
""",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Queue inventory file (default: search ./configs/queues.yaml, ./queues.yaml, ...)",
    )
    parser.add_argument(
        "--queue",
        action="append",
        default=[],
        help="Only reconcile this queue (repeatable)",
    )
    parser.add_argument(
        "--group",
        type=str,
        help="Only reconcile the queues of this group",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show the changes without applying them",
    )
    parser.add_argument(
        "--stop-on-error",
        action="store_true",
        help="Stop a queue's run at its first failed operation",
    )
    parser.add_argument(
        "--user",
        type=str,
        default=None,
        help="User recorded in the audit log",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print results as JSON",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Verbose output and timing summary",
    )
    return parser


def select_queues(inventory: QueueInventory, queues: list[str], group: Optional[str]) -> list[str]:
    """Queue names to reconcile, in inventory order."""
    if group:
        wanted = set(inventory.get_group_members(group))
    elif queues:
        wanted = set(queues)
    else:
        return inventory.get_queue_names()

    for name in wanted:
        inventory.get_queue_config(name)  # KeyError for unknown queues
    return [name for name in inventory.get_queue_names() if name in wanted]


def exit_code(results: list[ExecuteResult]) -> int:
    code = 0
    if any(r.operations_applied for r in results):
        code |= EXIT_CHANGES
    if any(r.outcome == Outcome.FAILED for r in results):
        code |= EXIT_FAILURES
    return code


def format_result(result: ExecuteResult) -> str:
    lines = [f"{result.queue}: {result.outcome.value}"]
    lines.extend(f"  {op}" for op in result.operations_applied)
    lines.extend(f"  ERROR: {e}" for e in result.errors)
    lines.extend(f"  WARNING: {w}" for w in result.warnings)
    if result.converged is False:
        lines.append("  WARNING: queue has not converged")
    return "\n".join(lines)


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    setup_logging(logging.DEBUG if args.verbose else None)

    try:
        inventory = QueueInventory(args.config)
        names = select_queues(inventory, args.queue, args.group)
    except (FileNotFoundError, KeyError) as e:
        logger.error(str(e))
        return EXIT_FAILURES

    settings = inventory.settings
    audit_file = setup_audit_logging(settings.audit_log_dir)
    logger.info(
        f"Loaded {len(names)} queue(s) from {inventory.config_path} "
        f"({compute_checksum(inventory.raw)}), auditing to {audit_file}"
    )

    engine = ReconciliationEngine(settings)
    parser = ConfigParser()
    results = []

    for name in names:
        groups = inventory.get_queue_groups(name)
        label = f" (groups: {', '.join(groups)})" if groups else ""
        logger.info(f"Reconciling {name}{label}")
        try:
            desired = parser.parse(inventory.get_queue_config(name), name=name)
        except ParseError as e:
            results.append(ExecuteResult(queue=name, outcome=Outcome.FAILED, errors=[str(e)]))
            continue
        results.append(
            engine.apply(
                desired,
                dry_run=args.dry_run,
                stop_on_error=args.stop_on_error,
                user=args.user,
            )
        )

    if args.json:
        print(json.dumps([r.to_dict() for r in results], indent=2))
    else:
        for result in results:
            print(format_result(result))

    if args.verbose:
        print(
            f"{global_stats.count('ipp_execute')} ipptool queries, "
            f"{global_stats.count('command')} admin commands"
        )
        print(global_stats.summary())

    return exit_code(results)


if __name__ == "__main__":
    sys.exit(main())
