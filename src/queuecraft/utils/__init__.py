"""Utility modules for process execution, logging and retries."""
from .audit_log import AuditTrail, ChangeRecord, get_recent_changes, setup_audit_logging
from .logging_config import (
    setup_logging,
    timed,
    timed_section,
    perf_logger,
    PerfStats,
    global_stats,
)
from .process import CommandOutput, ProcessRunner, SubprocessRunner
from .retry import with_retry

__all__ = [
    "AuditTrail",
    "ChangeRecord",
    "get_recent_changes",
    "setup_audit_logging",
    "setup_logging",
    "timed",
    "timed_section",
    "perf_logger",
    "PerfStats",
    "global_stats",
    "CommandOutput",
    "ProcessRunner",
    "SubprocessRunner",
    "with_retry",
]
