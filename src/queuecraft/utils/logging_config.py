"""Logging setup and timing helpers for queuecraft.

Three destinations:
- console, at QUEUECRAFT_LOG_LEVEL
- a rotating diagnostic log file, everything at DEBUG
- a rotating ``queuecraft-perf.log`` next to it, one line per timed call

Environment Variables:
    QUEUECRAFT_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
    QUEUECRAFT_LOG_FILE: Path to log file (default: ~/.queuecraft/queuecraft.log)
    QUEUECRAFT_LOG_MAX_SIZE: Max log file size in MB (default: 10)
    QUEUECRAFT_LOG_BACKUPS: Number of rotated files to keep (default: 5)

Usage:
    from queuecraft.utils.logging_config import setup_logging, timed

    setup_logging()  # once, from the entry point

    @timed("snapshot")
    def build(self, name):
        ...

    with timed_section("apply", queue="Office"):
        ...
"""
import functools
import logging
import os
import time
from contextlib import contextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Callable, Any

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Timings stay out of the diagnostic log
perf_logger = logging.getLogger("queuecraft.perf")


def get_log_level() -> int:
    """Console level from QUEUECRAFT_LOG_LEVEL."""
    name = os.environ.get("QUEUECRAFT_LOG_LEVEL", "INFO").upper()
    return getattr(logging, name, logging.INFO)


def get_log_file() -> Path:
    default = Path.home() / ".queuecraft" / "queuecraft.log"
    return Path(os.environ.get("QUEUECRAFT_LOG_FILE", str(default)))


def _rotating_handler(path: Path, formatter: logging.Formatter) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        path,
        maxBytes=int(os.environ.get("QUEUECRAFT_LOG_MAX_SIZE", "10")) * 1024 * 1024,
        backupCount=int(os.environ.get("QUEUECRAFT_LOG_BACKUPS", "5")),
        encoding="utf-8",
    )
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(formatter)
    return handler


def _replace_handlers(logger: logging.Logger, *handlers: logging.Handler) -> None:
    for old in list(logger.handlers):
        logger.removeHandler(old)
        old.close()
    for handler in handlers:
        logger.addHandler(handler)


def setup_logging(level: int | None = None) -> None:
    """Attach console, file and perf handlers to the ``queuecraft`` loggers.

    Calling it again replaces the handlers of the previous call.

    Args:
        level: Console level; defaults to QUEUECRAFT_LOG_LEVEL
    """
    console_level = level if level is not None else get_log_level()
    log_file = get_log_file()
    log_file.parent.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(
        "%(asctime)s.%(msecs)03d | %(name)-32s | %(levelname)-7s | %(message)s",
        datefmt=DATE_FORMAT,
    )

    console = logging.StreamHandler()
    console.setLevel(console_level)
    console.setFormatter(formatter)

    app_logger = logging.getLogger("queuecraft")
    app_logger.setLevel(logging.DEBUG)  # handlers do the filtering
    _replace_handlers(app_logger, console, _rotating_handler(log_file, formatter))

    perf_formatter = logging.Formatter(
        "%(asctime)s.%(msecs)03d | PERF | %(message)s", datefmt=DATE_FORMAT
    )
    perf_logger.setLevel(logging.DEBUG)
    perf_logger.propagate = False
    _replace_handlers(
        perf_logger, _rotating_handler(log_file.parent / "queuecraft-perf.log", perf_formatter)
    )

    app_logger.debug(
        f"Logging initialized: level={logging.getLevelName(console_level)}, file={log_file}"
    )


def _report(
    operation: str,
    target: str | None,
    started: float,
    error: BaseException | None = None,
    extra: dict | None = None,
) -> None:
    elapsed = (time.perf_counter() - started) * 1000  # ms
    global_stats.record(operation, elapsed)

    status = f"FAIL: {error.__class__.__name__}" if error else "OK"
    line = f"{operation:20s} | {target or 'N/A':25s} | {elapsed:8.2f}ms | {status}"
    if extra:
        line += " | " + " | ".join(f"{k}={v}" for k, v in extra.items())

    if error:
        perf_logger.warning(line)
    else:
        perf_logger.info(line)


def timed(operation: str) -> Callable:
    """Decorator recording how long a method takes.

    The target column is the second positional argument when it is a string,
    or its ``target_uri`` / ``name`` attribute.

    Usage:
        @timed("ipp_execute")
        def execute(self, request):
            ...
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            target = _target_of(args)
            started = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                _report(operation, target, started, error=e)
                raise
            _report(operation, target, started)
            return result

        return wrapper

    return decorator


def _target_of(args: tuple) -> str | None:
    # (self, request_or_name, ...)
    if len(args) < 2:
        return None
    subject = args[1]
    if isinstance(subject, str):
        return subject
    return getattr(subject, "target_uri", None) or getattr(subject, "name", None)


@contextmanager
def timed_section(operation: str, queue: str | None = None, **extra):
    """Time a block of code.

    Usage:
        with timed_section("apply", queue="Office", operations=3):
            executor.execute(...)
    """
    started = time.perf_counter()
    try:
        yield
    except Exception as e:
        _report(operation, queue, started, error=e, extra=extra)
        raise
    _report(operation, queue, started, extra=extra)


class PerfStats:
    """Timings per operation, summarised for ``--verbose`` output."""

    def __init__(self):
        self._times: dict[str, list[float]] = {}

    def record(self, operation: str, duration_ms: float) -> None:
        self._times.setdefault(operation, []).append(duration_ms)

    def count(self, operation: str) -> int:
        return len(self._times.get(operation, []))

    def summary(self) -> str:
        lines = ["Performance Summary", "=" * 60]
        for operation in sorted(self._times):
            times = self._times[operation]
            if not times:
                continue
            lines.append(
                f"{operation:20s} | count={len(times):4d} | "
                f"avg={sum(times) / len(times):8.2f}ms | "
                f"min={min(times):8.2f}ms | max={max(times):8.2f}ms"
            )
        return "\n".join(lines)

    def clear(self) -> None:
        self._times.clear()


# Filled by timed() and timed_section()
global_stats = PerfStats()
