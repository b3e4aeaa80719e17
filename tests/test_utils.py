"""Tests for retry, audit logging, timing and the process runner."""
import logging
import sys

import pytest

from queuecraft.utils import (
    AuditTrail,
    ChangeRecord,
    PerfStats,
    SubprocessRunner,
    get_recent_changes,
    global_stats,
    perf_logger,
    setup_audit_logging,
    setup_logging,
    timed,
    timed_section,
    with_retry,
)


class TestWithRetry:
    """Tests for the with_retry decorator."""

    def test_retries_until_success(self):
        """Transient errors are retried."""
        calls = []

        @with_retry(max_attempts=3, min_wait=0, max_wait=0)
        def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise ConnectionRefusedError("cupsd restarting")
            return "ok"

        assert flaky() == "ok"
        assert len(calls) == 3

    def test_reraises_after_last_attempt(self):
        """The last error is raised once attempts run out."""
        calls = []

        @with_retry(max_attempts=2, min_wait=0, max_wait=0)
        def down():
            calls.append(1)
            raise TimeoutError("no answer")

        with pytest.raises(TimeoutError):
            down()
        assert len(calls) == 2

    def test_other_exceptions_not_retried(self):
        """Non-connection errors are not retried."""
        calls = []

        @with_retry(max_attempts=3, min_wait=0, max_wait=0)
        def broken():
            calls.append(1)
            raise ValueError("bad input")

        with pytest.raises(ValueError):
            broken()
        assert len(calls) == 1


class TestAuditLog:
    """Tests for the JSON lines audit trail."""

    def test_round_trip(self, tmp_path):
        """A logged change reads back intact."""
        audit_file = setup_audit_logging(str(tmp_path))

        AuditTrail("Office", user="nina").log_change(
            operation="location",
            success=True,
            value="Room 101",
            previous="Room 451",
            commands=[["lpadmin", "-E", "-p", "Office", "-L", "Room 101"]],
        )

        records = get_recent_changes(str(audit_file))
        assert len(records) == 1
        assert records[0].queue == "Office"
        assert records[0].previous == "Room 451"
        assert records[0].error is None

    def test_filters_and_order(self, tmp_path):
        """Newest first, filtered by queue and operation."""
        audit_file = setup_audit_logging(str(tmp_path))
        AuditTrail("Office").log_change("location", True)
        AuditTrail("Warehouse").log_change("shared", True)
        AuditTrail("Office").log_change("shared", False, error="lpadmin: boom")

        office = get_recent_changes(str(audit_file), queue="Office")
        shared = get_recent_changes(str(audit_file), operation="shared", limit=1)

        assert [r.operation for r in office] == ["shared", "location"]
        assert [r.queue for r in shared] == ["Office"]

    def test_long_errors_truncated(self):
        """Errors are capped at 1000 characters."""
        record = AuditTrail("Office").log_change("create", False, error="x" * 5000)
        assert len(record.error) == 1000

    def test_skips_malformed_lines(self, tmp_path):
        """Lines that are not records are ignored."""
        log_file = tmp_path / "audit.log"
        good = ChangeRecord("2026-01-01T00:00:00+00:00", "Office", "delete", "system", False, True)
        log_file.write_text("not json\n" + good.to_json() + "\n{\"queue\": \"x\"}\n")

        records = get_recent_changes(str(log_file))

        assert records == [good]

    def test_missing_file(self, tmp_path):
        """No audit file means no records."""
        assert get_recent_changes(str(tmp_path / "audit.log")) == []


class TestTiming:
    """Tests for timed, timed_section and PerfStats."""

    def test_timed_records(self):
        """Decorated calls are counted."""
        class Thing:
            @timed("test_timed_op")
            def work(self, name):
                return name.upper()

        before = global_stats.count("test_timed_op")

        assert Thing().work("office") == "OFFICE"
        assert global_stats.count("test_timed_op") == before + 1

    def test_timed_reraises(self):
        """Failed calls are counted and re-raised."""
        @timed("test_timed_fail")
        def fail(self, name):
            raise RuntimeError(name)

        with pytest.raises(RuntimeError):
            fail(None, "Office")
        assert global_stats.count("test_timed_fail") >= 1

    def test_timed_section(self):
        """Sections are counted."""
        before = global_stats.count("test_section")

        with timed_section("test_section", queue="Office", operations=2):
            pass

        assert global_stats.count("test_section") == before + 1

    def test_summary(self):
        """Summary reports count and average per operation."""
        stats = PerfStats()
        stats.record("ipp_execute", 10.0)
        stats.record("ipp_execute", 30.0)

        summary = stats.summary()

        assert "ipp_execute" in summary
        assert "count=   2" in summary
        assert "avg=   20.00ms" in summary

        stats.clear()
        assert stats.count("ipp_execute") == 0


class TestSubprocessRunner:
    """Tests for SubprocessRunner using the running interpreter as the child."""

    def test_captures_output_and_stdin(self):
        """Stdin is fed and stdout captured."""
        output = SubprocessRunner().run(
            [sys.executable, "-c", "import sys; print(sys.stdin.read().upper())"],
            stdin="office",
        )

        assert output.success
        assert output.stdout == "OFFICE\n"

    def test_nonzero_exit(self):
        """A failing child is reported, not raised."""
        output = SubprocessRunner().run(
            [sys.executable, "-c", "import sys; sys.stderr.write('boom\\n'); sys.exit(3)"]
        )

        assert not output.success
        assert output.returncode == 3
        assert output.stderr == "boom\n"

    def test_missing_program(self):
        """A missing binary raises OSError."""
        with pytest.raises(OSError):
            SubprocessRunner().run(["queuecraft-no-such-program"])


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_repeat_calls_replace_handlers(self, tmp_path, monkeypatch):
        """Calling setup_logging twice does not stack handlers."""
        monkeypatch.setenv("QUEUECRAFT_LOG_FILE", str(tmp_path / "logs" / "queuecraft.log"))
        app_logger = logging.getLogger("queuecraft")

        setup_logging()
        setup_logging(logging.WARNING)

        try:
            assert len(app_logger.handlers) == 2
            assert len(perf_logger.handlers) == 1
            assert perf_logger.propagate is False
            assert (tmp_path / "logs" / "queuecraft-perf.log").exists()
        finally:
            for logger in (app_logger, perf_logger):
                for handler in list(logger.handlers):
                    logger.removeHandler(handler)
                    handler.close()
