"""Tests for the queuecraft command line."""
import json
import logging
import re

import pytest

from queuecraft import cli
from queuecraft.config_engine import ExecuteResult, Outcome, ReconciliationEngine
from queuecraft.utils.logging_config import perf_logger


@pytest.fixture
def inventory_file(tmp_path):
    path = tmp_path / "queues.yaml"
    path.write_text(f"""
settings:
  retries: 1
  retry_min_wait: 0
  retry_max_wait: 0
  audit_log_dir: {tmp_path / "audit"}
queues:
  Office:
    ensure: printer
    location: Room 101
  Warehouse:
    ensure: printer
    shared: false
groups:
  front:
    - Office
""")
    return path


@pytest.fixture(autouse=True)
def fake_cups(spooler, tmp_path, monkeypatch):
    monkeypatch.setenv("QUEUECRAFT_LOG_FILE", str(tmp_path / "logs" / "queuecraft.log"))
    monkeypatch.delenv("QUEUECRAFT_SERVER", raising=False)
    monkeypatch.setattr(
        cli, "ReconciliationEngine",
        lambda settings: ReconciliationEngine(settings, runner=spooler),
    )
    yield spooler
    # Close the log files setup_logging opened
    for logger in (logging.getLogger("queuecraft"), perf_logger):
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()


class TestExitCode:
    """Tests for detailed exit codes."""

    def test_no_changes(self):
        """Nothing changed exits 0."""
        assert cli.exit_code([ExecuteResult("Office")]) == 0

    def test_changes(self):
        """Changes exit 2."""
        result = ExecuteResult("Office", Outcome.CHANGED, operations_applied=["location"])
        assert cli.exit_code([result]) == 2

    def test_failures(self):
        """Failures exit 4."""
        assert cli.exit_code([ExecuteResult("Office", Outcome.FAILED)]) == 4

    def test_changes_and_failures(self):
        """Changes and failures combine to 6."""
        changed = ExecuteResult("Office", Outcome.CHANGED, operations_applied=["location"])
        failed = ExecuteResult("Warehouse", Outcome.FAILED, errors=["boom"])
        assert cli.exit_code([changed, failed]) == 6


class TestMain:
    """Tests for the main entry point."""

    def test_apply_all(self, inventory_file, spooler, capsys):
        """Every inventory queue is reconciled by default."""
        code = cli.main(["--config", str(inventory_file)])

        assert code == 2
        assert spooler.queues["Office"].location == "Room 101"
        assert spooler.queues["Warehouse"].shared is False
        out = capsys.readouterr().out
        assert "Office: changed" in out
        assert "Warehouse: changed" in out

    def test_second_run_exits_zero(self, inventory_file):
        """A converged inventory exits 0."""
        cli.main(["--config", str(inventory_file)])

        assert cli.main(["--config", str(inventory_file)]) == 0

    def test_dry_run(self, inventory_file, spooler):
        """Dry run reports changes and creates nothing."""
        code = cli.main(["--config", str(inventory_file), "--dry-run"])

        assert code == 2
        assert spooler.queues == {}

    def test_single_queue(self, inventory_file, spooler):
        """--queue limits the run to one queue."""
        cli.main(["--config", str(inventory_file), "--queue", "Warehouse"])

        assert list(spooler.queues) == ["Warehouse"]

    def test_group(self, inventory_file, spooler):
        """--group limits the run to the group's queues."""
        cli.main(["--config", str(inventory_file), "--group", "front"])

        assert list(spooler.queues) == ["Office"]

    def test_unknown_queue(self, inventory_file, spooler):
        """An unknown queue fails without touching CUPS."""
        assert cli.main(["--config", str(inventory_file), "--queue", "Lobby"]) == 4
        assert spooler.calls == []

    def test_missing_inventory(self, tmp_path):
        """A missing inventory file is a failure."""
        assert cli.main(["--config", str(tmp_path / "nope.yaml")]) == 4

    def test_failure(self, inventory_file, spooler):
        """One failing queue does not stop the others."""
        spooler.fail_on = "-L"

        code = cli.main(["--config", str(inventory_file)])

        # Office fails on its location, Warehouse still changes
        assert code == 6

    def test_json_output(self, inventory_file, capsys):
        """--json prints one result object per queue."""
        cli.main(["--config", str(inventory_file), "--json", "--queue", "Office"])

        results = json.loads(capsys.readouterr().out)
        assert results[0]["queue"] == "Office"
        assert results[0]["outcome"] == "changed"
        assert results[0]["converged"] is True

    def test_parse_error_is_a_failure(self, tmp_path, capsys):
        """A queue that fails to parse is reported and counted."""
        path = tmp_path / "queues.yaml"
        path.write_text(f"settings:\n  audit_log_dir: {tmp_path}\nqueues:\n  Office:\n    ensure: maybe\n")

        assert cli.main(["--config", str(path)]) == 4
        assert "Invalid ensure" in capsys.readouterr().out

    def test_audit_log_written(self, inventory_file, tmp_path):
        """Applied changes land in the audit log."""
        cli.main(["--config", str(inventory_file), "--user", "nina"])

        lines = (tmp_path / "audit" / "audit.log").read_text().splitlines()
        records = [json.loads(line) for line in lines]
        assert {r["queue"] for r in records} == {"Office", "Warehouse"}
        assert all(r["user"] == "nina" for r in records)

    def test_logs_queue_groups(self, inventory_file, caplog):
        """Each queue is logged with the groups it belongs to."""
        caplog.set_level(logging.INFO)

        cli.main(["--config", str(inventory_file)])

        assert "Reconciling Office (groups: front)" in caplog.text
        assert "Reconciling Warehouse" in caplog.text
        assert "Reconciling Warehouse (groups" not in caplog.text

    def test_verbose_prints_counts_and_summary(self, inventory_file, capsys):
        """--verbose reports query and command counts and the timing table."""
        cli.main(["--config", str(inventory_file), "--verbose", "--queue", "Office"])

        out = capsys.readouterr().out
        counts = re.search(r"(\d+) ipptool queries, (\d+) admin commands", out)
        assert counts
        assert int(counts.group(1)) > 0
        assert int(counts.group(2)) > 0
        assert "Performance Summary" in out
