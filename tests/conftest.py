"""Shared fixtures: scripted process runners and an in-memory CUPS."""
import re
from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import unquote

import pytest

from queuecraft.config.settings import Settings
from queuecraft.utils.process import CommandOutput

NO_DESTINATIONS = "No destinations added.\n"


class ScriptedRunner:
    """Return canned outputs in order and record every call."""

    def __init__(self, *outputs: CommandOutput):
        self.outputs = list(outputs)
        self.calls: list[tuple[list[str], Optional[str]]] = []

    def run(self, argv: list[str], stdin: Optional[str] = None) -> CommandOutput:
        self.calls.append((argv, stdin))
        if not self.outputs:
            raise AssertionError(f"Unexpected command: {argv}")
        return self.outputs.pop(0)


@dataclass
class FakeQueue:
    """State CUPS keeps for one queue."""
    is_class: bool = False
    accepting: bool = False
    enabled: bool = False
    held: bool = False
    info: str = ""
    location: str = ""
    shared: bool = True
    allowed: list[str] = field(default_factory=list)
    denied: list[str] = field(default_factory=list)
    native: dict[str, str] = field(default_factory=lambda: {
        "auth-info-required": "none",
        "job-sheets-default": "none,none",
        "printer-error-policy": "retry-job",
    })
    # PPD options: key -> (choices, selected)
    vendor: dict[str, tuple[list[str], str]] = field(default_factory=dict)
    members: list[str] = field(default_factory=list)
    uri: str = ""


class FakeSpooler:
    """Just enough CUPS behind ipptool, lpadmin and friends to reconcile against."""

    def __init__(self):
        self.queues: dict[str, FakeQueue] = {}
        self.calls: list[list[str]] = []
        self.fail_on: Optional[str] = None  # substring of a command line to fail

    # --- test helpers ---

    def add_printer(self, name: str, **state) -> FakeQueue:
        queue = FakeQueue(uri="file:///dev/null", **state)
        self.queues[name] = queue
        return queue

    def add_class(self, name: str, members: list[str], **state) -> FakeQueue:
        queue = FakeQueue(is_class=True, members=list(members), **state)
        self.queues[name] = queue
        return queue

    def commands(self, program: Optional[str] = None) -> list[list[str]]:
        return [c for c in self.calls if program is None or c[0] == program]

    # --- ProcessRunner ---

    def run(self, argv: list[str], stdin: Optional[str] = None) -> CommandOutput:
        self.calls.append(argv)
        if self.fail_on and self.fail_on in " ".join(argv):
            return CommandOutput(1, "", f"{argv[0]}: simulated failure\n")

        program = argv[0]
        if program == "ipptool":
            return self._ipptool(argv[2], stdin or "")
        if program == "lpadmin":
            return self._lpadmin(argv[1:])
        if program == "lpoptions":
            return self._lpoptions(argv[1:])
        if program in ("cupsaccept", "cupsreject", "cupsenable", "cupsdisable"):
            return self._toggle(program, argv[1:])
        return CommandOutput(127, "", f"{program}: not found\n")

    def _ipptool(self, uri: str, body: str) -> CommandOutput:
        operation = re.search(r"OPERATION (\S+)", body).group(1)
        attribute = re.search(r"DISPLAY (\S+)", body).group(1)

        if operation in ("CUPS-Get-Printers", "CUPS-Get-Classes"):
            names = [
                n for n, q in self.queues.items()
                if operation == "CUPS-Get-Printers" or q.is_class
            ]
            if not names:
                return CommandOutput(1, "", NO_DESTINATIONS)
            return CommandOutput(0, "printer-name\n" + "".join(f"{n}\n" for n in names), "")

        path = uri.split("://", 1)[1].split("/", 1)[1]
        collection, name = path.split("/", 1)
        queue = self.queues.get(unquote(name))
        if queue is None or queue.is_class != (collection == "classes"):
            return CommandOutput(1, "", "client-error-not-found\n")

        values = self._attribute(queue, attribute)
        lines = [attribute] + [self._csv(values)] if values else [attribute]
        return CommandOutput(0, "\n".join(lines) + "\n", "")

    @staticmethod
    def _csv(values: list[str]) -> str:
        # Same quoting as ipptool's print_csv
        joined = ",".join(values)
        if not any(c in joined for c in ',"\\'):
            return joined
        escaped = joined.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'

    def _attribute(self, queue: FakeQueue, attribute: str) -> list[str]:
        if attribute == "printer-is-accepting-jobs":
            return ["true" if queue.accepting else "false"]
        if attribute == "printer-is-shared":
            return ["true" if queue.shared else "false"]
        if attribute == "printer-state":
            return ["idle" if queue.enabled else "stopped"]
        if attribute == "printer-state-reasons":
            reasons = []
            if not queue.enabled:
                reasons.append("paused")
            if queue.held:
                reasons.append("hold-new-jobs")
            return reasons or ["none"]
        if attribute == "printer-info":
            return [queue.info]
        if attribute == "printer-location":
            return [queue.location]
        if attribute == "requesting-user-name-allowed":
            return list(queue.allowed)
        if attribute == "requesting-user-name-denied":
            return list(queue.denied)
        if attribute == "member-names":
            return list(queue.members)
        if attribute == "device-uri":
            return [queue.uri]
        if attribute in queue.native:
            return [queue.native[attribute]]
        return []

    def _lpadmin(self, args: list[str]) -> CommandOutput:
        args = [a for a in args if a != "-E"]
        if args[0] == "-x":
            if self.queues.pop(args[1], None) is None:
                return CommandOutput(1, "", "lpadmin: The printer or class does not exist.\n")
            return CommandOutput(0)

        assert args[0] == "-p", args
        name = args[1]
        pairs = list(zip(args[2::2], args[3::2]))
        flags = dict(pairs)

        if "-c" in flags:
            cls = self.queues.setdefault(flags["-c"], FakeQueue(is_class=True))
            if name not in cls.members:
                cls.members.append(name)
            return CommandOutput(0)
        if "-r" in flags:
            cls = self.queues[flags["-r"]]
            cls.members.remove(name)
            if not cls.members:
                del self.queues[flags["-r"]]
            return CommandOutput(0)

        queue = self.queues.get(name)
        if queue is None:
            if "-v" not in flags:
                return CommandOutput(1, "", "lpadmin: The printer or class does not exist.\n")
            queue = self.queues[name] = FakeQueue()

        for flag, value in pairs:
            if flag == "-v":
                queue.uri = value
            elif flag == "-D":
                queue.info = value
            elif flag == "-L":
                queue.location = value
            elif flag == "-u":
                policy, users = value.split(":", 1)
                queue.allowed, queue.denied = [], []
                if users != "all":
                    setattr(queue, "allowed" if policy == "allow" else "denied", users.split(","))
            elif flag == "-o":
                key, option = value.split("=", 1)
                if key == "printer-is-shared":
                    queue.shared = option == "true"
                elif key in queue.vendor:
                    choices, _ = queue.vendor[key]
                    queue.vendor[key] = (choices, option)
                else:
                    queue.native[key] = option
        return CommandOutput(0)

    def _lpoptions(self, args: list[str]) -> CommandOutput:
        args = [a for a in args if a != "-E"]
        queue = self.queues.get(args[1])
        if queue is None:
            return CommandOutput(1, "", "lpoptions: Unknown printer or class.\n")
        lines = []
        for key, (choices, selected) in queue.vendor.items():
            rendered = " ".join(f"*{c}" if c == selected else c for c in choices)
            lines.append(f"{key}/{key} Label: {rendered}")
        return CommandOutput(0, "".join(f"{line}\n" for line in lines), "")

    def _toggle(self, program: str, args: list[str]) -> CommandOutput:
        name = args[-1]
        queue = self.queues.get(name)
        if queue is None:
            return CommandOutput(1, "", f"{program}: Operation failed: client-error-not-found\n")
        if "--hold" in args:
            queue.held = True
        elif "--release" in args:
            queue.held = False
        elif program == "cupsaccept":
            queue.accepting = True
        elif program == "cupsreject":
            queue.accepting = False
        elif program == "cupsenable":
            queue.enabled = True
        else:
            queue.enabled = False
        return CommandOutput(0)


@pytest.fixture
def spooler():
    return FakeSpooler()


@pytest.fixture
def settings(tmp_path):
    """Settings without retry delays."""
    return Settings(retries=1, retry_min_wait=0, retry_max_wait=0, audit_log_dir=str(tmp_path))
