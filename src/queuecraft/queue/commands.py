"""Native CUPS administration and status commands."""
import logging
import re
import shlex
from typing import Optional

from ..config.settings import Settings
from ..utils.logging_config import timed
from ..utils.process import CommandOutput, ProcessRunner, SubprocessRunner

logger = logging.getLogger(__name__)

# "PageSize/Media Size: Letter *A4 Legal"
VENDOR_OPTION_RE = re.compile(r"^(?P<key>[^/:\s]+)(?:/[^:]*)?:\s*(?P<choices>.*)$")


class CommandError(Exception):
    """A native spooler command exited nonzero."""

    def __init__(self, argv: list[str], output: CommandOutput):
        self.argv = argv
        self.returncode = output.returncode
        self.stdout = output.stdout
        self.stderr = output.stderr
        super().__init__(
            f"Command '{shlex.join(argv)}' failed with exit status {self.returncode}.\n"
            f"STDOUT:\n{self.stdout}\nSTDERR:\n{self.stderr}"
        )


class QueueCommands:
    """Run lpadmin and friends, raising CommandError on failure."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        runner: Optional[ProcessRunner] = None,
    ):
        self.settings = settings or Settings()
        self.runner = runner or SubprocessRunner()

    @timed("command")
    def run(self, argv: list[str]) -> str:
        """Run a command and return its stdout."""
        output = self.runner.run(argv)
        if not output.success:
            logger.error(f"Command failed: {shlex.join(argv)}: {output.stderr.strip()}")
            raise CommandError(argv, output)
        return output.stdout

    def vendor_options(self, queue: str) -> dict[str, str]:
        """Selected values of the queue's PPD (vendor) options.

        Parses ``lpoptions -E -p <queue> -l``, where the selected choice of
        each option is marked with ``*``.
        """
        stdout = self.run([self.settings.lpoptions, "-E", "-p", queue, "-l"])
        return parse_vendor_options(stdout)


def parse_vendor_options(text: str) -> dict[str, str]:
    options = {}
    for line in text.splitlines():
        match = VENDOR_OPTION_RE.match(line.strip())
        if not match:
            continue
        for choice in match.group("choices").split():
            if choice.startswith("*"):
                options[match.group("key")] = choice[1:]
                break
    return options
