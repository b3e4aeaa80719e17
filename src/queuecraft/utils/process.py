"""Process execution boundary for ipptool and the CUPS admin commands."""
import logging
import subprocess
from dataclasses import dataclass
from typing import Optional, Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandOutput:
    """Captured result of one child process."""
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def success(self) -> bool:
        return self.returncode == 0


class ProcessRunner(Protocol):
    """Anything that can run an argv list and capture its output."""

    def run(self, argv: list[str], stdin: Optional[str] = None) -> CommandOutput:
        ...


class SubprocessRunner:
    """Run commands as blocking child processes."""

    def run(self, argv: list[str], stdin: Optional[str] = None) -> CommandOutput:
        logger.debug(f"Running: {' '.join(argv)}")

        result = subprocess.run(
            argv,
            input=stdin,
            capture_output=True,
            text=True,
            check=False,  # Callers classify the exit status themselves
        )

        return CommandOutput(
            returncode=result.returncode,
            stdout=result.stdout,
            stderr=result.stderr,
        )
