"""ipptool client.

Runs one ipptool process per request and classifies the outcome. ipptool's
exit status is not a reliable success signal on its own, so the
(exit status, stdout, stderr) triple is inspected as a whole.
"""
import logging
from typing import Optional

from ..utils.logging_config import timed
from ..utils.process import ProcessRunner, SubprocessRunner
from .errors import ProtocolError
from .request import Request, Response, get_printer_attributes

logger = logging.getLogger(__name__)

# Printed by ipptool (via cupsGetDests) when a CUPS-Get-Printers or
# CUPS-Get-Classes request matches no queue. The exit status is nonzero, but
# zero matches is a valid answer, e.g. for a queue that does not exist yet.
NO_DESTINATIONS_SENTINEL = "No destinations added.\n"

# Endpoint for server-wide requests such as listing queues.
ROOT_URI = "/"


class ProtocolClient:
    """Execute IPP requests through ipptool."""

    def __init__(
        self,
        server: str = "ipp://localhost",
        ipptool: str = "ipptool",
        runner: Optional[ProcessRunner] = None,
    ):
        """
        Initialize the client.

        Args:
            server: Scheme and authority prefixed to every target URI
            ipptool: Path or name of the ipptool binary
            runner: Process runner (defaults to a subprocess runner)
        """
        self.server = server.rstrip("/")
        self.ipptool = ipptool
        self.runner = runner or SubprocessRunner()

    def uri_for(self, request: Request) -> str:
        return f"{self.server}{request.target_uri or ROOT_URI}"

    @timed("ipp_execute")
    def execute(self, request: Request) -> Response:
        """
        Run a request and return the parsed response.

        Raises:
            ProtocolError: if ipptool failed, or claimed success without output
        """
        argv = [self.ipptool, "-c", self.uri_for(request), "/dev/stdin"]
        output = self.runner.run(argv, stdin=request.body)

        if output.success:
            if output.stdout:
                return Response(output.stdout)
            # Failures can masquerade as success with no output at all
            logger.debug(f"ipptool exited 0 without output for {request.target_uri!r}")
            raise ProtocolError(request, output.stdout, output.stderr)

        if output.stderr == NO_DESTINATIONS_SENTINEL:
            logger.debug(f"No destinations matched for {request.target_uri!r}")
            return Response(output.stdout)

        raise ProtocolError(request, output.stdout, output.stderr)

    def query(self, body: str) -> list[str]:
        """Run a server-wide request and return its values."""
        return self.execute(Request(ROOT_URI, body)).values

    def get_attribute(self, target_uri: str, attribute: str) -> Response:
        """Read one attribute of the queue at ``target_uri``."""
        return self.execute(Request(target_uri, get_printer_attributes(attribute)))
