"""Errors raised at the ipptool boundary."""
from .request import Request

# ipptool (CUPS 2.x) occasionally exits nonzero while printing the IPP status
# "successful-ok" on stderr. RFC 2911 section 13.1.2.1 defines that status code
# as plain success, so a message carrying it points at the tool, not the request.
SUCCESSFUL_OK_SENTINEL = "successful-ok\n"

RFC_2911_NOTE = (
    "NOTE: ipptool reported the IPP status 'successful-ok' on stderr while "
    "signalling failure. RFC 2911 section 13.1.2.1 defines this status as "
    "success; this is a known ipptool inconsistency, not a rejected request."
)


class ProtocolError(Exception):
    """An ipptool invocation failed or produced no usable output.

    The error is strict: it is built for every inconsistent outcome, including
    the ones a caller may later decide to tolerate.
    """

    def __init__(self, request: Request, stdout: str, stderr: str):
        self.request = request
        self.stdout = stdout
        self.stderr = stderr
        super().__init__(self._compose_message())

    def _compose_message(self) -> str:
        lines = [
            f"IPP query '{self.request.target_uri}' failed.",
            "REQUEST:",
            self.request.body,
            "STDOUT:",
            self.stdout,
            "STDERR:",
            self.stderr,
        ]
        if self.stderr == SUCCESSFUL_OK_SENTINEL:
            lines.append(RFC_2911_NOTE)
        return "\n".join(lines)
