"""IPP request and response values.

Requests are written in the ipptool test-file language. Responses are the
CSV output of ``ipptool -c``: one header line naming the displayed attribute,
followed by one line per value.
"""
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Request:
    """An IPP request body aimed at a resource path on the server.

    An empty ``target_uri`` addresses no specific resource.
    """
    target_uri: str
    body: str


@dataclass(frozen=True)
class Response:
    """Parsed ipptool output."""
    raw_output: str

    @property
    def values(self) -> list[str]:
        """Values below the header line.

        The trailing empty segment produced by the final line break is not a
        value, but an empty line before it is:

            "Header\\n"         -> []
            "Header\\n\\n"       -> [""]
            "Header\\nOne\\n"    -> ["One"]
        """
        lines = self.raw_output.split("\n")[1:]
        if lines and lines[-1] == "":
            lines.pop()
        return lines

    @property
    def joined_values(self) -> Optional[str]:
        """Comma-joined values, or None if there are none."""
        values = self.values
        if not values:
            return None
        return ",".join(values)


def get_printer_attributes(attribute: str) -> str:
    """Request body reading a single attribute of the target queue."""
    return (
        "{\n"
        "  OPERATION Get-Printer-Attributes\n"
        "  GROUP operation\n"
        "  ATTR charset attributes-charset utf-8\n"
        "  ATTR language attributes-natural-language en\n"
        "  ATTR uri printer-uri $uri\n"
        f"  ATTR keyword requested-attributes {attribute}\n"
        f"  DISPLAY {attribute}\n"
        "}\n"
    )


def list_destinations(operation: str) -> str:
    """Request body listing queue names (CUPS-Get-Printers / CUPS-Get-Classes)."""
    return (
        "{\n"
        f"  OPERATION {operation}\n"
        "  GROUP operation\n"
        "  ATTR charset attributes-charset utf-8\n"
        "  ATTR language attributes-natural-language en\n"
        "  ATTR keyword requested-attributes printer-name\n"
        "  DISPLAY printer-name\n"
        "}\n"
    )
