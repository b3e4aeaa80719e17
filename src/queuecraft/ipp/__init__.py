"""IPP access through ipptool."""
from .client import NO_DESTINATIONS_SENTINEL, ROOT_URI, ProtocolClient
from .errors import SUCCESSFUL_OK_SENTINEL, ProtocolError
from .request import Request, Response, get_printer_attributes, list_destinations

__all__ = [
    "ProtocolClient",
    "ProtocolError",
    "Request",
    "Response",
    "get_printer_attributes",
    "list_destinations",
    "NO_DESTINATIONS_SENTINEL",
    "SUCCESSFUL_OK_SENTINEL",
    "ROOT_URI",
]
