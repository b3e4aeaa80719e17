"""Read-only view of a queue's current state.

A snapshot is assembled from one ipptool request per attribute plus
``lpoptions`` for PPD options. It is never updated in place: convergence is
checked by building a new one.
"""
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Iterable, Mapping, Optional
from urllib.parse import quote

from ..ipp.client import ProtocolClient
from ..ipp.request import Response, list_destinations
from ..utils.logging_config import timed
from .commands import QueueCommands

logger = logging.getLogger(__name__)

ALL_USERS = "all"
NO_USERS = "none"

HOLD_NEW_JOBS = "hold-new-jobs"
STOPPED_STATES = {"stopped", "5"}

# ipptool -c quotes fields holding , " or \ and backslash-escapes " and \ inside them
CSV_ESCAPE_RE = re.compile(r"\\(.)", re.DOTALL)


class Ensure(str, Enum):
    """Whether and as what a queue should exist."""
    PRINTER = "printer"
    CLASS = "class"
    ABSENT = "absent"


@dataclass(frozen=True)
class AccessPolicy:
    """Who may submit jobs to a queue.

    ``users`` may hold user names and ``@group`` names. A policy whose users
    include ``all`` places no restriction at all.
    """
    policy: str = "allow"
    users: tuple[str, ...] = (ALL_USERS,)

    @classmethod
    def normalized(cls, policy: str, users: Iterable[str]) -> "AccessPolicy":
        """De-duplicate users; ``all`` (or nobody) clears the policy."""
        unique = tuple(dict.fromkeys(u for u in users if u))
        if not unique or ALL_USERS in unique:
            return UNRESTRICTED
        return cls(policy, unique)

    @property
    def unrestricted(self) -> bool:
        return ALL_USERS in self.users

    def matches(self, other: "AccessPolicy") -> bool:
        if self.unrestricted or other.unrestricted:
            return self.unrestricted and other.unrestricted
        return self.policy == other.policy and set(self.users) == set(other.users)

    def to_argument(self) -> str:
        """Value for ``lpadmin -u``."""
        if self.unrestricted:
            return f"allow:{ALL_USERS}"
        return f"{self.policy}:{','.join(self.users)}"


UNRESTRICTED = AccessPolicy()


@dataclass(frozen=True)
class QueueSnapshot:
    """Current properties of an existing queue."""
    name: str
    ensure: Ensure = Ensure.PRINTER
    access: AccessPolicy = UNRESTRICTED
    accepting: bool = True
    enabled: bool = True
    held: bool = False
    description: str = ""
    location: str = ""
    shared: bool = False
    options: Mapping[str, str] = field(default_factory=dict)
    members: tuple[str, ...] = ()
    uri: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "options", MappingProxyType(dict(self.options)))

    @property
    def resource(self) -> str:
        return queue_resource(self.name, self.ensure)


def queue_resource(name: str, ensure: Ensure) -> str:
    """IPP resource path of a queue, e.g. ``/printers/Office``."""
    collection = "classes" if ensure == Ensure.CLASS else "printers"
    return f"/{collection}/{quote(name, safe='')}"


def unquote_csv(value: str) -> str:
    """Undo ipptool's CSV quoting of a single field."""
    if len(value) >= 2 and value[0] == '"' and value[-1] == '"':
        return CSV_ESCAPE_RE.sub(r"\1", value[1:-1])
    return value


def split_values(response: Response) -> list[str]:
    """All values of a (possibly multi-valued) attribute."""
    joined = ",".join(unquote_csv(v) for v in response.values)
    return [v.strip() for v in joined.split(",") if v.strip()]


def single_value(response: Response) -> Optional[str]:
    joined = response.joined_values
    if joined is None:
        return None
    return unquote_csv(joined)


class SnapshotBuilder:
    """Assemble QueueSnapshots from ipptool queries and lpoptions."""

    def __init__(self, client: ProtocolClient, commands: QueueCommands):
        self.client = client
        self.commands = commands

    def classes(self) -> list[str]:
        return self.client.query(list_destinations("CUPS-Get-Classes"))

    def queues(self) -> list[str]:
        """All queue names, printers and classes alike."""
        return self.client.query(list_destinations("CUPS-Get-Printers"))

    def locate(self, name: str) -> Optional[Ensure]:
        """Whether ``name`` is a class, a printer, or absent (None)."""
        wanted = name.casefold()
        if any(c.casefold() == wanted for c in self.classes()):
            return Ensure.CLASS
        if any(q.casefold() == wanted for q in self.queues()):
            return Ensure.PRINTER
        return None

    @timed("snapshot")
    def build(self, name: str, option_keys: Iterable[str] = ()) -> Optional[QueueSnapshot]:
        """
        Snapshot a queue, or return None if it does not exist.

        Args:
            name: Queue name
            option_keys: Options to read; others are not part of the snapshot

        Raises:
            ProtocolError: if an ipptool query fails
            CommandError: if lpoptions fails
        """
        ensure = self.locate(name)
        if ensure is None:
            logger.debug(f"Queue {name} does not exist")
            return None

        resource = queue_resource(name, ensure)

        def read(attribute: str) -> Response:
            return self.client.get_attribute(resource, attribute)

        state = single_value(read("printer-state")) or ""
        reasons = split_values(read("printer-state-reasons"))

        snapshot = QueueSnapshot(
            name=name,
            ensure=ensure,
            access=self._access(read),
            accepting=single_value(read("printer-is-accepting-jobs")) == "true",
            enabled=state not in STOPPED_STATES,
            held=HOLD_NEW_JOBS in reasons,
            description=single_value(read("printer-info")) or "",
            location=single_value(read("printer-location")) or "",
            shared=single_value(read("printer-is-shared")) == "true",
            options=self._options(name, read, option_keys),
            members=tuple(split_values(read("member-names"))) if ensure == Ensure.CLASS else (),
            uri=single_value(read("device-uri")) if ensure == Ensure.PRINTER else None,
        )

        logger.debug(f"Snapshot of {name}: {snapshot}")
        return snapshot

    def _access(self, read) -> AccessPolicy:
        allowed = split_values(read("requesting-user-name-allowed"))
        if allowed and allowed != [ALL_USERS]:
            return AccessPolicy.normalized("allow", allowed)

        denied = split_values(read("requesting-user-name-denied"))
        if denied and denied != [NO_USERS]:
            return AccessPolicy.normalized("deny", denied)

        return UNRESTRICTED

    def _options(self, name: str, read, option_keys: Iterable[str]) -> dict[str, str]:
        keys = list(option_keys)
        if not keys:
            return {}

        vendor = self.commands.vendor_options(name)
        options = {}
        for key in keys:
            if key in vendor:
                options[key] = vendor[key]
                continue
            # Native options are plain IPP attributes of the same name
            value = single_value(read(key))
            if value is not None:
                options[key] = value
        return options
