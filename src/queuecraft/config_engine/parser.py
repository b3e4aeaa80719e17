"""Parser for desired state configuration.

Converts dict/YAML input to strongly-typed DesiredState objects.
"""
import hashlib
import json
from typing import Any, Optional

from ..queue.snapshot import AccessPolicy, Ensure
from .schema import DesiredState

ACCESS_POLICIES = ("allow", "deny")

KNOWN_KEYS = frozenset({
    "name", "queue", "ensure", "access", "accepting", "description", "enabled",
    "held", "location", "options", "shared", "members", "uri", "model", "ppd",
    "interface",
})


class ParseError(Exception):
    """Error parsing desired state configuration."""
    pass


class ConfigParser:
    """Parse desired state from dict/YAML format."""

    def parse(self, config: dict[str, Any], name: Optional[str] = None) -> DesiredState:
        """
        Parse a queue configuration dict into a DesiredState object.

        Args:
            config: Dict with ensure, access, accepting, options, etc.
            name: Queue name, if not given as ``name`` in the dict

        Returns:
            DesiredState object

        Raises:
            ParseError: If config is invalid
        """
        if config is None:
            config = {}
        if not isinstance(config, dict):
            raise ParseError(f"Queue configuration must be a mapping, got {type(config).__name__}")

        name = name or config.get("name") or config.get("queue")
        if not name:
            raise ParseError("Missing required field: name")
        name = str(name)

        unknown = sorted(set(config) - KNOWN_KEYS)
        if unknown:
            raise ParseError(f"Unknown field(s) for queue {name}: {', '.join(unknown)}")

        return DesiredState(
            name=name,
            ensure=self._parse_ensure(name, config.get("ensure")),
            access=self._parse_access(name, config.get("access")),
            accepting=self._parse_bool(name, "accepting", config.get("accepting")),
            description=self._parse_str(name, "description", config.get("description")),
            enabled=self._parse_bool(name, "enabled", config.get("enabled")),
            held=self._parse_bool(name, "held", config.get("held")),
            location=self._parse_str(name, "location", config.get("location")),
            options=self._parse_options(name, config.get("options")),
            shared=self._parse_bool(name, "shared", config.get("shared")),
            members=self._parse_members(name, config.get("members")),
            uri=self._parse_str(name, "uri", config.get("uri")),
            model=self._parse_str(name, "model", config.get("model")),
            ppd=self._parse_str(name, "ppd", config.get("ppd")),
            interface=self._parse_str(name, "interface", config.get("interface")),
        )

    def parse_queues(self, queues: dict[str, Any]) -> list[DesiredState]:
        """Parse a ``name -> config`` mapping, keeping declaration order."""
        return [self.parse(config, name=str(name)) for name, config in queues.items()]

    def _parse_ensure(self, name: str, value: Any) -> Optional[Ensure]:
        if value is None:
            return None
        try:
            return Ensure(str(value))
        except ValueError:
            raise ParseError(
                f"Invalid ensure for queue {name}: {value}. "
                f"Must be 'printer', 'class' or 'absent'"
            )

    def _parse_access(self, name: str, value: Any) -> Optional[AccessPolicy]:
        if value is None:
            return None
        if not isinstance(value, dict):
            raise ParseError(f"access for queue {name} must be a mapping with 'policy' and 'users'")

        policy = value.get("policy")
        if policy not in ACCESS_POLICIES:
            raise ParseError(
                f"Invalid access policy for queue {name}: {policy}. Must be 'allow' or 'deny'"
            )

        users = self._parse_list(value.get("users"))
        if not users:
            raise ParseError(f"access for queue {name} needs at least one user")

        return AccessPolicy.normalized(policy, users)

    def _parse_bool(self, name: str, field_name: str, value: Any) -> Optional[bool]:
        """Accept YAML booleans and the strings 'true' / 'false'."""
        if value is None or isinstance(value, bool):
            return value
        if isinstance(value, str) and value.lower() in ("true", "false"):
            return value.lower() == "true"
        raise ParseError(f"Invalid {field_name} for queue {name}: {value!r}. Must be true or false")

    def _parse_str(self, name: str, field_name: str, value: Any) -> Optional[str]:
        if value is None:
            return None
        if isinstance(value, (dict, list)):
            raise ParseError(f"{field_name} for queue {name} must be a string")
        return str(value)

    def _parse_options(self, name: str, value: Any) -> dict[str, str]:
        if value is None:
            return {}
        if not isinstance(value, dict):
            raise ParseError(f"options for queue {name} must be a mapping")
        return {str(k): _option_value(v) for k, v in value.items()}

    def _parse_members(self, name: str, value: Any) -> Optional[tuple[str, ...]]:
        if value is None:
            return None
        return tuple(self._parse_list(value))

    def _parse_list(self, value: Any) -> list[str]:
        """Lists may also be given as comma separated strings."""
        if value is None:
            return []
        if isinstance(value, str):
            return [v.strip() for v in value.split(",") if v.strip()]
        return [str(v) for v in value]


def _option_value(value: Any) -> str:
    # YAML turns `true` into True; CUPS spells it lowercase
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def compute_checksum(config: dict[str, Any]) -> str:
    """
    Compute SHA256 checksum of a config dict.

    Used to tell in the audit log which inventory revision was applied.
    """
    config_str = json.dumps(config, sort_keys=True, separators=(",", ":"), default=str)
    hash_bytes = hashlib.sha256(config_str.encode()).hexdigest()
    return f"sha256:{hash_bytes[:16]}"
