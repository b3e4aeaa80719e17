"""Queue inventory management from YAML configuration."""
import copy
import logging
from pathlib import Path
from typing import Any, Optional

import yaml

from .settings import Settings

logger = logging.getLogger(__name__)


class QueueInventory:
    """Desired queue states loaded from YAML config.

    Supports defaults merged into every queue and groups of queues:

    ```yaml
    settings:
      server: ipp://localhost
    defaults:
      ensure: printer
    queues:
      Office:
        location: Room 101
      Warehouse:
        shared: false
    groups:
      ground-floor:
        - Office
        - Warehouse
    ```
    """

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = config_path or self._find_config()
        self._config: dict = {}
        self._load_config()

    def _find_config(self) -> str:
        """Find the queues.yaml config file."""
        search_paths = [
            Path.cwd() / "configs" / "queues.yaml",
            Path.cwd() / "queues.yaml",
            Path.home() / ".config" / "queuecraft" / "queues.yaml",
            Path("/etc/queuecraft/queues.yaml"),
        ]

        for path in search_paths:
            if path.exists():
                return str(path)

        raise FileNotFoundError(
            "Could not find queues.yaml. Create one in ./configs/queues.yaml"
        )

    def _load_config(self) -> None:
        """Load the YAML configuration."""
        with open(self.config_path, encoding="utf-8") as f:
            self._config = yaml.safe_load(f) or {}

        queues = self._config.get("queues") or {}
        defaults = self._config.get("defaults") or {}
        for name, queue_config in queues.items():
            if queue_config is None:
                queue_config = queues[name] = {}
            for key, value in defaults.items():
                if key not in queue_config:
                    # Each queue gets its own copy of mutable defaults
                    queue_config[key] = copy.deepcopy(value)
        self._config["queues"] = queues

        self._validate_groups()

    @property
    def raw(self) -> dict:
        return self._config

    @property
    def settings(self) -> Settings:
        return Settings.from_dict(self._config.get("settings"))

    def get_queue_names(self) -> list[str]:
        """Get all queue names in declaration order."""
        return [str(name) for name in self._config["queues"]]

    def get_queue_config(self, name: str) -> dict[str, Any]:
        """Get raw config for a queue, defaults merged."""
        queues = self._config["queues"]
        if name not in queues:
            raise KeyError(f"Unknown queue: {name}")
        return queues[name]

    def get_queues(self) -> dict[str, dict[str, Any]]:
        return {str(name): config for name, config in self._config["queues"].items()}

    # === Group Management ===

    def _validate_groups(self) -> None:
        """Validate that all group members reference declared queues."""
        queues = self._config["queues"]

        for group_name, members in self.get_groups().items():
            if not isinstance(members, list):
                logger.warning(f"Group '{group_name}' should be a list of queue names")
                continue
            for name in members:
                if name not in queues:
                    logger.warning(
                        f"Group '{group_name}' references unknown queue: {name}"
                    )

    def get_groups(self) -> dict[str, list[str]]:
        """Get all defined groups and their members."""
        return dict(self._config.get("groups") or {})

    def get_group_members(self, group_name: str) -> list[str]:
        """Get queue names in a group.

        Raises:
            KeyError: If group doesn't exist
        """
        groups = self.get_groups()
        if group_name not in groups:
            raise KeyError(f"Unknown group: {group_name}")
        return list(groups[group_name])

    def get_queue_groups(self, name: str) -> list[str]:
        """Get all groups a queue belongs to."""
        return [
            group_name
            for group_name, members in self.get_groups().items()
            if isinstance(members, list) and name in members
        ]
