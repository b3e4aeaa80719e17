"""Configuration: runtime settings and the queue inventory."""
from .settings import Settings
from .inventory import QueueInventory

__all__ = ["Settings", "QueueInventory"]
