"""CLI commands for nohm."""

from .records import ids, keys, show
from .purge import purge

__all__ = ["ids", "keys", "purge", "show"]
