"""
Database models for the shortlink engine.

Mappings are the durable identifier -> destination records; click events
are append-only observations owned by a mapping.
"""

from .mapping import GLOBAL_PARTITION, Mapping, normalize_partition
from .click import ClickEvent

__all__ = ["GLOBAL_PARTITION", "Mapping", "ClickEvent", "normalize_partition"]
