"""Legacy (read) and target (write) database access."""

from __future__ import annotations

from .legacy import DynamicTable, LegacyStore
from .target import TargetStore

__all__ = ["DynamicTable", "LegacyStore", "TargetStore"]
