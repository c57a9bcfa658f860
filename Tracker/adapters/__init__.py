"""
Value source adapters.

Usage:
    from Tracker.adapters import StateStoreAdapter

    adapter = StateStoreAdapter(db_path=Path("State/lifelog.db"))
    values = await adapter.get_values_for_range(1, "2024-01-01", "2024-01-31")
"""

from .base import ValueSourceAdapter
from .state_store_adapter import StateStoreAdapter

__all__ = ["ValueSourceAdapter", "StateStoreAdapter"]
