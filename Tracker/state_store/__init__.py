"""SQLite persistence for tracked events and their daily values."""

from .import_export import export_data, import_data, load_export_file, save_export_file
from .store import EventStore

__all__ = [
    "EventStore",
    "export_data",
    "import_data",
    "load_export_file",
    "save_export_file",
]
