"""
Backup import and export.

The backup is a JSON document:

    {
        "version": "1.0.0",
        "exportDate": "2024-05-01T09:30:00",
        "events": [{"id": 1, "name": "Sleep", "type": "number", ...}],
        "eventValues": [{"eventId": 1, "date": "2024-04-30", "value": "7.5", "timestamp": "..."}],
        "settings": {"colorScheme": "dark"}
    }

Event ids are reassigned on import; values follow their event through the
id mapping and values of unknown events are skipped.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from ..errors import ImportValidationError
from .store import EventStore

logger = logging.getLogger(__name__)

EXPORT_VERSION = "1.0.0"
REQUIRED_KEYS = ("version", "events", "eventValues")
VALUE_KEYS = ("eventId", "date", "value")

ProgressCallback = Callable[[int, str], None]


def export_data(store: EventStore) -> Dict[str, Any]:
    """Serialize every event, value and setting in the store."""
    events = [
        {
            "id": event.id,
            "name": event.name,
            "type": event.type.value,
            "unit": event.unit,
            "color": event.color,
            "icon": event.icon,
            "order": event.order,
        }
        for event in store.get_events()
    ]
    values = [
        {
            "eventId": value.event_id,
            "date": value.date,
            "value": value.value,
            "timestamp": value.timestamp or datetime.now().isoformat(),
        }
        for value in store.get_all_values()
    ]
    return {
        "version": EXPORT_VERSION,
        "exportDate": datetime.now().isoformat(),
        "events": events,
        "eventValues": values,
        "settings": store.get_settings(),
    }


def validate_export(data: Any) -> None:
    """
    Check the structure of a backup document.

    Raises:
        ImportValidationError: If a required key, event or value entry is
            missing or malformed
    """
    if not isinstance(data, dict):
        raise ImportValidationError("Invalid export file format")

    missing = [key for key in REQUIRED_KEYS if not data.get(key) and data.get(key) != []]
    if missing:
        raise ImportValidationError(
            "Invalid export file format", context={"missing": missing}
        )
    if not isinstance(data["events"], list) or not isinstance(data["eventValues"], list):
        raise ImportValidationError("events and eventValues must be lists")

    for index, event in enumerate(data["events"]):
        if not isinstance(event, dict) or "id" not in event or "name" not in event:
            raise ImportValidationError("Malformed event entry", context={"index": index})
        if event.get("type") not in ("boolean", "number", "string"):
            raise ImportValidationError(
                f"Unknown event type: {event.get('type')!r}", context={"index": index}
            )

    for index, value in enumerate(data["eventValues"]):
        if not isinstance(value, dict):
            raise ImportValidationError("Malformed event value entry", context={"index": index})
        missing = [key for key in VALUE_KEYS if value.get(key) is None]
        if missing:
            raise ImportValidationError(
                "Malformed event value entry", context={"index": index, "missing": missing}
            )


def import_data(
    store: EventStore,
    data: Dict[str, Any],
    clear_existing: bool = False,
    on_progress: Optional[ProgressCallback] = None,
) -> Dict[str, Any]:
    """
    Restore a backup into the store.

    Args:
        store: Destination store
        data: Parsed backup document
        clear_existing: Delete every current event (and its values) first
        on_progress: Optional callback receiving (percent, message)

    Returns:
        Dict with imported event and value counts and the old → new id mapping

    Raises:
        ImportValidationError: If the document is malformed
    """
    def progress(percent: int, message: str):
        if on_progress:
            on_progress(percent, message)

    progress(0, "Starting import...")
    validate_export(data)

    if clear_existing:
        progress(10, "Clearing existing data...")
        for event in store.get_events():
            store.delete_event(event.id)

    progress(20, "Importing events...")
    id_mapping: Dict[int, int] = {}
    for event_data in sorted(data["events"], key=lambda e: e.get("order", 0)):
        created = store.create_event(
            name=event_data["name"],
            type=event_data["type"],
            unit=event_data.get("unit"),
            color=event_data.get("color") or "#3b82f6",
            icon=event_data.get("icon"),
        )
        id_mapping[event_data["id"]] = created.id

    progress(50, "Importing event values...")
    imported_values = 0
    skipped_values = 0
    for value_data in data["eventValues"]:
        new_id = id_mapping.get(value_data.get("eventId"))
        if new_id is None:
            skipped_values += 1
            continue
        store.set_event_value(new_id, value_data["date"], value_data["value"])
        imported_values += 1

    if skipped_values:
        logger.warning("Skipped %d values referencing unknown events", skipped_values)

    progress(90, "Restoring settings...")
    for key, value in (data.get("settings") or {}).items():
        store.set_setting(key, str(value))

    progress(100, "Import complete!")
    logger.info(
        "Imported %d events and %d values", len(id_mapping), imported_values
    )
    return {
        "events": len(id_mapping),
        "values": imported_values,
        "skipped": skipped_values,
        "id_mapping": id_mapping,
    }


def load_export_file(path: Path) -> Dict[str, Any]:
    """
    Read a backup file.

    Raises:
        ImportValidationError: If the file cannot be read or is not valid JSON
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise ImportValidationError(
            f"Backup is not valid JSON: {e.msg}", context={"path": str(path)}
        ) from e
    except (OSError, UnicodeDecodeError) as e:
        raise ImportValidationError(
            f"Cannot read backup: {e}", context={"path": str(path)}
        ) from e


def save_export_file(data: Dict[str, Any], path: Optional[Path] = None) -> Path:
    """Write a backup file, named life-events-backup-YYYY-MM-DD.json by default."""
    if path is None:
        path = Path(f"life-events-backup-{datetime.now().date().isoformat()}.json")
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
    return path
