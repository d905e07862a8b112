"""CSV adapter for device events."""

from __future__ import annotations

import csv

from cycle_report.adapters.fields import canonical_action, parse_timestamp, to_int
from cycle_report.schema import LogEvent

_REQUIRED_FIELDS = ("id", "action")
_CORE_FIELDS = {"id", "timestamp", "action", "wo_id", "device_id"}


def _parse_row(row: dict, row_number: int) -> LogEvent:
    missing = [field for field in _REQUIRED_FIELDS if not (row.get(field) or "").strip()]
    if missing:
        raise ValueError(f"Row {row_number}: missing required fields {missing}")

    event_id = to_int(row["id"])
    if event_id is None:
        raise ValueError(f"Row {row_number}: invalid id '{row['id']}'")

    return LogEvent(
        event_id=event_id,
        timestamp=parse_timestamp(row.get("timestamp")),
        action=canonical_action(row["action"]),
        wo_id=to_int(row.get("wo_id")),
        device_id=to_int(row.get("device_id")),
        metadata={key: value for key, value in row.items() if key not in _CORE_FIELDS and value not in (None, "")},
    )


def parse(file_path: str) -> list[LogEvent]:
    """Parse CSV file into a list of log events."""

    with open(file_path, newline="", encoding="utf-8") as handle:
        reader = csv.DictReader(handle)
        if not reader.fieldnames:
            return []

        events: list[LogEvent] = []
        for row_number, row in enumerate(reader, start=2):
            events.append(_parse_row(row, row_number))
        return events
