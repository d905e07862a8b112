"""Log normalization: dedupe by id, then stable time sort."""

from __future__ import annotations

from dataclasses import replace

import structlog

from cycle_report.schema import LogEvent, as_utc

logger = structlog.get_logger(__name__)


def normalize_logs(events: list[LogEvent]) -> list[LogEvent]:
    """Drop repeated ids (first occurrence wins) and sort ascending by timestamp.

    Events without a valid timestamp keep their relative order after every
    timed event. Offset-less timestamps are read as UTC.
    """

    if events is None:
        raise TypeError("normalize_logs requires an event collection, got None")

    seen_ids: set[int] = set()
    unique: list[LogEvent] = []
    for event in events:
        if event.event_id in seen_ids:
            continue
        seen_ids.add(event.event_id)
        if event.timestamp is not None and event.timestamp.tzinfo is None:
            event = replace(event, timestamp=as_utc(event.timestamp))
        unique.append(event)

    dropped = len(events) - len(unique)
    if dropped:
        logger.debug("duplicate_events_dropped", dropped=dropped)

    timed = sorted((e for e in unique if e.timestamp is not None), key=lambda e: e.timestamp)
    untimed = [e for e in unique if e.timestamp is None]
    return timed + untimed


def extract_wo_ids(events: list[LogEvent]) -> list[int]:
    """Distinct non-empty work-order ids in first-seen order."""

    ids: dict[int, None] = {}
    for event in events:
        if event.wo_id:
            ids.setdefault(event.wo_id, None)
    return list(ids)
