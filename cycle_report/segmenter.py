"""Work-order segmentation of a normalized event stream.

Events are scoped to the ORDER_START..ORDER_STOP span of their own work
order. Anything seen outside such a span (for example an order whose start
precedes the query window) is collected into per-order fallback segments.
"""

from __future__ import annotations

from typing import Any, Optional

from cycle_report.schema import SETTING_JOB_TYPE_CODE, Action, JobType, LogEvent, WorkOrderSegment

_CYCLE_ACTIONS = {Action.CYCLE_START.value, Action.CYCLE_END.value}


def _job_type_code(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def job_type_for_start(start_event: LogEvent) -> JobType:
    """Job type from the type code carried on ORDER_START; Production when absent."""

    code = _job_type_code(start_event.metadata.get("job_type"))
    if code == SETTING_JOB_TYPE_CODE:
        return JobType.SETTING
    return JobType.PRODUCTION


def _fallback_job_type(wo_id: Optional[int], events: list[LogEvent]) -> JobType:
    has_cycle_event = any(event.action in _CYCLE_ACTIONS for event in events)
    return JobType.PRODUCTION if wo_id and has_cycle_event else JobType.UNKNOWN


def _first_timestamp(segment: WorkOrderSegment):
    first = segment.events[0].timestamp if segment.events else None
    return (0, 0) if first is None else (1, first)


def segment_logs(events: list[LogEvent]) -> list[WorkOrderSegment]:
    """Partition a normalized stream into per-work-order segments."""

    segments: list[WorkOrderSegment] = []
    active: Optional[WorkOrderSegment] = None
    unassigned: list[LogEvent] = []

    for event in events:
        if event.is_action(Action.ORDER_START):
            if active is not None:
                # closed without a matching stop
                segments.append(active)
            active = WorkOrderSegment(
                wo_id=event.wo_id,
                events=[event],
                job_type=job_type_for_start(event),
            )
        elif event.is_action(Action.ORDER_STOP):
            if active is not None and active.wo_id == event.wo_id:
                active.events.append(event)
                segments.append(active)
                active = None
            else:
                unassigned.append(event)
        elif active is not None and active.wo_id == event.wo_id:
            active.events.append(event)
        else:
            unassigned.append(event)

    if active is not None:
        segments.append(active)

    by_wo: dict[Optional[int], list[LogEvent]] = {}
    for event in unassigned:
        by_wo.setdefault(event.wo_id or None, []).append(event)

    for wo_id, wo_events in by_wo.items():
        ordered = sorted(wo_events, key=lambda e: (0, 0) if e.timestamp is None else (1, e.timestamp))
        segments.append(
            WorkOrderSegment(
                wo_id=wo_id,
                events=ordered,
                job_type=_fallback_job_type(wo_id, ordered),
                is_fallback=True,
            )
        )

    return sorted(segments, key=_first_timestamp)
