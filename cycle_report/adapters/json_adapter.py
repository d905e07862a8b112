"""JSON adapter for device events and work-order metadata."""

from __future__ import annotations

import json

from cycle_report.adapters.fields import canonical_action, parse_timestamp, to_int, to_number, to_text
from cycle_report.schema import Extension, LogEvent, WorkOrderDetails

_REQUIRED_FIELDS = ("action",)
_ID_FIELDS = ("id", "log_id")
_TIME_FIELDS = ("timestamp", "log_time")
_CORE_FIELDS = {"id", "log_id", "timestamp", "log_time", "action", "wo_id", "device_id"}


def _first_present(item: dict, names: tuple[str, ...]):
    for name in names:
        if item.get(name) not in (None, ""):
            return item[name]
    return None


def parse_event(item: dict, index: int) -> LogEvent:
    if not isinstance(item, dict):
        raise ValueError(f"Item {index}: expected an object")

    missing = [field for field in _REQUIRED_FIELDS if not item.get(field)]
    event_id = to_int(_first_present(item, _ID_FIELDS))
    if event_id is None:
        missing.append("id")
    if missing:
        raise ValueError(f"Item {index}: missing required fields {missing}")

    return LogEvent(
        event_id=event_id,
        timestamp=parse_timestamp(_first_present(item, _TIME_FIELDS)),
        action=canonical_action(item["action"]),
        wo_id=to_int(item.get("wo_id")),
        device_id=to_int(item.get("device_id")),
        metadata={key: value for key, value in item.items() if key not in _CORE_FIELDS},
    )


def parse_events_payload(payload) -> list[LogEvent]:
    if not isinstance(payload, list):
        raise ValueError("JSON payload must be a list of objects")
    return [parse_event(item, i) for i, item in enumerate(payload, start=1)]


def parse(file_path: str) -> list[LogEvent]:
    """Parse a JSON file holding a list of device log entries."""

    with open(file_path, encoding="utf-8") as handle:
        payload = json.load(handle)
    return parse_events_payload(payload)


def _parse_extension(item: dict) -> Extension:
    comment = item.get("extension_comment")
    return Extension(
        extension_id=to_int(item.get("id")) or -1,
        wo_id=to_int(item.get("wo_id")),
        timestamp=parse_timestamp(item.get("extension_time")),
        comment=comment if isinstance(comment, str) else None,
        duration_sec=to_number(item.get("extension_duration")),
    )


def parse_work_order(item: dict, index: int) -> WorkOrderDetails:
    if not isinstance(item, dict):
        raise ValueError(f"Work order {index}: expected an object")
    wo_id = to_int(item.get("id"))
    if wo_id is None:
        raise ValueError(f"Work order {index}: missing required fields ['id']")

    return WorkOrderDetails(
        wo_id=wo_id,
        wo_label=to_text(item.get("wo_id")) or str(wo_id),
        part_no=to_text(item.get("part_no")),
        pcl=to_number(item.get("pcl")),
        target_duration=to_number(item.get("target_duration")),
        job_type=to_int(item.get("job_type")),
        start_time=parse_timestamp(item.get("start_time")),
        end_time=parse_timestamp(item.get("end_time")),
        duration_sec=to_number(item.get("duration")),
        time_saved_sec=to_number(item.get("time_saved")),
        alloted_qty=to_number(item.get("alloted_qty")),
        ok_qty=to_number(item.get("ok_qty")),
        reject_qty=to_number(item.get("reject_qty")),
        start_name=to_text(item.get("start_name")),
        stop_name=to_text(item.get("stop_name")),
        start_comment=to_text(item.get("start_comment")),
        stop_comment=to_text(item.get("stop_comment")),
        setting=to_text(item.get("setting")),
        device_id=to_int(item.get("device_id")),
        extensions=tuple(_parse_extension(ext) for ext in item.get("extensions") or [] if isinstance(ext, dict)),
    )


def parse_work_orders(file_path: str) -> dict[int, WorkOrderDetails]:
    """Parse a JSON list of work orders into a map keyed by work-order id."""

    with open(file_path, encoding="utf-8") as handle:
        payload = json.load(handle)

    if not isinstance(payload, list):
        raise ValueError("JSON payload must be a list of objects")

    details = [parse_work_order(item, i) for i, item in enumerate(payload, start=1)]
    return {detail.wo_id: detail for detail in details}
