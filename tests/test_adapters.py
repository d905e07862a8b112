import json
from datetime import datetime, timezone

import pytest

from cycle_report.adapters.csv_adapter import parse as parse_csv
from cycle_report.adapters.json_adapter import parse as parse_json
from cycle_report.adapters.json_adapter import parse_work_orders


def test_csv_parse_success(tmp_path):
    path = tmp_path / "events.csv"
    path.write_text(
        "id,timestamp,action,wo_id,device_id,job_type\n"
        "1,2026-02-09T08:00:00Z,WO_START,900,15,2\n"
        "2,2026-02-09T08:00:10Z,SPINDLE_ON,900,15,\n",
        encoding="utf-8",
    )
    events = parse_csv(str(path))
    assert len(events) == 2
    assert events[0].action == "ORDER_START"
    assert events[0].metadata == {"job_type": "2"}
    assert events[1].action == "CYCLE_START"
    assert events[1].timestamp == datetime(2026, 2, 9, 8, 0, 10, tzinfo=timezone.utc)
    assert events[1].wo_id == 900


def test_csv_missing_id_is_rejected(tmp_path):
    path = tmp_path / "events.csv"
    path.write_text("id,timestamp,action\n,2026-02-09T08:00:00Z,CYCLE_END\n", encoding="utf-8")
    with pytest.raises(ValueError, match="Row 2"):
        parse_csv(str(path))


def test_csv_bad_timestamp_is_kept_untimed(tmp_path):
    path = tmp_path / "events.csv"
    path.write_text("id,timestamp,action\n7,bad,CYCLE_END\n", encoding="utf-8")
    (event,) = parse_csv(str(path))
    assert event.event_id == 7
    assert event.timestamp is None


def test_json_parse_accepts_alternate_field_names(tmp_path):
    path = tmp_path / "events.json"
    payload = [
        {"id": 1, "timestamp": "2026-02-09T08:00:00+00:00", "action": "CYCLE_START", "wo_id": 900},
        {"log_id": 2, "log_time": "2026-02-09T08:01:00Z", "action": "SPINDLE_OFF", "wo_id": 900, "part_no": "P-1"},
    ]
    path.write_text(json.dumps(payload), encoding="utf-8")
    events = parse_json(str(path))
    assert [e.event_id for e in events] == [1, 2]
    assert events[1].action == "CYCLE_END"
    assert events[1].metadata == {"part_no": "P-1"}


def test_json_missing_fields_are_reported(tmp_path):
    path = tmp_path / "events.json"
    path.write_text(json.dumps([{"timestamp": "2026-02-09T08:00:00Z"}]), encoding="utf-8")
    with pytest.raises(ValueError, match="Item 1"):
        parse_json(str(path))


def test_json_payload_must_be_a_list(tmp_path):
    path = tmp_path / "events.json"
    path.write_text(json.dumps({"id": 1}), encoding="utf-8")
    with pytest.raises(ValueError, match="must be a list"):
        parse_json(str(path))


def test_parse_work_orders(tmp_path):
    path = tmp_path / "work_orders.json"
    payload = [
        {
            "id": 900,
            "wo_id": "WO-900",
            "part_no": "P-100",
            "pcl": 700,
            "job_type": 1,
            "start_time": "2026-02-09T08:00:00Z",
            "end_time": "2026-02-09T09:00:00Z",
            "duration": 3600,
            "ok_qty": "4",
            "start_name": "Ravi",
            "extensions": [
                {
                    "id": 3,
                    "wo_id": 900,
                    "extension_time": "2026-02-09T08:30:00Z",
                    "extension_comment": "Tea break",
                    "extension_duration": 600,
                }
            ],
        }
    ]
    path.write_text(json.dumps(payload), encoding="utf-8")

    details = parse_work_orders(str(path))[900]
    assert details.wo_label == "WO-900"
    assert details.pcl == 700
    assert details.cycle_target() == 700
    assert details.duration_sec == 3600
    assert details.ok_qty == 4
    assert details.start_name == "Ravi"
    (extension,) = details.extensions
    assert extension.comment == "Tea break"
    assert extension.is_break_like(("tea",))


def test_json_offset_less_timestamps_are_utc(tmp_path):
    path = tmp_path / "events.json"
    payload = [
        {"id": 1, "timestamp": "2026-02-09T08:00:00Z", "action": "CYCLE_START", "wo_id": 900},
        {"id": 2, "timestamp": "2026-02-09T08:00:10", "action": "CYCLE_END", "wo_id": 900},
    ]
    path.write_text(json.dumps(payload), encoding="utf-8")

    first, second = parse_json(str(path))
    assert second.timestamp == datetime(2026, 2, 9, 8, 0, 10, tzinfo=timezone.utc)
    assert (second.timestamp - first.timestamp).total_seconds() == 10
