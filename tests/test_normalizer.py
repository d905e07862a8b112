from datetime import datetime, timedelta, timezone

import pytest

from cycle_report.normalizer import extract_wo_ids, normalize_logs
from cycle_report.schema import LogEvent

BASE = datetime(2026, 2, 9, 8, 0, tzinfo=timezone.utc)


def event(event_id, offset_sec, action="CYCLE_START", wo_id=900):
    timestamp = None if offset_sec is None else BASE + timedelta(seconds=offset_sec)
    return LogEvent(event_id, timestamp, action, wo_id, 15)


def test_sorts_ascending_by_timestamp():
    events = [event(3, 30), event(1, 10), event(2, 20)]
    assert [e.event_id for e in normalize_logs(events)] == [1, 2, 3]


def test_first_duplicate_wins():
    first = event(7, 10, action="CYCLE_START")
    duplicate = event(7, 5, action="CYCLE_END")
    result = normalize_logs([first, event(8, 20), duplicate])
    assert [e.event_id for e in result] == [7, 8]
    assert result[0].action == "CYCLE_START"


def test_equal_timestamps_keep_input_order():
    events = [event(5, 10), event(2, 10), event(9, 10)]
    assert [e.event_id for e in normalize_logs(events)] == [5, 2, 9]


def test_untimed_events_go_last_in_input_order():
    events = [event(1, None), event(2, 20), event(3, None), event(4, 10)]
    assert [e.event_id for e in normalize_logs(events)] == [4, 2, 1, 3]


def test_normalization_is_idempotent():
    events = [event(3, 30), event(1, 10), event(1, 40), event(2, None), event(4, 10)]
    once = normalize_logs(events)
    assert normalize_logs(once) == once
    assert len(once) <= len(events)


def test_none_collection_fails_loudly():
    with pytest.raises(TypeError):
        normalize_logs(None)


def test_extract_wo_ids_first_seen_order():
    events = [event(1, 0, wo_id=5), event(2, 1, wo_id=3), event(3, 2, wo_id=5), event(4, 3, wo_id=None)]
    assert extract_wo_ids(events) == [5, 3]


def test_offset_less_timestamps_sort_with_aware_ones():
    naive = LogEvent(1, datetime(2026, 2, 9, 8, 0, 5), "CYCLE_END", 900, 15)
    result = normalize_logs([naive, event(2, 0), event(3, 10)])
    assert [e.event_id for e in result] == [2, 1, 3]
    assert result[1].timestamp == BASE + timedelta(seconds=5)
