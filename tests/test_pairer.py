from datetime import datetime, timedelta, timezone

from cycle_report.pairer import IDLE, PendingStart, on_end, on_start, pair_events, pair_segment
from cycle_report.schema import LogEvent, WorkOrderSegment

BASE = datetime(2026, 2, 9, 8, 0, tzinfo=timezone.utc)


def event(event_id, offset_sec, action, wo_id=900):
    timestamp = None if offset_sec is None else BASE + timedelta(seconds=offset_sec)
    return LogEvent(event_id, timestamp, action, wo_id, 15)


def test_pairs_consecutive_start_end():
    cycles, pauses = pair_events(
        [
            event(1, 0, "CYCLE_START"),
            event(2, 60, "CYCLE_END"),
            event(3, 120, "CYCLE_START"),
            event(4, 200, "CYCLE_END"),
        ]
    )
    assert [c.duration_sec for c in cycles] == [60.0, 80.0]
    assert [(c.start.event_id, c.end.event_id) for c in cycles] == [(1, 2), (3, 4)]
    assert pauses == []


def test_end_without_start_is_discarded():
    cycles, _ = pair_events([event(1, 0, "CYCLE_END"), event(2, 10, "CYCLE_START"), event(3, 40, "CYCLE_END")])
    assert len(cycles) == 1
    assert cycles[0].start.event_id == 2


def test_repeated_start_keeps_latest():
    cycles, _ = pair_events([event(1, 0, "CYCLE_START"), event(2, 10, "CYCLE_START"), event(3, 30, "CYCLE_END")])
    assert len(cycles) == 1
    assert cycles[0].start.event_id == 2
    assert cycles[0].duration_sec == 20.0


def test_pause_pairing_is_independent_of_cycles():
    cycles, pauses = pair_events(
        [
            event(1, 0, "CYCLE_START"),
            event(2, 10, "ORDER_PAUSE"),
            event(3, 50, "ORDER_RESUME"),
            event(4, 70, "CYCLE_END"),
        ]
    )
    assert [c.duration_sec for c in cycles] == [70.0]
    assert [p.duration_sec for p in pauses] == [40.0]
    assert pauses[0].pause.event_id == 2


def test_untimed_events_are_skipped():
    cycles, _ = pair_events([event(1, 0, "CYCLE_START"), event(2, None, "CYCLE_END"), event(3, 45, "CYCLE_END")])
    assert [c.end.event_id for c in cycles] == [3]


def test_duration_is_never_negative():
    cycles, _ = pair_events([event(1, 30, "CYCLE_START"), event(2, 10, "CYCLE_END")])
    assert cycles[0].duration_sec == 0.0


def test_state_transitions():
    start = event(1, 0, "CYCLE_START")
    state = on_start(IDLE, start)
    assert state == PendingStart(start)

    state, closed = on_end(state, event(2, 15, "CYCLE_END"))
    assert state is IDLE
    assert closed == (start, 15.0)

    state, closed = on_end(state, event(3, 20, "CYCLE_END"))
    assert state is IDLE
    assert closed is None


def test_pair_segment_fills_copy():
    segment = WorkOrderSegment(wo_id=900, events=[event(1, 0, "CYCLE_START"), event(2, 5, "CYCLE_END")])
    paired = pair_segment(segment)
    assert len(paired.cycles) == 1
    assert segment.cycles == []
