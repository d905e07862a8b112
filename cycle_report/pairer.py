"""Pairs cycle start/end and pause/resume events within a segment."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional, Union

import structlog

from cycle_report.schema import Action, Cycle, LogEvent, PausePeriod, WorkOrderSegment

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class PendingStart:
    event: LogEvent


PairingState = Union[Idle, PendingStart]

IDLE = Idle()


def _duration_sec(start: LogEvent, end: LogEvent) -> float:
    return max(0.0, (end.timestamp - start.timestamp).total_seconds())


def on_start(state: PairingState, event: LogEvent) -> PairingState:
    """Start transition.

    A start that arrives while another start is pending replaces it: the
    latest start wins and the earlier one produces no pair.
    """

    if isinstance(state, PendingStart):
        logger.debug(
            "pending_start_replaced",
            replaced_event_id=state.event.event_id,
            event_id=event.event_id,
            action=event.action,
        )
    return PendingStart(event)


def on_end(state: PairingState, event: LogEvent) -> tuple[PairingState, Optional[tuple[LogEvent, float]]]:
    """End transition; returns the closed (start, duration) pair, if any.

    An end with nothing pending is discarded.
    """

    if isinstance(state, PendingStart):
        return IDLE, (state.event, _duration_sec(state.event, event))
    return IDLE, None


def pair_events(events: list[LogEvent]) -> tuple[list[Cycle], list[PausePeriod]]:
    """Single forward scan; cycle and pause states advance independently."""

    cycles: list[Cycle] = []
    pauses: list[PausePeriod] = []
    cycle_state: PairingState = IDLE
    pause_state: PairingState = IDLE

    for event in events:
        if event.timestamp is None:
            continue

        if event.is_action(Action.CYCLE_START):
            cycle_state = on_start(cycle_state, event)
        elif event.is_action(Action.CYCLE_END):
            cycle_state, closed = on_end(cycle_state, event)
            if closed is not None:
                start, duration = closed
                cycles.append(Cycle(start=start, end=event, duration_sec=duration))

        if event.is_action(Action.ORDER_PAUSE):
            pause_state = on_start(pause_state, event)
        elif event.is_action(Action.ORDER_RESUME):
            pause_state, closed = on_end(pause_state, event)
            if closed is not None:
                start, duration = closed
                pauses.append(PausePeriod(pause=start, resume=event, duration_sec=duration))

    return cycles, pauses


def pair_segment(segment: WorkOrderSegment) -> WorkOrderSegment:
    """Return a copy of ``segment`` with its cycle and pause lists filled."""

    cycles, pauses = pair_events(segment.events)
    return replace(segment, cycles=cycles, pauses=pauses)
