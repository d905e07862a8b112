"""KEY_ON / KEY_OFF manual key entries."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from cycle_report.schema import Action, LogEvent


@dataclass(frozen=True)
class KeySplitDisableWindow:
    """Span during which grouping must not split a job on a long gap.

    ``end`` is ``None`` when the key was never turned off.
    """

    start: datetime
    end: Optional[datetime]

    def active_at(self, moment: datetime) -> bool:
        return self.start < moment and (self.end is None or self.end >= moment)


def _normalize_action(action: Optional[str]) -> str:
    return str(action or "").strip().upper()


def is_key_action(action: Optional[str]) -> bool:
    return _normalize_action(action) in (Action.KEY_ON.value, Action.KEY_OFF.value)


def key_action_summary(action: Optional[str]) -> str:
    normalized = _normalize_action(action)
    if normalized == Action.KEY_ON.value:
        return "Manual entry: KEY ON"
    if normalized == Action.KEY_OFF.value:
        return "Manual entry: KEY OFF"
    return "Manual key entry"


def build_key_split_disable_windows(events: list[LogEvent]) -> list[KeySplitDisableWindow]:
    timed = sorted(
        (event for event in events if event.timestamp is not None),
        key=lambda e: (e.timestamp, e.event_id),
    )

    windows: list[KeySplitDisableWindow] = []
    active_start: Optional[datetime] = None
    for event in timed:
        action = _normalize_action(event.action)
        if action == Action.KEY_ON.value:
            if active_start is None:
                active_start = event.timestamp
        elif action == Action.KEY_OFF.value and active_start is not None:
            windows.append(KeySplitDisableWindow(start=active_start, end=event.timestamp))
            active_start = None

    if active_start is not None:
        windows.append(KeySplitDisableWindow(start=active_start, end=None))
    return windows


def split_disabled_at(moment: datetime, windows: list[KeySplitDisableWindow]) -> bool:
    return any(window.active_at(moment) for window in windows)
