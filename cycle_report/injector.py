"""Builds the per-segment timeline: raw event rows merged with computed rows.

Computed rows cover the ideal (setup) time before the first cycle, loading
and idle gaps between cycles, pause banners, and the work-order header and
summary banners. Synthetic rows are placed a few milliseconds away from the
event they are anchored on so they sort next to it without colliding.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta
from typing import Optional

from cycle_report.config import ReportConfig
from cycle_report.formatting import format_duration, format_variance
from cycle_report.key_actions import is_key_action, key_action_summary
from cycle_report.schema import (
    Action,
    Cycle,
    EventRow,
    IdealGapRow,
    IdleGapRow,
    JobBlock,
    LoadingGapRow,
    LogEvent,
    PauseBanner,
    PausePeriod,
    ReportRow,
    WoHeaderBanner,
    WorkOrderDetails,
    WorkOrderSegment,
    WoSummaryBanner,
    as_utc,
    row_sort_key,
)

BANNER_OFFSET = timedelta(milliseconds=1)
GAP_OFFSET = timedelta(milliseconds=500)
IDEAL_OFFSET = timedelta(seconds=1)

_BOUNDARY_ACTIONS = {
    Action.ORDER_PAUSE.value,
    Action.ORDER_RESUME.value,
    Action.ORDER_STOP.value,
    Action.ORDER_START.value,
}


def find_pause_reason(
    pause_event: LogEvent,
    details: Optional[WorkOrderDetails],
    tolerance_sec: float = 300.0,
) -> Optional[str]:
    """Comment of the extension nearest the pause, if one lies within tolerance."""

    if details is None or not details.extensions or pause_event.timestamp is None:
        return None

    best_comment: Optional[str] = None
    best_diff = float("inf")
    for extension in details.extensions:
        if extension.timestamp is None or not extension.comment:
            continue
        diff = abs((as_utc(extension.timestamp) - as_utc(pause_event.timestamp)).total_seconds())
        if diff < tolerance_sec and diff < best_diff:
            best_diff = diff
            best_comment = extension.comment
    return best_comment


class _SegmentTimeline:
    """Accumulates rows for a single segment."""

    def __init__(self, segment: WorkOrderSegment, details: WorkOrderDetails, config: ReportConfig):
        self.segment = segment
        self.details = details
        self.config = config
        self.operator = details.start_name or ""
        self.rows: list[ReportRow] = []
        self.emitted_ids: set[int] = set()

    def add(self, row_id: str, timestamp: Optional[datetime], body, summary: Optional[str] = None) -> None:
        self.rows.append(
            ReportRow(
                row_id=row_id,
                timestamp=timestamp,
                wo_id=self.segment.wo_id,
                job_type=self.segment.job_type,
                body=body,
                operator_name=self.operator,
                summary=summary,
            )
        )

    def add_event(self, event: LogEvent, summary: Optional[str] = None, **body_fields) -> None:
        self.emitted_ids.add(event.event_id)
        self.add(f"log-{event.event_id}", event.timestamp, EventRow(event=event, **body_fields), summary)

    def add_gap(self, row_id: str, anchor: datetime, gap_sec: float, block_label: Optional[str]) -> None:
        summary = format_duration(gap_sec)
        if gap_sec <= self.config.max_loading_gap_sec:
            self.add(row_id, anchor + GAP_OFFSET, LoadingGapRow(duration_sec=gap_sec, block_label=block_label), summary)
        else:
            self.add(row_id, anchor + GAP_OFFSET, IdleGapRow(duration_sec=gap_sec), summary)


def _intervening(segment: WorkOrderSegment, after: datetime, before: datetime) -> list[LogEvent]:
    return [
        event
        for event in segment.events
        if event.timestamp is not None and after < event.timestamp < before and event.action in _BOUNDARY_ACTIONS
    ]


def _emit_gap(timeline: _SegmentTimeline, cycle: Cycle, next_cycle: Cycle, block_label: Optional[str]) -> None:
    off_ts = cycle.end.timestamp
    next_on_ts = next_cycle.start.timestamp
    gap_sec = (next_on_ts - off_ts).total_seconds()
    ceiling = timeline.config.max_loading_gap_sec

    between = _intervening(timeline.segment, off_ts, next_on_ts)
    if any(event.is_action(Action.ORDER_STOP) for event in between):
        return

    pause = next((event for event in between if event.is_action(Action.ORDER_PAUSE)), None)
    if pause is not None:
        resume = next((event for event in between if event.is_action(Action.ORDER_RESUME)), None)
        pre_sec = (pause.timestamp - off_ts).total_seconds()
        if 0 < pre_sec <= ceiling:
            timeline.add_gap(f"computed-pre-{cycle.end.event_id}", off_ts, pre_sec, block_label)
        if resume is not None:
            post_sec = (next_on_ts - resume.timestamp).total_seconds()
            if 0 < post_sec <= ceiling:
                timeline.add_gap(f"computed-post-{resume.event_id}", resume.timestamp, post_sec, block_label)
        return

    if gap_sec > ceiling:
        timeline.add_gap(f"computed-idle-{cycle.end.event_id}", off_ts, gap_sec, None)
    elif gap_sec > 0:
        timeline.add_gap(f"computed-load-{cycle.end.event_id}", off_ts, gap_sec, block_label)


def _emit_blocks(timeline: _SegmentTimeline, blocks: list[JobBlock]) -> None:
    ordered = [(block, index, cycle) for block in blocks for index, cycle in enumerate(block.cycles)]
    for position, (block, index, cycle) in enumerate(ordered):
        is_final = index == len(block.cycles) - 1
        has_target = bool(block.target_sec)

        timeline.add_event(
            cycle.start,
            summary=format_variance(block.variance_sec) if is_final and has_target else None,
            block_label=block.label,
            block=block,
            is_block_final=is_final,
        )
        timeline.add_event(
            cycle.end,
            summary=format_duration(block.total_sec) if is_final and has_target else None,
            duration_sec=cycle.duration_sec,
            block_label=block.label,
            block=block,
            is_block_final=is_final,
        )

        if position + 1 < len(ordered):
            next_cycle = ordered[position + 1][2]
            # gaps inside a block stay inside its visual group
            _emit_gap(timeline, cycle, next_cycle, block.label if not is_final else None)


def _emit_pauses(timeline: _SegmentTimeline) -> None:
    segment, config = timeline.segment, timeline.config
    pairs: dict[int, PausePeriod] = {pause.pause.event_id: pause for pause in segment.pauses}

    for event in segment.events:
        if event.timestamp is None:
            continue
        if not (event.is_action(Action.ORDER_PAUSE) or event.is_action(Action.ORDER_RESUME)):
            continue

        duration_sec = None
        pair = pairs.get(event.event_id) if event.is_action(Action.ORDER_PAUSE) else None
        if pair is not None:
            duration_sec = pair.duration_sec
            is_shift_break = pair.duration_sec > config.shift_break_sec
            reason = find_pause_reason(event, timeline.details, config.pause_reason_tolerance_sec)
            lowered = (reason or "").lower()
            is_break_like = is_shift_break or any(keyword.lower() in lowered for keyword in config.break_keywords)
            from_extension = bool(reason)
            if not reason:
                reason = "Shift Break / Machine Off" if is_shift_break else "Paused"
            timeline.add(
                f"pause-banner-{event.event_id}",
                event.timestamp - BANNER_OFFSET,
                PauseBanner(
                    reason=reason,
                    duration_sec=pair.duration_sec,
                    is_shift_break=is_shift_break,
                    is_break_like=is_break_like,
                    from_extension=from_extension,
                ),
                summary=format_duration(pair.duration_sec),
            )

        timeline.add_event(event, duration_sec=duration_sec)


def _summary_banner(timeline: _SegmentTimeline, blocks: list[JobBlock]) -> WoSummaryBanner:
    segment, details, config = timeline.segment, timeline.details, timeline.config
    pause_reasons = tuple(
        reason
        for reason in (
            find_pause_reason(pause.pause, details, config.pause_reason_tolerance_sec) for pause in segment.pauses
        )
        if reason
    )
    return WoSummaryBanner(
        wo_label=details.wo_label,
        part_no=details.part_no,
        operator_name=timeline.operator,
        setting=details.setting,
        device_id=details.device_id,
        start_time=details.start_time,
        end_time=details.end_time,
        duration_sec=details.duration_sec,
        total_jobs=sum(1 for block in blocks if block.is_measured),
        total_cycles=len(segment.measured_cycles),
        cutting_sec=sum(cycle.duration_sec for cycle in segment.cycles),
        pause_sec=sum(pause.duration_sec for pause in segment.pauses),
        alloted_qty=details.alloted_qty,
        ok_qty=details.ok_qty,
        reject_qty=details.reject_qty,
        pause_reasons=pause_reasons,
        start_comment=details.start_comment,
        stop_comment=details.stop_comment,
    )


def inject_computed_rows(
    segment: WorkOrderSegment,
    blocks: list[JobBlock],
    details: Optional[WorkOrderDetails] = None,
    config: Optional[ReportConfig] = None,
) -> list[ReportRow]:
    """Timeline rows for one paired, grouped segment, ascending by timestamp."""

    config = config or ReportConfig()
    details = details or WorkOrderDetails.placeholder(segment.wo_id or 0)
    timeline = _SegmentTimeline(segment, details, config)

    start_event = segment.first_of(Action.ORDER_START)
    stop_event = segment.first_of(Action.ORDER_STOP)

    if start_event is not None and start_event.timestamp is not None:
        timeline.add(
            f"wo-header-{start_event.event_id}",
            start_event.timestamp - BANNER_OFFSET,
            WoHeaderBanner(
                wo_label=details.wo_label,
                part_no=details.part_no,
                operator_name=timeline.operator,
                pcl_sec=details.pcl or 0,
                setting=details.setting,
                device_id=details.device_id,
                start_comment=details.start_comment,
            ),
        )
        timeline.add_event(start_event, summary=details.start_comment or None)

    first_cycle = blocks[0].cycles[0] if blocks and blocks[0].cycles else None
    if first_cycle is not None:
        anchor = start_event if start_event is not None else segment.events[0]
        if anchor.timestamp is not None:
            ideal_sec = (first_cycle.start.timestamp - anchor.timestamp).total_seconds()
            if ideal_sec > 0:
                timeline.add(
                    f"computed-ideal-{anchor.event_id}",
                    anchor.timestamp + IDEAL_OFFSET,
                    IdealGapRow(duration_sec=ideal_sec),
                    summary=format_duration(ideal_sec),
                )

    _emit_blocks(timeline, blocks)
    _emit_pauses(timeline)

    if stop_event is not None and stop_event.timestamp is not None:
        timeline.add_event(stop_event, summary=details.stop_comment or None)
        timeline.add(
            f"wo-summary-{stop_event.event_id}",
            stop_event.timestamp + BANNER_OFFSET,
            _summary_banner(timeline, blocks),
        )

    for event in segment.events:
        if event.event_id in timeline.emitted_ids:
            continue
        summary = key_action_summary(event.action) if is_key_action(event.action) else None
        timeline.add_event(event, summary=summary)

    return sorted(timeline.rows, key=row_sort_key)


def annotate_extensions(
    rows: list[ReportRow],
    details: Optional[WorkOrderDetails],
    tolerance_sec: float = 300.0,
) -> list[ReportRow]:
    """Append each extension comment to the nearest row within tolerance."""

    if details is None or not details.extensions:
        return rows

    annotated = list(rows)
    for extension in details.extensions:
        if extension.timestamp is None or not extension.comment:
            continue

        closest_index: Optional[int] = None
        min_diff = float("inf")
        for index, row in enumerate(annotated):
            if row.timestamp is None:
                continue
            diff = abs((as_utc(row.timestamp) - as_utc(extension.timestamp)).total_seconds())
            if diff < min_diff:
                min_diff = diff
                closest_index = index

        if closest_index is not None and min_diff < tolerance_sec:
            row = annotated[closest_index]
            summary = f"{row.summary} ({extension.comment})" if row.summary else extension.comment
            annotated[closest_index] = replace(row, summary=summary)

    return annotated
