"""Report orchestration: events in, classified timeline rows and statistics out."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Optional

import structlog

from cycle_report.baseline import resolve_baseline
from cycle_report.classifier import classify, classify_work_order, unknown
from cycle_report.config import ReportConfig
from cycle_report.formatting import round_half_up
from cycle_report.injector import annotate_extensions, inject_computed_rows
from cycle_report.job_grouper import group_cycles_into_jobs
from cycle_report.key_actions import build_key_split_disable_windows
from cycle_report.metrics import compute_cycle_metrics, is_cycle_row
from cycle_report.normalizer import normalize_logs
from cycle_report.pairer import pair_segment
from cycle_report.schema import (
    Action,
    EventRow,
    IdealGapRow,
    IdleGapRow,
    JobType,
    LoadingGapRow,
    LogEvent,
    OperatorSummary,
    PauseBanner,
    ReasonCode,
    ReportResult,
    ReportRow,
    ReportStats,
    Verdict,
    WoBreakdown,
    WoHeaderBanner,
    WorkOrderDetails,
    WorkOrderSegment,
    WoSummaryBanner,
    row_sort_key,
)
from cycle_report.segmenter import segment_logs

logger = structlog.get_logger(__name__)

_MALFORMED_REASONS = {
    ReasonCode.INVALID_TIMESTAMP,
    ReasonCode.INVALID_DURATION,
    ReasonCode.MISSING_BASELINE,
}


@dataclass
class _OperatorTotals:
    orders: set = field(default_factory=set)
    jobs: int = 0
    cycles: int = 0
    cutting_sec: float = 0.0
    pause_sec: float = 0.0


@dataclass
class _Totals:
    jobs: int = 0
    cycles: int = 0
    cutting_sec: float = 0.0
    pause_sec: float = 0.0
    loading_sec: float = 0.0
    idle_sec: float = 0.0
    duration_sec: float = 0.0
    alloted_qty: float = 0.0
    ok_qty: float = 0.0
    reject_qty: float = 0.0


def _segment_span_sec(segment: WorkOrderSegment) -> float:
    stamps = [event.timestamp for event in segment.events if event.timestamp is not None]
    if len(stamps) < 2:
        return 0.0
    return (max(stamps) - min(stamps)).total_seconds()


def _plain_row(event: LogEvent, segment: Optional[WorkOrderSegment] = None) -> ReportRow:
    return ReportRow(
        row_id=f"log-{event.event_id}",
        timestamp=event.timestamp,
        wo_id=event.wo_id,
        job_type=segment.job_type if segment is not None else JobType.UNKNOWN,
        body=EventRow(event=event),
    )


def _gap_totals(rows: list[ReportRow]) -> tuple[float, float]:
    loading = sum(row.body.duration_sec for row in rows if isinstance(row.body, LoadingGapRow))
    idle = sum(row.body.duration_sec for row in rows if isinstance(row.body, IdleGapRow))
    return loading, idle


def _history_key(event: LogEvent, details: Optional[WorkOrderDetails]) -> str:
    device_id = details.device_id if details is not None and details.device_id is not None else event.device_id
    part_no = (details.part_no if details is not None else "") or event.metadata.get("part_no") or "UNKNOWN_PART"
    return f"{device_id}:{part_no}"


class _RowClassifier:
    """Assigns one verdict per row, walking rows in chronological order.

    Cycle durations feed a rolling history per device/part key, so a cycle
    is only ever compared with cycles that came before it.
    """

    def __init__(self, work_orders: dict[int, WorkOrderDetails], config: ReportConfig):
        self.work_orders = work_orders
        self.config = config
        self.cycle_history: dict[str, list[float]] = {}
        self.order_history: dict[str, list[float]] = {}

    def _details(self, wo_id: Optional[int]) -> Optional[WorkOrderDetails]:
        return self.work_orders.get(wo_id) if wo_id is not None else None

    def _classify_cycle(self, row: ReportRow) -> Verdict:
        event = row.body.event
        details = self._details(row.wo_id)
        key = _history_key(event, details)
        history = self.cycle_history.setdefault(key, [])
        baseline = resolve_baseline(
            details.cycle_target() if details is not None else None,
            history,
            rolling_window=self.config.rolling_median_window,
            default_sec=self.config.fallback_ideal_sec,
        )
        verdict = classify(row.body.duration_sec, baseline.ideal_sec, self.config, baseline_source=baseline.source)
        history.append(row.body.duration_sec)
        return verdict

    def _classify_order(self, row: ReportRow) -> Verdict:
        details = self._details(row.wo_id) or WorkOrderDetails.placeholder(row.wo_id or 0)
        key = f"{details.device_id}:{details.part_no or 'UNKNOWN_PART'}"
        history = self.order_history.setdefault(key, [])
        verdict = classify_work_order(details, self.config, history)
        if details.duration_sec is not None:
            history.append(details.duration_sec)
        return verdict

    def verdict_for(self, row: ReportRow) -> Verdict:
        body = row.body
        if row.timestamp is None:
            return unknown(ReasonCode.INVALID_TIMESTAMP)

        if isinstance(body, EventRow):
            if is_cycle_row(row):
                return self._classify_cycle(row)
            if body.event.is_action(Action.ORDER_PAUSE) or body.event.is_action(Action.ORDER_RESUME):
                return unknown(ReasonCode.BREAK_CONTEXT)
            return unknown(ReasonCode.NON_PRODUCTION_EVENT)
        if isinstance(body, (IdealGapRow, LoadingGapRow, WoHeaderBanner)):
            return unknown(ReasonCode.NON_PRODUCTION_EVENT)
        if isinstance(body, IdleGapRow):
            return unknown(ReasonCode.BREAK_CONTEXT)
        if isinstance(body, PauseBanner):
            if body.from_extension and not body.is_break_like:
                return unknown(ReasonCode.EXTENSION_EVENT)
            return unknown(ReasonCode.BREAK_CONTEXT)
        if isinstance(body, WoSummaryBanner):
            return self._classify_order(row)
        raise TypeError(f"Unhandled report row body: {type(body).__name__}")


def _classify_rows(
    rows: list[ReportRow],
    work_orders: dict[int, WorkOrderDetails],
    config: ReportConfig,
) -> list[ReportRow]:
    classifier = _RowClassifier(work_orders, config)
    return [replace(row, verdict=classifier.verdict_for(row)) for row in sorted(rows, key=row_sort_key)]


def _assign_serials(rows: list[ReportRow]) -> list[ReportRow]:
    """Reverse-chronological order; serial numbers go to event rows only."""

    ordered = sorted(rows, key=row_sort_key, reverse=True)
    numbered: list[ReportRow] = []
    serial = 1
    for row in ordered:
        if row.is_synthetic:
            numbered.append(replace(row, serial_no=None))
        else:
            numbered.append(replace(row, serial_no=serial))
            serial += 1
    return numbered


def build_report(
    events: list[LogEvent],
    work_orders: dict[int, WorkOrderDetails],
    config: Optional[ReportConfig] = None,
) -> ReportResult:
    """Run the full pipeline for one device's event stream.

    ``work_orders`` maps work-order id to its pre-resolved metadata; orders
    missing from it are reported with placeholder details.
    """

    if events is None:
        raise TypeError("build_report requires an event collection, got None")
    if work_orders is None:
        raise TypeError("build_report requires a work-order mapping, got None")
    config = config or ReportConfig()

    normalized = normalize_logs(events)
    timed = [event for event in normalized if event.timestamp is not None]
    untimed = [event for event in normalized if event.timestamp is None]
    logger.debug("events_normalized", received=len(events), kept=len(normalized), untimed=len(untimed))

    segments = segment_logs(timed)
    logger.debug("events_segmented", segments=len(segments))

    rows: list[ReportRow] = [_plain_row(event) for event in untimed]
    totals = _Totals()
    breakdowns: list[WoBreakdown] = []
    operators: dict[str, _OperatorTotals] = {}
    counted_orders: set[Optional[int]] = set()

    for segment in segments:
        log = logger.bind(wo_id=segment.wo_id, job_type=segment.job_type.value, fallback=segment.is_fallback)
        if not segment.job_type.is_production:
            rows.extend(_plain_row(event, segment) for event in segment.events)
            log.debug("non_production_segment", events=len(segment.events))
            continue

        segment = pair_segment(segment)
        details = work_orders.get(segment.wo_id) if segment.wo_id is not None else None
        if details is None:
            details = WorkOrderDetails.placeholder(segment.wo_id or 0)
            log.debug("work_order_details_missing")

        blocks = group_cycles_into_jobs(
            segment.cycles,
            details.cycle_target(),
            max_gap_sec=config.max_gap_sec,
            tolerance_sec=config.tolerance_sec,
            max_cycles=config.max_cycles_per_job,
            split_disable_windows=build_key_split_disable_windows(segment.events),
        )
        segment_rows = inject_computed_rows(segment, blocks, details, config)
        segment_rows = annotate_extensions(segment_rows, details, config.pause_reason_tolerance_sec)

        measured = segment.measured_cycles
        jobs = sum(1 for block in blocks if block.is_measured)
        cutting_sec = sum(cycle.duration_sec for cycle in measured)
        pause_sec = sum(pause.duration_sec for pause in segment.pauses)
        loading_sec, idle_sec = _gap_totals(segment_rows)
        has_order_duration = bool(details.duration_sec and details.duration_sec > 0)
        duration_sec = details.duration_sec if has_order_duration else _segment_span_sec(segment)

        # an order split over several segments contributes its metadata once
        first_segment_of_order = segment.wo_id not in counted_orders
        counted_orders.add(segment.wo_id)

        totals.jobs += jobs
        totals.cycles += len(measured)
        totals.cutting_sec += cutting_sec
        totals.pause_sec += pause_sec
        totals.loading_sec += loading_sec
        totals.idle_sec += idle_sec
        if first_segment_of_order or not has_order_duration:
            totals.duration_sec += duration_sec
        if first_segment_of_order:
            totals.alloted_qty += details.alloted_qty or 0
            totals.ok_qty += details.ok_qty or 0
            totals.reject_qty += details.reject_qty or 0

        operator = details.start_name or "Unknown"
        breakdowns.append(
            WoBreakdown(
                wo_id=segment.wo_id,
                wo_label=details.wo_label,
                part_no=details.part_no,
                operator=operator,
                setting=details.setting,
                jobs=jobs,
                cycles=len(measured),
                cutting_sec=cutting_sec,
                pause_sec=pause_sec,
                loading_sec=loading_sec,
                idle_sec=idle_sec,
                alloted_qty=details.alloted_qty or 0,
                ok_qty=details.ok_qty or 0,
                reject_qty=details.reject_qty or 0,
                pcl=details.pcl,
                avg_cycle_sec=cutting_sec / len(measured) if measured else 0.0,
                start_time=details.start_time,
                end_time=details.end_time,
                duration_sec=duration_sec,
            )
        )

        entry = operators.setdefault(operator, _OperatorTotals())
        entry.orders.add(segment.wo_id)
        entry.jobs += jobs
        entry.cycles += len(measured)
        entry.cutting_sec += cutting_sec
        entry.pause_sec += pause_sec

        log.debug("segment_processed", cycles=len(measured), jobs=jobs, rows=len(segment_rows))
        rows.extend(segment_rows)

    classified = _classify_rows(rows, work_orders, config)
    final_rows = _assign_serials(classified)

    stats = ReportStats(
        total_jobs=totals.jobs,
        total_cycles=totals.cycles,
        total_cutting_sec=totals.cutting_sec,
        total_pause_sec=totals.pause_sec,
        total_loading_sec=totals.loading_sec,
        total_idle_sec=totals.idle_sec,
        total_duration_sec=totals.duration_sec,
        utilization_pct=round_half_up(totals.cutting_sec / totals.duration_sec * 100) if totals.duration_sec > 0 else 0,
        total_alloted_qty=totals.alloted_qty,
        total_ok_qty=totals.ok_qty,
        total_reject_qty=totals.reject_qty,
        invalid_rows=sum(
            1 for row in final_rows if row.verdict is not None and row.verdict.reason_code in _MALFORMED_REASONS
        ),
        wo_breakdowns=breakdowns,
        operator_summaries=[
            OperatorSummary(
                name=name,
                wo_count=len(entry.orders),
                total_jobs=entry.jobs,
                total_cycles=entry.cycles,
                total_cutting_sec=entry.cutting_sec,
                total_pause_sec=entry.pause_sec,
                avg_cycle_sec=entry.cutting_sec / entry.cycles if entry.cycles else 0.0,
            )
            for name, entry in operators.items()
        ],
    )

    logger.info(
        "report_built",
        rows=len(final_rows),
        jobs=stats.total_jobs,
        cycles=stats.total_cycles,
        invalid_rows=stats.invalid_rows,
    )
    return ReportResult(rows=final_rows, stats=stats, metrics=compute_cycle_metrics(final_rows))
