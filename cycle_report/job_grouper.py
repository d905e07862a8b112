"""Best-fit grouping of consecutive cycles into job blocks."""

from __future__ import annotations

from typing import Optional

from cycle_report.key_actions import KeySplitDisableWindow, split_disabled_at
from cycle_report.schema import Cycle, JobBlock

MAX_CYCLES_PER_JOB = 4
MAX_GAP_SEC = 900.0


def job_label(number: int) -> str:
    return f"JOB - {number:02d}"


class CycleQueue:
    """Cycles plus an explicit read cursor.

    ``give_back`` rewinds the cursor so cycles examined for one block but
    left out of its best prefix head the next block.
    """

    def __init__(self, cycles: list[Cycle]):
        self._cycles = list(cycles)
        self.cursor = 0

    def __bool__(self) -> bool:
        return self.cursor < len(self._cycles)

    def peek(self) -> Cycle:
        return self._cycles[self.cursor]

    def take(self) -> Cycle:
        cycle = self._cycles[self.cursor]
        self.cursor += 1
        return cycle

    def give_back(self, count: int) -> None:
        if count < 0 or count > self.cursor:
            raise ValueError(f"cannot give back {count} cycles at cursor {self.cursor}")
        self.cursor -= count


def _gap_sec(previous: Cycle, following: Cycle) -> float:
    return (following.start.timestamp - previous.end.timestamp).total_seconds()


def _collect_block(
    queue: CycleQueue,
    target_sec: float,
    gap_ceiling_sec: float,
    max_cycles: int,
    windows: list[KeySplitDisableWindow],
) -> tuple[list[Cycle], int, float]:
    """Take cycles for one block; returns (taken, best_end_index, best_sum)."""

    taken: list[Cycle] = []
    running = 0.0
    best_err = float("inf")
    best_end = -1
    best_sum = 0.0

    while queue:
        if taken:
            candidate = queue.peek()
            gap = _gap_sec(taken[-1], candidate)
            if gap > gap_ceiling_sec and not split_disabled_at(candidate.start.timestamp, windows):
                break

        cycle = queue.take()
        taken.append(cycle)
        running += cycle.duration_sec

        err = abs(running - target_sec)
        if err < best_err:
            best_err = err
            best_end = len(taken) - 1
            best_sum = running

        if running >= target_sec:
            break
        if len(taken) >= max_cycles:
            break

    return taken, best_end, best_sum


def group_cycles_into_jobs(
    cycles: list[Cycle],
    target_sec: Optional[float],
    max_gap_sec: float = MAX_GAP_SEC,
    tolerance_sec: float = 0.0,
    max_cycles: int = MAX_CYCLES_PER_JOB,
    split_disable_windows: Optional[list[KeySplitDisableWindow]] = None,
) -> list[JobBlock]:
    """Group cycles into blocks whose summed duration best matches ``target_sec``.

    Without a positive target every cycle is its own block. With one, each
    block extends until the running sum reaches the target, ``max_cycles``
    cycles are taken, or the gap to the next cycle exceeds
    ``max_gap_sec + tolerance_sec``. The block closes at the prefix whose sum
    is closest to the target; cycles past that prefix are given back.
    """

    if not target_sec or target_sec <= 0:
        return [
            JobBlock(
                label=job_label(number),
                cycles=(cycle,),
                total_sec=cycle.duration_sec,
                variance_sec=None,
                target_sec=None,
            )
            for number, cycle in enumerate(cycles, start=1)
        ]

    windows = split_disable_windows or []
    gap_ceiling = max_gap_sec + tolerance_sec
    queue = CycleQueue(cycles)
    blocks: list[JobBlock] = []

    while queue:
        taken, best_end, best_sum = _collect_block(queue, target_sec, gap_ceiling, max_cycles, windows)
        blocks.append(
            JobBlock(
                label=job_label(len(blocks) + 1),
                cycles=tuple(taken[: best_end + 1]),
                total_sec=best_sum,
                variance_sec=best_sum - target_sec,
                target_sec=target_sec,
            )
        )
        queue.give_back(len(taken) - (best_end + 1))

    return blocks
