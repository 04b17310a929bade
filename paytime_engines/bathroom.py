"""
BathroomReconciler -- pairs bathroom entries and exits within work periods.

Work periods come from *adjusted* clock times:
    Morning    C1 -> C2
    Afternoon  C3 -> C4
each only when both endpoints exist.  Friday has one period, C1 -> C2.

Each entry pairs greedily with the earliest unused exit strictly after it.
A pair counts only when both ends fall inside the same period (bounds
inclusive).  Durations are compared in exact seconds; reported minutes are
floored.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from paytime_config.schema import ReconciliationConfig
from paytime_engines.attendance_types import ClockSlot, Direction, Punch, is_friday
from paytime_engines.punches import drop_near_duplicates
from paytime_kernel.logging_config import get_logger

logger = get_logger("engines.bathroom")

LONG_BREAK = "Long bathroom break"
EARLY_BREAK = "Early bathroom break"
UNPAIRED_ENTRY = "Unpaired bathroom entry"
UNPAIRED_EXIT = "Unpaired bathroom exit"
DAILY_THRESHOLD = "Daily bathroom threshold exceeded"


@dataclass(frozen=True)
class WorkPeriod:
    name: str
    start: datetime
    end: datetime

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end


@dataclass(frozen=True)
class BathroomPair:
    entry: datetime
    exit: datetime
    period: str

    @property
    def seconds(self) -> int:
        return int((self.exit - self.entry).total_seconds())

    @property
    def minutes(self) -> int:
        return self.seconds // 60


@dataclass(frozen=True)
class BathroomResult:
    bathroom_minutes: int
    pairs: tuple[BathroomPair, ...] = ()
    flags: tuple[str, ...] = ()


def work_periods(work_date: date, adjusted: dict[ClockSlot, datetime]) -> list[WorkPeriod]:
    spans = [("Morning", ClockSlot.CLOCK1, ClockSlot.CLOCK2)]
    if not is_friday(work_date):
        spans.append(("Afternoon", ClockSlot.CLOCK3, ClockSlot.CLOCK4))
    periods = []
    for name, start_slot, end_slot in spans:
        start = adjusted.get(start_slot)
        end = adjusted.get(end_slot)
        if start is not None and end is not None and start <= end:
            periods.append(WorkPeriod(name, start, end))
    return periods


def _period_of(periods: Sequence[WorkPeriod], moment: datetime) -> WorkPeriod | None:
    for period in periods:
        if period.contains(moment):
            return period
    return None


def reconcile_bathroom(
    work_date: date,
    adjusted: dict[ClockSlot, datetime],
    bathroom_punches: Sequence[Punch],
    config: ReconciliationConfig,
) -> BathroomResult:
    periods = work_periods(work_date, adjusted)
    threshold = timedelta(seconds=config.bathroom_duplicate_threshold_seconds)
    ordered = sorted(bathroom_punches, key=lambda p: p.timestamp)
    entries, _ = drop_near_duplicates([p for p in ordered if p.direction is Direction.IN], threshold)
    exits, _ = drop_near_duplicates([p for p in ordered if p.direction is Direction.OUT], threshold)

    flags: list[str] = []
    used_exits: set[int] = set()
    paired_entries: set[int] = set()
    pairs: list[BathroomPair] = []

    for entry_index, entry in enumerate(entries):
        match = next(
            (
                i
                for i, candidate in enumerate(exits)
                if i not in used_exits and candidate.timestamp > entry.timestamp
            ),
            None,
        )
        if match is None:
            continue
        used_exits.add(match)
        paired_entries.add(entry_index)
        exit_time = exits[match].timestamp
        period = _period_of(periods, entry.timestamp)
        if period is None or not period.contains(exit_time):
            logger.debug(
                "bathroom_pair_discarded",
                extra={"work_date": work_date, "entry": entry.timestamp, "exit": exit_time},
            )
            continue
        pairs.append(BathroomPair(entry.timestamp, exit_time, period.name))

    long_limit = config.long_bathroom_threshold_minutes * 60
    for pair in pairs:
        if pair.seconds > long_limit:
            flags.append(f"{LONG_BREAK} at {pair.entry:%H:%M} ({pair.minutes} min)")

    early = timedelta(minutes=config.early_bathroom_threshold_minutes)
    anchors = [adjusted[s] for s in (ClockSlot.CLOCK1, ClockSlot.CLOCK3) if s in adjusted]
    for entry in entries:
        if any(anchor <= entry.timestamp <= anchor + early for anchor in anchors):
            flags.append(f"{EARLY_BREAK} at {entry.timestamp:%H:%M}")

    for index, entry in enumerate(entries):
        if index not in paired_entries and _period_of(periods, entry.timestamp):
            flags.append(f"{UNPAIRED_ENTRY} at {entry.timestamp:%H:%M}")
    for index, exit_punch in enumerate(exits):
        if index not in used_exits and _period_of(periods, exit_punch.timestamp):
            flags.append(f"{UNPAIRED_EXIT} at {exit_punch.timestamp:%H:%M}")

    total_seconds = sum(pair.seconds for pair in pairs)
    if total_seconds > config.daily_bathroom_threshold_minutes * 60:
        flags.append(f"{DAILY_THRESHOLD} ({total_seconds // 60} min)")

    return BathroomResult(
        bathroom_minutes=total_seconds // 60,
        pairs=tuple(pairs),
        flags=tuple(flags),
    )
