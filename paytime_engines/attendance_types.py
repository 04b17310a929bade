"""
Attendance reconciliation domain types.

Pure frozen dataclasses shared by the attendance engines (PunchNormalizer,
ClockClassifier, GraceAdjuster, PaidTimeCalculator, BathroomReconciler,
WeeklyAggregator) and the attendance service.

Architecture: paytime_engines -- pure domain, zero I/O.

Ownership:
    Punch, DayRecord and WeekRecord belong to a single reconciliation run.
    They carry no persisted identity and are recomputed wholesale every run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any


class Direction(Enum):
    """Inferred direction of a punch."""
    IN = "In"
    OUT = "Out"

    @property
    def opposite(self) -> Direction:
        return Direction.OUT if self is Direction.IN else Direction.IN


class PunchClass(Enum):
    """Main clock events vs bathroom break events."""
    MAIN = "main"
    BATHROOM = "bathroom"


class ClockSlot(Enum):
    """The four canonical daily attendance checkpoints."""
    CLOCK1 = 1  # morning in
    CLOCK2 = 2  # lunch out (Friday: day out)
    CLOCK3 = 3  # lunch return
    CLOCK4 = 4  # afternoon out

    @property
    def label(self) -> str:
        return _SLOT_LABELS[self]


_SLOT_LABELS = {
    ClockSlot.CLOCK1: "clock 1 (morning in)",
    ClockSlot.CLOCK2: "clock 2 (lunch out)",
    ClockSlot.CLOCK3: "clock 3 (lunch return)",
    ClockSlot.CLOCK4: "clock 4 (afternoon out)",
}

FRIDAY = 4


def is_friday(work_date: date) -> bool:
    return work_date.weekday() == FRIDAY


def minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes from ``start`` to ``end`` (floored; negative if reversed)."""
    return int((end - start).total_seconds() // 60)


# =============================================================================
# Input types
# =============================================================================


@dataclass(frozen=True)
class RawPunch:
    """One attendance event as mapped from a storage row.

    ``timestamp`` may still be a string; the normalizer parses it.
    """

    timestamp: datetime | str | None
    device_label: str = ""
    clock_ref: str = ""
    source_row: int | None = None


@dataclass(frozen=True)
class Punch:
    """A parsed, classified punch. Never mutated."""

    timestamp: datetime
    raw_device_label: str
    direction: Direction
    clock_ref: str = ""
    punch_class: PunchClass = PunchClass.MAIN
    direction_explicit: bool = False

    @property
    def work_date(self) -> date:
        return self.timestamp.date()

    def hhmm(self) -> str:
        return self.timestamp.strftime("%H:%M")


# =============================================================================
# Output types
# =============================================================================


@dataclass(frozen=True)
class DayRecord:
    """Result of reconciling one calendar day."""

    work_date: date
    weekday: str
    classified_slots: dict[ClockSlot, Punch] = field(default_factory=dict)
    adjusted_times: dict[ClockSlot, datetime] = field(default_factory=dict)
    paid_minutes: int = 0
    lunch_minutes: int = 0
    bathroom_minutes: int = 0
    scenario: str = ""
    warnings: tuple[str, ...] = ()

    @property
    def is_friday(self) -> bool:
        return is_friday(self.work_date)

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.work_date.isoformat(),
            "weekday": self.weekday,
            "scenario": self.scenario,
            "clocks": {
                slot.name.lower(): punch.hhmm()
                for slot, punch in sorted(self.classified_slots.items(), key=lambda kv: kv[0].value)
            },
            "adjusted": {
                slot.name.lower(): ts.strftime("%H:%M")
                for slot, ts in sorted(self.adjusted_times.items(), key=lambda kv: kv[0].value)
            },
            "paid_minutes": self.paid_minutes,
            "lunch_minutes": self.lunch_minutes,
            "bathroom_minutes": self.bathroom_minutes,
            "warnings": list(self.warnings),
        }


@dataclass(frozen=True)
class WeekRecord:
    """Weekly totals for one employee. Recomputed wholesale every run."""

    employee_ref: str
    week_ending: date | None
    daily_breakdown: tuple[DayRecord, ...] = ()
    total_hours: int = 0
    total_minutes: int = 0
    raw_minutes: int = 0
    total_lunch_minutes: int = 0
    total_bathroom_minutes: int = 0
    warnings: tuple[str, ...] = ()
    notes: tuple[str, ...] = ()


@dataclass(frozen=True)
class ClockDataResult:
    """Caller-facing result of ``process_clock_data``."""

    hours: int
    minutes: int
    raw_minutes: int
    lunch_minutes: int
    bathroom_minutes: int
    daily_breakdown: tuple[DayRecord, ...]
    warnings: tuple[str, ...]
    week: WeekRecord

    def to_dict(self) -> dict[str, Any]:
        return {
            "hours": self.hours,
            "minutes": self.minutes,
            "rawMinutes": self.raw_minutes,
            "lunchMinutes": self.lunch_minutes,
            "bathroomMinutes": self.bathroom_minutes,
            "dailyBreakdown": [d.to_dict() for d in self.daily_breakdown],
            "warnings": list(self.warnings),
        }
