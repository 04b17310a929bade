"""
ClockClassifier -- assigns a day's main punches to the four clock slots.

Non-Friday rules (times compared against the punch's wall-clock time):
    Clock1  first In strictly before ``clock1_max_time``
    Clock2  first Out within [clock2_window_start, clock2_window_end]
    Clock3  first In within [clock3_window_start, clock3_window_end]
    Clock4  last Out at or after ``clock4_min_time``

A punch is never assigned to two slots.  Friday is a two-clock day:
Clock1 is the first In and Clock2 the last Out.  Missing slots stay empty.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import date

from paytime_config.schema import ReconciliationConfig
from paytime_engines.attendance_types import ClockSlot, Direction, Punch, is_friday


def _first(
    punches: Sequence[Punch],
    used: set[int],
    predicate: Callable[[Punch], bool],
) -> int | None:
    for index, punch in enumerate(punches):
        if index not in used and predicate(punch):
            return index
    return None


def _last(
    punches: Sequence[Punch],
    used: set[int],
    predicate: Callable[[Punch], bool],
) -> int | None:
    for index in range(len(punches) - 1, -1, -1):
        if index not in used and predicate(punches[index]):
            return index
    return None


def classify_day(
    work_date: date,
    main_punches: Sequence[Punch],
    config: ReconciliationConfig,
) -> dict[ClockSlot, Punch]:
    """Map slots to punches for one day. ``main_punches`` must be sorted."""
    punches = sorted(main_punches, key=lambda p: p.timestamp)
    used: set[int] = set()
    slots: dict[ClockSlot, Punch] = {}

    def take(slot: ClockSlot, index: int | None) -> None:
        if index is not None:
            used.add(index)
            slots[slot] = punches[index]

    def is_in(p: Punch) -> bool:
        return p.direction is Direction.IN

    def is_out(p: Punch) -> bool:
        return p.direction is Direction.OUT

    if is_friday(work_date):
        take(ClockSlot.CLOCK1, _first(punches, used, is_in))
        take(ClockSlot.CLOCK2, _last(punches, used, is_out))
        return slots

    take(
        ClockSlot.CLOCK1,
        _first(punches, used, lambda p: is_in(p) and p.timestamp.time() < config.clock1_max_time),
    )
    take(
        ClockSlot.CLOCK2,
        _first(
            punches,
            used,
            lambda p: is_out(p)
            and config.clock2_window_start <= p.timestamp.time() <= config.clock2_window_end,
        ),
    )
    take(
        ClockSlot.CLOCK3,
        _first(
            punches,
            used,
            lambda p: is_in(p)
            and config.clock3_window_start <= p.timestamp.time() <= config.clock3_window_end,
        ),
    )
    take(
        ClockSlot.CLOCK4,
        _last(punches, used, lambda p: is_out(p) and p.timestamp.time() >= config.clock4_min_time),
    )
    return slots
