"""
Punch Normalizer (``paytime_engines.punches``).

Responsibility
--------------
Turns raw attendance events for one employee into clean, ordered,
direction-tagged punches grouped per day and per class (main clock events
vs bathroom break events).

Architecture position
---------------------
**Engines layer** -- pure.  No I/O, no clock reads.  Consumed by
``paytime_engines.weekly`` and reused by ``paytime_engines.bathroom`` for
duplicate filtering.

Rules
-----
* Events with a missing or unparseable timestamp are dropped with a note
  (``strict=True`` collects them all and raises instead).
* Events sort ascending by time.
* A device label containing the bathroom keyword makes a bathroom punch.
* Within each day and class, a punch closer than the threshold to the
  previous *retained* punch is a duplicate and is dropped (main: minutes,
  bathroom: seconds).
* Direction comes from an explicit label token when there is one;
  otherwise it alternates from the previous retained punch, starting at
  ``In`` for the first punch of the day.
"""

from __future__ import annotations

import re
from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta

from paytime_config.schema import ReconciliationConfig
from paytime_engines.attendance_types import Direction, Punch, PunchClass, RawPunch
from paytime_kernel.exceptions import InvalidPunchDataError
from paytime_kernel.logging_config import get_logger

logger = get_logger("engines.punches")

TIMESTAMP_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y/%m/%d %H:%M:%S",
    "%Y/%m/%d %H:%M",
    "%d/%m/%Y %H:%M:%S",
    "%d/%m/%Y %H:%M",
)

_TOKEN = re.compile(r"[a-z]+")


@dataclass(frozen=True)
class NormalizedPunches:
    """Output of ``normalize_punches``."""

    main_by_day: dict[date, tuple[Punch, ...]]
    bathroom_by_day: dict[date, tuple[Punch, ...]]
    notes: tuple[str, ...] = ()
    dropped_invalid: int = 0
    dropped_duplicates: int = 0

    @property
    def days(self) -> tuple[date, ...]:
        return tuple(sorted(set(self.main_by_day) | set(self.bathroom_by_day)))


def parse_timestamp(value: datetime | str | None) -> datetime | None:
    """
    Parse a punch timestamp; ``None`` when missing or unparseable.

    Offsets are dropped: punch times are wall-clock times at the device.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text:
        return None
    for fmt in TIMESTAMP_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    # A bare date has no time of day; it cannot be a punch.
    if "T" not in text and " " not in text:
        return None
    return parsed.replace(tzinfo=None)


def explicit_direction(label: str, config: ReconciliationConfig) -> Direction | None:
    """Direction named by the device label, or ``None`` if absent/ambiguous."""
    tokens = set(_TOKEN.findall(label.lower()))
    has_in = bool(tokens & set(config.in_label_keywords))
    has_out = bool(tokens & set(config.out_label_keywords))
    if has_in == has_out:
        return None
    return Direction.IN if has_in else Direction.OUT


def classify_label(label: str, config: ReconciliationConfig) -> PunchClass:
    if config.bathroom_label_keyword in label.lower():
        return PunchClass.BATHROOM
    return PunchClass.MAIN


def drop_near_duplicates(
    punches: Sequence[Punch],
    threshold: timedelta,
) -> tuple[list[Punch], list[Punch]]:
    """
    Drop punches closer than ``threshold`` to the previous retained punch.

    ``punches`` must already be sorted.  Returns ``(kept, dropped)``.
    """
    kept: list[Punch] = []
    dropped: list[Punch] = []
    for punch in punches:
        if kept and punch.timestamp - kept[-1].timestamp < threshold:
            dropped.append(punch)
        else:
            kept.append(punch)
    return kept, dropped


def assign_directions(punches: Sequence[Punch]) -> list[Punch]:
    """Fill in alternating directions for punches without an explicit one."""
    result: list[Punch] = []
    previous: Direction | None = None
    for punch in punches:
        if punch.direction_explicit:
            direction = punch.direction
        else:
            direction = previous.opposite if previous is not None else Direction.IN
        result.append(punch if punch.direction is direction else replace(punch, direction=direction))
        previous = direction
    return result


def normalize_punches(
    raw_punches: Iterable[RawPunch],
    config: ReconciliationConfig,
    strict: bool = False,
) -> NormalizedPunches:
    """
    Parse, sort, split, deduplicate and direction-tag raw punches.

    Raises:
        InvalidPunchDataError: only when ``strict`` is set and at least one
            row has a missing or unparseable timestamp.  Every bad row is
            listed.
    """
    notes: list[str] = []
    invalid: list[str] = []
    parsed: list[Punch] = []

    for index, raw in enumerate(raw_punches):
        row_ref = raw.source_row if raw.source_row is not None else index + 1
        ts = parse_timestamp(raw.timestamp)
        if ts is None:
            reason = "missing timestamp" if raw.timestamp in (None, "") else (
                f"unparseable timestamp {raw.timestamp!r}"
            )
            invalid.append(f"row {row_ref}: {reason}")
            continue
        label = raw.device_label or ""
        direction = explicit_direction(label, config)
        parsed.append(
            Punch(
                timestamp=ts,
                raw_device_label=label,
                direction=direction or Direction.IN,
                clock_ref=raw.clock_ref,
                punch_class=classify_label(label, config),
                direction_explicit=direction is not None,
            )
        )

    if invalid:
        if strict:
            raise InvalidPunchDataError(invalid)
        for violation in invalid:
            notes.append(f"Dropped punch at {violation}")
        logger.info("punches_dropped_invalid", extra={"count": len(invalid)})

    parsed.sort(key=lambda p: p.timestamp)

    grouped: dict[tuple[date, PunchClass], list[Punch]] = defaultdict(list)
    for punch in parsed:
        grouped[(punch.work_date, punch.punch_class)].append(punch)

    thresholds = {
        PunchClass.MAIN: timedelta(minutes=config.duplicate_threshold_minutes),
        PunchClass.BATHROOM: timedelta(seconds=config.bathroom_duplicate_threshold_seconds),
    }

    main_by_day: dict[date, tuple[Punch, ...]] = {}
    bathroom_by_day: dict[date, tuple[Punch, ...]] = {}
    duplicate_count = 0

    for (work_date, punch_class), punches in sorted(
        grouped.items(), key=lambda kv: (kv[0][0], kv[0][1].value)
    ):
        kept, dropped = drop_near_duplicates(punches, thresholds[punch_class])
        for punch in dropped:
            duplicate_count += 1
            note = (
                f"{work_date.isoformat()} {punch.timestamp:%H:%M:%S}: duplicate "
                f"{punch_class.value} punch dropped"
            )
            notes.append(note)
            logger.debug(
                "duplicate_punch_dropped",
                extra={
                    "work_date": work_date,
                    "punch_time": punch.timestamp,
                    "punch_class": punch_class.value,
                },
            )
        target = main_by_day if punch_class is PunchClass.MAIN else bathroom_by_day
        target[work_date] = tuple(assign_directions(kept))

    return NormalizedPunches(
        main_by_day=main_by_day,
        bathroom_by_day=bathroom_by_day,
        notes=tuple(notes),
        dropped_invalid=len(invalid),
        dropped_duplicates=duplicate_count,
    )
