"""
ReconciliationConfig schema.

Defines the configuration value passed into every entry point of the
reconciliation engine: clock-slot time windows, grace rules, lunch rules,
duplicate and bathroom thresholds, and ledger-sync timing.

Key distinction:
  config dict          = source artifact (JSON-serializable, "HH:MM" strings)
  ReconciliationConfig = runtime artifact (validated, typed, frozen)

Defaults and ranges live in ``FIELD_SPECS`` only; ``validator`` is the one
place that reads them.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import time
from typing import Any

# ---------------------------------------------------------------------------
# Field specifications
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FieldSpec:
    """Type, default and allowed range of one configuration key."""

    kind: str  # "time", "int", "str", "str_list"
    default: Any
    minimum: int | None = None
    maximum: int | None = None
    description: str = ""


FIELD_SPECS: dict[str, FieldSpec] = {
    # Standard day
    "standard_start_time": FieldSpec("time", "07:30", description="Shift start"),
    "standard_end_time": FieldSpec("time", "16:30", description="Shift end (Mon-Thu)"),
    "friday_end_time": FieldSpec("time", "13:00", description="Shift end on Friday"),
    "lunch_start_time": FieldSpec("time", "12:00"),
    "lunch_end_time": FieldSpec("time", "12:30"),
    # Clock-slot classification windows
    "clock1_max_time": FieldSpec("time", "10:00", description="Latest morning clock-in"),
    "clock2_window_start": FieldSpec("time", "11:30"),
    "clock2_window_end": FieldSpec("time", "13:30"),
    "clock3_window_start": FieldSpec("time", "12:00"),
    "clock3_window_end": FieldSpec("time", "14:00"),
    "clock4_min_time": FieldSpec("time", "14:00", description="Earliest afternoon clock-out"),
    # Grace and lunch rules
    "grace_minutes": FieldSpec("int", 5, 0, 60),
    "lunch_out_grace_minutes": FieldSpec("int", 5, 0, 60),
    "standard_lunch_minutes": FieldSpec("int", 30, 0, 120),
    # Duplicate filtering
    "duplicate_threshold_minutes": FieldSpec("int", 2, 0, 30),
    "bathroom_duplicate_threshold_seconds": FieldSpec("int", 60, 0, 600),
    # Bathroom rules
    "long_bathroom_threshold_minutes": FieldSpec("int", 15, 1, 120),
    "early_bathroom_threshold_minutes": FieldSpec("int", 10, 0, 120),
    "daily_bathroom_threshold_minutes": FieldSpec("int", 30, 1, 480),
    # Ledger sync
    "lock_timeout_seconds": FieldSpec("int", 30, 1, 300),
    "change_window_minutes": FieldSpec("int", 5, 1, 1440),
    # Device label matching
    "bathroom_label_keyword": FieldSpec("str", "bathroom"),
    "in_label_keywords": FieldSpec("str_list", ("in", "entry", "checkin")),
    "out_label_keywords": FieldSpec("str_list", ("out", "exit", "checkout")),
}


def default_config_dict() -> dict[str, Any]:
    """Return a fresh JSON-serializable dict of every default."""
    return {
        key: list(spec.default) if spec.kind == "str_list" else spec.default
        for key, spec in FIELD_SPECS.items()
    }


def parse_hhmm(value: str) -> time:
    """Parse an already-validated ``HH:MM`` string."""
    hours, minutes = value.strip().split(":")
    return time(int(hours), int(minutes))


def format_hhmm(value: time) -> str:
    return f"{value.hour:02d}:{value.minute:02d}"


# ---------------------------------------------------------------------------
# Runtime configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ReconciliationConfig:
    """Validated, immutable configuration for one reconciliation run."""

    standard_start_time: time
    standard_end_time: time
    friday_end_time: time
    lunch_start_time: time
    lunch_end_time: time
    clock1_max_time: time
    clock2_window_start: time
    clock2_window_end: time
    clock3_window_start: time
    clock3_window_end: time
    clock4_min_time: time
    grace_minutes: int
    lunch_out_grace_minutes: int
    standard_lunch_minutes: int
    duplicate_threshold_minutes: int
    bathroom_duplicate_threshold_seconds: int
    long_bathroom_threshold_minutes: int
    early_bathroom_threshold_minutes: int
    daily_bathroom_threshold_minutes: int
    lock_timeout_seconds: int
    change_window_minutes: int
    bathroom_label_keyword: str
    in_label_keywords: tuple[str, ...]
    out_label_keywords: tuple[str, ...]

    @classmethod
    def from_validated(cls, data: dict[str, Any]) -> ReconciliationConfig:
        """Build from a dict that has already passed ``validate``."""
        kwargs: dict[str, Any] = {}
        for key, spec in FIELD_SPECS.items():
            value = data[key]
            if spec.kind == "time":
                kwargs[key] = parse_hhmm(value)
            elif spec.kind == "int":
                kwargs[key] = int(value)
            elif spec.kind == "str_list":
                kwargs[key] = tuple(v.strip().lower() for v in value)
            else:
                kwargs[key] = value.strip().lower()
        return cls(**kwargs)

    def to_dict(self) -> dict[str, Any]:
        """JSON-serializable form (inverse of ``from_validated``)."""
        out: dict[str, Any] = {}
        for key, spec in FIELD_SPECS.items():
            value = getattr(self, key)
            if spec.kind == "time":
                out[key] = format_hhmm(value)
            elif spec.kind == "str_list":
                out[key] = list(value)
            else:
                out[key] = value
        return out
