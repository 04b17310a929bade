"""
Configuration Validator (``paytime_config.validator``).

Responsibility
--------------
``merge_with_defaults`` and ``validate`` are the only places defaults and
ranges are known.  ``build_config`` composes them and returns the frozen
runtime ``ReconciliationConfig``.

Invariants enforced
-------------------
* Unknown keys are errors (typos must not silently fall back to defaults).
* Time-of-day fields match ``HH:MM`` in 00:00-23:59.
* Every numeric threshold is an integer within its ``FieldSpec`` range.
* Cross-field ordering: shift start < shift end, lunch start < lunch end,
  each classification window start <= its end.
* In/out label keywords are disjoint.

Failure modes
-------------
* ``validate`` never raises; it returns every error found.
* ``build_config`` raises ``ConfigValidationError`` listing ALL errors.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from paytime_config.schema import (
    FIELD_SPECS,
    ReconciliationConfig,
    default_config_dict,
    parse_hhmm,
)
from paytime_kernel.exceptions import ConfigValidationError
from paytime_kernel.logging_config import get_logger

logger = get_logger("config.validator")

_HHMM = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")

_ORDERED_PAIRS: tuple[tuple[str, str, bool], ...] = (
    # (earlier, later, strict)
    ("standard_start_time", "standard_end_time", True),
    ("lunch_start_time", "lunch_end_time", True),
    ("clock2_window_start", "clock2_window_end", False),
    ("clock3_window_start", "clock3_window_end", False),
)


@dataclass
class ConfigValidationResult:
    """
    Result of configuration validation.

    ``is_valid`` is ``True`` only when ``errors`` is empty.
    """

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)


def merge_with_defaults(overrides: Mapping[str, Any] | None = None) -> dict[str, Any]:
    """
    Overlay ``overrides`` on the documented defaults.

    Unknown keys are carried through untouched so that ``validate`` can
    report them.
    """
    merged = default_config_dict()
    if overrides:
        for key, value in overrides.items():
            merged[key] = list(value) if isinstance(value, tuple) else value
    return merged


def validate(data: Mapping[str, Any]) -> ConfigValidationResult:
    """Validate a complete (merged) configuration dict."""
    result = ConfigValidationResult()

    for key in sorted(set(data) - set(FIELD_SPECS)):
        result.add_error(f"Unknown configuration key: '{key}'")

    for key, spec in FIELD_SPECS.items():
        if key not in data:
            result.add_error(f"Missing configuration key: '{key}'")
            continue
        _validate_field(key, spec.kind, spec.minimum, spec.maximum, data[key], result)

    if result.is_valid:
        _validate_cross_field(data, result)

    return result


def build_config(overrides: Mapping[str, Any] | None = None) -> ReconciliationConfig:
    """
    Merge, validate and freeze a configuration.

    Raises:
        ConfigValidationError: listing every violation found.
    """
    merged = merge_with_defaults(overrides)
    result = validate(merged)
    for warning in result.warnings:
        logger.warning("config_warning", extra={"warning": warning})
    if not result.is_valid:
        logger.warning(
            "config_rejected",
            extra={"error_count": len(result.errors), "errors": result.errors},
        )
        raise ConfigValidationError(result.errors)
    return ReconciliationConfig.from_validated(merged)


# ---------------------------------------------------------------------------
# Field checks
# ---------------------------------------------------------------------------


def _validate_field(
    key: str,
    kind: str,
    minimum: int | None,
    maximum: int | None,
    value: Any,
    result: ConfigValidationResult,
) -> None:
    if kind == "time":
        if not isinstance(value, str) or not _HHMM.match(value.strip()):
            result.add_error(
                f"'{key}' must be a time of day in HH:MM format (00:00-23:59), got {value!r}"
            )
        return

    if kind == "int":
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            result.add_error(f"'{key}' must be an integer, got {value!r}")
            return
        if isinstance(value, float) and not value.is_integer():
            result.add_error(f"'{key}' must be a whole number, got {value!r}")
            return
        if minimum is not None and value < minimum:
            result.add_error(f"'{key}' must be >= {minimum}, got {value!r}")
        if maximum is not None and value > maximum:
            result.add_error(f"'{key}' must be <= {maximum}, got {value!r}")
        return

    if kind == "str":
        if not isinstance(value, str) or not value.strip():
            result.add_error(f"'{key}' must be a non-empty string, got {value!r}")
        return

    if kind == "str_list":
        if not isinstance(value, (list, tuple)) or not value:
            result.add_error(f"'{key}' must be a non-empty list of strings, got {value!r}")
            return
        for item in value:
            if not isinstance(item, str) or not item.strip():
                result.add_error(f"'{key}' contains an invalid keyword: {item!r}")


def _validate_cross_field(data: Mapping[str, Any], result: ConfigValidationResult) -> None:
    for earlier, later, strict in _ORDERED_PAIRS:
        a = parse_hhmm(data[earlier])
        b = parse_hhmm(data[later])
        if (strict and a >= b) or (not strict and a > b):
            op = "before" if strict else "at or before"
            result.add_error(
                f"'{earlier}' ({data[earlier]}) must be {op} '{later}' ({data[later]})"
            )

    ins = {k.strip().lower() for k in data["in_label_keywords"]}
    outs = {k.strip().lower() for k in data["out_label_keywords"]}
    overlap = sorted(ins & outs)
    if overlap:
        result.add_error(
            f"'in_label_keywords' and 'out_label_keywords' overlap: {overlap}"
        )

    if parse_hhmm(data["friday_end_time"]) <= parse_hhmm(data["standard_start_time"]):
        result.add_error("'friday_end_time' must be after 'standard_start_time'")

    if parse_hhmm(data["clock1_max_time"]) <= parse_hhmm(data["standard_start_time"]):
        result.add_warning(
            "'clock1_max_time' is not after 'standard_start_time'; "
            "on-time clock-ins will not be classified"
        )
