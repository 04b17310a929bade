"""
Tests for the Punch Normalizer.

Covers:
- Timestamp parsing (accepted formats, bad rows dropped or rejected)
- Main vs bathroom split
- Near-duplicate filtering against the previous retained punch
- Direction inference (explicit tokens, alternation per day)
"""

from datetime import date, datetime

import pytest

from paytime_engines.attendance_types import Direction, PunchClass, RawPunch
from paytime_engines.punches import (
    explicit_direction,
    normalize_punches,
    parse_timestamp,
)
from paytime_kernel.exceptions import InvalidPunchDataError

MONDAY = date(2026, 1, 5)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _raw(hh: int, mm: int, ss: int = 0, label: str = "Main Door", day: date = MONDAY) -> RawPunch:
    return RawPunch(timestamp=datetime(day.year, day.month, day.day, hh, mm, ss), device_label=label)


# ===========================================================================
# Timestamp parsing
# ===========================================================================


class TestParseTimestamp:

    @pytest.mark.parametrize(
        "text",
        [
            "2026-01-05 07:30",
            "2026-01-05 07:30:00",
            "2026/01/05 07:30",
            "05/01/2026 07:30",
            "2026-01-05T07:30:00",
            "2026-01-05T07:30:00+02:00",
        ],
    )
    def test_accepted_forms(self, text):
        assert parse_timestamp(text) == datetime(2026, 1, 5, 7, 30)

    @pytest.mark.parametrize("value", [None, "", "   ", "not a time", "2026-01-05", "25:00"])
    def test_rejected_forms(self, value):
        assert parse_timestamp(value) is None

    def test_datetime_passthrough_drops_offset(self):
        from datetime import UTC

        assert parse_timestamp(datetime(2026, 1, 5, 7, 30, tzinfo=UTC)) == datetime(2026, 1, 5, 7, 30)


# ===========================================================================
# Dropping bad rows
# ===========================================================================


class TestInvalidRows:

    def test_bad_rows_dropped_with_notes(self, config):
        raws = [
            _raw(7, 30),
            RawPunch(timestamp=None, device_label="Main Door"),
            RawPunch(timestamp="garbage", device_label="Main Door"),
        ]
        result = normalize_punches(raws, config)

        assert len(result.main_by_day[MONDAY]) == 1
        assert result.dropped_invalid == 2
        assert any("missing timestamp" in n for n in result.notes)
        assert any("garbage" in n for n in result.notes)

    def test_strict_mode_lists_every_bad_row(self, config):
        raws = [
            RawPunch(timestamp=None, source_row=4),
            _raw(7, 30),
            RawPunch(timestamp="31/31/2026 07:00", source_row=9),
        ]
        with pytest.raises(InvalidPunchDataError) as exc_info:
            normalize_punches(raws, config, strict=True)

        assert exc_info.value.code == "INVALID_PUNCH_DATA"
        assert len(exc_info.value.violations) == 2
        assert exc_info.value.violations[0].startswith("row 4")
        assert exc_info.value.violations[1].startswith("row 9")


# ===========================================================================
# Split and sort
# ===========================================================================


class TestSplitAndSort:

    def test_sorted_ascending(self, config):
        raws = [_raw(16, 30), _raw(7, 30), _raw(12, 0)]
        punches = normalize_punches(raws, config).main_by_day[MONDAY]
        assert [p.hhmm() for p in punches] == ["07:30", "12:00", "16:30"]

    def test_bathroom_keyword_is_case_insensitive_substring(self, config):
        raws = [_raw(7, 30), _raw(9, 0, label="BATHROOM-1 In"), _raw(9, 10, label="Staff Bathroom Out")]
        result = normalize_punches(raws, config)

        assert len(result.main_by_day[MONDAY]) == 1
        bathroom = result.bathroom_by_day[MONDAY]
        assert [p.punch_class for p in bathroom] == [PunchClass.BATHROOM] * 2

    def test_days_grouped_separately(self, config):
        tuesday = date(2026, 1, 6)
        raws = [_raw(7, 30, day=tuesday), _raw(7, 30)]
        result = normalize_punches(raws, config)
        assert result.days == (MONDAY, tuesday)


# ===========================================================================
# Duplicates
# ===========================================================================


class TestDuplicates:

    def test_main_punch_90_seconds_later_dropped(self, config):
        result = normalize_punches([_raw(7, 30), _raw(7, 31, 30)], config)
        assert len(result.main_by_day[MONDAY]) == 1
        assert result.dropped_duplicates == 1
        assert any("duplicate main punch dropped" in n for n in result.notes)

    def test_main_punch_3_minutes_later_kept(self, config):
        result = normalize_punches([_raw(7, 30), _raw(7, 33)], config)
        assert len(result.main_by_day[MONDAY]) == 2
        assert result.dropped_duplicates == 0

    def test_compared_against_previous_retained_punch(self, config):
        # 07:31 is dropped; 07:32:30 is 150s after the retained 07:30 so kept.
        result = normalize_punches([_raw(7, 30), _raw(7, 31), _raw(7, 32, 30)], config)
        assert [p.timestamp.strftime("%H:%M:%S") for p in result.main_by_day[MONDAY]] == [
            "07:30:00",
            "07:32:30",
        ]

    def test_bathroom_threshold_in_seconds(self, config):
        raws = [
            _raw(9, 0, 0, label="Bathroom"),
            _raw(9, 0, 45, label="Bathroom"),
            _raw(9, 2, 0, label="Bathroom"),
        ]
        result = normalize_punches(raws, config)
        assert len(result.bathroom_by_day[MONDAY]) == 2

    def test_threshold_zero_keeps_everything(self, config):
        from paytime_config import build_config

        relaxed = build_config({"duplicate_threshold_minutes": 0})
        result = normalize_punches([_raw(7, 30), _raw(7, 30, 5)], relaxed)
        assert len(result.main_by_day[MONDAY]) == 2


# ===========================================================================
# Direction
# ===========================================================================


class TestDirection:

    def test_alternates_from_in(self, config):
        raws = [_raw(7, 30), _raw(12, 0), _raw(12, 30), _raw(16, 30)]
        punches = normalize_punches(raws, config).main_by_day[MONDAY]
        assert [p.direction for p in punches] == [
            Direction.IN,
            Direction.OUT,
            Direction.IN,
            Direction.OUT,
        ]

    def test_explicit_token_wins_and_alternation_resumes(self, config):
        raws = [_raw(7, 30, label="Gate IN"), _raw(12, 0, label="Gate IN"), _raw(12, 30)]
        punches = normalize_punches(raws, config).main_by_day[MONDAY]
        assert [p.direction for p in punches] == [Direction.IN, Direction.IN, Direction.OUT]
        assert punches[0].direction_explicit
        assert not punches[2].direction_explicit

    def test_each_day_starts_with_in(self, config):
        tuesday = date(2026, 1, 6)
        raws = [_raw(7, 30), _raw(7, 30, day=tuesday)]
        result = normalize_punches(raws, config)
        assert result.main_by_day[MONDAY][0].direction is Direction.IN
        assert result.main_by_day[tuesday][0].direction is Direction.IN

    @pytest.mark.parametrize(
        "label, expected",
        [
            ("Main Door IN", Direction.IN),
            ("check-in", Direction.IN),
            ("CheckOut", Direction.OUT),
            ("Bathroom Exit", Direction.OUT),
            ("Entry/Exit", None),
            ("Main Door", None),
            ("Inside door", None),
        ],
    )
    def test_explicit_direction_tokens(self, config, label, expected):
        assert explicit_direction(label, config) is expected
