"""
Tests for the storage-boundary row mapping tables.
"""

from datetime import date, datetime
from decimal import Decimal

import pytest

from paytime_engines.payroll import DisbursementMode
from paytime_ingestion.mapping import (
    LOAN_COLUMNS,
    PAYSLIP_COLUMNS,
    PUNCH_COLUMNS,
    FieldType,
    coerce_value,
    map_row,
    to_row,
)

# ===========================================================================
# Coercion
# ===========================================================================


class TestCoerceValue:

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("1,250.50", Decimal("1250.50")),
            ("R 33.96", Decimal("33.96")),
            (" 42 ", Decimal("42")),
            (7, Decimal("7")),
        ],
    )
    def test_decimal(self, raw, expected):
        result = coerce_value(raw, FieldType.DECIMAL, "amount")
        assert result.success
        assert result.value == expected

    @pytest.mark.parametrize("raw", ["abc", "NaN", True])
    def test_decimal_rejects(self, raw):
        result = coerce_value(raw, FieldType.DECIMAL, "amount")
        assert not result.success
        assert result.error.code == "INVALID_NUMBER"
        assert result.error.field == "amount"

    @pytest.mark.parametrize("raw", ["33,96", "R 1,25"])
    def test_decimal_comma_rejected(self, raw):
        result = coerce_value(raw, FieldType.DECIMAL, "hourly_rate")
        assert not result.success
        assert result.error.code == "AMBIGUOUS_SEPARATOR"
        assert result.error.field == "hourly_rate"

    def test_integer_truncates(self):
        assert coerce_value("12.0", FieldType.INTEGER).value == 12

    @pytest.mark.parametrize(
        "raw, expected",
        [("TRUE", True), ("false", False), ("Yes", True), ("0", False), (True, True)],
    )
    def test_boolean(self, raw, expected):
        assert coerce_value(raw, FieldType.BOOLEAN).value is expected

    def test_boolean_rejects(self):
        assert coerce_value("maybe", FieldType.BOOLEAN).error.code == "INVALID_BOOLEAN"

    @pytest.mark.parametrize(
        "raw",
        ["2026-01-10", "2026/01/10", "10/01/2026", "2026-01-10 00:00:00", "2026-01-10T00:00:00"],
    )
    def test_date_forms(self, raw):
        assert coerce_value(raw, FieldType.DATE).value == date(2026, 1, 10)

    def test_date_rejects(self):
        assert coerce_value("Saturday", FieldType.DATE).error.code == "INVALID_DATE_FORMAT"

    def test_datetime_iso_with_zone(self):
        value = coerce_value("2026-01-12T09:00:00Z", FieldType.DATETIME).value
        assert value.utcoffset().total_seconds() == 0

    def test_datetime_day_first(self):
        assert coerce_value("12/01/2026 09:00", FieldType.DATETIME).value == datetime(2026, 1, 12, 9, 0)


# ===========================================================================
# map_row
# ===========================================================================


class TestMapRow:

    def test_punch_row_with_alias_headers(self):
        result = map_row({"ClockInRef": "E001", "Timestamp": "2026-01-05 07:30"}, PUNCH_COLUMNS)

        assert result.success
        assert result.mapped_data == {
            "clock_ref": "E001",
            "timestamp": "2026-01-05 07:30",
            "device_label": "",
        }

    def test_payslip_row(self):
        row = {
            "RECORDNUMBER": "3",
            "id": "E001",
            "EMPLOYEE NAME": "Thandi M",
            "WEEKENDING": "2026-01-10",
            "HOURS": "39",
            "MINUTES": "30",
            "HOURLYRATE": "33.96",
            "LoanDeductionThisWeek": "150",
            "LoanRepaymentLogged": "FALSE",
        }
        result = map_row(row, PAYSLIP_COLUMNS)

        assert result.success
        data = result.mapped_data
        assert data["record_number"] == 3
        assert data["week_ending"] == date(2026, 1, 10)
        assert data["hourly_rate"] == Decimal("33.96")
        assert data["employment_status"] == "Permanent"
        assert data["loan_synced"] is False
        assert data["bonus_pay"] == Decimal("0")
        assert "standard_time" not in data

    def test_every_error_collected(self):
        result = map_row({"WEEKENDING": "soon", "HOURS": "many"}, PAYSLIP_COLUMNS)

        assert not result.success
        codes = sorted(e.code for e in result.errors)
        assert codes == ["INVALID_DATE_FORMAT", "INVALID_NUMBER", "MISSING_REQUIRED_FIELD"]

    def test_blank_required_is_missing(self):
        row = {
            "Employee ID": "E001",
            "TransactionDate": "2026-01-05",
            "LoanType": "Disbursement",
            "Amount": "  ",
        }
        result = map_row(row, LOAN_COLUMNS)
        assert [e.field for e in result.errors] == ["amount"]


# ===========================================================================
# to_row
# ===========================================================================


class TestToRow:

    def test_renders_sheet_values(self):
        record = {
            "employee_id": "E001",
            "transaction_date": date(2026, 1, 5),
            "loan_type": "Disbursement",
            "amount": Decimal("500.00"),
            "balance_before": Decimal("0.00"),
            "balance_after": Decimal("500.00"),
            "disbursement_mode": DisbursementMode.WITH_SALARY,
            "timestamp": datetime(2026, 1, 12, 9, 0),
        }
        row = to_row(record, LOAN_COLUMNS)

        assert row["Employee ID"] == "E001"
        assert row["TransactionDate"] == "2026-01-05"
        assert row["Amount"] == "500.00"
        assert row["DisbursementType"] == "With Salary"
        assert row["Timestamp"] == "2026-01-12T09:00:00"
        assert row["SalaryLink"] == ""
        assert list(row) == [fm.source for fm in LOAN_COLUMNS]

    def test_boolean_rendered_upper(self):
        row = to_row({"loan_synced": True}, PAYSLIP_COLUMNS)
        assert row["LoanRepaymentLogged"] == "TRUE"

    def test_attribute_records(self):
        class Record:
            clock_ref = "E001"
            timestamp = "2026-01-05 07:30"
            device_label = "Main Door"

        assert to_row(Record(), PUNCH_COLUMNS) == {
            "Clock In Ref": "E001",
            "Date/Time": "2026-01-05 07:30",
            "Device": "Main Door",
        }
