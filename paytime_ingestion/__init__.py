"""
Storage-boundary ingestion: header-keyed rows in and out.

    mapping      -- explicit header -> field tables and row coercion
    csv_adapter  -- streaming CSV reader for attendance exports
"""

from paytime_ingestion.csv_adapter import CsvSourceAdapter, SourceProbe
from paytime_ingestion.mapping import (
    LOAN_COLUMNS,
    PAYSLIP_COLUMNS,
    PUNCH_COLUMNS,
    FieldMapping,
    FieldType,
    MappingError,
    MappingResult,
    coerce_value,
    map_row,
    to_row,
)

__all__ = [
    "CsvSourceAdapter",
    "FieldMapping",
    "FieldType",
    "LOAN_COLUMNS",
    "MappingError",
    "MappingResult",
    "PAYSLIP_COLUMNS",
    "PUNCH_COLUMNS",
    "SourceProbe",
    "coerce_value",
    "map_row",
    "to_row",
]
