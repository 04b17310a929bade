"""
Money helpers -- Decimal coercion and half-up rounding.

Invariants enforced:
    * Monetary values are ``Decimal`` -- NEVER ``float``.
    * Rounding is ROUND_HALF_UP to 2 decimal places (payslip precision).

Failure modes:
    * ``to_decimal`` never raises: missing, blank or unparseable input
      degrades to ``Decimal("0")`` (unparseable input is logged).
    * A comma is a thousands separator only; a decimal comma is rejected.
"""

from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from paytime_kernel.logging_config import get_logger

logger = get_logger("domain.money")

ZERO = Decimal("0")
CENT = Decimal("0.01")

_GROUPED = re.compile(r"^[+-]?\d{1,3}(,\d{3})+(\.\d*)?$")


def round_money(value: Decimal) -> Decimal:
    """Quantize to cents using half-up rounding."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def strip_thousands(text: str) -> str | None:
    """
    Remove thousands separators from a numeric string.

    A comma is accepted only between groups of exactly three digits
    (``1,250.50``).  Any other comma (``33,96`` as a decimal comma) is
    ambiguous and yields ``None``.
    """
    if "," not in text:
        return text
    if not _GROUPED.match(text):
        return None
    return text.replace(",", "")


def to_decimal(value: Any, field_name: str = "") -> Decimal:
    """
    Coerce a loose input value to ``Decimal``.

    ``None`` and blank strings become zero.  Floats go through ``str`` so
    that ``33.96`` stays ``Decimal("33.96")``.  Anything unparseable,
    including a comma that is not a thousands separator, is logged and
    treated as zero.
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value if value.is_finite() else ZERO
    if isinstance(value, bool):
        return Decimal(int(value))
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        value = str(value)
    text = str(value).strip()
    if not text:
        return ZERO
    if text.upper().startswith("R"):
        text = text[1:].strip()
    plain = strip_thousands(text)
    if plain is None:
        logger.warning(
            "ambiguous_decimal_separator",
            extra={"field": field_name, "value": str(value)},
        )
        return ZERO
    try:
        result = Decimal(plain)
    except (InvalidOperation, ValueError):
        logger.warning(
            "unparseable_numeric_input",
            extra={"field": field_name, "value": str(value)},
        )
        return ZERO
    if not result.is_finite():
        return ZERO
    return result
