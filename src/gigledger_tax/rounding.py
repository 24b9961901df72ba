"""Money rounding and formatting helpers.

Rounding happens once, when a total is finalized. Formatters only print
values that are already rounded and refuse anything else.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional

from .exceptions import ExportContractError

CENT = Decimal("0.01")
ZERO = Decimal("0")


def round_cents(value: Decimal) -> Decimal:
    """Round to 2 decimal places, half away from zero.

    Decimal's ROUND_HALF_UP rounds ties away from zero for negative values
    too, so -0.005 becomes -0.01.
    """
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def is_rounded(value: Decimal) -> bool:
    """Return True if value already has at most 2 decimal places."""
    return value == value.quantize(CENT)


def format_cents(value: Decimal) -> str:
    """Format an already-rounded amount with exactly two decimals.

    No thousands separators and no currency symbol.

    Raises:
        ExportContractError: If value carries sub-cent precision.
    """
    if not is_rounded(value):
        raise ExportContractError(
            f"Amount {value} was not rounded before formatting",
            component="rounding",
            details={"value": str(value)},
        )
    quantized = value.quantize(CENT)
    if quantized == ZERO:
        quantized = abs(quantized)  # never print -0.00
    return f"{quantized:f}"


def format_currency(value: Decimal) -> str:
    """Human-readable dollars, e.g. ``$1,050.00`` or ``-$40.00``."""
    text = format_cents(abs(value))
    whole, _, cents = text.partition(".")
    grouped = f"{int(whole):,}"
    sign = "-" if value < 0 else ""
    return f"{sign}${grouped}.{cents}"


def to_decimal(value: Any) -> Optional[Decimal]:
    """Coerce a raw numeric value to Decimal.

    Floats go through ``str()`` so 0.1 stays 0.1. Returns None for values
    that cannot be parsed, including NaN and infinities.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        result = Decimal(str(value))
    elif isinstance(value, str):
        text = value.strip().replace(",", "").lstrip("$")
        if not text:
            return None
        try:
            result = Decimal(text)
        except InvalidOperation:
            return None
    else:
        return None

    if not result.is_finite():
        return None
    return result
