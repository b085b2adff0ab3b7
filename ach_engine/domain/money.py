"""Conversion between display amounts and integer cents"""

from decimal import Decimal, InvalidOperation
from typing import Union

from ach_engine.domain.exceptions import InvalidAmountError


def to_minor_units(amount: Union[str, int, Decimal]) -> int:
    """
    Convert a display amount in dollars to integer cents.

    This is the only place dollars become cents. Floats are rejected because
    they cannot carry an exact decimal value; amounts with more than two
    fractional digits are rejected rather than rounded.

    Example:
        "2500.00" -> 250000
        Decimal("0.01") -> 1
    """
    if isinstance(amount, bool) or isinstance(amount, float):
        raise InvalidAmountError(f"Unsupported amount type: {type(amount).__name__}")

    try:
        value = Decimal(str(amount).strip().replace(",", ""))
    except InvalidOperation as e:
        raise InvalidAmountError(f"Invalid amount: {amount!r}") from e

    if not value.is_finite():
        raise InvalidAmountError(f"Invalid amount: {amount!r}")

    cents = value * 100
    if cents != cents.to_integral_value():
        raise InvalidAmountError(f"Amount has more than two decimal places: {amount!r}")

    return int(cents)


def format_minor_units(amount_cents: int) -> str:
    """Render cents as a dollar string for messages, e.g. 250000 -> "$2,500.00" """
    sign = "-" if amount_cents < 0 else ""
    dollars, cents = divmod(abs(amount_cents), 100)
    return f"{sign}${dollars:,}.{cents:02d}"
