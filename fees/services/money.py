# fees/services/money.py

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")


def money(value) -> Decimal:
    """Quantize to 2dp. Raises ValueError for anything that is not a number."""
    if value is None or value == "":
        return ZERO
    if isinstance(value, bool):
        raise ValueError(f"Invalid money value: {value!r}")
    try:
        amt = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, TypeError) as exc:
        raise ValueError(f"Invalid money value: {value!r}") from exc
    if not amt.is_finite():
        raise ValueError(f"Invalid money value: {value!r}")
    return amt.quantize(TWOPLACES, rounding=ROUND_HALF_UP)
