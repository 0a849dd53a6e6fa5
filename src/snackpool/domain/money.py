"""Money conversion between display decimals and stored integer cents.

All amounts are persisted as signed integer cents so that ledger sums are
exact. Decimals at the boundary are limited to two places: a value such as
``1.005`` is rejected rather than rounded (no fractional settlement).
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation

CENT = Decimal("0.01")

# Cents are stored in a signed 64-bit INTEGER column.
MAX_CENTS = 2**63 - 1


def to_decimal(value: Decimal | int | str | float) -> Decimal:
    """Coerce *value* to a finite Decimal with at most two decimal places.

    Floats are converted through ``str`` so ``2.5`` becomes ``Decimal("2.5")``
    rather than its binary expansion.

    Raises:
        ValueError: If the value is not a finite number or carries
            sub-cent precision.
    """
    if isinstance(value, bool):
        msg = f"Not a monetary amount: {value!r}"
        raise ValueError(msg)
    try:
        amount = Decimal(str(value)) if isinstance(value, float) else Decimal(value)
    except (InvalidOperation, TypeError) as exc:
        msg = f"Not a monetary amount: {value!r}"
        raise ValueError(msg) from exc

    if not amount.is_finite():
        msg = f"Amount must be finite, got {value!r}"
        raise ValueError(msg)
    try:
        quantized = amount.quantize(CENT)
    except InvalidOperation as exc:
        msg = f"Amount is too large: {value!r}"
        raise ValueError(msg) from exc
    if amount != quantized:
        msg = f"Amount has more than two decimal places: {value!r}"
        raise ValueError(msg)
    return quantized


def to_cents(value: Decimal | int | str | float) -> int:
    """Convert a monetary amount to integer cents.

    Examples:
        >>> to_cents("2.50")
        250
        >>> to_cents(-7)
        -700

    Raises:
        ValueError: As :func:`to_decimal`, or if the amount does not fit
            the stored cents range.
    """
    cents = int(to_decimal(value) * 100)
    if abs(cents) > MAX_CENTS:
        msg = f"Amount is too large: {value!r}"
        raise ValueError(msg)
    return cents


def from_cents(cents: int) -> Decimal:
    """Convert integer cents back to a two-place Decimal.

    Examples:
        >>> from_cents(250)
        Decimal('2.50')
    """
    return (Decimal(cents) / 100).quantize(CENT)
