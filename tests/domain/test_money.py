"""Tests for cent/decimal conversion."""

from decimal import Decimal

import pytest

from snackpool.domain.money import MAX_CENTS, from_cents, to_cents, to_decimal


class TestToDecimal:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("2.50", Decimal("2.50")),
            (2.5, Decimal("2.50")),
            (3, Decimal("3.00")),
            (Decimal("-1.5"), Decimal("-1.50")),
            ("0", Decimal("0.00")),
        ],
    )
    def test_accepts_two_places(self, value: object, expected: Decimal) -> None:
        assert to_decimal(value) == expected  # type: ignore[arg-type]

    def test_float_goes_through_str(self) -> None:
        assert to_decimal(0.1) == Decimal("0.10")

    @pytest.mark.parametrize("value", ["1.005", 0.125, Decimal("2.001")])
    def test_rejects_sub_cent(self, value: object) -> None:
        with pytest.raises(ValueError, match="two decimal places"):
            to_decimal(value)  # type: ignore[arg-type]

    @pytest.mark.parametrize("value", ["abc", "NaN", "Infinity", True, None])
    def test_rejects_non_amounts(self, value: object) -> None:
        with pytest.raises(ValueError):
            to_decimal(value)  # type: ignore[arg-type]

    @pytest.mark.parametrize("value", ["1e30", Decimal("1E+27"), 10**40])
    def test_beyond_precision_is_value_error(self, value: object) -> None:
        with pytest.raises(ValueError, match="too large"):
            to_decimal(value)  # type: ignore[arg-type]


class TestCents:
    def test_to_cents(self) -> None:
        assert to_cents("2.50") == 250
        assert to_cents(-7) == -700
        assert to_cents("0.01") == 1

    def test_from_cents(self) -> None:
        assert from_cents(250) == Decimal("2.50")
        assert from_cents(-1) == Decimal("-0.01")
        assert str(from_cents(0)) == "0.00"

    def test_cents_range(self) -> None:
        assert to_cents(from_cents(MAX_CENTS)) == MAX_CENTS
        assert to_cents(from_cents(-MAX_CENTS)) == -MAX_CENTS

    @pytest.mark.parametrize(
        "value", ["100000000000000000000", "-100000000000000000000", "92233720368547758.08"]
    )
    def test_out_of_range_rejected(self, value: str) -> None:
        with pytest.raises(ValueError, match="too large"):
            to_cents(value)
