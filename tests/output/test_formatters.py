"""Tests for output mode selection."""

import json
from decimal import Decimal

from snackpool.output.formatters import OutputSettings, format_result
from snackpool.services.result import ServiceResult


def _items() -> ServiceResult:
    return ServiceResult(
        ok=True,
        op="list_items",
        data={
            "count": 2,
            "items": [
                {"id": 1, "name": "Tea", "price": Decimal("2.00"), "created_at": "x"},
                {"id": 2, "name": "Crisps", "price": Decimal("1.50"), "created_at": "x"},
            ],
        },
    )


class TestFormatResult:
    def test_json_mode(self) -> None:
        out = format_result(_items(), settings=OutputSettings(json_output=True))
        parsed = json.loads(out)
        assert parsed["ok"] is True
        assert parsed["op"] == "list_items"
        assert parsed["data"]["items"][1]["price"] == "1.50"

    def test_json_wins_over_quiet(self) -> None:
        out = format_result(_items(), settings=OutputSettings(json_output=True, quiet=True))
        assert json.loads(out)["data"]["count"] == 2

    def test_quiet_lists_ids(self) -> None:
        assert format_result(_items(), settings=OutputSettings(quiet=True)) == "1\n2"

    def test_default_is_rich(self) -> None:
        out = format_result(_items())
        assert "Items (2)" in out
        assert "Crisps" in out
        assert "1.50" in out
