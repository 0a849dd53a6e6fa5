"""Tests for DeliveryService: settlement of open orders into the ledger."""

from decimal import Decimal
from pathlib import Path
from typing import Any

import pytest

from snackpool.infrastructure.pool import Pool
from snackpool.services.delivery import DeliveryService
from tests.conftest import (
    ADMIN,
    add_item,
    add_user,
    as_user,
    balance_of,
    ledger_sum,
    make_pool,
    order_rows,
    set_orders,
)


def _seed(pool: Pool) -> dict[str, int]:
    """alice: 2 coffee (2.50), bob: 1 tea (2.00); carol delivers."""
    ids = {
        "alice": add_user(pool, "alice"),
        "bob": add_user(pool, "bob"),
        "carol": add_user(pool, "carol"),
        "coffee": add_item(pool, "Coffee", "2.50"),
        "tea": add_item(pool, "Tea", "2.00"),
    }
    set_orders(pool, (ids["alice"], ids["coffee"], 2), (ids["bob"], ids["tea"], 1))
    return ids


@pytest.fixture
def ids(pool: Pool) -> dict[str, int]:
    return _seed(pool)


def _confirm(pool: Pool, deliverer: int, totals: dict[str, Any] | None = None, **kw: Any) -> Any:
    request = {"delivering_user_id": deliverer, "user_totals": totals or {}}
    return DeliveryService(pool).confirm(kw.get("identity", ADMIN), request)


class TestConfirm:
    def test_posts_debits_credit_and_clears(self, pool: Pool, ids: dict[str, int]) -> None:
        result = _confirm(pool, ids["carol"], {"alice": "5.00", "bob": "2.00"})
        assert result.ok, result.error
        assert result.data["total"] == Decimal("7.00")
        assert result.data["source"] == "server"
        assert result.data["orders_cleared"] == 2
        assert result.warnings == []
        assert balance_of(pool, ids["alice"]) == Decimal("-5.00")
        assert balance_of(pool, ids["bob"]) == Decimal("-2.00")
        assert balance_of(pool, ids["carol"]) == Decimal("7.00")
        assert order_rows(pool) == set()
        assert ledger_sum(pool) == 0

    def test_descriptions(self, pool: Pool, ids: dict[str, int]) -> None:
        assert _confirm(pool, ids["carol"]).ok
        with pool.snapshot() as snap:
            descriptions = {e.username: e.description for e in snap.ledger.history()}
        assert descriptions == {
            "alice": "Order payment",
            "bob": "Order payment",
            "carol": "Payment received",
        }

    def test_recomputes_from_prices(self, pool: Pool, ids: dict[str, int]) -> None:
        result = _confirm(pool, ids["carol"], {"alice": "1.00", "bob": "2.00"})
        assert result.ok
        assert balance_of(pool, ids["alice"]) == Decimal("-5.00")
        assert balance_of(pool, ids["carol"]) == Decimal("7.00")
        assert any("(3.00 submitted, 7.00 computed)" in w for w in result.warnings)

    def test_deliverer_may_also_owe(self, pool: Pool, ids: dict[str, int]) -> None:
        set_orders(pool, (ids["carol"], ids["tea"], 1))
        result = _confirm(pool, ids["carol"])
        assert result.ok
        assert result.data["total"] == Decimal("9.00")
        assert balance_of(pool, ids["carol"]) == Decimal("7.00")
        assert ledger_sum(pool) == 0

    def test_nothing_to_settle(self, pool: Pool) -> None:
        carol = add_user(pool, "carol")
        result = _confirm(pool, carol)
        assert result.error is not None
        assert result.error.code == "NOTHING_TO_SETTLE"
        with pool.snapshot() as snap:
            assert snap.ledger.count() == 0

    def test_unknown_deliverer(self, pool: Pool, ids: dict[str, int]) -> None:
        result = _confirm(pool, 999)
        assert result.error is not None
        assert result.error.code == "NOT_FOUND"
        assert len(order_rows(pool)) == 2

    def test_only_deliverer_or_admin_may_confirm(self, pool: Pool, ids: dict[str, int]) -> None:
        denied = _confirm(pool, ids["carol"], identity=as_user(ids["alice"]))
        assert denied.error is not None
        assert denied.error.code == "UNAUTHORIZED"
        assert len(order_rows(pool)) == 2
        assert _confirm(pool, ids["carol"], identity=as_user(ids["carol"])).ok

    def test_invalid_request(self, pool: Pool, ids: dict[str, int]) -> None:
        result = DeliveryService(pool).confirm(ADMIN, {"user_totals": {}})
        assert result.error is not None
        assert result.error.code == "VALIDATION_FAILED"


class TestUsernames:
    def test_strict_by_default(self, pool: Pool, ids: dict[str, int]) -> None:
        result = _confirm(pool, ids["carol"], {"alice": "5.00", "mallory": "1.00"})
        assert result.error is not None
        assert result.error.code == "NOT_FOUND"
        assert result.error.detail["usernames"] == ["mallory"]
        assert len(order_rows(pool)) == 2
        assert ledger_sum(pool) == 0

    def test_lenient_skips_with_warning(self, tmp_path: Path) -> None:
        pool = make_pool(tmp_path, delivery={"strict_usernames": False})
        try:
            ids = _seed(pool)
            result = _confirm(pool, ids["carol"], {"alice": "5.00", "mallory": "1.00"})
            assert result.ok
            assert any("mallory" in w for w in result.warnings)
            assert balance_of(pool, ids["carol"]) == Decimal("7.00")
        finally:
            pool.close()


class TestTrustClientTotals:
    @pytest.fixture
    def trusting(self, tmp_path: Path) -> Any:
        pool = make_pool(
            tmp_path, delivery={"trust_client_totals": True, "strict_usernames": False}
        )
        try:
            yield pool
        finally:
            pool.close()

    def test_posts_caller_totals(self, trusting: Pool) -> None:
        ids = _seed(trusting)
        result = _confirm(trusting, ids["carol"], {"alice": "4.00", "bob": "2.00"})
        assert result.ok
        assert result.data["source"] == "client"
        assert balance_of(trusting, ids["alice"]) == Decimal("-4.00")
        assert balance_of(trusting, ids["carol"]) == Decimal("6.00")
        assert order_rows(trusting) == set()

    def test_credit_matches_posted_debits(self, trusting: Pool) -> None:
        ids = _seed(trusting)
        result = _confirm(trusting, ids["carol"], {"alice": "5.00", "ghost": "3.00"})
        assert result.ok
        assert balance_of(trusting, ids["carol"]) == Decimal("5.00")
        assert ledger_sum(trusting) == 0

    @pytest.mark.parametrize("amount", ["1e30", "100000000000000000000"])
    def test_oversized_total_rejected(self, trusting: Pool, amount: str) -> None:
        ids = _seed(trusting)
        result = _confirm(trusting, ids["carol"], {"alice": amount})
        assert result.error is not None
        assert result.error.code == "VALIDATION_FAILED"
        assert ledger_sum(trusting) == 0
        assert balance_of(trusting, ids["carol"]) == Decimal("0.00")
        assert len(order_rows(trusting)) == 2

    def test_total_beyond_storable_range(self, trusting: Pool) -> None:
        ids = _seed(trusting)
        near_max = "90000000000000000.00"
        result = _confirm(trusting, ids["carol"], {"alice": near_max, "bob": near_max})
        assert result.error is not None
        assert result.error.code == "VALIDATION_FAILED"
        assert ledger_sum(trusting) == 0


class TestRollback:
    @pytest.mark.parametrize("failing_call", [1, 2, 3])
    def test_storage_failure_posts_nothing(
        self,
        pool: Pool,
        ids: dict[str, int],
        monkeypatch: pytest.MonkeyPatch,
        failing_call: int,
    ) -> None:
        from sqlalchemy.exc import OperationalError

        from snackpool.infrastructure.repositories import BalanceLedger

        real_append = BalanceLedger.append
        calls = {"n": 0}

        def flaky(self: BalanceLedger, *args: Any, **kwargs: Any) -> int:
            calls["n"] += 1
            if calls["n"] == failing_call:
                raise OperationalError("INSERT INTO ledger_entries", {}, Exception("disk full"))
            return real_append(self, *args, **kwargs)

        monkeypatch.setattr(BalanceLedger, "append", flaky)
        before = order_rows(pool)
        result = _confirm(pool, ids["carol"])
        assert result.error is not None
        assert result.error.code == "STORAGE_ERROR"
        assert order_rows(pool) == before
        with pool.snapshot() as snap:
            assert snap.ledger.count() == 0


class TestPreview:
    def test_aggregates(self, pool: Pool, ids: dict[str, int]) -> None:
        set_orders(pool, (ids["bob"], ids["coffee"], 1))
        result = DeliveryService(pool).preview()
        assert result.ok
        d = result.data
        assert d["order_count"] == 3
        assert d["total"] == Decimal("9.50")
        assert d["user_totals"] == {"alice": Decimal("5.00"), "bob": Decimal("4.50")}
        coffee = next(i for i in d["items"] if i["item_name"] == "Coffee")
        assert coffee["total_quantity"] == 3
        assert coffee["by_user"] == {"alice": 2, "bob": 1}
        assert coffee["line_total"] == Decimal("7.50")

    def test_preview_does_not_settle(self, pool: Pool, ids: dict[str, int]) -> None:
        DeliveryService(pool).preview()
        assert len(order_rows(pool)) == 2

    def test_empty(self, pool: Pool) -> None:
        result = DeliveryService(pool).preview()
        assert result.data["order_count"] == 0
        assert result.data["total"] == Decimal("0.00")
