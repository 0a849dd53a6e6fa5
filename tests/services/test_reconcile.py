"""Tests for ReconciliationService: atomic batch edits of open orders."""

from pathlib import Path

import pytest

from snackpool.infrastructure.pool import Pool
from snackpool.services.reconcile import ReconciliationService
from tests.conftest import ADMIN, add_item, add_user, as_user, order_rows, set_orders


@pytest.fixture
def menu(pool: Pool) -> dict[str, int]:
    return {
        "alice": add_user(pool, "alice"),
        "bob": add_user(pool, "bob"),
        "coffee": add_item(pool, "Coffee", "2.50"),
        "tea": add_item(pool, "Tea", "2.00"),
        "bagel": add_item(pool, "Bagel", "2.50"),
    }


def _row(user_id: int, item_id: int, quantity: int) -> dict[str, int]:
    return {"userId": user_id, "itemId": item_id, "quantity": quantity}


class TestApplyBatch:
    def test_upsert_and_remove(self, pool: Pool, menu: dict[str, int]) -> None:
        set_orders(pool, (menu["alice"], menu["tea"], 1))
        svc = ReconciliationService(pool)
        result = svc.apply_batch(
            ADMIN,
            [
                _row(menu["alice"], menu["coffee"], 2),
                _row(menu["alice"], menu["tea"], 0),
                _row(menu["bob"], menu["bagel"], 0),
            ],
        )
        assert result.ok
        assert result.data == {"requested": 3, "upserted": 1, "removed": 1}
        assert order_rows(pool) == {(menu["alice"], menu["coffee"], 2)}

    def test_quantity_replaces_not_adds(self, pool: Pool, menu: dict[str, int]) -> None:
        set_orders(pool, (menu["alice"], menu["coffee"], 2))
        set_orders(pool, (menu["alice"], menu["coffee"], 5))
        assert order_rows(pool) == {(menu["alice"], menu["coffee"], 5)}

    def test_later_request_wins(self, pool: Pool, menu: dict[str, int]) -> None:
        """Same key twice: ``[{alice,coffee,3},{alice,coffee,0}]`` removes the order."""
        result = ReconciliationService(pool).apply_batch(
            as_user(menu["alice"]),
            [_row(menu["alice"], menu["coffee"], 3), _row(menu["alice"], menu["coffee"], 0)],
        )
        assert result.ok
        assert order_rows(pool) == set()

    def test_idempotent(self, pool: Pool, menu: dict[str, int]) -> None:
        batch = [_row(menu["alice"], menu["coffee"], 2), _row(menu["bob"], menu["tea"], 1)]
        svc = ReconciliationService(pool)
        assert svc.apply_batch(ADMIN, batch).ok
        once = order_rows(pool)
        assert svc.apply_batch(ADMIN, batch).ok
        assert order_rows(pool) == once

    def test_empty_batch(self, pool: Pool) -> None:
        result = ReconciliationService(pool).apply_batch(ADMIN, [])
        assert result.ok
        assert result.data == {"requested": 0, "upserted": 0, "removed": 0}


class TestRejections:
    def test_non_privileged_cannot_touch_others(self, pool: Pool, menu: dict[str, int]) -> None:
        set_orders(pool, (menu["bob"], menu["bagel"], 1))
        before = order_rows(pool)
        result = ReconciliationService(pool).apply_batch(
            as_user(menu["alice"]),
            [_row(menu["alice"], menu["coffee"], 1), _row(menu["bob"], menu["tea"], 1)],
        )
        assert not result.ok
        assert result.error is not None
        assert result.error.code == "UNAUTHORIZED"
        assert result.error.detail["index"] == 1
        assert order_rows(pool) == before

    def test_negative_quantity(self, pool: Pool, menu: dict[str, int]) -> None:
        result = ReconciliationService(pool).apply_batch(
            ADMIN, [_row(menu["alice"], menu["coffee"], -1)]
        )
        assert not result.ok
        assert result.error is not None
        assert result.error.code == "VALIDATION_FAILED"
        assert order_rows(pool) == set()

    def test_oversized_quantity(self, pool: Pool, menu: dict[str, int]) -> None:
        result = ReconciliationService(pool).apply_batch(
            ADMIN,
            [_row(menu["alice"], menu["tea"], 1), _row(menu["alice"], menu["coffee"], 2**63)],
        )
        assert result.error is not None
        assert result.error.code == "VALIDATION_FAILED"
        assert result.error.detail["index"] == 1
        assert order_rows(pool) == set()

    @pytest.mark.parametrize("raw", [None, {"userId": 1}, "[]", [1, 2]])
    def test_malformed_payload(self, pool: Pool, raw: object) -> None:
        result = ReconciliationService(pool).apply_batch(ADMIN, raw)
        assert result.error is not None
        assert result.error.code == "VALIDATION_FAILED"

    def test_unknown_user_or_item(self, pool: Pool, menu: dict[str, int]) -> None:
        svc = ReconciliationService(pool)
        for row in (_row(999, menu["tea"], 1), _row(menu["alice"], 999, 1)):
            result = svc.apply_batch(ADMIN, [row])
            assert result.error is not None
            assert result.error.code == "NOT_FOUND"


class TestAtomicity:
    """A bad request anywhere in a batch of five leaves the store untouched."""

    @staticmethod
    def _batch(menu: dict[str, int]) -> list[dict[str, int]]:
        return [
            _row(menu["alice"], menu["coffee"], 1),
            _row(menu["alice"], menu["tea"], 0),
            _row(menu["bob"], menu["tea"], 4),
            _row(menu["bob"], menu["bagel"], 2),
            _row(menu["alice"], menu["bagel"], 3),
        ]

    @pytest.mark.parametrize("position", range(5))
    def test_invalid_request(self, pool: Pool, menu: dict[str, int], position: int) -> None:
        set_orders(pool, (menu["alice"], menu["tea"], 2), (menu["bob"], menu["coffee"], 1))
        before = order_rows(pool)
        batch = self._batch(menu)
        batch[position] = {**batch[position], "quantity": -1}
        result = ReconciliationService(pool).apply_batch(ADMIN, batch)
        assert result.error is not None
        assert result.error.code == "VALIDATION_FAILED"
        assert result.error.detail["index"] == position
        assert order_rows(pool) == before

    @pytest.mark.parametrize("position", range(5))
    def test_unknown_item(self, pool: Pool, menu: dict[str, int], position: int) -> None:
        set_orders(pool, (menu["alice"], menu["tea"], 2), (menu["bob"], menu["coffee"], 1))
        before = order_rows(pool)
        batch = self._batch(menu)
        batch[position] = {**batch[position], "itemId": 999}
        result = ReconciliationService(pool).apply_batch(ADMIN, batch)
        assert result.error is not None
        assert result.error.code == "NOT_FOUND"
        assert result.error.detail["index"] == position
        assert order_rows(pool) == before

    def test_storage_failure_mid_batch(
        self, pool: Pool, menu: dict[str, int], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        from sqlalchemy.exc import OperationalError

        from snackpool.infrastructure.repositories import OrderStore

        set_orders(pool, (menu["alice"], menu["tea"], 2))
        before = order_rows(pool)
        real_upsert = OrderStore.upsert
        calls = {"n": 0}

        def flaky(self: OrderStore, *args: object, **kwargs: object) -> bool:
            calls["n"] += 1
            if calls["n"] == 3:
                raise OperationalError("UPDATE orders", {}, Exception("disk I/O error"))
            return real_upsert(self, *args, **kwargs)  # type: ignore[arg-type]

        monkeypatch.setattr(OrderStore, "upsert", flaky)
        result = ReconciliationService(pool).apply_batch(ADMIN, self._batch(menu))
        assert result.error is not None
        assert result.error.code == "STORAGE_ERROR"
        assert order_rows(pool) == before


class TestSetOrder:
    def test_defaults_to_actor(self, pool: Pool, menu: dict[str, int]) -> None:
        result = ReconciliationService(pool).set_order(as_user(menu["bob"]), menu["tea"], 2)
        assert result.ok
        assert result.op == "set_order"
        assert order_rows(pool) == {(menu["bob"], menu["tea"], 2)}

    def test_for_other_user_requires_admin(self, pool: Pool, menu: dict[str, int]) -> None:
        svc = ReconciliationService(pool)
        denied = svc.set_order(as_user(menu["bob"]), menu["tea"], 2, user_id=menu["alice"])
        assert denied.error is not None
        assert denied.error.code == "UNAUTHORIZED"
        assert svc.set_order(ADMIN, menu["tea"], 2, user_id=menu["alice"]).ok


def test_events_dispatched_after_commit(tmp_path: Path) -> None:
    import pluggy

    from tests.conftest import make_pool

    hookimpl = pluggy.HookimplMarker("snackpool")
    seen: list[tuple[int, int, int]] = []

    class Recorder:
        @hookimpl
        def post_reconcile(self, actor_id: int, upserted: int, removed: int) -> None:
            seen.append((actor_id, upserted, removed))

    pool = make_pool(tmp_path)
    try:
        pool.init_event_bus(sync=True)
        assert pool.event_bus is not None
        pool.event_bus.plugin_manager.register_plugin(Recorder())
        alice = add_user(pool, "alice")
        tea = add_item(pool, "Tea", "2.00")
        assert ReconciliationService(pool).set_order(as_user(alice), tea, 1).ok
    finally:
        pool.close()
    assert seen == [(alice, 1, 0)]
