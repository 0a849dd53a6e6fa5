"""Typed request shapes validated at the boundary of the core.

Callers hand the core loosely-typed payloads (JSON files, CLI arguments).
These models turn them into strict, frozen values before any storage is
touched, so a malformed batch never reaches the reconciliation engine.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictInt, TypeAdapter, field_validator

from snackpool.domain.money import from_cents, to_cents

# Largest quantity one reservation may hold.
MAX_QUANTITY = 2**31


class Identity(BaseModel):
    """A resolved actor: the core never verifies credentials itself."""

    model_config = ConfigDict(frozen=True)

    user_id: int
    is_privileged: bool = False

    def may_act_for(self, user_id: int) -> bool:
        """Privileged actors may act for anyone; others only for themselves."""
        return self.is_privileged or self.user_id == user_id


class OrderMutation(BaseModel):
    """One row of a batch: set (user, item) to exactly *quantity*.

    ``quantity == 0`` means "remove this reservation". Quantities above
    ``MAX_QUANTITY`` are rejected.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    user_id: StrictInt = Field(ge=1, alias="userId")
    item_id: StrictInt = Field(ge=1, alias="itemId")
    quantity: StrictInt = Field(ge=0, le=MAX_QUANTITY)


_BATCH_ADAPTER: TypeAdapter[list[OrderMutation]] = TypeAdapter(list[OrderMutation])


def parse_batch(raw: Any) -> list[OrderMutation]:
    """Validate a raw batch payload into a list of :class:`OrderMutation`.

    Accepts either snake_case (``user_id``) or camelCase (``userId``) keys.

    Raises:
        pydantic.ValidationError: If *raw* is not a list or any row is
            malformed. The first element of each error ``loc`` is the
            offending row index.
    """
    return _BATCH_ADAPTER.validate_python(raw)


class ConfirmationRequest(BaseModel):
    """Delivery confirmation: who fronted payment, and the caller's totals."""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    delivering_user_id: StrictInt = Field(ge=1, alias="deliveringUserId")
    user_totals: dict[str, Decimal] = Field(default_factory=dict, alias="userTotals")

    @field_validator("user_totals", mode="before")
    @classmethod
    def _check_totals(cls, value: Any) -> Any:
        if not isinstance(value, dict):
            return value
        checked: dict[str, Decimal] = {}
        for username, amount in value.items():
            dec = from_cents(to_cents(amount))
            if dec < 0:
                msg = f"Total for {username!r} must not be negative"
                raise ValueError(msg)
            checked[str(username)] = dec
        return checked

    @property
    def hinted_total(self) -> Decimal:
        return sum(self.user_totals.values(), Decimal("0.00"))
