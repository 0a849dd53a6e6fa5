"""Shared service-layer helper functions."""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal

from pydantic import ValidationError

from snackpool.domain.money import from_cents


def now_iso() -> str:
    """Current UTC time as ISO 8601 with microseconds (sortable row timestamps)."""
    return datetime.now(UTC).isoformat(timespec="microseconds")


def money(cents: int) -> Decimal:
    """Cents to a two-place Decimal for result payloads."""
    return from_cents(cents)


def describe_validation_error(exc: ValidationError) -> tuple[str, int | None]:
    """Flatten a pydantic error into ``(message, row_index)``.

    For batch payloads the first ``loc`` element is the row index; it is
    returned separately so callers can report which request failed.
    """
    first = exc.errors()[0]
    loc = list(first.get("loc", ()))
    index = loc[0] if loc and isinstance(loc[0], int) else None
    field_path = ".".join(str(part) for part in loc if not isinstance(part, int))
    message = first.get("msg", "invalid input")
    if field_path:
        message = f"{field_path}: {message}"
    if index is not None:
        message = f"request {index}: {message}"
    return message, index
