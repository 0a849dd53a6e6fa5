"""ServiceResult and ServiceError: the universal service contract.

INVARIANT: All service-layer methods return ServiceResult.
The CLI and any future interface consume this type.

Error codes:
    VALIDATION_FAILED  malformed or out-of-range input
    UNAUTHORIZED       actor may not act for the target user
    NOT_FOUND          unknown user, item, or username reference
    CONFLICT           uniqueness violation (e.g. duplicate username)
    NOTHING_TO_SETTLE  delivery confirmed with nothing to post
    STORAGE_ERROR      persistence failure; the operation was rolled back
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ServiceError(BaseModel):
    """Structured error payload within a ServiceResult."""

    model_config = {"frozen": True}

    code: str
    message: str
    detail: dict[str, Any] = Field(default_factory=dict)


class ServiceResult(BaseModel):
    """Universal return type for all service operations.

    Attributes:
        ok: Whether the operation succeeded.
        op: Name of the operation (e.g. ``"apply_batch"``).
        data: Operation-specific payload on success.
        warnings: Non-fatal issues encountered during the operation.
        error: Structured error if ``ok`` is False.
        meta: Optional metadata (timing, counts, etc.).
    """

    model_config = {"frozen": True}

    ok: bool
    op: str
    data: dict[str, Any] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    error: ServiceError | None = None
    meta: dict[str, Any] | None = None

    @classmethod
    def failure(
        cls,
        op: str,
        code: str,
        message: str,
        **detail: Any,
    ) -> ServiceResult:
        """Shorthand for an ``ok=False`` result."""
        return cls(
            ok=False,
            op=op,
            error=ServiceError(code=code, message=message, detail=detail),
        )


class OperationAborted(Exception):  # noqa: N818
    """Raised inside a transaction to roll it back with a structured error.

    Services catch it outside the ``with pool.transaction()`` block and
    turn ``error`` into a failed :class:`ServiceResult`.
    """

    def __init__(self, code: str, message: str, **detail: Any) -> None:
        super().__init__(message)
        self.error = ServiceError(code=code, message=message, detail=detail)

    def to_result(self, op: str) -> ServiceResult:
        return ServiceResult(ok=False, op=op, error=self.error)
