"""Request-scoped timing spans for service calls.

Off by default: a disabled check is one ``ContextVar.get`` per call.
With ``--verbose`` every ``@traced`` service call builds a span tree.
``trace_span`` blocks and nested ``@traced`` calls become child spans,
and the root span is attached to ``ServiceResult.meta["telemetry"]``
and logged through structlog.
"""

from __future__ import annotations

import functools
import time
from collections.abc import Callable, Generator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, ParamSpec, TypeVar

import structlog

from snackpool.services.result import ServiceResult

_log = structlog.get_logger("snackpool.telemetry")

# Root spans slower than this are logged at WARNING instead of DEBUG.
SLOW_SPAN_MS = 500.0

_enabled: ContextVar[bool] = ContextVar("_telemetry_enabled", default=False)
_current_span: ContextVar[Span | None] = ContextVar("_current_span", default=None)


@dataclass
class Span:
    """One timed step; children are the steps it contains."""

    name: str
    parent: Span | None = None
    children: list[Span] = field(default_factory=list)
    start_time: float = field(default_factory=time.perf_counter)
    end_time: float | None = None
    annotations: dict[str, Any] = field(default_factory=dict)

    @property
    def duration_ms(self) -> float:
        if self.end_time is None:
            return 0.0
        return (self.end_time - self.start_time) * 1000

    def child(self, name: str) -> Span:
        span = Span(name=name, parent=self)
        self.children.append(span)
        return span

    def end(self) -> None:
        self.end_time = time.perf_counter()

    def annotate(self, key: str, value: Any) -> None:
        self.annotations[key] = value

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"name": self.name, "duration_ms": round(self.duration_ms, 2)}
        if self.annotations:
            d["annotations"] = dict(self.annotations)
        if self.children:
            d["children"] = [c.to_dict() for c in self.children]
        return d


@contextmanager
def trace_span(name: str) -> Generator[Span | None]:
    """Time a block as a child of the active span.

    Yields None when telemetry is off or no ``@traced`` call is active.
    """
    parent = _current_span.get() if _enabled.get() else None
    if parent is None:
        yield None
        return

    span = parent.child(name)
    token = _current_span.set(span)
    try:
        yield span
    finally:
        span.end()
        _current_span.reset(token)


_P = ParamSpec("_P")
_R = TypeVar("_R")


def traced(func: Callable[_P, _R]) -> Callable[_P, _R]:  # noqa: UP047
    """Time a service method.

    The outermost traced call owns the tree: it logs the span and attaches
    it to the returned ServiceResult. Inner traced calls only add a child.
    """

    @functools.wraps(func)
    def wrapper(*args: _P.args, **kwargs: _P.kwargs) -> _R:
        if not _enabled.get():
            return func(*args, **kwargs)

        parent = _current_span.get()
        span = parent.child(func.__qualname__) if parent else Span(name=func.__qualname__)
        token = _current_span.set(span)
        try:
            result = func(*args, **kwargs)
        except Exception:
            span.end()
            _current_span.reset(token)
            if parent is None:
                _log_span(span, ok=False)
            raise
        span.end()
        _current_span.reset(token)

        if parent is not None:
            return result
        ok = True
        if isinstance(result, ServiceResult):
            ok = result.ok
            meta = {**(result.meta or {}), "telemetry": span.to_dict()}
            result = result.model_copy(update={"meta": meta})  # type: ignore[assignment]
        _log_span(span, ok=ok)
        return result

    return wrapper


def _log_span(span: Span, *, ok: bool) -> None:
    log = _log.warning if span.duration_ms > SLOW_SPAN_MS else _log.debug
    log(
        "span.complete",
        span_name=span.name,
        duration_ms=round(span.duration_ms, 2),
        ok=ok,
        steps=[c.name for c in span.children],
    )


def enable_telemetry() -> None:
    """Turn on span collection (AppContext does this for ``--verbose``)."""
    _enabled.set(True)


def disable_telemetry() -> None:
    _enabled.set(False)


def get_current_span() -> Span | None:
    """The active span, for ad-hoc annotation; None when telemetry is off."""
    if not _enabled.get():
        return None
    return _current_span.get()
