"""Lightweight distributed tracing with spans carried in immutable contexts."""

from __future__ import annotations

import enum
import threading
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional, TypeVar

T = TypeVar("T")


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


class SpanStatus(enum.IntEnum):
    """Outcome of the operation a span covers."""

    UNSET = 0
    OK = 1
    ERROR = 2


@dataclass
class Span:
    """One timed operation within a trace."""

    trace_id: str = ""
    span_id: str = ""
    parent_id: str = ""
    operation: str = ""
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    tags: dict[str, str] = field(default_factory=dict)
    status: SpanStatus = SpanStatus.UNSET


class TraceContext:
    """Immutable chain of key/value pairs passed along a call path."""

    __slots__ = ("_parent", "_key", "_value")

    def __init__(self) -> None:
        self._parent: Optional[TraceContext] = None
        self._key: Any = None
        self._value: Any = None

    def get(self, key: Any) -> Any:
        """Return the innermost value stored under ``key``, or None."""
        ctx: Optional[TraceContext] = self
        while ctx is not None:
            if ctx._parent is not None and ctx._key == key:
                return ctx._value
            ctx = ctx._parent
        return None

    def with_value(self, key: Any, value: Any) -> "TraceContext":
        """Return a child context in which ``key`` maps to ``value``."""
        child = TraceContext()
        child._parent = self
        child._key = key
        child._value = value
        return child


_SPAN_KEY = object()


def context_with_span(ctx: Optional[TraceContext], span: Span) -> TraceContext:
    """Return a context derived from ``ctx`` that carries ``span``."""
    return (ctx if ctx is not None else TraceContext()).with_value(_SPAN_KEY, span)


def span_from_context(ctx: Optional[TraceContext]) -> Optional[Span]:
    """Return the span carried by ``ctx``, or None."""
    if ctx is None:
        return None
    span = ctx.get(_SPAN_KEY)
    return span if isinstance(span, Span) else None


class Tracer(ABC):
    """Interface for creating and finishing spans."""

    @abstractmethod
    def start_span(
        self, ctx: Optional[TraceContext], operation: str
    ) -> tuple[TraceContext, Span]:
        """Start a span and return a context carrying it together with the span."""

    @abstractmethod
    def finish_span(self, span: Optional[Span]) -> None:
        """Mark a span as finished."""

    @abstractmethod
    def add_tags(self, span: Optional[Span], tags: Mapping[str, str]) -> None:
        """Add tags to a span."""

    @abstractmethod
    def set_status(self, span: Optional[Span], status: SpanStatus) -> None:
        """Set the status of a span."""


class NoOpTracer(Tracer):
    """Tracer that records nothing."""

    def start_span(
        self, ctx: Optional[TraceContext], operation: str
    ) -> tuple[TraceContext, Span]:
        return (ctx if ctx is not None else TraceContext()), Span()

    def finish_span(self, span: Optional[Span]) -> None:
        pass

    def add_tags(self, span: Optional[Span], tags: Mapping[str, str]) -> None:
        pass

    def set_status(self, span: Optional[Span], status: SpanStatus) -> None:
        pass


class SimpleTracer(Tracer):
    """Tracer that keeps finished spans in memory."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._spans: list[Span] = []

    def start_span(
        self, ctx: Optional[TraceContext], operation: str
    ) -> tuple[TraceContext, Span]:
        parent = span_from_context(ctx)
        span = Span(
            span_id=_new_id(),
            operation=operation,
            start_time=_now(),
            status=SpanStatus.UNSET,
        )
        if parent is not None:
            span.trace_id = parent.trace_id
            span.parent_id = parent.span_id
        else:
            span.trace_id = _new_id()
        return context_with_span(ctx, span), span

    def finish_span(self, span: Optional[Span]) -> None:
        if span is None:
            return
        span.end_time = _now()
        snapshot = replace(span, tags=dict(span.tags))
        with self._lock:
            self._spans.append(snapshot)

    def add_tags(self, span: Optional[Span], tags: Mapping[str, str]) -> None:
        if span is None:
            return
        span.tags.update(tags)

    def set_status(self, span: Optional[Span], status: SpanStatus) -> None:
        if span is None:
            return
        span.status = status

    @property
    def spans(self) -> tuple[Span, ...]:
        """Snapshots of finished spans, in finishing order."""
        with self._lock:
            return tuple(self._spans)


def start_span_from_context(
    ctx: Optional[TraceContext], tracer: Tracer, operation: str
) -> tuple[TraceContext, Span]:
    """Start a span with ``tracer`` as a child of any span in ``ctx``."""
    return tracer.start_span(ctx, operation)


def trace_function(
    ctx: Optional[TraceContext],
    tracer: Tracer,
    operation: str,
    fn: Callable[[TraceContext], T],
) -> T:
    """Run ``fn`` inside a span, marking the span as failed if ``fn`` raises."""
    span_ctx, span = tracer.start_span(ctx, operation)
    try:
        result = fn(span_ctx)
    except Exception as exc:
        tracer.set_status(span, SpanStatus.ERROR)
        tracer.add_tags(span, {"error": str(exc)})
        raise
    else:
        tracer.set_status(span, SpanStatus.OK)
        return result
    finally:
        tracer.finish_span(span)