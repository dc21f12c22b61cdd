"""Composition of middleware around a handler."""

from __future__ import annotations

from typing import Any, Callable, Iterator, Optional

Handler = Callable[[Any], Any]
Middleware = Callable[[Handler], Handler]


class Chain:
    """An immutable sequence of middleware applied outermost-first."""

    def __init__(self, *middlewares: Middleware) -> None:
        self._middlewares = tuple(middlewares)

    def then(self, handler: Optional[Handler] = None) -> Handler:
        """Wrap ``handler`` so the first middleware runs first.

        Without a handler, the innermost step accepts the context and
        returns ``None``.
        """
        result: Handler = handler if handler is not None else (lambda _ctx: None)
        for middleware in reversed(self._middlewares):
            result = middleware(result)
        return result

    def append(self, *middlewares: Middleware) -> "Chain":
        """Return a new chain with ``middlewares`` added at the end."""
        return Chain(*self._middlewares, *middlewares)

    def __len__(self) -> int:
        return len(self._middlewares)

    def __iter__(self) -> Iterator[Middleware]:
        return iter(self._middlewares)