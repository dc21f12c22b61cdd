"""Circuit breaker that stops calling a failing dependency for a while."""

from __future__ import annotations

import enum
import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass, replace
from typing import Any, Callable, Optional


class State(enum.Enum):
    """State of a circuit breaker."""

    CLOSED = 0
    OPEN = 1
    HALF_OPEN = 2

    def __str__(self) -> str:
        return self.name.lower().replace("_", "-")


class CircuitBreakerError(Exception):
    """Base class for requests rejected by a circuit breaker."""


class CircuitOpenError(CircuitBreakerError):
    """Raised when the circuit breaker is open."""

    def __init__(self, message: str = "circuit breaker is open") -> None:
        super().__init__(message)


class TooManyRequestsError(CircuitBreakerError):
    """Raised when the half-open request limit is reached."""

    def __init__(self, message: str = "too many requests in half-open state") -> None:
        super().__init__(message)


@dataclass
class Counts:
    """Request counts within the current generation."""

    requests: int = 0
    total_successes: int = 0
    total_failures: int = 0
    consecutive_successes: int = 0
    consecutive_failures: int = 0

    def failure_ratio(self) -> float:
        if self.requests == 0:
            return 0.0
        return self.total_failures / self.requests


def _default_ready_to_trip(counts: Counts) -> bool:
    return counts.requests > 10 and counts.failure_ratio() > 0.5


@dataclass
class Config:
    """Circuit breaker settings; durations are in seconds."""

    max_requests: int = 1
    interval: float = 1.0
    timeout: float = 60.0
    ready_to_trip: Callable[[Counts], bool] = _default_ready_to_trip
    on_state_change: Optional[Callable[[str, State, State], None]] = None
    clock: Callable[[], float] = time.monotonic


def default_config() -> Config:
    """Return the default configuration."""
    return Config()


class CircuitBreaker:
    """Guards calls to a function, opening after too many failures."""

    def __init__(self, name: str, config: Optional[Config] = None) -> None:
        self.name = name
        self.config = config if config is not None else default_config()
        self._lock = threading.RLock()
        self._state = State.CLOSED
        self._counts = Counts()
        self._expiry = self.config.clock()
        self._half_open = 0

    @property
    def state(self) -> State:
        with self._lock:
            return self._state

    @property
    def counts(self) -> Counts:
        with self._lock:
            return replace(self._counts)

    def call(self, fn: Callable[[], Any]) -> Any:
        """Run ``fn`` if the breaker allows it and record the outcome."""
        generation = self._before_request()
        try:
            result = fn()
        except Exception:
            self._after_request(generation, failed=True)
            raise
        self._after_request(generation, failed=False)
        return result

    def call_async(self, fn: Callable[[], Any]) -> Future:
        """Run ``call(fn)`` in a background thread and return a future."""
        future: Future = Future()

        def run() -> None:
            if not future.set_running_or_notify_cancel():
                return
            try:
                future.set_result(self.call(fn))
            except Exception as exc:
                future.set_exception(exc)

        threading.Thread(target=run, daemon=True).start()
        return future

    def _before_request(self) -> Optional[float]:
        with self._lock:
            now = self.config.clock()
            if self._state is State.CLOSED:
                if self._expiry < now:
                    self._new_generation(now)
                return None
            if self._state is State.OPEN:
                if self._expiry < now:
                    self._set_state(State.HALF_OPEN)
                    self._half_open = 0
                    self._expiry = now + self.config.interval
                    return self._expiry
                raise CircuitOpenError()
            if self._half_open + 1 > self.config.max_requests:
                raise TooManyRequestsError()
            self._half_open += 1
            return self._expiry

    def _after_request(self, generation: Optional[float], failed: bool) -> None:
        with self._lock:
            if self._state is State.CLOSED:
                self._after_closed(failed)
            elif self._state is State.HALF_OPEN:
                self._after_half_open(generation, failed)

    def _after_closed(self, failed: bool) -> None:
        counts = self._counts
        counts.requests += 1
        if failed:
            counts.total_failures += 1
            counts.consecutive_successes = 0
            counts.consecutive_failures += 1
            if self.config.ready_to_trip(replace(counts)):
                self._set_state(State.OPEN)
                self._expiry = self.config.clock() + self.config.timeout
        else:
            counts.total_successes += 1
            counts.consecutive_failures = 0
            counts.consecutive_successes += 1

    def _after_half_open(self, generation: Optional[float], failed: bool) -> None:
        if generation != self._expiry:
            return
        if failed:
            self._set_state(State.OPEN)
            self._expiry = self.config.clock() + self.config.timeout
            self._counts = Counts()
        elif self._half_open >= self.config.max_requests:
            self._set_state(State.CLOSED)
            self._new_generation(self.config.clock())

    def _set_state(self, state: State) -> None:
        previous = self._state
        self._state = state
        if self.config.on_state_change is not None and previous is not state:
            self.config.on_state_change(self.name, previous, state)

    def _new_generation(self, now: float) -> None:
        self._counts = Counts()
        self._expiry = now + self.config.interval