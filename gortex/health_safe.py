"""Health checker variants with stricter shutdown behaviour."""

from __future__ import annotations

import threading
from typing import Any, Callable

from gortex.health import HealthChecker, HealthCheckResult, HealthStatus


class SafeHealthChecker(HealthChecker):
    """Health checker that refuses work once stopped and waits for its worker."""

    def __init__(self, interval: float, timeout: float) -> None:
        super().__init__(interval, timeout)

    def register(self, name: str, check: Callable[[Any], HealthCheckResult]) -> None:
        """Register a check; ignored once the checker is stopped."""
        if self._is_stopped():
            return
        super().register(name, check)

    def unregister(self, name: str) -> None:
        """Remove a check and its cached result."""
        super().unregister(name)

    def check(self) -> dict[str, HealthCheckResult]:
        """Run all checks; return nothing once the checker is stopped."""
        if self._is_stopped():
            return {}
        return super().check()

    def get_results(self) -> dict[str, HealthCheckResult]:
        """Return a copy of the cached results."""
        return dict(super().get_results())

    def get_overall_status(self) -> HealthStatus:
        """Return the worst status among the cached results."""
        statuses = {result.status for result in self.get_results().values()}
        if HealthStatus.UNHEALTHY in statuses:
            return HealthStatus.UNHEALTHY
        if HealthStatus.DEGRADED in statuses:
            return HealthStatus.DEGRADED
        return HealthStatus.HEALTHY

    def stop(self) -> None:
        """Stop background checks and wait for the worker thread to finish."""
        with self._lock:
            if self._stopped:
                return
            self._stopped = True
        self._wakeup.set()
        if threading.current_thread() is not self._thread:
            self._thread.join()

    def __enter__(self) -> "SafeHealthChecker":
        return self

    def __exit__(self, *args: Any) -> None:
        self.stop()


class FixedHealthChecker(HealthChecker):
    """Health checker whose stop only ends the background loop, exactly once."""

    def __init__(self, interval: float, timeout: float) -> None:
        self._signalled = False
        super().__init__(interval, timeout)

    def stop(self) -> None:
        """End the background loop; checks can still be registered and run."""
        with self._lock:
            if self._signalled:
                return
            self._signalled = True
        self._wakeup.set()