"""Health checks run on demand and periodically in the background."""

from __future__ import annotations

import enum
import gc
import threading
import time
import urllib.error
import urllib.request
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Callable, Optional

import psutil

_MIB = 1024 * 1024
_HTTP_CLIENT_TIMEOUT = 5.0


class HealthStatus(str, enum.Enum):
    """Health of a single component or of the whole service."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


@dataclass
class HealthCheckResult:
    """Outcome of one health check; ``duration`` is in seconds."""

    status: HealthStatus
    message: str = ""
    details: dict[str, Any] = field(default_factory=dict)
    last_checked: Optional[datetime] = None
    duration: float = 0.0


class CheckContext:
    """Deadline and cancellation signal handed to a running check."""

    def __init__(self, timeout: Optional[float] = None) -> None:
        self._deadline = None if timeout is None else time.monotonic() + timeout
        self._cancelled = threading.Event()

    def done(self) -> bool:
        """Return whether the check has been cancelled or timed out."""
        if self._cancelled.is_set():
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline

    def wait(self, seconds: float) -> bool:
        """Sleep up to ``seconds``; return True if the context ended first."""
        end = time.monotonic() + seconds
        while not self.done():
            now = time.monotonic()
            if now >= end:
                return False
            limit = end - now
            remaining = self._remaining()
            if remaining is not None:
                limit = min(limit, remaining)
            self._cancelled.wait(max(0.0, limit))
        return True

    def cancel(self) -> None:
        self._cancelled.set()

    def _remaining(self) -> Optional[float]:
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())


HealthCheck = Callable[[CheckContext], HealthCheckResult]


def _overall(results: dict[str, HealthCheckResult]) -> HealthStatus:
    statuses = {result.status for result in results.values()}
    if HealthStatus.UNHEALTHY in statuses:
        return HealthStatus.UNHEALTHY
    if HealthStatus.DEGRADED in statuses:
        return HealthStatus.DEGRADED
    return HealthStatus.HEALTHY


class HealthChecker:
    """Runs registered checks concurrently, on demand and every ``interval`` seconds."""

    def __init__(self, interval: float, timeout: float) -> None:
        self._interval = interval
        self._timeout = timeout
        self._checks: dict[str, HealthCheck] = {}
        self._results: dict[str, HealthCheckResult] = {}
        self._lock = threading.Lock()
        self._stopped = False
        self._wakeup = threading.Event()
        self._thread = threading.Thread(
            target=self._run, name="health-checker", daemon=True
        )
        self._thread.start()

    def register(self, name: str, check: HealthCheck) -> None:
        """Add or replace a check; ignored once the checker is stopped."""
        with self._lock:
            if self._stopped:
                return
            self._checks[name] = check

    def unregister(self, name: str) -> None:
        with self._lock:
            self._checks.pop(name, None)
            self._results.pop(name, None)

    def check(self) -> dict[str, HealthCheckResult]:
        """Run every registered check in parallel and return the results."""
        with self._lock:
            checks = dict(self._checks)

        results: dict[str, HealthCheckResult] = {}
        results_lock = threading.Lock()

        def run(name: str, check: HealthCheck) -> None:
            result = self._run_check(check)
            with results_lock:
                results[name] = result
            with self._lock:
                self._results[name] = result

        threads = [
            threading.Thread(target=run, args=item, daemon=True)
            for item in checks.items()
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        return results

    def get_results(self) -> dict[str, HealthCheckResult]:
        """Return a copy of the most recent result of each check."""
        with self._lock:
            return dict(self._results)

    def get_overall_status(self) -> HealthStatus:
        return _overall(self.get_results())

    def stop(self) -> None:
        """Stop the background checks; further calls do nothing."""
        with self._lock:
            if self._stopped:
                return
            self._stopped = True
        self._wakeup.set()

    def __enter__(self) -> "HealthChecker":
        return self

    def __exit__(self, *args: Any) -> None:
        self.stop()

    def _is_stopped(self) -> bool:
        with self._lock:
            return self._stopped

    def _run_check(self, check: HealthCheck) -> HealthCheckResult:
        ctx = CheckContext(self._timeout)
        start = time.monotonic()
        try:
            result = check(ctx)
        except Exception as exc:
            result = HealthCheckResult(
                status=HealthStatus.UNHEALTHY,
                message="Health check raised an exception",
                details={"error": str(exc)},
            )
        finally:
            ctx.cancel()
        return replace(
            result,
            duration=time.monotonic() - start,
            last_checked=datetime.now(timezone.utc),
        )

    def _run(self) -> None:
        self.check()
        while not self._wakeup.wait(self._interval):
            if self._is_stopped():
                return
            self.check()


def database_health_check(ping: Callable[[CheckContext], Any]) -> HealthCheck:
    """Build a check that is healthy when ``ping`` returns without raising."""

    def check(ctx: CheckContext) -> HealthCheckResult:
        try:
            ping(ctx)
        except Exception as exc:
            return HealthCheckResult(
                status=HealthStatus.UNHEALTHY,
                message="Database connection failed",
                details={"error": str(exc)},
            )
        return HealthCheckResult(
            status=HealthStatus.HEALTHY,
            message="Database connection successful",
        )

    return check


def http_health_check(url: str, expected_status: int) -> HealthCheck:
    """Build a check that GETs ``url`` and expects ``expected_status``."""

    def failed(message: str, exc: BaseException) -> HealthCheckResult:
        return HealthCheckResult(
            status=HealthStatus.UNHEALTHY,
            message=message,
            details={"error": str(exc), "url": url},
        )

    def check(ctx: CheckContext) -> HealthCheckResult:
        try:
            request = urllib.request.Request(url, method="GET")
        except ValueError as exc:
            return failed("Failed to create request", exc)

        if ctx.done():
            return failed("HTTP request failed", TimeoutError("context deadline exceeded"))
        timeout = _HTTP_CLIENT_TIMEOUT
        remaining = ctx._remaining()
        if remaining is not None:
            timeout = max(min(timeout, remaining), 0.001)

        try:
            with urllib.request.urlopen(request, timeout=timeout) as response:
                status = response.status
        except urllib.error.HTTPError as exc:
            status = exc.code
            exc.close()
        except (urllib.error.URLError, OSError, ValueError) as exc:
            return failed("HTTP request failed", exc)

        if status != expected_status:
            return HealthCheckResult(
                status=HealthStatus.UNHEALTHY,
                message="Unexpected status code",
                details={
                    "url": url,
                    "expected_status": expected_status,
                    "actual_status": status,
                },
            )
        return HealthCheckResult(
            status=HealthStatus.HEALTHY,
            message="HTTP endpoint reachable",
            details={"url": url, "status": status},
        )

    return check


def memory_health_check(max_memory_mb: int) -> HealthCheck:
    """Build a check on the process's resident memory against a limit in MiB."""

    def check(ctx: CheckContext) -> HealthCheckResult:
        info = psutil.Process().memory_info()
        allocated_mb = info.rss // _MIB
        system_mb = info.vms // _MIB

        status = HealthStatus.HEALTHY
        message = "Memory usage within limits"
        if allocated_mb > max_memory_mb:
            status = HealthStatus.UNHEALTHY
            message = "Memory usage exceeds limit"
        elif allocated_mb > max_memory_mb * 80 // 100:
            status = HealthStatus.DEGRADED
            message = "Memory usage approaching limit"

        return HealthCheckResult(
            status=status,
            message=message,
            details={
                "allocated_mb": allocated_mb,
                "system_mb": system_mb,
                "max_memory_mb": max_memory_mb,
                "num_gc": sum(stat["collections"] for stat in gc.get_stats()),
            },
        )

    return check