"""Metrics collector that aggregates events into bounded statistics."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from gortex.metrics import MetricsCollector


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class HTTPStats:
    """Aggregated HTTP statistics; ``average_latency`` is in seconds."""

    total_requests: int = 0
    requests_by_status: dict[int, int] = field(default_factory=dict)
    requests_by_method: dict[str, int] = field(default_factory=dict)
    average_latency: float = 0.0
    last_updated: Optional[datetime] = None

    def _copy(self) -> "HTTPStats":
        return replace(
            self,
            requests_by_status=dict(self.requests_by_status),
            requests_by_method=dict(self.requests_by_method),
        )


@dataclass
class WebSocketStats:
    """Aggregated WebSocket statistics."""

    active_connections: int = 0
    total_messages: int = 0
    messages_by_type: dict[str, int] = field(default_factory=dict)
    last_updated: Optional[datetime] = None

    def _copy(self) -> "WebSocketStats":
        return replace(self, messages_by_type=dict(self.messages_by_type))


@dataclass
class SystemStats:
    """Latest system-level readings."""

    goroutine_count: int = 0
    memory_usage: int = 0
    last_updated: Optional[datetime] = None


class ImprovedCollector(MetricsCollector):
    """Keeps running totals instead of raw events, so memory stays bounded."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._clear()

    def _clear(self) -> None:
        self._http = HTTPStats()
        self._websocket = WebSocketStats()
        self._system = SystemStats()
        self._business: dict[str, float] = {}
        self._last_update = _now()

    def record_http_request(
        self, method: str, path: str, status_code: int, duration: float
    ) -> None:
        with self._lock:
            stats = self._http
            stats.total_requests += 1
            stats.requests_by_status[status_code] = (
                stats.requests_by_status.get(status_code, 0) + 1
            )
            stats.requests_by_method[method] = (
                stats.requests_by_method.get(method, 0) + 1
            )
            if stats.average_latency == 0:
                stats.average_latency = duration
            else:
                stats.average_latency = (stats.average_latency * 99 + duration) / 100
            stats.last_updated = _now()

    def record_http_request_size(self, method: str, path: str, size: int) -> None:
        """Sizes are not tracked, which keeps memory use constant."""

    def record_http_response_size(self, method: str, path: str, size: int) -> None:
        """Sizes are not tracked, which keeps memory use constant."""

    def record_websocket_connection(self, connected: bool) -> None:
        with self._lock:
            self._websocket.active_connections += 1 if connected else -1
            self._websocket.last_updated = _now()

    def record_websocket_message(
        self, direction: str, message_type: str, size: int
    ) -> None:
        key = f"{direction}_{message_type}"
        with self._lock:
            stats = self._websocket
            stats.total_messages += 1
            stats.messages_by_type[key] = stats.messages_by_type.get(key, 0) + 1
            stats.last_updated = _now()

    def record_business_metric(
        self, name: str, value: float, tags: Optional[Mapping[str, str]] = None
    ) -> None:
        """Keep only the latest value per name; tags are ignored."""
        with self._lock:
            self._business[name] = value

    def record_goroutines(self, count: int) -> None:
        with self._lock:
            self._system.goroutine_count = count
            self._system.last_updated = _now()

    def record_memory_usage(self, num_bytes: int) -> None:
        with self._lock:
            self._system.memory_usage = num_bytes
            self._system.last_updated = _now()

    def get_stats(self) -> dict[str, Any]:
        """Return a snapshot of every statistic with a Unix timestamp."""
        with self._lock:
            return {
                "http": self._http._copy(),
                "websocket": self._websocket._copy(),
                "system": replace(self._system),
                "business": dict(self._business),
                "timestamp": int(time.time()),
            }

    @property
    def http_stats(self) -> HTTPStats:
        with self._lock:
            return self._http._copy()

    @property
    def websocket_stats(self) -> WebSocketStats:
        with self._lock:
            return self._websocket._copy()

    @property
    def system_stats(self) -> SystemStats:
        with self._lock:
            return replace(self._system)

    def reset(self) -> None:
        """Clear all statistics."""
        with self._lock:
            self._clear()


def new_collector() -> ImprovedCollector:
    """Return the recommended collector."""
    return ImprovedCollector()