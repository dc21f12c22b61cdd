"""Metrics collector interface and simple in-memory implementations."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Mapping, Optional


def _now() -> datetime:
    return datetime.now(timezone.utc)


class MetricsCollector(ABC):
    """Interface for recording HTTP, WebSocket, business and system metrics.

    Durations are given in seconds and sizes in bytes.
    """

    @abstractmethod
    def record_http_request(
        self, method: str, path: str, status_code: int, duration: float
    ) -> None:
        """Record one served HTTP request."""

    @abstractmethod
    def record_http_request_size(self, method: str, path: str, size: int) -> None:
        """Record the body size of an HTTP request."""

    @abstractmethod
    def record_http_response_size(self, method: str, path: str, size: int) -> None:
        """Record the body size of an HTTP response."""

    @abstractmethod
    def record_websocket_connection(self, connected: bool) -> None:
        """Record a WebSocket connection opening or closing."""

    @abstractmethod
    def record_websocket_message(
        self, direction: str, message_type: str, size: int
    ) -> None:
        """Record one WebSocket message."""

    @abstractmethod
    def record_business_metric(
        self, name: str, value: float, tags: Optional[Mapping[str, str]] = None
    ) -> None:
        """Record a custom application metric."""

    @abstractmethod
    def record_goroutines(self, count: int) -> None:
        """Record the current number of concurrent workers."""

    @abstractmethod
    def record_memory_usage(self, num_bytes: int) -> None:
        """Record the current memory usage."""


class NoOpCollector(MetricsCollector):
    """Collector that discards everything."""

    def record_http_request(
        self, method: str, path: str, status_code: int, duration: float
    ) -> None:
        pass

    def record_http_request_size(self, method: str, path: str, size: int) -> None:
        pass

    def record_http_response_size(self, method: str, path: str, size: int) -> None:
        pass

    def record_websocket_connection(self, connected: bool) -> None:
        pass

    def record_websocket_message(
        self, direction: str, message_type: str, size: int
    ) -> None:
        pass

    def record_business_metric(
        self, name: str, value: float, tags: Optional[Mapping[str, str]] = None
    ) -> None:
        pass

    def record_goroutines(self, count: int) -> None:
        pass

    def record_memory_usage(self, num_bytes: int) -> None:
        pass


@dataclass(frozen=True)
class HTTPRequestMetric:
    """One recorded HTTP request; ``duration`` is in seconds."""

    method: str
    path: str
    status_code: int
    duration: float
    timestamp: datetime


@dataclass(frozen=True)
class WebSocketMessageMetric:
    """One recorded WebSocket message."""

    direction: str
    message_type: str
    size: int
    timestamp: datetime


@dataclass(frozen=True)
class BusinessMetric:
    """One recorded business metric."""

    name: str
    value: float
    tags: dict[str, str] = field(default_factory=dict)
    timestamp: Optional[datetime] = None


class SimpleCollector(MetricsCollector):
    """Keeps every recorded event in memory; grows without bound."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._http_requests: list[HTTPRequestMetric] = []
        self._http_request_sizes: dict[str, int] = {}
        self._http_response_sizes: dict[str, int] = {}
        self._ws_connections = 0
        self._ws_messages: list[WebSocketMessageMetric] = []
        self._business_metrics: list[BusinessMetric] = []
        self._goroutine_count = 0
        self._memory_usage = 0

    def record_http_request(
        self, method: str, path: str, status_code: int, duration: float
    ) -> None:
        metric = HTTPRequestMetric(method, path, status_code, duration, _now())
        with self._lock:
            self._http_requests.append(metric)

    def record_http_request_size(self, method: str, path: str, size: int) -> None:
        with self._lock:
            self._http_request_sizes[f"{method}:{path}"] = size

    def record_http_response_size(self, method: str, path: str, size: int) -> None:
        with self._lock:
            self._http_response_sizes[f"{method}:{path}"] = size

    def record_websocket_connection(self, connected: bool) -> None:
        with self._lock:
            self._ws_connections += 1 if connected else -1

    def record_websocket_message(
        self, direction: str, message_type: str, size: int
    ) -> None:
        metric = WebSocketMessageMetric(direction, message_type, size, _now())
        with self._lock:
            self._ws_messages.append(metric)

    def record_business_metric(
        self, name: str, value: float, tags: Optional[Mapping[str, str]] = None
    ) -> None:
        metric = BusinessMetric(name, value, dict(tags or {}), _now())
        with self._lock:
            self._business_metrics.append(metric)

    def record_goroutines(self, count: int) -> None:
        with self._lock:
            self._goroutine_count = count

    def record_memory_usage(self, num_bytes: int) -> None:
        with self._lock:
            self._memory_usage = num_bytes

    @property
    def http_requests(self) -> tuple[HTTPRequestMetric, ...]:
        with self._lock:
            return tuple(self._http_requests)

    @property
    def http_request_sizes(self) -> dict[str, int]:
        with self._lock:
            return dict(self._http_request_sizes)

    @property
    def http_response_sizes(self) -> dict[str, int]:
        with self._lock:
            return dict(self._http_response_sizes)

    @property
    def websocket_connections(self) -> int:
        with self._lock:
            return self._ws_connections

    @property
    def websocket_messages(self) -> tuple[WebSocketMessageMetric, ...]:
        with self._lock:
            return tuple(self._ws_messages)

    @property
    def business_metrics(self) -> tuple[BusinessMetric, ...]:
        with self._lock:
            return tuple(self._business_metrics)

    @property
    def goroutine_count(self) -> int:
        with self._lock:
            return self._goroutine_count

    @property
    def memory_usage(self) -> int:
        with self._lock:
            return self._memory_usage