"""Circuit breaker, rate limiting, middleware chains, health checks, metrics, tracing and development error pages."""

__version__ = "0.1.0"