# gortex

Building blocks that help keep a web service healthy and observable:

- **Circuit breaker** (`gortex.circuitbreaker`): stops calling a failing dependency for a while, then lets a few trial calls through to see whether it has recovered.
- **Middleware chains** (`gortex.chain`): wrap a handler in a sequence of middleware functions.
- **Rate limiting** (`gortex.ratelimit`): token buckets, one per key, held in memory.
- **Health checks** (`gortex.health`, `gortex.health_safe`): run checks on demand and in a background thread. Each check runs under its own timeout, and the results combine into one overall status.
- **Metrics** (`gortex.metrics`, `gortex.collector`): one collector keeps every raw event. Another aggregates events so its memory use stays bounded.
- **Tracing** (`gortex.tracing`): spans with parent and child links, carried in an immutable context.
- **Development error pages** (`gortex.errorpage`): detailed error reports with suggested fixes, as HTML or as a JSON-ready dict.

## Installation

```
pip install gortex
```

## Circuit breaker

```python
from gortex.circuitbreaker import CircuitBreaker, CircuitOpenError, Config

breaker = CircuitBreaker("payments", Config(timeout=30.0))

def charge():
    ...

try:
    breaker.call(charge)
except CircuitOpenError:
    ...  # fail fast while the dependency is down

print(breaker.state, breaker.counts.failure_ratio())
```

`state` and `counts` are properties. `state` is a `State` member and prints as `closed`, `open` or `half-open`. `call` returns whatever the function returns. When the function raises, the exception propagates and counts as a failure. While the breaker is open, `call` raises `CircuitOpenError`. In the half-open state, once `max_requests` calls are already in flight, further calls raise `TooManyRequestsError`. Both errors derive from `CircuitBreakerError`.

`Config` holds the following settings. Durations are in seconds.

- `max_requests`
- `interval`: how long a generation of counts lasts while the breaker is closed.
- `timeout`: how long the breaker stays open.
- `ready_to_trip(counts)`
- `on_state_change(name, from_state, to_state)`
- `clock`

By default the breaker trips after more than 10 requests in a generation with a failure ratio above 0.5. `default_config()` returns the default `Config`.

`call_async(fn)` runs the call in a background thread and returns a `concurrent.futures.Future`.

## Middleware chains

```python
from gortex.chain import Chain

def logging(next_handler):
    def handler(ctx):
        print("before")
        return next_handler(ctx)
    return handler

handler = Chain(logging).then(lambda ctx: "done")
handler(None)   # prints "before", returns "done"
```

The first middleware given runs outermost. `then()` with no handler wraps a handler that returns `None`. `Chain.append` returns a new chain and leaves the original unchanged.

## Rate limiting

```python
from gortex.ratelimit import MemoryRateLimiter

limiter = MemoryRateLimiter()   # 10 tokens per second, burst of 20
limiter.set_rate(2, 2)          # applies to buckets created from now on
limiter.allow("client-1")       # True
limiter.allow("client-1")       # True
limiter.allow("client-1")       # False
limiter.reset("client-1")       # forget this key's bucket
limiter.allow_n("client-1", 2)  # True
limiter.cleanup()               # drop every bucket
```

`TokenBucket(rate, burst)` is the single-key bucket underneath. `RateLimiter` is the abstract interface for keyed limiters.

## Health checks

```python
from gortex.health import (
    HealthChecker, HealthCheckResult, HealthStatus,
    database_health_check, http_health_check, memory_health_check,
)

with HealthChecker(interval=10.0, timeout=2.0) as checker:
    checker.register("db", database_health_check(lambda ctx: None))
    checker.register("api", http_health_check("http://localhost:8080/health", 200))
    checker.register("memory", memory_health_check(1024))
    checker.register(
        "cache",
        lambda ctx: HealthCheckResult(status=HealthStatus.DEGRADED, message="slow"),
    )
    results = checker.check()
    print(checker.get_overall_status().value)   # "degraded" or worse
```

A check is a callable that takes a `CheckContext` and returns a `HealthCheckResult`. A slow check should call `ctx.wait(seconds)` or look at `ctx.done()`, so that it notices when its timeout has passed. A check that raises is recorded as unhealthy.

`check()` runs all checks in parallel. `get_results()` returns the cached results. The background thread runs all checks once at start and then every `interval` seconds, until `stop()` is called.

Two more checkers live in `gortex.health_safe`:

- `SafeHealthChecker` ignores registrations once stopped, and `check()` then returns `{}`. Its `stop()` waits for the background thread to finish.
- `FixedHealthChecker` ends only the background loop when stopped.

## Metrics

```python
from gortex.collector import new_collector

collector = new_collector()
collector.record_http_request("GET", "/users", 200, 0.012)
collector.record_websocket_connection(True)
collector.record_business_metric("cpu.usage", 85.5, None)
print(collector.http_stats.total_requests)   # 1
print(collector.get_stats()["business"])     # {'cpu.usage': 85.5}
collector.reset()
```

`ImprovedCollector`, which `new_collector()` returns, keeps running totals. These are counts per status and per method, a rolling average latency, and the latest value per business metric. `http_stats`, `websocket_stats` and `system_stats` are properties that return copies.

`SimpleCollector` in `gortex.metrics` keeps every event and exposes them through properties such as `http_requests` and `business_metrics`. Its memory grows without bound. `NoOpCollector` discards everything. All of them implement `MetricsCollector`.

## Tracing

```python
from gortex.tracing import SimpleTracer, TraceContext, span_from_context, trace_function

tracer = SimpleTracer()

def work(ctx):
    span = span_from_context(ctx)
    return span.trace_id

trace_id = trace_function(TraceContext(), tracer, "load-user", work)
print(tracer.spans[0].status)   # SpanStatus.OK
```

A span started from a context that already carries a span becomes its child. The child shares the parent's `trace_id`, and its `parent_id` is the parent's `span_id`. If the function passed to `trace_function` raises, the span is marked `SpanStatus.ERROR` and tagged with the error, and the exception is re-raised. `NoOpTracer` records nothing.

## Development error pages

```python
from gortex.errorpage import DevErrorPageConfig, build_error_info, render_error_page

info = build_error_info(
    RuntimeError("connection refused"),
    DevErrorPageConfig(stack_trace_limit=10),
    {"method": "GET", "url": "/test"},
    {"Accept": ["text/html"]},
)
html = render_error_page(info)   # full HTML page, status 500
payload = info.to_dict()         # JSON-ready dict
```

`generate_solutions(message)` suggests fixes based on well-known phrases in the message. If a value passed to `build_error_info` is not an exception, it is reported with type `"panic"`. `get_stack_trace(limit)` returns the current stack, truncated.

## What this package does not do

There is no HTTP server, request or response object, or routing. Middleware is plain functions composed with `Chain`. Nothing here wires rate limiting, metrics, tracing or error pages into requests automatically: you call these pieces from your own handlers. Metrics and traces are kept in memory only and are not exported anywhere.

## Running the tests

```
pip install -e ".[test]"
pytest
```