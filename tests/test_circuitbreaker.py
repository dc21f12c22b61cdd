import threading
import time

import pytest

from gortex.circuitbreaker import (
    CircuitBreaker,
    CircuitOpenError,
    Config,
    Counts,
    State,
    TooManyRequestsError,
    default_config,
)


class FakeClock:
    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class TestError(Exception):
    pass


def _fail():
    raise TestError("test error")


def _ok():
    return None


def _trip(cb):
    with pytest.raises(TestError):
        cb.call(_fail)
    assert cb.state is State.OPEN


def _config(clock, **kwargs):
    config = default_config()
    config.clock = clock
    config.ready_to_trip = lambda counts: counts.consecutive_failures >= 1
    for key, value in kwargs.items():
        setattr(config, key, value)
    return config


def test_new_circuit_breaker():
    cb = CircuitBreaker("test", default_config())
    assert cb.name == "test"
    assert cb.state is State.CLOSED


def test_state_strings():
    clock = FakeClock()
    cb = CircuitBreaker("test", _config(clock, max_requests=2))
    assert str(cb.state) == "closed"
    _trip(cb)
    assert str(cb.state) == "open"
    clock.advance(cb.config.timeout + 1)
    cb.call(_ok)
    assert str(cb.state) == "half-open"


def test_closed_state():
    clock = FakeClock()
    changes = []
    config = default_config()
    config.clock = clock
    config.on_state_change = lambda name, frm, to: changes.append(f"{name}: {frm}->{to}")
    config.ready_to_trip = lambda c: c.requests >= 3 and c.failure_ratio() > 0.5
    cb = CircuitBreaker("test", config)

    for _ in range(5):
        assert cb.call(_ok) is None
    assert cb.state is State.CLOSED
    counts = cb.counts
    assert counts.requests == 5
    assert counts.total_successes == 5
    assert counts.total_failures == 0

    clock.advance(config.interval + 0.01)

    for _ in range(2):
        with pytest.raises(TestError):
            cb.call(_fail)
    assert cb.state is State.CLOSED

    with pytest.raises(TestError):
        cb.call(_fail)
    assert cb.state is State.OPEN
    assert "test: closed->open" in changes


def test_open_state():
    clock = FakeClock()
    cb = CircuitBreaker("test", _config(clock, timeout=0.1))
    _trip(cb)

    called = []
    with pytest.raises(CircuitOpenError):
        cb.call(lambda: called.append(True))
    assert called == []

    clock.advance(0.11)
    assert cb.call(_ok) is None
    assert cb.state is State.HALF_OPEN


def test_open_error_message():
    clock = FakeClock()
    cb = CircuitBreaker("test", _config(clock))
    _trip(cb)
    with pytest.raises(CircuitOpenError, match="circuit breaker is open"):
        cb.call(_ok)


def test_half_open_limits_concurrent_requests():
    clock = FakeClock()
    cb = CircuitBreaker("test", _config(clock, max_requests=3))
    _trip(cb)
    clock.advance(cb.config.timeout + 1)
    cb.call(_ok)
    assert cb.state is State.HALF_OPEN

    barrier = threading.Barrier(5)
    lock = threading.Lock()
    executed = []
    rejected = []

    def work():
        time.sleep(0.05)
        with lock:
            executed.append(True)

    def worker():
        barrier.wait()
        try:
            cb.call(work)
        except TooManyRequestsError:
            with lock:
                rejected.append(True)

    threads = [threading.Thread(target=worker) for _ in range(5)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(executed) == 3
    assert len(rejected) == 2


def test_half_open_to_open():
    clock = FakeClock()
    cb = CircuitBreaker("test", _config(clock, max_requests=1))
    _trip(cb)
    clock.advance(cb.config.timeout + 1)
    with pytest.raises(TestError):
        cb.call(_fail)
    assert cb.state is State.OPEN
    assert cb.counts == Counts()


def test_half_open_to_closed():
    clock = FakeClock()
    cb = CircuitBreaker("test", _config(clock, max_requests=3))
    _trip(cb)
    clock.advance(cb.config.timeout + 1)
    cb.call(_ok)
    assert cb.state is State.HALF_OPEN
    for _ in range(3):
        assert cb.call(_ok) is None
    assert cb.state is State.CLOSED


def test_state_change_sequence():
    clock = FakeClock()
    changes = []
    config = _config(clock, max_requests=1)
    config.on_state_change = lambda name, frm, to: changes.append((frm, to))
    cb = CircuitBreaker("svc", config)
    _trip(cb)
    clock.advance(config.timeout + 1)
    cb.call(_ok)
    cb.call(_ok)
    assert changes == [
        (State.CLOSED, State.OPEN),
        (State.OPEN, State.HALF_OPEN),
        (State.HALF_OPEN, State.CLOSED),
    ]


def test_custom_ready_to_trip():
    config = default_config()
    config.ready_to_trip = lambda counts: counts.consecutive_failures >= 3
    cb = CircuitBreaker("test", config)

    for _ in range(2):
        with pytest.raises(TestError):
            cb.call(_fail)
        assert cb.state is State.CLOSED

    with pytest.raises(TestError):
        cb.call(_fail)
    assert cb.state is State.OPEN


def test_call_returns_result():
    cb = CircuitBreaker("test", default_config())
    assert cb.call(lambda: 42) == 42


def test_call_async():
    cb = CircuitBreaker("test", default_config())
    assert cb.call_async(_ok).result(timeout=1) is None

    future = cb.call_async(_fail)
    with pytest.raises(TestError):
        future.result(timeout=1)


def test_call_async_with_open_circuit():
    clock = FakeClock()
    cb = CircuitBreaker("test", _config(clock))
    _trip(cb)
    called = []
    future = cb.call_async(lambda: called.append(True))
    with pytest.raises(CircuitOpenError):
        future.result(timeout=1)
    assert called == []


@pytest.mark.parametrize(
    "counts, expected",
    [
        (Counts(), 0.0),
        (Counts(requests=10, total_failures=0), 0.0),
        (Counts(requests=10, total_failures=5), 0.5),
        (Counts(requests=10, total_failures=10), 1.0),
    ],
)
def test_counts_failure_ratio(counts, expected):
    assert counts.failure_ratio() == expected


def test_default_ready_to_trip():
    config = Config()
    assert config.ready_to_trip(Counts(requests=11, total_failures=6)) is True
    assert config.ready_to_trip(Counts(requests=10, total_failures=10)) is False
    assert config.ready_to_trip(Counts(requests=20, total_failures=10)) is False


def test_generation_handling():
    clock = FakeClock()
    config = default_config()
    config.clock = clock
    config.interval = 0.05
    cb = CircuitBreaker("test", config)

    for _ in range(5):
        cb.call(_ok)
    assert cb.counts.requests == 5

    clock.advance(config.interval + 0.01)
    cb.call(_ok)
    assert cb.counts.requests == 1


def test_counts_is_a_copy():
    cb = CircuitBreaker("test", default_config())
    cb.call(_ok)
    snapshot = cb.counts
    snapshot.requests = 100
    assert cb.counts.requests == 1


def test_concurrent_failures_open_circuit():
    cb = CircuitBreaker("test", default_config())

    def worker():
        for _ in range(100):
            try:
                cb.call(_fail)
            except (TestError, CircuitOpenError):
                pass

    threads = [threading.Thread(target=worker) for _ in range(20)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert cb.state is State.OPEN