from __future__ import annotations

import pytest

from prediction_engine.resilience import circuit_breaker as cb
from prediction_engine.resilience.circuit_breaker import CircuitBreaker, CircuitOpenError


def _boom() -> None:
    raise RuntimeError("disk gone")


def test_opens_after_threshold_and_recovers(monkeypatch) -> None:
    clock = {"t": 1000.0}
    monkeypatch.setattr(cb.time, "time", lambda: clock["t"])
    breaker = CircuitBreaker("kv_test", failure_threshold=2, recovery_timeout_sec=30, half_open_max_calls=1)

    for _ in range(2):
        with pytest.raises(RuntimeError):
            breaker.call(_boom)
    assert breaker.snapshot().state == "OPEN"

    with pytest.raises(CircuitOpenError):
        breaker.call(lambda: "ok")

    clock["t"] += 31
    assert breaker.call(lambda: "ok") == "ok"
    snap = breaker.snapshot()
    assert snap.state == "CLOSED"
    assert snap.failures == 0
    assert snap.name == "kv_test"


def test_registry_returns_shared_breakers() -> None:
    cb.reset_breakers()
    assert cb.get_breaker("sqlite_kv") is cb.get_breaker("sqlite_kv")
    assert cb.get_breaker("") is cb.get_breaker("default")
    cb.reset_breakers()
