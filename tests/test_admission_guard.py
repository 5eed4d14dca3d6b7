import asyncio
import threading

import pytest
from starlette.requests import Request

from anita.services.admission_guard import (
    RATE_LIMITS,
    AdmissionGuard,
    RateLimit,
    admission_sweep_loop,
    client_key_for,
)
from tests.conftest import FakeClock


def _request(headers=None, client=("9.9.9.9", 1234)):
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": client,
    }
    return Request(scope)


@pytest.fixture
def guard(clock):
    return AdmissionGuard({"chat": RateLimit(20, 60), "save": RateLimit(2, 60)}, clock=clock)


def test_twenty_first_request_rejected_then_new_window(guard, clock):
    for _ in range(20):
        assert guard.admit("ip:1.1.1.1", "chat").allowed

    rejected = guard.admit("ip:1.1.1.1", "chat")
    assert not rejected.allowed
    assert 0 < rejected.retry_after_seconds <= 60

    clock.advance(60)
    assert guard.admit("ip:1.1.1.1", "chat").allowed


def test_remaining_counts_down(guard):
    assert guard.admit("c", "save").remaining == 1
    assert guard.admit("c", "save").remaining == 0
    assert guard.admit("c", "save").remaining == 0


def test_retry_after_rounds_up_to_at_least_one(guard, clock):
    guard.admit("c", "save")
    guard.admit("c", "save")
    clock.advance(59.5)
    assert guard.admit("c", "save").retry_after_seconds == 1


def test_clients_and_routes_are_independent(guard):
    guard.admit("a", "save")
    guard.admit("a", "save")
    assert not guard.admit("a", "save").allowed
    assert guard.admit("b", "save").allowed
    assert guard.admit("a", "chat").allowed


def test_unknown_route_raises(guard):
    with pytest.raises(KeyError):
        guard.admit("c", "nope")


def test_sweep_drops_only_expired_windows(guard, clock):
    guard.admit("a", "chat")
    clock.advance(30)
    guard.admit("b", "chat")
    assert len(guard) == 2

    clock.advance(30)
    assert guard.sweep() == 1
    assert len(guard) == 1


def test_guards_do_not_share_state(clock):
    g1 = AdmissionGuard(clock=clock)
    g2 = AdmissionGuard(clock=clock)
    g1.admit("c", "transcription")
    assert len(g1) == 1
    assert len(g2) == 0


def test_concurrent_admissions_never_exceed_limit():
    guard = AdmissionGuard({"r": RateLimit(50, 60)})
    results = []
    lock = threading.Lock()

    def worker():
        for _ in range(10):
            ok = guard.admit("same", "r").allowed
            with lock:
                results.append(ok)

    threads = [threading.Thread(target=worker) for _ in range(10)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert sum(results) == 50


def test_default_quotas():
    assert RATE_LIMITS["chat-completion"] == RateLimit(20, 60)
    assert RATE_LIMITS["save-transaction"] == RateLimit(15, 60)
    assert RATE_LIMITS["file-analysis"] == RateLimit(10, 60)
    assert RATE_LIMITS["checkout"] == RateLimit(10, 60)
    assert RATE_LIMITS["transcription"] == RateLimit(5, 60)


def test_sweep_loop_runs_until_cancelled(clock):
    guard = AdmissionGuard(clock=clock)
    guard.admit("c", "checkout")
    clock.advance(120)

    async def run():
        task = asyncio.create_task(admission_sweep_loop(guard, 0.01))
        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(run())
    assert len(guard) == 0


class TestClientKey:
    def test_user_id_wins(self):
        assert client_key_for(_request({"X-Forwarded-For": "1.2.3.4"}), "u1") == "user:u1"

    def test_first_forwarded_for(self):
        req = _request({"X-Forwarded-For": "1.2.3.4, 5.6.7.8", "X-Real-IP": "7.7.7.7"})
        assert client_key_for(req) == "ip:1.2.3.4"

    def test_real_ip_then_peer(self):
        assert client_key_for(_request({"X-Real-IP": "7.7.7.7"})) == "ip:7.7.7.7"
        assert client_key_for(_request()) == "ip:9.9.9.9"

    def test_unknown(self):
        assert client_key_for(_request(client=None)) == "ip:unknown"
