"""
Tests for request pacing and the 429 retry policy.
"""
import asyncio
import logging
import time

import pytest

from avitolog import governor as governor_module
from avitolog.config import FetchSettings
from avitolog.errors import FetchError, RateLimitExceeded
from avitolog.governor import FetchGovernor, get_governor


class Status:
    def __init__(self, status):
        self.status = status


def scripted_send(statuses, seen_agents):
    queue = list(statuses)

    async def send(user_agent):
        seen_agents.append(user_agent)
        return Status(queue.pop(0))
    return send


def test_concurrent_acquire_is_spaced():
    """Callers racing for slots are admitted one interval apart."""
    governor = FetchGovernor(min_interval=0.1)
    stamps = []

    async def grab():
        await governor.acquire()
        stamps.append(time.monotonic())

    async def main():
        await asyncio.gather(grab(), grab(), grab())

    asyncio.run(main())
    stamps.sort()
    assert len(stamps) == 3
    for earlier, later in zip(stamps, stamps[1:]):
        assert later - earlier >= 0.09


def test_first_acquire_does_not_wait():
    governor = FetchGovernor(min_interval=10)
    asyncio.run(asyncio.wait_for(governor.acquire(), timeout=1))


def test_acquire_uses_injected_clock():
    ticks = iter([100.0, 101.0, 101.0])
    governor = FetchGovernor(min_interval=1, clock=lambda: next(ticks))

    async def main():
        await governor.acquire()
        await governor.acquire()

    asyncio.run(asyncio.wait_for(main(), timeout=1))


def test_retry_on_429_rotates_user_agent():
    governor = FetchGovernor(
        min_interval=0, base_delay=0, max_retries=3,
        user_agent="default", user_agent_pool=["ua-0", "ua-1", "ua-2"],
    )
    agents = []
    send = scripted_send([429, 429, 200], agents)

    response = asyncio.run(governor.perform_with_retry("https://www.avito.ru/x", send))
    assert response.status == 200
    assert agents == ["default", "ua-1", "ua-2"]


def test_rate_limit_exceeded_after_all_retries():
    governor = FetchGovernor(min_interval=0, base_delay=0, max_retries=2)
    agents = []
    send = scripted_send([429, 429, 429, 200], agents)

    with pytest.raises(RateLimitExceeded) as excinfo:
        asyncio.run(governor.perform_with_retry("https://www.avito.ru/x", send))
    assert excinfo.value.attempts == 3
    assert len(agents) == 3
    assert isinstance(excinfo.value, FetchError)


def test_no_retries_configured():
    governor = FetchGovernor(min_interval=0, base_delay=0, max_retries=0)
    agents = []
    with pytest.raises(RateLimitExceeded):
        asyncio.run(governor.perform_with_retry("u", scripted_send([429], agents)))
    assert len(agents) == 1


def test_other_status_fails_without_retry():
    governor = FetchGovernor(min_interval=0, base_delay=0)
    agents = []
    with pytest.raises(FetchError) as excinfo:
        asyncio.run(governor.perform_with_retry("u", scripted_send([503, 200], agents)))
    assert not isinstance(excinfo.value, RateLimitExceeded)
    assert "503" in str(excinfo.value)
    assert len(agents) == 1


def test_backoff_grows_linearly(monkeypatch):
    delays = []
    real_sleep = asyncio.sleep

    async def fake_sleep(seconds):
        delays.append(seconds)
        await real_sleep(0)

    monkeypatch.setattr("avitolog.governor.asyncio.sleep", fake_sleep)
    governor = FetchGovernor(min_interval=0, base_delay=5, max_retries=3)
    asyncio.run(governor.perform_with_retry("u", scripted_send([429, 429, 429, 200], [])))
    assert delays == [5, 10, 15]


def test_cancel_while_waiting_releases_slot():
    governor = FetchGovernor(min_interval=10)

    async def main():
        await governor.acquire()
        waiter = asyncio.create_task(governor.acquire())
        await asyncio.sleep(0.01)
        waiter.cancel()
        with pytest.raises(asyncio.CancelledError):
            await waiter
        # The lock must be free again for the next caller
        governor.min_interval = 0
        await asyncio.wait_for(governor.acquire(), timeout=1)

    asyncio.run(main())


def test_deadline_expires_during_wait():
    governor = FetchGovernor(min_interval=10)

    async def main():
        await governor.acquire()
        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(governor.acquire(), timeout=0.05)

    asyncio.run(main())


def test_jitter_stays_within_bounds(monkeypatch):
    waits = []

    async def fake_sleep(seconds):
        waits.append(seconds)

    monkeypatch.setattr("avitolog.governor.asyncio.sleep", fake_sleep)
    governor = FetchGovernor(min_interval=1.0, jitter=0.5, clock=lambda: 100.0)

    async def main():
        for _ in range(20):
            await governor.acquire()

    asyncio.run(main())
    assert len(waits) == 19
    assert all(1.0 <= w <= 1.5 for w in waits)
    assert len(set(waits)) > 1


def test_no_jitter_when_slot_is_free(monkeypatch):
    waits = []

    async def fake_sleep(seconds):
        waits.append(seconds)

    monkeypatch.setattr("avitolog.governor.asyncio.sleep", fake_sleep)
    ticks = iter(range(0, 100, 2))
    governor = FetchGovernor(min_interval=1.0, jitter=5.0, clock=lambda: float(next(ticks)))

    async def main():
        for _ in range(5):
            await governor.acquire()

    asyncio.run(main())
    assert waits == []


def test_discarded_responses():
    governor = FetchGovernor(min_interval=0, base_delay=0, max_retries=3)
    discarded = []

    async def discard(response):
        discarded.append(response.status)

    response = asyncio.run(
        governor.perform_with_retry("u", scripted_send([429, 429, 200], []), discard=discard)
    )
    assert response.status == 200
    assert discarded == [429, 429]

    discarded.clear()
    with pytest.raises(FetchError):
        asyncio.run(governor.perform_with_retry("u", scripted_send([404], []), discard=discard))
    assert discarded == [404]


def test_shared_governor_warns_on_other_settings(monkeypatch, caplog):
    monkeypatch.setattr(governor_module, "_default_governor", None)
    monkeypatch.setattr(governor_module, "_default_settings", None)

    first = get_governor(FetchSettings(min_interval=1))
    with caplog.at_level(logging.WARNING, logger="avitolog.governor"):
        assert get_governor(FetchSettings(min_interval=1)) is first
        assert not caplog.records
        assert get_governor(FetchSettings(min_interval=7)) is first
    assert "ignored" in caplog.text
    assert first.min_interval == 1
