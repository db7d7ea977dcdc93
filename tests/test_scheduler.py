# File: tests/test_scheduler.py
import asyncio

import pytest

from domain_scout.crawler.scheduler import CrawlScheduler


@pytest.mark.asyncio()
async def test_requests_are_spaced_by_default_delay(clock):
    scheduler = CrawlScheduler(300, clock=clock, sleep=clock.sleep)
    starts = []
    for _ in range(4):
        await scheduler.await_slot()
        starts.append(clock())
    assert starts == pytest.approx([0.0, 0.3, 0.6, 0.9])
    assert scheduler.slots_granted == 4


@pytest.mark.asyncio()
async def test_concurrent_waiters_are_serialized(clock):
    scheduler = CrawlScheduler(500, clock=clock, sleep=clock.sleep)
    starts = []

    async def worker():
        await scheduler.await_slot()
        starts.append(clock())

    await asyncio.gather(*(worker() for _ in range(5)))
    starts.sort()
    gaps = [b - a for a, b in zip(starts, starts[1:])]
    assert all(g >= 0.5 - 1e-9 for g in gaps)


@pytest.mark.asyncio()
async def test_crawl_delay_overrides_default(clock):
    scheduler = CrawlScheduler(300, clock=clock, sleep=clock.sleep)
    scheduler.apply_crawl_delay(2000)
    assert scheduler.interval == pytest.approx(2.0)
    await scheduler.await_slot()
    await scheduler.await_slot()
    assert clock() == pytest.approx(2.0)


def test_none_crawl_delay_keeps_default():
    scheduler = CrawlScheduler(300)
    scheduler.apply_crawl_delay(None)
    assert scheduler.interval == pytest.approx(0.3)


def test_escalates_under_load():
    volume = {"n": 0}
    scheduler = CrawlScheduler(
        300, conservative_delay_ms=1000, high_volume_threshold=200, volume_source=lambda: volume["n"]
    )
    assert scheduler.interval == pytest.approx(0.3)
    volume["n"] = 200
    assert not scheduler.under_load
    volume["n"] = 201
    assert scheduler.under_load
    assert scheduler.interval == pytest.approx(1.0)


def test_escalation_keeps_longer_crawl_delay():
    scheduler = CrawlScheduler(300, conservative_delay_ms=1000, high_volume_threshold=0, volume_source=lambda: 1)
    scheduler.apply_crawl_delay(5000)
    assert scheduler.interval == pytest.approx(5.0)


@pytest.mark.asyncio()
async def test_backoff_uses_injected_sleep(clock):
    scheduler = CrawlScheduler(0, clock=clock, sleep=clock.sleep)
    await scheduler.backoff(4)
    assert clock.sleeps == [4]
