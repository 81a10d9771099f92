import asyncio
import logging
from unittest.mock import MagicMock

import pytest

from altcha_guard.services.replay import MemoryReplayCache
from altcha_guard.services.sweeper import MIN_INTERVAL_SECONDS, CacheSweeper
from tests.conftest import FakeClock


def test_run_once_removes_expired_records(replay_cache: MemoryReplayCache, clock: FakeClock) -> None:
    replay_cache.insert("old-1", 10)
    replay_cache.insert("old-2", 10)
    replay_cache.insert("fresh", 1_000)
    clock.advance(60)

    sweeper = CacheSweeper(replay_cache, interval_seconds=900)

    assert sweeper.run_once() == 2
    assert len(replay_cache) == 1
    assert sweeper.run_once() == 0


def test_interval_is_clamped() -> None:
    sweeper = CacheSweeper(MagicMock(), interval_seconds=0)
    assert sweeper.interval_seconds == MIN_INTERVAL_SECONDS


@pytest.mark.asyncio
async def test_background_loop_sweeps_until_stopped(
    replay_cache: MemoryReplayCache, clock: FakeClock
) -> None:
    replay_cache.insert("old", 10)
    clock.advance(60)
    sweeper = CacheSweeper(replay_cache, interval_seconds=0.1)

    await sweeper.start()
    assert sweeper.running
    await asyncio.sleep(0.35)
    await sweeper.stop()

    assert not sweeper.running
    assert len(replay_cache) == 0
    assert replay_cache.stats()["sweeps"] >= 1


@pytest.mark.asyncio
async def test_start_is_idempotent_and_stop_without_start_is_noop(
    replay_cache: MemoryReplayCache,
) -> None:
    sweeper = CacheSweeper(replay_cache, interval_seconds=60)
    await sweeper.stop()

    await sweeper.start()
    first_task = sweeper._task
    await sweeper.start()
    assert sweeper._task is first_task

    await sweeper.stop()
    assert not sweeper.running


@pytest.mark.asyncio
async def test_failed_sweep_is_logged_and_loop_continues(caplog: pytest.LogCaptureFixture) -> None:
    cache = MagicMock()
    cache.__len__.return_value = 0
    calls = {"count": 0}

    def flaky_sweep() -> int:
        calls["count"] += 1
        if calls["count"] == 1:
            raise RuntimeError("sweep exploded")
        return 0

    cache.sweep.side_effect = flaky_sweep
    sweeper = CacheSweeper(cache, interval_seconds=0.1)

    with caplog.at_level(logging.ERROR, logger="altcha_guard.services.sweeper"):
        await sweeper.start()
        await asyncio.sleep(0.35)
        await sweeper.stop()

    assert calls["count"] >= 2
    assert "Replay cache sweep failed" in caplog.text
