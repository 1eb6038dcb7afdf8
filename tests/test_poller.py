import asyncio

import pytest

from txn_detection.poller import MessagePoller


def test_interval_must_be_positive():
    async def fetch():
        return []

    async def handle(item):
        return None

    with pytest.raises(ValueError):
        MessagePoller(fetch, handle, interval=0)


def test_overlapping_tick_is_skipped():
    async def scenario():
        release = asyncio.Event()
        handled: list[int] = []

        async def fetch():
            await release.wait()
            return [1, 2]

        async def handle(item):
            handled.append(item)

        poller = MessagePoller(fetch, handle, interval=10, name="test")
        first = asyncio.create_task(poller.tick())
        await asyncio.sleep(0)
        assert poller.busy

        assert await poller.tick() is False
        assert poller.skipped == 1

        release.set()
        assert await first is True
        assert handled == [1, 2]
        assert not poller.busy

    asyncio.run(scenario())


def test_failures_do_not_stop_the_batch():
    async def scenario():
        handled: list[str] = []

        async def fetch():
            return ["ok-1", "bad", "ok-2"]

        async def handle(item):
            if item == "bad":
                raise RuntimeError("broken message")
            handled.append(item)

        poller = MessagePoller(fetch, handle, interval=10)
        assert await poller.tick() is True
        assert handled == ["ok-1", "ok-2"]

        async def failing_fetch():
            raise ConnectionError("offline")

        broken = MessagePoller(failing_fetch, handle, interval=10)
        assert await broken.tick() is True
        assert not broken.busy

    asyncio.run(scenario())


def test_start_runs_ticks_until_stopped():
    async def scenario():
        calls = 0

        async def fetch():
            nonlocal calls
            calls += 1
            return []

        async def handle(item):
            return None

        poller = MessagePoller(fetch, handle, interval=0.01)
        poller.start()
        assert poller.running
        await asyncio.sleep(0.05)
        await poller.stop()
        assert not poller.running
        return calls

    assert asyncio.run(scenario()) >= 2
