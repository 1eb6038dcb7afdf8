"""Periodic re-check of a message source.

:class:`MessagePoller` fires a tick every ``interval`` seconds. Each tick
fetches a batch from the source and feeds the items to a handler one at a
time. Ticks never overlap: a tick that fires while the previous one is still
running is skipped and logged.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable
from typing import Any

from .logging_setup import get_logger

_logger = get_logger("txn_detection.poller")

type Fetch = Callable[[], Awaitable[Iterable[Any]]]
type Handler = Callable[[Any], Awaitable[object]]


class MessagePoller:
    def __init__(self, fetch: Fetch, handler: Handler, *, interval: float, name: str = "poller") -> None:
        if interval <= 0:
            raise ValueError("interval must be > 0")
        self._fetch = fetch
        self._handler = handler
        self.interval = interval
        self.name = name
        self._busy = False
        self._loop_task: asyncio.Task[None] | None = None
        self._ticks: set[asyncio.Task[bool]] = set()
        self.skipped = 0

    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    async def tick(self) -> bool:
        """Run one fetch-and-handle pass; returns False when skipped as busy."""

        if self._busy:
            self.skipped += 1
            _logger.info("poller:tick_skipped name=%s reason=busy skipped=%d", self.name, self.skipped)
            return False
        self._busy = True
        try:
            try:
                items = list(await self._fetch())
            except Exception as e:  # noqa: BLE001
                _logger.warning("poller:fetch_failed name=%s error=%s", self.name, e.__class__.__name__)
                return True
            handled = 0
            for item in items:
                try:
                    await self._handler(item)
                    handled += 1
                except Exception:  # noqa: BLE001 - one bad item must not stop the batch
                    _logger.exception("poller:handler_failed name=%s", self.name)
            _logger.debug("poller:tick_done name=%s fetched=%d handled=%d", self.name, len(items), handled)
            return True
        finally:
            self._busy = False

    async def _run(self) -> None:
        while True:
            task = asyncio.create_task(self.tick())
            self._ticks.add(task)
            task.add_done_callback(self._ticks.discard)
            await asyncio.sleep(self.interval)

    def start(self) -> None:
        """Start the timer on the running event loop."""

        if self.running:
            return
        self._loop_task = asyncio.get_running_loop().create_task(self._run())
        _logger.info("poller:start name=%s interval_s=%.1f", self.name, self.interval)

    async def stop(self) -> None:
        """Cancel the timer and wait for an in-flight tick to finish."""

        if self._loop_task is not None:
            self._loop_task.cancel()
            try:
                await self._loop_task
            except asyncio.CancelledError:
                pass
            self._loop_task = None
        if self._ticks:
            await asyncio.gather(*self._ticks, return_exceptions=True)
        _logger.info("poller:stop name=%s", self.name)


__all__ = ["MessagePoller"]
