"""Background re-quoting loop that reports price drift for the active draft."""

from __future__ import annotations
from tracking import t

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from booking.contracts import Money, PriceDrift
from monitoring.price_poller import Clock, PricePoller, QuoteFetcher

SleepFunc = Callable[[float], Awaitable[None]]


class PriceWatcher:
    """Re-quotes at a fixed interval until stopped.

    ``reference`` returns the price currently shown to the user; ``on_drift``
    is called synchronously with every detected change. Quote errors are
    logged and the loop keeps going.
    """

    def __init__(
        self,
        fetcher: QuoteFetcher,
        reference: Callable[[], Money],
        on_drift: Callable[[PriceDrift], None],
        *,
        interval: float,
        clock: Clock,
        sleep: SleepFunc = asyncio.sleep,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        t('monitoring.price_watcher.PriceWatcher.__init__')
        if interval <= 0:
            raise ValueError("Price check interval must be positive")
        self.interval = interval
        self.logger = logger or logging.getLogger('PriceWatcher')
        self._poller = PricePoller(fetcher, clock=clock, logger=self.logger)
        self._reference = reference
        self._on_drift = on_drift
        self._sleep = sleep
        self._task: Optional[asyncio.Task] = None
        self.ticks = 0
        self.errors = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def poller(self) -> PricePoller:
        return self._poller

    def start(self) -> None:
        """Schedule the loop on the running event loop. Idempotent."""
        t('monitoring.price_watcher.PriceWatcher.start')
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="price-watcher")
        self.logger.debug("Price watcher started (every %ss)", self.interval)

    async def stop(self) -> None:
        """Cancel the loop and wait until it has fully unwound."""
        t('monitoring.price_watcher.PriceWatcher.stop')
        task = self._task
        self._task = None
        if task is None:
            return
        if not task.done():
            task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        self.logger.debug("Price watcher stopped after %s ticks", self.ticks)

    async def _run(self) -> None:
        while True:
            await self._sleep(self.interval)
            await self.tick()

    async def tick(self) -> Optional[PriceDrift]:
        """Run a single re-quote and report drift."""
        t('monitoring.price_watcher.PriceWatcher.tick')
        self.ticks += 1
        try:
            snapshot = await self._poller.poll(self._reference())
        except Exception as exc:
            self.errors += 1
            self.logger.warning("Price re-quote failed: %s", exc)
            return None

        if snapshot.drift is not None:
            self._on_drift(snapshot.drift)
        return snapshot.drift
