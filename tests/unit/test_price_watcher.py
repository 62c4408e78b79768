import logging

import pytest

from monitoring.price_poller import PricePoller
from monitoring.price_watcher import PriceWatcher
from tests.helpers import ManualTimer, fixed_clock, settle, usd


class StubQuotes:
    def __init__(self, prices):
        self.prices = list(prices)
        self.calls = 0

    async def fetch(self):
        price = self.prices[min(self.calls, len(self.prices) - 1)]
        self.calls += 1
        if isinstance(price, Exception):
            raise price
        return price


@pytest.mark.asyncio
async def test_price_poller_reports_drift_against_reference():
    quotes = StubQuotes([usd(100), usd(110)])
    poller = PricePoller(quotes.fetch, clock=fixed_clock, logger=logging.getLogger('test_poller'))

    first = await poller.poll(usd(100))
    assert not first.changed

    second = await poller.poll(usd(100))
    assert second.changed
    assert second.drift.previous == usd(100)
    assert second.drift.current == usd(110)
    assert second.drift.difference == usd(10)
    assert len(poller.history) == 2


@pytest.mark.asyncio
async def test_watcher_ticks_on_interval_and_stops_cleanly():
    timer = ManualTimer()
    quotes = StubQuotes([usd(100)])
    drifts = []
    watcher = PriceWatcher(
        quotes.fetch,
        lambda: usd(100),
        drifts.append,
        interval=5.0,
        clock=fixed_clock,
        sleep=timer.sleep,
    )

    watcher.start()
    watcher.start()
    await settle()
    assert timer.pending(5.0) == 1

    await timer.fire(5.0)
    await timer.fire(5.0)
    assert watcher.ticks == 2
    assert quotes.calls == 2
    assert drifts == []

    await watcher.stop()
    assert not watcher.running
    assert timer.pending() == 0
    assert await timer.fire() == 0
    assert quotes.calls == 2


@pytest.mark.asyncio
async def test_watcher_reports_drift_and_survives_quote_errors():
    timer = ManualTimer()
    quotes = StubQuotes([RuntimeError("quote service down"), usd(90)])
    drifts = []
    watcher = PriceWatcher(
        quotes.fetch,
        lambda: usd(100),
        drifts.append,
        interval=5.0,
        clock=fixed_clock,
        sleep=timer.sleep,
    )

    watcher.start()
    await settle()
    await timer.fire(5.0)
    assert watcher.errors == 1
    assert watcher.running

    await timer.fire(5.0)
    assert len(drifts) == 1
    assert drifts[0].current == usd(90)
    assert not drifts[0].is_increase

    await watcher.stop()


def test_watcher_rejects_non_positive_interval():
    with pytest.raises(ValueError):
        PriceWatcher(StubQuotes([usd(1)]).fetch, lambda: usd(1), print, interval=0, clock=fixed_clock)
