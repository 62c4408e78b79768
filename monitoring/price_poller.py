"""Reusable polling helper for venue price quotes."""

from __future__ import annotations
from tracking import t

from dataclasses import dataclass
from datetime import datetime
import logging
from typing import Awaitable, Callable, List, Optional

from booking.contracts import Money, PriceDrift

QuoteFetcher = Callable[[], Awaitable[Money]]
Clock = Callable[[], datetime]


@dataclass
class PriceSnapshot:
    """Container for one re-quote and the drift it revealed, if any."""

    timestamp: datetime
    quoted: Money
    reference: Money
    drift: Optional[PriceDrift] = None

    @property
    def changed(self) -> bool:
        return self.drift is not None


class PricePoller:
    """Fetches a quote using a supplied coroutine and compares it to a reference."""

    def __init__(
        self,
        fetcher: QuoteFetcher,
        *,
        clock: Clock,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        t('monitoring.price_poller.PricePoller.__init__')
        self._fetcher = fetcher
        self._clock = clock
        self._logger = logger or logging.getLogger('PriceWatcher')
        self._history: List[PriceSnapshot] = []

    @property
    def history(self) -> List[PriceSnapshot]:
        return list(self._history)

    async def poll(self, reference: Money) -> PriceSnapshot:
        t('monitoring.price_poller.PricePoller.poll')
        quoted = await self._fetcher()
        timestamp = self._clock()

        drift = None
        if quoted != reference:
            drift = PriceDrift(previous=reference, current=quoted, detected_at=timestamp)
            self._logger.info("Price drift detected: %s -> %s", reference, quoted)
        else:
            self._logger.debug("Re-quote unchanged at %s", quoted)

        snapshot = PriceSnapshot(
            timestamp=timestamp,
            quoted=quoted,
            reference=reference,
            drift=drift,
        )
        self._history.append(snapshot)
        return snapshot
