"""Demo implementations of the booking collaborators.

These reproduce the behaviour of the prototype front end: prices drift now
and then, slots are sometimes lost to another booker and payments fail or
stall. Each service takes its own ``random.Random`` so runs can be seeded.
"""

from __future__ import annotations
from tracking import t

import asyncio
import logging
import random
import time
import uuid
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Awaitable, Callable, Dict, List, Mapping, Optional, Tuple

from booking.contracts import BookingDraft, ChargeResult, Money, PaymentMethod, SearchCriteria
from infrastructure.constants import BOOKING_ID_PREFIX

SleepFunc = Callable[[float], Awaitable[None]]

logger = logging.getLogger('Simulation')


class SimulatedQuoteService:
    """Returns the base rate, occasionally drifting between -10% and +20%."""

    def __init__(
        self,
        base_rates: Mapping[str, Money],
        *,
        drift_probability: float = 0.2,
        rng: Optional[random.Random] = None,
    ) -> None:
        t('simulation.services.SimulatedQuoteService.__init__')
        self._rates: Dict[str, Money] = dict(base_rates)
        self.drift_probability = drift_probability
        self._rng = rng or random.Random()
        self.calls: List[Tuple[str, int]] = []

    async def get_quote(self, venue_id: str, duration_hours: int) -> Money:
        t('simulation.services.SimulatedQuoteService.get_quote')
        self.calls.append((venue_id, duration_hours))
        try:
            rate = self._rates[venue_id]
        except KeyError:
            raise LookupError(f"Unknown venue {venue_id}") from None

        if self.calls[1:] and self._rng.random() < self.drift_probability:
            factor = Decimal(str(1 + (self._rng.random() * 0.3 - 0.1)))
            drifted = (rate.amount * factor).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
            rate = Money(drifted, rate.currency)
            self._rates[venue_id] = rate
            logger.debug("Simulated drift for %s: %s", venue_id, rate)
        return rate


class SimulatedAvailabilityService:
    """Reports the slot as taken roughly a quarter of the time."""

    def __init__(
        self,
        *,
        unavailable_probability: float = 0.25,
        latency_seconds: float = 0.8,
        rng: Optional[random.Random] = None,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        self.unavailable_probability = unavailable_probability
        self.latency_seconds = latency_seconds
        self._rng = rng or random.Random()
        self._sleep = sleep
        self.calls: List[Tuple[str, date, str, int]] = []

    async def check_availability(
        self,
        venue_id: str,
        booking_date: date,
        start_time: str,
        duration_hours: int,
    ) -> bool:
        t('simulation.services.SimulatedAvailabilityService.check_availability')
        self.calls.append((venue_id, booking_date, start_time, duration_hours))
        await self._sleep(self.latency_seconds)
        return self._rng.random() >= self.unavailable_probability


class SimulatedPaymentGateway:
    """Takes one to three seconds and declines about 30% of charges."""

    def __init__(
        self,
        *,
        failure_probability: float = 0.3,
        min_latency_seconds: float = 1.0,
        max_latency_seconds: float = 3.0,
        rng: Optional[random.Random] = None,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        self.failure_probability = failure_probability
        self.min_latency_seconds = min_latency_seconds
        self.max_latency_seconds = max_latency_seconds
        self._rng = rng or random.Random()
        self._sleep = sleep
        self.charges: List[Tuple[Money, PaymentMethod]] = []

    async def charge(self, amount: Money, method: PaymentMethod) -> ChargeResult:
        t('simulation.services.SimulatedPaymentGateway.charge')
        self.charges.append((amount, method))
        await self._sleep(self._rng.uniform(self.min_latency_seconds, self.max_latency_seconds))
        if self._rng.random() < self.failure_probability:
            return ChargeResult.failure("Card declined by issuer")
        return ChargeResult.success(transaction_id=f"txn_{uuid.uuid4().hex[:12]}")


class SimulatedAuthProvider:
    """Signed in or out on demand; signing in succeeds unless told otherwise."""

    def __init__(self, *, authenticated: bool = False, sign_in_succeeds: bool = True) -> None:
        self.authenticated = authenticated
        self.sign_in_succeeds = sign_in_succeeds
        self.prompts = 0

    def is_authenticated(self) -> bool:
        return self.authenticated

    async def prompt_sign_in(self) -> None:
        t('simulation.services.SimulatedAuthProvider.prompt_sign_in')
        self.prompts += 1
        await asyncio.sleep(0)
        if self.sign_in_succeeds:
            self.authenticated = True


class InMemoryBookingLedger:
    """Keeps confirmed bookings in a dict keyed by ``BK-<epoch ms>`` ids."""

    def __init__(self) -> None:
        self.bookings: Dict[str, Tuple[BookingDraft, Money]] = {}

    async def record_booking(self, draft: BookingDraft, accepted_price: Money) -> str:
        t('simulation.services.InMemoryBookingLedger.record_booking')
        booking_id = f"{BOOKING_ID_PREFIX}{int(time.time() * 1000)}"
        while booking_id in self.bookings:
            booking_id = f"{booking_id}-{len(self.bookings)}"
        self.bookings[booking_id] = (draft, accepted_price)
        return booking_id


class RecordingNavigator:
    """Remembers every alternatives search it was asked to show."""

    def __init__(self) -> None:
        self.searches: List[SearchCriteria] = []

    async def show_alternatives(self, criteria: SearchCriteria) -> None:
        self.searches.append(criteria)
