"""Shared fakes and utilities for unit tests."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import date, datetime
from typing import List, Optional, Tuple

import pytz

from booking.contracts import BookingDraft, ChargeResult, Money, PaymentMethod, SearchCriteria, Venue
from infrastructure.settings import AppSettings, load_settings
from orchestration.booking_orchestrator import BookingOrchestrator

PRICE_INTERVAL = 5.0
PAYMENT_DEADLINE = 3.0

VENUE = Venue(
    venue_id="venue-v",
    name="Venue V",
    venue_type="meeting_room",
    location="Riyadh",
    image="venue-v.jpg",
)
BOOKING_DATE = date(2025, 3, 14)
FIXED_NOW = pytz.utc.localize(datetime(2025, 3, 1, 12, 0, 0))


def usd(amount) -> Money:
    return Money.of(amount, "USD")


def fixed_clock() -> datetime:
    return FIXED_NOW


async def settle(rounds: int = 25) -> None:
    """Let every ready task on the loop run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class ManualTimer:
    """Stand-in for ``asyncio.sleep`` that only wakes when the test fires it."""

    def __init__(self) -> None:
        self.calls: List[float] = []
        self._pending: List[Tuple[float, asyncio.Future]] = []

    async def sleep(self, seconds: float) -> None:
        self.calls.append(seconds)
        future = asyncio.get_running_loop().create_future()
        entry = (seconds, future)
        self._pending.append(entry)
        try:
            await future
        finally:
            self._pending.remove(entry)

    def pending(self, seconds: Optional[float] = None) -> int:
        return sum(1 for duration, _ in self._pending if seconds is None or duration == seconds)

    async def fire(self, seconds: Optional[float] = None) -> int:
        """Wake the sleeps currently waiting (optionally only one duration)."""
        fired = 0
        for duration, future in list(self._pending):
            if (seconds is None or duration == seconds) and not future.done():
                future.set_result(None)
                fired += 1
        await settle()
        return fired


class FakeQuoteService:
    def __init__(self, price: Money) -> None:
        self.price = price
        self.calls: List[Tuple[str, int]] = []
        self.error: Optional[Exception] = None

    async def get_quote(self, venue_id: str, duration_hours: int) -> Money:
        self.calls.append((venue_id, duration_hours))
        if self.error is not None:
            raise self.error
        return self.price


class FakeAvailabilityService:
    def __init__(self, available: bool = True) -> None:
        self.available = available
        self.calls: List[Tuple[str, date, str, int]] = []
        self.error: Optional[Exception] = None
        self.release: Optional[asyncio.Event] = None

    def hold(self) -> asyncio.Event:
        """Keep the next checks outstanding until the returned event is set."""
        self.release = asyncio.Event()
        return self.release

    async def check_availability(self, venue_id, booking_date, start_time, duration_hours) -> bool:
        self.calls.append((venue_id, booking_date, start_time, duration_hours))
        if self.release is not None:
            await self.release.wait()
        if self.error is not None:
            raise self.error
        return self.available


class FakePaymentGateway:
    def __init__(self, result: Optional[ChargeResult] = None) -> None:
        self.result = result or ChargeResult.success("txn-1")
        self.calls: List[Tuple[Money, PaymentMethod]] = []
        self.error: Optional[Exception] = None
        self.release: Optional[asyncio.Event] = None
        self.cancelled = 0

    def hold(self) -> asyncio.Event:
        self.release = asyncio.Event()
        return self.release

    async def charge(self, amount: Money, method: PaymentMethod) -> ChargeResult:
        self.calls.append((amount, method))
        if self.release is not None:
            try:
                await self.release.wait()
            except asyncio.CancelledError:
                self.cancelled += 1
                raise
        if self.error is not None:
            raise self.error
        return self.result


class FakeAuthProvider:
    def __init__(self, authenticated: bool = True, sign_in_succeeds: bool = True) -> None:
        self.authenticated = authenticated
        self.sign_in_succeeds = sign_in_succeeds
        self.prompts = 0

    def is_authenticated(self) -> bool:
        return self.authenticated

    async def prompt_sign_in(self) -> None:
        self.prompts += 1
        await asyncio.sleep(0)
        if self.sign_in_succeeds:
            self.authenticated = True


class FakeLedger:
    def __init__(self) -> None:
        self.calls: List[Tuple[BookingDraft, Money]] = []
        self.error: Optional[Exception] = None

    async def record_booking(self, draft: BookingDraft, accepted_price: Money) -> str:
        self.calls.append((draft, accepted_price))
        if self.error is not None:
            raise self.error
        return f"BK-{len(self.calls)}"


class FakeNavigator:
    def __init__(self) -> None:
        self.searches: List[SearchCriteria] = []

    async def show_alternatives(self, criteria: SearchCriteria) -> None:
        self.searches.append(criteria)


def flow_settings(**overrides: str) -> AppSettings:
    env = {
        "PRICE_CHECK_INTERVAL_SECONDS": str(PRICE_INTERVAL),
        "PAYMENT_DEADLINE_SECONDS": str(PAYMENT_DEADLINE),
        "BOOKING_TIMEZONE": "UTC",
    }
    env.update(overrides)
    return load_settings(env)


@dataclass
class FlowHarness:
    orchestrator: BookingOrchestrator
    timer: ManualTimer
    quotes: FakeQuoteService
    availability: FakeAvailabilityService
    gateway: FakePaymentGateway
    auth: FakeAuthProvider
    ledger: FakeLedger
    navigator: FakeNavigator

    async def start(self, start_time: str = "09:00", duration_hours: int = 2) -> BookingDraft:
        return await self.orchestrator.start(VENUE, BOOKING_DATE, start_time, duration_hours)

    async def to_confirm(self) -> None:
        await self.start()
        await self.orchestrator.advance()
        await self.orchestrator.advance()


def build_harness(
    *,
    price: Money = None,
    authenticated: bool = True,
    available: bool = True,
) -> FlowHarness:
    timer = ManualTimer()
    quotes = FakeQuoteService(price or usd(100))
    availability = FakeAvailabilityService(available)
    gateway = FakePaymentGateway()
    auth = FakeAuthProvider(authenticated)
    ledger = FakeLedger()
    navigator = FakeNavigator()
    orchestrator = BookingOrchestrator(
        quote_service=quotes,
        availability_service=availability,
        payment_gateway=gateway,
        auth_provider=auth,
        ledger=ledger,
        navigator=navigator,
        settings=flow_settings(),
        sleep=timer.sleep,
        clock=fixed_clock,
    )
    return FlowHarness(orchestrator, timer, quotes, availability, gateway, auth, ledger, navigator)
