"""Contracts for the external services the booking flow talks to.

Every collaborator is injected into the orchestrator. None of them receives a
mutable reference to flow state; they communicate through request/response
only.
"""

from __future__ import annotations

from datetime import date
from typing import Protocol, runtime_checkable

from booking.contracts import (
    BookingDraft,
    ChargeResult,
    Money,
    PaymentMethod,
    SearchCriteria,
)


@runtime_checkable
class QuoteService(Protocol):
    async def get_quote(self, venue_id: str, duration_hours: int) -> Money:
        """Return the current hourly rate for the venue."""


@runtime_checkable
class AvailabilityService(Protocol):
    async def check_availability(
        self,
        venue_id: str,
        booking_date: date,
        start_time: str,
        duration_hours: int,
    ) -> bool:
        """Return True when the slot can still be booked."""


@runtime_checkable
class PaymentGateway(Protocol):
    async def charge(self, amount: Money, method: PaymentMethod) -> ChargeResult:
        """Attempt a single charge."""


@runtime_checkable
class AuthProvider(Protocol):
    def is_authenticated(self) -> bool:
        ...

    async def prompt_sign_in(self) -> None:
        """Resolve when the user completes or abandons sign-in."""


@runtime_checkable
class BookingLedger(Protocol):
    async def record_booking(self, draft: BookingDraft, accepted_price: Money) -> str:
        """Persist a completed booking and return its identifier."""


@runtime_checkable
class SearchNavigator(Protocol):
    async def show_alternatives(self, criteria: SearchCriteria) -> None:
        ...
