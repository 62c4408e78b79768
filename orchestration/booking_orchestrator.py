"""
Booking Confirmation Orchestrator
Advances a draft through review, payment and confirm while watching for
price drift, slot loss and missing sign-in
"""

from __future__ import annotations
from tracking import t

import asyncio
import logging
from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Awaitable, Callable, Optional, Union

from booking import transitions
from booking.collaborators import (
    AuthProvider,
    AvailabilityService,
    BookingLedger,
    PaymentGateway,
    QuoteService,
    SearchNavigator,
)
from booking.contracts import (
    BookingConfirmation,
    BookingDraft,
    ConfirmOutcome,
    ConfirmPhase,
    ConfirmStatus,
    FlowErrorKind,
    FlowState,
    FlowStep,
    Money,
    PaymentAttempt,
    PaymentMethod,
    PaymentStatus,
    PriceBreakdown,
    PriceDrift,
    PriceQuote,
    SearchCriteria,
    TerminalState,
    Venue,
)
from booking.draft_holder import DraftHolder, validate_slot
from booking.errors import FlowStateError
from booking.pricing import build_breakdown
from booking.text_blocks import error_message
from checkout.auth_gate import AuthGate
from checkout.availability_gate import AvailabilityGate
from checkout.payment_executor import PaymentExecutor
from infrastructure.settings import AppSettings, get_settings
from monitoring.price_watcher import PriceWatcher
from orchestration.metrics import FlowStats

SleepFunc = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class _ChargedBooking:
    """A successful charge whose ledger write has not gone through yet."""

    draft: BookingDraft
    hourly_rate: Money
    breakdown: PriceBreakdown
    attempt: PaymentAttempt


class BookingOrchestrator:
    """
    Drives one booking attempt from review to a terminal booking id or cancel.

    Strategy:
    1. Quote the venue on entry and keep the draft in a DraftHolder
    2. Re-quote in the background while on the payment and confirm steps
    3. On confirm: sign-in gate, drift check, availability check, payment
    4. Record the booking with the ledger only after the charge succeeded

    Every user-facing problem comes back as a ConfirmOutcome; only misuse
    (wrong step, finished flow) raises.
    """

    def __init__(
        self,
        *,
        quote_service: QuoteService,
        availability_service: AvailabilityService,
        payment_gateway: PaymentGateway,
        auth_provider: AuthProvider,
        ledger: BookingLedger,
        navigator: SearchNavigator,
        settings: Optional[AppSettings] = None,
        sleep: SleepFunc = asyncio.sleep,
        clock: Optional[Callable[[], datetime]] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        t('orchestration.booking_orchestrator.BookingOrchestrator.__init__')
        self.settings = settings or get_settings()
        self.logger = logger or logging.getLogger('BookingOrchestrator')
        tz = self.settings.tzinfo
        self._clock = clock or (lambda: datetime.now(tz))
        self._sleep = sleep

        self._quote_service = quote_service
        self._ledger = ledger
        self._navigator = navigator
        self._auth_gate = AuthGate(auth_provider)
        self._availability_gate = AvailabilityGate(availability_service, clock=self._clock)
        self._payment_executor = PaymentExecutor(
            payment_gateway,
            deadline_seconds=self.settings.payment_deadline,
            clock=self._clock,
            sleep=sleep,
        )

        self._holder = DraftHolder()
        self._state = FlowState()
        self.stats = FlowStats()
        self._watcher: Optional[PriceWatcher] = None
        self._confirm_task: Optional[asyncio.Task] = None
        self._committing = False
        self._unrecorded: Optional[_ChargedBooking] = None
        self._pending_drift: Optional[PriceDrift] = None
        self._last_drift: Optional[PriceDrift] = None
        self._last_attempt: Optional[PaymentAttempt] = None
        self._confirmation: Optional[BookingConfirmation] = None
        self._started = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    async def start(
        self,
        venue: Venue,
        booking_date: date,
        start_time: str,
        duration_hours: int,
    ) -> BookingDraft:
        """Quote the venue and open the draft on the review step."""
        t('orchestration.booking_orchestrator.BookingOrchestrator.start')
        if self._started:
            raise FlowStateError("start", self._state.step)

        price = await self._quote_service.get_quote(venue.venue_id, duration_hours)
        draft = self._holder.initialize(venue, booking_date, start_time, duration_hours, price)
        self._started = True
        self.logger.info(f"""BOOKING FLOW STARTED
        Venue: {venue.name} ({venue.venue_id})
        Slot: {booking_date} {start_time} for {duration_hours}h
        Quoted: {price} per hour
        """)
        return draft

    async def cancel(self) -> None:
        """Explicit user cancel: stop everything and discard the draft."""
        t('orchestration.booking_orchestrator.BookingOrchestrator.cancel')
        if self._state.terminal is not None:
            return
        await self._cancel_confirm()
        await self._stop_watcher()
        if self._state.terminal is not None:
            return
        self._warn_unrecorded("cancelled")
        self._holder.clear()
        self._pending_drift = None
        transitions.mark_terminal(self._state, TerminalState.CANCELLED)
        self.logger.info("Booking flow cancelled by user - no charge was made")

    async def aclose(self) -> None:
        """Tear the flow down; no timer fires after this returns."""
        t('orchestration.booking_orchestrator.BookingOrchestrator.aclose')
        await self._cancel_confirm()
        await self._stop_watcher()
        if self._state.terminal is None:
            self._warn_unrecorded("closed")
            self._holder.clear()
            self._pending_drift = None
            transitions.mark_terminal(self._state, TerminalState.CLOSED)
        self.logger.info(self.stats.format_report())

    async def __aenter__(self) -> "BookingOrchestrator":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------
    @property
    def state(self) -> FlowState:
        """A copy of the flow state; mutating it has no effect."""
        return replace(self._state, history=list(self._state.history))

    @property
    def draft(self) -> BookingDraft:
        return self._holder.read()

    @property
    def has_draft(self) -> bool:
        return self._holder.has_draft

    @property
    def quote(self) -> PriceQuote:
        return self._holder.quote

    @property
    def price_drift(self) -> Optional[PriceDrift]:
        """The drift awaiting acknowledgement, if any."""
        if not self._holder.has_draft or not self._holder.quote.blocked:
            return None
        return self._last_drift

    @property
    def confirmation(self) -> Optional[BookingConfirmation]:
        return self._confirmation

    @property
    def last_attempt(self) -> Optional[PaymentAttempt]:
        return self._last_attempt

    @property
    def watcher_running(self) -> bool:
        return self._watcher is not None and self._watcher.running

    def price_breakdown(self) -> PriceBreakdown:
        t('orchestration.booking_orchestrator.BookingOrchestrator.price_breakdown')
        draft = self._holder.read()
        return build_breakdown(
            self._holder.quote.current,
            draft.duration_hours,
            self.settings.service_fee_rate,
        )

    def notice(self) -> Optional[str]:
        """Text for the error currently blocking the user, if any."""
        t('orchestration.booking_orchestrator.BookingOrchestrator.notice')
        state = self._state
        if self._unrecorded is not None:
            reference = self._unrecorded.attempt.transaction_id or self._unrecorded.attempt.attempt_id
            return error_message(FlowErrorKind.BOOKING_NOT_RECORDED, f"payment reference {reference}")
        if state.auth_required:
            return error_message(FlowErrorKind.UNAUTHENTICATED)
        if state.overbooking_detected:
            return error_message(FlowErrorKind.OVERBOOKING)
        if state.payment_error is not None:
            return error_message(state.payment_error, state.payment_error_reason)
        if state.availability_error is not None:
            return error_message(FlowErrorKind.AVAILABILITY_CHECK_FAILED, state.availability_error)
        if self.price_drift is not None:
            return error_message(FlowErrorKind.PRICE_DRIFT)
        return None

    # ------------------------------------------------------------------
    # Step navigation
    # ------------------------------------------------------------------
    async def advance(self) -> FlowStep:
        t('orchestration.booking_orchestrator.BookingOrchestrator.advance')
        self._ensure_started("advance")
        transitions.advance(self._state)
        self.logger.debug("Advanced to %s", self._state.step.name)
        await self._sync_watcher()
        return self._state.step

    async def go_back(self) -> FlowStep:
        t('orchestration.booking_orchestrator.BookingOrchestrator.go_back')
        return await self._step_back(None)

    def select_payment_method(self, method: Union[PaymentMethod, str]) -> PaymentMethod:
        t('orchestration.booking_orchestrator.BookingOrchestrator.select_payment_method')
        transitions.ensure_step(self._state, "select a payment method", FlowStep.PAYMENT)
        chosen = method if isinstance(method, PaymentMethod) else PaymentMethod(method)
        self._state.payment_method = chosen
        return chosen

    async def update_draft(
        self,
        *,
        booking_date: Optional[date] = None,
        start_time: Optional[str] = None,
        duration_hours: Optional[int] = None,
    ) -> BookingDraft:
        """Edit the slot while on the review step.

        A new duration is re-quoted and becomes the new price baseline.
        """
        t('orchestration.booking_orchestrator.BookingOrchestrator.update_draft')
        transitions.ensure_step(self._state, "edit the booking", FlowStep.REVIEW)
        current = self._holder.read()
        validate_slot(
            start_time if start_time is not None else current.start_time,
            duration_hours if duration_hours is not None else current.duration_hours,
        )
        new_price: Optional[Money] = None
        if duration_hours is not None and duration_hours != current.duration_hours:
            new_price = await self._quote_service.get_quote(current.venue_id, duration_hours)

        draft = self._holder.update_identity(
            booking_date=booking_date,
            start_time=start_time,
            duration_hours=duration_hours,
        )
        if new_price is not None:
            self._holder.reset_quote(new_price)
            self._last_drift = None
        self.logger.info(
            "Draft updated: %s %s for %sh",
            draft.date,
            draft.start_time,
            draft.duration_hours,
        )
        return draft

    # ------------------------------------------------------------------
    # Price drift
    # ------------------------------------------------------------------
    async def accept_price_change(self) -> PriceQuote:
        """Make the re-quoted price the accepted baseline.

        Re-quoting stops once a price has been accepted.
        """
        t('orchestration.booking_orchestrator.BookingOrchestrator.accept_price_change')
        quote = self._holder.quote
        if not quote.blocked:
            return quote
        accepted = self._holder.update_accepted_price(quote.current)
        self.stats.record_drift_decision(accepted=True)
        self.logger.info("Price change accepted: new baseline %s", accepted.original)
        await self._sync_watcher()
        return accepted

    def cancel_price_change(self) -> PriceQuote:
        """Go back to the previously accepted price."""
        t('orchestration.booking_orchestrator.BookingOrchestrator.cancel_price_change')
        quote = self._holder.quote
        if not quote.blocked:
            return quote
        reverted = self._holder.revert_price()
        self.stats.record_drift_decision(accepted=False)
        self.logger.info("Price change rejected: reverted to %s", reverted.current)
        return reverted

    def _on_drift(self, drift: PriceDrift) -> None:
        if self._state.terminal is not None or self._committing or not self._holder.has_draft:
            return
        if self._unrecorded is not None:
            return
        if self._state.is_processing_payment:
            # the in-flight attempt keeps its amount; show the drift afterwards
            self._pending_drift = drift
            self.stats.record_drift(queued=True)
            self.logger.info("Price drift to %s queued until payment resolves", drift.current)
            return
        self._apply_drift(drift)

    def _apply_drift(self, drift: PriceDrift) -> None:
        self._holder.apply_requote(drift.current)
        self._last_drift = drift
        self.stats.record_drift()
        self.logger.warning(
            "Price drift detected: %s -> %s per hour, payment blocked until acknowledged",
            drift.previous,
            drift.current,
        )

    def _flush_pending_drift(self) -> None:
        drift = self._pending_drift
        self._pending_drift = None
        if drift is None or not self._holder.has_draft:
            return
        if drift.current != self._holder.quote.current:
            self._apply_drift(drift)

    # ------------------------------------------------------------------
    # Confirm
    # ------------------------------------------------------------------
    async def confirm(self) -> ConfirmOutcome:
        """Run auth gate, availability check and payment for the draft.

        A call made while another confirm is still running is ignored.
        """
        t('orchestration.booking_orchestrator.BookingOrchestrator.confirm')
        transitions.ensure_step(self._state, "confirm", FlowStep.CONFIRM)
        if self._confirm_in_flight():
            self.stats.record_ignored()
            self.logger.debug("Confirm ignored - previous confirm still running")
            return ConfirmOutcome(status=ConfirmStatus.IGNORED)

        task = asyncio.create_task(self._run_confirm(), name="booking-confirm")
        self._confirm_task = task
        try:
            await asyncio.wait({task})
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            if task.done() and self._confirm_task is task:
                self._confirm_task = None

        if task.cancelled():
            return ConfirmOutcome(status=ConfirmStatus.CANCELLED)
        return task.result()

    async def retry(self) -> ConfirmOutcome:
        """Start over from the availability check after a failed attempt."""
        t('orchestration.booking_orchestrator.BookingOrchestrator.retry')
        transitions.ensure_step(self._state, "retry", FlowStep.CONFIRM)
        if not self._confirm_in_flight():
            transitions.clear_confirm_flags(self._state)
        return await self.confirm()

    async def change_payment_method(
        self,
        method: Union[PaymentMethod, str, None] = None,
    ) -> FlowStep:
        """Return to the payment step keeping the draft."""
        t('orchestration.booking_orchestrator.BookingOrchestrator.change_payment_method')
        step = await self._step_back(FlowStep.PAYMENT)
        if method is not None:
            self.select_payment_method(method)
        return step

    async def adjust_time(self) -> BookingDraft:
        """Overbooking recovery: back to review with date and time editable."""
        t('orchestration.booking_orchestrator.BookingOrchestrator.adjust_time')
        await self._step_back(FlowStep.REVIEW)
        self._state.time_editable = True
        return self._holder.read()

    async def view_alternatives(self) -> SearchCriteria:
        """Overbooking recovery: hand the draft's filters to search."""
        t('orchestration.booking_orchestrator.BookingOrchestrator.view_alternatives')
        transitions.ensure_active(self._state, "view alternatives")
        draft = self._holder.read()
        criteria = SearchCriteria(
            location=draft.venue.location,
            date=draft.date,
            venue_type=draft.venue.venue_type,
        )
        await self._navigator.show_alternatives(criteria)
        self.logger.info("Showing alternatives for %s on %s", criteria.location, criteria.date)
        return criteria

    async def _run_confirm(self) -> ConfirmOutcome:
        self.stats.record_confirm()
        state = self._state
        if self._unrecorded is not None:
            # already charged: only the ledger write is repeated
            return await self._record_charged_booking()
        transitions.clear_confirm_flags(state)

        if not await self._auth_gate.require():
            state.auth_required = True
            self.stats.record_auth_prompt()
            return self._outcome(ConfirmStatus.AUTH_REQUIRED, FlowErrorKind.UNAUTHENTICATED)
        state.auth_required = False

        if self._holder.quote.blocked:
            return self._outcome(ConfirmStatus.PRICE_CHANGE_PENDING, FlowErrorKind.PRICE_DRIFT)

        draft = self._holder.read()
        state.phase = ConfirmPhase.CHECKING_AVAILABILITY
        state.is_checking_availability = True
        try:
            availability = await self._availability_gate.check(draft)
        finally:
            state.is_checking_availability = False

        if availability.failed:
            state.phase = ConfirmPhase.IDLE
            state.availability_error = availability.error
            self.stats.record_availability_error()
            return self._outcome(
                ConfirmStatus.CHECK_FAILED,
                FlowErrorKind.AVAILABILITY_CHECK_FAILED,
                availability.error,
            )

        if not availability.available:
            state.phase = ConfirmPhase.OVERBOOKING_BLOCKED
            state.overbooking_detected = True
            self.stats.record_overbooking()
            return self._outcome(ConfirmStatus.OVERBOOKED, FlowErrorKind.OVERBOOKING)

        # a drift may have landed while the check was outstanding
        if self._holder.quote.blocked:
            state.phase = ConfirmPhase.IDLE
            return self._outcome(ConfirmStatus.PRICE_CHANGE_PENDING, FlowErrorKind.PRICE_DRIFT)

        return await self._pay(draft)

    async def _pay(self, draft: BookingDraft) -> ConfirmOutcome:
        state = self._state
        hourly_rate = self._holder.quote.current
        breakdown = build_breakdown(hourly_rate, draft.duration_hours, self.settings.service_fee_rate)

        state.phase = ConfirmPhase.PROCESSING
        state.is_processing_payment = True
        succeeded = False
        try:
            attempt = await self._payment_executor.execute(breakdown.total, state.payment_method)
            self._last_attempt = attempt
            succeeded = attempt.status is PaymentStatus.SUCCEEDED
        finally:
            state.is_processing_payment = False
            if not succeeded:
                self._flush_pending_drift()

        if succeeded:
            self._pending_drift = None
            self._committing = True
            try:
                return await self._complete(draft, hourly_rate, breakdown, attempt)
            finally:
                self._committing = False

        timed_out = attempt.status is PaymentStatus.TIMED_OUT
        kind = FlowErrorKind.PAYMENT_TIMEOUT if timed_out else FlowErrorKind.PAYMENT_FAILED
        transitions.record_payment_error(state, kind, attempt.reason)
        self.stats.record_payment_failure(timed_out=timed_out)
        return self._outcome(
            ConfirmStatus.TIMED_OUT if timed_out else ConfirmStatus.FAILED,
            kind,
            attempt.reason,
            attempt=attempt,
        )

    async def _record_charged_booking(self) -> ConfirmOutcome:
        charged = self._unrecorded
        self._state.phase = ConfirmPhase.NOT_RECORDED
        self.logger.info(
            "Recording booking again for charged payment %s",
            charged.attempt.transaction_id or charged.attempt.attempt_id,
        )
        self._committing = True
        try:
            return await self._complete(charged.draft, charged.hourly_rate, charged.breakdown, charged.attempt)
        finally:
            self._committing = False

    async def _complete(
        self,
        draft: BookingDraft,
        hourly_rate: Money,
        breakdown: PriceBreakdown,
        attempt: PaymentAttempt,
    ) -> ConfirmOutcome:
        try:
            booking_id = await self._ledger.record_booking(draft, hourly_rate)
        except Exception as exc:
            self._unrecorded = _ChargedBooking(draft, hourly_rate, breakdown, attempt)
            self._state.phase = ConfirmPhase.NOT_RECORDED
            self.stats.record_ledger_failure()
            await self._stop_watcher()
            self.logger.error(
                "Ledger rejected booking after successful payment %s: %s",
                attempt.transaction_id or attempt.attempt_id,
                exc,
                exc_info=True,
            )
            raise

        self._unrecorded = None
        confirmation = BookingConfirmation(
            booking_id=booking_id,
            draft=draft,
            hourly_rate=hourly_rate,
            breakdown=breakdown,
            payment_method=attempt.method,
            confirmed_at=self._clock(),
            transaction_id=attempt.transaction_id,
        )
        self._confirmation = confirmation
        transitions.mark_terminal(self._state, TerminalState.SUCCEEDED)
        self._holder.clear()
        self.stats.record_success()
        await self._stop_watcher()
        self.logger.info(f"""BOOKING CONFIRMED
        Booking ID: {booking_id}
        Venue: {draft.venue.name}
        Slot: {draft.date} {draft.start_time} for {draft.duration_hours}h
        Charged: {breakdown.total} via {attempt.method.label}
        """)
        return ConfirmOutcome(
            status=ConfirmStatus.SUCCEEDED,
            confirmation=confirmation,
            attempt=attempt,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _outcome(
        self,
        status: ConfirmStatus,
        kind: FlowErrorKind,
        detail: Optional[str] = None,
        *,
        attempt: Optional[PaymentAttempt] = None,
    ) -> ConfirmOutcome:
        self.logger.info("Confirm ended with %s", status.value)
        return ConfirmOutcome(
            status=status,
            error_kind=kind,
            message=error_message(kind, detail),
            attempt=attempt,
        )

    def _ensure_started(self, action: str) -> None:
        if not self._started:
            raise FlowStateError(action, "an unstarted flow")

    def _warn_unrecorded(self, how: str) -> None:
        if self._unrecorded is None:
            return
        attempt = self._unrecorded.attempt
        self.logger.warning(
            "Flow %s with charged payment %s (%s) not recorded in the ledger",
            how,
            attempt.transaction_id or attempt.attempt_id,
            attempt.amount,
        )

    def _confirm_in_flight(self) -> bool:
        task = self._confirm_task
        return self._state.busy or (task is not None and not task.done())

    async def _step_back(self, target: Optional[FlowStep]) -> FlowStep:
        transitions.ensure_step(self._state, "go back", FlowStep.PAYMENT, FlowStep.CONFIRM)
        await self._cancel_confirm()
        await self._stop_watcher()
        transitions.step_back(self._state, target)
        self.logger.debug("Moved back to %s", self._state.step.name)
        await self._sync_watcher()
        return self._state.step

    async def _cancel_confirm(self) -> None:
        task = self._confirm_task
        if task is None or task.done():
            return
        if not self._committing:
            task.cancel()
        # once the charge succeeded the ledger write is allowed to finish
        await asyncio.wait({task})
        if self._confirm_task is task:
            self._confirm_task = None
        self._state.is_checking_availability = False
        self._state.is_processing_payment = False

    async def _fetch_quote(self) -> Money:
        draft = self._holder.read()
        return await self._quote_service.get_quote(draft.venue_id, draft.duration_hours)

    def _displayed_price(self) -> Money:
        return self._holder.quote.current

    def _price_settled(self) -> bool:
        """An accepted drift or a completed charge ends re-quoting."""
        if self._unrecorded is not None:
            return True
        return self._holder.has_draft and self._holder.quote.accepted

    async def _sync_watcher(self) -> None:
        if not transitions.price_watch_active(self._state) or self._price_settled():
            await self._stop_watcher()
            return
        if self._watcher is None:
            self._watcher = PriceWatcher(
                self._fetch_quote,
                self._displayed_price,
                self._on_drift,
                interval=self.settings.price_check_interval,
                clock=self._clock,
                sleep=self._sleep,
            )
        self._watcher.start()

    async def _stop_watcher(self) -> None:
        if self._watcher is not None:
            await self._watcher.stop()
