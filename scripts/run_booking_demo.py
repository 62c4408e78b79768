"""Walk a booking through the confirmation flow against simulated services.

Usage: python -m scripts.run_booking_demo --seed 7 --max-retries 2
"""

from __future__ import annotations
import tracking
from tracking import t

import argparse
import asyncio
import logging
import random
from datetime import date, timedelta
from typing import Optional, Sequence

from booking.contracts import ConfirmStatus, Money, Venue
from booking.text_blocks import format_breakdown, format_price_drift
from infrastructure.settings import AppSettings, get_settings
from logging_config import setup_logging
from orchestration.booking_orchestrator import BookingOrchestrator
from simulation.services import (
    InMemoryBookingLedger,
    RecordingNavigator,
    SimulatedAuthProvider,
    SimulatedAvailabilityService,
    SimulatedPaymentGateway,
    SimulatedQuoteService,
)

LOGGER = logging.getLogger("BookingDemo")

DEMO_VENUE = Venue(
    venue_id="meeting-room-1",
    name="Harbour Meeting Room",
    venue_type="meeting_room",
    location="Downtown",
)


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    t('scripts.run_booking_demo._parse_args')
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--seed", type=int, default=None, help="Seed for the simulated services")
    parser.add_argument("--hours", type=int, default=2, help="Booking duration in hours")
    parser.add_argument("--time", default="09:00", help="Start time (HH:MM)")
    parser.add_argument("--rate", default="100", help="Base hourly rate")
    parser.add_argument("--max-retries", type=int, default=2, help="Retries after a failed payment")
    parser.add_argument("--signed-in", action="store_true", help="Start already signed in")
    parser.add_argument("--dwell", type=float, default=0.0, help="Seconds to wait on the payment step")
    return parser.parse_args(argv)


async def run_demo(args: argparse.Namespace, *, sleep=asyncio.sleep) -> int:
    """Run one booking to a terminal outcome; ``sleep`` drives simulated latency."""
    t('scripts.run_booking_demo.run_demo')
    settings = get_settings()
    rng = random.Random(args.seed)
    ledger = InMemoryBookingLedger()
    navigator = RecordingNavigator()

    orchestrator = BookingOrchestrator(
        quote_service=SimulatedQuoteService(
            {DEMO_VENUE.venue_id: Money.of(args.rate, settings.currency)},
            rng=rng,
        ),
        availability_service=SimulatedAvailabilityService(rng=rng, sleep=sleep),
        payment_gateway=SimulatedPaymentGateway(rng=rng, sleep=sleep),
        auth_provider=SimulatedAuthProvider(authenticated=args.signed_in),
        ledger=ledger,
        navigator=navigator,
        settings=settings,
    )

    async with orchestrator:
        await orchestrator.start(DEMO_VENUE, date.today() + timedelta(days=1), args.time, args.hours)
        for line in format_breakdown(orchestrator.price_breakdown()):
            print(line)

        await orchestrator.advance()
        if args.dwell:
            await asyncio.sleep(args.dwell)
        await orchestrator.advance()

        retries = 0
        while True:
            drift = orchestrator.price_drift
            if drift is not None:
                print(format_price_drift(drift))
                await orchestrator.accept_price_change()

            outcome = await (orchestrator.retry() if retries else orchestrator.confirm())
            if outcome.status is ConfirmStatus.SUCCEEDED:
                confirmation = outcome.confirmation
                print(
                    f"Booked {confirmation.booking_id}: {confirmation.breakdown.total} "
                    f"via {confirmation.payment_method.label}"
                )
                return 0
            if outcome.message:
                print(outcome.message)

            if outcome.status in (ConfirmStatus.AUTH_REQUIRED, ConfirmStatus.PRICE_CHANGE_PENDING):
                continue
            if outcome.status is ConfirmStatus.OVERBOOKED:
                criteria = await orchestrator.view_alternatives()
                print(f"Showing {criteria.venue_type} venues in {criteria.location} on {criteria.date}")
                await orchestrator.cancel()
                return 1
            if retries >= args.max_retries:
                await orchestrator.cancel()
                return 1
            retries += 1
            LOGGER.info("Retrying after %s (attempt %s)", outcome.status.value, retries)


def _configure_runtime(settings: AppSettings) -> None:
    """Apply logging and function tracking settings before the flow starts."""
    tracking.configure(enabled=settings.function_tracking)
    setup_logging(settings)


def main(argv: Optional[Sequence[str]] = None) -> int:
    t('scripts.run_booking_demo.main')
    args = _parse_args(argv)
    _configure_runtime(get_settings())
    return asyncio.run(run_demo(args))


if __name__ == "__main__":
    raise SystemExit(main())
