"""Randomized stand-ins for the external booking services."""

from .services import (
    InMemoryBookingLedger,
    RecordingNavigator,
    SimulatedAuthProvider,
    SimulatedAvailabilityService,
    SimulatedPaymentGateway,
    SimulatedQuoteService,
)

__all__ = [
    "InMemoryBookingLedger",
    "RecordingNavigator",
    "SimulatedAuthProvider",
    "SimulatedAvailabilityService",
    "SimulatedPaymentGateway",
    "SimulatedQuoteService",
]
