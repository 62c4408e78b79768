"""Booking confirmation orchestration."""

from .booking_orchestrator import BookingOrchestrator
from .metrics import FlowStats

__all__ = ["BookingOrchestrator", "FlowStats"]
