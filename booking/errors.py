"""Errors raised for misuse of the booking confirmation flow.

User-facing problems (price drift, overbooking, payment timeout or failure,
missing sign-in) are never raised; they are reported as confirm outcomes.
"""

from __future__ import annotations
from tracking import t

from typing import Iterable


class BookingFlowError(RuntimeError):
    """Base error for booking flow guard failures."""


class NoActiveDraftError(BookingFlowError):
    """Raised when the draft was cleared or never initialized."""

    def __init__(self) -> None:
        super().__init__("No active booking draft")


class FlowStateError(BookingFlowError):
    """Raised when an operation is not allowed in the current step."""

    def __init__(self, action: str, current: object, allowed: Iterable[object] = ()) -> None:
        t('booking.errors.FlowStateError.__init__')
        allowed_names = tuple(getattr(item, "name", str(item)) for item in allowed)
        current_name = getattr(current, "name", str(current))
        message = f"Cannot {action} while in {current_name}"
        if allowed_names:
            message += f" (allowed: {', '.join(allowed_names)})"
        super().__init__(message)
        self.action = action
        self.current = current
        self.allowed = allowed_names
