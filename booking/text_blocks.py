"""User-facing wording for booking flow notices."""

from __future__ import annotations
from tracking import t

from dataclasses import dataclass
from typing import List, Optional, Tuple

from booking.contracts import FlowErrorKind, PriceBreakdown, PriceDrift

NO_CHARGE_NOTE = "No charges were made."
DRAFT_SAVED_NOTE = "Your booking details are saved."
CHARGED_ONCE_NOTE = "Your payment went through and will not be taken again."


@dataclass(frozen=True)
class Notice:
    """Title, explanation and offered recovery actions for one error kind."""

    kind: FlowErrorKind
    title: str
    body: str
    actions: Tuple[str, ...]
    charged: bool = False

    def render(self) -> str:
        charge_note = CHARGED_ONCE_NOTE if self.charged else NO_CHARGE_NOTE
        lines = [self.title, self.body, f"{charge_note} {DRAFT_SAVED_NOTE}"]
        if self.actions:
            lines.append("Options: " + ", ".join(self.actions))
        return "\n".join(lines)


_NOTICES = {
    FlowErrorKind.PRICE_DRIFT: Notice(
        kind=FlowErrorKind.PRICE_DRIFT,
        title="Price updated",
        body="This can happen during high demand.",
        actions=("accept new price", "keep previous price"),
    ),
    FlowErrorKind.OVERBOOKING: Notice(
        kind=FlowErrorKind.OVERBOOKING,
        title="Booking conflict detected",
        body="This can happen during high demand when multiple people book the same time.",
        actions=("choose another time", "view similar venues"),
    ),
    FlowErrorKind.PAYMENT_TIMEOUT: Notice(
        kind=FlowErrorKind.PAYMENT_TIMEOUT,
        title="Payment is taking longer than usual",
        body="This can happen during high demand.",
        actions=("try again", "cancel booking"),
    ),
    FlowErrorKind.PAYMENT_FAILED: Notice(
        kind=FlowErrorKind.PAYMENT_FAILED,
        title="Payment couldn't be processed",
        body="This can happen during high demand or network issues.",
        actions=("try again", "change payment method", "cancel booking"),
    ),
    FlowErrorKind.UNAUTHENTICATED: Notice(
        kind=FlowErrorKind.UNAUTHENTICATED,
        title="Sign in to complete your booking",
        body="After signing in, confirm your booking again.",
        actions=("sign in",),
    ),
    FlowErrorKind.AVAILABILITY_CHECK_FAILED: Notice(
        kind=FlowErrorKind.AVAILABILITY_CHECK_FAILED,
        title="We couldn't confirm availability",
        body="The availability service did not respond.",
        actions=("try again", "cancel booking"),
    ),
    FlowErrorKind.BOOKING_NOT_RECORDED: Notice(
        kind=FlowErrorKind.BOOKING_NOT_RECORDED,
        title="We couldn't save your booking",
        body="Confirming again only saves the booking for the payment already made.",
        actions=("try again",),
        charged=True,
    ),
}


def notice_for(kind: FlowErrorKind) -> Notice:
    t('booking.text_blocks.notice_for')
    return _NOTICES[kind]


def error_message(kind: FlowErrorKind, detail: Optional[str] = None) -> str:
    """Full notice text, with the gateway reason appended when present."""
    t('booking.text_blocks.error_message')
    message = notice_for(kind).render()
    if detail:
        message += f"\nDetails: {detail}"
    return message


def format_price_drift(drift: PriceDrift) -> str:
    t('booking.text_blocks.format_price_drift')
    direction = "increased" if drift.is_increase else "decreased"
    return (
        f"Price {direction} from {drift.previous} to {drift.current} per hour "
        f"({drift.percent_change:+}%)"
    )


def format_breakdown(breakdown: PriceBreakdown) -> List[str]:
    t('booking.text_blocks.format_breakdown')
    return [
        f"{breakdown.hourly_rate} x {breakdown.hours} hours: {breakdown.subtotal}",
        f"Service fee: {breakdown.service_fee}",
        f"Total: {breakdown.total}",
    ]
