"""Price breakdown helpers for the booking summary."""

from __future__ import annotations
from tracking import t

from decimal import Decimal

from booking.contracts import Money, PriceBreakdown


def build_breakdown(hourly_rate: Money, hours: int, fee_rate: Decimal) -> PriceBreakdown:
    """Return subtotal, service fee and total for ``hours`` at ``hourly_rate``."""
    t('booking.pricing.build_breakdown')

    if hours <= 0:
        raise ValueError("Duration must be at least one hour")
    subtotal = hourly_rate.times(hours)
    service_fee = subtotal.times(fee_rate)
    return PriceBreakdown(
        hourly_rate=hourly_rate,
        hours=hours,
        subtotal=subtotal,
        service_fee=service_fee,
        total=subtotal.plus(service_fee),
    )
