"""One-shot slot check performed right before payment."""

from __future__ import annotations
from tracking import t

import logging
from typing import Optional

from booking.collaborators import AvailabilityService
from booking.contracts import AvailabilityResult, BookingDraft
from monitoring.price_poller import Clock


class AvailabilityGate:
    """Asks the availability service whether the draft's slot is still free.

    Results are never cached; every confirm attempt checks again. Nothing
    holds the slot between this check and the charge.
    """

    def __init__(
        self,
        service: AvailabilityService,
        *,
        clock: Clock,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        t('checkout.availability_gate.AvailabilityGate.__init__')
        self._service = service
        self._clock = clock
        self.logger = logger or logging.getLogger('AvailabilityGate')
        self.checks = 0

    async def check(self, draft: BookingDraft) -> AvailabilityResult:
        t('checkout.availability_gate.AvailabilityGate.check')
        self.checks += 1
        self.logger.info(
            "Checking availability for venue %s on %s at %s (%sh)",
            draft.venue_id,
            draft.date,
            draft.start_time,
            draft.duration_hours,
        )
        try:
            available = await self._service.check_availability(
                draft.venue_id,
                draft.date,
                draft.start_time,
                draft.duration_hours,
            )
        except Exception as exc:
            self.logger.error("Availability check failed for venue %s: %s", draft.venue_id, exc)
            return AvailabilityResult(available=False, checked_at=self._clock(), error=str(exc))

        result = AvailabilityResult(available=bool(available), checked_at=self._clock())
        if not result.available:
            self.logger.warning(
                "Slot %s %s at venue %s was taken by another booker",
                draft.date,
                draft.start_time,
                draft.venue_id,
            )
        return result
