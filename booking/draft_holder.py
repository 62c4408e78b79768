"""Holder for the draft reservation and its price quote."""

from __future__ import annotations
from tracking import t

import re
from dataclasses import replace
from datetime import date
from typing import Optional

from booking.contracts import BookingDraft, Money, PriceQuote, Venue
from booking.errors import NoActiveDraftError

_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def validate_slot(start_time: str, duration_hours: int) -> None:
    """Reject malformed start times and non-positive durations."""
    t('booking.draft_holder.validate_slot')
    if not isinstance(start_time, str) or not _TIME_PATTERN.match(start_time):
        raise ValueError(f"Start time must be HH:MM, got {start_time!r}")
    if not isinstance(duration_hours, int) or duration_hours <= 0:
        raise ValueError(f"Duration must be a positive number of hours, got {duration_hours!r}")


class DraftHolder:
    """Owns the draft snapshot and the quote for one booking attempt.

    The draft itself is frozen; edits replace it wholesale so collaborators
    holding an earlier reference never observe a change.
    """

    def __init__(self) -> None:
        self._draft: Optional[BookingDraft] = None
        self._quote: Optional[PriceQuote] = None

    @property
    def has_draft(self) -> bool:
        return self._draft is not None

    def initialize(
        self,
        venue: Venue,
        booking_date: date,
        start_time: str,
        duration_hours: int,
        quoted_price: Money,
    ) -> BookingDraft:
        t('booking.draft_holder.DraftHolder.initialize')
        validate_slot(start_time, duration_hours)
        self._draft = BookingDraft(
            venue=venue,
            date=booking_date,
            start_time=start_time,
            duration_hours=duration_hours,
        )
        self._quote = PriceQuote(original=quoted_price, current=quoted_price)
        return self._draft

    def read(self) -> BookingDraft:
        t('booking.draft_holder.DraftHolder.read')
        if self._draft is None:
            raise NoActiveDraftError()
        return self._draft

    @property
    def quote(self) -> PriceQuote:
        if self._quote is None:
            raise NoActiveDraftError()
        return self._quote

    def apply_requote(self, price: Money) -> PriceQuote:
        """Show a freshly quoted price and mark it unacknowledged."""
        t('booking.draft_holder.DraftHolder.apply_requote')
        self._quote = replace(self.quote, current=price, accepted=False)
        return self._quote

    def update_accepted_price(self, new_price: Money) -> PriceQuote:
        """Promote ``new_price`` to the accepted baseline."""
        t('booking.draft_holder.DraftHolder.update_accepted_price')
        self.read()
        self._quote = PriceQuote(original=new_price, current=new_price, accepted=True)
        return self._quote

    def revert_price(self) -> PriceQuote:
        t('booking.draft_holder.DraftHolder.revert_price')
        quote = self.quote
        self._quote = replace(quote, current=quote.original)
        return self._quote

    def reset_quote(self, price: Money) -> PriceQuote:
        """Start a new baseline after the slot itself was edited."""
        self._quote = PriceQuote(original=price, current=price)
        return self._quote

    def update_identity(
        self,
        *,
        booking_date: Optional[date] = None,
        start_time: Optional[str] = None,
        duration_hours: Optional[int] = None,
    ) -> BookingDraft:
        t('booking.draft_holder.DraftHolder.update_identity')
        draft = self.read()
        new_time = start_time if start_time is not None else draft.start_time
        new_duration = duration_hours if duration_hours is not None else draft.duration_hours
        validate_slot(new_time, new_duration)
        self._draft = replace(
            draft,
            date=booking_date if booking_date is not None else draft.date,
            start_time=new_time,
            duration_hours=new_duration,
        )
        return self._draft

    def clear(self) -> None:
        t('booking.draft_holder.DraftHolder.clear')
        self._draft = None
        self._quote = None
