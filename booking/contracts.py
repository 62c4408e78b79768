"""Shared booking draft, pricing and outcome contracts for the confirmation flow."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum, IntEnum
from typing import Optional, Union

from infrastructure.constants import DEFAULT_PAYMENT_METHOD, MONEY_QUANTUM, PAYMENT_METHOD_LABELS

Numeric = Union[int, str, Decimal]


@dataclass(frozen=True)
class Money:
    """A currency amount quantized to cents."""

    amount: Decimal
    currency: str

    def __post_init__(self) -> None:
        value = self.amount if isinstance(self.amount, Decimal) else Decimal(str(self.amount))
        object.__setattr__(self, "amount", value.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP))
        object.__setattr__(self, "currency", self.currency.upper())

    @classmethod
    def of(cls, amount: Numeric, currency: str) -> "Money":
        return cls(Decimal(str(amount)), currency)

    def _check_currency(self, other: "Money") -> None:
        if other.currency != self.currency:
            raise ValueError(f"Currency mismatch: {self.currency} vs {other.currency}")

    def plus(self, other: "Money") -> "Money":
        self._check_currency(other)
        return Money(self.amount + other.amount, self.currency)

    def minus(self, other: "Money") -> "Money":
        self._check_currency(other)
        return Money(self.amount - other.amount, self.currency)

    def times(self, factor: Numeric) -> "Money":
        return Money(self.amount * Decimal(str(factor)), self.currency)

    def __str__(self) -> str:
        return f"{self.currency} {self.amount}"


@dataclass(frozen=True)
class Venue:
    """Bookable venue plus the display fields carried by the draft."""

    venue_id: str
    name: str
    venue_type: str
    location: str
    image: Optional[str] = None


@dataclass(frozen=True)
class BookingDraft:
    """The unconfirmed reservation under construction."""

    venue: Venue
    date: date
    start_time: str
    duration_hours: int

    @property
    def venue_id(self) -> str:
        return self.venue.venue_id

    def identity(self) -> tuple:
        """Fields that identify the slot being booked."""
        return (self.venue.venue_id, self.date, self.start_time, self.duration_hours)


@dataclass(frozen=True)
class PriceQuote:
    """Quoted hourly rate at flow entry versus the latest re-quote."""

    original: Money
    current: Money
    accepted: bool = False

    @property
    def blocked(self) -> bool:
        """True while a drift is pending acknowledgement."""
        return not self.accepted and self.current != self.original


@dataclass(frozen=True)
class PriceDrift:
    """A detected change between the displayed price and a fresh quote."""

    previous: Money
    current: Money
    detected_at: datetime

    @property
    def difference(self) -> Money:
        return self.current.minus(self.previous)

    @property
    def is_increase(self) -> bool:
        return self.current.amount > self.previous.amount

    @property
    def percent_change(self) -> Decimal:
        if self.previous.amount == 0:
            return Decimal("0")
        ratio = (self.current.amount - self.previous.amount) / self.previous.amount * 100
        return ratio.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PriceBreakdown:
    """Line items shown in the booking summary."""

    hourly_rate: Money
    hours: int
    subtotal: Money
    service_fee: Money
    total: Money


class PaymentMethod(Enum):
    """Payment methods offered on the payment step."""

    CARD = "card"
    APPLE_PAY = "apple_pay"
    GOOGLE_PAY = "google_pay"

    @property
    def label(self) -> str:
        return PAYMENT_METHOD_LABELS[self.value]


class PaymentStatus(Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


@dataclass
class PaymentAttempt:
    """One payment try; a retry always creates a fresh attempt."""

    attempt_id: str
    amount: Money
    method: PaymentMethod
    started_at: datetime
    deadline: datetime
    status: PaymentStatus = PaymentStatus.PENDING
    reason: Optional[str] = None
    transaction_id: Optional[str] = None
    finished_at: Optional[datetime] = None

    @property
    def resolved(self) -> bool:
        return self.status is not PaymentStatus.PENDING


@dataclass(frozen=True)
class ChargeResult:
    """Payment gateway response."""

    succeeded: bool
    reason: Optional[str] = None
    transaction_id: Optional[str] = None

    @classmethod
    def success(cls, transaction_id: Optional[str] = None) -> "ChargeResult":
        return cls(succeeded=True, transaction_id=transaction_id)

    @classmethod
    def failure(cls, reason: str) -> "ChargeResult":
        return cls(succeeded=False, reason=reason)


@dataclass(frozen=True)
class AvailabilityResult:
    """Outcome of a single slot check, valid only at ``checked_at``."""

    available: bool
    checked_at: datetime
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None


@dataclass(frozen=True)
class BookingConfirmation:
    """Terminal result handed back after a successful payment."""

    booking_id: str
    draft: BookingDraft
    hourly_rate: Money
    breakdown: PriceBreakdown
    payment_method: PaymentMethod
    confirmed_at: datetime
    transaction_id: Optional[str] = None


@dataclass(frozen=True)
class SearchCriteria:
    """Filters handed to search when the user wants alternatives."""

    location: str
    date: date
    venue_type: str


class FlowStep(IntEnum):
    REVIEW = 1
    PAYMENT = 2
    CONFIRM = 3


class ConfirmPhase(Enum):
    IDLE = "idle"
    CHECKING_AVAILABILITY = "checking_availability"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    OVERBOOKING_BLOCKED = "overbooking_blocked"
    NOT_RECORDED = "not_recorded"


class FlowErrorKind(Enum):
    """User-facing problems, all recoverable without losing the draft."""

    PRICE_DRIFT = "price_drift"
    OVERBOOKING = "overbooking"
    PAYMENT_TIMEOUT = "payment_timeout"
    PAYMENT_FAILED = "payment_failed"
    UNAUTHENTICATED = "unauthenticated"
    AVAILABILITY_CHECK_FAILED = "availability_check_failed"
    BOOKING_NOT_RECORDED = "booking_not_recorded"


class TerminalState(Enum):
    SUCCEEDED = "succeeded"
    CANCELLED = "cancelled"
    CLOSED = "closed"


class ConfirmStatus(Enum):
    """Result of one ``confirm()`` invocation."""

    IGNORED = "ignored"
    AUTH_REQUIRED = "auth_required"
    PRICE_CHANGE_PENDING = "price_change_pending"
    OVERBOOKED = "overbooked"
    CHECK_FAILED = "check_failed"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ConfirmOutcome:
    """Structured result of the confirm action surfaced to the caller."""

    status: ConfirmStatus
    error_kind: Optional[FlowErrorKind] = None
    message: Optional[str] = None
    confirmation: Optional[BookingConfirmation] = None
    attempt: Optional[PaymentAttempt] = None

    @property
    def success(self) -> bool:
        return self.status is ConfirmStatus.SUCCEEDED

    @property
    def recoverable(self) -> bool:
        return self.status not in {ConfirmStatus.SUCCEEDED, ConfirmStatus.CANCELLED}


@dataclass
class FlowState:
    """Step cursor plus transient UI flags; owned by the orchestrator."""

    step: FlowStep = FlowStep.REVIEW
    phase: ConfirmPhase = ConfirmPhase.IDLE
    is_checking_availability: bool = False
    is_processing_payment: bool = False
    overbooking_detected: bool = False
    payment_error: Optional[FlowErrorKind] = None
    payment_error_reason: Optional[str] = None
    availability_error: Optional[str] = None
    auth_required: bool = False
    time_editable: bool = False
    payment_method: PaymentMethod = PaymentMethod(DEFAULT_PAYMENT_METHOD)
    terminal: Optional[TerminalState] = None
    history: list = field(default_factory=list)

    @property
    def busy(self) -> bool:
        return self.is_checking_availability or self.is_processing_payment
