"""
Constants Module - Centralized booking flow defaults
====================================================

PURPOSE: Single source of truth for timing, pricing and wording defaults
SCOPE: Booking confirmation flow

Settings loaded from the environment fall back to these values.
"""

from decimal import Decimal

# Timing (seconds)
PRICE_CHECK_INTERVAL_SECONDS = 5.0
PAYMENT_DEADLINE_SECONDS = 5.0

# Pricing
SERVICE_FEE_RATE = Decimal("0.05")
DEFAULT_CURRENCY = "USD"
MONEY_QUANTUM = Decimal("0.01")

# Locale
DEFAULT_TIMEZONE = "UTC"

# Booking identifiers
BOOKING_ID_PREFIX = "BK-"

# Payment methods offered on the payment step, in display order
PAYMENT_METHOD_LABELS = {
    "card": "Credit / Debit Card",
    "apple_pay": "Apple Pay",
    "google_pay": "Google Pay",
}
DEFAULT_PAYMENT_METHOD = "card"

# Logging
DEFAULT_LOG_DIRECTORY = "logs/latest_log"
FLOW_LOGGER_NAMES = (
    "BookingOrchestrator",
    "PriceWatcher",
    "AvailabilityGate",
    "PaymentExecutor",
    "AuthGate",
)
