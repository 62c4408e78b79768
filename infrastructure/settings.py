"""Centralized application settings for the booking flow.

All runtime configuration is read here once so components receive plain
values instead of calling ``os.getenv`` themselves.
"""

from __future__ import annotations
from tracking import t

import os
from dataclasses import dataclass, replace
from decimal import Decimal, InvalidOperation
from functools import lru_cache
from typing import Mapping, Optional

import pytz
from dotenv import load_dotenv

from . import constants as booking_constants


def _to_bool(value: Optional[str], default: bool = False) -> bool:
    """Normalize environment strings such as "true"/"1" into booleans."""
    t('infrastructure.settings._to_bool')

    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _to_positive_float(value: Optional[str], default: float) -> float:
    t('infrastructure.settings._to_positive_float')
    if value is None:
        return default
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return default
    return parsed if parsed > 0 else default


def _to_rate(value: Optional[str], default: Decimal) -> Decimal:
    t('infrastructure.settings._to_rate')
    if value is None:
        return default
    try:
        parsed = Decimal(value.strip())
    except (InvalidOperation, AttributeError):
        return default
    if parsed < 0 or parsed >= 1:
        return default
    return parsed


@dataclass(frozen=True)
class AppSettings:
    """Immutable snapshot of booking flow configuration values."""

    production_mode: bool
    timezone: str
    currency: str
    price_check_interval: float
    payment_deadline: float
    service_fee_rate: Decimal
    log_directory: str
    function_tracking: bool

    @property
    def tzinfo(self):
        return pytz.timezone(self.timezone)

    def with_overrides(self, **changes: object) -> "AppSettings":
        """Return a copy with selected fields replaced."""
        return replace(self, **changes)


def load_settings(env: Optional[Mapping[str, str]] = None) -> AppSettings:
    """Load configuration from the environment and fall back to defaults."""
    t('infrastructure.settings.load_settings')

    if env is None:
        load_dotenv(override=False)
        env = os.environ

    production_mode = _to_bool(env.get("PRODUCTION_MODE", "false"))

    timezone = env.get("BOOKING_TIMEZONE", booking_constants.DEFAULT_TIMEZONE)
    try:
        pytz.timezone(timezone)
    except pytz.UnknownTimeZoneError:
        timezone = booking_constants.DEFAULT_TIMEZONE

    currency = env.get("BOOKING_CURRENCY", booking_constants.DEFAULT_CURRENCY).strip().upper()
    if not currency:
        currency = booking_constants.DEFAULT_CURRENCY

    price_check_interval = _to_positive_float(
        env.get("PRICE_CHECK_INTERVAL_SECONDS"),
        booking_constants.PRICE_CHECK_INTERVAL_SECONDS,
    )
    payment_deadline = _to_positive_float(
        env.get("PAYMENT_DEADLINE_SECONDS"),
        booking_constants.PAYMENT_DEADLINE_SECONDS,
    )
    service_fee_rate = _to_rate(
        env.get("SERVICE_FEE_RATE"),
        booking_constants.SERVICE_FEE_RATE,
    )

    log_directory = env.get("LOG_DIRECTORY", booking_constants.DEFAULT_LOG_DIRECTORY)
    function_tracking = _to_bool(env.get("FUNCTION_TRACKING_ENABLED", "false"))

    return AppSettings(
        production_mode=production_mode,
        timezone=timezone,
        currency=currency,
        price_check_interval=price_check_interval,
        payment_deadline=payment_deadline,
        service_fee_rate=service_fee_rate,
        log_directory=log_directory,
        function_tracking=function_tracking,
    )


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    """Return a cached :class:`AppSettings` instance."""
    t('infrastructure.settings.get_settings')

    return load_settings()
