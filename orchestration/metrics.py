"""Statistics helpers for booking confirmation flows."""

from __future__ import annotations
from tracking import t

from dataclasses import dataclass


@dataclass
class FlowStats:
    """Mutable counters describing what happened during one flow."""

    confirm_attempts: int = 0
    ignored_confirms: int = 0
    successful_bookings: int = 0
    payment_failures: int = 0
    payment_timeouts: int = 0
    overbookings: int = 0
    availability_errors: int = 0
    auth_prompts: int = 0
    drifts_detected: int = 0
    drifts_queued: int = 0
    drifts_accepted: int = 0
    drifts_rejected: int = 0
    ledger_failures: int = 0

    def record_confirm(self) -> None:
        t('orchestration.metrics.FlowStats.record_confirm')
        self.confirm_attempts += 1

    def record_ignored(self) -> None:
        self.ignored_confirms += 1

    def record_success(self) -> None:
        t('orchestration.metrics.FlowStats.record_success')
        self.successful_bookings += 1

    def record_payment_failure(self, timed_out: bool) -> None:
        t('orchestration.metrics.FlowStats.record_payment_failure')
        if timed_out:
            self.payment_timeouts += 1
        else:
            self.payment_failures += 1

    def record_ledger_failure(self) -> None:
        t('orchestration.metrics.FlowStats.record_ledger_failure')
        self.ledger_failures += 1

    def record_overbooking(self) -> None:
        self.overbookings += 1

    def record_availability_error(self) -> None:
        self.availability_errors += 1

    def record_auth_prompt(self) -> None:
        self.auth_prompts += 1

    def record_drift(self, queued: bool = False) -> None:
        t('orchestration.metrics.FlowStats.record_drift')
        if queued:
            self.drifts_queued += 1
        else:
            self.drifts_detected += 1

    def record_drift_decision(self, accepted: bool) -> None:
        if accepted:
            self.drifts_accepted += 1
        else:
            self.drifts_rejected += 1

    @property
    def payment_attempts(self) -> int:
        return self.successful_bookings + self.payment_failures + self.payment_timeouts

    @property
    def success_rate(self) -> float:
        t('orchestration.metrics.FlowStats.success_rate')
        if self.payment_attempts == 0:
            return 0.0
        return (self.successful_bookings / self.payment_attempts) * 100

    def format_report(self) -> str:
        t('orchestration.metrics.FlowStats.format_report')
        lines = [
            "Booking flow report",
            f"Confirm attempts: {self.confirm_attempts}",
            f"Payment attempts: {self.payment_attempts}",
            f"Successful: {self.successful_bookings}",
            f"Declined: {self.payment_failures}",
            f"Timed out: {self.payment_timeouts}",
            f"Payment success rate: {self.success_rate:.2f}%",
        ]
        if self.ignored_confirms:
            lines.append(f"Ignored confirms: {self.ignored_confirms}")
        if self.overbookings:
            lines.append(f"Overbookings: {self.overbookings}")
        if self.availability_errors:
            lines.append(f"Availability errors: {self.availability_errors}")
        if self.auth_prompts:
            lines.append(f"Sign-in prompts: {self.auth_prompts}")
        if self.ledger_failures:
            lines.append(f"Unrecorded charged bookings: {self.ledger_failures}")
        if self.drifts_detected or self.drifts_queued:
            lines.append(
                f"Price drifts: {self.drifts_detected} shown, {self.drifts_queued} queued, "
                f"{self.drifts_accepted} accepted, {self.drifts_rejected} rejected"
            )
        return "\n".join(lines)
