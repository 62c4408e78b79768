"""Drive a single payment attempt against a hard deadline."""

from __future__ import annotations
from tracking import t

import asyncio
import logging
import uuid
from datetime import timedelta
from typing import Awaitable, Callable, Optional

from booking.collaborators import PaymentGateway
from booking.contracts import ChargeResult, Money, PaymentAttempt, PaymentMethod, PaymentStatus
from monitoring.price_poller import Clock

SleepFunc = Callable[[float], Awaitable[None]]


class PaymentExecutor:
    """Races the gateway charge against a deadline timer.

    Whichever finishes first decides the attempt; the other task is cancelled
    and awaited before returning, so a timed-out charge can never flip the
    outcome later and a finished charge leaves no timer behind.
    """

    def __init__(
        self,
        gateway: PaymentGateway,
        *,
        deadline_seconds: float,
        clock: Clock,
        sleep: SleepFunc = asyncio.sleep,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        t('checkout.payment_executor.PaymentExecutor.__init__')
        if deadline_seconds <= 0:
            raise ValueError("Payment deadline must be positive")
        self._gateway = gateway
        self.deadline_seconds = deadline_seconds
        self._clock = clock
        self._sleep = sleep
        self.logger = logger or logging.getLogger('PaymentExecutor')

    def new_attempt(self, amount: Money, method: PaymentMethod) -> PaymentAttempt:
        t('checkout.payment_executor.PaymentExecutor.new_attempt')
        started_at = self._clock()
        return PaymentAttempt(
            attempt_id=uuid.uuid4().hex,
            amount=amount,
            method=method,
            started_at=started_at,
            deadline=started_at + timedelta(seconds=self.deadline_seconds),
        )

    async def execute(self, amount: Money, method: PaymentMethod) -> PaymentAttempt:
        """Run one attempt and return it resolved."""
        t('checkout.payment_executor.PaymentExecutor.execute')
        attempt = self.new_attempt(amount, method)
        self.logger.info(
            "Payment attempt %s started: %s via %s (deadline %ss)",
            attempt.attempt_id[:8],
            amount,
            method.value,
            self.deadline_seconds,
        )

        charge_task = asyncio.create_task(
            self._gateway.charge(amount, method),
            name=f"payment-{attempt.attempt_id[:8]}",
        )
        deadline_task = asyncio.create_task(
            self._sleep(self.deadline_seconds),
            name=f"payment-deadline-{attempt.attempt_id[:8]}",
        )
        try:
            done, _ = await asyncio.wait(
                {charge_task, deadline_task},
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            for task in (charge_task, deadline_task):
                if not task.done():
                    task.cancel()
            await asyncio.gather(charge_task, deadline_task, return_exceptions=True)

        if charge_task in done:
            self._resolve_charge(attempt, charge_task)
        else:
            self._finish(attempt, PaymentStatus.TIMED_OUT, reason="Payment deadline exceeded")
            self.logger.warning(
                "Payment attempt %s timed out after %ss",
                attempt.attempt_id[:8],
                self.deadline_seconds,
            )
        return attempt

    def _resolve_charge(self, attempt: PaymentAttempt, charge_task: asyncio.Task) -> None:
        try:
            result: ChargeResult = charge_task.result()
        except Exception as exc:
            self._finish(attempt, PaymentStatus.FAILED, reason=str(exc) or exc.__class__.__name__)
            self.logger.error("Payment attempt %s raised: %s", attempt.attempt_id[:8], exc)
            return

        if result.succeeded:
            attempt.transaction_id = result.transaction_id
            self._finish(attempt, PaymentStatus.SUCCEEDED)
            self.logger.info("Payment attempt %s succeeded", attempt.attempt_id[:8])
            return

        self._finish(attempt, PaymentStatus.FAILED, reason=result.reason or "Payment declined")
        self.logger.warning(
            "Payment attempt %s declined: %s",
            attempt.attempt_id[:8],
            attempt.reason,
        )

    def _finish(self, attempt: PaymentAttempt, status: PaymentStatus, *, reason: Optional[str] = None) -> None:
        attempt.status = status
        attempt.reason = reason
        attempt.finished_at = self._clock()
