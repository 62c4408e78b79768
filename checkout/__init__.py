"""Gates and executors run by the confirm action."""

from .auth_gate import AuthGate
from .availability_gate import AvailabilityGate
from .payment_executor import PaymentExecutor

__all__ = ["AuthGate", "AvailabilityGate", "PaymentExecutor"]
