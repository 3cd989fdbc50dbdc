"""
Domain enums shared by the locator, validator and checkout state machine.
"""

from enum import Enum


class PaymentStatus(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    FOUND = "found"
    VALIDATED = "validated"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset(
    {PaymentStatus.VALIDATED, PaymentStatus.FAILED, PaymentStatus.CANCELLED}
)


class Commitment(str, Enum):
    """Finality levels accepted by signature-history queries."""
    CONFIRMED = "confirmed"
    FINALIZED = "finalized"


class ValidationFailureReason(str, Enum):
    AMOUNT_MISMATCH = "amount_mismatch"
    RECIPIENT_MISMATCH = "recipient_mismatch"
    REFERENCE_MISMATCH = "reference_mismatch"
    TRANSACTION_FAILED = "transaction_failed"
    DATA_UNAVAILABLE = "data_unavailable"


class LocateOutcome(str, Enum):
    FOUND = "found"
    CANCELLED = "cancelled"
    TIMED_OUT = "timed_out"
