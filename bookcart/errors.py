"""
Checkout errors — values carried in Result, not raised.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto


class CheckoutErrorKind(Enum):
    """
    Kinds of checkout errors, in rising order of severity.

    VALIDATION: incomplete or unparseable scheduling; nothing happened yet.
    PAYMENT: the processor declined; the snapshot is kept for retry.
    LEDGER: payment went through but bookings were not persisted;
            the cart is kept so the user can retry.
    NOTIFICATION: best-effort side effect failed; logged only.
    INVALID_STATE: operation called in a stage that does not allow it.
    """

    VALIDATION = auto()
    PAYMENT = auto()
    LEDGER = auto()
    NOTIFICATION = auto()
    INVALID_STATE = auto()


@dataclass(frozen=True, slots=True)
class CheckoutError:
    """
    Checkout failure with enough context to act on.

    stage: pipeline stage name at the time of failure.
    details: per-line messages (which service, what is missing).
    """

    kind: CheckoutErrorKind
    stage: str
    message: str
    details: tuple[str, ...] = ()

    @property
    def retryable(self) -> bool:
        return self.kind in (
            CheckoutErrorKind.VALIDATION,
            CheckoutErrorKind.PAYMENT,
            CheckoutErrorKind.LEDGER,
        )

    @property
    def user_message(self) -> str:
        if not self.details:
            return self.message
        return self.message + "\n" + "\n".join(self.details)

    def __str__(self) -> str:
        return f"[{self.kind.name.lower()}@{self.stage}] {self.user_message}"


class CheckoutErrors:
    @staticmethod
    def validation(message: str, details: tuple[str, ...] = (), stage: str = "validating") -> CheckoutError:
        return CheckoutError(CheckoutErrorKind.VALIDATION, stage, message, details)

    @staticmethod
    def payment(message: str) -> CheckoutError:
        return CheckoutError(
            CheckoutErrorKind.PAYMENT,
            "awaiting_payment",
            f"Payment failed: {message}",
        )

    @staticmethod
    def ledger(message: str) -> CheckoutError:
        return CheckoutError(
            CheckoutErrorKind.LEDGER,
            "creating_bookings",
            f"Failed to create bookings: {message}",
        )

    @staticmethod
    def notification(message: str) -> CheckoutError:
        return CheckoutError(
            CheckoutErrorKind.NOTIFICATION,
            "creating_bookings",
            f"Confirmation notification failed: {message}",
        )

    @staticmethod
    def invalid_state(operation: str, stage: str) -> CheckoutError:
        return CheckoutError(
            CheckoutErrorKind.INVALID_STATE,
            stage,
            f"Cannot {operation} while checkout is {stage}",
        )


class LedgerError(Exception):
    """Raised by a booking ledger that rejects a whole batch."""

    def __init__(self, message: str, cart_item_ids: tuple[str, ...] = ()) -> None:
        super().__init__(message)
        self.message = message
        self.cart_item_ids = cart_item_ids


__all__ = (
    "CheckoutErrorKind",
    "CheckoutError",
    "CheckoutErrors",
    "LedgerError",
)
