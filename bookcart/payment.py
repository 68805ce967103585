"""
Payment — the black-box authorization step.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime

from combinators import lift as L

from bookcart._types import Lazy, Money
from bookcart.config import settings
from bookcart.domain import PaymentMethod, PaymentReceipt
from bookcart.errors import CheckoutError, CheckoutErrors
from bookcart.ports import PaymentProcessor

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# Step
# ═══════════════════════════════════════════════════════════════════════════════


def authorize_payment(
    processor: PaymentProcessor,
    amount: Money,
    method: PaymentMethod,
) -> Lazy[PaymentReceipt, CheckoutError]:
    """Authorize amount with the processor; any exception is a payment error."""
    return L.catching_async(
        lambda: processor.authorize(amount, method),
        on_error=lambda e: CheckoutErrors.payment(str(e) or type(e).__name__),
    )


# ═══════════════════════════════════════════════════════════════════════════════
# Payment Processor (simulated)
# ═══════════════════════════════════════════════════════════════════════════════


class PaymentDeclined(Exception):
    pass


@dataclass(frozen=True, slots=True)
class PaymentCall:
    amount: Money
    method: PaymentMethod


class SimulatedPaymentProcessor:
    """
    Stand-in processor: waits, then approves.

    decline_next(n) makes the next n calls fail, for retry flows.
    """

    def __init__(self, latency_seconds: float | None = None) -> None:
        self._latency = settings.PAYMENT_LATENCY_SECONDS if latency_seconds is None else latency_seconds
        self._declines_left = 0
        self.calls: list[PaymentCall] = []

    def decline_next(self, times: int = 1) -> None:
        self._declines_left = times

    async def authorize(self, amount: Money, method: PaymentMethod) -> PaymentReceipt:
        self.calls.append(PaymentCall(amount, method))
        logger.info("authorizing %s via %s", amount, method.value, extra={"amount": amount})
        if self._latency:
            await asyncio.sleep(self._latency)

        if self._declines_left > 0:
            self._declines_left -= 1
            raise PaymentDeclined("Card declined")

        return PaymentReceipt(
            transaction_id=f"txn_{uuid.uuid4().hex[:16]}",
            method=method,
            amount=amount,
            authorized_at=datetime.now(),
        )


__all__ = (
    "authorize_payment",
    "PaymentDeclined",
    "PaymentCall",
    "SimulatedPaymentProcessor",
)
