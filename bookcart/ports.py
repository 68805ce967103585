"""
Collaborator ports — what the checkout pipeline consumes.

The pipeline only talks to these protocols. In-memory implementations live
in bookcart.cart, bookcart.ledger, bookcart.notifications and
bookcart.payment.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol

from bookcart._types import Money
from bookcart.domain import (
    AppointmentRecord,
    CartLineItem,
    ConfirmedBooking,
    PaymentMethod,
    PaymentReceipt,
)


class CartStore(Protocol):
    """
    Shared mutable cart.

    Other parts of the application may mutate it at any time, including
    while a checkout is in flight.
    """

    @property
    def items(self) -> list[CartLineItem]: ...

    @property
    def total_items(self) -> int: ...

    @property
    def total_price(self) -> Money: ...

    def remove_from_cart(self, item_id: str) -> None: ...

    def clear_cart(self) -> None: ...

    def get_items_by_provider(self) -> dict[str, list[CartLineItem]]: ...

    def get_service_fee(self) -> Money: ...

    def get_final_total(self) -> Money: ...

    def get_booking_summary(self) -> Any: ...


class BookingLedger(Protocol):
    """
    System of record for bookings.

    create_bookings_from_cart either persists every record and assigns
    booking ids, or raises and persists nothing.
    """

    async def create_bookings_from_cart(
        self,
        items: Sequence[CartLineItem],
        records: Sequence[AppointmentRecord],
    ) -> list[ConfirmedBooking]: ...


class NotificationSink(Protocol):
    """Best-effort user notifications."""

    async def add_payment_success(
        self,
        amount: Money,
        provider_name: str,
        service_summary: str,
        provider_image: Any,
    ) -> None: ...


class PaymentProcessor(Protocol):
    """External payment authorization. Raises on decline or outage."""

    async def authorize(self, amount: Money, method: PaymentMethod) -> PaymentReceipt: ...


__all__ = (
    "CartStore",
    "BookingLedger",
    "NotificationSink",
    "PaymentProcessor",
)
