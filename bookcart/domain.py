"""
Domain — beauty-service cart, scheduling and booking types.

A cart line is one bookable service instance. Booking the same service
twice produces two lines that differ by instance_index. Each line has its
own scheduling draft while the cart is open; at checkout the lines become
appointment records, and the ledger turns those into confirmed bookings.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any


# ═══════════════════════════════════════════════════════════════════════════════
# Catalog
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class AddOn:
    id: int | str
    name: str
    price: Any  # upstream data; coerced by pricing


@dataclass(frozen=True, slots=True)
class ServiceDescriptor:
    id: str
    name: str
    price: Any
    duration: str = "1 hour"
    description: str = ""


# ═══════════════════════════════════════════════════════════════════════════════
# Cart Domain
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CartLineItem:
    id: str
    provider_name: str
    provider_image: Any
    provider_service: str  # category, e.g. "Nails"
    service: ServiceDescriptor
    add_ons: tuple[AddOn, ...] = ()
    instance_index: int = 1
    added_at: datetime = field(default_factory=datetime.now)

    @property
    def service_id(self) -> str:
        return self.service.id

    @property
    def service_name(self) -> str:
        return self.service.name

    @property
    def base_price(self) -> Any:
        return self.service.price

    @property
    def duration(self) -> str:
        return self.service.duration


@dataclass(frozen=True, slots=True)
class SchedulingDraft:
    selected_date: str = ""
    selected_time: str = ""
    notes: str = ""
    is_deposit_only: bool = False

    @property
    def is_scheduled(self) -> bool:
        return bool(self.selected_date and self.selected_time)


EMPTY_DRAFT = SchedulingDraft()


@dataclass(frozen=True, slots=True)
class EffectiveLineItem:
    """Derived view of a line with its draft. Never stored."""

    item: CartLineItem
    total_price: Decimal
    effective_price: Decimal
    is_deposit: bool


# ═══════════════════════════════════════════════════════════════════════════════
# Customer / Payment
# ═══════════════════════════════════════════════════════════════════════════════

_PHONE_SEPARATORS = re.compile(r"[\s\-()+]")


@dataclass(frozen=True, slots=True)
class CustomerInfo:
    name: str
    email: str
    phone: str

    def phone_problem(self) -> str | None:
        """Reason the phone number is unusable, or None."""
        if not self.phone.strip():
            return "Please enter your phone number to continue."
        digits = _PHONE_SEPARATORS.sub("", self.phone)
        if len(digits) < 10 or not digits.isdigit():
            return "Please enter a valid phone number (at least 10 digits)."
        return None


class PaymentMethod(Enum):
    CARD = "card"
    PAYPAL = "paypal"
    APPLE_PAY = "apple"
    GOOGLE_PAY = "google"


@dataclass(frozen=True, slots=True)
class PaymentReceipt:
    transaction_id: str
    method: PaymentMethod
    amount: Decimal
    authorized_at: datetime


# ═══════════════════════════════════════════════════════════════════════════════
# Appointment Domain
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class AppointmentRecord:
    cart_item_id: str
    date: str
    time: str
    line_total: Decimal
    amount_paid: Decimal
    is_deposit: bool
    deposit_amount: Decimal
    remaining_balance: Decimal
    service_charge: Decimal
    notes: str = ""
    customer: CustomerInfo | None = None

    @property
    def payment_type(self) -> str:
        return "deposit" if self.is_deposit else "full"


class BookingStatus(Enum):
    PENDING_PROVIDER_CONFIRMATION = "pending_provider_confirmation"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    NO_SHOW = "no_show"


class PaymentStatus(Enum):
    DEPOSIT_PAID = "deposit_paid"
    PAID_IN_FULL = "paid_in_full"
    REFUND_PENDING = "refund_pending"
    REFUNDED = "refunded"


@dataclass(frozen=True, slots=True)
class ConfirmedBooking:
    id: str
    cart_item_id: str
    provider_name: str
    provider_image: Any
    service_name: str
    date: str
    time: str
    end_time: str
    status: BookingStatus
    payment_status: PaymentStatus
    amount_paid: Decimal
    remaining_balance: Decimal
    service_charge: Decimal
    notes: str
    group_booking_id: str | None
    created_at: datetime
    updated_at: datetime


# ═══════════════════════════════════════════════════════════════════════════════
# Notifications
# ═══════════════════════════════════════════════════════════════════════════════


class NotificationKind(Enum):
    PAYMENT_SUCCESS = "payment_success"
    BOOKING_CONFIRMED = "booking_confirmed"
    BOOKING_CANCELLED = "booking_cancelled"


@dataclass(frozen=True, slots=True)
class Notification:
    id: str
    kind: NotificationKind
    title: str
    message: str
    provider_image: Any
    created_at: datetime
    provider_name: str = ""
    service: str = ""
    read: bool = False
