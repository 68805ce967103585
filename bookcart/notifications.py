"""
Notifications — in-memory Notification Sink.

Newest first. Delivery to a device is somebody else's job; this only keeps
the list the app shows.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from datetime import datetime
from typing import Any

from bookcart import pricing
from bookcart._types import Money
from bookcart.domain import ConfirmedBooking, Notification, NotificationKind

logger = logging.getLogger(__name__)


class NotificationUnavailable(Exception):
    pass


class MemoryNotificationSink:
    def __init__(self) -> None:
        self._notifications: list[Notification] = []
        self.offline = False

    # ── reads ──────────────────────────────────────────────────────────────────

    @property
    def notifications(self) -> list[Notification]:
        return list(self._notifications)

    @property
    def unread_count(self) -> int:
        return sum(1 for n in self._notifications if not n.read)

    def of_kind(self, kind: NotificationKind) -> list[Notification]:
        return [n for n in self._notifications if n.kind is kind]

    # ── writes ─────────────────────────────────────────────────────────────────

    async def add_payment_success(
        self,
        amount: Money,
        provider_name: str,
        service_summary: str,
        provider_image: Any,
    ) -> None:
        self._push(
            NotificationKind.PAYMENT_SUCCESS,
            title="Payment Successful",
            message=(
                f"Payment of {pricing.format_price(amount)} has been processed "
                f"for your upcoming appointment with {provider_name}."
            ),
            provider_image=provider_image,
            provider_name=provider_name,
            service=service_summary,
        )

    async def add_booking_confirmation(self, booking: ConfirmedBooking) -> None:
        self._push(
            NotificationKind.BOOKING_CONFIRMED,
            title="Booking Received",
            message=(
                f"Your {booking.service_name} with {booking.provider_name} on "
                f"{booking.date} at {booking.time} is awaiting provider confirmation."
            ),
            provider_image=booking.provider_image,
            provider_name=booking.provider_name,
            service=booking.service_name,
        )

    async def add_booking_cancelled(self, booking: ConfirmedBooking) -> None:
        self._push(
            NotificationKind.BOOKING_CANCELLED,
            title="Booking Cancelled",
            message=(
                f"Your {booking.service_name} with {booking.provider_name} on "
                f"{booking.date} has been cancelled."
            ),
            provider_image=booking.provider_image,
            provider_name=booking.provider_name,
            service=booking.service_name,
        )

    def mark_as_read(self, notification_id: str) -> None:
        self._notifications = [
            replace(n, read=True) if n.id == notification_id else n
            for n in self._notifications
        ]

    def mark_all_as_read(self) -> None:
        self._notifications = [replace(n, read=True) for n in self._notifications]

    def delete(self, notification_id: str) -> None:
        self._notifications = [n for n in self._notifications if n.id != notification_id]

    def _push(
        self,
        kind: NotificationKind,
        *,
        title: str,
        message: str,
        provider_image: Any,
        provider_name: str = "",
        service: str = "",
    ) -> Notification:
        if self.offline:
            raise NotificationUnavailable(f"cannot deliver {kind.value}")
        notification = Notification(
            id=f"notif_{uuid.uuid4().hex[:12]}",
            kind=kind,
            title=title,
            message=message,
            provider_image=provider_image,
            created_at=datetime.now(),
            provider_name=provider_name,
            service=service,
        )
        self._notifications.insert(0, notification)
        logger.debug("notification %s: %s", kind.value, title)
        return notification


__all__ = ("NotificationUnavailable", "MemoryNotificationSink")
