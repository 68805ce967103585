"""
Ledger — in-memory Booking Ledger.

A batch from one checkout is accepted whole or not at all: every line is
checked against existing bookings and against the rest of the batch before
anything is written. Booking confirmations go out after the commit and are
best-effort.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Any, Protocol

from bookcart.domain import (
    AppointmentRecord,
    BookingStatus,
    CartLineItem,
    ConfirmedBooking,
    PaymentStatus,
)
from bookcart.errors import LedgerError
from bookcart.schedule import duration_minutes, end_time, parse_date, parse_time_to_minutes

logger = logging.getLogger(__name__)

DEFAULT_DURATION_MINUTES = 60

# Statuses that still hold a slot in the provider's calendar.
_BLOCKING = frozenset({
    BookingStatus.PENDING_PROVIDER_CONFIRMATION,
    BookingStatus.CONFIRMED,
    BookingStatus.IN_PROGRESS,
})

_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING_PROVIDER_CONFIRMATION: frozenset({
        BookingStatus.CONFIRMED,
        BookingStatus.CANCELLED,
        BookingStatus.EXPIRED,
    }),
    BookingStatus.CONFIRMED: frozenset({
        BookingStatus.IN_PROGRESS,
        BookingStatus.CANCELLED,
        BookingStatus.NO_SHOW,
    }),
    BookingStatus.IN_PROGRESS: frozenset({BookingStatus.COMPLETED}),
    BookingStatus.COMPLETED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.EXPIRED: frozenset(),
    BookingStatus.NO_SHOW: frozenset(),
}


def can_transition(current: BookingStatus, target: BookingStatus) -> bool:
    return target in _TRANSITIONS[current]


class BookingEvents(Protocol):
    async def add_booking_confirmation(self, booking: ConfirmedBooking) -> None: ...

    async def add_booking_cancelled(self, booking: ConfirmedBooking) -> None: ...


# ═══════════════════════════════════════════════════════════════════════════════
# Slots
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Slot:
    provider_name: str
    day: date | None
    start: int
    end: int
    label: str

    def overlaps(self, other: Slot) -> bool:
        return (
            self.provider_name == other.provider_name
            and self.day is not None
            and self.day == other.day
            and self.start < other.end
            and other.start < self.end
        )


def _slot(provider_name: str, day: str, time: str, duration: str, label: str) -> Slot | None:
    start = parse_time_to_minutes(time)
    if start is None:
        return None
    length = duration_minutes(duration) or DEFAULT_DURATION_MINUTES
    return Slot(provider_name, parse_date(day), start, start + length, label)


# ═══════════════════════════════════════════════════════════════════════════════
# Ledger
# ═══════════════════════════════════════════════════════════════════════════════


class MemoryLedger:
    def __init__(self, events: BookingEvents | None = None) -> None:
        self._bookings: dict[str, ConfirmedBooking] = {}
        self._durations: dict[str, str] = {}
        self._events = events
        self.offline = False

    @property
    def bookings(self) -> list[ConfirmedBooking]:
        return list(self._bookings.values())

    def get(self, booking_id: str) -> ConfirmedBooking | None:
        return self._bookings.get(booking_id)

    def by_group(self, group_booking_id: str) -> list[ConfirmedBooking]:
        return [b for b in self._bookings.values() if b.group_booking_id == group_booking_id]

    # ── create ─────────────────────────────────────────────────────────────────

    async def create_bookings_from_cart(
        self,
        items: Sequence[CartLineItem],
        records: Sequence[AppointmentRecord],
    ) -> list[ConfirmedBooking]:
        if self.offline:
            raise LedgerError("booking service unavailable")

        by_line = {record.cart_item_id: record for record in records}
        missing = [item for item in items if item.id not in by_line]
        if missing:
            raise LedgerError(
                f"Missing appointment data for {missing[0].service_name}",
                tuple(item.id for item in missing),
            )

        self._check_conflicts(items, by_line)

        now = datetime.now()
        group_id = f"group_{uuid.uuid4().hex[:12]}" if len(items) > 1 else None
        created = [
            self._new_booking(item, by_line[item.id], group_id, now)
            for item in items
        ]

        for booking, item in zip(created, items):
            self._bookings[booking.id] = booking
            self._durations[booking.id] = item.duration
        logger.info("committed %d booking(s)", len(created), extra={"item_count": len(created)})

        for booking in created:
            await self._announce(booking, confirmed=True)
        return created

    def _check_conflicts(
        self,
        items: Sequence[CartLineItem],
        by_line: dict[str, AppointmentRecord],
    ) -> None:
        existing = [
            slot for booking in self._bookings.values()
            if booking.status in _BLOCKING
            and (slot := _slot(
                booking.provider_name,
                booking.date,
                booking.time,
                self._durations.get(booking.id, ""),
                f"an existing {booking.service_name} appointment ({booking.time} - {booking.end_time})",
            )) is not None
        ]
        incoming = [
            (item, _slot(
                item.provider_name,
                by_line[item.id].date,
                by_line[item.id].time,
                item.duration,
                "another service in your cart",
            ))
            for item in items
        ]

        conflicts: list[tuple[str, str]] = []
        for index, (item, slot) in enumerate(incoming):
            if slot is None:
                continue
            clash = next((other for other in existing if slot.overlaps(other)), None)
            if clash is None:
                clash = next(
                    (
                        other for j, (_, other) in enumerate(incoming)
                        if j != index and other is not None and slot.overlaps(other)
                    ),
                    None,
                )
            if clash is not None:
                conflicts.append((item.id, f"This time slot conflicts with {clash.label}"))

        if conflicts:
            raise LedgerError(
                "Booking conflict detected: " + "; ".join(message for _, message in conflicts),
                tuple(item_id for item_id, _ in conflicts),
            )

    @staticmethod
    def _new_booking(
        item: CartLineItem,
        record: AppointmentRecord,
        group_id: str | None,
        now: datetime,
    ) -> ConfirmedBooking:
        return ConfirmedBooking(
            id=f"booking_{uuid.uuid4().hex}",
            cart_item_id=item.id,
            provider_name=item.provider_name,
            provider_image=item.provider_image,
            service_name=item.service_name,
            date=record.date,
            time=record.time,
            end_time=end_time(record.time, item.duration),
            status=BookingStatus.PENDING_PROVIDER_CONFIRMATION,
            payment_status=PaymentStatus.DEPOSIT_PAID if record.is_deposit else PaymentStatus.PAID_IN_FULL,
            amount_paid=record.amount_paid,
            remaining_balance=record.remaining_balance,
            service_charge=record.service_charge,
            notes=record.notes,
            group_booking_id=group_id,
            created_at=now,
            updated_at=now,
        )

    # ── lifecycle ──────────────────────────────────────────────────────────────

    def update_status(self, booking_id: str, status: BookingStatus) -> ConfirmedBooking:
        booking = self._require(booking_id)
        if not can_transition(booking.status, status):
            raise LedgerError(
                f"Cannot move booking from {booking.status.value} to {status.value}",
            )
        updated = replace(booking, status=status, updated_at=datetime.now())
        self._bookings[booking_id] = updated
        logger.info("booking %s -> %s", booking_id, status.value, extra={"booking_id": booking_id})
        return updated

    async def cancel(self, booking_id: str) -> ConfirmedBooking:
        booking = self.update_status(booking_id, BookingStatus.CANCELLED)
        await self._announce(booking, confirmed=False)
        return booking

    def _require(self, booking_id: str) -> ConfirmedBooking:
        booking = self._bookings.get(booking_id)
        if booking is None:
            raise LedgerError("Booking not found")
        return booking

    async def _announce(self, booking: ConfirmedBooking, *, confirmed: bool) -> None:
        if self._events is None:
            return
        try:
            if confirmed:
                await self._events.add_booking_confirmation(booking)
            else:
                await self._events.add_booking_cancelled(booking)
        except Exception:
            logger.warning(
                "notification for booking %s failed", booking.id,
                exc_info=True,
                extra={"booking_id": booking.id},
            )


def booking_details(booking: ConfirmedBooking) -> dict[str, Any]:
    """Flat view of a booking for display or export."""
    return {
        "id": booking.id,
        "provider": booking.provider_name,
        "service": booking.service_name,
        "when": f"{booking.date} {booking.time} - {booking.end_time}",
        "status": booking.status.value,
        "payment_status": booking.payment_status.value,
        "group": booking.group_booking_id,
    }


__all__ = (
    "DEFAULT_DURATION_MINUTES",
    "can_transition",
    "BookingEvents",
    "Slot",
    "MemoryLedger",
    "booking_details",
)
