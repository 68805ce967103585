"""Tests for the in-memory booking ledger."""

from __future__ import annotations

from decimal import Decimal

import pytest

from bookcart.cart import MemoryCartStore
from bookcart.domain import (
    AppointmentRecord,
    BookingStatus,
    CartLineItem,
    NotificationKind,
    PaymentStatus,
)
from bookcart.errors import LedgerError
from bookcart.ledger import MemoryLedger, booking_details, can_transition
from bookcart.notifications import MemoryNotificationSink
from tests.conftest import FUTURE_DATE, add_line, make_service

pytestmark = pytest.mark.asyncio


def _record(item: CartLineItem, time: str, *, date: str = FUTURE_DATE, deposit: bool = False) -> AppointmentRecord:
    return AppointmentRecord(
        cart_item_id=item.id,
        date=date,
        time=time,
        line_total=Decimal("100"),
        amount_paid=Decimal("20") if deposit else Decimal("100"),
        is_deposit=deposit,
        deposit_amount=Decimal("20") if deposit else Decimal("0"),
        remaining_balance=Decimal("80") if deposit else Decimal("0"),
        service_charge=Decimal("5"),
        notes="Short nails please",
    )


async def test_creates_pending_bookings_with_group(
    cart: MemoryCartStore,
    ledger: MemoryLedger,
    notifications: MemoryNotificationSink,
) -> None:
    gel = add_line(cart)
    ped = add_line(cart, service=make_service("svc_ped", "Pedicure", 45, "45 min"))

    bookings = await ledger.create_bookings_from_cart(
        [gel, ped],
        [_record(gel, "10:00 AM", deposit=True), _record(ped, "11:00 AM")],
    )

    assert len(bookings) == 2
    assert len({b.id for b in bookings}) == 2
    assert all(b.id.startswith("booking_") and b.id != b.cart_item_id for b in bookings)
    assert all(b.status is BookingStatus.PENDING_PROVIDER_CONFIRMATION for b in bookings)
    assert bookings[0].group_booking_id is not None
    assert bookings[0].group_booking_id == bookings[1].group_booking_id
    assert bookings[0].payment_status is PaymentStatus.DEPOSIT_PAID
    assert bookings[1].payment_status is PaymentStatus.PAID_IN_FULL
    assert bookings[0].end_time == "11:00 AM"
    assert bookings[1].end_time == "11:45 AM"
    assert bookings[0].notes == "Short nails please"
    assert len(ledger.by_group(bookings[0].group_booking_id)) == 2
    assert len(notifications.of_kind(NotificationKind.BOOKING_CONFIRMED)) == 2


async def test_single_booking_has_no_group(cart: MemoryCartStore, ledger: MemoryLedger) -> None:
    item = add_line(cart)
    [booking] = await ledger.create_bookings_from_cart([item], [_record(item, "10:00 AM")])

    assert booking.group_booking_id is None
    assert booking_details(booking)["when"] == f"{FUTURE_DATE} 10:00 AM - 11:00 AM"


async def test_overlap_with_existing_booking_is_rejected(cart: MemoryCartStore, ledger: MemoryLedger) -> None:
    first = add_line(cart)
    await ledger.create_bookings_from_cart([first], [_record(first, "10:00 AM")])

    second = add_line(cart)
    with pytest.raises(LedgerError) as excinfo:
        await ledger.create_bookings_from_cart([second], [_record(second, "10:30 AM")])

    assert excinfo.value.cart_item_ids == (second.id,)
    assert "existing Gel Manicure appointment" in excinfo.value.message
    assert len(ledger.bookings) == 1


async def test_overlap_within_batch_persists_nothing(cart: MemoryCartStore, ledger: MemoryLedger) -> None:
    a = add_line(cart)
    b = add_line(cart)

    with pytest.raises(LedgerError) as excinfo:
        await ledger.create_bookings_from_cart(
            [a, b],
            [_record(a, "10:00 AM"), _record(b, "10:30")],
        )

    assert set(excinfo.value.cart_item_ids) == {a.id, b.id}
    assert "another service in your cart" in excinfo.value.message
    assert ledger.bookings == []


async def test_back_to_back_and_other_provider_do_not_conflict(
    cart: MemoryCartStore,
    ledger: MemoryLedger,
) -> None:
    a = add_line(cart)
    b = add_line(cart)
    c = add_line(cart, provider="Luxe Lashes")

    bookings = await ledger.create_bookings_from_cart(
        [a, b, c],
        [_record(a, "10:00 AM"), _record(b, "11:00 AM"), _record(c, "10:00 AM")],
    )

    assert len(bookings) == 3


async def test_cancelled_booking_frees_its_slot(cart: MemoryCartStore, ledger: MemoryLedger) -> None:
    first = add_line(cart)
    [booking] = await ledger.create_bookings_from_cart([first], [_record(first, "10:00 AM")])
    await ledger.cancel(booking.id)

    second = add_line(cart)
    [rebooked] = await ledger.create_bookings_from_cart([second], [_record(second, "10:00 AM")])

    assert rebooked.status is BookingStatus.PENDING_PROVIDER_CONFIRMATION


async def test_missing_record_rejects_batch(cart: MemoryCartStore, ledger: MemoryLedger) -> None:
    item = add_line(cart)

    with pytest.raises(LedgerError, match="Missing appointment data for Gel Manicure"):
        await ledger.create_bookings_from_cart([item], [])


async def test_offline_ledger_raises(cart: MemoryCartStore, ledger: MemoryLedger) -> None:
    item = add_line(cart)
    ledger.offline = True

    with pytest.raises(LedgerError):
        await ledger.create_bookings_from_cart([item], [_record(item, "10:00 AM")])
    assert ledger.bookings == []


async def test_confirmation_failure_does_not_undo_commit(
    cart: MemoryCartStore,
    ledger: MemoryLedger,
    notifications: MemoryNotificationSink,
) -> None:
    item = add_line(cart)
    notifications.offline = True

    bookings = await ledger.create_bookings_from_cart([item], [_record(item, "10:00 AM")])

    assert len(bookings) == 1
    assert ledger.get(bookings[0].id) == bookings[0]
    assert notifications.notifications == []


async def test_status_lifecycle(
    cart: MemoryCartStore,
    ledger: MemoryLedger,
    notifications: MemoryNotificationSink,
) -> None:
    item = add_line(cart)
    [booking] = await ledger.create_bookings_from_cart([item], [_record(item, "10:00 AM")])

    assert ledger.update_status(booking.id, BookingStatus.CONFIRMED).status is BookingStatus.CONFIRMED
    with pytest.raises(LedgerError):
        ledger.update_status(booking.id, BookingStatus.COMPLETED)

    cancelled = await ledger.cancel(booking.id)
    assert cancelled.status is BookingStatus.CANCELLED
    assert len(notifications.of_kind(NotificationKind.BOOKING_CANCELLED)) == 1

    with pytest.raises(LedgerError):
        await ledger.cancel(booking.id)
    with pytest.raises(LedgerError, match="Booking not found"):
        ledger.update_status("booking_missing", BookingStatus.CONFIRMED)


async def test_transition_table() -> None:
    assert can_transition(BookingStatus.PENDING_PROVIDER_CONFIRMATION, BookingStatus.CONFIRMED)
    assert can_transition(BookingStatus.IN_PROGRESS, BookingStatus.COMPLETED)
    assert not can_transition(BookingStatus.COMPLETED, BookingStatus.CANCELLED)
    assert not can_transition(BookingStatus.CANCELLED, BookingStatus.CONFIRMED)
