"""Tests for the checkout state machine end to end."""

from __future__ import annotations

import asyncio
from decimal import Decimal

import pytest
from kungfu import Ok, Error

from bookcart.cart import MemoryCartStore
from bookcart.coordinator import CheckoutCoordinator, CheckoutStage, CheckoutState
from bookcart.domain import CustomerInfo, NotificationKind, PaymentMethod
from bookcart.errors import CheckoutErrorKind
from bookcart.ledger import MemoryLedger
from bookcart.notifications import MemoryNotificationSink
from bookcart.payment import SimulatedPaymentProcessor
from tests.conftest import add_line, make_service, schedule

pytestmark = pytest.mark.asyncio


def _ready(coordinator: CheckoutCoordinator, cart: MemoryCartStore, *, deposit_only: bool = False) -> None:
    item = add_line(cart, service=make_service(price=100))
    schedule(coordinator.drafts, item, deposit_only=deposit_only)
    match coordinator.begin_checkout():
        case Ok(_):
            pass
        case Error(e):
            pytest.fail(str(e))


# ── scenarios ──────────────────────────────────────────────────────────────────


async def test_full_payment_totals(coordinator: CheckoutCoordinator, cart: MemoryCartStore) -> None:
    _ready(coordinator, cart)

    assert coordinator.effective_total() == Decimal("100")
    assert coordinator.state.service_fee == Decimal("5.00")
    assert coordinator.state.amount_due == Decimal("105.00")
    assert coordinator.final_total() == Decimal("105.00")


async def test_deposit_only_totals(coordinator: CheckoutCoordinator, cart: MemoryCartStore) -> None:
    _ready(coordinator, cart, deposit_only=True)

    [line] = coordinator.effective_lines()
    assert line.effective_price == Decimal("20")
    assert coordinator.effective_total() == Decimal("20")

    match await coordinator.confirm_payment(PaymentMethod.CARD):
        case Ok(receipt):
            [record] = receipt.records
            assert record.remaining_balance == Decimal("80")
            assert receipt.amount_charged == Decimal("25.00")
        case Error(e):
            pytest.fail(str(e))


async def test_missing_time_blocks_checkout(
    coordinator: CheckoutCoordinator,
    cart: MemoryCartStore,
    processor: SimulatedPaymentProcessor,
) -> None:
    item = add_line(cart)
    coordinator.drafts.set_date(item.id, "2030-06-01")
    before = cart.items

    result = coordinator.begin_checkout()

    match result:
        case Error(e):
            assert e.kind is CheckoutErrorKind.VALIDATION
            assert e.message == "Please schedule 1 appointment(s) before checkout."
        case Ok(_):
            pytest.fail("incomplete cart produced a snapshot")
    assert coordinator.stage is CheckoutStage.IDLE
    assert coordinator.state.snapshot is None
    assert cart.items == before

    blocked = await coordinator.confirm_payment(PaymentMethod.CARD)
    assert isinstance(blocked, Error)
    assert processor.calls == []


async def test_ledger_failure_keeps_cart(
    coordinator: CheckoutCoordinator,
    cart: MemoryCartStore,
    ledger: MemoryLedger,
) -> None:
    _ready(coordinator, cart)
    before = cart.items
    drafts_before = dict(coordinator.drafts.as_mapping())
    ledger.offline = True

    result = await coordinator.confirm_payment(PaymentMethod.CARD)

    match result:
        case Error(e):
            assert e.kind is CheckoutErrorKind.LEDGER
        case Ok(_):
            pytest.fail("ledger failure settled as success")
    assert coordinator.stage is CheckoutStage.SETTLED_FAILURE
    assert coordinator.state.retryable
    assert cart.items == before
    assert dict(coordinator.drafts.as_mapping()) == drafts_before

    ledger.offline = False
    assert isinstance(coordinator.begin_checkout(), Ok)
    assert isinstance(await coordinator.confirm_payment(PaymentMethod.CARD), Ok)
    assert coordinator.stage is CheckoutStage.SETTLED_SUCCESS


async def test_notification_failure_still_succeeds(
    coordinator: CheckoutCoordinator,
    cart: MemoryCartStore,
    ledger: MemoryLedger,
    notifications: MemoryNotificationSink,
) -> None:
    _ready(coordinator, cart)
    notifications.offline = True

    result = await coordinator.confirm_payment(PaymentMethod.APPLE_PAY)

    match result:
        case Ok(receipt):
            assert len(receipt.bookings) == 1
            assert [w.kind for w in receipt.warnings] == [CheckoutErrorKind.NOTIFICATION]
        case Error(e):
            pytest.fail(str(e))
    assert coordinator.stage is CheckoutStage.SETTLED_SUCCESS
    assert cart.total_items == 0
    assert len(coordinator.drafts) == 0
    assert len(ledger.bookings) == 1


# ── payment ────────────────────────────────────────────────────────────────────


async def test_successful_checkout(
    coordinator: CheckoutCoordinator,
    cart: MemoryCartStore,
    notifications: MemoryNotificationSink,
    processor: SimulatedPaymentProcessor,
) -> None:
    _ready(coordinator, cart)

    match await coordinator.confirm_payment(PaymentMethod.PAYPAL):
        case Ok(receipt):
            assert receipt.payment.transaction_id.startswith("txn_")
            assert receipt.payment.method is PaymentMethod.PAYPAL
            assert coordinator.state.receipt == receipt
        case Error(e):
            pytest.fail(str(e))

    assert [call.amount for call in processor.calls] == [Decimal("105.00")]
    assert cart.total_items == 0
    assert len(notifications.of_kind(NotificationKind.PAYMENT_SUCCESS)) == 1


async def test_declined_payment_keeps_snapshot_for_retry(
    coordinator: CheckoutCoordinator,
    cart: MemoryCartStore,
    processor: SimulatedPaymentProcessor,
) -> None:
    _ready(coordinator, cart)
    snapshot = coordinator.state.snapshot
    processor.decline_next()

    declined = await coordinator.confirm_payment(PaymentMethod.CARD)

    match declined:
        case Error(e):
            assert e.kind is CheckoutErrorKind.PAYMENT
            assert e.message == "Payment failed: Card declined"
        case Ok(_):
            pytest.fail("declined payment succeeded")
    assert coordinator.stage is CheckoutStage.READY
    assert coordinator.state.snapshot is snapshot
    assert cart.total_items == 1

    # cart edits after capture do not change what the retry books
    add_line(cart, service=make_service("svc_ped", "Pedicure", 45))

    match await coordinator.retry_payment():
        case Ok(receipt):
            assert len(receipt.bookings) == 1
        case Error(e):
            pytest.fail(str(e))
    assert [call.method for call in processor.calls] == [PaymentMethod.CARD, PaymentMethod.CARD]


async def test_invalid_phone_blocks_payment(
    coordinator: CheckoutCoordinator,
    cart: MemoryCartStore,
    processor: SimulatedPaymentProcessor,
) -> None:
    _ready(coordinator, cart)

    result = await coordinator.confirm_payment(
        PaymentMethod.CARD,
        CustomerInfo(name="Ada", email="ada@example.com", phone="(555) 12-34"),
    )

    match result:
        case Error(e):
            assert e.kind is CheckoutErrorKind.VALIDATION
            assert "at least 10 digits" in e.message
        case Ok(_):
            pytest.fail("invalid phone reached payment")
    assert coordinator.stage is CheckoutStage.READY
    assert processor.calls == []


async def test_customer_is_carried_into_records(coordinator: CheckoutCoordinator, cart: MemoryCartStore) -> None:
    _ready(coordinator, cart)
    customer = CustomerInfo(name="Ada", email="ada@example.com", phone="+44 (20) 7946-0958")

    match await coordinator.confirm_payment(PaymentMethod.GOOGLE_PAY, customer):
        case Ok(receipt):
            assert receipt.records[0].customer == customer
        case Error(e):
            pytest.fail(str(e))


async def test_second_confirm_while_paying_is_rejected(
    cart: MemoryCartStore,
    ledger: MemoryLedger,
    notifications: MemoryNotificationSink,
) -> None:
    processor = SimulatedPaymentProcessor(latency_seconds=0.01)
    coordinator = CheckoutCoordinator(cart, ledger, notifications, processor)
    _ready(coordinator, cart)

    first, second = await asyncio.gather(
        coordinator.confirm_payment(PaymentMethod.CARD),
        coordinator.confirm_payment(PaymentMethod.CARD),
    )

    assert isinstance(first, Ok)
    match second:
        case Error(e):
            assert e.kind is CheckoutErrorKind.INVALID_STATE
            assert e.stage == "awaiting_payment"
        case Ok(_):
            pytest.fail("double submission was accepted")
    assert len(processor.calls) == 1
    assert len(ledger.bookings) == 1


# ── stage guards ───────────────────────────────────────────────────────────────


async def test_operations_in_wrong_stage_change_nothing(coordinator: CheckoutCoordinator) -> None:
    before = coordinator.state

    for result in (
        await coordinator.confirm_payment(PaymentMethod.CARD),
        await coordinator.retry_payment(),
        coordinator.cancel_checkout(),
    ):
        match result:
            case Error(e):
                assert e.kind is CheckoutErrorKind.INVALID_STATE
                assert e.message.endswith("while checkout is idle")
            case Ok(_):
                pytest.fail("operation allowed while idle")

    assert coordinator.state is before


async def test_retry_needs_a_previous_attempt(coordinator: CheckoutCoordinator, cart: MemoryCartStore) -> None:
    _ready(coordinator, cart)

    match await coordinator.retry_payment():
        case Error(e):
            assert e.kind is CheckoutErrorKind.INVALID_STATE
        case Ok(_):
            pytest.fail("retry without a previous payment attempt")


async def test_cancel_returns_to_idle(coordinator: CheckoutCoordinator, cart: MemoryCartStore) -> None:
    _ready(coordinator, cart)

    assert isinstance(coordinator.cancel_checkout(), Ok)
    assert coordinator.stage is CheckoutStage.IDLE
    assert coordinator.state.snapshot is None
    assert cart.total_items == 1


async def test_begin_again_recaptures(coordinator: CheckoutCoordinator, cart: MemoryCartStore) -> None:
    _ready(coordinator, cart)
    first = coordinator.state.snapshot

    item = add_line(cart, service=make_service("svc_ped", "Pedicure", 45))
    schedule(coordinator.drafts, item, time="2:00 PM")

    match coordinator.begin_checkout():
        case Ok(snapshot):
            assert snapshot is not first
            assert snapshot.item_count == 2
        case Error(e):
            pytest.fail(str(e))


async def test_settled_success_can_start_a_new_checkout(
    coordinator: CheckoutCoordinator,
    cart: MemoryCartStore,
) -> None:
    _ready(coordinator, cart)
    await coordinator.confirm_payment(PaymentMethod.CARD)

    match coordinator.begin_checkout():
        case Error(e):
            assert e.message == "Your cart is empty."
        case Ok(_):
            pytest.fail("empty cart produced a snapshot")
    assert coordinator.stage is CheckoutStage.IDLE


# ── observation ────────────────────────────────────────────────────────────────


async def test_listeners_see_every_transition(coordinator: CheckoutCoordinator, cart: MemoryCartStore) -> None:
    seen: list[CheckoutStage] = []
    unsubscribe = coordinator.subscribe(lambda state: seen.append(state.stage))

    _ready(coordinator, cart)
    await coordinator.confirm_payment(PaymentMethod.CARD)

    assert seen == [
        CheckoutStage.VALIDATING,
        CheckoutStage.READY,
        CheckoutStage.AWAITING_PAYMENT,
        CheckoutStage.CREATING_BOOKINGS,
        CheckoutStage.SETTLED_SUCCESS,
    ]

    unsubscribe()
    coordinator.begin_checkout()
    assert len(seen) == 5


async def test_failing_listener_does_not_break_checkout(
    coordinator: CheckoutCoordinator,
    cart: MemoryCartStore,
) -> None:
    def broken(_: CheckoutState) -> None:
        raise RuntimeError("render failed")

    coordinator.subscribe(broken)
    _ready(coordinator, cart)

    assert isinstance(await coordinator.confirm_payment(PaymentMethod.CARD), Ok)
    assert coordinator.stage is CheckoutStage.SETTLED_SUCCESS


# ── booking creation faults ────────────────────────────────────────────────────


class FloatFeeCartStore(MemoryCartStore):
    def get_service_fee(self):  # type: ignore[override]
        return 5.0


async def test_float_fee_from_cart_store_is_coerced(
    ledger: MemoryLedger,
    notifications: MemoryNotificationSink,
    processor: SimulatedPaymentProcessor,
) -> None:
    cart = FloatFeeCartStore()
    coordinator = CheckoutCoordinator(cart, ledger, notifications, processor)
    _ready(coordinator, cart)

    assert isinstance(coordinator.state.service_fee, Decimal)
    assert coordinator.state.amount_due == Decimal("105")

    match await coordinator.confirm_payment(PaymentMethod.CARD):
        case Ok(receipt):
            [record] = receipt.records
            assert record.service_charge == Decimal("5")
        case Error(e):
            pytest.fail(str(e))
    assert coordinator.stage is CheckoutStage.SETTLED_SUCCESS


async def test_creator_exception_settles_as_ledger_failure(
    coordinator: CheckoutCoordinator,
    cart: MemoryCartStore,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    _ready(coordinator, cart)
    before = cart.items

    async def explode(*args: object, **kwargs: object) -> None:
        raise RuntimeError("records unavailable")

    monkeypatch.setattr(coordinator._creator, "create", explode)

    match await coordinator.confirm_payment(PaymentMethod.CARD):
        case Error(e):
            assert e.kind is CheckoutErrorKind.LEDGER
            assert "records unavailable" in e.message
        case Ok(_):
            pytest.fail("creator exception settled as success")
    assert coordinator.stage is CheckoutStage.SETTLED_FAILURE
    assert coordinator.state.retryable
    assert cart.items == before

    monkeypatch.undo()
    assert isinstance(coordinator.begin_checkout(), Ok)
    assert isinstance(await coordinator.confirm_payment(PaymentMethod.CARD), Ok)
