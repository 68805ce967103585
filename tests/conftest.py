from __future__ import annotations

from collections.abc import Sequence

import pytest

from bookcart.cart import MemoryCartStore
from bookcart.coordinator import CheckoutCoordinator
from bookcart.domain import AddOn, CartLineItem, ServiceDescriptor
from bookcart.drafts import DraftBook
from bookcart.ledger import MemoryLedger
from bookcart.notifications import MemoryNotificationSink
from bookcart.payment import SimulatedPaymentProcessor

FUTURE_DATE = "2030-06-01"


def make_service(
    service_id: str = "svc_gel",
    name: str = "Gel Manicure",
    price: object = 100,
    duration: str = "1 hour",
) -> ServiceDescriptor:
    return ServiceDescriptor(id=service_id, name=name, price=price, duration=duration)


def add_line(
    cart: MemoryCartStore,
    *,
    provider: str = "Glow Studio",
    service: ServiceDescriptor | None = None,
    add_ons: Sequence[AddOn] = (),
) -> CartLineItem:
    return cart.add_to_cart(
        provider_name=provider,
        provider_image="glow.png",
        provider_service="Nails",
        service=service or make_service(),
        add_ons=tuple(add_ons),
    )


def schedule(
    drafts: DraftBook,
    item: CartLineItem,
    *,
    date: str = FUTURE_DATE,
    time: str = "10:00 AM",
    deposit_only: bool = False,
) -> None:
    drafts.update(item.id, selected_date=date, selected_time=time, is_deposit_only=deposit_only)


@pytest.fixture
def cart() -> MemoryCartStore:
    return MemoryCartStore()


@pytest.fixture
def notifications() -> MemoryNotificationSink:
    return MemoryNotificationSink()


@pytest.fixture
def ledger(notifications: MemoryNotificationSink) -> MemoryLedger:
    return MemoryLedger(events=notifications)


@pytest.fixture
def processor() -> SimulatedPaymentProcessor:
    return SimulatedPaymentProcessor(latency_seconds=0)


@pytest.fixture
def coordinator(
    cart: MemoryCartStore,
    ledger: MemoryLedger,
    notifications: MemoryNotificationSink,
    processor: SimulatedPaymentProcessor,
) -> CheckoutCoordinator:
    return CheckoutCoordinator(cart, ledger, notifications, processor)
