"""Shared infrastructure for examples."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Coroutine
from dataclasses import dataclass

from bookcart.cart import MemoryCartStore
from bookcart.config import configure_logging
from bookcart.coordinator import CheckoutCoordinator
from bookcart.domain import AddOn, ServiceDescriptor
from bookcart.ledger import MemoryLedger
from bookcart.notifications import MemoryNotificationSink
from bookcart.payment import SimulatedPaymentProcessor


# Catalog
GEL = ServiceDescriptor("svc_gel", "Gel Manicure", 45, "1 hour")
PEDICURE = ServiceDescriptor("svc_ped", "Spa Pedicure", "60.00", "45 min")
LASH = ServiceDescriptor("svc_lash", "Lash Lift", 70, "1.5 hours")
NAIL_ART = AddOn(1, "Nail Art", 15)


# Wiring
@dataclass(slots=True)
class Shop:
    cart: MemoryCartStore
    ledger: MemoryLedger
    notifications: MemoryNotificationSink
    processor: SimulatedPaymentProcessor
    checkout: CheckoutCoordinator


def open_shop(latency_seconds: float = 0.2) -> Shop:
    cart = MemoryCartStore()
    notifications = MemoryNotificationSink()
    ledger = MemoryLedger(events=notifications)
    processor = SimulatedPaymentProcessor(latency_seconds=latency_seconds)
    return Shop(
        cart=cart,
        ledger=ledger,
        notifications=notifications,
        processor=processor,
        checkout=CheckoutCoordinator(cart, ledger, notifications, processor),
    )


# Helpers
def banner(title: str) -> None:
    print(f"\n{'─' * 50}\n{title}\n{'─' * 50}")


def run(main: Callable[[], Coroutine[object, object, None]]) -> None:
    configure_logging("WARNING")
    asyncio.run(main())
