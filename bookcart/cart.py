"""
Cart — in-memory Cart Store.

One line per bookable service instance. Adding the same service again
creates another line with the next instance_index; removing a line
renumbers the remaining instances of that service in the order they were
added.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from typing import Any

from bookcart import pricing
from bookcart._types import Money
from bookcart.domain import AddOn, CartLineItem, ServiceDescriptor

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# Summary
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class ServiceGroup:
    service_name: str
    instances: tuple[CartLineItem, ...]
    total_price: Money


@dataclass(frozen=True, slots=True)
class ProviderSummary:
    items: tuple[CartLineItem, ...]
    service_groups: dict[str, ServiceGroup]
    total: Money

    @property
    def service_count(self) -> int:
        return len(self.service_groups)

    @property
    def instance_count(self) -> int:
        return len(self.items)


@dataclass(frozen=True, slots=True)
class BookingSummary:
    total_providers: int
    total_services: int  # distinct provider+service pairs
    total_instances: int  # cart lines
    providers: dict[str, ProviderSummary]


# ═══════════════════════════════════════════════════════════════════════════════
# Store
# ═══════════════════════════════════════════════════════════════════════════════


def _line_id(provider_name: str, service_id: str, instance_id: str) -> str:
    return f"{provider_name}_{service_id}_inst_{instance_id}"


class MemoryCartStore:
    def __init__(
        self,
        fee_rate: Decimal | None = None,
        fee_minimum: Decimal | None = None,
    ) -> None:
        self._items: list[CartLineItem] = []
        self._fee_rate = fee_rate
        self._fee_minimum = fee_minimum

    # ── reads ──────────────────────────────────────────────────────────────────

    @property
    def items(self) -> list[CartLineItem]:
        return list(self._items)

    @property
    def total_items(self) -> int:
        return len(self._items)

    @property
    def total_price(self) -> Money:
        return pricing.subtotal(self._items)

    def get(self, item_id: str) -> CartLineItem | None:
        return next((item for item in self._items if item.id == item_id), None)

    def get_service_instances(self, provider_name: str, service_id: str) -> list[CartLineItem]:
        return [
            item for item in self._items
            if item.provider_name == provider_name and item.service_id == service_id
        ]

    def get_items_by_provider(self) -> dict[str, list[CartLineItem]]:
        grouped: dict[str, list[CartLineItem]] = {}
        for item in self._items:
            grouped.setdefault(item.provider_name or "Unknown Provider", []).append(item)
        for provider_items in grouped.values():
            provider_items.sort(key=lambda i: (i.service_name, i.instance_index))
        return grouped

    def get_provider_total(self, provider_name: str) -> Money:
        return pricing.subtotal(i for i in self._items if i.provider_name == provider_name)

    def get_service_fee(self) -> Money:
        return pricing.service_fee(self.total_price, self._fee_rate, self._fee_minimum)

    def get_final_total(self) -> Money:
        return self.total_price + self.get_service_fee()

    def get_booking_summary(self) -> BookingSummary:
        providers: dict[str, ProviderSummary] = {}
        for provider_name, provider_items in self.get_items_by_provider().items():
            grouped: dict[str, list[CartLineItem]] = {}
            for item in provider_items:
                grouped.setdefault(item.service_id, []).append(item)
            providers[provider_name] = ProviderSummary(
                items=tuple(provider_items),
                service_groups={
                    service_id: ServiceGroup(
                        service_name=instances[0].service_name,
                        instances=tuple(instances),
                        total_price=pricing.subtotal(instances),
                    )
                    for service_id, instances in grouped.items()
                },
                total=pricing.subtotal(provider_items),
            )

        return BookingSummary(
            total_providers=len(providers),
            total_services=sum(p.service_count for p in providers.values()),
            total_instances=len(self._items),
            providers=providers,
        )

    # ── mutations ──────────────────────────────────────────────────────────────

    def add_to_cart(
        self,
        provider_name: str,
        provider_image: Any,
        provider_service: str,
        service: ServiceDescriptor,
        add_ons: tuple[AddOn, ...] = (),
    ) -> CartLineItem:
        provider_name = provider_name or "Unknown Provider"
        item = CartLineItem(
            id=_line_id(provider_name, service.id, uuid.uuid4().hex[:12]),
            provider_name=provider_name,
            provider_image=provider_image,
            provider_service=provider_service or "General",
            service=service,
            add_ons=tuple(add_ons),
            instance_index=len(self.get_service_instances(provider_name, service.id)) + 1,
            added_at=datetime.now(),
        )
        self._items.append(item)
        logger.debug("added %s (instance %d)", item.service_name, item.instance_index)
        return item

    def add_service_instance(self, base_item: CartLineItem) -> CartLineItem:
        """Book the same service again as a separate appointment."""
        item = replace(
            base_item,
            id=_line_id(base_item.provider_name, base_item.service_id, uuid.uuid4().hex[:12]),
            instance_index=len(
                self.get_service_instances(base_item.provider_name, base_item.service_id)
            ) + 1,
            added_at=datetime.now(),
        )
        self._items.append(item)
        return item

    def remove_from_cart(self, item_id: str) -> None:
        remaining = [item for item in self._items if item.id != item_id]
        if len(remaining) == len(self._items):
            logger.debug("remove_from_cart: %s not in cart", item_id)
            return
        self._items = self._renumbered(remaining)

    def clear_provider_items(self, provider_name: str) -> None:
        self._items = [item for item in self._items if item.provider_name != provider_name]

    def clear_cart(self) -> None:
        self._items = []

    @staticmethod
    def _renumbered(items: list[CartLineItem]) -> list[CartLineItem]:
        order: dict[tuple[str, str], list[str]] = {}
        for item in sorted(items, key=lambda i: i.added_at):
            order.setdefault((item.provider_name, item.service_id), []).append(item.id)
        return [
            replace(item, instance_index=order[(item.provider_name, item.service_id)].index(item.id) + 1)
            for item in items
        ]


__all__ = (
    "ServiceGroup",
    "ProviderSummary",
    "BookingSummary",
    "MemoryCartStore",
)
