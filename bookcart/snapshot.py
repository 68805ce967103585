"""
Checkout snapshot — the frozen copy of the cart that checkout works from.

Once captured, later cart or draft edits cannot reach it. Everything after
validation reads the snapshot, never the live cart.
"""

from __future__ import annotations

import copy
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType

from bookcart.domain import CartLineItem, SchedulingDraft


@dataclass(frozen=True, slots=True)
class CheckoutSnapshot:
    items: tuple[CartLineItem, ...]
    drafts: Mapping[str, SchedulingDraft]

    @property
    def item_count(self) -> int:
        return len(self.items)

    @property
    def lead_item(self) -> CartLineItem | None:
        return self.items[0] if self.items else None

    @property
    def provider_names(self) -> tuple[str, ...]:
        return tuple(dict.fromkeys(item.provider_name for item in self.items))

    def draft_for(self, item_id: str) -> SchedulingDraft | None:
        return self.drafts.get(item_id)

    def service_summary(self) -> str:
        if len(self.items) > 1:
            return f"{len(self.items)} services"
        if self.items:
            return self.items[0].service_name
        return "Service"


def capture(
    items: Iterable[CartLineItem],
    drafts: Mapping[str, SchedulingDraft],
) -> CheckoutSnapshot:
    """Deep, independent copy of the cart lines and their drafts."""
    return CheckoutSnapshot(
        items=tuple(copy.deepcopy(list(items))),
        drafts=MappingProxyType(copy.deepcopy(dict(drafts))),
    )


__all__ = ("CheckoutSnapshot", "capture")
