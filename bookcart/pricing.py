"""
Pricing — pure money arithmetic for cart lines and checkout totals.

Nothing here raises. A corrupt price on one line contributes zero so the
rest of the cart can still be priced. Amounts stay unrounded while they are
accumulated; round_currency / format_price round once, for display.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

from bookcart._types import Money, ZERO
from bookcart.config import settings
from bookcart.domain import CartLineItem, EffectiveLineItem, SchedulingDraft, EMPTY_DRAFT

_CENT = Decimal("0.01")


def to_money(value: Any) -> Money:
    """Coerce upstream price data. Anything unusable becomes zero."""
    if value is None or isinstance(value, bool):
        return ZERO
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError, TypeError):
        return ZERO
    if not amount.is_finite() or amount < 0:
        return ZERO
    return amount


# ═══════════════════════════════════════════════════════════════════════════════
# Per-line
# ═══════════════════════════════════════════════════════════════════════════════


def line_total(item: CartLineItem) -> Money:
    """Base service price plus every add-on."""
    total = to_money(getattr(item.service, "price", None))
    for add_on in item.add_ons or ():
        total += to_money(getattr(add_on, "price", None))
    return total


def deposit(total: Money, rate: Decimal | None = None) -> Money:
    rate = settings.DEPOSIT_RATE if rate is None else to_money(rate)
    return to_money(total) * rate


def remaining_balance(total: Money, rate: Decimal | None = None) -> Money:
    total = to_money(total)
    return total - deposit(total, rate)


def effective_price(item: CartLineItem, draft: SchedulingDraft | None) -> Money:
    """What is charged now for a line: the deposit, or the full line total."""
    total = line_total(item)
    if draft is not None and draft.is_deposit_only:
        return deposit(total)
    return total


def effective_line(item: CartLineItem, draft: SchedulingDraft | None) -> EffectiveLineItem:
    is_deposit = bool(draft is not None and draft.is_deposit_only)
    total = line_total(item)
    return EffectiveLineItem(
        item=item,
        total_price=total,
        effective_price=deposit(total) if is_deposit else total,
        is_deposit=is_deposit,
    )


def effective_lines(
    items: Iterable[CartLineItem],
    drafts: Mapping[str, SchedulingDraft],
) -> list[EffectiveLineItem]:
    return [effective_line(item, drafts.get(item.id, EMPTY_DRAFT)) for item in items]


# ═══════════════════════════════════════════════════════════════════════════════
# Aggregates
# ═══════════════════════════════════════════════════════════════════════════════


def subtotal(items: Iterable[CartLineItem]) -> Money:
    """Sum of full line totals, deposits ignored."""
    return sum((line_total(item) for item in items), ZERO)


def aggregate_effective_total(
    items: Iterable[CartLineItem],
    drafts: Mapping[str, SchedulingDraft],
) -> Money:
    return sum(
        (effective_price(item, drafts.get(item.id)) for item in items),
        ZERO,
    )


def final_total(
    items: Iterable[CartLineItem],
    drafts: Mapping[str, SchedulingDraft],
    service_fee: Money,
) -> Money:
    return aggregate_effective_total(items, drafts) + to_money(service_fee)


def service_fee(
    cart_subtotal: Money,
    rate: Decimal | None = None,
    minimum: Decimal | None = None,
) -> Money:
    """Cart-level fee: a percentage of the subtotal with a floor."""
    rate = settings.SERVICE_FEE_RATE if rate is None else to_money(rate)
    minimum = settings.SERVICE_FEE_MINIMUM if minimum is None else to_money(minimum)
    return max(to_money(cart_subtotal) * rate, minimum)


def service_charge_share(line: Money, cart_subtotal: Money, fee: Money) -> Money:
    """This line's share of the cart fee, proportional to its price."""
    cart_subtotal = to_money(cart_subtotal)
    if cart_subtotal <= 0:
        return ZERO
    return to_money(fee) * to_money(line) / cart_subtotal


# ═══════════════════════════════════════════════════════════════════════════════
# Display
# ═══════════════════════════════════════════════════════════════════════════════


def round_currency(amount: Money) -> Money:
    return to_money(amount).quantize(_CENT, rounding=ROUND_HALF_UP)


def format_price(amount: Money) -> str:
    return f"{settings.CURRENCY_SYMBOL}{round_currency(amount)}"


__all__ = (
    "to_money",
    "line_total",
    "deposit",
    "remaining_balance",
    "effective_price",
    "effective_line",
    "effective_lines",
    "subtotal",
    "aggregate_effective_total",
    "final_total",
    "service_fee",
    "service_charge_share",
    "round_currency",
    "format_price",
)
