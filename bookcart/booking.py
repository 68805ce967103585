"""
Booking creation — turns a paid snapshot into ledger bookings.

Four steps, each declaring what its failure means:

    revalidate        abort, nothing touched yet (rollback safe)
    build_records     pure
    submit_to_ledger  abort, payment already taken (not rollback safe)
    notify_payment    best effort, failure becomes a warning
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from kungfu import Result, Ok, Error

from bookcart import lift as L
from bookcart import pricing
from bookcart import saga as S
from bookcart._types import Money, ZERO
from bookcart.domain import (
    AppointmentRecord,
    CartLineItem,
    ConfirmedBooking,
    CustomerInfo,
    PaymentReceipt,
    SchedulingDraft,
)
from bookcart.errors import CheckoutError, CheckoutErrors
from bookcart.ports import BookingLedger, NotificationSink
from bookcart.schedule import validate_schedule
from bookcart.snapshot import CheckoutSnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class BookingOutcome:
    records: tuple[AppointmentRecord, ...]
    bookings: tuple[ConfirmedBooking, ...]
    warnings: tuple[CheckoutError, ...] = ()


# ═══════════════════════════════════════════════════════════════════════════════
# Records
# ═══════════════════════════════════════════════════════════════════════════════


def build_record(
    item: CartLineItem,
    draft: SchedulingDraft,
    *,
    cart_subtotal: Money,
    service_fee: Money,
    customer: CustomerInfo | None = None,
) -> AppointmentRecord:
    line = pricing.effective_line(item, draft)
    return AppointmentRecord(
        cart_item_id=item.id,
        date=draft.selected_date,
        time=draft.selected_time,
        line_total=line.total_price,
        amount_paid=line.effective_price,
        is_deposit=line.is_deposit,
        deposit_amount=line.effective_price if line.is_deposit else ZERO,
        remaining_balance=pricing.remaining_balance(line.total_price) if line.is_deposit else ZERO,
        service_charge=pricing.service_charge_share(line.total_price, cart_subtotal, service_fee),
        notes=draft.notes,
        customer=customer,
    )


def build_records(
    snapshot: CheckoutSnapshot,
    service_fee: Money,
    customer: CustomerInfo | None = None,
) -> tuple[AppointmentRecord, ...]:
    """One record per snapshot line. Assumes the snapshot passed validation."""
    cart_subtotal = pricing.subtotal(snapshot.items)
    return tuple(
        build_record(
            item,
            snapshot.drafts[item.id],
            cart_subtotal=cart_subtotal,
            service_fee=service_fee,
            customer=customer,
        )
        for item in snapshot.items
    )


def revalidate(snapshot: CheckoutSnapshot) -> Result[None, CheckoutError]:
    match validate_schedule(snapshot.items, snapshot.drafts):
        case Ok(_):
            return Ok(None)
        case Error(report):
            return Error(CheckoutErrors.validation(
                report.user_message(),
                report.messages,
                stage="creating_bookings",
            ))


# ═══════════════════════════════════════════════════════════════════════════════
# Creator
# ═══════════════════════════════════════════════════════════════════════════════


class BookingCreator:
    def __init__(self, ledger: BookingLedger, notifications: NotificationSink) -> None:
        self._ledger = ledger
        self._notifications = notifications

    async def create(
        self,
        snapshot: CheckoutSnapshot,
        *,
        amount_charged: Money,
        service_fee: Money,
        customer: CustomerInfo | None = None,
        receipt: PaymentReceipt | None = None,
    ) -> Result[BookingOutcome, CheckoutError]:
        """
        Run the four booking steps against the snapshot.

        Ok carries the ledger's bookings and any notification warnings.
        Error carries the CheckoutError of the step that aborted.
        """
        logger.info(
            "creating bookings (txn=%s)",
            receipt.transaction_id if receipt else "-",
            extra={"item_count": snapshot.item_count, "amount": amount_charged},
        )

        chain = (
            S.step(
                "revalidate",
                L.from_sync(lambda: revalidate(snapshot)),
                on_failure=S.policy.on_failure.abort(rollback_safe=True),
            )
            .then(lambda _: S.step(
                "build_records",
                L.catching(
                    lambda: build_records(snapshot, service_fee, customer),
                    on_error=lambda e: CheckoutErrors.ledger(str(e) or type(e).__name__),
                ),
                on_failure=S.policy.on_failure.abort(rollback_safe=False),
            ))
            .then(lambda records: S.step(
                "submit_to_ledger",
                L.catching_async(
                    lambda: self._submit(snapshot, records),
                    on_error=lambda e: CheckoutErrors.ledger(str(e) or type(e).__name__),
                ),
                on_failure=S.policy.on_failure.abort(rollback_safe=False),
            ))
            .then(lambda outcome: S.step(
                "notify_payment",
                L.catching_async(
                    lambda: self._notify(snapshot, amount_charged, outcome),
                    on_error=lambda e: CheckoutErrors.notification(str(e) or type(e).__name__),
                ),
                on_failure=S.policy.on_failure.continue_(default=outcome),
            ))
        )

        match await S.run_chain(chain):
            case Ok(result):
                warnings = tuple(w.error for w in result.warnings)
                return Ok(replace(result.value, warnings=warnings))
            case Error(saga_error):
                return Error(saga_error.error)

    async def _submit(
        self,
        snapshot: CheckoutSnapshot,
        records: tuple[AppointmentRecord, ...],
    ) -> BookingOutcome:
        bookings = await self._ledger.create_bookings_from_cart(snapshot.items, records)
        return BookingOutcome(records=records, bookings=tuple(bookings))

    async def _notify(
        self,
        snapshot: CheckoutSnapshot,
        amount: Money,
        outcome: BookingOutcome,
    ) -> BookingOutcome:
        lead = snapshot.lead_item
        await self._notifications.add_payment_success(
            amount,
            lead.provider_name if lead else "",
            snapshot.service_summary(),
            lead.provider_image if lead else None,
        )
        return outcome


__all__ = (
    "BookingOutcome",
    "build_record",
    "build_records",
    "revalidate",
    "BookingCreator",
)
