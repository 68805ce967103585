"""
Checkout coordinator — the state machine the presentation layer drives.

    IDLE ─begin─▶ VALIDATING ─ok─▶ READY ─confirm─▶ AWAITING_PAYMENT
                     │                ▲                  │      │
                     └─invalid─▶ IDLE └────declined──────┘      │
                                                                 ▼
                              SETTLED_SUCCESS ◀─ok─ CREATING_BOOKINGS
                              SETTLED_FAILURE ◀─error─┘

Everything from READY on works off the snapshot captured during
validation. The live cart is read again only to clear it, and only on the
CREATING_BOOKINGS → SETTLED_SUCCESS transition.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from enum import Enum

from kungfu import Result, Ok, Error

from bookcart import pricing
from bookcart._types import Money, ZERO
from bookcart.booking import BookingCreator
from bookcart.domain import (
    AppointmentRecord,
    ConfirmedBooking,
    CustomerInfo,
    EffectiveLineItem,
    PaymentMethod,
    PaymentReceipt,
)
from bookcart.drafts import DraftBook
from bookcart.errors import CheckoutError, CheckoutErrors
from bookcart.payment import authorize_payment
from bookcart.ports import BookingLedger, CartStore, NotificationSink, PaymentProcessor
from bookcart.schedule import validate_schedule
from bookcart.snapshot import CheckoutSnapshot, capture

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# Stages
# ═══════════════════════════════════════════════════════════════════════════════


class CheckoutStage(Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    READY = "ready"
    AWAITING_PAYMENT = "awaiting_payment"
    CREATING_BOOKINGS = "creating_bookings"
    SETTLED_SUCCESS = "settled_success"
    SETTLED_FAILURE = "settled_failure"


_TRANSITIONS: dict[CheckoutStage, frozenset[CheckoutStage]] = {
    CheckoutStage.IDLE: frozenset({CheckoutStage.VALIDATING}),
    CheckoutStage.VALIDATING: frozenset({CheckoutStage.READY, CheckoutStage.IDLE}),
    CheckoutStage.READY: frozenset({
        CheckoutStage.AWAITING_PAYMENT,
        CheckoutStage.VALIDATING,
        CheckoutStage.IDLE,
    }),
    CheckoutStage.AWAITING_PAYMENT: frozenset({
        CheckoutStage.CREATING_BOOKINGS,
        CheckoutStage.READY,
    }),
    CheckoutStage.CREATING_BOOKINGS: frozenset({
        CheckoutStage.SETTLED_SUCCESS,
        CheckoutStage.SETTLED_FAILURE,
    }),
    CheckoutStage.SETTLED_SUCCESS: frozenset({CheckoutStage.VALIDATING}),
    CheckoutStage.SETTLED_FAILURE: frozenset({CheckoutStage.VALIDATING}),
}

_CAN_BEGIN = frozenset({
    CheckoutStage.IDLE,
    CheckoutStage.READY,
    CheckoutStage.SETTLED_SUCCESS,
    CheckoutStage.SETTLED_FAILURE,
})


class IllegalTransition(Exception):
    pass


# ═══════════════════════════════════════════════════════════════════════════════
# Observable State
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CheckoutReceipt:
    bookings: tuple[ConfirmedBooking, ...]
    records: tuple[AppointmentRecord, ...]
    amount_charged: Money
    service_fee: Money
    payment: PaymentReceipt
    warnings: tuple[CheckoutError, ...] = ()


@dataclass(frozen=True, slots=True)
class CheckoutState:
    stage: CheckoutStage = CheckoutStage.IDLE
    snapshot: CheckoutSnapshot | None = None
    amount_due: Money = ZERO
    service_fee: Money = ZERO
    last_error: CheckoutError | None = None
    receipt: CheckoutReceipt | None = None
    last_method: PaymentMethod | None = None
    customer: CustomerInfo | None = None

    @property
    def retryable(self) -> bool:
        return self.last_error is not None and self.last_error.retryable


type Listener = Callable[[CheckoutState], None]


# ═══════════════════════════════════════════════════════════════════════════════
# Coordinator
# ═══════════════════════════════════════════════════════════════════════════════


class CheckoutCoordinator:
    """
    Drives one checkout at a time over an injected cart store.

    Every public operation returns a Result. Calling one in a stage that
    does not allow it returns an INVALID_STATE error and leaves the state
    as it was.
    """

    def __init__(
        self,
        cart: CartStore,
        ledger: BookingLedger,
        notifications: NotificationSink,
        processor: PaymentProcessor,
        drafts: DraftBook | None = None,
    ) -> None:
        self._cart = cart
        self._processor = processor
        self._creator = BookingCreator(ledger, notifications)
        self._listeners: list[Listener] = []
        self._state = CheckoutState()
        self.drafts = drafts if drafts is not None else DraftBook()

    # ── observation ────────────────────────────────────────────────────────────

    @property
    def state(self) -> CheckoutState:
        return self._state

    @property
    def stage(self) -> CheckoutStage:
        return self._state.stage

    @property
    def last_error(self) -> CheckoutError | None:
        return self._state.last_error

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ── live cart pricing ──────────────────────────────────────────────────────

    def effective_lines(self) -> list[EffectiveLineItem]:
        return pricing.effective_lines(self._cart.items, self.drafts.as_mapping())

    def effective_total(self) -> Money:
        return pricing.aggregate_effective_total(self._cart.items, self.drafts.as_mapping())

    def final_total(self) -> Money:
        return pricing.final_total(
            self._cart.items,
            self.drafts.as_mapping(),
            self._cart.get_service_fee(),
        )

    # ── operations ─────────────────────────────────────────────────────────────

    def begin_checkout(self) -> Result[CheckoutSnapshot, CheckoutError]:
        """Validate the live cart and freeze it. Recaptures when already READY."""
        if self.stage not in _CAN_BEGIN:
            return self._reject("begin checkout")

        self._advance(CheckoutStage.VALIDATING, snapshot=None, receipt=None, last_error=None)

        items = self._cart.items
        drafts = {item.id: self.drafts.get(item.id) for item in items}

        match validate_schedule(items, drafts):
            case Error(report):
                error = CheckoutErrors.validation(report.user_message(), report.messages)
                logger.info("checkout blocked: %s", error.message, extra={"stage": "validating"})
                self._advance(CheckoutStage.IDLE, last_error=error)
                return Error(error)
            case Ok(_):
                pass

        snapshot = capture(items, drafts)
        fee = pricing.to_money(self._cart.get_service_fee())
        amount = pricing.final_total(snapshot.items, snapshot.drafts, fee)
        self._advance(
            CheckoutStage.READY,
            snapshot=snapshot,
            service_fee=fee,
            amount_due=amount,
        )
        logger.info(
            "checkout ready, %s due", pricing.format_price(amount),
            extra={"stage": "ready", "item_count": snapshot.item_count, "amount": amount},
        )
        return Ok(snapshot)

    async def confirm_payment(
        self,
        method: PaymentMethod,
        customer: CustomerInfo | None = None,
    ) -> Result[CheckoutReceipt, CheckoutError]:
        snapshot = self._state.snapshot
        if self.stage is not CheckoutStage.READY or snapshot is None:
            return self._reject("confirm payment")

        if customer is not None:
            problem = customer.phone_problem()
            if problem is not None:
                error = CheckoutErrors.validation(problem, stage="ready")
                self._advance(CheckoutStage.READY, last_error=error)
                return Error(error)

        return await self._pay(snapshot, method, customer if customer is not None else self._state.customer)

    async def retry_payment(self) -> Result[CheckoutReceipt, CheckoutError]:
        """Pay again with the last method and the snapshot already held."""
        snapshot = self._state.snapshot
        method = self._state.last_method
        if self.stage is not CheckoutStage.READY or snapshot is None or method is None:
            return self._reject("retry payment")
        return await self._pay(snapshot, method, self._state.customer)

    def cancel_checkout(self) -> Result[None, CheckoutError]:
        if self.stage is not CheckoutStage.READY:
            return self._reject("cancel checkout")
        self._advance(
            CheckoutStage.IDLE,
            snapshot=None,
            amount_due=ZERO,
            service_fee=ZERO,
            last_error=None,
            last_method=None,
            customer=None,
        )
        return Ok(None)

    # ── pipeline ───────────────────────────────────────────────────────────────

    async def _pay(
        self,
        snapshot: CheckoutSnapshot,
        method: PaymentMethod,
        customer: CustomerInfo | None,
    ) -> Result[CheckoutReceipt, CheckoutError]:
        amount = self._state.amount_due
        fee = self._state.service_fee

        self._advance(
            CheckoutStage.AWAITING_PAYMENT,
            last_error=None,
            last_method=method,
            customer=customer,
        )

        match await authorize_payment(self._processor, amount, method):
            case Error(error):
                logger.warning("payment declined: %s", error.message, extra={"stage": "awaiting_payment"})
                self._advance(CheckoutStage.READY, last_error=error)
                return Error(error)
            case Ok(payment):
                self._advance(CheckoutStage.CREATING_BOOKINGS)

        try:
            created = await self._creator.create(
                snapshot,
                amount_charged=amount,
                service_fee=fee,
                customer=customer,
                receipt=payment,
            )
        except Exception as exc:
            # payment already taken; settle so the user can retry
            logger.exception("booking creation raised", extra={"stage": "creating_bookings"})
            created = Error(CheckoutErrors.ledger(str(exc) or type(exc).__name__))

        match created:
            case Error(error):
                logger.error(
                    "booking creation failed after payment %s: %s",
                    payment.transaction_id, error.message,
                    extra={"stage": "creating_bookings", "amount": amount},
                )
                self._advance(CheckoutStage.SETTLED_FAILURE, snapshot=None, last_error=error)
                return Error(error)
            case Ok(outcome):
                receipt = CheckoutReceipt(
                    bookings=outcome.bookings,
                    records=outcome.records,
                    amount_charged=amount,
                    service_fee=fee,
                    payment=payment,
                    warnings=outcome.warnings,
                )
                self._cart.clear_cart()
                self.drafts.clear()
                self._advance(CheckoutStage.SETTLED_SUCCESS, receipt=receipt)
                logger.info(
                    "checkout settled with %d booking(s)", len(outcome.bookings),
                    extra={"stage": "settled_success", "amount": amount},
                )
                return Ok(receipt)

    # ── state plumbing ─────────────────────────────────────────────────────────

    def _reject(self, operation: str) -> Error[CheckoutError]:
        error = CheckoutErrors.invalid_state(operation, self.stage.value)
        logger.debug(str(error))
        return Error(error)

    def _advance(self, stage: CheckoutStage, **changes: object) -> None:
        current = self._state.stage
        if stage is not current and stage not in _TRANSITIONS[current]:
            raise IllegalTransition(f"{current.value} -> {stage.value}")
        self._state = replace(self._state, stage=stage, **changes)  # type: ignore[arg-type]
        logger.debug("checkout %s -> %s", current.value, stage.value, extra={"stage": stage.value})
        for listener in list(self._listeners):
            try:
                listener(self._state)
            except Exception:
                logger.exception("checkout listener failed")


__all__ = (
    "CheckoutStage",
    "IllegalTransition",
    "CheckoutReceipt",
    "CheckoutState",
    "Listener",
    "CheckoutCoordinator",
)
