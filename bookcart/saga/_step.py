"""
Saga step creation.
"""

from __future__ import annotations

from collections.abc import Callable, Awaitable
from kungfu import LazyCoroResult
from combinators import lift as L

from bookcart.saga._types import SagaStep
from bookcart.saga.policy._on_failure import FailurePolicy, AbortPolicy

# ═══════════════════════════════════════════════════════════════════════════════
# step() — Primary Constructor
# ═══════════════════════════════════════════════════════════════════════════════


def step[T, E](
    name: str,
    action: LazyCoroResult[T, E],
    on_failure: FailurePolicy | None = None,
) -> SagaStep[T, E]:
    """
    Create a named saga step.

    Args:
        name: Step label used in logs and errors
        action: The operation to perform (LazyCoroResult)
        on_failure: What a failure means; defaults to a rollback-safe abort

    Returns:
        SagaStep that can be chained with .then()

    Example:
        from bookcart import saga as S
        from combinators import lift as L

        submit = S.step(
            "submit_to_ledger",
            L.catching_async(
                lambda: ledger.create_bookings_from_cart(items, records),
                on_error=lambda e: CheckoutErrors.ledger(str(e)),
            ),
            on_failure=S.policy.on_failure.abort(rollback_safe=False),
        )

        # Chain steps
        checkout = submit.then(lambda bookings: S.step(
            "notify_payment",
            L.catching_async(
                lambda: sink.add_payment_success(...),
                on_error=lambda e: CheckoutErrors.notification(str(e)),
            ),
            on_failure=S.policy.on_failure.continue_(),
        ))
    """
    return SagaStep(
        name=name,
        action=action,
        on_failure=on_failure if on_failure is not None else AbortPolicy(),
    )


# ═══════════════════════════════════════════════════════════════════════════════
# from_async() — Create step from async callable
# ═══════════════════════════════════════════════════════════════════════════════


def from_async[T, E](
    name: str,
    action: Callable[[], Awaitable[T]],
    on_error: Callable[[Exception], E],
    on_failure: FailurePolicy | None = None,
) -> SagaStep[T, E]:
    """
    Create step from async callable with error handling.

    Example:
        S.from_async(
            "notify_payment",
            lambda: sink.add_payment_success(amount, provider, summary, image),
            on_error=lambda e: CheckoutErrors.notification(str(e)),
            on_failure=S.policy.on_failure.continue_(),
        )
    """
    return step(
        name,
        L.catching_async(action, on_error=on_error),
        on_failure=on_failure,
    )


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = ("step", "from_async")
