"""
Saga — sequential steps, each declaring what its failure means.

    from bookcart import saga as S

    chain = (
        S.step("revalidate", revalidate, on_failure=S.policy.on_failure.abort())
        .then(lambda snap: S.step("submit", submit(snap), on_failure=S.policy.on_failure.abort(rollback_safe=False)))
        .then(lambda bookings: S.step("notify", notify(bookings), on_failure=S.policy.on_failure.continue_()))
    )
    result = await S.run_chain(chain)
"""

from __future__ import annotations

from bookcart.saga._types import (
    SagaStep,
    SagaResult,
    SagaError,
    StepWarning,
    Then,
)
from bookcart.saga._step import step, from_async
from bookcart.saga._run import run, run_chain
from bookcart.saga import policy

__all__ = (
    "SagaStep",
    "SagaResult",
    "SagaError",
    "StepWarning",
    "Then",
    "step",
    "from_async",
    "run",
    "run_chain",
    "policy",
)
