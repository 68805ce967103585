"""
Saga execution with per-step failure policies.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from kungfu import Result, Ok, Error

from bookcart.saga._types import (
    SagaStep,
    SagaResult,
    SagaError,
    StepWarning,
    Then,
    SagaExpr,
)
from bookcart.saga.policy._on_failure import AbortPolicy, ContinuePolicy

logger = logging.getLogger(__name__)

# ═══════════════════════════════════════════════════════════════════════════════
# Trace — bookkeeping shared across one run
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(slots=True)
class _Trace:
    steps: int = 0
    warnings: list[StepWarning[object]] = field(default_factory=list)

# ═══════════════════════════════════════════════════════════════════════════════
# run_step() — Execute single step
# ═══════════════════════════════════════════════════════════════════════════════

async def run_step[T, E](
    step: SagaStep[T, E],
    trace: _Trace,
) -> Result[T, SagaError[E]]:
    """Execute single step, applying its failure policy."""
    trace.steps += 1
    index = trace.steps
    logger.debug("saga step %d (%s) started", index, step.name, extra={"step": step.name})

    result = await step.action
    match result:
        case Ok(value):
            return Ok(value)
        case Error(e):
            match step.on_failure:
                case ContinuePolicy(default=default):
                    logger.warning(
                        "saga step %d (%s) failed, continuing: %s",
                        index, step.name, e,
                        extra={"step": step.name},
                    )
                    trace.warnings.append(StepWarning(step=index, name=step.name, error=e))
                    return Ok(default)  # type: ignore[arg-type]
                case AbortPolicy(rollback_safe=rollback_safe):
                    logger.error(
                        "saga step %d (%s) failed, aborting (rollback_safe=%s): %s",
                        index, step.name, rollback_safe, e,
                        extra={"step": step.name},
                    )
                    return Error(SagaError(
                        error=e,
                        step_failed=index,
                        step_name=step.name,
                        rollback_safe=rollback_safe,
                    ))


async def _run_expr[T, E](
    expr: SagaExpr[T, E],
    trace: _Trace,
) -> Result[T, SagaError[E]]:
    if isinstance(expr, SagaStep):
        return await run_step(expr, trace)

    inner_result = await _run_expr(expr.inner, trace)
    match inner_result:
        case Ok(value):
            return await _run_expr(expr.f(value), trace)
        case Error(e):
            return Error(e)

# ═══════════════════════════════════════════════════════════════════════════════
# run() — Execute Saga Step
# ═══════════════════════════════════════════════════════════════════════════════

async def run[T, E](
    saga: SagaStep[T, E],
) -> Result[SagaResult[T], SagaError[E]]:
    """
    Execute a single saga step.

    On success: returns SagaResult with value and metadata.
    On failure: returns SagaError, or Ok(default) with a warning when the
    step is best-effort.

    Example:
        from bookcart import saga as S

        result = await S.run(S.step("authorize", authorize_action))

        match result:
            case Ok(r):
                print(f"Success: {r.value}")
            case Error(e):
                print(f"Failed at {e.step_name}")
    """
    trace = _Trace()
    result = await run_step(saga, trace)

    match result:
        case Ok(value):
            return Ok(SagaResult(
                value=value,
                steps_executed=trace.steps,
                warnings=tuple(trace.warnings),
            ))
        case Error(error):
            return Error(error)


# ═══════════════════════════════════════════════════════════════════════════════
# run_chain() — Execute Then chain
# ═══════════════════════════════════════════════════════════════════════════════

async def run_chain[T, U, E, E2](
    chain: Then[T, U, E, E2],
) -> Result[SagaResult[U], SagaError[E | E2]]:
    """
    Execute chained saga steps in order.

    Each step sees the previous step's value. The first aborting failure
    stops the chain; best-effort failures become warnings.
    """
    trace = _Trace()
    result = await _run_expr(chain, trace)

    match result:
        case Ok(value):
            return Ok(SagaResult(
                value=value,
                steps_executed=trace.steps,
                warnings=tuple(trace.warnings),
            ))
        case Error(error):
            return Error(error)


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = ("run", "run_chain", "run_step")
