"""
Saga types — core data structures.
"""

from __future__ import annotations

from dataclasses import dataclass
from collections.abc import Callable
from kungfu import LazyCoroResult

from bookcart.saga.policy._on_failure import FailurePolicy

# ═══════════════════════════════════════════════════════════════════════════════
# SagaStep — Single Step with Failure Policy
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class SagaStep[T, E]:
    """
    A single saga step: named action + what its failure means.

    The policy is a property of the step, not something the caller
    decides after the fact.
    """

    name: str
    action: LazyCoroResult[T, E]
    on_failure: FailurePolicy

    def then[U, E2](
        self,
        f: Callable[[T], SagaStep[U, E2]],
    ) -> Then[T, U, E, E2]:
        """Chain another saga step after this one."""
        return Then(self, f)


# ═══════════════════════════════════════════════════════════════════════════════
# Saga AST — Composition Operators
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Then[T, U, E, E2]:
    """Sequential composition (monadic bind). Nests to any length."""

    inner: SagaStep[T, E] | Then[object, T, object, E]
    f: Callable[[T], SagaStep[U, E2]]

    def then[V, E3](
        self,
        g: Callable[[U], SagaStep[V, E3]],
    ) -> Then[U, V, E | E2, E3]:
        """Chain another saga step after the whole chain so far."""
        return Then(self, g)


# ═══════════════════════════════════════════════════════════════════════════════
# Result Types
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class StepWarning[E]:
    """Failure of a best-effort step, kept out of the main result."""

    step: int
    name: str
    error: E


@dataclass(frozen=True, slots=True)
class SagaResult[T]:
    """Successful saga result with metadata."""

    value: T
    steps_executed: int
    warnings: tuple[StepWarning[object], ...] = ()


@dataclass(frozen=True, slots=True)
class SagaError[E]:
    """Saga error with the failing step and its rollback status."""

    error: E
    step_failed: int
    step_name: str
    rollback_safe: bool


# ═══════════════════════════════════════════════════════════════════════════════
# Saga Type (union for run())
# ═══════════════════════════════════════════════════════════════════════════════

type SagaExpr[T, E] = SagaStep[T, E] | Then[object, T, object, E]

# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    "SagaStep",
    "Then",
    "SagaExpr",
    "StepWarning",
    "SagaResult",
    "SagaError",
)
