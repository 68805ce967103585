"""
Lift — Helpers for lifting values into checkout steps.

Re-exports from combinators.lift with bookcart-specific additions.
"""

from __future__ import annotations

from collections.abc import Callable, Awaitable

from kungfu import LazyCoroResult, Result, Ok, Error

# Re-export from combinators.lift
from combinators.lift import catching_async


# ═══════════════════════════════════════════════════════════════════════════════
# bookcart-specific helpers
# ═══════════════════════════════════════════════════════════════════════════════

def from_result[T, E](result: Result[T, E]) -> LazyCoroResult[T, E]:
    """Lift an already computed Result into LazyCoroResult."""
    async def _run() -> Result[T, E]:
        return result
    return LazyCoroResult(_run)


def from_sync[T, E](fn: Callable[[], Result[T, E]]) -> LazyCoroResult[T, E]:
    """
    Defer a synchronous Result-returning function.

    The function runs when the step is awaited, not when it is built.
    """
    async def _run() -> Result[T, E]:
        return fn()
    return LazyCoroResult(_run)


def from_value[T](fn: Callable[[], T]) -> LazyCoroResult[T, object]:
    """Defer a pure computation that cannot fail."""
    async def _run() -> Result[T, object]:
        return Ok(fn())
    return LazyCoroResult(_run)


def catching[T, E](
    fn: Callable[[], T],
    on_error: Callable[[Exception], E],
) -> LazyCoroResult[T, E]:
    """Defer a synchronous computation, turning a raised exception into Error."""
    async def _run() -> T:
        return fn()
    return catching_async(_run, on_error=on_error)


def from_awaitable[T, E](
    awaitable_fn: Callable[[], Awaitable[T]],
    on_error: Callable[[Exception], E],
) -> LazyCoroResult[T, E]:
    """
    Create LazyCoroResult from async function.

    Alias for catching_async with clearer naming.
    """
    return catching_async(awaitable_fn, on_error=on_error)


def failed[E](error: E) -> LazyCoroResult[object, E]:
    """Lift an error value."""
    return from_result(Error(error))


__all__ = (
    # From combinators.lift
    "catching_async",
    # bookcart additions
    "from_result",
    "from_sync",
    "from_value",
    "catching",
    "from_awaitable",
    "failed",
)
