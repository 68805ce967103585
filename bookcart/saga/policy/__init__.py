"""
Saga step policies.

Namespace: S.policy.*

Examples:
    S.step("ledger", action, on_failure=S.policy.on_failure.abort(rollback_safe=False))
    S.step("notify", action, on_failure=S.policy.on_failure.continue_())
"""

from __future__ import annotations

from bookcart.saga.policy._on_failure import (
    AbortPolicy,
    ContinuePolicy,
    FailurePolicy,
    continue_,
    abort,
)


# Namespace objects
class on_failure:
    """Failure handling policies."""

    continue_ = staticmethod(continue_)
    abort = staticmethod(abort)


__all__ = (
    "on_failure",
    "AbortPolicy",
    "ContinuePolicy",
    "FailurePolicy",
)
