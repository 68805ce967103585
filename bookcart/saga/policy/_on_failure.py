"""
On-failure policies.

Every saga step declares what its failure means for the whole chain.
"""

from __future__ import annotations

from dataclasses import dataclass

@dataclass(frozen=True, slots=True)
class AbortPolicy:
    """
    Abort the chain on failure.

    rollback_safe: True when nothing irreversible has happened yet, so the
    caller may discard the attempt and start over. False when an earlier
    effect (e.g. a captured payment) outlives the failure.
    """
    rollback_safe: bool = True

def abort(rollback_safe: bool = True) -> AbortPolicy:
    """Abort on failure."""
    return AbortPolicy(rollback_safe)


@dataclass(frozen=True, slots=True)
class ContinuePolicy:
    """Continue execution on failure (best-effort), substituting default."""
    default: object = None

def continue_(default: object = None) -> ContinuePolicy:
    """Continue on failure."""
    return ContinuePolicy(default)


type FailurePolicy = AbortPolicy | ContinuePolicy


__all__ = ("AbortPolicy", "abort", "ContinuePolicy", "continue_", "FailurePolicy")
