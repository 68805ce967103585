"""
bookcart — checkout and booking pipeline for a beauty-appointment cart.

    from bookcart import pricing as P        # Money arithmetic
    from bookcart import saga as S           # Steps with failure policies
    from bookcart.coordinator import CheckoutCoordinator
"""

from bookcart import saga
from bookcart import lift
from bookcart import pricing
from bookcart import schedule
from bookcart._types import Lazy, Money
from bookcart.coordinator import CheckoutCoordinator, CheckoutStage
from bookcart.errors import CheckoutError, CheckoutErrorKind

__version__ = "0.1.0"

__all__ = (
    "saga",
    "lift",
    "pricing",
    "schedule",
    "Lazy",
    "Money",
    "CheckoutCoordinator",
    "CheckoutStage",
    "CheckoutError",
    "CheckoutErrorKind",
)
