from __future__ import annotations

import logging
from decimal import Decimal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="BOOKCART_", env_file=".env", extra="ignore")

    DEPOSIT_RATE: Decimal = Field(Decimal("0.20"), ge=0, le=1)

    SERVICE_FEE_RATE: Decimal = Field(Decimal("0.05"), ge=0)
    SERVICE_FEE_MINIMUM: Decimal = Field(Decimal("2.00"), ge=0)

    NOTES_MAX_LENGTH: int = 500
    CURRENCY_SYMBOL: str = "£"

    PAYMENT_LATENCY_SECONDS: float = 2.0

    LOG_LEVEL: str = "INFO"


settings = Settings()


class ContextFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        extras = []
        for key in ("stage", "step", "item_count", "amount", "booking_id"):
            value = getattr(record, key, None)
            if value not in (None, ""):
                extras.append(f"{key}={value}")
        base = super().format(record)
        if extras:
            return f"{base} | " + " ".join(extras)
        return base


def configure_logging(level: str | None = None) -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(ContextFormatter("%(levelname)s:%(name)s:%(message)s"))

    root = logging.getLogger()
    root.setLevel(getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO))
    root.handlers.clear()
    root.addHandler(handler)
