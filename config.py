"""Application configuration."""

import os
from decimal import Decimal

from pydantic import BaseModel, Field


class AppConfig(BaseModel):
    """
    Application-level settings.

    Billing defaults live here so the fallback rate and due-date policy are
    set in one place rather than scattered through services.
    """

    debug: bool = Field(
        default=False,
        description="Expose exception messages in 500 responses",
    )

    # Billing
    fallback_hourly_rate: Decimal = Field(
        default=Decimal("50"),
        description="Hourly rate used when project, client and organization set none",
        ge=0,
    )
    default_currency: str = Field(
        default="USD",
        description="Invoice currency when the organization sets none",
        min_length=3,
        max_length=3,
    )
    invoice_due_days: int = Field(
        default=30,
        description="Days after issue an invoice falls due when no due date is given",
        ge=0,
        le=365,
    )

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Build config from environment variables, keeping defaults for unset ones."""
        values = {}
        if os.getenv("APP_DEBUG") is not None:
            values["debug"] = os.getenv("APP_DEBUG", "").lower() in ("1", "true", "yes")
        if os.getenv("FALLBACK_HOURLY_RATE"):
            values["fallback_hourly_rate"] = os.getenv("FALLBACK_HOURLY_RATE")
        if os.getenv("DEFAULT_CURRENCY"):
            values["default_currency"] = os.getenv("DEFAULT_CURRENCY")
        if os.getenv("INVOICE_DUE_DAYS"):
            values["invoice_due_days"] = os.getenv("INVOICE_DUE_DAYS")
        return cls(**values)
