"""Business settings shared by the Marketplace and Payouts contexts.

Protean infrastructure (databases, brokers, event store) is configured in
``domain.toml`` and selected with ``PROTEAN_ENV``. Everything here is platform
policy: fee tiers, rider commission, disbursement limits and payout provider
credentials. Values can be overridden with ``DROPRUN_``-prefixed environment
variables, e.g. ``DROPRUN_FLAT_DELIVERY_FEE=1200``.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Platform fee tiers in RWF. Boundaries are shared: an amount sitting exactly
# on a boundary is charged the lower tier's fee.
DEFAULT_FEE_TIERS: tuple[dict, ...] = (
    {"min_amount": 0, "max_amount": 1500, "fee": 50},
    {"min_amount": 1500, "max_amount": 2500, "fee": 100},
    {"min_amount": 2500, "max_amount": 5000, "fee": 150},
    {"min_amount": 5000, "max_amount": 10000, "fee": 350},
    {"min_amount": 10000, "max_amount": 50000, "fee": 500},
    {"min_amount": 50000, "max_amount": 100000, "fee": 1500},
    {"min_amount": 100000, "max_amount": 500000, "fee": 4500},
    {"min_amount": 500000, "max_amount": None, "fee": 9500},
)


class Settings(BaseSettings):
    """Runtime settings loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="DROPRUN_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Pricing
    fee_tiers: tuple[dict, ...] = Field(default=DEFAULT_FEE_TIERS)
    flat_delivery_fee: float = Field(default=1000.0, ge=0.0)
    default_currency: str = Field(default="RWF", min_length=3, max_length=3)

    # Dispatch
    rider_commission: float = Field(default=0.75, ge=0.0, le=1.0)
    dispatch_radius_km: float | None = Field(
        default=10.0,
        description="Pickup radius for available orders; None disables the cutoff.",
    )
    minutes_per_km: float = Field(default=3.0, ge=0.0)
    available_orders_limit: int = Field(default=20, ge=1, le=100)

    # Disbursements
    min_disbursement_amount: float = Field(default=100.0, gt=0.0)
    max_disbursement_amount: float = Field(default=10_000_000.0, gt=0.0)
    max_bulk_disbursements: int = Field(default=100, ge=1)

    # Payout provider
    payout_provider: Literal["fake", "paypack"] = "fake"
    provider_timeout_seconds: float = Field(default=30.0, gt=0.0)
    paypack_base_url: str = "https://payments.paypack.rw/api"
    paypack_client_id: str | None = None
    paypack_client_secret: str | None = None

    @field_validator("fee_tiers")
    @classmethod
    def fee_tiers_form_a_schedule(cls, tiers):
        # A malformed table fails Settings() itself, before the first checkout
        from marketplace.pricing.fees import FeeSchedule
        from shared.errors import FeeTableError

        try:
            FeeSchedule(tiers)
        except (FeeTableError, TypeError) as exc:
            raise ValueError(f"Invalid fee table: {exc}") from exc
        return tiers


@lru_cache
def get_settings() -> Settings:
    return Settings()
