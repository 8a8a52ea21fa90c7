"""Payout provider factory.

Provides get_provider() / set_provider() to swap implementations:
- FakePayoutProvider for development and testing
- PaypackProvider for production, selected with DROPRUN_PAYOUT_PROVIDER=paypack
"""

from payouts.provider.fake_adapter import FakePayoutProvider
from payouts.provider.paypack_adapter import PaypackProvider
from payouts.provider.port import PayoutProvider
from shared.settings import get_settings

_current_provider: PayoutProvider | None = None


def _build_provider() -> PayoutProvider:
    settings = get_settings()
    if settings.payout_provider == "paypack":
        return PaypackProvider(
            base_url=settings.paypack_base_url,
            client_id=settings.paypack_client_id,
            client_secret=settings.paypack_client_secret,
            timeout=settings.provider_timeout_seconds,
        )
    return FakePayoutProvider()


def get_provider() -> PayoutProvider:
    """Return the current payout provider, building the configured one on first use."""
    global _current_provider
    if _current_provider is None:
        _current_provider = _build_provider()
    return _current_provider


def set_provider(provider: PayoutProvider) -> None:
    """Override the active payout provider (useful for tests)."""
    global _current_provider
    _current_provider = provider


def reset_provider() -> None:
    global _current_provider
    _current_provider = None
