"""Payout provider port (abstract interface).

Defines the contract every mobile-money payout adapter implements, so the
disbursement engine can switch between FakePayoutProvider (dev/test) and
PaypackProvider (production) without changes.

Adapters raise ``RetryableProviderError`` for timeouts, connection failures
and 5xx responses, and ``NonRetryableProviderError`` when the provider
rejects the request (4xx).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum


class ProviderStatus(Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


_COMPLETED = {"successful", "success", "succeeded", "completed"}
_FAILED = {"failed", "failure", "error", "rejected"}


def normalize_status(raw: str | None) -> ProviderStatus:
    """Map a provider's own status vocabulary onto ours; anything unknown is still in flight."""
    value = (raw or "").strip().lower()
    if value in _COMPLETED:
        return ProviderStatus.COMPLETED
    if value in _FAILED:
        return ProviderStatus.FAILED
    return ProviderStatus.PROCESSING


@dataclass(frozen=True)
class SendResult:
    """The provider accepted a payout request."""

    provider_transaction_id: str
    status: ProviderStatus
    duplicate: bool = False
    raw_status: str | None = None


@dataclass(frozen=True)
class StatusResult:
    provider_transaction_id: str
    status: ProviderStatus
    failure_reason: str | None = None
    raw_status: str | None = None


class PayoutProvider(ABC):
    """Abstract payout provider interface."""

    name: str = "abstract"

    @abstractmethod
    def send(
        self,
        idempotency_key: str,
        amount: float,
        currency: str,
        recipient_phone: str,
    ) -> SendResult:
        """Send money to a mobile-money wallet.

        Calling again with an idempotency key the provider has already seen
        must return the original transaction, never pay twice.
        """
        ...

    @abstractmethod
    def query_status(self, provider_transaction_id: str) -> StatusResult:
        """Look up the current status of a previously sent payout."""
        ...
