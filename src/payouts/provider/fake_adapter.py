"""Configurable fake payout provider for development and testing.

Behaves like a real mobile-money API without any network calls:
- payouts are keyed by idempotency key, so a repeated ``send`` returns the
  original transaction and flags it as a duplicate
- outcomes can be configured at runtime: settle immediately, stay pending,
  reject (non-retryable), fail transiently (retryable), or time out *after*
  the payout went through upstream, the case idempotency keys exist for
"""

from uuid import uuid4

from payouts.provider.port import PayoutProvider, SendResult, StatusResult, normalize_status
from shared.errors import NonRetryableProviderError, RetryableProviderError


class FakePayoutProvider(PayoutProvider):
    name = "fake"

    OUTCOMES = ("success", "pending", "reject", "error", "timeout_after_send")

    def __init__(self) -> None:
        self.outcome: str = "success"
        self.failure_reason: str = "Recipient wallet not found"
        self.calls: list[dict] = []
        # idempotency_key -> transaction record
        self.payouts: dict[str, dict] = {}

    def configure(self, outcome: str = "success", failure_reason: str | None = None) -> None:
        if outcome not in self.OUTCOMES:
            raise ValueError(f"Unknown outcome {outcome!r}; expected one of {self.OUTCOMES}")
        self.outcome = outcome
        if failure_reason:
            self.failure_reason = failure_reason

    def settle(self, provider_transaction_id: str, status: str = "successful", reason: str | None = None) -> None:
        """Move a pending transaction to a final status, as the provider would later."""
        for record in self.payouts.values():
            if record["provider_transaction_id"] == provider_transaction_id:
                record["status"] = status
                record["failure_reason"] = reason
                return
        raise KeyError(provider_transaction_id)

    def send(
        self,
        idempotency_key: str,
        amount: float,
        currency: str,
        recipient_phone: str,
    ) -> SendResult:
        self.calls.append(
            {
                "method": "send",
                "idempotency_key": idempotency_key,
                "amount": amount,
                "currency": currency,
                "recipient_phone": recipient_phone,
            }
        )

        existing = self.payouts.get(idempotency_key)
        if existing is not None:
            return SendResult(
                provider_transaction_id=existing["provider_transaction_id"],
                status=normalize_status(existing["status"]),
                duplicate=True,
                raw_status=existing["status"],
            )

        if self.outcome == "reject":
            raise NonRetryableProviderError(self.failure_reason, status_code=400)
        if self.outcome == "error":
            raise RetryableProviderError("Provider unavailable", status_code=503)

        status = "pending" if self.outcome == "pending" else "successful"
        record = {
            "provider_transaction_id": f"fake_payout_{uuid4().hex[:12]}",
            "amount": amount,
            "currency": currency,
            "recipient_phone": recipient_phone,
            "status": status,
            "failure_reason": None,
        }
        self.payouts[idempotency_key] = record

        if self.outcome == "timeout_after_send":
            raise RetryableProviderError("Timed out waiting for provider response")

        return SendResult(
            provider_transaction_id=record["provider_transaction_id"],
            status=normalize_status(status),
            raw_status=status,
        )

    def query_status(self, provider_transaction_id: str) -> StatusResult:
        self.calls.append({"method": "query_status", "provider_transaction_id": provider_transaction_id})
        for record in self.payouts.values():
            if record["provider_transaction_id"] == provider_transaction_id:
                return StatusResult(
                    provider_transaction_id=provider_transaction_id,
                    status=normalize_status(record["status"]),
                    failure_reason=record["failure_reason"],
                    raw_status=record["status"],
                )
        raise NonRetryableProviderError(f"Unknown transaction {provider_transaction_id}", status_code=404)

    @property
    def payout_count(self) -> int:
        return len(self.payouts)
