"""Tests for the provider port helpers and the fake payout provider."""

import pytest
from payouts.provider.fake_adapter import FakePayoutProvider
from payouts.provider.port import ProviderStatus, normalize_status
from shared.errors import NonRetryableProviderError, RetryableProviderError


class TestNormalizeStatus:
    @pytest.mark.parametrize("raw", ["successful", "SUCCESS", " completed ", "succeeded"])
    def test_completed(self, raw):
        assert normalize_status(raw) == ProviderStatus.COMPLETED

    @pytest.mark.parametrize("raw", ["failed", "Rejected", "error"])
    def test_failed(self, raw):
        assert normalize_status(raw) == ProviderStatus.FAILED

    @pytest.mark.parametrize("raw", ["pending", "queued", "", None])
    def test_anything_else_is_in_flight(self, raw):
        assert normalize_status(raw) == ProviderStatus.PROCESSING


class TestFakeProvider:
    @pytest.fixture()
    def provider(self):
        return FakePayoutProvider()

    def _send(self, provider, key="disb-1"):
        return provider.send(idempotency_key=key, amount=5000.0, currency="RWF", recipient_phone="0788123456")

    def test_success(self, provider):
        result = self._send(provider)

        assert result.status == ProviderStatus.COMPLETED
        assert result.provider_transaction_id.startswith("fake_payout_")
        assert result.duplicate is False

    def test_repeated_key_returns_original_transaction(self, provider):
        first = self._send(provider)
        second = self._send(provider)

        assert second.duplicate is True
        assert second.provider_transaction_id == first.provider_transaction_id
        assert provider.payout_count == 1
        assert len(provider.calls) == 2

    def test_reject(self, provider):
        provider.configure("reject", failure_reason="Insufficient balance")
        with pytest.raises(NonRetryableProviderError, match="Insufficient balance"):
            self._send(provider)
        assert provider.payout_count == 0

    def test_transient_error(self, provider):
        provider.configure("error")
        with pytest.raises(RetryableProviderError):
            self._send(provider)

    def test_timeout_after_send_still_pays(self, provider):
        provider.configure("timeout_after_send")
        with pytest.raises(RetryableProviderError):
            self._send(provider)
        assert provider.payout_count == 1

    def test_pending_then_settled(self, provider):
        provider.configure("pending")
        result = self._send(provider)
        assert result.status == ProviderStatus.PROCESSING

        provider.settle(result.provider_transaction_id, "failed", reason="Wallet closed")
        status = provider.query_status(result.provider_transaction_id)

        assert status.status == ProviderStatus.FAILED
        assert status.failure_reason == "Wallet closed"

    def test_unknown_outcome(self, provider):
        with pytest.raises(ValueError):
            provider.configure("explode")

    def test_unknown_transaction(self, provider):
        with pytest.raises(NonRetryableProviderError):
            provider.query_status("nope")
