"""Paypack mobile-money payout adapter.

Talks to the Paypack merchant API over httpx:
- ``POST /auth/agents/authorize`` exchanges client credentials for a token
- ``POST /transactions/cashout`` sends money to a phone number
- ``GET /transactions/find/{ref}`` reads a transaction back

The disbursement's idempotency key travels in the ``Idempotency-Key`` header
so that a retried cashout is answered with the original transaction.
The access token is refreshed shortly before the lifetime Paypack reports
for it runs out, and a request rejected with 401 is authorized again and
retried once. Timeouts, connection errors and 5xx responses are
retryable; other 4xx responses are not.
"""

import time
from collections.abc import Callable

import httpx
import structlog

from payouts.provider.port import PayoutProvider, SendResult, StatusResult, normalize_status
from shared.errors import ConfigurationError, NonRetryableProviderError, RetryableProviderError

logger = structlog.get_logger(__name__)

# Paypack reports token lifetime in seconds; refresh a minute before it lapses
TOKEN_REFRESH_MARGIN_SECONDS = 60


class PaypackProvider(PayoutProvider):
    name = "paypack"

    def __init__(
        self,
        base_url: str,
        client_id: str | None,
        client_secret: str | None,
        timeout: float = 30.0,
        client: httpx.Client | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if not client_id or not client_secret:
            raise ConfigurationError("Paypack client id and secret must be configured")
        self.base_url = base_url.rstrip("/")
        self.client_id = client_id
        self.client_secret = client_secret
        self.timeout = timeout
        self._client = client or httpx.Client(timeout=httpx.Timeout(timeout, connect=10.0))
        self._clock = clock
        self._token: str | None = None
        self._token_expires_at: float | None = None

    # -------------------------------------------------------------------
    # HTTP plumbing
    # -------------------------------------------------------------------
    def _send_http(self, method: str, path: str, **kwargs) -> httpx.Response:
        url = f"{self.base_url}{path}"
        try:
            return self._client.request(method, url, **kwargs)
        except httpx.TimeoutException as exc:
            logger.warning("Paypack request timed out", path=path)
            raise RetryableProviderError(f"Paypack request timed out: {exc}") from exc
        except httpx.TransportError as exc:
            logger.warning("Paypack transport error", path=path, error=str(exc))
            raise RetryableProviderError(f"Could not reach Paypack: {exc}") from exc

    def _request(self, method: str, path: str, authenticated: bool = False, headers: dict | None = None, **kwargs) -> dict:
        if authenticated:
            response = self._send_http(method, path, headers=self._headers(headers), **kwargs)
            if response.status_code == 401:
                # Revoked or expired early: authorize again and retry once
                logger.info("Paypack token rejected, re-authorizing", path=path)
                self._authorize()
                response = self._send_http(method, path, headers=self._headers(headers), **kwargs)
        else:
            response = self._send_http(method, path, headers=headers, **kwargs)

        if response.status_code >= 500:
            logger.warning("Paypack server error", path=path, status_code=response.status_code)
            raise RetryableProviderError(
                f"Paypack returned {response.status_code}", status_code=response.status_code
            )
        if response.status_code >= 400:
            message = _error_message(response)
            logger.warning("Paypack rejected request", path=path, status_code=response.status_code, message=message)
            raise NonRetryableProviderError(message, status_code=response.status_code)

        try:
            return response.json()
        except ValueError as exc:
            raise RetryableProviderError("Paypack returned a non-JSON response") from exc

    def _authorize(self) -> str:
        payload = self._request(
            "POST",
            "/auth/agents/authorize",
            json={"client_id": self.client_id, "client_secret": self.client_secret},
        )
        token = payload.get("access")
        if not token:
            raise NonRetryableProviderError("Paypack authorization returned no access token")
        self._token = token
        expires_in = payload.get("expires")
        if isinstance(expires_in, int | float) and not isinstance(expires_in, bool):
            self._token_expires_at = self._clock() + expires_in - TOKEN_REFRESH_MARGIN_SECONDS
        else:
            self._token_expires_at = None
        return token

    def _token_is_fresh(self) -> bool:
        if self._token is None:
            return False
        return self._token_expires_at is None or self._clock() < self._token_expires_at

    def _headers(self, extra: dict | None = None) -> dict:
        token = self._token if self._token_is_fresh() else self._authorize()
        return {"Authorization": f"Bearer {token}", **(extra or {})}

    # -------------------------------------------------------------------
    # Port
    # -------------------------------------------------------------------
    def send(
        self,
        idempotency_key: str,
        amount: float,
        currency: str,
        recipient_phone: str,
    ) -> SendResult:
        if currency != "RWF":
            raise NonRetryableProviderError(f"Paypack only pays out in RWF, not {currency}")

        payload = self._request(
            "POST",
            "/transactions/cashout",
            authenticated=True,
            json={"amount": amount, "number": recipient_phone},
            headers={"Idempotency-Key": idempotency_key},
        )
        reference = payload.get("ref")
        if not reference:
            raise RetryableProviderError("Paypack cashout response has no transaction reference")

        return SendResult(
            provider_transaction_id=reference,
            status=normalize_status(payload.get("status")),
            raw_status=payload.get("status"),
        )

    def query_status(self, provider_transaction_id: str) -> StatusResult:
        payload = self._request(
            "GET",
            f"/transactions/find/{provider_transaction_id}",
            authenticated=True,
        )
        return StatusResult(
            provider_transaction_id=provider_transaction_id,
            status=normalize_status(payload.get("status")),
            failure_reason=payload.get("message") or payload.get("reason"),
            raw_status=payload.get("status"),
        )

    def close(self) -> None:
        self._client.close()


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"Paypack returned {response.status_code}"
    return body.get("message") or body.get("error") or f"Paypack returned {response.status_code}"
