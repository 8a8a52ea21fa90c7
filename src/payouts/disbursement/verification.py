"""Reconciling local disbursement state with the payout provider.

Two paths bring provider truth back in:
- ``VerifyDisbursement`` asks the provider for a disbursement still in
  PROCESSING and applies a final status if there is one
- ``HandleProviderCallback`` applies the status the provider pushed to us

Both only ever move a PROCESSING disbursement to COMPLETED or FAILED; a
disbursement already in a final state is left as it is.
"""

from dataclasses import dataclass

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from payouts.disbursement.disbursement import Disbursement, DisbursementStatus
from payouts.domain import payouts
from payouts.provider import get_provider
from payouts.provider.port import ProviderStatus, normalize_status
from shared.errors import ExternalProviderError

logger = structlog.get_logger(__name__)


@payouts.command(part_of="Disbursement")
class VerifyDisbursement:
    disbursement_id: Identifier(required=True)


@payouts.command(part_of="Disbursement")
class HandleProviderCallback:
    provider_transaction_id: String(required=True, max_length=255)
    status: String(required=True, max_length=50)
    reason: String(max_length=500)


@dataclass(frozen=True)
class VerificationResult:
    """``is_valid`` is False only when the disbursement does not exist."""

    is_valid: bool
    status: str | None = None
    failure_reason: str | None = None
    provider_status: str | None = None


def apply_provider_status(disbursement: Disbursement, status: ProviderStatus, reason: str | None) -> bool:
    """Settle a PROCESSING disbursement from a provider status. Returns True if it changed."""
    if disbursement.status != DisbursementStatus.PROCESSING.value:
        return False
    if status == ProviderStatus.COMPLETED:
        disbursement.complete()
        return True
    if status == ProviderStatus.FAILED:
        disbursement.fail(reason or "Provider reported the payout as failed", retryable=False)
        return True
    return False


@payouts.command_handler(part_of=Disbursement)
class DisbursementVerificationHandler:
    @handle(VerifyDisbursement)
    def verify(self, command) -> VerificationResult:
        repo = current_domain.repository_for(Disbursement)
        try:
            disbursement = repo.get(command.disbursement_id)
        except ObjectNotFoundError:
            return VerificationResult(is_valid=False)

        provider_status = None
        if disbursement.status == DisbursementStatus.PROCESSING.value and disbursement.provider_transaction_id:
            try:
                remote = get_provider().query_status(disbursement.provider_transaction_id)
            except ExternalProviderError as exc:
                logger.warning(
                    "Provider status check failed, reporting stored status",
                    disbursement_id=str(disbursement.id),
                    error=str(exc),
                )
            else:
                provider_status = remote.raw_status
                if apply_provider_status(disbursement, remote.status, remote.failure_reason):
                    repo.add(disbursement)
                    logger.info(
                        "Disbursement reconciled with provider",
                        disbursement_id=str(disbursement.id),
                        status=disbursement.status,
                    )

        return VerificationResult(
            is_valid=True,
            status=disbursement.status,
            failure_reason=disbursement.failure_reason,
            provider_status=provider_status,
        )

    @handle(HandleProviderCallback)
    def on_callback(self, command) -> str:
        repo = current_domain.repository_for(Disbursement)
        disbursement = repo.by_provider_transaction(command.provider_transaction_id)
        if disbursement is None:
            raise ObjectNotFoundError(f"No disbursement for provider transaction {command.provider_transaction_id}")

        if apply_provider_status(disbursement, normalize_status(command.status), command.reason):
            repo.add(disbursement)
            logger.info(
                "Provider callback applied",
                disbursement_id=str(disbursement.id),
                provider_transaction_id=command.provider_transaction_id,
                status=disbursement.status,
            )
        return disbursement.status
