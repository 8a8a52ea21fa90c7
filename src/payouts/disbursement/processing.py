"""Disbursement processing — sending money through the payout provider.

``process`` is safe to call any number of times for the same disbursement:

- the move into PROCESSING is a conditional write on the status that was
  read, so two workers can never both send the same disbursement;
- the provider call always carries the disbursement's fixed idempotency
  key, so a call that went through upstream but timed out on our side is
  answered with the original transaction when it is retried;
- a COMPLETED disbursement is reported as it is, without calling out.

Provider errors never escape as exceptions: they are recorded on the
disbursement (``failure_reason``, ``failure_retryable``) so an operator can
decide whether to retry.
"""

from dataclasses import dataclass
from datetime import UTC, datetime

import structlog
from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain
from protean.utils.mixins import handle as handle_event

from payouts.disbursement.disbursement import Disbursement, DisbursementStatus
from payouts.disbursement.events import DisbursementQueued
from payouts.domain import payouts
from payouts.provider import get_provider
from payouts.provider.port import ProviderStatus
from shared.clock import as_utc
from shared.errors import ConflictError, ExternalProviderError, InvalidTransitionError

logger = structlog.get_logger(__name__)


@payouts.command(part_of="Disbursement")
class ProcessDisbursement:
    disbursement_id: Identifier(required=True)


@payouts.command(part_of="Disbursement")
class RetryDisbursement:
    disbursement_id: Identifier(required=True)


@dataclass(frozen=True)
class ProcessingResult:
    disbursement_id: str
    status: str
    provider_transaction_id: str | None = None
    failure_reason: str | None = None
    failure_retryable: bool | None = None
    deferred: bool = False
    already_completed: bool = False


def _result(disbursement: Disbursement, **flags) -> ProcessingResult:
    return ProcessingResult(
        disbursement_id=str(disbursement.id),
        status=disbursement.status,
        provider_transaction_id=disbursement.provider_transaction_id,
        failure_reason=disbursement.failure_reason,
        failure_retryable=disbursement.failure_retryable,
        **flags,
    )


def send_to_provider(disbursement_id) -> ProcessingResult:
    repo = current_domain.repository_for(Disbursement)
    disbursement = repo.get(disbursement_id)

    if disbursement.status == DisbursementStatus.COMPLETED.value:
        return _result(disbursement, already_completed=True)
    if not disbursement.is_due():
        logger.info(
            "Disbursement deferred until scheduled time",
            disbursement_id=str(disbursement.id),
            scheduled_for=str(disbursement.scheduled_for),
        )
        return _result(disbursement, deferred=True)

    observed = DisbursementStatus(disbursement.status)
    disbursement.start_processing()
    if not repo.compare_and_set_status(
        disbursement.id, observed, DisbursementStatus.PROCESSING, updated_at=disbursement.updated_at
    ):
        raise ConflictError(f"Disbursement {disbursement.id} is already being processed")

    provider = get_provider()
    try:
        sent = provider.send(
            idempotency_key=disbursement.idempotency_key,
            amount=disbursement.amount,
            currency=disbursement.currency,
            recipient_phone=disbursement.recipient_phone,
        )
    except ExternalProviderError as exc:
        logger.warning(
            "Payout provider call failed",
            disbursement_id=str(disbursement.id),
            provider=provider.name,
            retryable=exc.retryable,
            error=str(exc),
        )
        disbursement.fail(str(exc), retryable=exc.retryable)
    else:
        if sent.duplicate:
            logger.info(
                "Provider recognised a repeated payout",
                disbursement_id=str(disbursement.id),
                provider_transaction_id=sent.provider_transaction_id,
            )
        if sent.status == ProviderStatus.COMPLETED:
            disbursement.complete(sent.provider_transaction_id)
        elif sent.status == ProviderStatus.FAILED:
            disbursement.provider_transaction_id = sent.provider_transaction_id
            disbursement.fail(f"Provider reported status '{sent.raw_status}'", retryable=False)
        else:
            disbursement.record_submitted(sent.provider_transaction_id)

    repo.add(disbursement)
    logger.info(
        "Disbursement processed",
        disbursement_id=str(disbursement.id),
        status=disbursement.status,
        attempt=disbursement.attempt_count,
    )
    return _result(disbursement)


@payouts.command_handler(part_of=Disbursement)
class DisbursementProcessingHandler:
    @handle(ProcessDisbursement)
    def process(self, command):
        return send_to_provider(command.disbursement_id)

    @handle(RetryDisbursement)
    def retry(self, command):
        disbursement = current_domain.repository_for(Disbursement).get(command.disbursement_id)
        if disbursement.status != DisbursementStatus.FAILED.value:
            raise InvalidTransitionError("Disbursement", disbursement.status, DisbursementStatus.PROCESSING.value)

        logger.info(
            "Retrying disbursement",
            disbursement_id=str(disbursement.id),
            previous_failure=disbursement.failure_reason,
            retryable=disbursement.failure_retryable,
        )
        # Scheduling was honoured on the first attempt
        return send_to_provider(command.disbursement_id)


@payouts.event_handler(part_of=Disbursement)
class DisbursementQueueHandler:
    """Picks up disbursements cleared for payment, created or just approved."""

    @handle_event(DisbursementQueued)
    def on_queued(self, event: DisbursementQueued) -> None:
        if event.scheduled_for and as_utc(event.scheduled_for) > datetime.now(UTC):
            return
        current_domain.process(ProcessDisbursement(disbursement_id=event.disbursement_id), asynchronous=False)
