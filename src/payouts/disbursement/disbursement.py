"""Disbursement aggregate (CQRS) — one outbound money movement.

State Machine:
    PENDING → REQUIRES_APPROVAL → {APPROVED, REJECTED}
    {PENDING (no approval needed), APPROVED} → PROCESSING
    PROCESSING → {COMPLETED, FAILED}
    FAILED → PROCESSING  (retry)
    COMPLETED and REJECTED are terminal.

Every provider call for a disbursement uses the same idempotency key,
``disb-<id>``, so a retried call that already went through upstream is
recognised by the provider instead of paying twice.
"""

import json
import secrets
import string
import time
from datetime import UTC, datetime
from enum import Enum

from protean.fields import Boolean, DateTime, Float, HasMany, Identifier, Integer, String, Text

from payouts.disbursement.events import (
    DisbursementApproved,
    DisbursementCompleted,
    DisbursementCreated,
    DisbursementFailed,
    DisbursementProcessingStarted,
    DisbursementQueued,
    DisbursementRejected,
)
from payouts.domain import payouts
from shared.clock import as_utc
from shared.errors import InvalidTransitionError


class DisbursementType(Enum):
    MERCHANT_PAYOUT = "MERCHANT_PAYOUT"
    CUSTOMER_REFUND = "CUSTOMER_REFUND"
    ADMIN_PAYOUT = "ADMIN_PAYOUT"
    COMMISSION_PAYOUT = "COMMISSION_PAYOUT"
    BONUS_PAYOUT = "BONUS_PAYOUT"


class DisbursementStatus(Enum):
    PENDING = "PENDING"
    REQUIRES_APPROVAL = "REQUIRES_APPROVAL"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


_VALID_TRANSITIONS = {
    DisbursementStatus.PENDING: {DisbursementStatus.REQUIRES_APPROVAL, DisbursementStatus.PROCESSING},
    DisbursementStatus.REQUIRES_APPROVAL: {DisbursementStatus.APPROVED, DisbursementStatus.REJECTED},
    DisbursementStatus.APPROVED: {DisbursementStatus.PROCESSING},
    DisbursementStatus.PROCESSING: {DisbursementStatus.COMPLETED, DisbursementStatus.FAILED},
    DisbursementStatus.FAILED: {DisbursementStatus.PROCESSING},  # retry
    DisbursementStatus.COMPLETED: set(),  # terminal
    DisbursementStatus.REJECTED: set(),  # terminal
}

APPROVAL_REQUIRED_BY_DEFAULT = {
    DisbursementType.CUSTOMER_REFUND,
    DisbursementType.ADMIN_PAYOUT,
    DisbursementType.BONUS_PAYOUT,
}

REFERENCE_PREFIXES = {
    DisbursementType.MERCHANT_PAYOUT: "MP",
    DisbursementType.CUSTOMER_REFUND: "RF",
    DisbursementType.ADMIN_PAYOUT: "AP",
    DisbursementType.COMMISSION_PAYOUT: "CP",
    DisbursementType.BONUS_PAYOUT: "BP",
}

_REFERENCE_ALPHABET = string.ascii_uppercase + string.digits


def generate_reference(disbursement_type: DisbursementType) -> str:
    """``<PREFIX>-<last 8 digits of epoch millis>-<4 random chars>``, e.g. ``MP-53829104-K2QX``."""
    stamp = str(int(time.time() * 1000))[-8:]
    suffix = "".join(secrets.choice(_REFERENCE_ALPHABET) for _ in range(4))
    return f"{REFERENCE_PREFIXES[disbursement_type]}-{stamp}-{suffix}"


def resolve_requires_approval(disbursement_type: DisbursementType, override: bool | None = None) -> bool:
    if override is not None:
        return override
    return disbursement_type in APPROVAL_REQUIRED_BY_DEFAULT


@payouts.entity(part_of="Disbursement")
class DisbursementAttempt:
    """One call to the payout provider."""

    attempt_number = Integer(required=True, min_value=1)
    attempted_at = DateTime(required=True)
    status = String(max_length=20, required=True)
    provider_transaction_id = String(max_length=255)
    failure_reason = String(max_length=500)


@payouts.aggregate
class Disbursement:
    disbursement_type = String(choices=DisbursementType, required=True)
    amount = Float(required=True, min_value=0.01)
    currency = String(max_length=3, default="RWF")
    recipient_phone = String(required=True, max_length=20)
    recipient_name = String(required=True, max_length=100)
    reference = String(required=True, max_length=50, unique=True)
    description = String(max_length=500)
    metadata = Text()  # JSON object
    status = String(choices=DisbursementStatus, default=DisbursementStatus.PENDING.value)
    requires_approval = Boolean(default=False)
    scheduled_for = DateTime()
    created_by = Identifier(required=True)
    approved_by = Identifier()
    approved_at = DateTime()
    rejected_by = Identifier()
    approval_note = String(max_length=500)
    idempotency_key = String(max_length=64)
    provider_transaction_id = String(max_length=255)
    failure_reason = String(max_length=500)
    failure_retryable = Boolean()
    attempt_count = Integer(default=0)
    attempts = HasMany(DisbursementAttempt)
    processed_at = DateTime()
    completed_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        disbursement_type: DisbursementType,
        amount: float,
        currency: str,
        recipient_phone: str,
        recipient_name: str,
        created_by: str,
        reference: str | None = None,
        description: str | None = None,
        metadata: dict | None = None,
        requires_approval: bool | None = None,
        scheduled_for: datetime | None = None,
    ):
        """Create a disbursement and route it: to approval, or straight to the processing queue."""
        now = datetime.now(UTC)
        needs_approval = resolve_requires_approval(disbursement_type, requires_approval)
        disbursement = cls(
            disbursement_type=disbursement_type.value,
            amount=amount,
            currency=currency,
            recipient_phone=recipient_phone,
            recipient_name=recipient_name,
            reference=reference or generate_reference(disbursement_type),
            description=description,
            metadata=json.dumps(metadata or {}),
            status=DisbursementStatus.PENDING.value,
            requires_approval=needs_approval,
            scheduled_for=scheduled_for,
            created_by=created_by,
            created_at=now,
            updated_at=now,
        )
        disbursement.idempotency_key = f"disb-{disbursement.id}"
        disbursement.raise_(
            DisbursementCreated(
                disbursement_id=str(disbursement.id),
                disbursement_type=disbursement_type.value,
                amount=amount,
                currency=currency,
                reference=disbursement.reference,
                requires_approval=needs_approval,
                created_by=str(created_by),
                created_at=now,
            )
        )

        if needs_approval:
            disbursement._transition(DisbursementStatus.REQUIRES_APPROVAL, now)
        else:
            disbursement._queue(now)
        return disbursement

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    @property
    def metadata_dict(self) -> dict:
        return json.loads(self.metadata) if self.metadata else {}

    def is_due(self, now: datetime | None = None) -> bool:
        if self.scheduled_for is None:
            return True
        return as_utc(self.scheduled_for) <= as_utc(now or datetime.now(UTC))

    def can_transition_to(self, target: DisbursementStatus) -> bool:
        return target in _VALID_TRANSITIONS[DisbursementStatus(self.status)]

    def _transition(self, target: DisbursementStatus, now: datetime) -> None:
        current = DisbursementStatus(self.status)
        if target not in _VALID_TRANSITIONS[current]:
            raise InvalidTransitionError("Disbursement", current.value, target.value)
        self.status = target.value
        self.updated_at = now

    def _queue(self, now: datetime) -> None:
        self.raise_(
            DisbursementQueued(
                disbursement_id=str(self.id),
                scheduled_for=self.scheduled_for,
                queued_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Approval
    # -------------------------------------------------------------------
    def approve(self, approver_id, note: str | None = None) -> None:
        now = datetime.now(UTC)
        self._transition(DisbursementStatus.APPROVED, now)
        self.approved_by = approver_id
        self.approved_at = now
        self.approval_note = note
        self.raise_(
            DisbursementApproved(
                disbursement_id=str(self.id),
                approved_by=str(approver_id),
                note=note,
                approved_at=now,
            )
        )
        self._queue(now)

    def reject(self, approver_id, note: str | None = None) -> None:
        now = datetime.now(UTC)
        self._transition(DisbursementStatus.REJECTED, now)
        self.rejected_by = approver_id
        self.approval_note = note
        self.raise_(
            DisbursementRejected(
                disbursement_id=str(self.id),
                rejected_by=str(approver_id),
                note=note,
                rejected_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Processing
    # -------------------------------------------------------------------
    def start_processing(self) -> None:
        """Enter PROCESSING ahead of a provider call: from PENDING, APPROVED or FAILED."""
        current = DisbursementStatus(self.status)
        if current == DisbursementStatus.PENDING and self.requires_approval:
            raise InvalidTransitionError("Disbursement", current.value, DisbursementStatus.PROCESSING.value)

        now = datetime.now(UTC)
        self._transition(DisbursementStatus.PROCESSING, now)
        self.attempt_count = (self.attempt_count or 0) + 1
        self.processed_at = now
        self.failure_reason = None
        self.failure_retryable = None
        self.raise_(
            DisbursementProcessingStarted(
                disbursement_id=str(self.id),
                idempotency_key=self.idempotency_key,
                attempt=self.attempt_count,
                started_at=now,
            )
        )

    def record_submitted(self, provider_transaction_id: str) -> None:
        """The provider accepted the payout but has not settled it yet."""
        self.provider_transaction_id = provider_transaction_id
        self._record_attempt("submitted", provider_transaction_id=provider_transaction_id)

    def complete(self, provider_transaction_id: str | None = None) -> None:
        now = datetime.now(UTC)
        self._transition(DisbursementStatus.COMPLETED, now)
        if provider_transaction_id:
            self.provider_transaction_id = provider_transaction_id
        self.completed_at = now
        self._record_attempt("completed", provider_transaction_id=self.provider_transaction_id)
        self.raise_(
            DisbursementCompleted(
                disbursement_id=str(self.id),
                provider_transaction_id=self.provider_transaction_id or "",
                amount=self.amount,
                completed_at=now,
            )
        )

    def fail(self, reason: str, retryable: bool) -> None:
        now = datetime.now(UTC)
        self._transition(DisbursementStatus.FAILED, now)
        self.failure_reason = reason
        self.failure_retryable = retryable
        self._record_attempt("failed", failure_reason=reason)
        self.raise_(
            DisbursementFailed(
                disbursement_id=str(self.id),
                reason=reason,
                retryable=retryable,
                attempt=self.attempt_count or 1,
                failed_at=now,
            )
        )

    def _record_attempt(self, status: str, provider_transaction_id=None, failure_reason=None) -> None:
        attempt_number = self.attempt_count or 1
        existing = next((a for a in self.attempts if a.attempt_number == attempt_number), None)
        if existing is not None:
            existing.status = status
            existing.provider_transaction_id = provider_transaction_id
            existing.failure_reason = failure_reason
            return
        self.add_attempts(
            DisbursementAttempt(
                attempt_number=attempt_number,
                attempted_at=datetime.now(UTC),
                status=status,
                provider_transaction_id=provider_transaction_id,
                failure_reason=failure_reason,
            )
        )
