"""Disbursement domain events — immutable facts about money leaving the platform."""

from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String

from payouts.domain import payouts


@payouts.event(part_of="Disbursement")
class DisbursementCreated:
    __version__ = 1

    disbursement_id = Identifier(required=True)
    disbursement_type = String(required=True)
    amount = Float(required=True)
    currency = String(required=True)
    reference = String(required=True)
    requires_approval = Boolean(required=True)
    created_by = Identifier(required=True)
    created_at = DateTime(required=True)


@payouts.event(part_of="Disbursement")
class DisbursementQueued:
    """The disbursement is cleared to be sent to the payout provider."""

    __version__ = 1

    disbursement_id = Identifier(required=True)
    scheduled_for = DateTime()
    queued_at = DateTime(required=True)


@payouts.event(part_of="Disbursement")
class DisbursementApproved:
    __version__ = 1

    disbursement_id = Identifier(required=True)
    approved_by = Identifier(required=True)
    note = String()
    approved_at = DateTime(required=True)


@payouts.event(part_of="Disbursement")
class DisbursementRejected:
    __version__ = 1

    disbursement_id = Identifier(required=True)
    rejected_by = Identifier(required=True)
    note = String()
    rejected_at = DateTime(required=True)


@payouts.event(part_of="Disbursement")
class DisbursementProcessingStarted:
    __version__ = 1

    disbursement_id = Identifier(required=True)
    idempotency_key = String(required=True)
    attempt = Integer(required=True)
    started_at = DateTime(required=True)


@payouts.event(part_of="Disbursement")
class DisbursementCompleted:
    __version__ = 1

    disbursement_id = Identifier(required=True)
    provider_transaction_id = String(required=True)
    amount = Float(required=True)
    completed_at = DateTime(required=True)


@payouts.event(part_of="Disbursement")
class DisbursementFailed:
    __version__ = 1

    disbursement_id = Identifier(required=True)
    reason = String(required=True)
    retryable = Boolean(required=True)
    attempt = Integer(required=True)
    failed_at = DateTime(required=True)
