"""Disbursement creation — single and bulk.

A bulk batch is validated as a whole before any disbursement is written.
Once created, each disbursement lives on its own; the batch only survives as
the ``batch_id`` copied into every row's metadata.
"""

import json
from dataclasses import dataclass
from uuid import uuid4

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Identifier, String, Text
from protean.utils.globals import current_domain

from payouts.disbursement.disbursement import Disbursement
from payouts.disbursement.validation import DisbursementRequest, validate_batch, validate_request
from payouts.domain import payouts

logger = structlog.get_logger(__name__)


@payouts.command(part_of="Disbursement")
class CreateDisbursement:
    disbursement_type: String(required=True, max_length=30)
    amount: Float(required=True)
    currency: String(max_length=3)
    recipient_phone: String(required=True, max_length=30)
    recipient_name: String(required=True, max_length=150)
    reference: String(max_length=50)
    description: String(max_length=500)
    metadata: Text()  # JSON object
    requires_approval: Boolean()
    scheduled_for: DateTime()
    created_by: Identifier(required=True)


@payouts.command(part_of="Disbursement")
class CreateBulkDisbursements:
    disbursements: Text(required=True)  # JSON list of disbursement requests
    description: String(max_length=500)
    scheduled_for: DateTime()
    requires_approval: Boolean()
    metadata: Text()  # JSON object applied to every item
    created_by: Identifier(required=True)


@dataclass(frozen=True)
class BulkCreationResult:
    batch_id: str
    disbursement_ids: list[str]


def _load_json(raw, field, expected_type):
    if raw is None or raw == "":
        return None
    try:
        value = json.loads(raw) if isinstance(raw, str) else raw
    except json.JSONDecodeError:
        raise ValidationError({field: ["Must be valid JSON"]}) from None
    if not isinstance(value, expected_type):
        raise ValidationError({field: [f"Must be a JSON {expected_type.__name__}"]})
    return value


def build_disbursement(request: DisbursementRequest, created_by) -> Disbursement:
    return Disbursement.create(
        disbursement_type=request.disbursement_type,
        amount=request.amount,
        currency=request.currency,
        recipient_phone=request.recipient_phone,
        recipient_name=request.recipient_name,
        created_by=created_by,
        reference=request.reference,
        description=request.description,
        metadata=request.metadata,
        requires_approval=request.requires_approval,
        scheduled_for=request.scheduled_for,
    )


@payouts.command_handler(part_of=Disbursement)
class DisbursementCreationHandler:
    @handle(CreateDisbursement)
    def create(self, command):
        request = validate_request(
            {
                "type": command.disbursement_type,
                "amount": command.amount,
                "currency": command.currency,
                "recipient_phone": command.recipient_phone,
                "recipient_name": command.recipient_name,
                "reference": command.reference,
                "description": command.description,
                "metadata": _load_json(command.metadata, "metadata", dict),
                "requires_approval": command.requires_approval,
                "scheduled_for": command.scheduled_for,
            }
        )

        disbursement = build_disbursement(request, command.created_by)
        current_domain.repository_for(Disbursement).add(disbursement)

        logger.info(
            "Disbursement created",
            disbursement_id=str(disbursement.id),
            disbursement_type=disbursement.disbursement_type,
            status=disbursement.status,
            amount=disbursement.amount,
        )
        return str(disbursement.id)

    @handle(CreateBulkDisbursements)
    def create_bulk(self, command):
        items = _load_json(command.disbursements, "disbursements", list) or []
        batch_id = str(uuid4())
        batch_metadata = _load_json(command.metadata, "metadata", dict) or {}

        requests = validate_batch(
            items,
            batch_overrides={
                "description": command.description,
                "scheduled_for": command.scheduled_for,
                "requires_approval": command.requires_approval,
                "metadata": {**batch_metadata, "batch_id": batch_id},
            },
        )

        repo = current_domain.repository_for(Disbursement)
        ids = []
        for request in requests:
            disbursement = build_disbursement(request, command.created_by)
            repo.add(disbursement)
            ids.append(str(disbursement.id))

        logger.info("Bulk disbursements created", batch_id=batch_id, count=len(ids))
        return BulkCreationResult(batch_id=batch_id, disbursement_ids=ids)
