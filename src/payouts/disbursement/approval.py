"""Approval decisions over a set of disbursements.

Each id is decided on its own: an unknown id or a disbursement that is not
waiting for approval is reported as a failed item, never as an error for the
whole call. Approved disbursements raise ``DisbursementQueued`` and are sent
by the queue handler.
"""

import json
from dataclasses import dataclass
from enum import Enum

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from payouts.disbursement.disbursement import Disbursement, DisbursementStatus
from payouts.domain import payouts

logger = structlog.get_logger(__name__)


class ApprovalAction(Enum):
    APPROVE = "APPROVE"
    REJECT = "REJECT"


@payouts.command(part_of="Disbursement")
class ProcessDisbursementApprovals:
    disbursement_ids: Text(required=True)  # JSON list of ids
    action: String(required=True, choices=ApprovalAction)
    approver_id: Identifier(required=True)
    note: String(max_length=500)


@dataclass(frozen=True)
class ApprovalOutcome:
    disbursement_id: str
    success: bool
    status: str | None = None
    message: str | None = None


def _parse_ids(raw) -> list[str]:
    try:
        ids = json.loads(raw) if isinstance(raw, str) else list(raw)
    except (json.JSONDecodeError, TypeError):
        raise ValidationError({"disbursement_ids": ["Must be a JSON list of ids"]}) from None
    if not isinstance(ids, list) or not ids:
        raise ValidationError({"disbursement_ids": ["At least one disbursement id is required"]})
    # Keep first occurrence so a repeated id is only decided once
    return list(dict.fromkeys(str(i) for i in ids))


@payouts.command_handler(part_of=Disbursement)
class DisbursementApprovalHandler:
    @handle(ProcessDisbursementApprovals)
    def decide(self, command) -> list[ApprovalOutcome]:
        action = ApprovalAction(command.action)
        repo = current_domain.repository_for(Disbursement)
        outcomes = []

        for disbursement_id in _parse_ids(command.disbursement_ids):
            try:
                disbursement = repo.get(disbursement_id)
            except ObjectNotFoundError:
                outcomes.append(
                    ApprovalOutcome(disbursement_id=disbursement_id, success=False, message="Disbursement not found")
                )
                continue

            if disbursement.status != DisbursementStatus.REQUIRES_APPROVAL.value:
                outcomes.append(
                    ApprovalOutcome(
                        disbursement_id=disbursement_id,
                        success=False,
                        status=disbursement.status,
                        message=f"Disbursement is {disbursement.status}, not awaiting approval",
                    )
                )
                continue

            if action == ApprovalAction.APPROVE:
                disbursement.approve(command.approver_id, command.note)
            else:
                disbursement.reject(command.approver_id, command.note)
            repo.add(disbursement)
            outcomes.append(ApprovalOutcome(disbursement_id=disbursement_id, success=True, status=disbursement.status))

        logger.info(
            "Disbursement approvals processed",
            action=action.value,
            approver_id=str(command.approver_id),
            succeeded=sum(1 for o in outcomes if o.success),
            failed=sum(1 for o in outcomes if not o.success),
        )
        return outcomes
