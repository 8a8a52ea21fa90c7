"""Merchant payouts for settled orders, and the sweep that retries them.

``disburse`` turns a pending settlement row into a MERCHANT_PAYOUT
disbursement. When the disbursement cannot be created (for example the
merchant has no valid payout phone yet) the error is kept on the row and
the row stays pending, so ``ReconcileSettlements`` can try again later.
Amounts under the minimum disbursement are parked instead, since no retry
could ever pay them.
"""

from dataclasses import dataclass, field

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Integer
from protean.utils.globals import current_domain

from payouts.disbursement.creation import build_disbursement
from payouts.disbursement.disbursement import Disbursement, DisbursementType
from payouts.disbursement.validation import validate_request
from payouts.domain import payouts
from payouts.settlement.settlement import MerchantSettlement, SettlementStatus
from shared.settings import get_settings

logger = structlog.get_logger(__name__)

SYSTEM_ACTOR = "system"


def disburse(settlement: MerchantSettlement) -> Disbursement | None:
    """Create the merchant payout for ``settlement``; both rows are added to the current unit of work."""
    minimum = get_settings().min_disbursement_amount
    if settlement.amount < minimum:
        settlement.mark_below_threshold(minimum)
        current_domain.repository_for(MerchantSettlement).add(settlement)
        logger.info(
            "Merchant payout below minimum, settlement parked",
            order_id=str(settlement.order_id),
            merchant_id=str(settlement.merchant_id),
            amount=settlement.amount,
            minimum=minimum,
        )
        return None

    try:
        request = validate_request(
            {
                "type": DisbursementType.MERCHANT_PAYOUT.value,
                "amount": settlement.amount,
                "recipient_phone": settlement.merchant_phone,
                "recipient_name": settlement.merchant_name,
                "description": f"Payout for order {settlement.order_id}",
                "metadata": {
                    "settlement_id": str(settlement.id),
                    "order_id": str(settlement.order_id),
                    "delivery_id": str(settlement.delivery_id),
                    "merchant_id": str(settlement.merchant_id),
                    "platform_fee": settlement.platform_fee,
                },
            }
        )
    except ValidationError as exc:
        settlement.record_failure(str(exc.messages))
        current_domain.repository_for(MerchantSettlement).add(settlement)
        logger.warning(
            "Merchant payout could not be created",
            order_id=str(settlement.order_id),
            merchant_id=str(settlement.merchant_id),
            errors=exc.messages,
        )
        return None

    disbursement = build_disbursement(request, created_by=SYSTEM_ACTOR)
    current_domain.repository_for(Disbursement).add(disbursement)
    settlement.record_disbursed(disbursement.id)
    current_domain.repository_for(MerchantSettlement).add(settlement)
    logger.info(
        "Merchant payout created",
        order_id=str(settlement.order_id),
        merchant_id=str(settlement.merchant_id),
        disbursement_id=str(disbursement.id),
        amount=disbursement.amount,
    )
    return disbursement


@payouts.command(part_of="MerchantSettlement")
class ReconcileSettlements:
    limit: Integer(min_value=1, default=100)


@dataclass(frozen=True)
class ReconciliationReport:
    examined: int = 0
    disbursed: list[str] = field(default_factory=list)
    still_pending: list[str] = field(default_factory=list)
    below_threshold: list[str] = field(default_factory=list)


@payouts.command_handler(part_of=MerchantSettlement)
class SettlementReconciliationHandler:
    @handle(ReconcileSettlements)
    def reconcile(self, command) -> ReconciliationReport:
        pending = current_domain.repository_for(MerchantSettlement).pending()
        pending = sorted(pending, key=lambda s: s.created_at)[: command.limit]

        disbursed, still_pending, below_threshold = [], [], []
        for settlement in pending:
            if disburse(settlement) is not None:
                disbursed.append(str(settlement.order_id))
            elif settlement.status == SettlementStatus.BELOW_THRESHOLD.value:
                below_threshold.append(str(settlement.order_id))
            else:
                still_pending.append(str(settlement.order_id))

        logger.info("Settlement sweep finished", examined=len(pending), disbursed=len(disbursed))
        return ReconciliationReport(
            examined=len(pending),
            disbursed=disbursed,
            still_pending=still_pending,
            below_threshold=below_threshold,
        )
