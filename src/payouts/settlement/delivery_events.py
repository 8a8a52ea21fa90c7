"""Inbound cross-domain event handler — Payouts reacts to Marketplace deliveries.

A completed delivery opens a MerchantSettlement for its order and creates
the merchant's payout. Redelivered events find the existing row and do
nothing, so each order is settled at most once.
"""

import structlog
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from payouts.domain import payouts
from payouts.settlement.reconciliation import disburse
from payouts.settlement.settlement import MerchantSettlement
from shared.events.marketplace import DeliveryCompleted

logger = structlog.get_logger(__name__)

payouts.register_external_event(DeliveryCompleted, "Marketplace.DeliveryCompleted.v1")


@payouts.event_handler(part_of=MerchantSettlement, stream_category="marketplace::delivery")
class MarketplaceDeliveryEventsHandler:
    @handle(DeliveryCompleted)
    def on_delivery_completed(self, event: DeliveryCompleted) -> None:
        repo = current_domain.repository_for(MerchantSettlement)
        if repo.for_order(event.order_id) is not None:
            logger.info("Order already settled", order_id=str(event.order_id))
            return

        settlement = MerchantSettlement.open(event)
        repo.add(settlement)
        disburse(settlement)
