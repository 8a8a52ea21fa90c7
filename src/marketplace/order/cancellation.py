"""Order cancellation and refund bookkeeping.

An order can be cancelled until its rider picks it up. Cancelling takes its
delivery down with it and frees the rider if one had already accepted.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from marketplace.delivery.delivery import Delivery, DeliveryStatus
from marketplace.delivery.progress import release_rider
from marketplace.domain import marketplace
from marketplace.order.order import Order
from shared.errors import AuthorizationError, ConflictError

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="Order")
class CancelOrder:
    order_id: Identifier(required=True)
    customer_id: Identifier(required=True)
    reason: String(max_length=500)


@marketplace.command(part_of="Order")
class MarkOrderRefunded:
    order_id: Identifier(required=True)


@marketplace.command_handler(part_of=Order)
class OrderCancellationHandler:
    @handle(CancelOrder)
    def cancel_order(self, command):
        order_repo = current_domain.repository_for(Order)
        order = order_repo.get(command.order_id)
        if str(order.customer_id) != str(command.customer_id):
            raise AuthorizationError(f"Order {order.id} does not belong to customer {command.customer_id}")

        delivery_repo = current_domain.repository_for(Delivery)
        delivery = delivery_repo.for_order(order.id)
        if delivery is not None:
            observed = DeliveryStatus(delivery.status)
            delivery.cancel(command.reason)  # only Pending or Assigned
            if not delivery_repo.compare_and_set_status(
                delivery.id, observed, DeliveryStatus.CANCELLED, updated_at=delivery.updated_at
            ):
                raise ConflictError(f"Delivery for order {order.id} changed while cancelling; refresh and retry")
            delivery_repo.add(delivery)
            release_rider(delivery)

        order.cancel(command.reason)
        order_repo.add(order)

        logger.info("Order cancelled", order_id=str(order.id), reason=command.reason)
        return order.status

    @handle(MarkOrderRefunded)
    def mark_refunded(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.mark_refunded()
        repo.add(order)
        return order.status
