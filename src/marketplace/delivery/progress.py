"""Delivery progress — the assigned rider advances the delivery.

Delivery, Order and Rider change together in the handler's unit of work:
completing a delivery marks its order delivered, and any terminal status
frees the rider for the next dispatch.
"""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Float, Identifier, String
from protean.utils.globals import current_domain

from marketplace.delivery.delivery import Delivery, DeliveryStatus
from marketplace.domain import marketplace
from marketplace.order.order import Order, OrderStatus
from marketplace.rider.rider import Rider
from marketplace.shared.geo import GeoPoint
from shared.errors import ConflictError

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="Delivery")
class AdvanceDelivery:
    delivery_id: Identifier(required=True)
    rider_id: Identifier(required=True)
    status: String(required=True, max_length=20)
    latitude: Float()
    longitude: Float()
    reason: String(max_length=500)


def parse_delivery_status(value) -> DeliveryStatus:
    try:
        return DeliveryStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in DeliveryStatus)
        raise ValidationError({"status": [f"Unknown delivery status '{value}'. Expected one of: {allowed}"]}) from None


def release_rider(delivery: Delivery) -> None:
    if delivery.rider_id and delivery.is_terminal:
        released = current_domain.repository_for(Rider).release(delivery.rider_id, delivery.id)
        if not released:
            logger.warning(
                "Rider was not holding the delivery being closed",
                delivery_id=str(delivery.id),
                rider_id=str(delivery.rider_id),
            )


@marketplace.command_handler(part_of=Delivery)
class DeliveryProgressHandler:
    @handle(AdvanceDelivery)
    def advance(self, command):
        target = parse_delivery_status(command.status)
        location = None
        if command.latitude is not None and command.longitude is not None:
            location = GeoPoint(latitude=command.latitude, longitude=command.longitude)

        repo = current_domain.repository_for(Delivery)
        delivery = repo.get(command.delivery_id)
        observed = DeliveryStatus(delivery.status)

        delivery.advance(command.rider_id, target, location=location, reason=command.reason)

        # Guard the write on the status we validated against
        if not repo.compare_and_set_status(delivery.id, observed, target, updated_at=delivery.updated_at):
            raise ConflictError(f"Delivery {delivery.id} changed while it was being updated; refresh and retry")
        repo.add(delivery)

        if target == DeliveryStatus.DELIVERED:
            order_repo = current_domain.repository_for(Order)
            order = order_repo.get(delivery.order_id)
            if order.status != OrderStatus.DELIVERED.value:
                order.mark_delivered()
                order_repo.add(order)

        release_rider(delivery)

        logger.info(
            "Delivery advanced",
            delivery_id=str(delivery.id),
            rider_id=str(command.rider_id),
            previous_status=observed.value,
            status=target.value,
        )
        return target.value
