"""Dispatch — a rider accepts a pending order, exactly once.

Two riders may read the same PENDING delivery at the same moment. Neither
the read nor the in-memory ``Delivery.assign`` decides the winner; the
conditional writes in the repositories do:

1. claim the rider's single delivery slot (Idle → On_Delivery), then
2. claim the delivery (Pending → Assigned).

Whoever loses step 2 gets ``OrderAlreadyClaimedError`` and their rider slot
is handed back, so exactly one rider ends up holding the delivery.
"""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier
from protean.utils.globals import current_domain

from marketplace.delivery.delivery import Delivery, DeliveryStatus
from marketplace.domain import marketplace
from marketplace.rider.rider import Rider
from shared.errors import OrderAlreadyClaimedError, RiderBusyError, RiderUnavailableError

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="Delivery")
class AcceptOrder:
    rider_id: Identifier(required=True)
    order_id: Identifier(required=True)


def _check_rider(rider: Rider) -> None:
    if not rider.is_available:
        raise RiderUnavailableError(str(rider.id))
    if rider.is_busy:
        raise RiderBusyError(str(rider.id), active_delivery_id=str(rider.active_delivery_id))


@marketplace.command_handler(part_of=Delivery)
class DispatchHandler:
    @handle(AcceptOrder)
    def accept_order(self, command):
        rider_repo = current_domain.repository_for(Rider)
        delivery_repo = current_domain.repository_for(Delivery)

        _check_rider(rider_repo.get(command.rider_id))

        delivery = delivery_repo.for_order(command.order_id)
        if delivery is None:
            raise ObjectNotFoundError(f"No delivery found for order {command.order_id}")
        if delivery.status != DeliveryStatus.PENDING.value:
            raise OrderAlreadyClaimedError(str(command.order_id))

        delivery.assign(command.rider_id)

        if not rider_repo.claim(command.rider_id, delivery.id):
            # Lost the rider slot to a concurrent accept or an availability toggle
            _check_rider(rider_repo.get(command.rider_id))
            raise RiderBusyError(str(command.rider_id))

        if not delivery_repo.claim(delivery.id, command.rider_id, delivery.assigned_at):
            rider_repo.release(command.rider_id, delivery.id)
            logger.info(
                "Order already claimed",
                order_id=str(command.order_id),
                rider_id=str(command.rider_id),
            )
            raise OrderAlreadyClaimedError(str(command.order_id))

        delivery_repo.add(delivery)

        logger.info(
            "Order claimed",
            order_id=str(command.order_id),
            delivery_id=str(delivery.id),
            rider_id=str(command.rider_id),
        )
        return str(delivery.id)
