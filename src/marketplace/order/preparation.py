"""Merchant-side order progress — confirm, prepare, mark ready."""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.order.order import MERCHANT_STATUSES, Order, OrderStatus
from shared.errors import AuthorizationError


@marketplace.command(part_of="Order")
class UpdateOrderStatus:
    order_id: Identifier(required=True)
    merchant_id: Identifier(required=True)
    status: String(required=True, max_length=20)


@marketplace.command_handler(part_of=Order)
class OrderPreparationHandler:
    @handle(UpdateOrderStatus)
    def update_status(self, command):
        try:
            target = OrderStatus(command.status)
        except ValueError:
            target = None
        if target not in MERCHANT_STATUSES:
            allowed = ", ".join(sorted(s.value for s in MERCHANT_STATUSES))
            raise ValidationError({"status": [f"Status must be one of: {allowed}"]})

        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        if str(order.merchant_id) != str(command.merchant_id):
            raise AuthorizationError(f"Order {order.id} does not belong to merchant {command.merchant_id}")

        order.update_status(target)
        repo.add(order)
        return order.status
