"""Order read side for merchants: the latest orders placed with a shop.

Merchants poll this to find Pending orders they still have to confirm;
``status`` narrows the list to one stage of the order lifecycle.
"""

from dataclasses import dataclass
from datetime import datetime

from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from marketplace.catalogue.merchant import Merchant
from marketplace.order.order import Order, OrderStatus, order_number
from shared.clock import as_utc

DEFAULT_RECENT_ORDERS = 10
MAX_RECENT_ORDERS = 100


@dataclass(frozen=True)
class MerchantOrderSummary:
    order_id: str
    order_number: str
    customer_id: str
    item_summary: str
    item_count: int
    status: str
    total: float
    scheduled_for: datetime | None
    created_at: datetime


def _item_summary(order: Order) -> str:
    names = [item.name or "Item" for item in order.items]
    if not names:
        return ""
    if len(names) == 1:
        return names[0]
    return f"{names[0]} and {len(names) - 1} more"


def list_merchant_orders(merchant_id, status: str | None = None, limit: int = DEFAULT_RECENT_ORDERS) -> list[MerchantOrderSummary]:
    errors = {}
    if status is not None and status not in {s.value for s in OrderStatus}:
        allowed = ", ".join(s.value for s in OrderStatus)
        errors["status"] = [f"Status must be one of: {allowed}"]
    if not 1 <= limit <= MAX_RECENT_ORDERS:
        errors["limit"] = [f"Limit must be between 1 and {MAX_RECENT_ORDERS}"]
    if errors:
        raise ValidationError(errors)

    current_domain.repository_for(Merchant).get(merchant_id)

    orders = current_domain.repository_for(Order).for_merchant(merchant_id)
    if status is not None:
        orders = [o for o in orders if o.status == status]
    orders = sorted(orders, key=lambda o: (as_utc(o.created_at), str(o.id)), reverse=True)[:limit]

    return [
        MerchantOrderSummary(
            order_id=str(order.id),
            order_number=order_number(order.id),
            customer_id=str(order.customer_id),
            item_summary=_item_summary(order),
            item_count=sum(item.quantity for item in order.items),
            status=order.status,
            total=order.total,
            scheduled_for=as_utc(order.scheduled_for),
            created_at=as_utc(order.created_at),
        )
        for order in orders
    ]
