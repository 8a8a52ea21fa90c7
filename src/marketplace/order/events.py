"""Order domain events."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from marketplace.domain import marketplace


@marketplace.event(part_of="Order")
class OrderPlaced:
    """A per-merchant order was created from a checkout."""

    __version__ = 1

    order_id = Identifier(required=True)
    checkout_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    merchant_id = Identifier(required=True)
    item_count = Integer(required=True)
    subtotal = Float(required=True)
    platform_fee = Float(required=True)
    delivery_fee = Float(required=True)
    total = Float(required=True)
    placed_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class OrderStatusChanged:
    """The merchant moved the order through preparation."""

    __version__ = 1

    order_id = Identifier(required=True)
    merchant_id = Identifier(required=True)
    previous_status = String(required=True)
    status = String(required=True)
    changed_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class OrderDelivered:
    __version__ = 1

    order_id = Identifier(required=True)
    merchant_id = Identifier(required=True)
    delivered_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class OrderCancelled:
    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    reason = String()
    cancelled_at = DateTime(required=True)
