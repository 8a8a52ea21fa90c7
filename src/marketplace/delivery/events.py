"""Delivery domain events — immutable facts about a delivery's progress.

``DeliveryCompleted`` is also consumed by the Payouts domain to settle the
merchant; its contract lives in ``shared.events.marketplace``.
"""

from protean.fields import DateTime, Float, Identifier, String

from marketplace.domain import marketplace


@marketplace.event(part_of="Delivery")
class DeliveryCreated:
    __version__ = 1

    delivery_id = Identifier(required=True)
    order_id = Identifier(required=True)
    merchant_id = Identifier(required=True)
    delivery_fee = Float(required=True)
    created_at = DateTime(required=True)


@marketplace.event(part_of="Delivery")
class DeliveryAssigned:
    """A rider claimed the delivery."""

    __version__ = 1

    delivery_id = Identifier(required=True)
    order_id = Identifier(required=True)
    rider_id = Identifier(required=True)
    assigned_at = DateTime(required=True)


@marketplace.event(part_of="Delivery")
class DeliveryAdvanced:
    """The assigned rider moved the delivery to its next status."""

    __version__ = 1

    delivery_id = Identifier(required=True)
    order_id = Identifier(required=True)
    rider_id = Identifier(required=True)
    previous_status = String(required=True)
    status = String(required=True)
    latitude = Float()
    longitude = Float()
    occurred_at = DateTime(required=True)


@marketplace.event(part_of="Delivery")
class DeliveryCompleted:
    """The order reached the customer. Triggers merchant settlement."""

    __version__ = 1

    delivery_id = Identifier(required=True)
    order_id = Identifier(required=True)
    merchant_id = Identifier(required=True)
    merchant_name = String()
    merchant_phone = String()
    rider_id = Identifier(required=True)
    order_subtotal = Float(required=True)
    platform_fee = Float(required=True)
    delivery_fee = Float(required=True)
    delivered_at = DateTime(required=True)


@marketplace.event(part_of="Delivery")
class DeliveryFailed:
    __version__ = 1

    delivery_id = Identifier(required=True)
    order_id = Identifier(required=True)
    rider_id = Identifier(required=True)
    reason = String()
    failed_at = DateTime(required=True)


@marketplace.event(part_of="Delivery")
class DeliveryCancelled:
    __version__ = 1

    delivery_id = Identifier(required=True)
    order_id = Identifier(required=True)
    rider_id = Identifier()
    reason = String()
    cancelled_at = DateTime(required=True)
