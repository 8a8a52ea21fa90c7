"""Cross-domain event contracts for Marketplace domain events.

These classes define the event shape for consumption by other domains
(the Payouts domain settles merchants when a delivery completes). They are
registered as external events via domain.register_external_event() with
matching __type__ strings so Protean's stream deserialization works.

The source-of-truth events are in src/marketplace/delivery/events.py.
"""

from protean.core.event import BaseEvent
from protean.fields import DateTime, Float, Identifier, String


class DeliveryCompleted(BaseEvent):
    """The order reached the customer."""

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
