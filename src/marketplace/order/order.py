"""Order aggregate (CQRS) — one merchant's slice of a customer checkout.

State Machine:
    PENDING → CONFIRMED → PREPARING → READY → DELIVERED
    {PENDING, CONFIRMED, PREPARING, READY} → CANCELLED
    {PENDING, CONFIRMED, PREPARING} → DELIVERED  (delivery completed first)
    {DELIVERED, CANCELLED} → REFUNDED

Pricing fields are fixed when the order is created; ``total`` always equals
``subtotal + platform_fee + delivery_fee - discount``.
"""

from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String

from marketplace.domain import marketplace
from marketplace.order.events import OrderCancelled, OrderDelivered, OrderPlaced, OrderStatusChanged
from shared.errors import InvalidTransitionError

_MONEY_TOLERANCE = 0.005


class OrderStatus(Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    PREPARING = "Preparing"
    READY = "Ready"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"
    REFUNDED = "Refunded"


class PaymentMethod(Enum):
    CASH_ON_DELIVERY = "Cash_On_Delivery"
    MOBILE_MONEY = "Mobile_Money"
    CARD = "Card"


_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED, OrderStatus.DELIVERED},
    OrderStatus.CONFIRMED: {OrderStatus.PREPARING, OrderStatus.CANCELLED, OrderStatus.DELIVERED},
    OrderStatus.PREPARING: {OrderStatus.READY, OrderStatus.CANCELLED, OrderStatus.DELIVERED},
    OrderStatus.READY: {OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.DELIVERED: {OrderStatus.REFUNDED},
    OrderStatus.CANCELLED: {OrderStatus.REFUNDED},
    OrderStatus.REFUNDED: set(),  # terminal
}

# Statuses the merchant drives by hand
MERCHANT_STATUSES = {OrderStatus.CONFIRMED, OrderStatus.PREPARING, OrderStatus.READY}

# Orders in these statuses don't count towards revenue
EXCLUDED_FROM_REVENUE = {OrderStatus.CANCELLED.value, OrderStatus.REFUNDED.value}


def order_number(order_id) -> str:
    """Short reference shown to riders and merchants, e.g. ``"3F2A9C1B"``."""
    return str(order_id).replace("-", "")[:8].upper()


@marketplace.entity(part_of="Order")
class OrderItem:
    product_id = Identifier(required=True)
    name = String(max_length=200)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)
    line_total = Float(required=True, min_value=0.0)


@marketplace.aggregate
class Order:
    checkout_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    merchant_id = Identifier(required=True)
    merchant_name = String(max_length=150)
    address_id = Identifier(required=True)
    items = HasMany(OrderItem)
    subtotal = Float(required=True, min_value=0.0)
    platform_fee = Float(required=True, min_value=0.0)
    delivery_fee = Float(required=True, min_value=0.0)
    discount = Float(default=0.0, min_value=0.0)
    total = Float(required=True, min_value=0.0)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    payment_method = String(choices=PaymentMethod, default=PaymentMethod.CASH_ON_DELIVERY.value)
    cancellation_reason = String(max_length=500)
    scheduled_for = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def total_must_match_breakdown(self):
        if self.total is None or self.subtotal is None:
            return
        expected = self.subtotal + self.platform_fee + self.delivery_fee - (self.discount or 0.0)
        if abs(self.total - expected) > _MONEY_TOLERANCE:
            raise ValidationError(
                {"total": [f"Total {self.total} does not match subtotal + fees - discount ({expected:.2f})"]}
            )

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        checkout_id,
        customer_id,
        merchant_id,
        address_id,
        items: list[dict],
        platform_fee: float,
        delivery_fee: float,
        discount: float = 0.0,
        merchant_name: str | None = None,
        payment_method: str | None = None,
        scheduled_for: datetime | None = None,
    ):
        """Create a priced order. ``items`` carry product_id, name, quantity and unit_price."""
        order_items = []
        for item in items:
            line_total = round(item["unit_price"] * item["quantity"], 2)
            order_items.append(OrderItem(**item, line_total=line_total))

        subtotal = round(sum(i.line_total for i in order_items), 2)
        total = round(subtotal + platform_fee + delivery_fee - discount, 2)
        now = datetime.now(UTC)

        order = cls(
            checkout_id=checkout_id,
            customer_id=customer_id,
            merchant_id=merchant_id,
            merchant_name=merchant_name,
            address_id=address_id,
            items=order_items,
            subtotal=subtotal,
            platform_fee=platform_fee,
            delivery_fee=delivery_fee,
            discount=discount,
            total=total,
            status=OrderStatus.PENDING.value,
            payment_method=payment_method or PaymentMethod.CASH_ON_DELIVERY.value,
            scheduled_for=scheduled_for,
            created_at=now,
            updated_at=now,
        )
        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                checkout_id=str(checkout_id),
                customer_id=str(customer_id),
                merchant_id=str(merchant_id),
                item_count=len(order_items),
                subtotal=subtotal,
                platform_fee=platform_fee,
                delivery_fee=delivery_fee,
                total=total,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # State transitions
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target: OrderStatus) -> None:
        current = OrderStatus(self.status)
        if target not in _VALID_TRANSITIONS[current]:
            raise InvalidTransitionError("Order", current.value, target.value)

    def update_status(self, target: OrderStatus) -> None:
        """Merchant-driven progress: Confirmed, Preparing, Ready."""
        if target not in MERCHANT_STATUSES:
            raise ValidationError({"status": [f"Merchants cannot set an order to {target.value}"]})
        self._assert_can_transition(target)

        previous = self.status
        now = datetime.now(UTC)
        self.status = target.value
        self.updated_at = now
        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                merchant_id=str(self.merchant_id),
                previous_status=previous,
                status=target.value,
                changed_at=now,
            )
        )

    def mark_delivered(self) -> None:
        self._assert_can_transition(OrderStatus.DELIVERED)
        now = datetime.now(UTC)
        self.status = OrderStatus.DELIVERED.value
        self.updated_at = now
        self.raise_(
            OrderDelivered(
                order_id=str(self.id),
                merchant_id=str(self.merchant_id),
                delivered_at=now,
            )
        )

    def cancel(self, reason: str | None = None) -> None:
        self._assert_can_transition(OrderStatus.CANCELLED)
        now = datetime.now(UTC)
        self.status = OrderStatus.CANCELLED.value
        self.cancellation_reason = reason
        self.updated_at = now
        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                customer_id=str(self.customer_id),
                reason=reason,
                cancelled_at=now,
            )
        )

    def mark_refunded(self) -> None:
        self._assert_can_transition(OrderStatus.REFUNDED)
        self.status = OrderStatus.REFUNDED.value
        self.updated_at = datetime.now(UTC)
