"""Checkout — splits a multi-merchant cart into one priced order per merchant.

Every merchant group becomes an Order plus its PENDING Delivery. Prices are
re-read from the catalogue, never taken from the cart. All groups are priced
before anything is written, and the orders, deliveries and the cleared cart
are persisted in the handler's single unit of work: if any group fails, the
whole checkout fails and the cart is left as it was.
"""

import json
from dataclasses import dataclass, field
from uuid import uuid4

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, String, Text
from protean.utils.globals import current_domain

from marketplace.address.address import Address
from marketplace.cart.cart import ShoppingCart
from marketplace.catalogue.merchant import Merchant
from marketplace.catalogue.product import Product
from marketplace.delivery.delivery import Delivery
from marketplace.domain import marketplace
from marketplace.order.order import Order
from marketplace.pricing.fees import compute_fee
from shared.errors import AddressNotOwnedError, AuthorizationError, EmptyCartError, ProductUnavailableError
from shared.settings import get_settings

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class PlacedOrder:
    order_id: str
    delivery_id: str
    merchant_id: str
    merchant_name: str | None
    item_count: int
    subtotal: float
    platform_fee: float
    delivery_fee: float
    discount: float
    total: float


@dataclass(frozen=True)
class CheckoutSummary:
    order_count: int
    total_amount: float
    merchant_names: list[str]


@dataclass(frozen=True)
class OrderCreationResult:
    """``kind`` is ``"single"`` for one merchant and ``"multi"`` otherwise.

    Only multi-merchant results carry a ``summary``.
    """

    kind: str
    checkout_id: str
    orders: list[PlacedOrder] = field(default_factory=list)
    summary: CheckoutSummary | None = None


@marketplace.command(part_of="Order")
class PlaceOrder:
    customer_id: Identifier(required=True)
    cart_id: Identifier(required=True)
    address_id: Identifier(required=True)
    payment_method: String(max_length=30)
    scheduled_for: DateTime()
    delivery_fees: Text()  # JSON object: merchant_id -> fee quoted by an external service
    discounts: Text()  # JSON object: merchant_id -> discount amount


def _parse_amounts(raw, name) -> dict[str, float]:
    if not raw:
        return {}
    try:
        amounts = json.loads(raw) if isinstance(raw, str) else dict(raw)
    except (json.JSONDecodeError, TypeError, ValueError):
        raise ValidationError({name: ["Must be a JSON object of merchant_id to amount"]}) from None
    if not isinstance(amounts, dict) or any(
        not isinstance(v, int | float) or isinstance(v, bool) or v < 0 for v in amounts.values()
    ):
        raise ValidationError({name: ["Amounts must be non-negative numbers"]})
    return {str(k): float(v) for k, v in amounts.items()}


def _group_by_merchant(items) -> dict[str, list]:
    """Group cart items by merchant, keeping first-seen merchant and item order."""
    groups: dict[str, list] = {}
    for item in items:
        groups.setdefault(str(item.merchant_id), []).append(item)
    return groups


def _price_lines(merchant_id, cart_items) -> list[dict]:
    product_repo = current_domain.repository_for(Product)
    lines = []
    for cart_item in cart_items:
        product = product_repo.get(str(cart_item.product_id))
        if str(product.merchant_id) != merchant_id:
            raise ProductUnavailableError(str(product.id), reason="Product has moved to another merchant")
        if not product.can_supply(cart_item.quantity):
            raise ProductUnavailableError(str(product.id))
        lines.append(
            {
                "product_id": str(product.id),
                "name": product.name,
                "quantity": cart_item.quantity,
                "unit_price": product.unit_price,
            }
        )
    return lines


@marketplace.command_handler(part_of=Order)
class CheckoutHandler:
    @handle(PlaceOrder)
    def place_order(self, command) -> OrderCreationResult:
        settings = get_settings()
        cart_repo = current_domain.repository_for(ShoppingCart)

        cart = cart_repo.get(command.cart_id)
        if str(cart.customer_id) != str(command.customer_id):
            raise AuthorizationError(f"Cart {command.cart_id} does not belong to customer {command.customer_id}")
        if not cart.items:
            raise EmptyCartError(str(cart.id))

        address = current_domain.repository_for(Address).get(command.address_id)
        if not address.is_owned_by(command.customer_id):
            raise AddressNotOwnedError(str(address.id), str(command.customer_id))

        delivery_fees = _parse_amounts(command.delivery_fees, "delivery_fees")
        discounts = _parse_amounts(command.discounts, "discounts")
        checkout_id = str(uuid4())
        merchant_repo = current_domain.repository_for(Merchant)

        # Price every group before writing anything
        priced = []
        for merchant_id, cart_items in _group_by_merchant(cart.items).items():
            merchant = merchant_repo.get(merchant_id)
            lines = _price_lines(merchant_id, cart_items)
            subtotal = round(sum(line["unit_price"] * line["quantity"] for line in lines), 2)

            order = Order.place(
                checkout_id=checkout_id,
                customer_id=command.customer_id,
                merchant_id=merchant_id,
                merchant_name=merchant.name,
                address_id=str(address.id),
                items=lines,
                platform_fee=compute_fee(subtotal),
                delivery_fee=delivery_fees.get(merchant_id, settings.flat_delivery_fee),
                discount=discounts.get(merchant_id, 0.0),
                payment_method=command.payment_method,
                scheduled_for=command.scheduled_for,
            )
            delivery = Delivery.for_order(order, merchant, dropoff_location=address.location)
            priced.append((order, delivery))

        order_repo = current_domain.repository_for(Order)
        delivery_repo = current_domain.repository_for(Delivery)
        for order, delivery in priced:
            order_repo.add(order)
            delivery_repo.add(delivery)

        cart.clear()
        cart_repo.add(cart)

        placed = [
            PlacedOrder(
                order_id=str(order.id),
                delivery_id=str(delivery.id),
                merchant_id=str(order.merchant_id),
                merchant_name=order.merchant_name,
                item_count=len(order.items),
                subtotal=order.subtotal,
                platform_fee=order.platform_fee,
                delivery_fee=order.delivery_fee,
                discount=order.discount,
                total=order.total,
            )
            for order, delivery in priced
        ]
        logger.info(
            "Checkout split into orders",
            checkout_id=checkout_id,
            customer_id=str(command.customer_id),
            order_count=len(placed),
        )

        if len(placed) == 1:
            return OrderCreationResult(kind="single", checkout_id=checkout_id, orders=placed)

        return OrderCreationResult(
            kind="multi",
            checkout_id=checkout_id,
            orders=placed,
            summary=CheckoutSummary(
                order_count=len(placed),
                total_amount=round(sum(o.total for o in placed), 2),
                merchant_names=[o.merchant_name or "" for o in placed],
            ),
        )
