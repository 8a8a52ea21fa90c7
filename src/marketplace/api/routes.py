"""FastAPI routes for the Marketplace domain — merchants, carts, orders, riders and deliveries."""

import json

from fastapi import APIRouter, Query
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from marketplace.analytics.earnings import get_earnings, get_rider_stats
from marketplace.analytics.merchant_analytics import get_analytics
from marketplace.api.schemas import (
    AcceptOrderRequest,
    AcceptOrderResponse,
    AddCartItemRequest,
    AdvanceDeliveryRequest,
    AvailableOrderSchema,
    CancelOrderRequest,
    CartIdResponse,
    CheckoutRequest,
    CheckoutResponse,
    CreateCartRequest,
    CurrentDeliveryResponse,
    DeliveryHistoryResponse,
    DeliveryStatusResponse,
    ListProductRequest,
    LocationRequest,
    MerchantAnalyticsResponse,
    MerchantIdResponse,
    MerchantOrderSchema,
    OrderStatusResponse,
    ProductAvailabilityRequest,
    ProductIdResponse,
    RegisterMerchantRequest,
    RegisterRiderRequest,
    RepriceProductRequest,
    RiderAvailabilityRequest,
    RiderAvailabilityResponse,
    RiderEarningsResponse,
    RiderIdResponse,
    RiderStatsResponse,
    StatusResponse,
    UpdateCartItemRequest,
    UpdateOrderStatusRequest,
)
from marketplace.cart.management import AddCartItem, CreateCart, RemoveCartItem, UpdateCartItemQuantity
from marketplace.catalogue.management import ListProduct, RegisterMerchant, RepriceProduct, SetProductAvailability
from marketplace.delivery.progress import AdvanceDelivery
from marketplace.dispatch.matcher import AcceptOrder
from marketplace.dispatch.queries import get_current_delivery, get_delivery_history, list_available_orders
from marketplace.order.cancellation import CancelOrder, MarkOrderRefunded
from marketplace.order.checkout import PlaceOrder
from marketplace.order.preparation import UpdateOrderStatus
from marketplace.order.queries import DEFAULT_RECENT_ORDERS, list_merchant_orders
from marketplace.rider.management import RegisterRider, SetRiderAvailability, UpdateRiderLocation

# ---------------------------------------------------------------------------
# Merchant Router
# ---------------------------------------------------------------------------
merchant_router = APIRouter(prefix="/merchants", tags=["merchants"])


@merchant_router.post("", status_code=201, response_model=MerchantIdResponse)
async def register_merchant(body: RegisterMerchantRequest) -> MerchantIdResponse:
    command = RegisterMerchant(
        owner_id=body.owner_id,
        name=body.name,
        phone=body.phone,
        pickup_address=body.pickup_address,
        latitude=body.latitude,
        longitude=body.longitude,
    )
    result = current_domain.process(command, asynchronous=False)
    return MerchantIdResponse(merchant_id=result)


@merchant_router.post("/{merchant_id}/products", status_code=201, response_model=ProductIdResponse)
async def list_product(merchant_id: str, body: ListProductRequest) -> ProductIdResponse:
    command = ListProduct(
        merchant_id=merchant_id,
        name=body.name,
        unit_price=body.unit_price,
        stock_quantity=body.stock_quantity,
    )
    result = current_domain.process(command, asynchronous=False)
    return ProductIdResponse(product_id=result)


@merchant_router.put("/{merchant_id}/orders/{order_id}/status", response_model=OrderStatusResponse)
async def update_order_status(merchant_id: str, order_id: str, body: UpdateOrderStatusRequest) -> OrderStatusResponse:
    command = UpdateOrderStatus(order_id=order_id, merchant_id=merchant_id, status=body.status)
    status = current_domain.process(command, asynchronous=False)
    return OrderStatusResponse(order_id=order_id, status=status)


@merchant_router.get("/{merchant_id}/orders", response_model=list[MerchantOrderSchema])
async def merchant_orders(
    merchant_id: str,
    status: str | None = Query(None),
    limit: int = Query(DEFAULT_RECENT_ORDERS),
) -> list[MerchantOrderSchema]:
    return [MerchantOrderSchema.model_validate(o) for o in list_merchant_orders(merchant_id, status=status, limit=limit)]


@merchant_router.get("/{merchant_id}/analytics", response_model=MerchantAnalyticsResponse)
async def merchant_analytics(merchant_id: str, filter: str = Query("7days")) -> MerchantAnalyticsResponse:  # noqa: A002
    return MerchantAnalyticsResponse.model_validate(get_analytics(merchant_id, filter))


# ---------------------------------------------------------------------------
# Product Router
# ---------------------------------------------------------------------------
product_router = APIRouter(prefix="/products", tags=["products"])


@product_router.put("/{product_id}/availability", response_model=StatusResponse)
async def set_product_availability(product_id: str, body: ProductAvailabilityRequest) -> StatusResponse:
    command = SetProductAvailability(product_id=product_id, is_available=body.is_available)
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@product_router.put("/{product_id}/price", response_model=StatusResponse)
async def reprice_product(product_id: str, body: RepriceProductRequest) -> StatusResponse:
    command = RepriceProduct(product_id=product_id, unit_price=body.unit_price)
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/carts", tags=["carts"])


@cart_router.post("", status_code=201, response_model=CartIdResponse)
async def create_cart(body: CreateCartRequest) -> CartIdResponse:
    result = current_domain.process(CreateCart(customer_id=body.customer_id), asynchronous=False)
    return CartIdResponse(cart_id=result)


@cart_router.post("/{cart_id}/items", response_model=StatusResponse)
async def add_cart_item(cart_id: str, body: AddCartItemRequest) -> StatusResponse:
    command = AddCartItem(cart_id=cart_id, product_id=body.product_id, quantity=body.quantity)
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@cart_router.put("/{cart_id}/items/{product_id}", response_model=StatusResponse)
async def update_cart_item(cart_id: str, product_id: str, body: UpdateCartItemRequest) -> StatusResponse:
    command = UpdateCartItemQuantity(cart_id=cart_id, product_id=product_id, quantity=body.quantity)
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@cart_router.delete("/{cart_id}/items/{product_id}", response_model=StatusResponse)
async def remove_cart_item(cart_id: str, product_id: str) -> StatusResponse:
    current_domain.process(RemoveCartItem(cart_id=cart_id, product_id=product_id), asynchronous=False)
    return StatusResponse()


@cart_router.post("/{cart_id}/checkout", status_code=201, response_model=CheckoutResponse)
async def checkout_cart(cart_id: str, body: CheckoutRequest) -> CheckoutResponse:
    """Split the cart into one order per merchant."""
    command = PlaceOrder(
        customer_id=body.customer_id,
        cart_id=cart_id,
        address_id=body.address_id,
        payment_method=body.payment_method,
        scheduled_for=body.scheduled_for,
        delivery_fees=json.dumps(body.delivery_fees) if body.delivery_fees else None,
        discounts=json.dumps(body.discounts) if body.discounts else None,
    )
    result = current_domain.process(command, asynchronous=False)
    return CheckoutResponse.model_validate(result)


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.put("/{order_id}/cancel", response_model=OrderStatusResponse)
async def cancel_order(order_id: str, body: CancelOrderRequest) -> OrderStatusResponse:
    command = CancelOrder(order_id=order_id, customer_id=body.customer_id, reason=body.reason)
    status = current_domain.process(command, asynchronous=False)
    return OrderStatusResponse(order_id=order_id, status=status)


@order_router.put("/{order_id}/refund", response_model=OrderStatusResponse)
async def refund_order(order_id: str) -> OrderStatusResponse:
    status = current_domain.process(MarkOrderRefunded(order_id=order_id), asynchronous=False)
    return OrderStatusResponse(order_id=order_id, status=status)


# ---------------------------------------------------------------------------
# Rider Router
# ---------------------------------------------------------------------------
rider_router = APIRouter(prefix="/riders", tags=["riders"])


@rider_router.post("", status_code=201, response_model=RiderIdResponse)
async def register_rider(body: RegisterRiderRequest) -> RiderIdResponse:
    command = RegisterRider(
        user_id=body.user_id,
        name=body.name,
        phone=body.phone,
        vehicle_type=body.vehicle_type,
    )
    result = current_domain.process(command, asynchronous=False)
    return RiderIdResponse(rider_id=result)


@rider_router.put("/{rider_id}/availability", response_model=RiderAvailabilityResponse)
async def set_rider_availability(rider_id: str, body: RiderAvailabilityRequest) -> RiderAvailabilityResponse:
    command = SetRiderAvailability(rider_id=rider_id, is_available=body.is_available)
    is_available = current_domain.process(command, asynchronous=False)
    return RiderAvailabilityResponse(rider_id=rider_id, is_available=is_available)


@rider_router.put("/{rider_id}/location", response_model=StatusResponse)
async def update_rider_location(rider_id: str, body: LocationRequest) -> StatusResponse:
    command = UpdateRiderLocation(rider_id=rider_id, latitude=body.latitude, longitude=body.longitude)
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@rider_router.get("/{rider_id}/available-orders", response_model=list[AvailableOrderSchema])
async def available_orders(rider_id: str, limit: int | None = Query(None, ge=1, le=100)) -> list[AvailableOrderSchema]:
    return [AvailableOrderSchema.model_validate(o) for o in list_available_orders(rider_id, limit)]


@rider_router.post("/{rider_id}/accept", response_model=AcceptOrderResponse)
async def accept_order(rider_id: str, body: AcceptOrderRequest) -> AcceptOrderResponse:
    delivery_id = current_domain.process(AcceptOrder(rider_id=rider_id, order_id=body.order_id), asynchronous=False)
    return AcceptOrderResponse(delivery_id=delivery_id, order_id=body.order_id, status="Assigned")


@rider_router.get("/{rider_id}/current-delivery", response_model=CurrentDeliveryResponse)
async def current_delivery(rider_id: str) -> CurrentDeliveryResponse:
    delivery = get_current_delivery(rider_id)
    if delivery is None:
        raise ObjectNotFoundError(f"Rider {rider_id} has no active delivery")
    return CurrentDeliveryResponse(
        delivery_id=str(delivery.id),
        order_id=str(delivery.order_id),
        status=delivery.status,
        merchant_name=delivery.merchant_name,
        merchant_phone=delivery.merchant_phone,
        pickup_address=delivery.pickup_address,
        delivery_fee=delivery.delivery_fee,
        assigned_at=delivery.assigned_at,
        picked_up_at=delivery.picked_up_at,
        in_transit_at=delivery.in_transit_at,
    )


@rider_router.get("/{rider_id}/earnings", response_model=RiderEarningsResponse)
async def rider_earnings(rider_id: str) -> RiderEarningsResponse:
    return RiderEarningsResponse.model_validate(get_earnings(rider_id))


@rider_router.get("/{rider_id}/stats", response_model=RiderStatsResponse)
async def rider_stats(rider_id: str) -> RiderStatsResponse:
    return RiderStatsResponse.model_validate(get_rider_stats(rider_id))


@rider_router.get("/{rider_id}/deliveries/history", response_model=DeliveryHistoryResponse)
async def delivery_history(rider_id: str, page: int = Query(1), limit: int = Query(20)) -> DeliveryHistoryResponse:
    return DeliveryHistoryResponse.model_validate(get_delivery_history(rider_id, page=page, limit=limit))


# ---------------------------------------------------------------------------
# Delivery Router
# ---------------------------------------------------------------------------
delivery_router = APIRouter(prefix="/deliveries", tags=["deliveries"])


@delivery_router.put("/{delivery_id}/status", response_model=DeliveryStatusResponse)
async def advance_delivery(delivery_id: str, body: AdvanceDeliveryRequest) -> DeliveryStatusResponse:
    command = AdvanceDelivery(
        delivery_id=delivery_id,
        rider_id=body.rider_id,
        status=body.status,
        latitude=body.latitude,
        longitude=body.longitude,
        reason=body.reason,
    )
    status = current_domain.process(command, asynchronous=False)
    return DeliveryStatusResponse(delivery_id=delivery_id, status=status)
