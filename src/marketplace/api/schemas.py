"""Pydantic request/response schemas for the Marketplace API.

These are external contracts (anti-corruption layer) — separate from
internal Protean commands.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class StatusResponse(BaseModel):
    status: str = "ok"


# ---------------------------------------------------------------------------
# Merchants & products
# ---------------------------------------------------------------------------
class RegisterMerchantRequest(BaseModel):
    owner_id: str
    name: str = Field(min_length=1, max_length=150)
    phone: str | None = None
    pickup_address: str | None = None
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)


class MerchantIdResponse(BaseModel):
    merchant_id: str


class ListProductRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    unit_price: float = Field(gt=0)
    stock_quantity: int | None = Field(default=None, ge=0)


class ProductIdResponse(BaseModel):
    product_id: str


class ProductAvailabilityRequest(BaseModel):
    is_available: bool


class RepriceProductRequest(BaseModel):
    unit_price: float = Field(gt=0)


# ---------------------------------------------------------------------------
# Carts & checkout
# ---------------------------------------------------------------------------
class CreateCartRequest(BaseModel):
    customer_id: str


class CartIdResponse(BaseModel):
    cart_id: str


class AddCartItemRequest(BaseModel):
    product_id: str
    quantity: int = Field(ge=1, default=1)


class UpdateCartItemRequest(BaseModel):
    quantity: int = Field(ge=1)


class CheckoutRequest(BaseModel):
    customer_id: str
    address_id: str
    payment_method: str | None = None
    scheduled_for: datetime | None = None
    delivery_fees: dict[str, float] | None = Field(
        default=None, description="Delivery fee per merchant id, when quoted by an external service"
    )
    discounts: dict[str, float] | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "customer_id": "cust-001",
                    "address_id": "addr-001",
                    "payment_method": "Mobile_Money",
                }
            ]
        }
    }


class PlacedOrderSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

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


class CheckoutSummarySchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    order_count: int
    total_amount: float
    merchant_names: list[str]


class CheckoutResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    kind: str
    checkout_id: str
    orders: list[PlacedOrderSchema]
    summary: CheckoutSummarySchema | None = None


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
class UpdateOrderStatusRequest(BaseModel):
    status: str


class CancelOrderRequest(BaseModel):
    customer_id: str
    reason: str | None = None


class OrderStatusResponse(BaseModel):
    order_id: str
    status: str


# ---------------------------------------------------------------------------
# Riders & deliveries
# ---------------------------------------------------------------------------
class RegisterRiderRequest(BaseModel):
    user_id: str
    name: str = Field(min_length=1, max_length=100)
    phone: str | None = None
    vehicle_type: str | None = None


class RiderIdResponse(BaseModel):
    rider_id: str


class RiderAvailabilityRequest(BaseModel):
    is_available: bool


class RiderAvailabilityResponse(BaseModel):
    rider_id: str
    is_available: bool


class LocationRequest(BaseModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


class AvailableOrderSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    order_id: str
    delivery_id: str
    merchant_id: str
    merchant_name: str | None
    pickup_address: str | None
    order_subtotal: float
    delivery_fee: float
    rider_earning: float
    distance_km: float | None
    estimated_minutes: int | None
    created_at: datetime


class AcceptOrderRequest(BaseModel):
    order_id: str


class AcceptOrderResponse(BaseModel):
    delivery_id: str
    order_id: str
    status: str


class AdvanceDeliveryRequest(BaseModel):
    rider_id: str
    status: str
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    reason: str | None = None


class DeliveryStatusResponse(BaseModel):
    delivery_id: str
    status: str


class CurrentDeliveryResponse(BaseModel):
    delivery_id: str
    order_id: str
    status: str
    merchant_name: str | None = None
    merchant_phone: str | None = None
    pickup_address: str | None = None
    delivery_fee: float
    assigned_at: datetime | None = None
    picked_up_at: datetime | None = None
    in_transit_at: datetime | None = None


class EarningsWindowSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    earnings: float
    deliveries: int
    hours: float


class RiderEarningsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    rider_id: str
    today: EarningsWindowSchema
    this_week: EarningsWindowSchema
    this_month: EarningsWindowSchema


class RiderStatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    rider_id: str
    total_earnings: float
    total_deliveries: int
    total_hours: float
    completion_rate: float


class DeliveryHistoryEntrySchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    delivery_id: str
    order_id: str
    order_number: str
    merchant_name: str | None = None
    pickup_address: str | None = None
    delivery_fee: float
    rider_earning: float
    status: str
    picked_up_at: datetime | None = None
    finished_at: datetime | None = None
    duration_minutes: int
    created_at: datetime


class DeliveryHistoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    deliveries: list[DeliveryHistoryEntrySchema]
    page: int
    limit: int
    total: int
    total_pages: int


# ---------------------------------------------------------------------------
# Merchant orders
# ---------------------------------------------------------------------------
class MerchantOrderSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    order_id: str
    order_number: str
    customer_id: str
    item_summary: str
    item_count: int
    status: str
    total: float
    scheduled_for: datetime | None = None
    created_at: datetime


# ---------------------------------------------------------------------------
# Merchant analytics
# ---------------------------------------------------------------------------
class MetricSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    value: float
    previous: float
    growth: float


class RevenuePointSchema(BaseModel):
    period: str
    starts_at: datetime
    revenue: float
    orders: int


class TopItemSchema(BaseModel):
    product_id: str
    name: str | None
    quantity: int
    revenue: float


class CustomerInsightsSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    peak_hour: str | None
    popular_day: str | None
    repeat_customer_rate: float
    delivery_success_rate: float


class MerchantAnalyticsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    merchant_id: str
    filter: str
    revenue: MetricSchema
    orders: MetricSchema
    customers: MetricSchema
    average_order_value: MetricSchema
    revenue_trend: list[RevenuePointSchema]
    top_items: list[TopItemSchema]
    insights: CustomerInsightsSchema | None = None
