"""Dispatch read side: available orders, a rider's current delivery and their history."""

from dataclasses import dataclass
from datetime import datetime
from math import ceil

from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from marketplace.delivery.delivery import Delivery, DeliveryStatus
from marketplace.order.order import order_number
from marketplace.rider.rider import Rider
from marketplace.shared.geo import haversine_km
from shared.clock import as_utc
from shared.settings import get_settings

MAX_HISTORY_PAGE_SIZE = 100


@dataclass(frozen=True)
class AvailableOrder:
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


def list_available_orders(rider_id, limit: int | None = None) -> list[AvailableOrder]:
    """Pending deliveries a rider can accept.

    Oldest first. When the rider's location is known, deliveries picked up
    beyond the dispatch radius are dropped and the rest are ranked nearest
    first. Riders who are off duty see nothing.
    """
    settings = get_settings()
    limit = limit or settings.available_orders_limit

    rider = current_domain.repository_for(Rider).get(rider_id)
    if not rider.is_available:
        return []

    origin = rider.current_location
    radius = settings.dispatch_radius_km
    candidates = []
    for delivery in current_domain.repository_for(Delivery).pending():
        distance = None
        if origin is not None and delivery.pickup_location is not None:
            distance = round(haversine_km(origin, delivery.pickup_location), 2)
            if radius is not None and distance > radius:
                continue

        candidates.append(
            AvailableOrder(
                order_id=str(delivery.order_id),
                delivery_id=str(delivery.id),
                merchant_id=str(delivery.merchant_id),
                merchant_name=delivery.merchant_name,
                pickup_address=delivery.pickup_address,
                order_subtotal=delivery.order_subtotal,
                delivery_fee=delivery.delivery_fee,
                rider_earning=round(delivery.delivery_fee * settings.rider_commission, 2),
                distance_km=distance,
                estimated_minutes=round(distance * settings.minutes_per_km) if distance is not None else None,
                created_at=as_utc(delivery.created_at),
            )
        )

    if origin is not None:
        # Unknown pickup points sort after every known distance
        candidates.sort(key=lambda c: (c.distance_km is None, c.distance_km or 0.0, c.created_at))

    return candidates[:limit]


def get_current_delivery(rider_id) -> Delivery | None:
    """The rider's delivery in Assigned, Picked_Up or In_Transit, if any."""
    current_domain.repository_for(Rider).get(rider_id)
    return current_domain.repository_for(Delivery).active_for_rider(rider_id)


@dataclass(frozen=True)
class DeliveryHistoryEntry:
    delivery_id: str
    order_id: str
    order_number: str
    merchant_name: str | None
    pickup_address: str | None
    delivery_fee: float
    rider_earning: float
    status: str
    picked_up_at: datetime | None
    finished_at: datetime | None
    duration_minutes: int
    created_at: datetime


@dataclass(frozen=True)
class DeliveryHistoryPage:
    deliveries: list[DeliveryHistoryEntry]
    page: int
    limit: int
    total: int
    total_pages: int


def _history_entry(delivery: Delivery, commission: float) -> DeliveryHistoryEntry:
    finished_at = as_utc(delivery.delivered_at or delivery.failed_at or delivery.cancelled_at)
    picked_up_at = as_utc(delivery.picked_up_at)
    earned = 0.0
    if delivery.status == DeliveryStatus.DELIVERED.value:
        earned = round(delivery.delivery_fee * commission, 2)
    duration = 0
    if picked_up_at and finished_at:
        duration = ceil((finished_at - picked_up_at).total_seconds() / 60)
    return DeliveryHistoryEntry(
        delivery_id=str(delivery.id),
        order_id=str(delivery.order_id),
        order_number=order_number(delivery.order_id),
        merchant_name=delivery.merchant_name,
        pickup_address=delivery.pickup_address,
        delivery_fee=delivery.delivery_fee,
        rider_earning=earned,
        status=delivery.status,
        picked_up_at=picked_up_at,
        finished_at=finished_at,
        duration_minutes=duration,
        created_at=as_utc(delivery.created_at),
    )


def get_delivery_history(rider_id, page: int = 1, limit: int = 20) -> DeliveryHistoryPage:
    """Finished deliveries (Delivered, Failed or Cancelled) for a rider, newest first."""
    errors = {}
    if page < 1:
        errors["page"] = ["Page must be at least 1"]
    if not 1 <= limit <= MAX_HISTORY_PAGE_SIZE:
        errors["limit"] = [f"Limit must be between 1 and {MAX_HISTORY_PAGE_SIZE}"]
    if errors:
        raise ValidationError(errors)

    current_domain.repository_for(Rider).get(rider_id)
    finished = current_domain.repository_for(Delivery).finished_by_rider(rider_id)
    commission = get_settings().rider_commission

    offset = (page - 1) * limit
    return DeliveryHistoryPage(
        deliveries=[_history_entry(d, commission) for d in finished[offset : offset + limit]],
        page=page,
        limit=limit,
        total=len(finished),
        total_pages=ceil(len(finished) / limit),
    )
