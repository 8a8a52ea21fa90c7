"""Rider earnings over fixed calendar windows.

A rider earns ``delivery_fee * rider_commission`` for every delivery they
complete. Windows start at midnight UTC today, Sunday midnight for the
current week, and the first of the month.

Lifetime stats cover every delivery the rider has been assigned. The
completion rate counts finished deliveries only: the share that ended
Delivered rather than Failed or Cancelled.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta

from protean.utils.globals import current_domain

from marketplace.delivery.delivery import ACTIVE_STATUSES, Delivery, DeliveryStatus
from marketplace.rider.rider import Rider
from shared.clock import as_utc, utc_now
from shared.settings import get_settings


@dataclass(frozen=True)
class EarningsWindow:
    earnings: float
    deliveries: int
    hours: float


@dataclass(frozen=True)
class RiderEarnings:
    rider_id: str
    today: EarningsWindow
    this_week: EarningsWindow
    this_month: EarningsWindow


def window_starts(now: datetime) -> tuple[datetime, datetime, datetime]:
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    # weekday(): Monday=0 .. Sunday=6
    week = today - timedelta(days=(today.weekday() + 1) % 7)
    month = today.replace(day=1)
    return today, week, month


def _summarise(deliveries, commission: float) -> EarningsWindow:
    seconds = sum(
        (as_utc(d.delivered_at) - as_utc(d.picked_up_at)).total_seconds() for d in deliveries if d.picked_up_at and d.delivered_at
    )
    return EarningsWindow(
        earnings=round(sum(d.delivery_fee * commission for d in deliveries), 2),
        deliveries=len(deliveries),
        hours=round(seconds / 3600, 2),
    )


def get_earnings(rider_id, now: datetime | None = None) -> RiderEarnings:
    current_domain.repository_for(Rider).get(rider_id)

    now = as_utc(now) if now else utc_now()
    commission = get_settings().rider_commission
    today, week, month = window_starts(now)

    delivered = current_domain.repository_for(Delivery).delivered_by_rider(rider_id, since=min(week, month))

    def within(start):
        return [d for d in delivered if start <= as_utc(d.delivered_at) <= now]

    return RiderEarnings(
        rider_id=str(rider_id),
        today=_summarise(within(today), commission),
        this_week=_summarise(within(week), commission),
        this_month=_summarise(within(month), commission),
    )


@dataclass(frozen=True)
class RiderStats:
    rider_id: str
    total_earnings: float
    total_deliveries: int
    total_hours: float
    completion_rate: float


def get_rider_stats(rider_id) -> RiderStats:
    current_domain.repository_for(Rider).get(rider_id)

    assigned = current_domain.repository_for(Delivery).for_rider(rider_id)
    delivered = [d for d in assigned if d.status == DeliveryStatus.DELIVERED.value]
    settled = [d for d in assigned if DeliveryStatus(d.status) not in ACTIVE_STATUSES]
    lifetime = _summarise(delivered, get_settings().rider_commission)

    return RiderStats(
        rider_id=str(rider_id),
        total_earnings=lifetime.earnings,
        total_deliveries=lifetime.deliveries,
        total_hours=lifetime.hours,
        completion_rate=round(len(delivered) / len(settled) * 100, 2) if settled else 0.0,
    )
