"""Merchant analytics — period metrics with growth, revenue trend, top items
and customer insights.

Each filter compares the current period against the immediately preceding
period of the same length. Cancelled and refunded orders are left out.
"""

from collections import Counter
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import Enum

from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from marketplace.catalogue.merchant import Merchant
from marketplace.delivery.delivery import Delivery, DeliveryStatus
from marketplace.order.order import Order
from marketplace.order.repository import Granularity
from shared.clock import as_utc


class AnalyticsFilter(Enum):
    TODAY = "today"
    LAST_7_DAYS = "7days"
    LAST_30_DAYS = "30days"
    LAST_3_MONTHS = "3months"


_GRANULARITY = {
    AnalyticsFilter.TODAY: Granularity.HOUR,
    AnalyticsFilter.LAST_7_DAYS: Granularity.DAY,
    AnalyticsFilter.LAST_30_DAYS: Granularity.DAY,
    AnalyticsFilter.LAST_3_MONTHS: Granularity.WEEK,
}

_DAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


def calculate_growth(current: float, previous: float) -> float:
    """Percentage change; a rise from nothing counts as 100%."""
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return round((current - previous) / previous * 100, 2)


def period_bounds(analytics_filter: AnalyticsFilter, now: datetime) -> tuple[datetime, datetime, datetime]:
    """Return ``(previous_start, start, end)``; both periods have the same length."""
    if analytics_filter == AnalyticsFilter.TODAY:
        start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    elif analytics_filter == AnalyticsFilter.LAST_7_DAYS:
        start = now - timedelta(days=7)
    elif analytics_filter == AnalyticsFilter.LAST_30_DAYS:
        start = now - timedelta(days=30)
    else:
        start = now - timedelta(days=90)
    return start - (now - start), start, now


@dataclass(frozen=True)
class Metric:
    value: float
    previous: float
    growth: float


@dataclass(frozen=True)
class CustomerInsights:
    peak_hour: str | None
    popular_day: str | None
    repeat_customer_rate: float
    delivery_success_rate: float


@dataclass(frozen=True)
class MerchantAnalytics:
    merchant_id: str
    filter: str
    revenue: Metric
    orders: Metric
    customers: Metric
    average_order_value: Metric
    revenue_trend: list[dict] = field(default_factory=list)
    top_items: list[dict] = field(default_factory=list)
    insights: CustomerInsights | None = None


def _metric(current: float, previous: float) -> Metric:
    return Metric(value=round(current, 2), previous=round(previous, 2), growth=calculate_growth(current, previous))


def _totals(orders) -> tuple[float, int, int, float]:
    revenue = sum(o.total for o in orders)
    count = len(orders)
    customers = len({str(o.customer_id) for o in orders})
    average = revenue / count if count else 0.0
    return revenue, count, customers, average


def _insights(orders, deliveries) -> CustomerInsights:
    hours = Counter(o.created_at.hour for o in orders)
    days = Counter(o.created_at.weekday() for o in orders)
    # Ties go to the earliest hour / day
    peak_hour = min(hours, key=lambda h: (-hours[h], h)) if hours else None
    popular_day = min(days, key=lambda d: (-days[d], d)) if days else None

    per_customer = Counter(str(o.customer_id) for o in orders)
    repeat = sum(1 for n in per_customer.values() if n > 1)
    repeat_rate = round(repeat / len(per_customer) * 100, 2) if per_customer else 0.0

    finished = [
        d
        for d in deliveries
        if d.status in (DeliveryStatus.DELIVERED.value, DeliveryStatus.FAILED.value, DeliveryStatus.CANCELLED.value)
    ]
    delivered = sum(1 for d in finished if d.status == DeliveryStatus.DELIVERED.value)
    success_rate = round(delivered / len(finished) * 100, 2) if finished else 0.0

    return CustomerInsights(
        peak_hour=f"{peak_hour:02d}:00" if peak_hour is not None else None,
        popular_day=_DAY_NAMES[popular_day] if popular_day is not None else None,
        repeat_customer_rate=repeat_rate,
        delivery_success_rate=success_rate,
    )


def get_analytics(merchant_id, filter_value: str = "7days", now: datetime | None = None) -> MerchantAnalytics:
    try:
        analytics_filter = AnalyticsFilter(filter_value)
    except ValueError:
        allowed = ", ".join(f.value for f in AnalyticsFilter)
        raise ValidationError({"filter": [f"Filter must be one of: {allowed}"]}) from None

    current_domain.repository_for(Merchant).get(merchant_id)

    now = now or datetime.now(UTC)
    previous_start, start, end = period_bounds(analytics_filter, now)
    order_repo = current_domain.repository_for(Order)

    current_orders = order_repo.revenue_orders(merchant_id, start, end)
    previous_orders = order_repo.revenue_orders(merchant_id, previous_start, start)
    revenue, count, customers, average = _totals(current_orders)
    prev_revenue, prev_count, prev_customers, prev_average = _totals(previous_orders)

    deliveries = [
        d
        for d in current_domain.repository_for(Delivery).for_merchant(merchant_id)
        if d.created_at and start <= as_utc(d.created_at) < end
    ]

    return MerchantAnalytics(
        merchant_id=str(merchant_id),
        filter=analytics_filter.value,
        revenue=_metric(revenue, prev_revenue),
        orders=_metric(count, prev_count),
        customers=_metric(customers, prev_customers),
        average_order_value=_metric(average, prev_average),
        revenue_trend=order_repo.revenue_by_bucket(merchant_id, start, end, _GRANULARITY[analytics_filter]),
        top_items=order_repo.top_items(merchant_id, start, end, limit=10),
        insights=_insights(current_orders, deliveries),
    )
