"""Order repository — revenue queries and time-bucketed aggregation.

Aggregations are grouped in Python over the merchant's orders in the
requested window so that they work the same on every provider.
"""

from collections import defaultdict
from datetime import datetime, timedelta
from enum import Enum

from marketplace.domain import marketplace
from marketplace.order.order import EXCLUDED_FROM_REVENUE, Order
from shared.clock import as_utc


class Granularity(Enum):
    HOUR = "hour"
    DAY = "day"
    WEEK = "week"


def bucket_start(moment: datetime, granularity: Granularity) -> datetime:
    if granularity == Granularity.HOUR:
        return moment.replace(minute=0, second=0, microsecond=0)
    day = moment.replace(hour=0, minute=0, second=0, microsecond=0)
    if granularity == Granularity.DAY:
        return day
    # Weeks start on Monday
    return day - timedelta(days=day.weekday())


def bucket_label(start: datetime, granularity: Granularity) -> str:
    if granularity == Granularity.HOUR:
        return start.strftime("%H:00")
    return start.strftime("%b %d")


_STEP = {
    Granularity.HOUR: timedelta(hours=1),
    Granularity.DAY: timedelta(days=1),
    Granularity.WEEK: timedelta(weeks=1),
}


@marketplace.repository(part_of=Order)
class OrderRepository:
    def for_merchant(self, merchant_id) -> list[Order]:
        return self._dao.query.filter(merchant_id=str(merchant_id)).all().items

    def for_checkout(self, checkout_id) -> list[Order]:
        return self._dao.query.filter(checkout_id=str(checkout_id)).all().items

    def revenue_orders(self, merchant_id, start: datetime, end: datetime) -> list[Order]:
        """Orders placed in ``[start, end)`` that count towards revenue."""
        return [
            order
            for order in self.for_merchant(merchant_id)
            if start <= as_utc(order.created_at) < end and order.status not in EXCLUDED_FROM_REVENUE
        ]

    def revenue_by_bucket(
        self,
        merchant_id,
        start: datetime,
        end: datetime,
        granularity: Granularity,
    ) -> list[dict]:
        """Revenue and order count per bucket, chronological, empty buckets included."""
        totals: dict[datetime, list] = defaultdict(lambda: [0.0, 0])
        for order in self.revenue_orders(merchant_id, start, end):
            bucket = totals[bucket_start(as_utc(order.created_at), granularity)]
            bucket[0] += order.total
            bucket[1] += 1

        buckets = []
        cursor = bucket_start(start, granularity)
        while cursor < end:
            revenue, count = totals.get(cursor, (0.0, 0))
            buckets.append(
                {
                    "period": bucket_label(cursor, granularity),
                    "starts_at": cursor,
                    "revenue": round(revenue, 2),
                    "orders": count,
                }
            )
            cursor += _STEP[granularity]
        return buckets

    def top_items(self, merchant_id, start: datetime, end: datetime, limit: int = 10) -> list[dict]:
        """Products ranked by summed line revenue, ties broken by product id."""
        by_product: dict[str, dict] = {}
        for order in self.revenue_orders(merchant_id, start, end):
            for item in order.items:
                key = str(item.product_id)
                entry = by_product.setdefault(key, {"product_id": key, "name": item.name, "quantity": 0, "revenue": 0.0})
                entry["quantity"] += item.quantity
                entry["revenue"] += item.line_total

        for entry in by_product.values():
            entry["revenue"] = round(entry["revenue"], 2)
        ranked = sorted(by_product.values(), key=lambda e: (-e["revenue"], e["product_id"]))
        return ranked[:limit]
