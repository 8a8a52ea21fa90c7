from datetime import UTC, datetime

import pytest
from marketplace.analytics.merchant_analytics import get_analytics
from marketplace.delivery.delivery import Delivery
from marketplace.delivery.progress import AdvanceDelivery
from marketplace.dispatch.matcher import AcceptOrder
from marketplace.order.cancellation import CancelOrder
from marketplace.order.order import Order
from protean import current_domain
from protean.exceptions import ObjectNotFoundError, ValidationError

NOW = datetime(2024, 5, 15, 18, 0, tzinfo=UTC)  # Wednesday


def _backdate(placed, when):
    order_repo = current_domain.repository_for(Order)
    order = order_repo.get(placed.order_id)
    order.created_at = when
    order_repo.add(order)

    delivery_repo = current_domain.repository_for(Delivery)
    delivery = delivery_repo.get(placed.delivery_id)
    delivery.created_at = when
    delivery_repo.add(delivery)


@pytest.fixture()
def shop(make_merchant, make_product, checkout, make_rider):
    """A merchant with three counted orders this week, one last week and one cancelled."""
    merchant_id = make_merchant()
    product_id = make_product(merchant_id, unit_price=1000.0)

    def place(customer_id, when):
        placed = checkout([(product_id, 2)], customer_id=customer_id).orders[0]
        _backdate(placed, when)
        return placed

    first = place("cust-001", datetime(2024, 5, 14, 12, 0, tzinfo=UTC))
    place("cust-001", datetime(2024, 5, 14, 12, 30, tzinfo=UTC))
    place("cust-002", datetime(2024, 5, 10, 9, 0, tzinfo=UTC))
    place("cust-003", datetime(2024, 5, 5, 9, 0, tzinfo=UTC))
    cancelled = place("cust-004", datetime(2024, 5, 13, 20, 0, tzinfo=UTC))
    current_domain.process(CancelOrder(order_id=cancelled.order_id, customer_id="cust-004"), asynchronous=False)

    rider_id = make_rider()
    current_domain.process(AcceptOrder(rider_id=rider_id, order_id=first.order_id), asynchronous=False)
    for status in ("Picked_Up", "In_Transit", "Delivered"):
        current_domain.process(
            AdvanceDelivery(delivery_id=first.delivery_id, rider_id=rider_id, status=status), asynchronous=False
        )
    return merchant_id


class TestMerchantAnalytics:
    def test_period_metrics_and_growth(self, shop):
        analytics = get_analytics(shop, "7days", now=NOW)

        # Each order totals 2,000 + 100 platform fee + 1,000 delivery
        assert analytics.revenue.value == 9300.0
        assert analytics.revenue.previous == 3100.0
        assert analytics.revenue.growth == 200.0
        assert (analytics.orders.value, analytics.orders.previous) == (3, 1)
        assert analytics.customers.growth == 100.0
        assert analytics.average_order_value.growth == 0.0

    def test_revenue_trend_has_every_day(self, shop):
        trend = get_analytics(shop, "7days", now=NOW).revenue_trend

        assert [b["period"] for b in trend][0] == "May 08"
        assert len(trend) == 8
        assert sum(b["revenue"] for b in trend) == 9300.0
        assert next(b for b in trend if b["period"] == "May 14")["orders"] == 2

    def test_top_items(self, shop):
        (top,) = get_analytics(shop, "7days", now=NOW).top_items

        assert top["name"] == "Brochette"
        assert top["quantity"] == 6
        assert top["revenue"] == 6000.0

    def test_customer_insights(self, shop):
        insights = get_analytics(shop, "7days", now=NOW).insights

        assert insights.peak_hour == "12:00"
        assert insights.popular_day == "Tuesday"
        assert insights.repeat_customer_rate == 50.0
        # One delivered, one cancelled with its order
        assert insights.delivery_success_rate == 50.0

    def test_today_uses_hourly_buckets(self, shop):
        analytics = get_analytics(shop, "today", now=NOW)

        assert analytics.orders.value == 0
        assert len(analytics.revenue_trend) == 18
        assert analytics.revenue_trend[0]["period"] == "00:00"

    def test_no_orders_at_all(self, make_merchant):
        analytics = get_analytics(make_merchant(), "30days", now=NOW)

        assert analytics.revenue.growth == 0.0
        assert analytics.top_items == []
        assert analytics.insights.peak_hour is None

    def test_unknown_filter(self, shop):
        with pytest.raises(ValidationError) as exc:
            get_analytics(shop, "yesterday", now=NOW)
        assert "filter" in exc.value.messages

    def test_unknown_merchant(self):
        with pytest.raises(ObjectNotFoundError):
            get_analytics("nobody", "7days", now=NOW)


def _strip_timezones(merchant_id):
    # SQL providers hand DateTime columns back without tzinfo
    for aggregate in (Order, Delivery):
        repo = current_domain.repository_for(aggregate)
        for record in repo.for_merchant(merchant_id):
            record.created_at = record.created_at.replace(tzinfo=None)
            repo.add(record)


class TestNaiveStoredTimestamps:
    def test_naive_order_times_fall_in_the_same_periods(self, shop):
        _strip_timezones(shop)

        analytics = get_analytics(shop, "7days", now=NOW)

        assert analytics.revenue.value == 9300.0
        assert analytics.revenue.previous == 3100.0
        assert sum(b["revenue"] for b in analytics.revenue_trend) == 9300.0
