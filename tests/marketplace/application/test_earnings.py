from datetime import UTC, datetime, timedelta

import pytest
from marketplace.analytics.earnings import get_earnings
from marketplace.delivery.delivery import Delivery
from marketplace.delivery.progress import AdvanceDelivery
from marketplace.dispatch.matcher import AcceptOrder
from protean import current_domain
from protean.exceptions import ObjectNotFoundError

NOW = datetime(2024, 5, 15, 18, 0, tzinfo=UTC)  # Wednesday


@pytest.fixture()
def deliver(make_merchant, make_product, checkout):
    """Complete one order with ``rider_id``, then backdate it to ``delivered_at``."""
    product_id = make_product(make_merchant())

    def _deliver(rider_id, delivered_at, minutes=30):
        order = checkout([(product_id, 1)]).orders[0]
        current_domain.process(AcceptOrder(rider_id=rider_id, order_id=order.order_id), asynchronous=False)
        for status in ("Picked_Up", "In_Transit", "Delivered"):
            current_domain.process(
                AdvanceDelivery(delivery_id=order.delivery_id, rider_id=rider_id, status=status),
                asynchronous=False,
            )

        repo = current_domain.repository_for(Delivery)
        delivery = repo.get(order.delivery_id)
        delivery.picked_up_at = delivered_at - timedelta(minutes=minutes)
        delivery.in_transit_at = delivered_at - timedelta(minutes=minutes // 2)
        delivery.delivered_at = delivered_at
        repo.add(delivery)
        return order.delivery_id

    return _deliver


class TestRiderEarnings:
    def test_no_deliveries(self, make_rider):
        earnings = get_earnings(make_rider(), now=NOW)

        assert earnings.today.earnings == 0.0
        assert earnings.this_month.deliveries == 0

    def test_windows(self, make_rider, deliver):
        rider_id = make_rider()
        deliver(rider_id, NOW - timedelta(hours=2))  # today
        deliver(rider_id, datetime(2024, 5, 13, 12, 0, tzinfo=UTC))  # Monday, this week
        deliver(rider_id, datetime(2024, 5, 3, 12, 0, tzinfo=UTC))  # this month
        deliver(rider_id, datetime(2024, 4, 28, 12, 0, tzinfo=UTC))  # last month

        earnings = get_earnings(rider_id, now=NOW)

        assert (earnings.today.deliveries, earnings.this_week.deliveries, earnings.this_month.deliveries) == (1, 2, 3)
        # 75% of the flat 1,000 RWF delivery fee
        assert earnings.today.earnings == 750.0
        assert earnings.this_month.earnings == 2250.0

    def test_hours_on_the_road(self, make_rider, deliver):
        rider_id = make_rider()
        deliver(rider_id, NOW - timedelta(hours=1), minutes=30)
        deliver(rider_id, NOW - timedelta(hours=3), minutes=15)

        assert get_earnings(rider_id, now=NOW).today.hours == 0.75

    def test_other_riders_excluded(self, make_rider, deliver):
        rider_id, other = make_rider(), make_rider()
        deliver(other, NOW - timedelta(hours=1))

        assert get_earnings(rider_id, now=NOW).today.deliveries == 0

    def test_unknown_rider(self):
        with pytest.raises(ObjectNotFoundError):
            get_earnings("nobody", now=NOW)


class TestNaiveStoredTimestamps:
    def test_rows_read_back_without_timezone_count_as_utc(self, make_rider, deliver):
        # SQL providers return DateTime columns without tzinfo
        rider_id = make_rider()
        delivery_id = deliver(rider_id, NOW - timedelta(hours=2), minutes=30)
        repo = current_domain.repository_for(Delivery)
        delivery = repo.get(delivery_id)
        delivery.picked_up_at = delivery.picked_up_at.replace(tzinfo=None)
        delivery.delivered_at = delivery.delivered_at.replace(tzinfo=None)
        repo.add(delivery)

        earnings = get_earnings(rider_id, now=NOW)

        assert earnings.today.deliveries == 1
        assert earnings.today.hours == 0.5
