"""Rider delivery history and lifetime stats."""

from datetime import UTC, datetime, timedelta

import pytest
from marketplace.analytics.earnings import get_rider_stats
from marketplace.delivery.delivery import Delivery
from marketplace.delivery.progress import AdvanceDelivery
from marketplace.dispatch.matcher import AcceptOrder
from marketplace.dispatch.queries import get_delivery_history
from marketplace.order.cancellation import CancelOrder
from protean import current_domain
from protean.exceptions import ObjectNotFoundError, ValidationError

DAY = datetime(2024, 5, 15, 9, 0, tzinfo=UTC)


@pytest.fixture()
def ride(make_merchant, make_product, checkout):
    """Take one order with ``rider_id`` as far as ``outcome`` and date it ``created_at``."""
    product_id = make_product(make_merchant())

    def _ride(rider_id, outcome, created_at, minutes=30):
        order = checkout([(product_id, 1)]).orders[0]
        current_domain.process(AcceptOrder(rider_id=rider_id, order_id=order.order_id), asynchronous=False)

        def advance(status, **extra):
            current_domain.process(
                AdvanceDelivery(delivery_id=order.delivery_id, rider_id=rider_id, status=status, **extra),
                asynchronous=False,
            )

        if outcome == "Cancelled":
            current_domain.process(CancelOrder(order_id=order.order_id, customer_id="cust-001"), asynchronous=False)
        elif outcome == "Failed":
            advance("Picked_Up")
            advance("Failed", reason="Customer unreachable")
        elif outcome == "Delivered":
            for status in ("Picked_Up", "In_Transit", "Delivered"):
                advance(status)

        repo = current_domain.repository_for(Delivery)
        delivery = repo.get(order.delivery_id)
        delivery.created_at = created_at
        if outcome == "Delivered":
            delivery.picked_up_at = created_at + timedelta(minutes=10)
            delivery.delivered_at = created_at + timedelta(minutes=10 + minutes)
        repo.add(delivery)
        return order

    return _ride


class TestDeliveryHistory:
    def test_only_finished_deliveries_newest_first(self, make_rider, ride):
        rider_id = make_rider()
        delivered = ride(rider_id, "Delivered", DAY - timedelta(days=2))
        failed = ride(rider_id, "Failed", DAY - timedelta(days=1))
        cancelled = ride(rider_id, "Cancelled", DAY)
        ride(rider_id, "Assigned", DAY + timedelta(hours=1))

        history = get_delivery_history(rider_id)

        assert [e.delivery_id for e in history.deliveries] == [
            cancelled.delivery_id,
            failed.delivery_id,
            delivered.delivery_id,
        ]
        assert [e.status for e in history.deliveries] == ["Cancelled", "Failed", "Delivered"]
        assert history.total == 3

    def test_entry_details(self, make_rider, ride):
        rider_id = make_rider()
        order = ride(rider_id, "Delivered", DAY, minutes=25)

        (entry,) = get_delivery_history(rider_id).deliveries

        assert entry.order_number == order.order_id.replace("-", "")[:8].upper()
        assert entry.merchant_name == "Kigali Bites"
        assert entry.duration_minutes == 25
        # 75% of the flat 1,000 RWF delivery fee
        assert entry.rider_earning == 750.0
        assert entry.finished_at == DAY + timedelta(minutes=35)

    def test_failed_delivery_earns_nothing(self, make_rider, ride):
        rider_id = make_rider()
        ride(rider_id, "Failed", DAY)

        (entry,) = get_delivery_history(rider_id).deliveries

        assert entry.rider_earning == 0.0
        assert entry.finished_at is not None

    def test_pagination(self, make_rider, ride):
        rider_id = make_rider()
        orders = [ride(rider_id, "Delivered", DAY + timedelta(hours=i)) for i in range(5)]

        second = get_delivery_history(rider_id, page=2, limit=2)

        assert (second.total, second.total_pages, second.page) == (5, 3, 2)
        assert [e.delivery_id for e in second.deliveries] == [orders[2].delivery_id, orders[1].delivery_id]
        assert len(get_delivery_history(rider_id, page=3, limit=2).deliveries) == 1
        assert get_delivery_history(rider_id, page=4, limit=2).deliveries == []

    def test_other_riders_excluded(self, make_rider, ride):
        rider_id, other = make_rider(), make_rider()
        ride(other, "Delivered", DAY)

        history = get_delivery_history(rider_id)

        assert (history.total, history.total_pages, history.deliveries) == (0, 0, [])

    @pytest.mark.parametrize("page, limit, field", [(0, 20, "page"), (1, 0, "limit"), (1, 101, "limit")])
    def test_invalid_paging(self, make_rider, page, limit, field):
        with pytest.raises(ValidationError) as exc:
            get_delivery_history(make_rider(), page=page, limit=limit)
        assert field in exc.value.messages

    def test_unknown_rider(self):
        with pytest.raises(ObjectNotFoundError):
            get_delivery_history("nope")


class TestRiderStats:
    def test_lifetime_totals(self, make_rider, ride):
        rider_id = make_rider()
        ride(rider_id, "Delivered", DAY - timedelta(days=40), minutes=30)
        ride(rider_id, "Delivered", DAY, minutes=15)
        ride(rider_id, "Failed", DAY + timedelta(hours=1))
        ride(rider_id, "Cancelled", DAY + timedelta(hours=2))

        stats = get_rider_stats(rider_id)

        assert stats.total_deliveries == 2
        assert stats.total_earnings == 1500.0
        assert stats.total_hours == 0.75
        assert stats.completion_rate == 50.0

    def test_delivery_in_progress_has_no_outcome_yet(self, make_rider, ride):
        rider_id = make_rider()
        ride(rider_id, "Delivered", DAY)
        ride(rider_id, "Assigned", DAY + timedelta(hours=1))

        assert get_rider_stats(rider_id).completion_rate == 100.0

    def test_new_rider(self, make_rider):
        stats = get_rider_stats(make_rider())

        assert (stats.total_deliveries, stats.total_earnings, stats.completion_rate) == (0, 0.0, 0.0)

    def test_unknown_rider(self):
        with pytest.raises(ObjectNotFoundError):
            get_rider_stats("nope")
