"""Tests for merchant order progress, cancellation and refunds."""

import pytest
from marketplace.delivery.delivery import Delivery, DeliveryStatus
from marketplace.delivery.progress import AdvanceDelivery
from marketplace.dispatch.matcher import AcceptOrder
from marketplace.order.cancellation import CancelOrder, MarkOrderRefunded
from marketplace.order.order import Order, OrderStatus
from marketplace.order.preparation import UpdateOrderStatus
from marketplace.rider.rider import DutyStatus, Rider
from protean import current_domain
from protean.exceptions import ValidationError
from shared.errors import AuthorizationError, InvalidTransitionError


def _update(order, status, merchant_id=None):
    return current_domain.process(
        UpdateOrderStatus(order_id=order.order_id, merchant_id=merchant_id or order.merchant_id, status=status),
        asynchronous=False,
    )


def _cancel(order, customer_id="cust-001", reason="Changed my mind"):
    return current_domain.process(
        CancelOrder(order_id=order.order_id, customer_id=customer_id, reason=reason),
        asynchronous=False,
    )


class TestMerchantStatusUpdates:
    def test_confirm_prepare_ready(self, placed_order):
        for status in ("Confirmed", "Preparing", "Ready"):
            assert _update(placed_order, status) == status

    def test_other_merchant_forbidden(self, placed_order):
        with pytest.raises(AuthorizationError):
            _update(placed_order, "Confirmed", merchant_id="merch-999")

    @pytest.mark.parametrize("status", ["Delivered", "Cancelled", "Refunded", "Shipped"])
    def test_status_outside_merchant_control(self, placed_order, status):
        with pytest.raises(ValidationError):
            _update(placed_order, status)

    def test_out_of_order_update(self, placed_order):
        with pytest.raises(InvalidTransitionError):
            _update(placed_order, "Ready")


class TestCancellation:
    def test_cancel_pending_order_cancels_delivery(self, placed_order):
        assert _cancel(placed_order) == OrderStatus.CANCELLED.value

        delivery = current_domain.repository_for(Delivery).get(placed_order.delivery_id)
        assert delivery.status == DeliveryStatus.CANCELLED.value
        assert delivery.cancelled_at is not None

    def test_cancel_after_accept_frees_rider(self, placed_order, make_rider):
        rider_id = make_rider()
        current_domain.process(AcceptOrder(rider_id=rider_id, order_id=placed_order.order_id), asynchronous=False)

        _cancel(placed_order)

        rider = current_domain.repository_for(Rider).get(rider_id)
        assert rider.duty_status == DutyStatus.IDLE.value

    def test_cannot_cancel_after_pickup(self, placed_order, make_rider):
        rider_id = make_rider()
        current_domain.process(AcceptOrder(rider_id=rider_id, order_id=placed_order.order_id), asynchronous=False)
        current_domain.process(
            AdvanceDelivery(delivery_id=placed_order.delivery_id, rider_id=rider_id, status="Picked_Up"),
            asynchronous=False,
        )

        with pytest.raises(InvalidTransitionError):
            _cancel(placed_order)

        order = current_domain.repository_for(Order).get(placed_order.order_id)
        assert order.status == OrderStatus.PENDING.value

    def test_only_owner_can_cancel(self, placed_order):
        with pytest.raises(AuthorizationError):
            _cancel(placed_order, customer_id="cust-999")


class TestRefund:
    def test_refund_cancelled_order(self, placed_order):
        _cancel(placed_order)
        result = current_domain.process(MarkOrderRefunded(order_id=placed_order.order_id), asynchronous=False)
        assert result == OrderStatus.REFUNDED.value

    def test_cannot_refund_open_order(self, placed_order):
        with pytest.raises(InvalidTransitionError):
            current_domain.process(MarkOrderRefunded(order_id=placed_order.order_id), asynchronous=False)
