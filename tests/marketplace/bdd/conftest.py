"""Shared BDD fixtures and step definitions for the Marketplace domain."""

from datetime import UTC, datetime

import pytest
from marketplace.delivery.delivery import Delivery, DeliveryStatus
from marketplace.delivery.events import (
    DeliveryAdvanced,
    DeliveryAssigned,
    DeliveryCancelled,
    DeliveryCompleted,
    DeliveryFailed,
)
from pytest_bdd import given, parsers, then
from shared.errors import InvalidTransitionError, NotAssignedError

# Map event name strings to classes for dynamic lookup in Then steps
_EVENT_CLASSES = {
    "DeliveryAssigned": DeliveryAssigned,
    "DeliveryAdvanced": DeliveryAdvanced,
    "DeliveryCompleted": DeliveryCompleted,
    "DeliveryFailed": DeliveryFailed,
    "DeliveryCancelled": DeliveryCancelled,
}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def error():
    """Container for captured domain errors."""
    return {"exc": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given("a pending delivery", target_fixture="delivery")
def pending_delivery():
    now = datetime.now(UTC)
    delivery = Delivery(
        order_id="ord-001",
        customer_id="cust-001",
        merchant_id="merch-001",
        merchant_name="Kigali Bites",
        merchant_phone="0788123456",
        order_subtotal=2000.0,
        platform_fee=100.0,
        delivery_fee=1000.0,
        created_at=now,
        updated_at=now,
    )
    delivery._events.clear()
    return delivery


@given(parsers.cfparse('rider "{rider_id}" is assigned'))
def rider_is_assigned(delivery, rider_id):
    delivery.assign(rider_id)
    delivery._events.clear()


@given("the delivery has been delivered")
def delivery_has_been_delivered(delivery):
    for status in (DeliveryStatus.PICKED_UP, DeliveryStatus.IN_TRANSIT, DeliveryStatus.DELIVERED):
        delivery.advance(delivery.rider_id, status)
    delivery._events.clear()


# ---------------------------------------------------------------------------
# Then steps (shared)
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the delivery status is "{status}"'))
def delivery_status_is(delivery, status):
    assert delivery.status == status


@then(parsers.cfparse("a {event_type} event is raised"))
def event_is_raised(delivery, event_type):
    event_cls = _EVENT_CLASSES[event_type]
    assert any(
        isinstance(e, event_cls) for e in delivery._events
    ), f"No {event_type} event found. Events: {[type(e).__name__ for e in delivery._events]}"


@then("the action fails with an invalid transition")
def action_fails_with_invalid_transition(error):
    assert isinstance(error["exc"], InvalidTransitionError), f"Expected InvalidTransitionError, got {error['exc']!r}"


@then("the action is forbidden")
def action_is_forbidden(error):
    assert isinstance(error["exc"], NotAssignedError), f"Expected NotAssignedError, got {error['exc']!r}"
