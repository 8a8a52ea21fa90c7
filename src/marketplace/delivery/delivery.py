"""Delivery aggregate (CQRS) — a rider's handling of one order.

State Machine:
    PENDING → ASSIGNED → PICKED_UP → IN_TRANSIT → DELIVERED
    PENDING → CANCELLED
    ASSIGNED → {CANCELLED, FAILED}
    {PICKED_UP, IN_TRANSIT} → FAILED
    DELIVERED, FAILED and CANCELLED are terminal.

Every status carries its own timestamp, set once when the status is entered.
A delivery has a rider in every status except PENDING and CANCELLED-before-
assignment.

The delivery snapshots the merchant and pricing details of its order at
creation so that riders and the settlement flow don't need to join back to
the order.
"""

from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, Identifier, String, ValueObject

from marketplace.delivery.events import (
    DeliveryAdvanced,
    DeliveryAssigned,
    DeliveryCancelled,
    DeliveryCompleted,
    DeliveryCreated,
    DeliveryFailed,
)
from marketplace.domain import marketplace
from marketplace.shared.geo import GeoPoint
from shared.errors import InvalidTransitionError, NotAssignedError


class DeliveryStatus(Enum):
    PENDING = "Pending"
    ASSIGNED = "Assigned"
    PICKED_UP = "Picked_Up"
    IN_TRANSIT = "In_Transit"
    DELIVERED = "Delivered"
    FAILED = "Failed"
    CANCELLED = "Cancelled"


VALID_TRANSITIONS = {
    DeliveryStatus.PENDING: {DeliveryStatus.ASSIGNED, DeliveryStatus.CANCELLED},
    DeliveryStatus.ASSIGNED: {DeliveryStatus.PICKED_UP, DeliveryStatus.CANCELLED, DeliveryStatus.FAILED},
    DeliveryStatus.PICKED_UP: {DeliveryStatus.IN_TRANSIT, DeliveryStatus.FAILED},
    DeliveryStatus.IN_TRANSIT: {DeliveryStatus.DELIVERED, DeliveryStatus.FAILED},
    DeliveryStatus.DELIVERED: set(),  # terminal
    DeliveryStatus.FAILED: set(),  # terminal
    DeliveryStatus.CANCELLED: set(),  # terminal
}

ACTIVE_STATUSES = {DeliveryStatus.ASSIGNED, DeliveryStatus.PICKED_UP, DeliveryStatus.IN_TRANSIT}
TERMINAL_STATUSES = {DeliveryStatus.DELIVERED, DeliveryStatus.FAILED, DeliveryStatus.CANCELLED}

_TIMESTAMP_FIELDS = {
    DeliveryStatus.ASSIGNED: "assigned_at",
    DeliveryStatus.PICKED_UP: "picked_up_at",
    DeliveryStatus.IN_TRANSIT: "in_transit_at",
    DeliveryStatus.DELIVERED: "delivered_at",
    DeliveryStatus.FAILED: "failed_at",
    DeliveryStatus.CANCELLED: "cancelled_at",
}


@marketplace.aggregate
class Delivery:
    order_id = Identifier(required=True, unique=True)
    customer_id = Identifier(required=True)
    merchant_id = Identifier(required=True)
    merchant_name = String(max_length=150)
    merchant_phone = String(max_length=20)
    pickup_address = String(max_length=255)
    pickup_location = ValueObject(GeoPoint)
    dropoff_location = ValueObject(GeoPoint)
    rider_id = Identifier()
    status = String(choices=DeliveryStatus, default=DeliveryStatus.PENDING.value)
    current_location = ValueObject(GeoPoint)
    order_subtotal = Float(required=True, min_value=0.0)
    platform_fee = Float(required=True, min_value=0.0)
    delivery_fee = Float(required=True, min_value=0.0)
    failure_reason = String(max_length=500)
    assigned_at = DateTime()
    picked_up_at = DateTime()
    in_transit_at = DateTime()
    delivered_at = DateTime()
    failed_at = DateTime()
    cancelled_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def rider_must_match_status(self):
        status = DeliveryStatus(self.status)
        if status == DeliveryStatus.PENDING and self.rider_id:
            raise ValidationError({"rider_id": ["A pending delivery cannot have a rider"]})
        if status in ACTIVE_STATUSES | {DeliveryStatus.DELIVERED, DeliveryStatus.FAILED} and not self.rider_id:
            raise ValidationError({"rider_id": [f"A {status.value} delivery must have a rider"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def for_order(cls, order, merchant, dropoff_location=None):
        now = datetime.now(UTC)
        delivery = cls(
            order_id=str(order.id),
            customer_id=str(order.customer_id),
            merchant_id=str(order.merchant_id),
            merchant_name=merchant.name,
            merchant_phone=merchant.phone,
            pickup_address=merchant.pickup_address,
            pickup_location=merchant.location,
            dropoff_location=dropoff_location,
            status=DeliveryStatus.PENDING.value,
            order_subtotal=order.subtotal,
            platform_fee=order.platform_fee,
            delivery_fee=order.delivery_fee,
            created_at=now,
            updated_at=now,
        )
        delivery.raise_(
            DeliveryCreated(
                delivery_id=str(delivery.id),
                order_id=str(order.id),
                merchant_id=str(order.merchant_id),
                delivery_fee=order.delivery_fee,
                created_at=now,
            )
        )
        return delivery

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    @property
    def is_active(self) -> bool:
        return DeliveryStatus(self.status) in ACTIVE_STATUSES

    @property
    def is_terminal(self) -> bool:
        return DeliveryStatus(self.status) in TERMINAL_STATUSES

    def _assert_can_transition(self, target: DeliveryStatus) -> None:
        current = DeliveryStatus(self.status)
        if target not in VALID_TRANSITIONS[current]:
            raise InvalidTransitionError("Delivery", current.value, target.value)

    def _enter(self, target: DeliveryStatus, now: datetime) -> None:
        self.status = target.value
        field = _TIMESTAMP_FIELDS[target]
        if getattr(self, field) is None:
            setattr(self, field, now)
        self.updated_at = now

    # -------------------------------------------------------------------
    # Dispatch
    # -------------------------------------------------------------------
    def assign(self, rider_id) -> None:
        """Hand the delivery to a rider. Only legal from PENDING."""
        self._assert_can_transition(DeliveryStatus.ASSIGNED)
        now = datetime.now(UTC)
        with atomic_change(self):
            self.rider_id = rider_id
            self._enter(DeliveryStatus.ASSIGNED, now)
        self.raise_(
            DeliveryAssigned(
                delivery_id=str(self.id),
                order_id=str(self.order_id),
                rider_id=str(rider_id),
                assigned_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Rider-driven progress
    # -------------------------------------------------------------------
    def advance(
        self,
        rider_id,
        target: DeliveryStatus,
        location: GeoPoint | None = None,
        reason: str | None = None,
    ) -> None:
        """Move the delivery forward on behalf of its assigned rider."""
        if not self.rider_id or str(self.rider_id) != str(rider_id):
            raise NotAssignedError(str(self.id), str(rider_id))
        self._assert_can_transition(target)

        previous = self.status
        now = datetime.now(UTC)
        with atomic_change(self):
            self._enter(target, now)
            if location is not None:
                self.current_location = location

        self.raise_(
            DeliveryAdvanced(
                delivery_id=str(self.id),
                order_id=str(self.order_id),
                rider_id=str(rider_id),
                previous_status=previous,
                status=target.value,
                latitude=location.latitude if location else None,
                longitude=location.longitude if location else None,
                occurred_at=now,
            )
        )

        if target == DeliveryStatus.DELIVERED:
            self.raise_(
                DeliveryCompleted(
                    delivery_id=str(self.id),
                    order_id=str(self.order_id),
                    merchant_id=str(self.merchant_id),
                    merchant_name=self.merchant_name,
                    merchant_phone=self.merchant_phone,
                    rider_id=str(rider_id),
                    order_subtotal=self.order_subtotal,
                    platform_fee=self.platform_fee,
                    delivery_fee=self.delivery_fee,
                    delivered_at=now,
                )
            )
        elif target == DeliveryStatus.FAILED:
            self.failure_reason = reason
            self.raise_(
                DeliveryFailed(
                    delivery_id=str(self.id),
                    order_id=str(self.order_id),
                    rider_id=str(rider_id),
                    reason=reason,
                    failed_at=now,
                )
            )
        elif target == DeliveryStatus.CANCELLED:
            self._raise_cancelled(reason, now)

    # -------------------------------------------------------------------
    # Cancellation (order cancelled before pickup)
    # -------------------------------------------------------------------
    def cancel(self, reason: str | None = None) -> None:
        self._assert_can_transition(DeliveryStatus.CANCELLED)
        now = datetime.now(UTC)
        self._enter(DeliveryStatus.CANCELLED, now)
        self.failure_reason = reason
        self._raise_cancelled(reason, now)

    def _raise_cancelled(self, reason, now) -> None:
        self.raise_(
            DeliveryCancelled(
                delivery_id=str(self.id),
                order_id=str(self.order_id),
                rider_id=str(self.rider_id) if self.rider_id else None,
                reason=reason,
                cancelled_at=now,
            )
        )
