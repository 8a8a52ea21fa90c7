"""Rider aggregate — a courier who claims and completes deliveries.

``is_available`` is the rider's own on/off-duty switch. ``duty_status`` and
``active_delivery_id`` are owned by dispatch: they are claimed when the rider
accepts an order and released when that delivery reaches a terminal status.
A rider carries at most one active delivery.
"""

from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Identifier, String, ValueObject

from marketplace.domain import marketplace
from marketplace.shared.geo import GeoPoint


class DutyStatus(Enum):
    IDLE = "Idle"
    ON_DELIVERY = "On_Delivery"


class VehicleType(Enum):
    MOTORCYCLE = "Motorcycle"
    BICYCLE = "Bicycle"
    CAR = "Car"
    FOOT = "Foot"


@marketplace.aggregate
class Rider:
    user_id = Identifier(required=True, unique=True)
    name = String(required=True, max_length=100)
    phone = String(max_length=20)
    vehicle_type = String(choices=VehicleType, default=VehicleType.MOTORCYCLE.value)
    is_available = Boolean(default=False)
    current_location = ValueObject(GeoPoint)
    duty_status = String(choices=DutyStatus, default=DutyStatus.IDLE.value)
    active_delivery_id = Identifier()
    location_updated_at = DateTime()
    created_at = DateTime()

    @invariant.post
    def active_delivery_matches_duty(self):
        on_delivery = self.duty_status == DutyStatus.ON_DELIVERY.value
        if on_delivery != bool(self.active_delivery_id):
            raise ValidationError({"active_delivery_id": ["Active delivery must be set exactly when on delivery"]})

    @classmethod
    def register(cls, user_id, name, phone=None, vehicle_type=None):
        return cls(
            user_id=user_id,
            name=name,
            phone=phone,
            vehicle_type=vehicle_type or VehicleType.MOTORCYCLE.value,
            is_available=False,
            duty_status=DutyStatus.IDLE.value,
            created_at=datetime.now(UTC),
        )

    @property
    def is_busy(self) -> bool:
        return self.duty_status == DutyStatus.ON_DELIVERY.value

    def move_to(self, location: GeoPoint) -> None:
        self.current_location = location
        self.location_updated_at = datetime.now(UTC)
