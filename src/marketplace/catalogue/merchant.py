"""Merchant aggregate — a vendor whose products are sold and picked up."""

from datetime import UTC, datetime

from protean.fields import Boolean, DateTime, Identifier, String, ValueObject

from marketplace.domain import marketplace
from marketplace.shared.geo import GeoPoint


@marketplace.aggregate
class Merchant:
    owner_id = Identifier(required=True)
    name = String(required=True, max_length=150)
    phone = String(max_length=20)
    pickup_address = String(max_length=255)
    location = ValueObject(GeoPoint)
    is_active = Boolean(default=True)
    created_at = DateTime()

    @classmethod
    def register(cls, owner_id, name, phone=None, pickup_address=None, location=None):
        return cls(
            owner_id=owner_id,
            name=name,
            phone=phone,
            pickup_address=pickup_address,
            location=location,
            is_active=True,
            created_at=datetime.now(UTC),
        )
