"""Rider onboarding, availability and location — commands and handler."""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Boolean, Float, Identifier, String
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.rider.rider import Rider
from marketplace.shared.geo import GeoPoint


@marketplace.command(part_of="Rider")
class RegisterRider:
    user_id: Identifier(required=True)
    name: String(required=True, max_length=100)
    phone: String(max_length=20)
    vehicle_type: String(max_length=20)


@marketplace.command(part_of="Rider")
class SetRiderAvailability:
    rider_id: Identifier(required=True)
    is_available: Boolean(required=True)


@marketplace.command(part_of="Rider")
class UpdateRiderLocation:
    rider_id: Identifier(required=True)
    latitude: Float(required=True)
    longitude: Float(required=True)


@marketplace.command_handler(part_of=Rider)
class RiderHandler:
    @handle(RegisterRider)
    def register(self, command):
        repo = current_domain.repository_for(Rider)
        if repo.by_user(command.user_id) is not None:
            raise ValidationError({"user_id": ["User is already registered as a rider"]})

        rider = Rider.register(
            user_id=command.user_id,
            name=command.name,
            phone=command.phone,
            vehicle_type=command.vehicle_type,
        )
        repo.add(rider)
        return str(rider.id)

    @handle(SetRiderAvailability)
    def set_availability(self, command):
        repo = current_domain.repository_for(Rider)
        repo.get(command.rider_id)
        repo.set_availability(command.rider_id, command.is_available)
        return command.is_available

    @handle(UpdateRiderLocation)
    def update_location(self, command):
        repo = current_domain.repository_for(Rider)
        rider = repo.get(command.rider_id)
        rider.move_to(GeoPoint(latitude=command.latitude, longitude=command.longitude))
        repo.add(rider)
