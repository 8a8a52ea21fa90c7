"""Rider repository: conditional claim/release of a rider's single delivery slot."""

from protean.utils.query import Q

from marketplace.domain import marketplace
from marketplace.rider.rider import DutyStatus, Rider


@marketplace.repository(part_of=Rider)
class RiderRepository:
    def claim(self, rider_id, delivery_id) -> bool:
        """Occupy an idle, available rider with ``delivery_id``. False if the slot is taken."""
        updated = self._dao._update_all(
            Q(id=str(rider_id), is_available=True, duty_status=DutyStatus.IDLE.value),
            duty_status=DutyStatus.ON_DELIVERY.value,
            active_delivery_id=str(delivery_id),
        )
        return updated == 1

    def release(self, rider_id, delivery_id) -> bool:
        """Free the rider if, and only if, they are still holding ``delivery_id``."""
        updated = self._dao._update_all(
            Q(id=str(rider_id), active_delivery_id=str(delivery_id)),
            duty_status=DutyStatus.IDLE.value,
            active_delivery_id=None,
        )
        return updated == 1

    def by_user(self, user_id) -> Rider | None:
        return self._dao.query.filter(user_id=str(user_id)).all().first

    def set_availability(self, rider_id, is_available: bool) -> None:
        # Column write only, so a concurrent claim on duty_status is never overwritten
        self._dao._update_all(Q(id=str(rider_id)), is_available=is_available)
