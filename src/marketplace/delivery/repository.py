"""Delivery repository: conditional status writes and dispatch queries.

``claim`` and ``compare_and_set_status`` are the only way a delivery's status
is changed outside the aggregate's own ``repo.add``. Both filter on the
status the caller last observed, so two writers racing on the same row can
never both succeed: on SQL providers this is ``UPDATE ... WHERE status =
:expected`` and the loser sees zero affected rows.
"""

from datetime import datetime

from protean.utils.query import Q

from marketplace.delivery.delivery import ACTIVE_STATUSES, TERMINAL_STATUSES, Delivery, DeliveryStatus
from marketplace.domain import marketplace
from shared.clock import as_utc


@marketplace.repository(part_of=Delivery)
class DeliveryRepository:
    def _conditional_update(self, criteria: Q, **values) -> bool:
        return self._dao._update_all(criteria, **values) == 1

    def claim(self, delivery_id, rider_id, assigned_at: datetime) -> bool:
        """Move a PENDING delivery to ASSIGNED for ``rider_id``. False if already taken."""
        return self._conditional_update(
            Q(id=str(delivery_id), status=DeliveryStatus.PENDING.value),
            status=DeliveryStatus.ASSIGNED.value,
            rider_id=str(rider_id),
            assigned_at=assigned_at,
            updated_at=assigned_at,
        )

    def compare_and_set_status(self, delivery_id, expected: DeliveryStatus, target: DeliveryStatus, **changes) -> bool:
        return self._conditional_update(
            Q(id=str(delivery_id), status=expected.value),
            status=target.value,
            **changes,
        )

    def for_order(self, order_id) -> Delivery | None:
        return self._dao.query.filter(order_id=str(order_id)).all().first

    def pending(self) -> list[Delivery]:
        """Unassigned deliveries, oldest first."""
        items = self._dao.query.filter(status=DeliveryStatus.PENDING.value).all().items
        return sorted(items, key=lambda d: (as_utc(d.created_at), str(d.id)))

    def active_for_rider(self, rider_id) -> Delivery | None:
        active = {s.value for s in ACTIVE_STATUSES}
        items = self._dao.query.filter(rider_id=str(rider_id)).all().items
        return next((d for d in items if d.status in active), None)

    def delivered_by_rider(self, rider_id, since: datetime | None = None) -> list[Delivery]:
        items = (
            self._dao.query.filter(
                rider_id=str(rider_id),
                status=DeliveryStatus.DELIVERED.value,
            )
            .all()
            .items
        )
        if since is not None:
            since = as_utc(since)
            items = [d for d in items if d.delivered_at and as_utc(d.delivered_at) >= since]
        return items

    def finished_by_rider(self, rider_id) -> list[Delivery]:
        """Delivered, failed and cancelled deliveries the rider carried, newest first."""
        terminal = {s.value for s in TERMINAL_STATUSES}
        items = [d for d in self.for_rider(rider_id) if d.status in terminal]
        return sorted(items, key=lambda d: (as_utc(d.created_at), str(d.id)), reverse=True)

    def for_rider(self, rider_id) -> list[Delivery]:
        return self._dao.query.filter(rider_id=str(rider_id)).all().items

    def for_merchant(self, merchant_id) -> list[Delivery]:
        return self._dao.query.filter(merchant_id=str(merchant_id)).all().items
