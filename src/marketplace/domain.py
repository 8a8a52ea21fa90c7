"""Marketplace bounded context — checkout, orders, riders and deliveries.

Splits multi-merchant carts into per-merchant orders, prices them with the
platform fee schedule, dispatches deliveries to riders and drives them to
completion. Order, Delivery and Rider live here together so that accepting
and advancing a delivery change all three inside one unit of work.
"""

import structlog
from protean.domain import Domain

marketplace = Domain(name="marketplace")

logger = structlog.get_logger(__name__)
