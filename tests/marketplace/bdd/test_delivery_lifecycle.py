"""BDD tests for the delivery lifecycle."""

from marketplace.delivery.delivery import DeliveryStatus
from pytest_bdd import parsers, scenarios, when
from shared.errors import InvalidTransitionError, NotAssignedError

scenarios("features/delivery_lifecycle.feature")


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('rider "{rider_id}" is assigned'))
def assign_rider(delivery, rider_id, error):
    try:
        delivery.assign(rider_id)
    except InvalidTransitionError as exc:
        error["exc"] = exc


@when(parsers.cfparse('rider "{rider_id}" moves the delivery to "{status}"'))
def advance_delivery(delivery, rider_id, status, error):
    try:
        delivery.advance(rider_id, DeliveryStatus(status), reason="Customer unreachable")
    except (InvalidTransitionError, NotAssignedError) as exc:
        error["exc"] = exc
