"""Shared BDD fixtures and step definitions for the Payouts domain."""

import pytest
from payouts.disbursement.disbursement import Disbursement, DisbursementType
from payouts.disbursement.events import (
    DisbursementApproved,
    DisbursementCompleted,
    DisbursementFailed,
    DisbursementProcessingStarted,
    DisbursementQueued,
    DisbursementRejected,
)
from pytest_bdd import given, parsers, then
from shared.errors import InvalidTransitionError

_EVENT_CLASSES = {
    "DisbursementQueued": DisbursementQueued,
    "DisbursementApproved": DisbursementApproved,
    "DisbursementRejected": DisbursementRejected,
    "DisbursementProcessingStarted": DisbursementProcessingStarted,
    "DisbursementCompleted": DisbursementCompleted,
    "DisbursementFailed": DisbursementFailed,
}


@pytest.fixture()
def error():
    """Container for captured domain errors."""
    return {"exc": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse("a {disbursement_type} of {amount:g} RWF"), target_fixture="disbursement")
def new_disbursement(disbursement_type, amount):
    disbursement = Disbursement.create(
        disbursement_type=DisbursementType(disbursement_type),
        amount=amount,
        currency="RWF",
        recipient_phone="0788123456",
        recipient_name="Kigali Bites",
        created_by="admin-001",
    )
    disbursement._events.clear()
    return disbursement


# ---------------------------------------------------------------------------
# Then steps (shared)
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the disbursement status is "{status}"'))
def disbursement_status_is(disbursement, status):
    assert disbursement.status == status


@then(parsers.cfparse("a {event_type} event is raised"))
def event_is_raised(disbursement, event_type):
    event_cls = _EVENT_CLASSES[event_type]
    assert any(
        isinstance(e, event_cls) for e in disbursement._events
    ), f"No {event_type} event found. Events: {[type(e).__name__ for e in disbursement._events]}"


@then(parsers.cfparse("no {event_type} event is raised"))
def event_is_not_raised(disbursement, event_type):
    assert not any(isinstance(e, _EVENT_CLASSES[event_type]) for e in disbursement._events)


@then("the action fails with an invalid transition")
def action_fails_with_invalid_transition(error):
    assert isinstance(error["exc"], InvalidTransitionError), f"Expected InvalidTransitionError, got {error['exc']!r}"
