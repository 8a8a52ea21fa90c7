import json

import pytest
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def payouts_bed():
    from payouts.domain import payouts

    bed = DomainFixture(payouts)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(payouts_bed):
    with payouts_bed.domain_context():
        yield


@pytest.fixture(autouse=True)
def fake_provider():
    """A fresh fake payout provider for every test, settling immediately by default."""
    from payouts.provider import reset_provider, set_provider
    from payouts.provider.fake_adapter import FakePayoutProvider

    provider = FakePayoutProvider()
    set_provider(provider)
    yield provider
    reset_provider()


@pytest.fixture()
def create_disbursement():
    """Create a disbursement through the command handler; returns its id."""
    from payouts.disbursement.creation import CreateDisbursement
    from protean import current_domain

    def _create(disbursement_type="MERCHANT_PAYOUT", amount=5000.0, metadata=None, **kwargs):
        kwargs.setdefault("recipient_phone", "0788123456")
        kwargs.setdefault("recipient_name", "Kigali Bites")
        kwargs.setdefault("created_by", "admin-001")
        return current_domain.process(
            CreateDisbursement(
                disbursement_type=disbursement_type,
                amount=amount,
                metadata=json.dumps(metadata) if metadata is not None else None,
                **kwargs,
            ),
            asynchronous=False,
        )

    return _create


@pytest.fixture()
def load():
    from payouts.disbursement.disbursement import Disbursement
    from protean import current_domain

    def _load(disbursement_id):
        return current_domain.repository_for(Disbursement).get(disbursement_id)

    return _load
