import json

import pytest
from payouts.disbursement.creation import CreateBulkDisbursements
from payouts.disbursement.disbursement import Disbursement, DisbursementStatus
from protean import current_domain
from protean.exceptions import ValidationError


def _item(**overrides):
    item = {"type": "MERCHANT_PAYOUT", "amount": 2500, "recipient_phone": "0788123456", "recipient_name": "Kigali Bites"}
    item.update(overrides)
    return item


def _bulk(items, **kwargs):
    return current_domain.process(
        CreateBulkDisbursements(disbursements=json.dumps(items), created_by="admin-001", **kwargs),
        asynchronous=False,
    )


class TestCreateDisbursement:
    def test_merchant_payout_is_sent_right_away(self, create_disbursement, load, fake_provider):
        disbursement = load(create_disbursement())

        assert disbursement.status == DisbursementStatus.COMPLETED.value
        assert disbursement.reference.startswith("MP-")
        assert fake_provider.calls[0]["idempotency_key"] == f"disb-{disbursement.id}"

    def test_refund_waits_for_approval(self, create_disbursement, load, fake_provider):
        disbursement = load(create_disbursement("CUSTOMER_REFUND"))

        assert disbursement.status == DisbursementStatus.REQUIRES_APPROVAL.value
        assert fake_provider.calls == []

    def test_phone_is_normalised(self, create_disbursement, load):
        assert load(create_disbursement(recipient_phone="078 812 3456")).recipient_phone == "0788123456"

    def test_metadata_is_stored(self, create_disbursement, load):
        disbursement = load(create_disbursement(metadata={"order_id": "ord-001"}))
        assert disbursement.metadata_dict == {"order_id": "ord-001"}

    def test_invalid_request_creates_nothing(self, create_disbursement):
        with pytest.raises(ValidationError) as exc:
            create_disbursement(amount=50.0, recipient_phone="12")

        assert {"amount", "recipient_phone"} <= set(exc.value.messages)
        assert current_domain.repository_for(Disbursement).matching() == []

    def test_unknown_type(self, create_disbursement):
        with pytest.raises(ValidationError) as exc:
            create_disbursement("GIFT")
        assert "type" in exc.value.messages

    def test_malformed_metadata(self, create_disbursement):
        from payouts.disbursement.creation import CreateDisbursement

        with pytest.raises(ValidationError) as exc:
            current_domain.process(
                CreateDisbursement(
                    disbursement_type="MERCHANT_PAYOUT",
                    amount=5000.0,
                    recipient_phone="0788123456",
                    recipient_name="Kigali Bites",
                    metadata="{not json",
                    created_by="admin-001",
                ),
                asynchronous=False,
            )
        assert "metadata" in exc.value.messages


class TestCreateBulkDisbursements:
    def test_every_item_carries_the_batch_id(self, load):
        result = _bulk([_item(), _item(amount=4000, recipient_name="Huye Grocers")], metadata='{"run": "may"}')

        assert len(result.disbursement_ids) == 2
        for disbursement_id in result.disbursement_ids:
            metadata = load(disbursement_id).metadata_dict
            assert metadata["batch_id"] == result.batch_id
            assert metadata["run"] == "may"

    def test_batch_level_approval_applies_to_all(self, load):
        result = _bulk([_item(), _item()], requires_approval=True, description="Bonus run")

        disbursements = [load(i) for i in result.disbursement_ids]
        assert {d.status for d in disbursements} == {DisbursementStatus.REQUIRES_APPROVAL.value}
        assert {d.description for d in disbursements} == {"Bonus run"}

    def test_one_bad_item_rejects_the_batch(self):
        with pytest.raises(ValidationError) as exc:
            _bulk([_item(), _item(recipient_phone="bad")])

        assert "disbursements[1].recipient_phone" in exc.value.messages
        assert current_domain.repository_for(Disbursement).matching() == []

    def test_disbursements_must_be_a_list(self):
        with pytest.raises(ValidationError) as exc:
            current_domain.process(
                CreateBulkDisbursements(disbursements='{"type": "MERCHANT_PAYOUT"}', created_by="admin-001"),
                asynchronous=False,
            )
        assert "disbursements" in exc.value.messages

    @pytest.mark.parametrize(
        "items, field",
        [
            ([_item(), "not-an-object"], "disbursements[1]"),
            ([_item(metadata="oops")], "disbursements[0].metadata"),
        ],
    )
    def test_malformed_items_are_rejected_as_validation_errors(self, items, field):
        with pytest.raises(ValidationError) as exc:
            _bulk(items)

        assert field in exc.value.messages
        assert current_domain.repository_for(Disbursement).matching() == []
