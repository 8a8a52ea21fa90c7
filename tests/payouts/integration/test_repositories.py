"""Conditional status writes in the Disbursement repository."""

from payouts.disbursement.disbursement import Disbursement, DisbursementStatus
from protean import current_domain


class TestDisbursementCompareAndSet:
    def test_write_lands_only_from_observed_status(self, create_disbursement, load):
        repo = current_domain.repository_for(Disbursement)
        disbursement_id = create_disbursement("CUSTOMER_REFUND")

        assert repo.compare_and_set_status(disbursement_id, DisbursementStatus.PENDING, DisbursementStatus.PROCESSING) is False
        assert repo.compare_and_set_status(
            disbursement_id,
            DisbursementStatus.REQUIRES_APPROVAL,
            DisbursementStatus.APPROVED,
            approved_by="approver-001",
        ) is True

        disbursement = load(disbursement_id)
        assert disbursement.status == DisbursementStatus.APPROVED.value
        assert disbursement.approved_by == "approver-001"

    def test_second_writer_from_same_status_loses(self, create_disbursement):
        repo = current_domain.repository_for(Disbursement)
        disbursement_id = create_disbursement("CUSTOMER_REFUND")

        first = repo.compare_and_set_status(disbursement_id, DisbursementStatus.REQUIRES_APPROVAL, DisbursementStatus.APPROVED)
        second = repo.compare_and_set_status(disbursement_id, DisbursementStatus.REQUIRES_APPROVAL, DisbursementStatus.REJECTED)

        assert (first, second) == (True, False)
        assert repo.get(disbursement_id).status == DisbursementStatus.APPROVED.value
