"""Disbursement repository: conditional status writes and lookups."""

from protean.utils.query import Q

from payouts.disbursement.disbursement import Disbursement, DisbursementStatus
from payouts.domain import payouts


@payouts.repository(part_of=Disbursement)
class DisbursementRepository:
    def compare_and_set_status(self, disbursement_id, expected: DisbursementStatus, target: DisbursementStatus, **changes) -> bool:
        """Write ``target`` only if the row is still in ``expected``."""
        updated = self._dao._update_all(
            Q(id=str(disbursement_id), status=expected.value),
            status=target.value,
            **changes,
        )
        return updated == 1

    def by_provider_transaction(self, provider_transaction_id) -> Disbursement | None:
        return self._dao.query.filter(provider_transaction_id=str(provider_transaction_id)).all().first

    def by_reference(self, reference) -> Disbursement | None:
        return self._dao.query.filter(reference=reference).all().first

    def matching(self, **criteria) -> list[Disbursement]:
        """All disbursements matching exact-value ``criteria`` (type, status, created_by, ...)."""
        query = self._dao.query
        if criteria:
            query = query.filter(**criteria)
        return query.all().items
