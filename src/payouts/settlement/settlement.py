"""MerchantSettlement — the ledger row tying a delivered order to its payout.

One row per order (``order_id`` is unique), written as soon as the delivery
completes and before the payout disbursement is attempted. A row that is
still ``Pending_Disbursement`` means the disbursement could not be created
yet; the reconciliation sweep picks it up again. An order whose subtotal is
below the minimum disbursement amount can never be paid out on its own, so
its row is parked as ``Below_Threshold`` and left out of the sweep.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.fields import DateTime, Float, Identifier, Integer, String

from payouts.domain import payouts


class SettlementStatus(Enum):
    PENDING_DISBURSEMENT = "Pending_Disbursement"
    DISBURSED = "Disbursed"
    BELOW_THRESHOLD = "Below_Threshold"


@payouts.aggregate
class MerchantSettlement:
    order_id = Identifier(required=True, unique=True)
    delivery_id = Identifier(required=True)
    merchant_id = Identifier(required=True)
    merchant_name = String(max_length=200)
    merchant_phone = String(max_length=30)
    amount = Float(required=True, min_value=0.0)
    platform_fee = Float(default=0.0)
    status = String(choices=SettlementStatus, default=SettlementStatus.PENDING_DISBURSEMENT.value)
    disbursement_id = Identifier()
    attempts = Integer(default=0)
    last_error = String(max_length=500)
    delivered_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def open(cls, event):
        now = datetime.now(UTC)
        return cls(
            order_id=str(event.order_id),
            delivery_id=str(event.delivery_id),
            merchant_id=str(event.merchant_id),
            merchant_name=event.merchant_name,
            merchant_phone=event.merchant_phone,
            # The platform fee is retained; the merchant is owed the goods
            amount=event.order_subtotal,
            platform_fee=event.platform_fee,
            delivered_at=event.delivered_at,
            created_at=now,
            updated_at=now,
        )

    @property
    def is_pending(self) -> bool:
        return self.status == SettlementStatus.PENDING_DISBURSEMENT.value

    def record_disbursed(self, disbursement_id) -> None:
        self.attempts = (self.attempts or 0) + 1
        self.disbursement_id = str(disbursement_id)
        self.status = SettlementStatus.DISBURSED.value
        self.last_error = None
        self.updated_at = datetime.now(UTC)

    def mark_below_threshold(self, minimum: float) -> None:
        self.attempts = (self.attempts or 0) + 1
        self.status = SettlementStatus.BELOW_THRESHOLD.value
        self.last_error = f"Amount {self.amount:,.2f} is below the minimum payout of {minimum:,.2f}"
        self.updated_at = datetime.now(UTC)

    def record_failure(self, error: str) -> None:
        self.attempts = (self.attempts or 0) + 1
        self.last_error = error[:500]
        self.updated_at = datetime.now(UTC)


@payouts.repository(part_of=MerchantSettlement)
class MerchantSettlementRepository:
    def for_order(self, order_id) -> MerchantSettlement | None:
        return self._dao.query.filter(order_id=str(order_id)).all().first

    def pending(self) -> list[MerchantSettlement]:
        return self._dao.query.filter(status=SettlementStatus.PENDING_DISBURSEMENT.value).all().items
