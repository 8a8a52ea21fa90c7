"""Product aggregate — a sellable item priced by its merchant.

Prices held in carts are never trusted at checkout; the checkout handler
re-reads the product and uses ``unit_price`` from here.
"""

from datetime import UTC, datetime

from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String

from marketplace.domain import marketplace


@marketplace.aggregate
class Product:
    merchant_id = Identifier(required=True)
    name = String(required=True, max_length=200)
    unit_price = Float(required=True, min_value=0.01)
    is_available = Boolean(default=True)
    stock_quantity = Integer(min_value=0)  # None means untracked
    updated_at = DateTime()

    @classmethod
    def list_for_sale(cls, merchant_id, name, unit_price, stock_quantity=None):
        return cls(
            merchant_id=merchant_id,
            name=name,
            unit_price=unit_price,
            is_available=True,
            stock_quantity=stock_quantity,
            updated_at=datetime.now(UTC),
        )

    def can_supply(self, quantity: int) -> bool:
        if not self.is_available:
            return False
        return self.stock_quantity is None or self.stock_quantity >= quantity

    def set_availability(self, is_available: bool) -> None:
        self.is_available = is_available
        self.updated_at = datetime.now(UTC)

    def reprice(self, unit_price: float) -> None:
        self.unit_price = unit_price
        self.updated_at = datetime.now(UTC)
