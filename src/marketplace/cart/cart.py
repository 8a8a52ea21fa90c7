"""Shopping Cart aggregate — a customer's pending selection across merchants.

A cart may hold products from several merchants. Checkout splits it into one
order per merchant and clears it in the same unit of work.
"""

from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer

from marketplace.domain import marketplace


@marketplace.entity(part_of="ShoppingCart")
class CartItem:
    product_id = Identifier(required=True)
    merchant_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    added_at = DateTime()


@marketplace.aggregate
class ShoppingCart:
    customer_id = Identifier(required=True)
    items = HasMany(CartItem)
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def create(cls, customer_id):
        now = datetime.now(UTC)
        return cls(customer_id=customer_id, created_at=now, updated_at=now)

    def add_item(self, product_id, merchant_id, quantity):
        """Add a product, or increase its quantity if it is already in the cart."""
        existing = next((i for i in self.items if str(i.product_id) == str(product_id)), None)
        now = datetime.now(UTC)

        if existing:
            existing.quantity += quantity
        else:
            self.add_items(
                CartItem(
                    product_id=product_id,
                    merchant_id=merchant_id,
                    quantity=quantity,
                    added_at=now,
                )
            )
        self.updated_at = now

    def update_item_quantity(self, product_id, quantity):
        item = self._find(product_id)
        item.quantity = quantity
        self.updated_at = datetime.now(UTC)

    def remove_item(self, product_id):
        self.remove_items(self._find(product_id))
        self.updated_at = datetime.now(UTC)

    def clear(self):
        for item in list(self.items):
            self.remove_items(item)
        self.updated_at = datetime.now(UTC)

    def _find(self, product_id):
        item = next((i for i in self.items if str(i.product_id) == str(product_id)), None)
        if item is None:
            raise ValidationError({"product_id": ["Product is not in the cart"]})
        return item
