import pytest
from marketplace.cart.cart import ShoppingCart
from protean.exceptions import ValidationError


@pytest.fixture()
def cart():
    return ShoppingCart.create(customer_id="cust-001")


class TestCartItems:
    def test_new_cart_is_empty(self, cart):
        assert cart.items == []
        assert cart.created_at is not None

    def test_add_items_from_several_merchants(self, cart):
        cart.add_item("prod-001", "merch-001", 1)
        cart.add_item("prod-002", "merch-002", 2)

        assert {str(i.merchant_id) for i in cart.items} == {"merch-001", "merch-002"}

    def test_adding_same_product_increases_quantity(self, cart):
        cart.add_item("prod-001", "merch-001", 1)
        cart.add_item("prod-001", "merch-001", 2)

        assert len(cart.items) == 1
        assert cart.items[0].quantity == 3

    def test_update_quantity(self, cart):
        cart.add_item("prod-001", "merch-001", 1)
        cart.update_item_quantity("prod-001", 5)
        assert cart.items[0].quantity == 5

    def test_remove_item(self, cart):
        cart.add_item("prod-001", "merch-001", 1)
        cart.add_item("prod-002", "merch-001", 1)
        cart.remove_item("prod-001")

        assert [str(i.product_id) for i in cart.items] == ["prod-002"]

    def test_unknown_product_rejected(self, cart):
        with pytest.raises(ValidationError):
            cart.remove_item("prod-404")

    def test_clear(self, cart):
        cart.add_item("prod-001", "merch-001", 1)
        cart.add_item("prod-002", "merch-002", 1)
        cart.clear()
        assert cart.items == []
