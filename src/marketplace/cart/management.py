"""Cart management — commands and handler."""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, Integer
from protean.utils.globals import current_domain

from marketplace.cart.cart import ShoppingCart
from marketplace.catalogue.product import Product
from marketplace.domain import marketplace


@marketplace.command(part_of="ShoppingCart")
class CreateCart:
    customer_id: Identifier(required=True)


@marketplace.command(part_of="ShoppingCart")
class AddCartItem:
    cart_id: Identifier(required=True)
    product_id: Identifier(required=True)
    quantity: Integer(required=True, min_value=1)


@marketplace.command(part_of="ShoppingCart")
class UpdateCartItemQuantity:
    cart_id: Identifier(required=True)
    product_id: Identifier(required=True)
    quantity: Integer(required=True, min_value=1)


@marketplace.command(part_of="ShoppingCart")
class RemoveCartItem:
    cart_id: Identifier(required=True)
    product_id: Identifier(required=True)


@marketplace.command_handler(part_of=ShoppingCart)
class ManageCartHandler:
    @handle(CreateCart)
    def create_cart(self, command):
        cart = ShoppingCart.create(customer_id=command.customer_id)
        current_domain.repository_for(ShoppingCart).add(cart)
        return str(cart.id)

    @handle(AddCartItem)
    def add_item(self, command):
        product = current_domain.repository_for(Product).get(command.product_id)
        if not product.is_available:
            raise ValidationError({"product_id": ["Product is not available"]})

        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.get(command.cart_id)
        cart.add_item(
            product_id=command.product_id,
            merchant_id=str(product.merchant_id),
            quantity=command.quantity,
        )
        repo.add(cart)

    @handle(UpdateCartItemQuantity)
    def update_quantity(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.get(command.cart_id)
        cart.update_item_quantity(command.product_id, command.quantity)
        repo.add(cart)

    @handle(RemoveCartItem)
    def remove_item(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.get(command.cart_id)
        cart.remove_item(command.product_id)
        repo.add(cart)
