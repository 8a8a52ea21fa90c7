"""Merchant and product management — commands and handlers."""

from protean import handle
from protean.fields import Boolean, Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from marketplace.catalogue.merchant import Merchant
from marketplace.catalogue.product import Product
from marketplace.domain import marketplace
from marketplace.shared.geo import GeoPoint


@marketplace.command(part_of="Merchant")
class RegisterMerchant:
    owner_id: Identifier(required=True)
    name: String(required=True, max_length=150)
    phone: String(max_length=20)
    pickup_address: String(max_length=255)
    latitude: Float()
    longitude: Float()


@marketplace.command(part_of="Product")
class ListProduct:
    merchant_id: Identifier(required=True)
    name: String(required=True, max_length=200)
    unit_price: Float(required=True, min_value=0.01)
    stock_quantity: Integer(min_value=0)


@marketplace.command(part_of="Product")
class SetProductAvailability:
    product_id: Identifier(required=True)
    is_available: Boolean(required=True)


@marketplace.command(part_of="Product")
class RepriceProduct:
    product_id: Identifier(required=True)
    unit_price: Float(required=True, min_value=0.01)


@marketplace.command_handler(part_of=Merchant)
class MerchantHandler:
    @handle(RegisterMerchant)
    def register_merchant(self, command):
        location = None
        if command.latitude is not None and command.longitude is not None:
            location = GeoPoint(latitude=command.latitude, longitude=command.longitude)

        merchant = Merchant.register(
            owner_id=command.owner_id,
            name=command.name,
            phone=command.phone,
            pickup_address=command.pickup_address,
            location=location,
        )
        current_domain.repository_for(Merchant).add(merchant)
        return str(merchant.id)


@marketplace.command_handler(part_of=Product)
class ProductHandler:
    @handle(ListProduct)
    def list_product(self, command):
        # Unknown merchants raise ObjectNotFoundError
        current_domain.repository_for(Merchant).get(command.merchant_id)

        product = Product.list_for_sale(
            merchant_id=command.merchant_id,
            name=command.name,
            unit_price=command.unit_price,
            stock_quantity=command.stock_quantity,
        )
        current_domain.repository_for(Product).add(product)
        return str(product.id)

    @handle(SetProductAvailability)
    def set_availability(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get(command.product_id)
        product.set_availability(command.is_available)
        repo.add(product)

    @handle(RepriceProduct)
    def reprice(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get(command.product_id)
        product.reprice(command.unit_price)
        repo.add(product)
