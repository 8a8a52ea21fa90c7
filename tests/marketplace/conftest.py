import pytest
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def marketplace_bed():
    from marketplace.domain import marketplace

    bed = DomainFixture(marketplace)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(marketplace_bed):
    with marketplace_bed.domain_context():
        yield


# ---------------------------------------------------------------------------
# Builders: each returns the id of what it created
# ---------------------------------------------------------------------------
@pytest.fixture()
def make_merchant():
    from marketplace.catalogue.management import RegisterMerchant
    from protean import current_domain

    def _make(name="Kigali Bites", phone="0788123456", latitude=-1.9441, longitude=30.0619, owner_id="owner-001"):
        return current_domain.process(
            RegisterMerchant(
                owner_id=owner_id,
                name=name,
                phone=phone,
                pickup_address=f"{name}, KN 4 Ave",
                latitude=latitude,
                longitude=longitude,
            ),
            asynchronous=False,
        )

    return _make


@pytest.fixture()
def make_product():
    from marketplace.catalogue.management import ListProduct
    from protean import current_domain

    def _make(merchant_id, name="Brochette", unit_price=1000.0, stock_quantity=None):
        return current_domain.process(
            ListProduct(merchant_id=merchant_id, name=name, unit_price=unit_price, stock_quantity=stock_quantity),
            asynchronous=False,
        )

    return _make


@pytest.fixture()
def make_address():
    from marketplace.address.address import Address
    from marketplace.shared.geo import GeoPoint
    from protean import current_domain

    def _make(customer_id="cust-001", latitude=-1.9500, longitude=30.0900):
        address = Address(
            customer_id=customer_id,
            label="Home",
            street="KG 11 Ave",
            city="Kigali",
            location=GeoPoint(latitude=latitude, longitude=longitude),
        )
        current_domain.repository_for(Address).add(address)
        return str(address.id)

    return _make


@pytest.fixture()
def make_rider():
    from marketplace.rider.management import RegisterRider, SetRiderAvailability, UpdateRiderLocation
    from protean import current_domain

    counter = {"n": 0}

    def _make(available=True, latitude=None, longitude=None, name="Jean"):
        counter["n"] += 1
        rider_id = current_domain.process(
            RegisterRider(user_id=f"user-rider-{counter['n']:03d}", name=name, phone="0788000111"),
            asynchronous=False,
        )
        if available:
            current_domain.process(SetRiderAvailability(rider_id=rider_id, is_available=True), asynchronous=False)
        if latitude is not None:
            current_domain.process(
                UpdateRiderLocation(rider_id=rider_id, latitude=latitude, longitude=longitude),
                asynchronous=False,
            )
        return rider_id

    return _make


@pytest.fixture()
def checkout(make_address):
    """Fill a cart with ``(product_id, quantity)`` lines and place the order."""
    from marketplace.cart.management import AddCartItem, CreateCart
    from marketplace.order.checkout import PlaceOrder
    from protean import current_domain

    def _checkout(lines, customer_id="cust-001", address_id=None, **options):
        cart_id = current_domain.process(CreateCart(customer_id=customer_id), asynchronous=False)
        for product_id, quantity in lines:
            current_domain.process(
                AddCartItem(cart_id=cart_id, product_id=product_id, quantity=quantity),
                asynchronous=False,
            )
        address_id = address_id or make_address(customer_id=customer_id)
        return current_domain.process(
            PlaceOrder(customer_id=customer_id, cart_id=cart_id, address_id=address_id, **options),
            asynchronous=False,
        )

    return _checkout


@pytest.fixture()
def placed_order(make_merchant, make_product, checkout):
    """A single-merchant order with a 2 x 1,000 RWF line, still waiting for a rider."""
    merchant_id = make_merchant()
    product_id = make_product(merchant_id, unit_price=1000.0)
    result = checkout([(product_id, 2)])
    return result.orders[0]
