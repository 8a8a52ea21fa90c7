"""BDD tests for platform fee pricing."""

import pytest
from marketplace.order.order import Order
from marketplace.pricing.fees import compute_fee
from pytest_bdd import parsers, scenarios, then, when

scenarios("features/platform_fees.feature")


@pytest.fixture()
def priced():
    return {}


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse("an order with a subtotal of {subtotal:g} RWF is priced"))
def price_subtotal(priced, subtotal):
    priced["fee"] = compute_fee(subtotal)


@when(
    parsers.cfparse(
        "an order with a subtotal of {subtotal:g} RWF, a delivery fee of {delivery_fee:g} RWF "
        "and a discount of {discount:g} RWF is placed"
    )
)
def place_order(priced, subtotal, delivery_fee, discount):
    priced["order"] = Order.place(
        checkout_id="chk-001",
        customer_id="cust-001",
        merchant_id="merch-001",
        address_id="addr-001",
        items=[{"product_id": "prod-001", "name": "Platter", "quantity": 1, "unit_price": subtotal}],
        platform_fee=compute_fee(subtotal),
        delivery_fee=delivery_fee,
        discount=discount,
    )


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse("the platform fee is {fee:g} RWF"))
def platform_fee_is(priced, fee):
    assert priced["fee"] == fee


@then(parsers.cfparse("the order total is {total:g} RWF"))
def order_total_is(priced, total):
    assert priced["order"].total == total
