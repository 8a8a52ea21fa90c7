"""Address aggregate — delivery destinations owned by customers.

Address book management lives in the customer profile service; orders only
read addresses here to check ownership and to locate the drop-off.
"""

from protean.fields import Identifier, String, ValueObject

from marketplace.domain import marketplace
from marketplace.shared.geo import GeoPoint


@marketplace.aggregate
class Address:
    customer_id = Identifier(required=True)
    label = String(max_length=50)
    street = String(required=True, max_length=255)
    city = String(max_length=100)
    location = ValueObject(GeoPoint)

    def is_owned_by(self, customer_id) -> bool:
        return str(self.customer_id) == str(customer_id)
