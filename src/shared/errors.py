"""Error taxonomy shared by the Marketplace and Payouts contexts.

Validation and not-found errors reuse Protean's own exceptions and conflicts
build on ``InvalidOperationError``; authorization, provider and
configuration errors have their own bases. ``shared.api`` maps each family
to an HTTP status.

Every error exposes a stable ``kind`` string used in HTTP error bodies.
"""

from protean.exceptions import InvalidOperationError, ValidationError


# ---------------------------------------------------------------------------
# Validation (400)
# ---------------------------------------------------------------------------
class EmptyCartError(ValidationError):
    kind = "empty_cart"

    def __init__(self, cart_id):
        self.cart_id = cart_id
        super().__init__({"cart": ["Cart has no items"]})


class ProductUnavailableError(ValidationError):
    kind = "product_unavailable"

    def __init__(self, product_id, reason="Product is no longer available"):
        self.product_id = product_id
        super().__init__({"product_id": [f"{reason}: {product_id}"]})


# ---------------------------------------------------------------------------
# Conflicts (409)
# ---------------------------------------------------------------------------
class ConflictError(InvalidOperationError):
    """The entity is not in a state that allows the requested change.

    Callers should refresh their view of the entity before retrying the user
    action.
    """

    kind = "conflict"


class InvalidTransitionError(ConflictError):
    kind = "invalid_transition"

    def __init__(self, entity, source, target):
        self.entity = entity
        self.source = source
        self.target = target
        super().__init__(f"{entity} cannot transition from {source} to {target}")


class OrderAlreadyClaimedError(ConflictError):
    kind = "order_already_claimed"

    def __init__(self, order_id):
        self.order_id = order_id
        super().__init__(f"Order {order_id} has already been claimed by another rider")


class RiderUnavailableError(ConflictError):
    kind = "rider_unavailable"

    def __init__(self, rider_id):
        self.rider_id = rider_id
        super().__init__(f"Rider {rider_id} is not available")


class RiderBusyError(ConflictError):
    kind = "rider_busy"

    def __init__(self, rider_id, active_delivery_id=None):
        self.rider_id = rider_id
        self.active_delivery_id = active_delivery_id
        super().__init__(f"Rider {rider_id} already has an active delivery")


# ---------------------------------------------------------------------------
# Authorization (403)
# ---------------------------------------------------------------------------
class AuthorizationError(Exception):
    kind = "forbidden"


class NotAssignedError(AuthorizationError):
    kind = "not_assigned"

    def __init__(self, delivery_id, rider_id):
        self.delivery_id = delivery_id
        self.rider_id = rider_id
        super().__init__(f"Rider {rider_id} is not assigned to delivery {delivery_id}")


class AddressNotOwnedError(AuthorizationError):
    kind = "address_not_owned"

    def __init__(self, address_id, customer_id):
        self.address_id = address_id
        self.customer_id = customer_id
        super().__init__(f"Address {address_id} does not belong to customer {customer_id}")


# ---------------------------------------------------------------------------
# External payout provider
# ---------------------------------------------------------------------------
class ExternalProviderError(Exception):
    kind = "provider_error"
    retryable = False

    def __init__(self, message, status_code=None):
        self.status_code = status_code
        super().__init__(message)


class RetryableProviderError(ExternalProviderError):
    """Timeouts, connection failures and 5xx responses."""

    kind = "provider_retryable"
    retryable = True


class NonRetryableProviderError(ExternalProviderError):
    """4xx responses: bad recipient, insufficient balance, rejected request."""

    kind = "provider_rejected"


# ---------------------------------------------------------------------------
# Configuration (500)
# ---------------------------------------------------------------------------
class ConfigurationError(Exception):
    kind = "configuration"


class FeeTableError(ConfigurationError):
    kind = "fee_table"
