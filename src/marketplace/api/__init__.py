"""Marketplace domain API package."""

from marketplace.api.routes import (
    cart_router,
    delivery_router,
    merchant_router,
    order_router,
    product_router,
    rider_router,
)

__all__ = ["merchant_router", "product_router", "cart_router", "order_router", "rider_router", "delivery_router"]
