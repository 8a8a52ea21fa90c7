"""Payouts domain API package."""

from payouts.api.routes import disbursement_router, settlement_router

__all__ = ["disbursement_router", "settlement_router"]
