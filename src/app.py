"""DropRun FastAPI application.

Serves the Marketplace and Payouts domains over HTTP. Commands are processed
synchronously; every request runs inside the context of the domain that owns
its URL prefix.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from marketplace.domain import marketplace
from marketplace.pricing.fees import default_schedule
from payouts.domain import payouts
from shared.api import register_error_handlers
from shared.logging import bind_request, configure_logging

configure_logging()

# PROTEAN_ENV picks the domain.toml overlay: memory adapters with events
# handled in-request by default, PostgreSQL/Redis with server.py workers in
# production.
marketplace.init()
payouts.init()

# Builds and validates the configured fee table; a bad table stops the boot
default_schedule()

from marketplace.api import (  # noqa: E402
    cart_router,
    delivery_router,
    merchant_router,
    order_router,
    product_router,
    rider_router,
)
from payouts.api import disbursement_router, settlement_router  # noqa: E402

ROUTERS_BY_DOMAIN = (
    (marketplace, (merchant_router, product_router, cart_router, order_router, rider_router, delivery_router)),
    (payouts, (disbursement_router, settlement_router)),
)

_PREFIX_DOMAIN = {router.prefix: domain for domain, routers in ROUTERS_BY_DOMAIN for router in routers}


def domain_for_path(path: str):
    for prefix, domain in _PREFIX_DOMAIN.items():
        if path == prefix or path.startswith(prefix + "/"):
            return domain
    return None


app = FastAPI(
    title="DropRun API",
    description="Multi-vendor delivery platform: checkout, dispatch, delivery tracking and merchant payouts",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    domain = domain_for_path(request.url.path)
    if domain is None:
        return await call_next(request)

    bind_request(method=request.method, path=request.url.path, domain=domain.name)
    with domain.domain_context():
        return await call_next(request)


for _, routers in ROUTERS_BY_DOMAIN:
    for router in routers:
        app.include_router(router)


@app.get("/health")
async def health() -> dict:
    return {"status": "ok", "domains": [domain.name for domain, _ in ROUTERS_BY_DOMAIN]}
