"""HTTP error mapping shared by every router.

Error bodies always carry the error's ``kind`` so clients can branch on it:

    {"error": "...", "kind": "order_already_claimed"}
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import InvalidOperationError, ObjectNotFoundError, ValidationError

from shared.errors import AuthorizationError, ConfigurationError, ExternalProviderError

logger = structlog.get_logger(__name__)


def _body(exc: Exception, default_kind: str, error=None) -> dict:
    return {"error": error if error is not None else str(exc), "kind": getattr(exc, "kind", default_kind)}


async def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content=_body(exc, "validation", error=exc.messages))


async def _not_found(request: Request, exc: ObjectNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content=_body(exc, "not_found"))


async def _conflict(request: Request, exc: InvalidOperationError) -> JSONResponse:
    return JSONResponse(status_code=409, content=_body(exc, "conflict"))


async def _forbidden(request: Request, exc: AuthorizationError) -> JSONResponse:
    return JSONResponse(status_code=403, content=_body(exc, "forbidden"))


async def _provider_error(request: Request, exc: ExternalProviderError) -> JSONResponse:
    logger.warning("Payout provider error reached the API", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=502, content=_body(exc, "provider_error"))


async def _configuration_error(request: Request, exc: ConfigurationError) -> JSONResponse:
    logger.error("Configuration error", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=500, content=_body(exc, "configuration"))


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ValidationError, _validation_error)
    app.add_exception_handler(ObjectNotFoundError, _not_found)
    app.add_exception_handler(InvalidOperationError, _conflict)
    app.add_exception_handler(AuthorizationError, _forbidden)
    app.add_exception_handler(ExternalProviderError, _provider_error)
    app.add_exception_handler(ConfigurationError, _configuration_error)
