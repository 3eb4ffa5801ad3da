from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from storefront.api.routes_orders import router as orders_router
from storefront.core.config import get_settings
from storefront.core.errors import InternalError, StorefrontError, ValidationError
from storefront.core.logging import configure_logging
from storefront.domain.orders.commands import field_errors
from storefront.persistence.pg import init_db

configure_logging()
logger = logging.getLogger(__name__)
settings = get_settings()

app = FastAPI(title=settings.app_name)


@app.on_event("startup")
def on_startup() -> None:
    init_db()
    logger.info("storefront orders ready: env=%s", settings.env)


def _internal_error_response(exc: Exception) -> JSONResponse:
    error = InternalError("Internal server error")
    body = error.to_dict()
    if get_settings().is_dev:
        body["error"] = str(exc)
    return JSONResponse(status_code=error.status_code, content=body)


@app.exception_handler(StorefrontError)
async def storefront_error_handler(_: Request, exc: StorefrontError):
    if isinstance(exc, InternalError):
        logger.error("internal error: %s", exc.message)
        return _internal_error_response(exc)
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(_: Request, exc: RequestValidationError):
    error = ValidationError("Validation failed", details=field_errors(exc.errors(), strip_prefix=("body", "query", "path")))
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(_: Request, exc: SQLAlchemyError):
    logger.exception("database failure", exc_info=exc)
    return _internal_error_response(exc)


@app.exception_handler(Exception)
async def unhandled_error_handler(_: Request, exc: Exception):
    logger.exception("unhandled error", exc_info=exc)
    return _internal_error_response(exc)


@app.get("/healthz")
def healthz() -> dict:
    return {"status": "ok"}


app.include_router(orders_router)
