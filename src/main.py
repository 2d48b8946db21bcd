"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy import text

from config.settings import settings
from src.lf_common.database import engine
from src.lf_common.errors import AppError, ValidationError
from src.lf_common.response import error_response
from src.lf_fund.api.router import router as fund_router
from src.lf_gateway.middleware.request_log import RequestLogMiddleware
from src.lf_market.api.router import router as market_router
from src.lf_portfolio.api.router import router as portfolio_router

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: verify the DB connection. Shutdown: dispose the pool."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    yield
    await engine.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


app.add_middleware(RequestLogMiddleware)


def _with_request_id(request: Request, exc: AppError) -> dict[str, object]:
    resp = error_response(exc.code, exc.message, exc.kind, exc.retryable)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp.model_dump()


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.http_status >= 500:
        logger.error(
            "Request failed: %s %s → %d %s",
            request.method, request.url.path, exc.code, exc.message,
        )
    headers = {"WWW-Authenticate": "Bearer"} if exc.http_status == 401 else None
    return JSONResponse(
        status_code=exc.http_status,
        content=_with_request_id(request, exc),
        headers=headers,
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    detail = f"{location}: {first.get('msg', 'invalid request')}" if location else "Invalid request"
    err = ValidationError(detail)
    return JSONResponse(status_code=err.http_status, content=_with_request_id(request, err))


# /vaults is an alias of /funds, hidden from the OpenAPI schema
for prefix, in_schema in (("/funds", True), ("/vaults", False)):
    app.include_router(fund_router, prefix=f"{API_PREFIX}{prefix}", include_in_schema=in_schema)
    app.include_router(
        portfolio_router, prefix=f"{API_PREFIX}{prefix}", include_in_schema=in_schema
    )
app.include_router(market_router, prefix=API_PREFIX)


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": "0.1.0"}
