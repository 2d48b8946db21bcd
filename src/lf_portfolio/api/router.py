"""lf_portfolio REST API, mounted under /funds and /vaults next to lf_fund.

POST /{fund_id}/trade              — quote preview for the fund (manager)
POST /{fund_id}/trades             — record an executed fill (manager)
GET  /{fund_id}/trades             — newest first, cursor paginated
GET  /{fund_id}/positions          — open positions with unrealized PnL
POST /{fund_id}/positions/mark     — set one position's mark (manager)
POST /{fund_id}/positions/refresh  — re-mark from venue prices (manager)
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.lf_common.database import get_db_session
from src.lf_common.response import ApiResponse, success_response
from src.lf_gateway.auth.dependencies import Principal, get_current_principal
from src.lf_portfolio.application.schemas import (
    MarkPositionRequest,
    RecordTradeRequest,
    TradeQuoteRequest,
)
from src.lf_portfolio.application.service import PortfolioApplicationService

router = APIRouter(tags=["portfolio"])

_service = PortfolioApplicationService()


@router.post("/{fund_id}/trade")
async def quote_trade(
    fund_id: str,
    body: TradeQuoteRequest,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.quote_trade(db, fund_id, principal.wallet, body)
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/{fund_id}/trades")
async def record_trade(
    fund_id: str,
    body: RecordTradeRequest,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.record_trade(db, fund_id, principal.wallet, body)
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/{fund_id}/trades")
async def list_trades(
    fund_id: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(50, ge=1, le=200),
) -> ApiResponse:
    data = await _service.list_trades(db, fund_id, cursor, limit)
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/{fund_id}/positions")
async def list_positions(
    fund_id: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    include_closed: bool = Query(False),
) -> ApiResponse:
    data = await _service.list_positions(db, fund_id, include_closed)
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/{fund_id}/positions/mark")
async def mark_position(
    fund_id: str,
    body: MarkPositionRequest,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.mark_position(db, fund_id, principal.wallet, body)
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/{fund_id}/positions/refresh")
async def refresh_marks(
    fund_id: str,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.refresh_marks(db, fund_id, principal.wallet)
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
