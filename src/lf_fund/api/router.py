"""lf_fund REST API.

Mounted twice by main.py: under /funds and under the /vaults alias.

POST /                          — create fund (caller must be the manager)
GET  /                          — list funds (?stage= &manager=)
GET  /{fund_id}                 — detail
POST /{fund_id}/start-trading   — Open -> Trading (manager)
POST /{fund_id}/end-trading     — Trading -> Settlement (manager)
POST /{fund_id}/finalize        — Settlement -> Closed (manager)
POST /{fund_id}/perf-fee-paid   — mark performance fee paid (manager)
POST /{fund_id}/deposit         — deposit USDC for the caller's wallet
POST /{fund_id}/withdraw        — burn shares of the caller's wallet
POST /{fund_id}/withdrawals     — queue a Trading-stage withdrawal for the caller's wallet
GET  /{fund_id}/withdrawals     — withdrawal requests (?wallet= &active=)
POST /{fund_id}/withdrawals/{request_id}/cancel   — cancel a pending request (requester)
POST /{fund_id}/withdrawals/{request_id}/process  — fill a request from available cash
POST /{fund_id}/snapshot        — authoritative snapshot (indexer role)
GET  /{fund_id}/depositors
GET  /{fund_id}/performance     — snapshot history, newest first
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Path, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.lf_common.database import get_db_session
from src.lf_common.response import ApiResponse, success_response
from src.lf_common.units import MAX_MICRO_UNITS
from src.lf_fund.application.schemas import (
    CreateFundRequest,
    DepositRequest,
    FinalizeRequest,
    QueueWithdrawalRequest,
    SnapshotPushRequest,
    StartTradingRequest,
    WithdrawRequest,
)
from src.lf_fund.application.service import FundApplicationService
from src.lf_gateway.auth.dependencies import Principal, get_current_principal, require_indexer

router = APIRouter(tags=["funds"])

_service = FundApplicationService()


@router.post("")
async def create_fund(
    body: CreateFundRequest,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.create_fund(db, principal.wallet, body)
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("")
async def list_funds(
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    stage: str | None = Query(None, description="Open | Trading | Settlement | Closed"),
    manager: str | None = Query(None, max_length=64),
) -> ApiResponse:
    data = await _service.list_funds(db, stage, manager)
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/{fund_id}")
async def get_fund(
    fund_id: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_fund_detail(db, fund_id)
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/{fund_id}/start-trading")
async def start_trading(
    fund_id: str,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    body: StartTradingRequest | None = None,
) -> ApiResponse:
    initial = body.initial_aum_usdc if body is not None else None
    data = await _service.start_trading(db, fund_id, principal.wallet, initial)
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/{fund_id}/end-trading")
async def end_trading(
    fund_id: str,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.end_trading(db, fund_id, principal.wallet)
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/{fund_id}/finalize")
async def finalize(
    fund_id: str,
    body: FinalizeRequest,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.finalize(db, fund_id, principal.wallet, body.final_balance_usdc)
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/{fund_id}/perf-fee-paid")
async def mark_perf_fee_paid(
    fund_id: str,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.mark_perf_fee_paid(db, fund_id, principal.wallet)
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/{fund_id}/deposit")
async def deposit(
    fund_id: str,
    body: DepositRequest,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.deposit(db, fund_id, principal.wallet, body.amount_usdc)
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/{fund_id}/withdraw")
async def withdraw(
    fund_id: str,
    body: WithdrawRequest,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.withdraw(db, fund_id, principal.wallet, body.shares)
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/{fund_id}/snapshot")
async def push_snapshot(
    fund_id: str,
    body: SnapshotPushRequest,
    _indexer: Annotated[Principal, Depends(require_indexer)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.push_snapshot(db, fund_id, body)
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/{fund_id}/depositors")
async def list_depositors(
    fund_id: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.list_depositors(db, fund_id)
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/{fund_id}/performance")
async def get_performance(
    fund_id: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(100, ge=1, le=500, description="Snapshots per page"),
) -> ApiResponse:
    data = await _service.get_performance(db, fund_id, cursor, limit)
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


RequestId = Annotated[int, Path(ge=1, le=MAX_MICRO_UNITS)]


@router.post("/{fund_id}/withdrawals")
async def request_withdrawal(
    fund_id: str,
    body: QueueWithdrawalRequest,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.request_withdrawal(db, fund_id, principal.wallet, body.shares)
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/{fund_id}/withdrawals")
async def list_withdrawals(
    fund_id: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    wallet: str | None = Query(None, max_length=64),
    active: bool = Query(False, description="Only Pending / PartiallyFilled requests"),
) -> ApiResponse:
    data = await _service.list_withdrawals(db, fund_id, wallet, active)
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/{fund_id}/withdrawals/{request_id}/cancel")
async def cancel_withdrawal(
    fund_id: str,
    request_id: RequestId,
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.cancel_withdrawal(db, fund_id, request_id, principal.wallet)
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/{fund_id}/withdrawals/{request_id}/process")
async def process_withdrawal(
    fund_id: str,
    request_id: RequestId,
    _principal: Annotated[Principal, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.process_withdrawal(db, fund_id, request_id)
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
