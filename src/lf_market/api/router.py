"""lf_market REST endpoints — public, read-only venue data.

GET  /markets                              — DFlow markets (?q= search, ?category=)
GET  /markets/polymarket/events            — Gamma events proxy (retried)
GET  /markets/polymarket/markets           — Gamma markets proxy
GET  /markets/polymarket/events/{slug}     — single Gamma event
GET  /markets/{market_id}                  — market detail
GET  /markets/{market_id}/price            — YES / NO price
POST /markets/{market_id}/quote            — trade quote
"""

from fastapi import APIRouter, Query, Request

from src.lf_common.response import ApiResponse, success_response
from src.lf_market.application.schemas import QuoteRequestBody
from src.lf_market.application.service import MarketApplicationService

router = APIRouter(prefix="/markets", tags=["markets"])

_service = MarketApplicationService()


@router.get("")
async def list_markets(
    request: Request,
    q: str | None = Query(None, max_length=100, description="Search title, ticker, category"),
    category: str | None = Query(None, max_length=64),
) -> ApiResponse:
    result = await _service.list_markets(q, category)
    resp = success_response(result.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/polymarket/events")
async def polymarket_events(
    request: Request,
    limit: int = Query(100, ge=1, le=500),
) -> ApiResponse:
    result = await _service.polymarket_events(limit)
    resp = success_response(result)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/polymarket/markets")
async def polymarket_markets(
    request: Request,
    limit: int = Query(50, ge=1, le=500),
) -> ApiResponse:
    result = await _service.polymarket_markets(limit)
    resp = success_response(result)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/polymarket/events/{slug}")
async def polymarket_event(slug: str, request: Request) -> ApiResponse:
    result = await _service.polymarket_event(slug)
    resp = success_response(result)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/{market_id}")
async def get_market(market_id: str, request: Request) -> ApiResponse:
    result = await _service.get_market(market_id)
    resp = success_response(result.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/{market_id}/price")
async def get_price(market_id: str, request: Request) -> ApiResponse:
    result = await _service.get_price(market_id)
    resp = success_response(result.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/{market_id}/quote")
async def get_quote(market_id: str, body: QuoteRequestBody, request: Request) -> ApiResponse:
    result = await _service.get_quote(market_id, body)
    resp = success_response(result.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
