"""DFlow prediction-market adapter (Kalshi markets tokenized on Solana).

With DFLOW_API_KEY set, market data comes from the DFlow metadata API;
without it the development catalog in mock_catalog is served.

Quotes are computed locally from the current side price:
  fee    = floor(amount * DFLOW_QUOTE_FEE_BPS / 10000)
  BUY    output tokens = floor((amount - fee) * 1e6 / side_price)
  SELL   output USDC   = floor((amount - fee) * side_price / 1e6)
"""

import logging
from dataclasses import asdict
from typing import Any

import httpx

from config.settings import settings
from src.lf_common.enums import MarketStatus, TradeDirection
from src.lf_common.errors import AdapterUnavailableError, MarketNotFoundError, ValidationError
from src.lf_common.units import amount_for_shares, bps_of, parse_units, shares_for_amount
from src.lf_market.domain.models import (
    MarketDetail,
    MarketPrice,
    MarketSummary,
    QuoteRequest,
    TradeQuote,
)
from src.lf_market.infrastructure.mock_catalog import (
    DEFAULT_RESOLUTION_SOURCE,
    DEFAULT_RULES,
    DEV_MARKETS,
)

logger = logging.getLogger(__name__)

VENUE = "DFlow"
QUOTE_PRICE_IMPACT_BPS = 10

_STATUS_MAP = {
    "active": MarketStatus.OPEN.value,
    "open": MarketStatus.OPEN.value,
    "initialized": MarketStatus.OPEN.value,
    "closed": MarketStatus.CLOSED.value,
    "inactive": MarketStatus.CLOSED.value,
    "determined": MarketStatus.RESOLVED.value,
    "finalized": MarketStatus.RESOLVED.value,
    "settled": MarketStatus.RESOLVED.value,
    "resolved": MarketStatus.RESOLVED.value,
}


def _to_micro(value: Any) -> int:
    """External probability (0.72, "0.72") -> 720000. Missing or bad -> 0."""
    if value is None or isinstance(value, bool):
        return 0
    try:
        return parse_units(f"{float(value):.6f}")
    except (TypeError, ValueError):
        return 0


def _parse_market(raw: dict[str, Any]) -> MarketSummary | None:
    ticker = raw.get("ticker") or raw.get("id")
    if not ticker:
        return None
    yes = _to_micro(raw.get("yesPrice", raw.get("yesAsk")))
    no = _to_micro(raw.get("noPrice", raw.get("noAsk")))
    if no == 0 and 0 < yes <= 1_000_000:
        no = 1_000_000 - yes
    accounts = raw.get("accounts") or {}
    return MarketSummary(
        id=str(raw.get("id") or ticker),
        ticker=str(ticker),
        title=str(raw.get("title") or ticker),
        description=str(raw.get("subtitle") or raw.get("description") or ""),
        category=str(raw.get("category") or ""),
        status=_STATUS_MAP.get(str(raw.get("status", "")).lower(), MarketStatus.OPEN.value),
        expires_at=raw.get("closeTime") or raw.get("expiresAt"),
        yes_price=yes,
        no_price=no,
        volume_24h=_to_micro(raw.get("volume24h", raw.get("volume"))),
        open_interest=_to_micro(raw.get("openInterest")),
        yes_mint=raw.get("yesMint") or accounts.get("yesMint"),
        no_mint=raw.get("noMint") or accounts.get("noMint"),
    )


def compute_quote(req: QuoteRequest, side_price: int, fee_bps: int) -> TradeQuote:
    if req.amount <= 0:
        raise ValidationError("Quote amount must be greater than zero")
    if side_price <= 0:
        raise ValidationError(f"Market {req.market_id} has no {req.side} price")
    fee = bps_of(req.amount, fee_bps)
    effective = req.amount - fee
    if req.direction == TradeDirection.BUY.value:
        output = shares_for_amount(effective, side_price)
    else:
        output = amount_for_shares(effective, side_price)
    return TradeQuote(
        market_id=req.market_id,
        side=req.side,
        direction=req.direction,
        input_amount=req.amount,
        output_amount=output,
        price=side_price,
        fee=fee,
        price_impact_bps=QUOTE_PRICE_IMPACT_BPS,
    )


class DFlowAdapter:
    def __init__(
        self,
        api_key: str | None = None,
        metadata_url: str | None = None,
        timeout: float | None = None,
        fee_bps: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = settings.DFLOW_API_KEY if api_key is None else api_key
        self._metadata_url = (metadata_url or settings.DFLOW_METADATA_API_URL).rstrip("/")
        self._timeout = timeout if timeout is not None else settings.ADAPTER_TIMEOUT_SECONDS
        self._fee_bps = fee_bps if fee_bps is not None else settings.DFLOW_QUOTE_FEE_BPS
        self._transport = transport

    @property
    def uses_live_api(self) -> bool:
        return bool(self._api_key)

    async def _fetch_metadata(self, endpoint: str) -> Any:
        url = f"{self._metadata_url}{endpoint}"
        headers = {"Accept": "application/json", "x-api-key": self._api_key}
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                resp = await client.get(url, headers=headers)
        except httpx.TimeoutException as exc:
            logger.warning("DFlow metadata timeout: %s", url)
            raise AdapterUnavailableError(VENUE, "request timed out") from exc
        except httpx.HTTPError as exc:
            logger.warning("DFlow metadata transport error: %s %s", url, exc)
            raise AdapterUnavailableError(VENUE, "transport error") from exc

        if resp.status_code != 200:
            logger.warning("DFlow metadata API error: %s → %d", url, resp.status_code)
            raise AdapterUnavailableError(VENUE, f"upstream status {resp.status_code}")
        try:
            return resp.json()
        except ValueError as exc:
            raise AdapterUnavailableError(VENUE, "malformed response") from exc

    async def get_markets(self) -> list[MarketSummary]:
        if not self.uses_live_api:
            return list(DEV_MARKETS)
        data = await self._fetch_metadata("/markets")
        raw_markets = data.get("markets", []) if isinstance(data, dict) else data
        if not isinstance(raw_markets, list):
            raise AdapterUnavailableError(VENUE, "malformed response")
        markets = [_parse_market(m) for m in raw_markets if isinstance(m, dict)]
        return [m for m in markets if m is not None]

    async def get_market(self, market_id: str) -> MarketDetail | None:
        for m in await self.get_markets():
            if m.id == market_id:
                return MarketDetail(
                    **asdict(m),
                    rules=DEFAULT_RULES,
                    resolution_source=DEFAULT_RESOLUTION_SOURCE,
                )
        return None

    async def get_price(self, market_id: str) -> MarketPrice:
        market = await self.get_market(market_id)
        if market is None:
            raise MarketNotFoundError(market_id)
        return MarketPrice(market_id=market_id, yes=market.yes_price, no=market.no_price)

    async def get_quote(self, req: QuoteRequest) -> TradeQuote:
        price = await self.get_price(req.market_id)
        return compute_quote(req, price.for_side(req.side), self._fee_bps)

    async def search_markets(self, query: str) -> list[MarketSummary]:
        q = query.lower()
        return [
            m
            for m in await self.get_markets()
            if q in m.title.lower() or q in m.ticker.lower() or q in m.category.lower()
        ]

    async def get_markets_by_category(self, category: str) -> list[MarketSummary]:
        c = category.lower()
        return [m for m in await self.get_markets() if m.category.lower() == c]
