"""MarketApplicationService — read-only facade over the external venues."""

from typing import Any

from src.lf_common.errors import MarketNotFoundError
from src.lf_market.application.schemas import (
    MarketDetailItem,
    MarketItem,
    MarketListResponse,
    MarketPriceResponse,
    QuoteRequestBody,
    QuoteResponse,
)
from src.lf_market.domain.adapter import MarketAdapterProtocol
from src.lf_market.domain.models import QuoteRequest
from src.lf_market.infrastructure.dflow_adapter import DFlowAdapter
from src.lf_market.infrastructure.polymarket_client import PolymarketClient


class MarketApplicationService:
    def __init__(
        self,
        adapter: MarketAdapterProtocol | None = None,
        polymarket: PolymarketClient | None = None,
    ) -> None:
        self._adapter: MarketAdapterProtocol = adapter or DFlowAdapter()
        self._polymarket = polymarket or PolymarketClient()

    async def list_markets(self, query: str | None, category: str | None) -> MarketListResponse:
        if query:
            markets = await self._adapter.search_markets(query)
        elif category:
            markets = await self._adapter.get_markets_by_category(category)
        else:
            markets = await self._adapter.get_markets()
        if query and category:
            markets = [m for m in markets if m.category.lower() == category.lower()]
        return MarketListResponse(items=[MarketItem.from_domain(m) for m in markets])

    async def get_market(self, market_id: str) -> MarketDetailItem:
        market = await self._adapter.get_market(market_id)
        if market is None:
            raise MarketNotFoundError(market_id)
        return MarketDetailItem.from_detail(market)

    async def get_price(self, market_id: str) -> MarketPriceResponse:
        return MarketPriceResponse.from_domain(await self._adapter.get_price(market_id))

    async def get_quote(self, market_id: str, body: QuoteRequestBody) -> QuoteResponse:
        quote = await self._adapter.get_quote(
            QuoteRequest(
                market_id=market_id,
                side=body.side,
                direction=body.direction,
                amount=body.amount,
                user_public_key=body.user_public_key,
            )
        )
        return QuoteResponse.from_domain(quote)

    async def polymarket_events(self, limit: int) -> list[dict[str, Any]]:
        return await self._polymarket.list_events(limit)

    async def polymarket_markets(self, limit: int) -> list[dict[str, Any]]:
        return await self._polymarket.list_markets(limit)

    async def polymarket_event(self, slug: str) -> dict[str, Any]:
        return await self._polymarket.get_event(slug)
