"""Quote/Market adapter Protocol.

Implementations raise AdapterUnavailableError on any transport failure,
timeout or non-2xx answer; they never fall back to a zero quote.
"""

from typing import Protocol

from src.lf_market.domain.models import (
    MarketDetail,
    MarketPrice,
    MarketSummary,
    QuoteRequest,
    TradeQuote,
)


class MarketAdapterProtocol(Protocol):
    async def get_markets(self) -> list[MarketSummary]: ...

    async def get_market(self, market_id: str) -> MarketDetail | None: ...

    async def get_price(self, market_id: str) -> MarketPrice: ...

    async def get_quote(self, req: QuoteRequest) -> TradeQuote: ...

    async def search_markets(self, query: str) -> list[MarketSummary]: ...

    async def get_markets_by_category(self, category: str) -> list[MarketSummary]: ...
