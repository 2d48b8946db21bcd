"""Tests for the DFlow adapter: dev catalog, live parsing, failure mapping, quotes."""

import httpx
import pytest

from src.lf_common.errors import AdapterUnavailableError, MarketNotFoundError, ValidationError
from src.lf_market.domain.models import QuoteRequest
from src.lf_market.infrastructure.dflow_adapter import DFlowAdapter, compute_quote

LIVE_PAYLOAD = {
    "markets": [
        {
            "ticker": "KXBTC-25",
            "title": "Bitcoin above 120k?",
            "category": "Crypto",
            "status": "active",
            "yesPrice": 0.62,
            "volume24h": "1500.5",
            "accounts": {"yesMint": "YesMint111", "noMint": "NoMint111"},
        },
        {"title": "no ticker, skipped"},
    ]
}


def _live(handler) -> DFlowAdapter:  # type: ignore[no-untyped-def]
    return DFlowAdapter(
        api_key="key",
        metadata_url="https://dflow.test/api/v1",
        timeout=1.0,
        fee_bps=20,
        transport=httpx.MockTransport(handler),
    )


class TestDevCatalog:
    async def test_serves_dev_markets_without_key(self) -> None:
        adapter = DFlowAdapter(api_key="")
        markets = await adapter.get_markets()
        assert len(markets) == 6
        assert adapter.uses_live_api is False

    async def test_price(self) -> None:
        price = await DFlowAdapter(api_key="").get_price("btc-100k-2025")
        assert (price.yes, price.no) == (720_000, 280_000)

    async def test_detail_has_rules(self) -> None:
        detail = await DFlowAdapter(api_key="").get_market("fed-rate-jan")
        assert detail is not None
        assert detail.rules
        assert detail.resolution_source

    async def test_unknown_market(self) -> None:
        adapter = DFlowAdapter(api_key="")
        assert await adapter.get_market("nope") is None
        with pytest.raises(MarketNotFoundError):
            await adapter.get_price("nope")

    async def test_search_and_category(self) -> None:
        adapter = DFlowAdapter(api_key="")
        assert {m.id for m in await adapter.search_markets("bitcoin")} == {"btc-100k-2025"}
        economics = await adapter.get_markets_by_category("economics")
        assert {m.category for m in economics} == {"Economics"}


class TestLiveApi:
    async def test_parses_markets(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=LIVE_PAYLOAD)

        markets = await _live(handler).get_markets()
        assert len(markets) == 1
        m = markets[0]
        assert m.id == "KXBTC-25"
        assert m.yes_price == 620_000
        assert m.no_price == 380_000
        assert m.volume_24h == 1_500_500_000
        assert m.yes_mint == "YesMint111"
        assert seen[0].headers["x-api-key"] == "key"
        assert seen[0].url.path == "/api/v1/markets"

    async def test_upstream_error_is_unavailable(self) -> None:
        adapter = _live(lambda request: httpx.Response(502))
        with pytest.raises(AdapterUnavailableError) as exc_info:
            await adapter.get_markets()
        assert exc_info.value.retryable is True

    async def test_timeout_is_unavailable(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(AdapterUnavailableError, match="timed out"):
            await _live(handler).get_markets()

    async def test_malformed_json(self) -> None:
        adapter = _live(lambda request: httpx.Response(200, content=b"<html>"))
        with pytest.raises(AdapterUnavailableError, match="malformed"):
            await adapter.get_markets()

    async def test_quote_fails_instead_of_zero(self) -> None:
        adapter = _live(lambda request: httpx.Response(500))
        with pytest.raises(AdapterUnavailableError):
            await adapter.get_quote(QuoteRequest("KXBTC-25", "YES", "BUY", 1_000_000))


class TestComputeQuote:
    def test_buy(self) -> None:
        q = compute_quote(QuoteRequest("m", "YES", "BUY", 100_000_000), 500_000, 20)
        assert q.fee == 200_000
        assert q.output_amount == 199_600_000
        assert q.price == 500_000

    def test_sell(self) -> None:
        q = compute_quote(QuoteRequest("m", "NO", "SELL", 100_000_000), 250_000, 0)
        assert q.output_amount == 25_000_000

    def test_zero_price_rejected(self) -> None:
        with pytest.raises(ValidationError):
            compute_quote(QuoteRequest("m", "YES", "BUY", 1), 0, 20)
