"""HTTP-level tests for the public market endpoints."""

from collections.abc import Iterator

import httpx
import pytest
from httpx import AsyncClient

import src.lf_market.api.router as market_api
from src.lf_market.application.service import MarketApplicationService
from src.lf_market.infrastructure.dflow_adapter import DFlowAdapter
from src.lf_market.infrastructure.polymarket_client import PolymarketClient


def _gamma(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/events":
        return httpx.Response(200, json=[{"slug": "fed-cut", "title": "Fed cut?"}])
    if request.url.path == "/events/slug/fed-cut":
        return httpx.Response(200, json={"slug": "fed-cut"})
    return httpx.Response(404)


@pytest.fixture(autouse=True)
def market_service(monkeypatch) -> Iterator[None]:  # type: ignore[no-untyped-def]
    service = MarketApplicationService(
        adapter=DFlowAdapter(api_key="", fee_bps=20),
        polymarket=PolymarketClient(
            base_url="https://gamma.test", max_retries=1, transport=httpx.MockTransport(_gamma)
        ),
    )
    monkeypatch.setattr(market_api, "_service", service)
    yield


async def test_list_markets(client: AsyncClient) -> None:
    resp = await client.get("/api/v1/markets")
    assert resp.status_code == 200
    assert len(resp.json()["data"]["items"]) == 6


async def test_search_and_category(client: AsyncClient) -> None:
    found = await client.get("/api/v1/markets", params={"q": "solana"})
    assert [m["id"] for m in found.json()["data"]["items"]] == ["sol-300-2025"]
    crypto = await client.get("/api/v1/markets", params={"category": "Crypto"})
    assert {m["category"] for m in crypto.json()["data"]["items"]} == {"Crypto"}


async def test_market_detail_and_price(client: AsyncClient) -> None:
    detail = await client.get("/api/v1/markets/btc-100k-2025")
    assert detail.json()["data"]["rules"]
    price = await client.get("/api/v1/markets/btc-100k-2025/price")
    assert price.json()["data"]["yes"] == "720000"
    assert price.json()["data"]["no_display"] == "0.280000"


async def test_unknown_market(client: AsyncClient) -> None:
    resp = await client.get("/api/v1/markets/nope")
    assert resp.status_code == 404
    assert resp.json()["code"] == 3001


async def test_quote(client: AsyncClient) -> None:
    resp = await client.post(
        "/api/v1/markets/btc-100k-2025/quote",
        json={"side": "NO", "direction": "BUY", "amount": "28000000"},
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["fee"] == "56000"
    # (28 - 0.056) / 0.28
    assert data["output_amount"] == "99800000"


async def test_polymarket_proxy(client: AsyncClient) -> None:
    events = await client.get("/api/v1/markets/polymarket/events")
    assert events.json()["data"][0]["slug"] == "fed-cut"
    event = await client.get("/api/v1/markets/polymarket/events/fed-cut")
    assert event.json()["data"] == {"slug": "fed-cut"}
    missing = await client.get("/api/v1/markets/polymarket/events/nope")
    assert missing.status_code == 404
