"""Polymarket Gamma API client (read-only proxy).

list_events retries transport failures, timeouts and 5xx/429 answers with
exponential backoff (base * 2^attempt) up to ADAPTER_MAX_RETRIES attempts,
then raises AdapterUnavailableError (retryable). Other calls make a single
attempt. Payloads are passed through as returned by Gamma.
"""

import asyncio
import logging
from typing import Any

import httpx

from config.settings import settings
from src.lf_common.errors import AdapterUnavailableError, MarketNotFoundError

logger = logging.getLogger(__name__)

VENUE = "Polymarket"
_HEADERS = {"Accept": "application/json", "User-Agent": "Likeli/1.0"}


class _RetryableStatus(Exception):
    def __init__(self, status_code: int) -> None:
        self.status_code = status_code
        super().__init__(f"upstream status {status_code}")


class PolymarketClient:
    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_base: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = (base_url or settings.POLYMARKET_GAMMA_API_URL).rstrip("/")
        self._timeout = timeout if timeout is not None else settings.ADAPTER_TIMEOUT_SECONDS
        self._max_retries = max_retries if max_retries is not None else settings.ADAPTER_MAX_RETRIES
        self._backoff_base = (
            backoff_base if backoff_base is not None else settings.ADAPTER_BACKOFF_BASE_SECONDS
        )
        self._transport = transport
        if self._max_retries < 1:
            raise ValueError("max_retries must be >= 1")

    async def _get(self, path: str, params: dict[str, str] | None = None) -> httpx.Response:
        async with httpx.AsyncClient(
            base_url=self._base_url, timeout=self._timeout, transport=self._transport
        ) as client:
            return await client.get(path, params=params, headers=_HEADERS)

    @staticmethod
    def _json(resp: httpx.Response) -> Any:
        try:
            return resp.json()
        except ValueError as exc:
            raise AdapterUnavailableError(VENUE, "malformed response") from exc

    async def list_events(self, limit: int = 100) -> list[dict[str, Any]]:
        params = {"active": "true", "closed": "false", "limit": str(limit)}
        last_error: Exception | None = None

        for attempt in range(1, self._max_retries + 1):
            try:
                logger.info("Fetching Polymarket events (attempt %d/%d)", attempt, self._max_retries)
                resp = await self._get("/events", params)
                if resp.status_code >= 500 or resp.status_code == 429:
                    raise _RetryableStatus(resp.status_code)
                if resp.status_code != 200:
                    logger.warning("Gamma API error: /events → %d", resp.status_code)
                    raise AdapterUnavailableError(VENUE, f"upstream status {resp.status_code}")
                events = self._json(resp)
                logger.info("Fetched %d events from Polymarket", len(events))
                return events
            except (httpx.HTTPError, _RetryableStatus) as exc:
                last_error = exc
                logger.warning("Polymarket attempt %d failed: %s", attempt, exc)
                if attempt < self._max_retries:
                    await asyncio.sleep(self._backoff_base * (2**attempt))

        logger.error("All Polymarket retries failed: %s", last_error)
        raise AdapterUnavailableError(VENUE, f"{self._max_retries} attempts failed")

    async def list_markets(self, limit: int = 50) -> list[dict[str, Any]]:
        params = {"active": "true", "closed": "false", "limit": str(limit)}
        try:
            resp = await self._get("/markets", params)
        except httpx.HTTPError as exc:
            logger.warning("Polymarket markets request failed: %s", exc)
            raise AdapterUnavailableError(VENUE, "transport error") from exc
        if resp.status_code != 200:
            logger.warning("Gamma API error: /markets → %d", resp.status_code)
            raise AdapterUnavailableError(VENUE, f"upstream status {resp.status_code}")
        return self._json(resp)

    async def get_event(self, slug: str) -> dict[str, Any]:
        try:
            resp = await self._get(f"/events/slug/{slug}")
        except httpx.HTTPError as exc:
            logger.warning("Polymarket event request failed: %s", exc)
            raise AdapterUnavailableError(VENUE, "transport error") from exc
        if resp.status_code == 404:
            raise MarketNotFoundError(slug)
        if resp.status_code != 200:
            raise AdapterUnavailableError(VENUE, f"upstream status {resp.status_code}")
        return self._json(resp)
