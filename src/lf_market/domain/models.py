"""Domain models for lf_market — venue-neutral market data and quotes.

Prices are micro-USDC per outcome token (0 .. 1_000_000 == 0.00 .. 1.00).
Volumes and amounts are micro-units.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class MarketSummary:
    id: str
    ticker: str
    title: str
    description: str
    category: str
    status: str                      # MarketStatus value
    expires_at: str | None
    yes_price: int
    no_price: int
    volume_24h: int = 0
    open_interest: int = 0
    yes_mint: str | None = None      # SPL token mints (Solana venues)
    no_mint: str | None = None


@dataclass(frozen=True)
class MarketDetail(MarketSummary):
    rules: str = ""
    resolution_source: str = ""


@dataclass(frozen=True)
class MarketPrice:
    market_id: str
    yes: int
    no: int

    def for_side(self, side: str) -> int:
        return self.yes if side == "YES" else self.no


@dataclass(frozen=True)
class QuoteRequest:
    market_id: str
    side: str
    direction: str
    amount: int
    user_public_key: str | None = None


@dataclass(frozen=True)
class TradeQuote:
    market_id: str
    side: str
    direction: str
    input_amount: int
    output_amount: int
    price: int
    fee: int
    price_impact_bps: int
