"""Pydantic schemas for the market endpoints."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from src.lf_common.schema_types import PositiveMicroUnits
from src.lf_common.units import units_to_display
from src.lf_market.domain.models import MarketDetail, MarketPrice, MarketSummary, TradeQuote


class QuoteRequestBody(BaseModel):
    model_config = ConfigDict(extra="forbid")

    side: Literal["YES", "NO"]
    direction: Literal["BUY", "SELL"]
    amount: PositiveMicroUnits
    user_public_key: str | None = Field(None, max_length=64)


class MarketItem(BaseModel):
    id: str
    ticker: str
    title: str
    description: str
    category: str
    status: str
    expires_at: str | None
    yes_price: str
    yes_price_display: str
    no_price: str
    no_price_display: str
    volume_24h: str
    volume_24h_display: str
    open_interest: str
    open_interest_display: str
    yes_mint: str | None
    no_mint: str | None

    @classmethod
    def from_domain(cls, m: MarketSummary) -> "MarketItem":
        return cls(
            id=m.id,
            ticker=m.ticker,
            title=m.title,
            description=m.description,
            category=m.category,
            status=m.status,
            expires_at=m.expires_at,
            yes_price=str(m.yes_price),
            yes_price_display=units_to_display(m.yes_price),
            no_price=str(m.no_price),
            no_price_display=units_to_display(m.no_price),
            volume_24h=str(m.volume_24h),
            volume_24h_display=units_to_display(m.volume_24h),
            open_interest=str(m.open_interest),
            open_interest_display=units_to_display(m.open_interest),
            yes_mint=m.yes_mint,
            no_mint=m.no_mint,
        )


class MarketDetailItem(MarketItem):
    rules: str
    resolution_source: str

    @classmethod
    def from_detail(cls, m: MarketDetail) -> "MarketDetailItem":
        return cls(
            **MarketItem.from_domain(m).model_dump(),
            rules=m.rules,
            resolution_source=m.resolution_source,
        )


class MarketListResponse(BaseModel):
    items: list[MarketItem]


class MarketPriceResponse(BaseModel):
    market_id: str
    yes: str
    yes_display: str
    no: str
    no_display: str

    @classmethod
    def from_domain(cls, p: MarketPrice) -> "MarketPriceResponse":
        return cls(
            market_id=p.market_id,
            yes=str(p.yes),
            yes_display=units_to_display(p.yes),
            no=str(p.no),
            no_display=units_to_display(p.no),
        )


class QuoteResponse(BaseModel):
    market_id: str
    side: str
    direction: str
    input_amount: str
    input_amount_display: str
    output_amount: str
    output_amount_display: str
    price: str
    price_display: str
    fee: str
    fee_display: str
    price_impact_bps: int

    @classmethod
    def from_domain(cls, q: TradeQuote) -> "QuoteResponse":
        return cls(
            market_id=q.market_id,
            side=q.side,
            direction=q.direction,
            input_amount=str(q.input_amount),
            input_amount_display=units_to_display(q.input_amount),
            output_amount=str(q.output_amount),
            output_amount_display=units_to_display(q.output_amount),
            price=str(q.price),
            price_display=units_to_display(q.price),
            fee=str(q.fee),
            fee_display=units_to_display(q.fee),
            price_impact_bps=q.price_impact_bps,
        )
