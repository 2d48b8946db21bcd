"""Pydantic schemas for the position & trade endpoints.

Amounts go over the wire as decimal strings with a `_display` companion.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from src.lf_common.datetime_utils import to_iso
from src.lf_common.schema_types import MicroUnits, PositiveMicroUnits
from src.lf_common.units import units_to_display
from src.lf_portfolio.domain.models import Position, Trade

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class TradeQuoteRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    market_id: str = Field(..., min_length=1, max_length=128)
    side: Literal["YES", "NO"]
    direction: Literal["BUY", "SELL"]
    amount: PositiveMicroUnits


class RecordTradeRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    tx_sig: str = Field(..., min_length=1, max_length=128)
    market_id: str = Field(..., min_length=1, max_length=128)
    market_name: str = Field("", max_length=256)
    side: Literal["YES", "NO"]
    direction: Literal["BUY", "SELL"]
    quantity: PositiveMicroUnits
    price: PositiveMicroUnits
    fee: MicroUnits = 0


class MarkPositionRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    market_id: str = Field(..., min_length=1, max_length=128)
    side: Literal["YES", "NO"]
    price: MicroUnits


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class PositionItem(BaseModel):
    market_id: str
    market_name: str
    side: str
    quantity: str
    quantity_display: str
    avg_price: str
    avg_price_display: str
    current_price: str
    current_price_display: str
    market_value: str
    market_value_display: str
    unrealized_pnl: str
    unrealized_pnl_display: str
    is_open: bool
    updated_at: str | None

    @classmethod
    def from_domain(cls, p: Position) -> "PositionItem":
        return cls(
            market_id=p.market_id,
            market_name=p.market_name,
            side=p.side,
            quantity=str(p.quantity),
            quantity_display=units_to_display(p.quantity),
            avg_price=str(p.avg_price),
            avg_price_display=units_to_display(p.avg_price),
            current_price=str(p.current_price),
            current_price_display=units_to_display(p.current_price),
            market_value=str(p.market_value),
            market_value_display=units_to_display(p.market_value),
            unrealized_pnl=str(p.unrealized_pnl),
            unrealized_pnl_display=units_to_display(p.unrealized_pnl),
            is_open=p.is_open,
            updated_at=to_iso(p.updated_at),
        )


class TradeItem(BaseModel):
    id: int | None
    tx_sig: str
    market_id: str
    market_name: str
    side: str
    direction: str
    quantity: str
    quantity_display: str
    price: str
    price_display: str
    notional: str
    notional_display: str
    fee: str
    fee_display: str
    timestamp: str | None

    @classmethod
    def from_domain(cls, t: Trade) -> "TradeItem":
        return cls(
            id=t.id,
            tx_sig=t.tx_sig,
            market_id=t.market_id,
            market_name=t.market_name,
            side=t.side,
            direction=t.direction,
            quantity=str(t.quantity),
            quantity_display=units_to_display(t.quantity),
            price=str(t.price),
            price_display=units_to_display(t.price),
            notional=str(t.notional),
            notional_display=units_to_display(t.notional),
            fee=str(t.fee),
            fee_display=units_to_display(t.fee),
            timestamp=to_iso(t.timestamp),
        )


class PositionListResponse(BaseModel):
    fund_id: str
    items: list[PositionItem]
    total_market_value: str
    total_market_value_display: str
    total_unrealized_pnl: str
    total_unrealized_pnl_display: str

    @classmethod
    def from_positions(cls, fund_id: str, positions: list[Position]) -> "PositionListResponse":
        value = sum(p.market_value for p in positions)
        pnl = sum(p.unrealized_pnl for p in positions)
        return cls(
            fund_id=fund_id,
            items=[PositionItem.from_domain(p) for p in positions],
            total_market_value=str(value),
            total_market_value_display=units_to_display(value),
            total_unrealized_pnl=str(pnl),
            total_unrealized_pnl_display=units_to_display(pnl),
        )


class TradeListResponse(BaseModel):
    items: list[TradeItem]
    next_cursor: str | None
    has_more: bool


class RecordTradeResponse(BaseModel):
    trade: TradeItem
    position: PositionItem
