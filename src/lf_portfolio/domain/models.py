"""Domain models for lf_portfolio — pure dataclasses, no SQLAlchemy dependency.

Prices are micro-USDC per whole outcome token (0 .. 1_000_000).
Quantities are micro-tokens. Fees are micro-USDC.
"""

from dataclasses import dataclass
from datetime import datetime

from src.lf_common.units import USDC_SCALE


@dataclass
class Position:
    fund_id: str
    market_id: str
    market_name: str
    side: str                        # OutcomeSide value
    quantity: int = 0
    avg_price: int = 0
    current_price: int = 0
    is_open: bool = True
    id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def cost_basis(self) -> int:
        return self.quantity * self.avg_price // USDC_SCALE

    @property
    def market_value(self) -> int:
        return self.quantity * self.current_price // USDC_SCALE

    @property
    def unrealized_pnl(self) -> int:
        """(current - avg) * quantity, floored.

        Each side is priced in its own token, so the same formula holds for
        YES and NO holdings.
        """
        return (self.current_price - self.avg_price) * self.quantity // USDC_SCALE


@dataclass(frozen=True)
class Trade:
    fund_id: str
    tx_sig: str
    market_id: str
    market_name: str
    side: str
    direction: str                   # TradeDirection value
    quantity: int
    price: int
    fee: int
    id: int | None = None
    timestamp: datetime | None = None

    @property
    def notional(self) -> int:
        return self.quantity * self.price // USDC_SCALE
