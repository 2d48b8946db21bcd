"""Position updates driven by executed fills and price marks.

The fill price is trusted as supplied by the execution path; nothing here
prices anything.

BUY : quantity += q, avg = floor((qty*avg + q*price) / (qty + q)), mark = price
SELL: q <= quantity, quantity -= q, avg unchanged, mark = price,
      closes at zero
"""

from dataclasses import replace

from src.lf_common.enums import OutcomeSide, TradeDirection
from src.lf_common.errors import InsufficientPositionError, ValidationError
from src.lf_common.units import USDC_SCALE
from src.lf_portfolio.domain.models import Position, Trade


def validate_fill(trade: Trade) -> None:
    if trade.side not in (OutcomeSide.YES.value, OutcomeSide.NO.value):
        raise ValidationError(f"Invalid side: {trade.side}")
    if trade.direction not in (TradeDirection.BUY.value, TradeDirection.SELL.value):
        raise ValidationError(f"Invalid direction: {trade.direction}")
    if trade.quantity <= 0:
        raise ValidationError("Trade quantity must be greater than zero")
    if not (0 < trade.price <= USDC_SCALE):
        raise ValidationError(f"Trade price must be in (0, {USDC_SCALE}], got {trade.price}")
    if trade.fee < 0:
        raise ValidationError("Trade fee cannot be negative")


def validate_mark(price: int) -> None:
    if not (0 <= price <= USDC_SCALE):
        raise ValidationError(f"Mark price must be in [0, {USDC_SCALE}], got {price}")


def apply_fill(position: Position | None, trade: Trade) -> Position:
    """Return the position after `trade`; the input is not mutated."""
    validate_fill(trade)
    if trade.direction == TradeDirection.BUY.value:
        if position is None or not position.is_open or position.quantity == 0:
            base = position or Position(
                fund_id=trade.fund_id,
                market_id=trade.market_id,
                market_name=trade.market_name,
                side=trade.side,
            )
            return replace(
                base,
                market_name=trade.market_name or base.market_name,
                quantity=trade.quantity,
                avg_price=trade.price,
                current_price=trade.price,
                is_open=True,
            )
        new_qty = position.quantity + trade.quantity
        avg = (position.quantity * position.avg_price + trade.quantity * trade.price) // new_qty
        return replace(
            position, quantity=new_qty, avg_price=avg, current_price=trade.price
        )

    if position is None or not position.is_open or trade.quantity > position.quantity:
        available = position.quantity if position is not None and position.is_open else 0
        raise InsufficientPositionError(
            f"sell {trade.quantity} {trade.side} of {trade.market_id}, holding {available}"
        )
    remaining = position.quantity - trade.quantity
    return replace(
        position,
        quantity=remaining,
        current_price=trade.price,
        is_open=remaining > 0,
    )


def mark(position: Position, price: int) -> Position:
    validate_mark(price)
    return replace(position, current_price=price)
