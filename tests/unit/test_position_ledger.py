"""Tests for lf_portfolio.domain.position_ledger — fills and marks."""

import pytest

from src.lf_common.errors import InsufficientPositionError, ValidationError
from src.lf_portfolio.domain.models import Position, Trade
from src.lf_portfolio.domain.position_ledger import apply_fill, mark

TOKEN = 1_000_000


def _trade(direction: str = "BUY", qty: int = 100 * TOKEN, price: int = 500_000, **kw: object) -> Trade:
    defaults: dict[str, object] = dict(
        fund_id="f-1",
        tx_sig="sig",
        market_id="btc-100k-2025",
        market_name="BTC 100k",
        side="YES",
        direction=direction,
        quantity=qty,
        price=price,
        fee=0,
    )
    defaults.update(kw)
    return Trade(**defaults)  # type: ignore[arg-type]


class TestBuy:
    def test_opens_new_position(self) -> None:
        pos = apply_fill(None, _trade())
        assert pos.quantity == 100 * TOKEN
        assert pos.avg_price == 500_000
        assert pos.current_price == 500_000
        assert pos.is_open is True
        assert pos.market_name == "BTC 100k"

    def test_weighted_average(self) -> None:
        pos = apply_fill(None, _trade(qty=100 * TOKEN, price=500_000))
        pos = apply_fill(pos, _trade(qty=100 * TOKEN, price=700_000))
        assert pos.quantity == 200 * TOKEN
        assert pos.avg_price == 600_000
        assert pos.current_price == 700_000

    def test_average_floors(self) -> None:
        pos = apply_fill(None, _trade(qty=2, price=1))
        pos = apply_fill(pos, _trade(qty=1, price=2))
        # (2*1 + 1*2) / 3 = 1.33 → 1
        assert pos.avg_price == 1

    def test_reopens_closed_position_at_fill_price(self) -> None:
        closed = Position(
            fund_id="f-1", market_id="m", market_name="M", side="YES",
            quantity=0, avg_price=300_000, current_price=400_000, is_open=False, id=9,
        )
        pos = apply_fill(closed, _trade(market_id="m", price=800_000))
        assert pos.id == 9
        assert pos.is_open is True
        assert pos.avg_price == 800_000


class TestSell:
    def test_partial_sell_keeps_average(self) -> None:
        pos = apply_fill(None, _trade(qty=100 * TOKEN, price=500_000))
        pos = apply_fill(pos, _trade("SELL", qty=40 * TOKEN, price=650_000))
        assert pos.quantity == 60 * TOKEN
        assert pos.avg_price == 500_000
        assert pos.current_price == 650_000
        assert pos.is_open is True

    def test_full_sell_closes(self) -> None:
        pos = apply_fill(None, _trade(qty=10, price=500_000))
        pos = apply_fill(pos, _trade("SELL", qty=10, price=600_000))
        assert pos.quantity == 0
        assert pos.is_open is False

    def test_oversell_rejected(self) -> None:
        pos = apply_fill(None, _trade(qty=10))
        with pytest.raises(InsufficientPositionError, match="holding 10"):
            apply_fill(pos, _trade("SELL", qty=11))

    def test_sell_without_position_rejected(self) -> None:
        with pytest.raises(InsufficientPositionError):
            apply_fill(None, _trade("SELL"))


class TestValidation:
    @pytest.mark.parametrize(
        "overrides",
        [
            {"side": "MAYBE"},
            {"direction": "HOLD"},
            {"qty": 0},
            {"price": 0},
            {"price": 1_000_001},
            {"fee": -1},
        ],
    )
    def test_rejects_bad_fill(self, overrides: dict[str, object]) -> None:
        with pytest.raises(ValidationError):
            apply_fill(None, _trade(**overrides))  # type: ignore[arg-type]


class TestMarkAndPnl:
    def test_mark_updates_price_only(self) -> None:
        pos = apply_fill(None, _trade(qty=100 * TOKEN, price=500_000))
        marked = mark(pos, 720_000)
        assert marked.current_price == 720_000
        assert marked.avg_price == 500_000
        assert pos.current_price == 500_000

    def test_mark_out_of_range(self) -> None:
        pos = apply_fill(None, _trade())
        with pytest.raises(ValidationError):
            mark(pos, 1_000_001)

    def test_unrealized_pnl(self) -> None:
        pos = mark(apply_fill(None, _trade(qty=100 * TOKEN, price=500_000)), 720_000)
        assert pos.market_value == 72 * TOKEN
        assert pos.cost_basis == 50 * TOKEN
        assert pos.unrealized_pnl == 22 * TOKEN

    def test_unrealized_loss_is_negative(self) -> None:
        pos = mark(apply_fill(None, _trade(qty=100 * TOKEN, price=500_000)), 280_000)
        assert pos.unrealized_pnl == -22 * TOKEN
