"""Tests for lf_fund.domain.state_machine — lifecycle and stage gating."""

from datetime import UTC, datetime, timedelta

import pytest

from src.lf_common.enums import FundStage
from src.lf_common.errors import (
    InvalidStageTransitionError,
    PerfFeeAlreadyPaidError,
    StageOperationNotAllowedError,
    ValidationError,
)
from src.lf_fund.domain import state_machine
from src.lf_fund.domain.models import Fund, NewFund


def _fund(stage: FundStage = FundStage.OPEN, **kw: object) -> Fund:
    defaults: dict[str, object] = dict(
        id="f-1",
        address="addr",
        fund_id="fund-1",
        name="Alpha",
        symbol="ALPHA",
        description="",
        manager="mgr",
        deposit_fee_bps=100,
        perf_fee_bps=2000,
        early_exit_fee_bps=500,
        stage=stage.value,
    )
    defaults.update(kw)
    return Fund(**defaults)  # type: ignore[arg-type]


def _new(**kw: object) -> NewFund:
    defaults: dict[str, object] = dict(
        address="addr",
        fund_id="fund-1",
        manager="mgr",
        name="Alpha",
        symbol="ALPHA",
        description="",
        deposit_fee_bps=0,
        perf_fee_bps=2000,
        early_exit_fee_bps=500,
    )
    defaults.update(kw)
    return NewFund(**defaults)  # type: ignore[arg-type]


class TestValidateNewFund:
    def test_valid(self) -> None:
        state_machine.validate_new_fund(_new())

    def test_fee_bounds_inclusive(self) -> None:
        state_machine.validate_new_fund(
            _new(deposit_fee_bps=300, perf_fee_bps=3000, early_exit_fee_bps=500)
        )
        state_machine.validate_new_fund(_new(perf_fee_bps=1000, early_exit_fee_bps=0))
        state_machine.validate_new_fund(
            _new(liquidity_buffer_bps=5000, epoch_interval_secs=60)
        )
        state_machine.validate_new_fund(
            _new(liquidity_buffer_bps=0, epoch_interval_secs=30 * 86_400)
        )

    @pytest.mark.parametrize(
        "overrides",
        [
            {"deposit_fee_bps": 301},
            {"deposit_fee_bps": -1},
            {"perf_fee_bps": 999},
            {"perf_fee_bps": 3001},
            {"early_exit_fee_bps": 501},
            {"name": "   "},
            {"name": "x" * 33},
            {"symbol": "TOOLONGSYM"},
            {"liquidity_buffer_bps": 5001},
            {"liquidity_buffer_bps": -1},
            {"epoch_interval_secs": 59},
            {"epoch_interval_secs": 30 * 86_400 + 1},
        ],
    )
    def test_rejects_out_of_bounds(self, overrides: dict[str, object]) -> None:
        with pytest.raises(ValidationError):
            state_machine.validate_new_fund(_new(**overrides))

    def test_trading_window_must_be_ordered(self) -> None:
        start = datetime(2026, 1, 1, tzinfo=UTC)
        with pytest.raises(ValidationError, match="after start"):
            state_machine.validate_new_fund(
                _new(trading_start_ts=start, trading_end_ts=start - timedelta(days=1))
            )


class TestTransitions:
    def test_full_lifecycle(self) -> None:
        fund = _fund()
        state_machine.start_trading(fund, 100_000_000_000)
        assert fund.stage == "Trading"
        assert fund.initial_aum_usdc == 100_000_000_000

        state_machine.end_trading(fund)
        assert fund.stage == "Settlement"

        settlement = state_machine.finalize(fund, 150_000_000_000)
        assert fund.stage == "Closed"
        assert settlement.profit == 50_000_000_000
        assert settlement.perf_fee == 10_000_000_000
        assert fund.perf_fee_due_usdc == 10_000_000_000

        state_machine.mark_perf_fee_paid(fund)
        assert fund.perf_fee_paid is True

    def test_finalize_at_loss_has_zero_fee(self) -> None:
        fund = _fund(FundStage.SETTLEMENT, initial_aum_usdc=100_000_000_000)
        settlement = state_machine.finalize(fund, 80_000_000_000)
        assert settlement.perf_fee == 0
        assert settlement.profit == 0
        assert fund.perf_fee_due_usdc == 0

    @pytest.mark.parametrize(
        ("stage", "op"),
        [
            (FundStage.TRADING, lambda f: state_machine.start_trading(f, 0)),
            (FundStage.CLOSED, lambda f: state_machine.start_trading(f, 0)),
            (FundStage.OPEN, state_machine.end_trading),
            (FundStage.SETTLEMENT, state_machine.end_trading),
            (FundStage.TRADING, lambda f: state_machine.finalize(f, 0)),
            (FundStage.OPEN, lambda f: state_machine.finalize(f, 0)),
        ],
    )
    def test_skipping_or_repeating_is_rejected(self, stage: FundStage, op) -> None:  # type: ignore[no-untyped-def]
        fund = _fund(stage)
        with pytest.raises(InvalidStageTransitionError):
            op(fund)
        assert fund.stage == stage.value
        assert fund.initial_aum_usdc is None
        assert fund.perf_fee_due_usdc is None

    def test_negative_initial_aum_rejected(self) -> None:
        fund = _fund()
        with pytest.raises(ValidationError):
            state_machine.start_trading(fund, -1)
        assert fund.stage == "Open"

    def test_perf_fee_paid_only_once(self) -> None:
        fund = _fund(FundStage.CLOSED, perf_fee_due_usdc=5)
        state_machine.mark_perf_fee_paid(fund)
        with pytest.raises(PerfFeeAlreadyPaidError):
            state_machine.mark_perf_fee_paid(fund)

    def test_perf_fee_paid_requires_closed(self) -> None:
        with pytest.raises(InvalidStageTransitionError):
            state_machine.mark_perf_fee_paid(_fund(FundStage.SETTLEMENT))


class TestStageGating:
    def test_deposit_only_when_open(self) -> None:
        state_machine.check_deposit_allowed(_fund(FundStage.OPEN))
        for stage in (FundStage.TRADING, FundStage.SETTLEMENT, FundStage.CLOSED):
            with pytest.raises(StageOperationNotAllowedError):
                state_machine.check_deposit_allowed(_fund(stage))

    def test_withdraw_blocked_during_settlement(self) -> None:
        for stage in (FundStage.OPEN, FundStage.TRADING, FundStage.CLOSED):
            state_machine.check_withdraw_allowed(_fund(stage))
        with pytest.raises(StageOperationNotAllowedError, match="Settlement"):
            state_machine.check_withdraw_allowed(_fund(FundStage.SETTLEMENT))

    def test_trading_only_in_trading(self) -> None:
        state_machine.check_trading_allowed(_fund(FundStage.TRADING))
        with pytest.raises(StageOperationNotAllowedError):
            state_machine.check_trading_allowed(_fund(FundStage.OPEN))

    def test_withdrawal_request_only_in_trading(self) -> None:
        state_machine.check_withdrawal_request_allowed(_fund(FundStage.TRADING))
        for stage in (FundStage.OPEN, FundStage.SETTLEMENT, FundStage.CLOSED):
            with pytest.raises(StageOperationNotAllowedError, match="Withdrawal request"):
                state_machine.check_withdrawal_request_allowed(_fund(stage))

    def test_queue_processing_in_trading_and_settlement(self) -> None:
        for stage in (FundStage.TRADING, FundStage.SETTLEMENT):
            state_machine.check_queue_processing_allowed(_fund(stage))
        for stage in (FundStage.OPEN, FundStage.CLOSED):
            with pytest.raises(StageOperationNotAllowedError):
                state_machine.check_queue_processing_allowed(_fund(stage))
