"""Fund lifecycle: Open -> Trading -> Settlement -> Closed.

Stages only advance, one step at a time. Every transition checks the
current stage before touching the Fund, so a rejected call leaves it as-is.

Stage policy for investor flows:
  deposit             Open only
  withdraw            Open, Trading (early-exit fee, liquidity buffer), Closed
  request withdrawal  Trading only
  process withdrawal  Trading (once per epoch), Settlement (any time)
"""

import logging
from dataclasses import dataclass

from src.lf_common.enums import FundStage
from src.lf_common.errors import (
    InvalidStageTransitionError,
    PerfFeeAlreadyPaidError,
    StageOperationNotAllowedError,
    ValidationError,
)
from src.lf_fund.domain.accounting import performance_fee
from src.lf_fund.domain.models import Fund, NewFund

logger = logging.getLogger(__name__)

MAX_DEPOSIT_FEE_BPS = 300
MIN_PERF_FEE_BPS = 1000
MAX_PERF_FEE_BPS = 3000
MAX_EARLY_EXIT_FEE_BPS = 500
DEFAULT_PERF_FEE_BPS = 2000
DEFAULT_EARLY_EXIT_FEE_BPS = 500
DEFAULT_LIQUIDITY_BUFFER_BPS = 1000
MAX_LIQUIDITY_BUFFER_BPS = 5000
DEFAULT_EPOCH_INTERVAL_SECS = 86_400
MIN_EPOCH_INTERVAL_SECS = 60
MAX_EPOCH_INTERVAL_SECS = 30 * 86_400
MAX_NAME_LENGTH = 32
MAX_SYMBOL_LENGTH = 8

_NEXT_STAGE: dict[FundStage, FundStage] = {
    FundStage.OPEN: FundStage.TRADING,
    FundStage.TRADING: FundStage.SETTLEMENT,
    FundStage.SETTLEMENT: FundStage.CLOSED,
}

_DEPOSIT_STAGES = frozenset({FundStage.OPEN})
_WITHDRAW_STAGES = frozenset({FundStage.OPEN, FundStage.TRADING, FundStage.CLOSED})
_QUEUE_PROCESS_STAGES = frozenset({FundStage.TRADING, FundStage.SETTLEMENT})


@dataclass(frozen=True)
class PerfFeeSettlement:
    initial_aum_usdc: int
    final_balance_usdc: int
    profit: int
    perf_fee: int


def validate_new_fund(new: NewFund) -> None:
    """Reject fee schedules and metadata outside the allowed bounds."""
    if not new.name.strip():
        raise ValidationError("Fund name cannot be empty")
    if len(new.name) > MAX_NAME_LENGTH:
        raise ValidationError(f"Fund name too long (max {MAX_NAME_LENGTH})")
    if not new.symbol.strip():
        raise ValidationError("Fund symbol cannot be empty")
    if len(new.symbol) > MAX_SYMBOL_LENGTH:
        raise ValidationError(f"Fund symbol too long (max {MAX_SYMBOL_LENGTH})")
    if not (0 <= new.deposit_fee_bps <= MAX_DEPOSIT_FEE_BPS):
        raise ValidationError(
            f"deposit_fee_bps must be in [0, {MAX_DEPOSIT_FEE_BPS}], got {new.deposit_fee_bps}"
        )
    if not (MIN_PERF_FEE_BPS <= new.perf_fee_bps <= MAX_PERF_FEE_BPS):
        raise ValidationError(
            f"perf_fee_bps must be in [{MIN_PERF_FEE_BPS}, {MAX_PERF_FEE_BPS}], "
            f"got {new.perf_fee_bps}"
        )
    if not (0 <= new.early_exit_fee_bps <= MAX_EARLY_EXIT_FEE_BPS):
        raise ValidationError(
            f"early_exit_fee_bps must be in [0, {MAX_EARLY_EXIT_FEE_BPS}], "
            f"got {new.early_exit_fee_bps}"
        )
    if not (0 <= new.liquidity_buffer_bps <= MAX_LIQUIDITY_BUFFER_BPS):
        raise ValidationError(
            f"liquidity_buffer_bps must be in [0, {MAX_LIQUIDITY_BUFFER_BPS}], "
            f"got {new.liquidity_buffer_bps}"
        )
    if not (MIN_EPOCH_INTERVAL_SECS <= new.epoch_interval_secs <= MAX_EPOCH_INTERVAL_SECS):
        raise ValidationError(
            f"epoch_interval_secs must be in [{MIN_EPOCH_INTERVAL_SECS}, "
            f"{MAX_EPOCH_INTERVAL_SECS}], got {new.epoch_interval_secs}"
        )
    if (
        new.trading_start_ts is not None
        and new.trading_end_ts is not None
        and new.trading_end_ts <= new.trading_start_ts
    ):
        raise ValidationError("Trading end time must be after start time")


def _advance(fund: Fund, required: FundStage, operation: str) -> FundStage:
    current = FundStage(fund.stage)
    if current != required:
        raise InvalidStageTransitionError(current.value, operation, required.value)
    return _NEXT_STAGE[current]


def start_trading(fund: Fund, initial_aum_usdc: int) -> None:
    """Open -> Trading. Locks the performance-fee baseline."""
    if initial_aum_usdc < 0:
        raise ValidationError("initial_aum_usdc cannot be negative")
    next_stage = _advance(fund, FundStage.OPEN, "start trading")
    fund.initial_aum_usdc = initial_aum_usdc
    fund.stage = next_stage.value
    logger.info("Fund %s -> %s (initial_aum=%d)", fund.id, fund.stage, initial_aum_usdc)


def end_trading(fund: Fund) -> None:
    """Trading -> Settlement."""
    fund.stage = _advance(fund, FundStage.TRADING, "end trading").value
    logger.info("Fund %s -> %s", fund.id, fund.stage)


def finalize(fund: Fund, final_balance_usdc: int) -> PerfFeeSettlement:
    """Settlement -> Closed. Fixes the one-time performance fee."""
    if final_balance_usdc < 0:
        raise ValidationError("final_balance_usdc cannot be negative")
    next_stage = _advance(fund, FundStage.SETTLEMENT, "finalize")
    initial = fund.initial_aum_usdc or 0
    fee = performance_fee(initial, final_balance_usdc, fund.perf_fee_bps)
    fund.perf_fee_due_usdc = fee
    fund.stage = next_stage.value
    logger.info(
        "Fund %s -> %s (initial=%d final=%d perf_fee=%d)",
        fund.id, fund.stage, initial, final_balance_usdc, fee,
    )
    return PerfFeeSettlement(
        initial_aum_usdc=initial,
        final_balance_usdc=final_balance_usdc,
        profit=max(0, final_balance_usdc - initial),
        perf_fee=fee,
    )


def mark_perf_fee_paid(fund: Fund) -> None:
    """Closed only, at most once."""
    if fund.stage != FundStage.CLOSED.value:
        raise InvalidStageTransitionError(
            fund.stage, "mark performance fee paid", FundStage.CLOSED.value
        )
    if fund.perf_fee_paid:
        raise PerfFeeAlreadyPaidError(fund.id)
    fund.perf_fee_paid = True


def check_deposit_allowed(fund: Fund) -> None:
    if FundStage(fund.stage) not in _DEPOSIT_STAGES:
        raise StageOperationNotAllowedError("Deposit", fund.stage)


def check_withdraw_allowed(fund: Fund) -> None:
    if FundStage(fund.stage) not in _WITHDRAW_STAGES:
        raise StageOperationNotAllowedError("Withdrawal", fund.stage)


def check_trading_allowed(fund: Fund) -> None:
    if fund.stage != FundStage.TRADING.value:
        raise StageOperationNotAllowedError("Trading", fund.stage)


def check_withdrawal_request_allowed(fund: Fund) -> None:
    if fund.stage != FundStage.TRADING.value:
        raise StageOperationNotAllowedError("Withdrawal request", fund.stage)


def check_queue_processing_allowed(fund: Fund) -> None:
    if FundStage(fund.stage) not in _QUEUE_PROCESS_STAGES:
        raise StageOperationNotAllowedError("Withdrawal processing", fund.stage)
