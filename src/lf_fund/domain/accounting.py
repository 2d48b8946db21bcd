"""Share accounting — deposit, withdraw and performance-fee arithmetic.

Pure functions: they read the Fund, its latest Snapshot and the Depositor,
and return the computed amounts plus the next Snapshot / Depositor values.
Nothing here touches the database; the caller persists the results in one
transaction.

Deposit:
  fee    = floor(amount * deposit_fee_bps / 10000)
  net    = amount - fee
  minted = floor(net * 1e6 / share_price)

Withdraw:
  gross    = floor(shares * share_price / 1e6)
  exit_fee = floor(gross * early_exit_fee_bps / 10000)   (Trading only)
  net      = gross - exit_fee
  Trading only: tvl must still hold floor((nav - net) * liquidity_buffer_bps / 10000)
  after paying net, otherwise the investor has to queue a withdrawal request.

After either, share_price = floor(nav * 1e6 / total_shares), or unchanged
when no shares remain outstanding. Every snapshot value must fit a BIGINT.
"""

from dataclasses import dataclass, replace

from src.lf_common.enums import FundStage, SnapshotSource
from src.lf_common.errors import (
    InsufficientBalanceError,
    InsufficientBufferError,
    InsufficientSharesError,
    ValidationError,
)
from src.lf_common.units import (
    MAX_MICRO_UNITS,
    amount_for_shares,
    bps_of,
    share_price_of,
    shares_for_amount,
)
from src.lf_fund.domain.models import Depositor, Fund, Snapshot


@dataclass(frozen=True)
class DepositOutcome:
    fee: int
    net_amount: int
    shares_minted: int
    snapshot: Snapshot
    depositor: Depositor


@dataclass(frozen=True)
class WithdrawOutcome:
    gross_usdc: int
    exit_fee: int
    net_usdc: int
    snapshot: Snapshot
    depositor: Depositor


def performance_fee(initial_aum_usdc: int, final_balance_usdc: int, perf_fee_bps: int) -> int:
    """floor(max(0, final - initial) * bps / 10000). A loss yields zero, never negative."""
    profit = max(0, final_balance_usdc - initial_aum_usdc)
    return bps_of(profit, perf_fee_bps)


def min_buffer_amount(nav: int, liquidity_buffer_bps: int) -> int:
    """Cash the fund has to keep on hand for a given NAV."""
    return bps_of(max(0, nav), liquidity_buffer_bps)


def check_snapshot_bounds(snapshot: Snapshot) -> None:
    for name in ("nav", "share_price", "tvl", "total_shares"):
        value = getattr(snapshot, name)
        if value > MAX_MICRO_UNITS:
            raise ValidationError(f"Resulting {name} {value} exceeds the supported maximum")


def compute_deposit(
    fund: Fund, latest: Snapshot, depositor: Depositor, amount_usdc: int
) -> DepositOutcome:
    if amount_usdc <= 0:
        raise ValidationError("Deposit amount must be greater than zero")

    fee = bps_of(amount_usdc, fund.deposit_fee_bps)
    net = amount_usdc - fee
    minted = shares_for_amount(net, latest.share_price)
    if minted <= 0:
        raise ValidationError("Deposit amount too small to mint any shares")

    nav = latest.nav + net
    total_shares = latest.total_shares + minted
    snapshot = Snapshot(
        fund_id=fund.id,
        version=latest.version + 1,
        nav=nav,
        share_price=share_price_of(nav, total_shares, latest.share_price),
        tvl=latest.tvl + net,
        total_shares=total_shares,
        stage=fund.stage,
        source=SnapshotSource.DEPOSIT.value,
    )
    check_snapshot_bounds(snapshot)
    deposited = depositor.deposited + amount_usdc
    if deposited > MAX_MICRO_UNITS:
        raise ValidationError("Cumulative deposits exceed the supported maximum")
    updated = replace(depositor, shares=depositor.shares + minted, deposited=deposited)
    return DepositOutcome(
        fee=fee, net_amount=net, shares_minted=minted, snapshot=snapshot, depositor=updated
    )


def compute_withdraw(
    fund: Fund,
    latest: Snapshot,
    depositor: Depositor,
    shares: int,
    reserved_shares: int = 0,
) -> WithdrawOutcome:
    """Burn `shares` for the depositor.

    `reserved_shares` are already promised to the withdrawal queue and
    cannot be withdrawn directly.
    """
    if shares <= 0:
        raise ValidationError("Withdrawal amount must be greater than zero")
    available = depositor.shares - reserved_shares
    if shares > available:
        raise InsufficientSharesError(shares, max(0, available))

    trading = fund.stage == FundStage.TRADING.value
    gross = amount_for_shares(shares, latest.share_price)
    exit_fee = bps_of(gross, fund.early_exit_fee_bps) if trading else 0
    net = gross - exit_fee
    if net > latest.tvl:
        raise InsufficientBalanceError(net, latest.tvl)
    if trading:
        buffer = min_buffer_amount(latest.nav - net, fund.liquidity_buffer_bps)
        if latest.tvl < net + buffer:
            raise InsufficientBufferError(net, buffer, latest.tvl)

    nav = latest.nav - net
    total_shares = latest.total_shares - shares
    snapshot = Snapshot(
        fund_id=fund.id,
        version=latest.version + 1,
        nav=nav,
        share_price=share_price_of(nav, total_shares, latest.share_price),
        tvl=latest.tvl - net,
        total_shares=total_shares,
        stage=fund.stage,
        source=SnapshotSource.WITHDRAW.value,
    )
    check_snapshot_bounds(snapshot)
    updated = replace(
        depositor,
        shares=depositor.shares - shares,
        withdrawn=depositor.withdrawn + net,
    )
    return WithdrawOutcome(
        gross_usdc=gross, exit_fee=exit_fee, net_usdc=net, snapshot=snapshot, depositor=updated
    )


def finalize_snapshot(
    fund: Fund, latest: Snapshot, final_balance_usdc: int, perf_fee: int
) -> Snapshot:
    """Closing snapshot: the fund holds final balance minus the performance fee."""
    nav = final_balance_usdc - perf_fee
    snapshot = Snapshot(
        fund_id=fund.id,
        version=latest.version + 1,
        nav=nav,
        share_price=share_price_of(nav, latest.total_shares, latest.share_price),
        tvl=nav,
        total_shares=latest.total_shares,
        stage=fund.stage,
        source=SnapshotSource.FINALIZE.value,
    )
    check_snapshot_bounds(snapshot)
    return snapshot
