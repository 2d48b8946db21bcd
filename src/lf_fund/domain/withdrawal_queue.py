"""Queued withdrawals for the Trading stage.

When the liquidity buffer blocks an instant exit, an investor queues a
request instead. The request locks in the share price of the moment and
reserves the shares, so they can be neither withdrawn directly nor queued
twice. At each epoch boundary a fill pays out as much as the fund's cash
allows; the rest waits for the next epoch. Settlement fills any time.

No exit fee applies to queued withdrawals.
"""

from dataclasses import dataclass, replace
from datetime import datetime, timedelta

from src.lf_common.enums import FundStage, SnapshotSource, WithdrawalStatus
from src.lf_common.errors import (
    CannotCancelPartialWithdrawalError,
    EpochNotReadyError,
    ForbiddenError,
    InsufficientSharesError,
    ValidationError,
    WithdrawalRequestInactiveError,
)
from src.lf_common.units import amount_for_shares, share_price_of, shares_for_amount
from src.lf_fund.domain.accounting import check_snapshot_bounds
from src.lf_fund.domain.models import Depositor, Fund, Snapshot, WithdrawalRequest


@dataclass(frozen=True)
class FillOutcome:
    shares_filled: int
    payout_usdc: int
    request: WithdrawalRequest
    depositor: Depositor
    snapshot: Snapshot | None        # None when nothing could be paid


def open_request(
    fund: Fund, latest: Snapshot, depositor: Depositor, reserved_shares: int, shares: int
) -> WithdrawalRequest:
    if shares <= 0:
        raise ValidationError("Withdrawal amount must be greater than zero")
    available = depositor.shares - reserved_shares
    if shares > available:
        raise InsufficientSharesError(shares, max(0, available))
    return WithdrawalRequest(
        fund_id=fund.id,
        wallet=depositor.wallet,
        shares_requested=shares,
        share_price_at_request=latest.share_price,
    )


def cancel_request(request: WithdrawalRequest, wallet: str) -> WithdrawalRequest:
    if request.wallet != wallet:
        raise ForbiddenError("only the requesting wallet may cancel a withdrawal request")
    if request.shares_filled > 0:
        raise CannotCancelPartialWithdrawalError(request.id)
    if request.status != WithdrawalStatus.PENDING.value:
        raise WithdrawalRequestInactiveError(request.id, request.status)
    return replace(request, status=WithdrawalStatus.CANCELLED.value)


def next_epoch_at(fund: Fund) -> datetime | None:
    if fund.last_epoch_at is None:
        return None
    return fund.last_epoch_at + timedelta(seconds=fund.epoch_interval_secs)


def check_epoch_ready(fund: Fund, now: datetime) -> None:
    if fund.stage == FundStage.SETTLEMENT.value:
        return
    ready_at = next_epoch_at(fund)
    if ready_at is not None and now < ready_at:
        raise EpochNotReadyError(ready_at.isoformat())


def fill_request(
    fund: Fund, latest: Snapshot, depositor: Depositor, request: WithdrawalRequest
) -> FillOutcome:
    """Pay the request out of available cash at its locked share price.

    The payout is capped by tvl (cash on hand) and nav, so a fill never
    drives either negative. A full payout burns every remaining share; a
    partial one burns only the shares the payout covers. Returns an outcome
    with no snapshot when there is no cash to pay anything.
    """
    if not request.is_active:
        raise WithdrawalRequestInactiveError(request.id, request.status)

    remaining = request.shares_remaining
    price = request.share_price_at_request
    owed = amount_for_shares(remaining, price)
    payout = min(owed, latest.tvl, latest.nav)
    shares = remaining if payout == owed else min(remaining, shares_for_amount(payout, price))
    # owed == 0 is dust worth nothing at the locked price: burn it and complete
    if owed > 0 and (payout == 0 or shares == 0):
        return FillOutcome(0, 0, request, depositor, None)
    if shares > depositor.shares:
        raise InsufficientSharesError(shares, depositor.shares)

    nav = latest.nav - payout
    total_shares = latest.total_shares - shares
    snapshot = Snapshot(
        fund_id=fund.id,
        version=latest.version + 1,
        nav=nav,
        share_price=share_price_of(nav, total_shares, latest.share_price),
        tvl=latest.tvl - payout,
        total_shares=total_shares,
        stage=fund.stage,
        source=SnapshotSource.WITHDRAW.value,
    )
    check_snapshot_bounds(snapshot)

    filled = request.shares_filled + shares
    status = (
        WithdrawalStatus.COMPLETED
        if filled >= request.shares_requested
        else WithdrawalStatus.PARTIALLY_FILLED
    )
    return FillOutcome(
        shares_filled=shares,
        payout_usdc=payout,
        request=replace(
            request,
            shares_filled=filled,
            usdc_received=request.usdc_received + payout,
            status=status.value,
        ),
        depositor=replace(
            depositor,
            shares=depositor.shares - shares,
            withdrawn=depositor.withdrawn + payout,
        ),
        snapshot=snapshot,
    )
