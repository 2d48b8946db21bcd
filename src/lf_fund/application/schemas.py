"""Pydantic schemas for the fund endpoints.

One request model per operation, extra fields rejected. Micro-unit inputs
accept JSON integers or digit strings; every micro-unit output is a decimal
string plus a human `_display` string.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from src.lf_common.datetime_utils import to_iso
from src.lf_common.enums import FundStage
from src.lf_common.schema_types import MicroUnits, PositiveMicroUnits
from src.lf_common.units import units_to_display
from src.lf_fund.domain.models import (
    Depositor,
    Fund,
    FundSummary,
    Snapshot,
    WithdrawalRequest,
)
from src.lf_fund.domain.state_machine import (
    DEFAULT_EARLY_EXIT_FEE_BPS,
    DEFAULT_EPOCH_INTERVAL_SECS,
    DEFAULT_LIQUIDITY_BUFFER_BPS,
    DEFAULT_PERF_FEE_BPS,
    PerfFeeSettlement,
)
from src.lf_portfolio.application.schemas import PositionItem, TradeItem


def _opt(units: int | None) -> str | None:
    return str(units) if units is not None else None


def _opt_display(units: int | None) -> str | None:
    return units_to_display(units) if units is not None else None


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class CreateFundRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    address: str = Field(..., min_length=1, max_length=64)
    fund_id: str = Field(..., min_length=1, max_length=64)
    manager: str = Field(..., min_length=1, max_length=64)
    name: str = Field(..., min_length=1)
    symbol: str | None = None
    description: str | None = Field(None, max_length=1000)
    deposit_fee_bps: int = 0
    perf_fee_bps: int = DEFAULT_PERF_FEE_BPS
    early_exit_fee_bps: int = DEFAULT_EARLY_EXIT_FEE_BPS
    liquidity_buffer_bps: int = DEFAULT_LIQUIDITY_BUFFER_BPS
    epoch_interval_secs: int = DEFAULT_EPOCH_INTERVAL_SECS
    trading_start_ts: datetime | None = None
    trading_end_ts: datetime | None = None


class StartTradingRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    initial_aum_usdc: MicroUnits | None = None


class FinalizeRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    final_balance_usdc: MicroUnits


class DepositRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    amount_usdc: PositiveMicroUnits


class WithdrawRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    shares: PositiveMicroUnits


class QueueWithdrawalRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    shares: PositiveMicroUnits


class SnapshotPushRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    nav: MicroUnits
    share_price: PositiveMicroUnits
    tvl: MicroUnits
    total_shares: MicroUnits
    stage: FundStage | None = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class SnapshotItem(BaseModel):
    id: int | None
    version: int
    timestamp: str | None
    nav: str
    nav_display: str
    share_price: str
    share_price_display: str
    tvl: str
    tvl_display: str
    total_shares: str
    total_shares_display: str
    stage: str
    source: str

    @classmethod
    def from_domain(cls, s: Snapshot) -> "SnapshotItem":
        return cls(
            id=s.id,
            version=s.version,
            timestamp=to_iso(s.timestamp),
            nav=str(s.nav),
            nav_display=units_to_display(s.nav),
            share_price=str(s.share_price),
            share_price_display=units_to_display(s.share_price),
            tvl=str(s.tvl),
            tvl_display=units_to_display(s.tvl),
            total_shares=str(s.total_shares),
            total_shares_display=units_to_display(s.total_shares),
            stage=s.stage,
            source=s.source,
        )


class FundItem(BaseModel):
    id: str
    address: str
    fund_id: str
    name: str
    symbol: str
    description: str
    manager: str
    deposit_fee_bps: int
    perf_fee_bps: int
    early_exit_fee_bps: int
    liquidity_buffer_bps: int
    epoch_interval_secs: int
    last_epoch_at: str | None
    stage: str
    trading_start_ts: str | None
    trading_end_ts: str | None
    initial_aum_usdc: str | None
    initial_aum_usdc_display: str | None
    perf_fee_due_usdc: str | None
    perf_fee_due_usdc_display: str | None
    perf_fee_paid: bool
    created_at: str | None

    @classmethod
    def from_domain(cls, f: Fund) -> "FundItem":
        return cls(
            id=f.id,
            address=f.address,
            fund_id=f.fund_id,
            name=f.name,
            symbol=f.symbol,
            description=f.description,
            manager=f.manager,
            deposit_fee_bps=f.deposit_fee_bps,
            perf_fee_bps=f.perf_fee_bps,
            early_exit_fee_bps=f.early_exit_fee_bps,
            liquidity_buffer_bps=f.liquidity_buffer_bps,
            epoch_interval_secs=f.epoch_interval_secs,
            last_epoch_at=to_iso(f.last_epoch_at),
            stage=f.stage,
            trading_start_ts=to_iso(f.trading_start_ts),
            trading_end_ts=to_iso(f.trading_end_ts),
            initial_aum_usdc=_opt(f.initial_aum_usdc),
            initial_aum_usdc_display=_opt_display(f.initial_aum_usdc),
            perf_fee_due_usdc=_opt(f.perf_fee_due_usdc),
            perf_fee_due_usdc_display=_opt_display(f.perf_fee_due_usdc),
            perf_fee_paid=f.perf_fee_paid,
            created_at=to_iso(f.created_at),
        )


class FundSummaryItem(FundItem):
    nav: str
    nav_display: str
    share_price: str
    share_price_display: str
    tvl: str
    tvl_display: str
    total_shares: str
    total_shares_display: str
    depositor_count: int
    trade_count: int

    @classmethod
    def from_summary(cls, s: FundSummary) -> "FundSummaryItem":
        base = FundItem.from_domain(s.fund).model_dump()
        return cls(
            **base,
            nav=str(s.latest.nav),
            nav_display=units_to_display(s.latest.nav),
            share_price=str(s.latest.share_price),
            share_price_display=units_to_display(s.latest.share_price),
            tvl=str(s.latest.tvl),
            tvl_display=units_to_display(s.latest.tvl),
            total_shares=str(s.latest.total_shares),
            total_shares_display=units_to_display(s.latest.total_shares),
            depositor_count=s.depositor_count,
            trade_count=s.trade_count,
        )


class FundListResponse(BaseModel):
    items: list[FundSummaryItem]


class DepositorItem(BaseModel):
    wallet: str
    shares: str
    shares_display: str
    value_usdc: str
    value_usdc_display: str
    deposited: str
    deposited_display: str
    withdrawn: str
    withdrawn_display: str

    @classmethod
    def from_domain(cls, d: Depositor, value_usdc: int) -> "DepositorItem":
        return cls(
            wallet=d.wallet,
            shares=str(d.shares),
            shares_display=units_to_display(d.shares),
            value_usdc=str(value_usdc),
            value_usdc_display=units_to_display(value_usdc),
            deposited=str(d.deposited),
            deposited_display=units_to_display(d.deposited),
            withdrawn=str(d.withdrawn),
            withdrawn_display=units_to_display(d.withdrawn),
        )


class DepositorListResponse(BaseModel):
    fund_id: str
    items: list[DepositorItem]
    total_shares: str
    total_shares_display: str


class FundDetailResponse(BaseModel):
    fund: FundSummaryItem
    snapshots: list[SnapshotItem]
    positions: list[PositionItem]
    trades: list[TradeItem]
    top_depositors: list[DepositorItem]


class DepositResponse(BaseModel):
    fund_id: str
    wallet: str
    amount_usdc: str
    amount_usdc_display: str
    fee: str
    fee_display: str
    net_amount: str
    net_amount_display: str
    shares_minted: str
    shares_minted_display: str
    depositor_shares: str
    depositor_shares_display: str
    snapshot: SnapshotItem


class WithdrawResponse(BaseModel):
    fund_id: str
    wallet: str
    shares_burned: str
    shares_burned_display: str
    gross_usdc: str
    gross_usdc_display: str
    exit_fee: str
    exit_fee_display: str
    net_usdc: str
    net_usdc_display: str
    depositor_shares: str
    depositor_shares_display: str
    snapshot: SnapshotItem


class FinalizeResponse(BaseModel):
    fund: FundItem
    initial_aum_usdc: str
    final_balance_usdc: str
    profit: str
    profit_display: str
    perf_fee_due_usdc: str
    perf_fee_due_usdc_display: str
    snapshot: SnapshotItem

    @classmethod
    def from_settlement(
        cls, fund: Fund, settlement: PerfFeeSettlement, snapshot: Snapshot
    ) -> "FinalizeResponse":
        return cls(
            fund=FundItem.from_domain(fund),
            initial_aum_usdc=str(settlement.initial_aum_usdc),
            final_balance_usdc=str(settlement.final_balance_usdc),
            profit=str(settlement.profit),
            profit_display=units_to_display(settlement.profit),
            perf_fee_due_usdc=str(settlement.perf_fee),
            perf_fee_due_usdc_display=units_to_display(settlement.perf_fee),
            snapshot=SnapshotItem.from_domain(snapshot),
        )


class PerformanceResponse(BaseModel):
    fund_id: str
    items: list[SnapshotItem]
    next_cursor: str | None
    has_more: bool


class WithdrawalRequestItem(BaseModel):
    id: int | None
    wallet: str
    status: str
    shares_requested: str
    shares_requested_display: str
    shares_filled: str
    shares_filled_display: str
    shares_remaining: str
    shares_remaining_display: str
    usdc_received: str
    usdc_received_display: str
    share_price_at_request: str
    share_price_at_request_display: str
    requested_at: str | None

    @classmethod
    def from_domain(cls, r: WithdrawalRequest) -> "WithdrawalRequestItem":
        return cls(
            id=r.id,
            wallet=r.wallet,
            status=r.status,
            shares_requested=str(r.shares_requested),
            shares_requested_display=units_to_display(r.shares_requested),
            shares_filled=str(r.shares_filled),
            shares_filled_display=units_to_display(r.shares_filled),
            shares_remaining=str(r.shares_remaining),
            shares_remaining_display=units_to_display(r.shares_remaining),
            usdc_received=str(r.usdc_received),
            usdc_received_display=units_to_display(r.usdc_received),
            share_price_at_request=str(r.share_price_at_request),
            share_price_at_request_display=units_to_display(r.share_price_at_request),
            requested_at=to_iso(r.requested_at),
        )


class WithdrawalRequestListResponse(BaseModel):
    fund_id: str
    items: list[WithdrawalRequestItem]
    pending_shares: str
    pending_shares_display: str


class ProcessWithdrawalResponse(BaseModel):
    fund_id: str
    request: WithdrawalRequestItem
    shares_processed: str
    shares_processed_display: str
    payout_usdc: str
    payout_usdc_display: str
    snapshot: SnapshotItem | None
