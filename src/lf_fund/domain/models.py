"""Domain models for lf_fund — pure dataclasses, no SQLAlchemy dependency.

Amounts, shares and prices are int micro-units (see lf_common.units).
"""

from dataclasses import dataclass
from datetime import datetime

from src.lf_common.enums import WithdrawalStatus


@dataclass
class Fund:
    id: str
    address: str
    fund_id: str                     # external / on-chain identifier
    name: str
    symbol: str
    description: str
    manager: str
    deposit_fee_bps: int
    perf_fee_bps: int
    early_exit_fee_bps: int
    stage: str                       # FundStage value
    liquidity_buffer_bps: int = 1000
    epoch_interval_secs: int = 86400
    last_epoch_at: datetime | None = None   # last queued-withdrawal fill
    trading_start_ts: datetime | None = None
    trading_end_ts: datetime | None = None
    initial_aum_usdc: int | None = None
    perf_fee_due_usdc: int | None = None
    perf_fee_paid: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class Snapshot:
    """Immutable ledger row. The latest one per fund is the source of truth."""

    fund_id: str
    version: int                     # 1 = genesis, +1 per append
    nav: int
    share_price: int
    tvl: int
    total_shares: int
    stage: str
    source: str                      # SnapshotSource value
    id: int | None = None            # BIGSERIAL, None before insert
    timestamp: datetime | None = None


@dataclass
class Depositor:
    fund_id: str
    wallet: str
    shares: int = 0
    deposited: int = 0               # gross USDC paid in, informational
    withdrawn: int = 0               # net USDC paid out, informational
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class FundSummary:
    """Fund plus the read-side aggregates shown in list views."""

    fund: Fund
    latest: Snapshot
    depositor_count: int = 0
    trade_count: int = 0


@dataclass
class NewFund:
    """Validated creation input, before ids and timestamps exist."""

    address: str
    fund_id: str
    manager: str
    name: str
    symbol: str
    description: str
    deposit_fee_bps: int
    perf_fee_bps: int
    early_exit_fee_bps: int
    trading_start_ts: datetime | None = None
    trading_end_ts: datetime | None = None
    liquidity_buffer_bps: int = 1000
    epoch_interval_secs: int = 86400


@dataclass
class WithdrawalRequest:
    """Queued Trading-stage exit, filled from available liquidity at epoch boundaries.

    The share price is locked when the request is made; fills pay out at
    that price, never at a later one.
    """

    fund_id: str
    wallet: str
    shares_requested: int
    share_price_at_request: int
    shares_filled: int = 0
    usdc_received: int = 0
    status: str = WithdrawalStatus.PENDING.value
    id: int | None = None            # BIGSERIAL, None before insert
    requested_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def shares_remaining(self) -> int:
        return max(0, self.shares_requested - self.shares_filled)

    @property
    def is_active(self) -> bool:
        return self.status in (
            WithdrawalStatus.PENDING.value,
            WithdrawalStatus.PARTIALLY_FILLED.value,
        )
