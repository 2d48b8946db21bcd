"""In-memory repositories for service and router tests.

All fakes share one InMemoryStore. FakeSession mimics a database
transaction: the store is checkpointed when a transaction begins (the first
row lock or insert) and restored on rollback, so a failed operation leaves
nothing behind, just like PostgreSQL would.
"""

import copy
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any

import pytest

from src.lf_common.datetime_utils import utc_now
from src.lf_common.enums import FundStage, WithdrawalStatus
from src.lf_common.errors import (
    ConcurrentModificationError,
    DuplicateTradeError,
    FundExistsError,
)
from src.lf_fund.application.locks import FundLocks
from src.lf_fund.application.schemas import CreateFundRequest, FundSummaryItem
from src.lf_fund.application.service import FundApplicationService
from src.lf_fund.domain.models import (
    Depositor,
    Fund,
    FundSummary,
    NewFund,
    Snapshot,
    WithdrawalRequest,
)
from src.lf_market.infrastructure.dflow_adapter import DFlowAdapter
from src.lf_portfolio.application.service import PortfolioApplicationService
from src.lf_portfolio.domain.models import Position, Trade

MANAGER = "manager-wallet"


@dataclass
class InMemoryStore:
    funds: dict[str, Fund] = field(default_factory=dict)
    depositors: dict[tuple[str, str], Depositor] = field(default_factory=dict)
    snapshots: list[Snapshot] = field(default_factory=list)
    positions: dict[tuple[str, str, str], Position] = field(default_factory=dict)
    trades: list[Trade] = field(default_factory=list)
    withdrawal_requests: dict[int, WithdrawalRequest] = field(default_factory=dict)
    next_id: int = 1

    def allocate_id(self) -> int:
        value = self.next_id
        self.next_id += 1
        return value

    def dump(self) -> dict[str, Any]:
        return copy.deepcopy(self.__dict__)

    def load(self, state: dict[str, Any]) -> None:
        self.__dict__.update(copy.deepcopy(state))


class FakeSession:
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store
        self._checkpoint: dict[str, Any] | None = None
        self.commits = 0
        self.rollbacks = 0

    def begin(self) -> None:
        if self._checkpoint is None:
            self._checkpoint = self._store.dump()

    async def commit(self) -> None:
        self._checkpoint = None
        self.commits += 1

    async def rollback(self) -> None:
        if self._checkpoint is not None:
            self._store.load(self._checkpoint)
        self._checkpoint = None
        self.rollbacks += 1


class InMemoryFundRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    async def create_fund(self, db: FakeSession, new: NewFund) -> Fund:
        db.begin()
        for f in self._store.funds.values():
            if f.address == new.address or f.fund_id == new.fund_id:
                raise FundExistsError(new.fund_id)
        now = utc_now()
        fund = Fund(
            id=str(uuid.uuid4()),
            address=new.address,
            fund_id=new.fund_id,
            name=new.name,
            symbol=new.symbol,
            description=new.description,
            manager=new.manager,
            deposit_fee_bps=new.deposit_fee_bps,
            perf_fee_bps=new.perf_fee_bps,
            early_exit_fee_bps=new.early_exit_fee_bps,
            stage=FundStage.OPEN.value,
            liquidity_buffer_bps=new.liquidity_buffer_bps,
            epoch_interval_secs=new.epoch_interval_secs,
            trading_start_ts=new.trading_start_ts,
            trading_end_ts=new.trading_end_ts,
            created_at=now,
            updated_at=now,
        )
        self._store.funds[fund.id] = fund
        return replace(fund)

    async def get_fund(self, db: FakeSession, fund_id: str) -> Fund | None:
        fund = self._store.funds.get(fund_id)
        return replace(fund) if fund is not None else None

    async def get_fund_for_update(self, db: FakeSession, fund_id: str) -> Fund | None:
        db.begin()
        return await self.get_fund(db, fund_id)

    async def list_funds(
        self, db: FakeSession, stage: str | None, manager: str | None
    ) -> list[FundSummary]:
        result = []
        for fund in sorted(self._store.funds.values(), key=lambda f: f.created_at, reverse=True):
            if stage is not None and fund.stage != stage:
                continue
            if manager is not None and fund.manager != manager:
                continue
            latest = max(
                (s for s in self._store.snapshots if s.fund_id == fund.id),
                key=lambda s: s.version,
            )
            result.append(
                FundSummary(
                    fund=replace(fund),
                    latest=latest,
                    depositor_count=sum(1 for k in self._store.depositors if k[0] == fund.id),
                    trade_count=sum(1 for t in self._store.trades if t.fund_id == fund.id),
                )
            )
        return result

    async def update_lifecycle(
        self, db: FakeSession, fund: Fund, expected_stage: str
    ) -> Fund | None:
        stored = self._store.funds.get(fund.id)
        if stored is None or stored.stage != expected_stage:
            return None
        updated = replace(fund, updated_at=utc_now())
        self._store.funds[fund.id] = updated
        return replace(updated)

    async def record_epoch(self, db: FakeSession, fund_id: str, at: datetime) -> None:
        self._store.funds[fund_id] = replace(self._store.funds[fund_id], last_epoch_at=at)

    async def get_depositor(self, db: FakeSession, fund_id: str, wallet: str) -> Depositor | None:
        d = self._store.depositors.get((fund_id, wallet))
        return replace(d) if d is not None else None

    async def save_depositor(self, db: FakeSession, depositor: Depositor) -> Depositor:
        now = utc_now()
        saved = replace(depositor, created_at=depositor.created_at or now, updated_at=now)
        self._store.depositors[(depositor.fund_id, depositor.wallet)] = saved
        return replace(saved)

    async def list_depositors(
        self, db: FakeSession, fund_id: str, limit: int | None
    ) -> list[Depositor]:
        rows = sorted(
            (d for k, d in self._store.depositors.items() if k[0] == fund_id),
            key=lambda d: (-d.shares, d.wallet),
        )
        if limit is not None:
            rows = rows[:limit]
        return [replace(d) for d in rows]

    async def sum_depositor_shares(self, db: FakeSession, fund_id: str) -> int:
        return sum(d.shares for k, d in self._store.depositors.items() if k[0] == fund_id)


class InMemorySnapshotLedger:
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    async def append(self, db: FakeSession, snapshot: Snapshot) -> Snapshot:
        for s in self._store.snapshots:
            if s.fund_id == snapshot.fund_id and s.version == snapshot.version:
                raise ConcurrentModificationError(snapshot.fund_id)
        saved = replace(snapshot, id=self._store.allocate_id(), timestamp=utc_now())
        self._store.snapshots.append(saved)
        return saved

    async def latest(self, db: FakeSession, fund_id: str) -> Snapshot | None:
        rows = [s for s in self._store.snapshots if s.fund_id == fund_id]
        return max(rows, key=lambda s: s.version) if rows else None

    async def history(
        self, db: FakeSession, fund_id: str, cursor_id: int | None, limit: int
    ) -> list[Snapshot]:
        rows = [
            s
            for s in self._store.snapshots
            if s.fund_id == fund_id and (cursor_id is None or (s.id or 0) < cursor_id)
        ]
        return sorted(rows, key=lambda s: s.id or 0, reverse=True)[:limit]


class InMemoryPortfolioRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    async def get_position_for_update(
        self, db: FakeSession, fund_id: str, market_id: str, side: str
    ) -> Position | None:
        p = self._store.positions.get((fund_id, market_id, side))
        return replace(p) if p is not None else None

    async def save_position(self, db: FakeSession, position: Position) -> Position:
        key = (position.fund_id, position.market_id, position.side)
        existing = self._store.positions.get(key)
        now = utc_now()
        saved = replace(
            position,
            id=existing.id if existing is not None else self._store.allocate_id(),
            created_at=existing.created_at if existing is not None else now,
            updated_at=now,
        )
        self._store.positions[key] = saved
        return replace(saved)

    async def list_positions(
        self, db: FakeSession, fund_id: str, open_only: bool
    ) -> list[Position]:
        return [
            replace(p)
            for k, p in self._store.positions.items()
            if k[0] == fund_id and (p.is_open or not open_only)
        ]

    async def insert_trade(self, db: FakeSession, trade: Trade) -> Trade:
        if any(t.tx_sig == trade.tx_sig for t in self._store.trades):
            raise DuplicateTradeError(trade.tx_sig)
        saved = replace(trade, id=self._store.allocate_id(), timestamp=utc_now())
        self._store.trades.append(saved)
        return saved

    async def list_trades(
        self, db: FakeSession, fund_id: str, cursor_id: int | None, limit: int
    ) -> list[Trade]:
        rows = [
            t
            for t in self._store.trades
            if t.fund_id == fund_id and (cursor_id is None or (t.id or 0) < cursor_id)
        ]
        return sorted(rows, key=lambda t: t.id or 0, reverse=True)[:limit]

    async def count_trades(self, db: FakeSession, fund_id: str) -> int:
        return sum(1 for t in self._store.trades if t.fund_id == fund_id)


class InMemoryWithdrawalQueue:
    _ACTIVE = (WithdrawalStatus.PENDING.value, WithdrawalStatus.PARTIALLY_FILLED.value)

    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    async def create_request(
        self, db: FakeSession, request: WithdrawalRequest
    ) -> WithdrawalRequest:
        db.begin()
        now = utc_now()
        saved = replace(
            request, id=self._store.allocate_id(), requested_at=now, updated_at=now
        )
        self._store.withdrawal_requests[saved.id] = saved  # type: ignore[index]
        return replace(saved)

    async def get_request_for_update(
        self, db: FakeSession, fund_id: str, request_id: int
    ) -> WithdrawalRequest | None:
        db.begin()
        r = self._store.withdrawal_requests.get(request_id)
        return replace(r) if r is not None and r.fund_id == fund_id else None

    async def save_request(
        self, db: FakeSession, request: WithdrawalRequest
    ) -> WithdrawalRequest:
        saved = replace(request, updated_at=utc_now())
        self._store.withdrawal_requests[request.id] = saved  # type: ignore[index]
        return replace(saved)

    async def list_requests(
        self, db: FakeSession, fund_id: str, wallet: str | None, active_only: bool
    ) -> list[WithdrawalRequest]:
        return [
            replace(r)
            for _, r in sorted(self._store.withdrawal_requests.items())
            if r.fund_id == fund_id
            and (wallet is None or r.wallet == wallet)
            and (not active_only or r.status in self._ACTIVE)
        ]

    async def reserved_shares(self, db: FakeSession, fund_id: str, wallet: str) -> int:
        return sum(
            r.shares_remaining
            for r in self._store.withdrawal_requests.values()
            if r.fund_id == fund_id and r.wallet == wallet and r.status in self._ACTIVE
        )

    async def cancel_active_requests(self, db: FakeSession, fund_id: str) -> int:
        count = 0
        for key, r in self._store.withdrawal_requests.items():
            if r.fund_id == fund_id and r.status in self._ACTIVE:
                self._store.withdrawal_requests[key] = replace(
                    r, status=WithdrawalStatus.CANCELLED.value
                )
                count += 1
        return count


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def db(store: InMemoryStore) -> FakeSession:
    return FakeSession(store)


@pytest.fixture
def fund_repo(store: InMemoryStore) -> InMemoryFundRepository:
    return InMemoryFundRepository(store)


@pytest.fixture
def ledger(store: InMemoryStore) -> InMemorySnapshotLedger:
    return InMemorySnapshotLedger(store)


@pytest.fixture
def portfolio_repo(store: InMemoryStore) -> InMemoryPortfolioRepository:
    return InMemoryPortfolioRepository(store)


@pytest.fixture
def locks() -> FundLocks:
    return FundLocks()


@pytest.fixture
def queue(store: InMemoryStore) -> InMemoryWithdrawalQueue:
    return InMemoryWithdrawalQueue(store)


@pytest.fixture
def fund_service(
    fund_repo: InMemoryFundRepository,
    ledger: InMemorySnapshotLedger,
    portfolio_repo: InMemoryPortfolioRepository,
    locks: FundLocks,
    queue: InMemoryWithdrawalQueue,
) -> FundApplicationService:
    return FundApplicationService(
        repo=fund_repo, ledger=ledger, portfolio=portfolio_repo, locks=locks, queue=queue
    )


@pytest.fixture
def portfolio_service(
    portfolio_repo: InMemoryPortfolioRepository,
    fund_repo: InMemoryFundRepository,
    locks: FundLocks,
) -> PortfolioApplicationService:
    return PortfolioApplicationService(
        repo=portfolio_repo,
        fund_repo=fund_repo,
        adapter=DFlowAdapter(api_key="", fee_bps=20),
        locks=locks,
    )


@pytest.fixture
def create_fund(
    fund_service: FundApplicationService, db: FakeSession
) -> Callable[..., Awaitable[FundSummaryItem]]:
    """Factory: creates an Open fund managed by MANAGER; keyword args override the request."""
    counter = iter(range(1, 10_000))

    async def _create(**overrides: Any) -> FundSummaryItem:
        n = next(counter)
        body: dict[str, Any] = {
            "address": f"FundAddr{n}",
            "fund_id": f"fund-{n}",
            "manager": MANAGER,
            "name": f"Alpha {n}",
            "deposit_fee_bps": 100,
            "perf_fee_bps": 2000,
            "early_exit_fee_bps": 500,
        }
        body.update(overrides)
        return await fund_service.create_fund(db, body["manager"], CreateFundRequest(**body))

    return _create
