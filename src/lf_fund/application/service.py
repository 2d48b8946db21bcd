"""FundApplicationService — fund lifecycle, share accounting and reads.

Every mutating operation runs as:
    per-fund asyncio.Lock
      -> fund row SELECT ... FOR UPDATE
      -> stage / ownership checks
      -> pure computation (state_machine / accounting)
      -> depositor upsert + snapshot append (+ withdrawal request row)
      -> commit (any exception: rollback, re-raise)

so a failed call leaves no snapshot and no depositor change behind.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.lf_common.datetime_utils import utc_now
from src.lf_common.enums import FundStage, SnapshotSource
from src.lf_common.errors import (
    ConcurrentModificationError,
    DepositorNotFoundError,
    ForbiddenError,
    FundNotFoundError,
    InternalError,
    ValidationError,
    WithdrawalRequestInactiveError,
    WithdrawalRequestNotFoundError,
)
from src.lf_common.pagination import cursor_decode, cursor_encode
from src.lf_common.units import (
    INITIAL_SHARE_PRICE,
    amount_for_shares,
    share_price_of,
    units_to_display,
)
from src.lf_fund.application.locks import FundLocks, fund_locks
from src.lf_fund.application.schemas import (
    CreateFundRequest,
    DepositorItem,
    DepositorListResponse,
    DepositResponse,
    FinalizeResponse,
    FundDetailResponse,
    FundItem,
    FundListResponse,
    FundSummaryItem,
    PerformanceResponse,
    ProcessWithdrawalResponse,
    SnapshotItem,
    SnapshotPushRequest,
    WithdrawalRequestItem,
    WithdrawalRequestListResponse,
    WithdrawResponse,
)
from src.lf_fund.domain import accounting, state_machine, withdrawal_queue
from src.lf_fund.domain.models import Depositor, Fund, FundSummary, NewFund, Snapshot
from src.lf_fund.domain.repository import (
    FundRepositoryProtocol,
    SnapshotLedgerProtocol,
    WithdrawalQueueProtocol,
)
from src.lf_fund.infrastructure.persistence import FundRepository
from src.lf_fund.infrastructure.snapshot_ledger import SnapshotLedger
from src.lf_fund.infrastructure.withdrawal_queue import WithdrawalQueueRepository
from src.lf_portfolio.application.schemas import PositionItem, TradeItem
from src.lf_portfolio.domain.repository import PortfolioRepositoryProtocol
from src.lf_portfolio.infrastructure.persistence import PortfolioRepository

logger = logging.getLogger(__name__)

DETAIL_SNAPSHOT_LIMIT = 100
DETAIL_TRADE_LIMIT = 50
DETAIL_DEPOSITOR_LIMIT = 20


def require_manager(fund: Fund, caller: str) -> None:
    if caller != fund.manager:
        raise ForbiddenError("only the fund manager may perform this action")


class FundApplicationService:
    def __init__(
        self,
        repo: FundRepositoryProtocol | None = None,
        ledger: SnapshotLedgerProtocol | None = None,
        portfolio: PortfolioRepositoryProtocol | None = None,
        locks: FundLocks | None = None,
        queue: WithdrawalQueueProtocol | None = None,
    ) -> None:
        self._repo: FundRepositoryProtocol = repo or FundRepository()
        self._ledger: SnapshotLedgerProtocol = ledger or SnapshotLedger()
        self._portfolio: PortfolioRepositoryProtocol = portfolio or PortfolioRepository()
        self._queue: WithdrawalQueueProtocol = queue or WithdrawalQueueRepository()
        self._locks = locks or fund_locks

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _load_for_update(self, db: AsyncSession, fund_id: str) -> tuple[Fund, Snapshot]:
        fund = await self._repo.get_fund_for_update(db, fund_id)
        if fund is None:
            raise FundNotFoundError(fund_id)
        latest = await self._ledger.latest(db, fund_id)
        if latest is None:
            raise InternalError(f"Fund {fund_id} has no snapshot")
        return fund, latest

    async def _load(self, db: AsyncSession, fund_id: str) -> tuple[Fund, Snapshot]:
        fund = await self._repo.get_fund(db, fund_id)
        if fund is None:
            raise FundNotFoundError(fund_id)
        latest = await self._ledger.latest(db, fund_id)
        if latest is None:
            raise InternalError(f"Fund {fund_id} has no snapshot")
        return fund, latest

    async def _save_lifecycle(self, db: AsyncSession, fund: Fund, expected_stage: str) -> Fund:
        updated = await self._repo.update_lifecycle(db, fund, expected_stage)
        if updated is None:
            raise ConcurrentModificationError(fund.id)
        return updated

    # ------------------------------------------------------------------
    # Creation and reads
    # ------------------------------------------------------------------

    async def create_fund(
        self, db: AsyncSession, caller: str, req: CreateFundRequest
    ) -> FundSummaryItem:
        if caller != req.manager:
            raise ForbiddenError("a fund can only be created by its manager")
        new = NewFund(
            address=req.address,
            fund_id=req.fund_id,
            manager=req.manager,
            name=req.name,
            symbol=req.symbol if req.symbol is not None else req.name[:8].upper(),
            description=req.description or "",
            deposit_fee_bps=req.deposit_fee_bps,
            perf_fee_bps=req.perf_fee_bps,
            early_exit_fee_bps=req.early_exit_fee_bps,
            liquidity_buffer_bps=req.liquidity_buffer_bps,
            epoch_interval_secs=req.epoch_interval_secs,
            trading_start_ts=req.trading_start_ts,
            trading_end_ts=req.trading_end_ts,
        )
        state_machine.validate_new_fund(new)
        try:
            fund = await self._repo.create_fund(db, new)
            genesis = await self._ledger.append(
                db,
                Snapshot(
                    fund_id=fund.id,
                    version=1,
                    nav=0,
                    share_price=INITIAL_SHARE_PRICE,
                    tvl=0,
                    total_shares=0,
                    stage=fund.stage,
                    source=SnapshotSource.GENESIS.value,
                ),
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info(
            "Fund created: id=%s fund_id=%s manager=%s", fund.id, fund.fund_id, fund.manager
        )
        return FundSummaryItem.from_summary(FundSummary(fund=fund, latest=genesis))

    async def list_funds(
        self, db: AsyncSession, stage: str | None, manager: str | None
    ) -> FundListResponse:
        if stage is not None and stage not in {s.value for s in FundStage}:
            raise ValidationError(f"Unknown stage: {stage}")
        summaries = await self._repo.list_funds(db, stage, manager)
        return FundListResponse(items=[FundSummaryItem.from_summary(s) for s in summaries])

    async def get_fund_detail(self, db: AsyncSession, fund_id: str) -> FundDetailResponse:
        fund, latest = await self._load(db, fund_id)
        history = await self._ledger.history(db, fund_id, None, DETAIL_SNAPSHOT_LIMIT)
        depositors = await self._repo.list_depositors(db, fund_id, None)
        positions = await self._portfolio.list_positions(db, fund_id, True)
        trades = await self._portfolio.list_trades(db, fund_id, None, DETAIL_TRADE_LIMIT)
        trade_count = await self._portfolio.count_trades(db, fund_id)

        summary = FundSummary(
            fund=fund, latest=latest, depositor_count=len(depositors), trade_count=trade_count
        )
        return FundDetailResponse(
            fund=FundSummaryItem.from_summary(summary),
            snapshots=[SnapshotItem.from_domain(s) for s in history],
            positions=[PositionItem.from_domain(p) for p in positions],
            trades=[TradeItem.from_domain(t) for t in trades],
            top_depositors=[
                DepositorItem.from_domain(d, amount_for_shares(d.shares, latest.share_price))
                for d in depositors[:DETAIL_DEPOSITOR_LIMIT]
            ],
        )

    async def list_depositors(self, db: AsyncSession, fund_id: str) -> DepositorListResponse:
        _, latest = await self._load(db, fund_id)
        depositors = await self._repo.list_depositors(db, fund_id, None)
        return DepositorListResponse(
            fund_id=fund_id,
            items=[
                DepositorItem.from_domain(d, amount_for_shares(d.shares, latest.share_price))
                for d in depositors
            ],
            total_shares=str(latest.total_shares),
            total_shares_display=units_to_display(latest.total_shares),
        )

    async def get_performance(
        self, db: AsyncSession, fund_id: str, cursor: str | None, limit: int
    ) -> PerformanceResponse:
        await self._load(db, fund_id)
        cursor_id = cursor_decode(cursor)
        snapshots = await self._ledger.history(db, fund_id, cursor_id, limit + 1)
        has_more = len(snapshots) > limit
        page = snapshots[:limit]
        next_cursor = (
            cursor_encode(page[-1].id) if has_more and page and page[-1].id is not None else None
        )
        return PerformanceResponse(
            fund_id=fund_id,
            items=[SnapshotItem.from_domain(s) for s in page],
            next_cursor=next_cursor,
            has_more=has_more,
        )

    # ------------------------------------------------------------------
    # Stage transitions (manager only)
    # ------------------------------------------------------------------

    async def start_trading(
        self, db: AsyncSession, fund_id: str, caller: str, initial_aum_usdc: int | None
    ) -> FundItem:
        async with self._locks.for_fund(fund_id):
            try:
                fund, latest = await self._load_for_update(db, fund_id)
                require_manager(fund, caller)
                expected = fund.stage
                baseline = initial_aum_usdc if initial_aum_usdc is not None else latest.nav
                state_machine.start_trading(fund, baseline)
                updated = await self._save_lifecycle(db, fund, expected)
                await db.commit()
            except Exception:
                await db.rollback()
                raise
        return FundItem.from_domain(updated)

    async def end_trading(self, db: AsyncSession, fund_id: str, caller: str) -> FundItem:
        async with self._locks.for_fund(fund_id):
            try:
                fund, _ = await self._load_for_update(db, fund_id)
                require_manager(fund, caller)
                expected = fund.stage
                state_machine.end_trading(fund)
                updated = await self._save_lifecycle(db, fund, expected)
                await db.commit()
            except Exception:
                await db.rollback()
                raise
        return FundItem.from_domain(updated)

    async def finalize(
        self, db: AsyncSession, fund_id: str, caller: str, final_balance_usdc: int
    ) -> FinalizeResponse:
        async with self._locks.for_fund(fund_id):
            try:
                fund, latest = await self._load_for_update(db, fund_id)
                require_manager(fund, caller)
                expected = fund.stage
                settlement = state_machine.finalize(fund, final_balance_usdc)
                updated = await self._save_lifecycle(db, fund, expected)
                snapshot = await self._ledger.append(
                    db,
                    accounting.finalize_snapshot(
                        updated, latest, final_balance_usdc, settlement.perf_fee
                    ),
                )
                # unfilled queue requests lapse; holders exit directly at the final price
                lapsed = await self._queue.cancel_active_requests(db, fund_id)
                await db.commit()
            except Exception:
                await db.rollback()
                raise
        if lapsed:
            logger.info("Fund %s finalized: %d withdrawal requests lapsed", fund_id, lapsed)
        return FinalizeResponse.from_settlement(updated, settlement, snapshot)

    async def mark_perf_fee_paid(self, db: AsyncSession, fund_id: str, caller: str) -> FundItem:
        async with self._locks.for_fund(fund_id):
            try:
                fund, _ = await self._load_for_update(db, fund_id)
                require_manager(fund, caller)
                expected = fund.stage
                state_machine.mark_perf_fee_paid(fund)
                updated = await self._save_lifecycle(db, fund, expected)
                await db.commit()
            except Exception:
                await db.rollback()
                raise
        logger.info("Fund %s performance fee marked paid", fund_id)
        return FundItem.from_domain(updated)

    # ------------------------------------------------------------------
    # Investor flows
    # ------------------------------------------------------------------

    async def deposit(
        self, db: AsyncSession, fund_id: str, wallet: str, amount_usdc: int
    ) -> DepositResponse:
        async with self._locks.for_fund(fund_id):
            try:
                fund, latest = await self._load_for_update(db, fund_id)
                state_machine.check_deposit_allowed(fund)
                depositor = await self._repo.get_depositor(db, fund_id, wallet) or Depositor(
                    fund_id=fund_id, wallet=wallet
                )
                outcome = accounting.compute_deposit(fund, latest, depositor, amount_usdc)
                saved = await self._repo.save_depositor(db, outcome.depositor)
                snapshot = await self._ledger.append(db, outcome.snapshot)
                await db.commit()
            except Exception:
                await db.rollback()
                raise
        logger.info(
            "Deposit: fund=%s wallet=%s amount=%d fee=%d minted=%d",
            fund_id, wallet, amount_usdc, outcome.fee, outcome.shares_minted,
        )
        return DepositResponse(
            fund_id=fund_id,
            wallet=wallet,
            amount_usdc=str(amount_usdc),
            amount_usdc_display=units_to_display(amount_usdc),
            fee=str(outcome.fee),
            fee_display=units_to_display(outcome.fee),
            net_amount=str(outcome.net_amount),
            net_amount_display=units_to_display(outcome.net_amount),
            shares_minted=str(outcome.shares_minted),
            shares_minted_display=units_to_display(outcome.shares_minted),
            depositor_shares=str(saved.shares),
            depositor_shares_display=units_to_display(saved.shares),
            snapshot=SnapshotItem.from_domain(snapshot),
        )

    async def withdraw(
        self, db: AsyncSession, fund_id: str, wallet: str, shares: int
    ) -> WithdrawResponse:
        async with self._locks.for_fund(fund_id):
            try:
                fund, latest = await self._load_for_update(db, fund_id)
                state_machine.check_withdraw_allowed(fund)
                depositor = await self._repo.get_depositor(db, fund_id, wallet)
                if depositor is None:
                    raise DepositorNotFoundError(wallet)
                reserved = await self._queue.reserved_shares(db, fund_id, wallet)
                outcome = accounting.compute_withdraw(fund, latest, depositor, shares, reserved)
                saved = await self._repo.save_depositor(db, outcome.depositor)
                snapshot = await self._ledger.append(db, outcome.snapshot)
                await db.commit()
            except Exception:
                await db.rollback()
                raise
        logger.info(
            "Withdraw: fund=%s wallet=%s shares=%d gross=%d exit_fee=%d net=%d",
            fund_id, wallet, shares, outcome.gross_usdc, outcome.exit_fee, outcome.net_usdc,
        )
        return WithdrawResponse(
            fund_id=fund_id,
            wallet=wallet,
            shares_burned=str(shares),
            shares_burned_display=units_to_display(shares),
            gross_usdc=str(outcome.gross_usdc),
            gross_usdc_display=units_to_display(outcome.gross_usdc),
            exit_fee=str(outcome.exit_fee),
            exit_fee_display=units_to_display(outcome.exit_fee),
            net_usdc=str(outcome.net_usdc),
            net_usdc_display=units_to_display(outcome.net_usdc),
            depositor_shares=str(saved.shares),
            depositor_shares_display=units_to_display(saved.shares),
            snapshot=SnapshotItem.from_domain(snapshot),
        )

    # ------------------------------------------------------------------
    # Indexer
    # ------------------------------------------------------------------

    async def push_snapshot(
        self, db: AsyncSession, fund_id: str, req: SnapshotPushRequest
    ) -> SnapshotItem:
        """Append an authoritative snapshot reported by the on-chain indexer.

        The indexer may restate nav and tvl, but not the share supply (it
        must match the depositor ledger) and not the stage (only lifecycle
        transitions move it). With shares outstanding the share price must
        be exactly nav * 1e6 // total_shares, the same price deposits and
        withdrawals derive; with none it carries the price forward.
        """
        async with self._locks.for_fund(fund_id):
            try:
                fund, latest = await self._load_for_update(db, fund_id)
                stage = req.stage.value if req.stage is not None else fund.stage
                if stage != fund.stage:
                    raise ValidationError(
                        f"Snapshot stage {stage} does not match fund stage {fund.stage}"
                    )
                share_sum = await self._repo.sum_depositor_shares(db, fund_id)
                if req.total_shares != share_sum:
                    raise ValidationError(
                        f"total_shares {req.total_shares} does not match "
                        f"depositor shares {share_sum}"
                    )
                expected_price = share_price_of(req.nav, req.total_shares, req.share_price)
                if req.share_price != expected_price:
                    raise ValidationError(
                        f"share_price {req.share_price} does not match nav / total_shares "
                        f"({expected_price})"
                    )
                snapshot = await self._ledger.append(
                    db,
                    Snapshot(
                        fund_id=fund_id,
                        version=latest.version + 1,
                        nav=req.nav,
                        share_price=req.share_price,
                        tvl=req.tvl,
                        total_shares=req.total_shares,
                        stage=stage,
                        source=SnapshotSource.INDEXER.value,
                    ),
                )
                await db.commit()
            except Exception:
                await db.rollback()
                raise
        logger.info(
            "Indexer snapshot: fund=%s version=%d nav=%d share_price=%d",
            fund_id, snapshot.version, snapshot.nav, snapshot.share_price,
        )
        return SnapshotItem.from_domain(snapshot)

    # ------------------------------------------------------------------
    # Withdrawal queue
    # ------------------------------------------------------------------

    async def request_withdrawal(
        self, db: AsyncSession, fund_id: str, wallet: str, shares: int
    ) -> WithdrawalRequestItem:
        async with self._locks.for_fund(fund_id):
            try:
                fund, latest = await self._load_for_update(db, fund_id)
                state_machine.check_withdrawal_request_allowed(fund)
                depositor = await self._repo.get_depositor(db, fund_id, wallet)
                if depositor is None:
                    raise DepositorNotFoundError(wallet)
                reserved = await self._queue.reserved_shares(db, fund_id, wallet)
                request = withdrawal_queue.open_request(fund, latest, depositor, reserved, shares)
                saved = await self._queue.create_request(db, request)
                await db.commit()
            except Exception:
                await db.rollback()
                raise
        logger.info(
            "Withdrawal queued: fund=%s wallet=%s request=%s shares=%d price=%d",
            fund_id, wallet, saved.id, shares, saved.share_price_at_request,
        )
        return WithdrawalRequestItem.from_domain(saved)

    async def cancel_withdrawal(
        self, db: AsyncSession, fund_id: str, request_id: int, wallet: str
    ) -> WithdrawalRequestItem:
        async with self._locks.for_fund(fund_id):
            try:
                await self._load_for_update(db, fund_id)
                request = await self._queue.get_request_for_update(db, fund_id, request_id)
                if request is None:
                    raise WithdrawalRequestNotFoundError(request_id)
                cancelled = withdrawal_queue.cancel_request(request, wallet)
                saved = await self._queue.save_request(db, cancelled)
                await db.commit()
            except Exception:
                await db.rollback()
                raise
        logger.info(
            "Withdrawal request %d cancelled: fund=%s wallet=%s", request_id, fund_id, wallet
        )
        return WithdrawalRequestItem.from_domain(saved)

    async def process_withdrawal(
        self, db: AsyncSession, fund_id: str, request_id: int
    ) -> ProcessWithdrawalResponse:
        """Fill one queued request from the fund's available cash.

        Trading allows one fill per epoch interval and a fill starts the next
        epoch; Settlement fills any time. A fill that finds no cash changes
        nothing and does not consume the epoch.
        """
        now = utc_now()
        async with self._locks.for_fund(fund_id):
            try:
                fund, latest = await self._load_for_update(db, fund_id)
                state_machine.check_queue_processing_allowed(fund)
                request = await self._queue.get_request_for_update(db, fund_id, request_id)
                if request is None:
                    raise WithdrawalRequestNotFoundError(request_id)
                if not request.is_active:
                    raise WithdrawalRequestInactiveError(request.id, request.status)
                withdrawal_queue.check_epoch_ready(fund, now)
                depositor = await self._repo.get_depositor(db, fund_id, request.wallet)
                if depositor is None:
                    raise DepositorNotFoundError(request.wallet)
                outcome = withdrawal_queue.fill_request(fund, latest, depositor, request)
                snapshot = None
                saved_request = outcome.request
                if outcome.snapshot is not None:
                    await self._repo.save_depositor(db, outcome.depositor)
                    snapshot = await self._ledger.append(db, outcome.snapshot)
                    saved_request = await self._queue.save_request(db, outcome.request)
                    await self._repo.record_epoch(db, fund_id, now)
                await db.commit()
            except Exception:
                await db.rollback()
                raise
        logger.info(
            "Withdrawal request %d processed: fund=%s shares=%d payout=%d status=%s",
            request_id, fund_id, outcome.shares_filled, outcome.payout_usdc, saved_request.status,
        )
        return ProcessWithdrawalResponse(
            fund_id=fund_id,
            request=WithdrawalRequestItem.from_domain(saved_request),
            shares_processed=str(outcome.shares_filled),
            shares_processed_display=units_to_display(outcome.shares_filled),
            payout_usdc=str(outcome.payout_usdc),
            payout_usdc_display=units_to_display(outcome.payout_usdc),
            snapshot=SnapshotItem.from_domain(snapshot) if snapshot is not None else None,
        )

    async def list_withdrawals(
        self, db: AsyncSession, fund_id: str, wallet: str | None, active_only: bool
    ) -> WithdrawalRequestListResponse:
        await self._load(db, fund_id)
        requests = await self._queue.list_requests(db, fund_id, wallet, active_only)
        pending = sum(r.shares_remaining for r in requests if r.is_active)
        return WithdrawalRequestListResponse(
            fund_id=fund_id,
            items=[WithdrawalRequestItem.from_domain(r) for r in requests],
            pending_shares=str(pending),
            pending_shares_display=units_to_display(pending),
        )
