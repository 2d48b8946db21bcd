"""FundRepository — concrete implementation of FundRepositoryProtocol.

All queries use raw text() SQL (no ORM).
asyncpg NULL parameter pattern: CAST(:param AS TYPE) IS NULL required for None values.

Transaction ownership: the CALLER (application service) commits or rolls back.
"""

import uuid
from datetime import datetime

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.lf_common.enums import FundStage
from src.lf_common.errors import FundExistsError, InternalError
from src.lf_fund.domain.models import Depositor, Fund, FundSummary, NewFund, Snapshot

# ---------------------------------------------------------------------------
# SQL: funds
# ---------------------------------------------------------------------------

_FUND_COLUMNS = """
    id, address, fund_id, name, symbol, description, manager,
    deposit_fee_bps, perf_fee_bps, early_exit_fee_bps, stage,
    liquidity_buffer_bps, epoch_interval_secs, last_epoch_at,
    trading_start_ts, trading_end_ts,
    initial_aum_usdc, perf_fee_due_usdc, perf_fee_paid,
    created_at, updated_at
"""

_INSERT_FUND_SQL = text(f"""
    INSERT INTO funds
        (address, fund_id, name, symbol, description, manager,
         deposit_fee_bps, perf_fee_bps, early_exit_fee_bps, stage,
         liquidity_buffer_bps, epoch_interval_secs,
         trading_start_ts, trading_end_ts)
    VALUES
        (:address, :fund_id, :name, :symbol, :description, :manager,
         :deposit_fee_bps, :perf_fee_bps, :early_exit_fee_bps, :stage,
         :liquidity_buffer_bps, :epoch_interval_secs,
         :trading_start_ts, :trading_end_ts)
    RETURNING {_FUND_COLUMNS}
""")

_GET_FUND_SQL = text(f"SELECT {_FUND_COLUMNS} FROM funds WHERE id = :id")

_GET_FUND_FOR_UPDATE_SQL = text(f"SELECT {_FUND_COLUMNS} FROM funds WHERE id = :id FOR UPDATE")

# Stage guard in WHERE: 0 rows means someone else advanced the stage first.
_UPDATE_LIFECYCLE_SQL = text(f"""
    UPDATE funds
    SET stage = :stage,
        initial_aum_usdc = :initial_aum_usdc,
        perf_fee_due_usdc = :perf_fee_due_usdc,
        perf_fee_paid = :perf_fee_paid,
        updated_at = NOW()
    WHERE id = :id AND stage = :expected_stage
    RETURNING {_FUND_COLUMNS}
""")

_RECORD_EPOCH_SQL = text(
    "UPDATE funds SET last_epoch_at = :at, updated_at = NOW() WHERE id = :id"
)

_LIST_FUNDS_SQL = text("""
    SELECT f.id, f.address, f.fund_id, f.name, f.symbol, f.description, f.manager,
           f.deposit_fee_bps, f.perf_fee_bps, f.early_exit_fee_bps, f.stage,
           f.liquidity_buffer_bps, f.epoch_interval_secs, f.last_epoch_at,
           f.trading_start_ts, f.trading_end_ts,
           f.initial_aum_usdc, f.perf_fee_due_usdc, f.perf_fee_paid,
           f.created_at, f.updated_at,
           s.id AS snapshot_id, s.version, s.nav, s.share_price, s.tvl,
           s.total_shares, s.stage AS snapshot_stage, s.source, s.timestamp,
           (SELECT COUNT(*) FROM depositors d WHERE d.fund_id = f.id) AS depositor_count,
           (SELECT COUNT(*) FROM fund_trades t WHERE t.fund_id = f.id) AS trade_count
    FROM funds f
    JOIN LATERAL (
        SELECT id, version, nav, share_price, tvl, total_shares, stage, source, timestamp
        FROM fund_snapshots
        WHERE fund_id = f.id
        ORDER BY version DESC
        LIMIT 1
    ) s ON TRUE
    WHERE (CAST(:stage AS TEXT) IS NULL OR f.stage = CAST(:stage AS TEXT))
      AND (CAST(:manager AS TEXT) IS NULL OR f.manager = CAST(:manager AS TEXT))
    ORDER BY f.created_at DESC
""")

# ---------------------------------------------------------------------------
# SQL: depositors
# ---------------------------------------------------------------------------

_DEPOSITOR_COLUMNS = "fund_id, wallet, shares, deposited, withdrawn, created_at, updated_at"

_GET_DEPOSITOR_SQL = text(f"""
    SELECT {_DEPOSITOR_COLUMNS}
    FROM depositors
    WHERE fund_id = :fund_id AND wallet = :wallet
""")

_UPSERT_DEPOSITOR_SQL = text(f"""
    INSERT INTO depositors (fund_id, wallet, shares, deposited, withdrawn)
    VALUES (:fund_id, :wallet, :shares, :deposited, :withdrawn)
    ON CONFLICT (fund_id, wallet) DO UPDATE
        SET shares = EXCLUDED.shares,
            deposited = EXCLUDED.deposited,
            withdrawn = EXCLUDED.withdrawn,
            updated_at = NOW()
    RETURNING {_DEPOSITOR_COLUMNS}
""")

_LIST_DEPOSITORS_SQL = text(f"""
    SELECT {_DEPOSITOR_COLUMNS}
    FROM depositors
    WHERE fund_id = :fund_id
    ORDER BY shares DESC, wallet
    LIMIT :limit
""")

_SUM_SHARES_SQL = text(
    "SELECT COALESCE(SUM(shares), 0) FROM depositors WHERE fund_id = :fund_id"
)

# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _row_to_fund(row: object) -> Fund:
    return Fund(
        id=str(row.id),  # type: ignore[attr-defined]
        address=row.address,  # type: ignore[attr-defined]
        fund_id=row.fund_id,  # type: ignore[attr-defined]
        name=row.name,  # type: ignore[attr-defined]
        symbol=row.symbol,  # type: ignore[attr-defined]
        description=row.description,  # type: ignore[attr-defined]
        manager=row.manager,  # type: ignore[attr-defined]
        deposit_fee_bps=row.deposit_fee_bps,  # type: ignore[attr-defined]
        perf_fee_bps=row.perf_fee_bps,  # type: ignore[attr-defined]
        early_exit_fee_bps=row.early_exit_fee_bps,  # type: ignore[attr-defined]
        stage=row.stage,  # type: ignore[attr-defined]
        liquidity_buffer_bps=row.liquidity_buffer_bps,  # type: ignore[attr-defined]
        epoch_interval_secs=row.epoch_interval_secs,  # type: ignore[attr-defined]
        last_epoch_at=row.last_epoch_at,  # type: ignore[attr-defined]
        trading_start_ts=row.trading_start_ts,  # type: ignore[attr-defined]
        trading_end_ts=row.trading_end_ts,  # type: ignore[attr-defined]
        initial_aum_usdc=row.initial_aum_usdc,  # type: ignore[attr-defined]
        perf_fee_due_usdc=row.perf_fee_due_usdc,  # type: ignore[attr-defined]
        perf_fee_paid=row.perf_fee_paid,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _row_to_depositor(row: object) -> Depositor:
    return Depositor(
        fund_id=str(row.fund_id),  # type: ignore[attr-defined]
        wallet=row.wallet,  # type: ignore[attr-defined]
        shares=row.shares,  # type: ignore[attr-defined]
        deposited=row.deposited,  # type: ignore[attr-defined]
        withdrawn=row.withdrawn,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _row_to_summary(row: object) -> FundSummary:
    fund = _row_to_fund(row)
    latest = Snapshot(
        id=row.snapshot_id,  # type: ignore[attr-defined]
        fund_id=fund.id,
        version=row.version,  # type: ignore[attr-defined]
        nav=row.nav,  # type: ignore[attr-defined]
        share_price=row.share_price,  # type: ignore[attr-defined]
        tvl=row.tvl,  # type: ignore[attr-defined]
        total_shares=row.total_shares,  # type: ignore[attr-defined]
        stage=row.snapshot_stage,  # type: ignore[attr-defined]
        source=row.source,  # type: ignore[attr-defined]
        timestamp=row.timestamp,  # type: ignore[attr-defined]
    )
    return FundSummary(
        fund=fund,
        latest=latest,
        depositor_count=row.depositor_count,  # type: ignore[attr-defined]
        trade_count=row.trade_count,  # type: ignore[attr-defined]
    )


def is_uuid(value: str) -> bool:
    """Path ids are user input; anything that is not a UUID cannot match a row."""
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class FundRepository:
    """Concrete repository — funds and depositors."""

    async def create_fund(self, db: AsyncSession, new: NewFund) -> Fund:
        try:
            result = await db.execute(
                _INSERT_FUND_SQL,
                {
                    "address": new.address,
                    "fund_id": new.fund_id,
                    "name": new.name,
                    "symbol": new.symbol,
                    "description": new.description,
                    "manager": new.manager,
                    "deposit_fee_bps": new.deposit_fee_bps,
                    "perf_fee_bps": new.perf_fee_bps,
                    "early_exit_fee_bps": new.early_exit_fee_bps,
                    "stage": FundStage.OPEN.value,
                    "liquidity_buffer_bps": new.liquidity_buffer_bps,
                    "epoch_interval_secs": new.epoch_interval_secs,
                    "trading_start_ts": new.trading_start_ts,
                    "trading_end_ts": new.trading_end_ts,
                },
            )
        except IntegrityError as exc:
            raise FundExistsError(f"address={new.address} fund_id={new.fund_id}") from exc
        row = result.fetchone()
        if row is None:
            raise InternalError("Fund insert returned no rows")
        return _row_to_fund(row)

    async def get_fund(self, db: AsyncSession, fund_id: str) -> Fund | None:
        if not is_uuid(fund_id):
            return None
        row = (await db.execute(_GET_FUND_SQL, {"id": fund_id})).fetchone()
        return _row_to_fund(row) if row else None

    async def get_fund_for_update(self, db: AsyncSession, fund_id: str) -> Fund | None:
        if not is_uuid(fund_id):
            return None
        row = (await db.execute(_GET_FUND_FOR_UPDATE_SQL, {"id": fund_id})).fetchone()
        return _row_to_fund(row) if row else None

    async def list_funds(
        self, db: AsyncSession, stage: str | None, manager: str | None
    ) -> list[FundSummary]:
        rows = (
            await db.execute(_LIST_FUNDS_SQL, {"stage": stage, "manager": manager})
        ).fetchall()
        return [_row_to_summary(r) for r in rows]

    async def update_lifecycle(
        self, db: AsyncSession, fund: Fund, expected_stage: str
    ) -> Fund | None:
        row = (
            await db.execute(
                _UPDATE_LIFECYCLE_SQL,
                {
                    "id": fund.id,
                    "stage": fund.stage,
                    "initial_aum_usdc": fund.initial_aum_usdc,
                    "perf_fee_due_usdc": fund.perf_fee_due_usdc,
                    "perf_fee_paid": fund.perf_fee_paid,
                    "expected_stage": expected_stage,
                },
            )
        ).fetchone()
        return _row_to_fund(row) if row else None

    async def record_epoch(self, db: AsyncSession, fund_id: str, at: datetime) -> None:
        await db.execute(_RECORD_EPOCH_SQL, {"id": fund_id, "at": at})

    async def get_depositor(
        self, db: AsyncSession, fund_id: str, wallet: str
    ) -> Depositor | None:
        row = (
            await db.execute(_GET_DEPOSITOR_SQL, {"fund_id": fund_id, "wallet": wallet})
        ).fetchone()
        return _row_to_depositor(row) if row else None

    async def save_depositor(self, db: AsyncSession, depositor: Depositor) -> Depositor:
        row = (
            await db.execute(
                _UPSERT_DEPOSITOR_SQL,
                {
                    "fund_id": depositor.fund_id,
                    "wallet": depositor.wallet,
                    "shares": depositor.shares,
                    "deposited": depositor.deposited,
                    "withdrawn": depositor.withdrawn,
                },
            )
        ).fetchone()
        if row is None:
            raise InternalError("Depositor upsert returned no rows")
        return _row_to_depositor(row)

    async def list_depositors(
        self, db: AsyncSession, fund_id: str, limit: int | None
    ) -> list[Depositor]:
        # LIMIT NULL means no limit in PostgreSQL
        rows = (
            await db.execute(_LIST_DEPOSITORS_SQL, {"fund_id": fund_id, "limit": limit})
        ).fetchall()
        return [_row_to_depositor(r) for r in rows]

    async def sum_depositor_shares(self, db: AsyncSession, fund_id: str) -> int:
        result = await db.execute(_SUM_SHARES_SQL, {"fund_id": fund_id})
        return int(result.scalar_one())
