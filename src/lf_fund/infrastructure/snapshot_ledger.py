"""SnapshotLedger — append-only fund_snapshots table.

UNIQUE (fund_id, version) rejects a second snapshot derived from the same
pre-state; the table trigger rejects UPDATE and DELETE.
"""

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.lf_common.errors import ConcurrentModificationError, InternalError
from src.lf_fund.domain.models import Snapshot

_SNAPSHOT_COLUMNS = (
    "id, fund_id, version, nav, share_price, tvl, total_shares, stage, source, timestamp"
)

_INSERT_SNAPSHOT_SQL = text(f"""
    INSERT INTO fund_snapshots
        (fund_id, version, nav, share_price, tvl, total_shares, stage, source)
    VALUES
        (:fund_id, :version, :nav, :share_price, :tvl, :total_shares, :stage, :source)
    RETURNING {_SNAPSHOT_COLUMNS}
""")

_LATEST_SQL = text(f"""
    SELECT {_SNAPSHOT_COLUMNS}
    FROM fund_snapshots
    WHERE fund_id = :fund_id
    ORDER BY version DESC
    LIMIT 1
""")

_HISTORY_SQL = text(f"""
    SELECT {_SNAPSHOT_COLUMNS}
    FROM fund_snapshots
    WHERE fund_id = :fund_id
      AND (CAST(:cursor_id AS BIGINT) IS NULL OR id < CAST(:cursor_id AS BIGINT))
    ORDER BY id DESC
    LIMIT :limit
""")


def _row_to_snapshot(row: object) -> Snapshot:
    return Snapshot(
        id=row.id,  # type: ignore[attr-defined]
        fund_id=str(row.fund_id),  # type: ignore[attr-defined]
        version=row.version,  # type: ignore[attr-defined]
        nav=row.nav,  # type: ignore[attr-defined]
        share_price=row.share_price,  # type: ignore[attr-defined]
        tvl=row.tvl,  # type: ignore[attr-defined]
        total_shares=row.total_shares,  # type: ignore[attr-defined]
        stage=row.stage,  # type: ignore[attr-defined]
        source=row.source,  # type: ignore[attr-defined]
        timestamp=row.timestamp,  # type: ignore[attr-defined]
    )


class SnapshotLedger:
    async def append(self, db: AsyncSession, snapshot: Snapshot) -> Snapshot:
        try:
            result = await db.execute(
                _INSERT_SNAPSHOT_SQL,
                {
                    "fund_id": snapshot.fund_id,
                    "version": snapshot.version,
                    "nav": snapshot.nav,
                    "share_price": snapshot.share_price,
                    "tvl": snapshot.tvl,
                    "total_shares": snapshot.total_shares,
                    "stage": snapshot.stage,
                    "source": snapshot.source,
                },
            )
        except IntegrityError as exc:
            raise ConcurrentModificationError(snapshot.fund_id) from exc
        row = result.fetchone()
        if row is None:
            raise InternalError("Snapshot insert returned no rows")
        return _row_to_snapshot(row)

    async def latest(self, db: AsyncSession, fund_id: str) -> Snapshot | None:
        row = (await db.execute(_LATEST_SQL, {"fund_id": fund_id})).fetchone()
        return _row_to_snapshot(row) if row else None

    async def history(
        self, db: AsyncSession, fund_id: str, cursor_id: int | None, limit: int
    ) -> list[Snapshot]:
        rows = (
            await db.execute(
                _HISTORY_SQL, {"fund_id": fund_id, "cursor_id": cursor_id, "limit": limit}
            )
        ).fetchall()
        return [_row_to_snapshot(r) for r in rows]
