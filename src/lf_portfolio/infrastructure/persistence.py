"""PortfolioRepository — fund_positions and fund_trades via raw text() SQL.

Transaction ownership: the CALLER commits or rolls back.
"""

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.lf_common.errors import DuplicateTradeError, InternalError
from src.lf_portfolio.domain.models import Position, Trade

_POSITION_COLUMNS = """
    id, fund_id, market_id, market_name, side, quantity, avg_price,
    current_price, is_open, created_at, updated_at
"""

_TRADE_COLUMNS = """
    id, fund_id, tx_sig, market_id, market_name, side, direction,
    quantity, price, fee, timestamp
"""

_GET_POSITION_FOR_UPDATE_SQL = text(f"""
    SELECT {_POSITION_COLUMNS}
    FROM fund_positions
    WHERE fund_id = :fund_id AND market_id = :market_id AND side = :side
    FOR UPDATE
""")

_UPSERT_POSITION_SQL = text(f"""
    INSERT INTO fund_positions
        (fund_id, market_id, market_name, side, quantity, avg_price, current_price, is_open)
    VALUES
        (:fund_id, :market_id, :market_name, :side, :quantity, :avg_price,
         :current_price, :is_open)
    ON CONFLICT (fund_id, market_id, side) DO UPDATE
        SET market_name = EXCLUDED.market_name,
            quantity = EXCLUDED.quantity,
            avg_price = EXCLUDED.avg_price,
            current_price = EXCLUDED.current_price,
            is_open = EXCLUDED.is_open,
            updated_at = NOW()
    RETURNING {_POSITION_COLUMNS}
""")

_LIST_POSITIONS_SQL = text(f"""
    SELECT {_POSITION_COLUMNS}
    FROM fund_positions
    WHERE fund_id = :fund_id
      AND (CAST(:open_only AS BOOLEAN) = FALSE OR is_open = TRUE)
    ORDER BY updated_at DESC, id DESC
""")

_INSERT_TRADE_SQL = text(f"""
    INSERT INTO fund_trades
        (fund_id, tx_sig, market_id, market_name, side, direction, quantity, price, fee)
    VALUES
        (:fund_id, :tx_sig, :market_id, :market_name, :side, :direction,
         :quantity, :price, :fee)
    RETURNING {_TRADE_COLUMNS}
""")

_LIST_TRADES_SQL = text(f"""
    SELECT {_TRADE_COLUMNS}
    FROM fund_trades
    WHERE fund_id = :fund_id
      AND (CAST(:cursor_id AS BIGINT) IS NULL OR id < CAST(:cursor_id AS BIGINT))
    ORDER BY id DESC
    LIMIT :limit
""")

_COUNT_TRADES_SQL = text("SELECT COUNT(*) FROM fund_trades WHERE fund_id = :fund_id")


def _row_to_position(row: object) -> Position:
    return Position(
        id=row.id,  # type: ignore[attr-defined]
        fund_id=str(row.fund_id),  # type: ignore[attr-defined]
        market_id=row.market_id,  # type: ignore[attr-defined]
        market_name=row.market_name,  # type: ignore[attr-defined]
        side=row.side,  # type: ignore[attr-defined]
        quantity=row.quantity,  # type: ignore[attr-defined]
        avg_price=row.avg_price,  # type: ignore[attr-defined]
        current_price=row.current_price,  # type: ignore[attr-defined]
        is_open=row.is_open,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _row_to_trade(row: object) -> Trade:
    return Trade(
        id=row.id,  # type: ignore[attr-defined]
        fund_id=str(row.fund_id),  # type: ignore[attr-defined]
        tx_sig=row.tx_sig,  # type: ignore[attr-defined]
        market_id=row.market_id,  # type: ignore[attr-defined]
        market_name=row.market_name,  # type: ignore[attr-defined]
        side=row.side,  # type: ignore[attr-defined]
        direction=row.direction,  # type: ignore[attr-defined]
        quantity=row.quantity,  # type: ignore[attr-defined]
        price=row.price,  # type: ignore[attr-defined]
        fee=row.fee,  # type: ignore[attr-defined]
        timestamp=row.timestamp,  # type: ignore[attr-defined]
    )


class PortfolioRepository:
    async def get_position_for_update(
        self, db: AsyncSession, fund_id: str, market_id: str, side: str
    ) -> Position | None:
        row = (
            await db.execute(
                _GET_POSITION_FOR_UPDATE_SQL,
                {"fund_id": fund_id, "market_id": market_id, "side": side},
            )
        ).fetchone()
        return _row_to_position(row) if row else None

    async def save_position(self, db: AsyncSession, position: Position) -> Position:
        row = (
            await db.execute(
                _UPSERT_POSITION_SQL,
                {
                    "fund_id": position.fund_id,
                    "market_id": position.market_id,
                    "market_name": position.market_name,
                    "side": position.side,
                    "quantity": position.quantity,
                    "avg_price": position.avg_price,
                    "current_price": position.current_price,
                    "is_open": position.is_open,
                },
            )
        ).fetchone()
        if row is None:
            raise InternalError("Position upsert returned no rows")
        return _row_to_position(row)

    async def list_positions(
        self, db: AsyncSession, fund_id: str, open_only: bool
    ) -> list[Position]:
        rows = (
            await db.execute(_LIST_POSITIONS_SQL, {"fund_id": fund_id, "open_only": open_only})
        ).fetchall()
        return [_row_to_position(r) for r in rows]

    async def insert_trade(self, db: AsyncSession, trade: Trade) -> Trade:
        try:
            result = await db.execute(
                _INSERT_TRADE_SQL,
                {
                    "fund_id": trade.fund_id,
                    "tx_sig": trade.tx_sig,
                    "market_id": trade.market_id,
                    "market_name": trade.market_name,
                    "side": trade.side,
                    "direction": trade.direction,
                    "quantity": trade.quantity,
                    "price": trade.price,
                    "fee": trade.fee,
                },
            )
        except IntegrityError as exc:
            raise DuplicateTradeError(trade.tx_sig) from exc
        row = result.fetchone()
        if row is None:
            raise InternalError("Trade insert returned no rows")
        return _row_to_trade(row)

    async def list_trades(
        self, db: AsyncSession, fund_id: str, cursor_id: int | None, limit: int
    ) -> list[Trade]:
        rows = (
            await db.execute(
                _LIST_TRADES_SQL, {"fund_id": fund_id, "cursor_id": cursor_id, "limit": limit}
            )
        ).fetchall()
        return [_row_to_trade(r) for r in rows]

    async def count_trades(self, db: AsyncSession, fund_id: str) -> int:
        result = await db.execute(_COUNT_TRADES_SQL, {"fund_id": fund_id})
        return int(result.scalar_one())
