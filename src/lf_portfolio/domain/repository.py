"""Repository Protocol for positions and trades."""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.lf_portfolio.domain.models import Position, Trade


class PortfolioRepositoryProtocol(Protocol):
    async def get_position_for_update(
        self, db: AsyncSession, fund_id: str, market_id: str, side: str
    ) -> Position | None: ...

    async def save_position(self, db: AsyncSession, position: Position) -> Position: ...

    async def list_positions(
        self, db: AsyncSession, fund_id: str, open_only: bool
    ) -> list[Position]: ...

    async def insert_trade(self, db: AsyncSession, trade: Trade) -> Trade: ...

    async def list_trades(
        self, db: AsyncSession, fund_id: str, cursor_id: int | None, limit: int
    ) -> list[Trade]: ...

    async def count_trades(self, db: AsyncSession, fund_id: str) -> int: ...
