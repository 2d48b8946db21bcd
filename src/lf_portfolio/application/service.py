"""PortfolioApplicationService — trade records, positions and marks.

Mutations share the per-fund lock with FundApplicationService. Venue calls
(quotes, price refresh) happen before the lock is taken; only the local
write runs under it.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.lf_common.errors import FundNotFoundError, PositionNotFoundError
from src.lf_common.pagination import cursor_decode, cursor_encode
from src.lf_fund.application.locks import FundLocks, fund_locks
from src.lf_fund.application.service import require_manager
from src.lf_fund.domain import state_machine
from src.lf_fund.domain.models import Fund
from src.lf_fund.domain.repository import FundRepositoryProtocol
from src.lf_fund.infrastructure.persistence import FundRepository
from src.lf_market.application.schemas import QuoteResponse
from src.lf_market.domain.adapter import MarketAdapterProtocol
from src.lf_market.domain.models import MarketPrice, QuoteRequest
from src.lf_market.infrastructure.dflow_adapter import DFlowAdapter
from src.lf_portfolio.application.schemas import (
    MarkPositionRequest,
    PositionItem,
    PositionListResponse,
    RecordTradeRequest,
    RecordTradeResponse,
    TradeItem,
    TradeListResponse,
    TradeQuoteRequest,
)
from src.lf_portfolio.domain import position_ledger
from src.lf_portfolio.domain.models import Trade
from src.lf_portfolio.domain.repository import PortfolioRepositoryProtocol
from src.lf_portfolio.infrastructure.persistence import PortfolioRepository

logger = logging.getLogger(__name__)


class PortfolioApplicationService:
    def __init__(
        self,
        repo: PortfolioRepositoryProtocol | None = None,
        fund_repo: FundRepositoryProtocol | None = None,
        adapter: MarketAdapterProtocol | None = None,
        locks: FundLocks | None = None,
    ) -> None:
        self._repo: PortfolioRepositoryProtocol = repo or PortfolioRepository()
        self._funds: FundRepositoryProtocol = fund_repo or FundRepository()
        self._adapter: MarketAdapterProtocol = adapter or DFlowAdapter()
        self._locks = locks or fund_locks

    async def _get_fund(self, db: AsyncSession, fund_id: str, for_update: bool = False) -> Fund:
        if for_update:
            fund = await self._funds.get_fund_for_update(db, fund_id)
        else:
            fund = await self._funds.get_fund(db, fund_id)
        if fund is None:
            raise FundNotFoundError(fund_id)
        return fund

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list_positions(
        self, db: AsyncSession, fund_id: str, include_closed: bool = False
    ) -> PositionListResponse:
        await self._get_fund(db, fund_id)
        positions = await self._repo.list_positions(db, fund_id, not include_closed)
        return PositionListResponse.from_positions(fund_id, positions)

    async def list_trades(
        self, db: AsyncSession, fund_id: str, cursor: str | None, limit: int
    ) -> TradeListResponse:
        await self._get_fund(db, fund_id)
        cursor_id = cursor_decode(cursor)
        trades = await self._repo.list_trades(db, fund_id, cursor_id, limit + 1)
        has_more = len(trades) > limit
        page = trades[:limit]
        next_cursor = (
            cursor_encode(page[-1].id) if has_more and page and page[-1].id is not None else None
        )
        return TradeListResponse(
            items=[TradeItem.from_domain(t) for t in page],
            next_cursor=next_cursor,
            has_more=has_more,
        )

    # ------------------------------------------------------------------
    # Quote preview (no ledger mutation, no lock)
    # ------------------------------------------------------------------

    async def quote_trade(
        self, db: AsyncSession, fund_id: str, caller: str, req: TradeQuoteRequest
    ) -> QuoteResponse:
        fund = await self._get_fund(db, fund_id)
        require_manager(fund, caller)
        state_machine.check_trading_allowed(fund)
        quote = await self._adapter.get_quote(
            QuoteRequest(
                market_id=req.market_id,
                side=req.side,
                direction=req.direction,
                amount=req.amount,
                user_public_key=fund.address,
            )
        )
        return QuoteResponse.from_domain(quote)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def record_trade(
        self, db: AsyncSession, fund_id: str, caller: str, req: RecordTradeRequest
    ) -> RecordTradeResponse:
        async with self._locks.for_fund(fund_id):
            try:
                fund = await self._get_fund(db, fund_id, for_update=True)
                require_manager(fund, caller)
                state_machine.check_trading_allowed(fund)
                trade = Trade(
                    fund_id=fund_id,
                    tx_sig=req.tx_sig,
                    market_id=req.market_id,
                    market_name=req.market_name,
                    side=req.side,
                    direction=req.direction,
                    quantity=req.quantity,
                    price=req.price,
                    fee=req.fee,
                )
                current = await self._repo.get_position_for_update(
                    db, fund_id, req.market_id, req.side
                )
                updated = position_ledger.apply_fill(current, trade)
                saved_trade = await self._repo.insert_trade(db, trade)
                saved_position = await self._repo.save_position(db, updated)
                await db.commit()
            except Exception:
                await db.rollback()
                raise
        logger.info(
            "Trade recorded: fund=%s %s %s %s qty=%d price=%d",
            fund_id, trade.direction, trade.side, trade.market_id, trade.quantity, trade.price,
        )
        return RecordTradeResponse(
            trade=TradeItem.from_domain(saved_trade),
            position=PositionItem.from_domain(saved_position),
        )

    async def mark_position(
        self, db: AsyncSession, fund_id: str, caller: str, req: MarkPositionRequest
    ) -> PositionItem:
        async with self._locks.for_fund(fund_id):
            try:
                fund = await self._get_fund(db, fund_id, for_update=True)
                require_manager(fund, caller)
                current = await self._repo.get_position_for_update(
                    db, fund_id, req.market_id, req.side
                )
                if current is None:
                    raise PositionNotFoundError(req.market_id, req.side)
                saved = await self._repo.save_position(
                    db, position_ledger.mark(current, req.price)
                )
                await db.commit()
            except Exception:
                await db.rollback()
                raise
        return PositionItem.from_domain(saved)

    async def refresh_marks(
        self, db: AsyncSession, fund_id: str, caller: str
    ) -> PositionListResponse:
        fund = await self._get_fund(db, fund_id)
        require_manager(fund, caller)
        open_positions = await self._repo.list_positions(db, fund_id, True)

        # Venue calls first, without the fund lock
        prices: dict[str, MarketPrice] = {}
        for market_id in {p.market_id for p in open_positions}:
            prices[market_id] = await self._adapter.get_price(market_id)

        async with self._locks.for_fund(fund_id):
            try:
                await self._get_fund(db, fund_id, for_update=True)
                for p in open_positions:
                    current = await self._repo.get_position_for_update(
                        db, fund_id, p.market_id, p.side
                    )
                    if current is None or not current.is_open:
                        continue
                    marked = position_ledger.mark(
                        current, prices[p.market_id].for_side(p.side)
                    )
                    await self._repo.save_position(db, marked)
                await db.commit()
            except Exception:
                await db.rollback()
                raise
        logger.info("Marks refreshed: fund=%s markets=%d", fund_id, len(prices))
        positions = await self._repo.list_positions(db, fund_id, True)
        return PositionListResponse.from_positions(fund_id, positions)
