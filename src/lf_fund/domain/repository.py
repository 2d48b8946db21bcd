"""Repository Protocols — dependency inversion for testability.

Unit tests inject in-memory fakes that conform to these Protocols.
Infrastructure layer provides the PostgreSQL implementations.
"""

from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.lf_fund.domain.models import (
    Depositor,
    Fund,
    FundSummary,
    NewFund,
    Snapshot,
    WithdrawalRequest,
)


class FundRepositoryProtocol(Protocol):
    async def create_fund(self, db: AsyncSession, new: NewFund) -> Fund: ...

    async def get_fund(self, db: AsyncSession, fund_id: str) -> Fund | None: ...

    async def get_fund_for_update(self, db: AsyncSession, fund_id: str) -> Fund | None: ...

    async def list_funds(
        self, db: AsyncSession, stage: str | None, manager: str | None
    ) -> list[FundSummary]: ...

    async def update_lifecycle(
        self, db: AsyncSession, fund: Fund, expected_stage: str
    ) -> Fund | None: ...

    async def record_epoch(self, db: AsyncSession, fund_id: str, at: datetime) -> None: ...

    async def get_depositor(
        self, db: AsyncSession, fund_id: str, wallet: str
    ) -> Depositor | None: ...

    async def save_depositor(self, db: AsyncSession, depositor: Depositor) -> Depositor: ...

    async def list_depositors(
        self, db: AsyncSession, fund_id: str, limit: int | None
    ) -> list[Depositor]: ...

    async def sum_depositor_shares(self, db: AsyncSession, fund_id: str) -> int: ...


class SnapshotLedgerProtocol(Protocol):
    """Append-only: no update, no delete."""

    async def append(self, db: AsyncSession, snapshot: Snapshot) -> Snapshot: ...

    async def latest(self, db: AsyncSession, fund_id: str) -> Snapshot | None: ...

    async def history(
        self, db: AsyncSession, fund_id: str, cursor_id: int | None, limit: int
    ) -> list[Snapshot]: ...


class WithdrawalQueueProtocol(Protocol):
    async def create_request(
        self, db: AsyncSession, request: WithdrawalRequest
    ) -> WithdrawalRequest: ...

    async def get_request_for_update(
        self, db: AsyncSession, fund_id: str, request_id: int
    ) -> WithdrawalRequest | None: ...

    async def save_request(
        self, db: AsyncSession, request: WithdrawalRequest
    ) -> WithdrawalRequest: ...

    async def list_requests(
        self, db: AsyncSession, fund_id: str, wallet: str | None, active_only: bool
    ) -> list[WithdrawalRequest]: ...

    async def reserved_shares(self, db: AsyncSession, fund_id: str, wallet: str) -> int:
        """Unfilled shares of the wallet's active requests."""
        ...

    async def cancel_active_requests(self, db: AsyncSession, fund_id: str) -> int: ...
