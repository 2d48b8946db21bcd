"""WithdrawalQueueRepository — fund_withdrawal_requests table.

Rows are updated in place as they fill; the caller holds the fund row lock,
so fills and cancels for one fund never interleave.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.lf_common.enums import WithdrawalStatus
from src.lf_common.errors import InternalError
from src.lf_fund.domain.models import WithdrawalRequest

_REQUEST_COLUMNS = """
    id, fund_id, wallet, shares_requested, shares_filled, usdc_received,
    share_price_at_request, status, requested_at, updated_at
"""

_ACTIVE = (WithdrawalStatus.PENDING.value, WithdrawalStatus.PARTIALLY_FILLED.value)

_INSERT_REQUEST_SQL = text(f"""
    INSERT INTO fund_withdrawal_requests
        (fund_id, wallet, shares_requested, share_price_at_request, status)
    VALUES
        (:fund_id, :wallet, :shares_requested, :share_price_at_request, :status)
    RETURNING {_REQUEST_COLUMNS}
""")

_GET_FOR_UPDATE_SQL = text(f"""
    SELECT {_REQUEST_COLUMNS}
    FROM fund_withdrawal_requests
    WHERE id = :id AND fund_id = :fund_id
    FOR UPDATE
""")

_UPDATE_REQUEST_SQL = text(f"""
    UPDATE fund_withdrawal_requests
    SET shares_filled = :shares_filled,
        usdc_received = :usdc_received,
        status = :status,
        updated_at = NOW()
    WHERE id = :id
    RETURNING {_REQUEST_COLUMNS}
""")

_LIST_REQUESTS_SQL = text(f"""
    SELECT {_REQUEST_COLUMNS}
    FROM fund_withdrawal_requests
    WHERE fund_id = :fund_id
      AND (CAST(:wallet AS TEXT) IS NULL OR wallet = CAST(:wallet AS TEXT))
      AND (NOT CAST(:active_only AS BOOLEAN) OR status IN ('{_ACTIVE[0]}', '{_ACTIVE[1]}'))
    ORDER BY id
""")

_RESERVED_SHARES_SQL = text(f"""
    SELECT COALESCE(SUM(shares_requested - shares_filled), 0)
    FROM fund_withdrawal_requests
    WHERE fund_id = :fund_id AND wallet = :wallet
      AND status IN ('{_ACTIVE[0]}', '{_ACTIVE[1]}')
""")

_CANCEL_ACTIVE_SQL = text(f"""
    UPDATE fund_withdrawal_requests
    SET status = '{WithdrawalStatus.CANCELLED.value}', updated_at = NOW()
    WHERE fund_id = :fund_id AND status IN ('{_ACTIVE[0]}', '{_ACTIVE[1]}')
""")


def _row_to_request(row: object) -> WithdrawalRequest:
    return WithdrawalRequest(
        id=row.id,  # type: ignore[attr-defined]
        fund_id=str(row.fund_id),  # type: ignore[attr-defined]
        wallet=row.wallet,  # type: ignore[attr-defined]
        shares_requested=row.shares_requested,  # type: ignore[attr-defined]
        shares_filled=row.shares_filled,  # type: ignore[attr-defined]
        usdc_received=row.usdc_received,  # type: ignore[attr-defined]
        share_price_at_request=row.share_price_at_request,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        requested_at=row.requested_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


class WithdrawalQueueRepository:
    async def create_request(
        self, db: AsyncSession, request: WithdrawalRequest
    ) -> WithdrawalRequest:
        row = (
            await db.execute(
                _INSERT_REQUEST_SQL,
                {
                    "fund_id": request.fund_id,
                    "wallet": request.wallet,
                    "shares_requested": request.shares_requested,
                    "share_price_at_request": request.share_price_at_request,
                    "status": request.status,
                },
            )
        ).fetchone()
        if row is None:
            raise InternalError("Withdrawal request insert returned no rows")
        return _row_to_request(row)

    async def get_request_for_update(
        self, db: AsyncSession, fund_id: str, request_id: int
    ) -> WithdrawalRequest | None:
        row = (
            await db.execute(_GET_FOR_UPDATE_SQL, {"id": request_id, "fund_id": fund_id})
        ).fetchone()
        return _row_to_request(row) if row else None

    async def save_request(
        self, db: AsyncSession, request: WithdrawalRequest
    ) -> WithdrawalRequest:
        row = (
            await db.execute(
                _UPDATE_REQUEST_SQL,
                {
                    "id": request.id,
                    "shares_filled": request.shares_filled,
                    "usdc_received": request.usdc_received,
                    "status": request.status,
                },
            )
        ).fetchone()
        if row is None:
            raise InternalError(f"Withdrawal request {request.id} vanished during update")
        return _row_to_request(row)

    async def list_requests(
        self, db: AsyncSession, fund_id: str, wallet: str | None, active_only: bool
    ) -> list[WithdrawalRequest]:
        rows = (
            await db.execute(
                _LIST_REQUESTS_SQL,
                {"fund_id": fund_id, "wallet": wallet, "active_only": active_only},
            )
        ).fetchall()
        return [_row_to_request(r) for r in rows]

    async def reserved_shares(self, db: AsyncSession, fund_id: str, wallet: str) -> int:
        result = await db.execute(_RESERVED_SHARES_SQL, {"fund_id": fund_id, "wallet": wallet})
        return int(result.scalar_one())

    async def cancel_active_requests(self, db: AsyncSession, fund_id: str) -> int:
        result = await db.execute(_CANCEL_ACTIVE_SQL, {"fund_id": fund_id})
        return result.rowcount  # type: ignore[attr-defined,no-any-return]
