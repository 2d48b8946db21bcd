"""006: create fund_withdrawal_requests table

Revision ID: 006
Revises: 005
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "006"
down_revision: Union[str, None] = "005"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE fund_withdrawal_requests (
            id                      BIGSERIAL    PRIMARY KEY,
            fund_id                 UUID         NOT NULL REFERENCES funds(id),
            wallet                  VARCHAR(64)  NOT NULL,
            shares_requested        BIGINT       NOT NULL,
            shares_filled           BIGINT       NOT NULL DEFAULT 0,
            usdc_received           BIGINT       NOT NULL DEFAULT 0,
            share_price_at_request  BIGINT       NOT NULL,
            status                  VARCHAR(16)  NOT NULL DEFAULT 'Pending',
            requested_at            TIMESTAMPTZ  NOT NULL DEFAULT NOW(),
            updated_at              TIMESTAMPTZ  NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_fwr_shares_requested_gt_0  CHECK (shares_requested > 0),
            CONSTRAINT ck_fwr_shares_filled          CHECK (
                shares_filled BETWEEN 0 AND shares_requested
            ),
            CONSTRAINT ck_fwr_usdc_received_gte_0    CHECK (usdc_received >= 0),
            CONSTRAINT ck_fwr_price_gt_0             CHECK (share_price_at_request > 0),
            CONSTRAINT ck_fwr_status                 CHECK (
                status IN ('Pending', 'PartiallyFilled', 'Completed', 'Cancelled')
            )
        );
    """)
    op.execute("""
        CREATE INDEX idx_fwr_fund_wallet_active
            ON fund_withdrawal_requests (fund_id, wallet)
            WHERE status IN ('Pending', 'PartiallyFilled');
    """)
    op.execute("""
        CREATE TRIGGER trg_fund_withdrawal_requests_updated_at
            BEFORE UPDATE ON fund_withdrawal_requests
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute(
        "COMMENT ON TABLE fund_withdrawal_requests IS "
        "'Queued Trading-stage withdrawals, filled per epoch at the locked share price';"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS fund_withdrawal_requests CASCADE;")
