"""004: create depositors table

Revision ID: 004
Revises: 003
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE depositors (
            id          BIGSERIAL    PRIMARY KEY,
            fund_id     UUID         NOT NULL REFERENCES funds(id),
            wallet      VARCHAR(64)  NOT NULL,
            shares      BIGINT       NOT NULL DEFAULT 0,
            deposited   BIGINT       NOT NULL DEFAULT 0,
            withdrawn   BIGINT       NOT NULL DEFAULT 0,
            created_at  TIMESTAMPTZ  NOT NULL DEFAULT NOW(),
            updated_at  TIMESTAMPTZ  NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_depositors_fund_wallet      UNIQUE (fund_id, wallet),
            CONSTRAINT ck_depositors_shares_gte_0     CHECK (shares >= 0),
            CONSTRAINT ck_depositors_deposited_gte_0  CHECK (deposited >= 0),
            CONSTRAINT ck_depositors_withdrawn_gte_0  CHECK (withdrawn >= 0)
        );
    """)
    op.execute("CREATE INDEX idx_depositors_fund_shares ON depositors (fund_id, shares DESC);")
    op.execute("""
        CREATE TRIGGER trg_depositors_updated_at
            BEFORE UPDATE ON depositors
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS depositors CASCADE;")
