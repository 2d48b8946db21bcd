"""003: create fund_snapshots table (append-only)

Revision ID: 003
Revises: 002
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE fund_snapshots (
            id              BIGSERIAL    PRIMARY KEY,
            fund_id         UUID         NOT NULL REFERENCES funds(id),
            version         INTEGER      NOT NULL,
            nav             BIGINT       NOT NULL,
            share_price     BIGINT       NOT NULL,
            tvl             BIGINT       NOT NULL,
            total_shares    BIGINT       NOT NULL,
            stage           VARCHAR(16)  NOT NULL,
            source          VARCHAR(16)  NOT NULL,
            timestamp       TIMESTAMPTZ  NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_fund_snapshots_version        UNIQUE (fund_id, version),
            CONSTRAINT ck_fund_snapshots_version_gte_1  CHECK (version >= 1),
            CONSTRAINT ck_fund_snapshots_nav_gte_0      CHECK (nav >= 0),
            CONSTRAINT ck_fund_snapshots_price_gt_0     CHECK (share_price > 0),
            CONSTRAINT ck_fund_snapshots_tvl_gte_0      CHECK (tvl >= 0),
            CONSTRAINT ck_fund_snapshots_shares_gte_0   CHECK (total_shares >= 0),
            CONSTRAINT ck_fund_snapshots_stage          CHECK (stage IN ('Open', 'Trading', 'Settlement', 'Closed')),
            CONSTRAINT ck_fund_snapshots_source         CHECK (source IN ('GENESIS', 'DEPOSIT', 'WITHDRAW', 'INDEXER', 'FINALIZE'))
        );
    """)
    op.execute("CREATE INDEX idx_fund_snapshots_fund_id ON fund_snapshots (fund_id, id DESC);")
    op.execute("""
        CREATE TRIGGER trg_fund_snapshots_append_only
            BEFORE UPDATE OR DELETE ON fund_snapshots
            FOR EACH ROW EXECUTE FUNCTION fn_reject_mutation();
    """)
    op.execute("COMMENT ON TABLE fund_snapshots IS 'Append-only NAV / TVL / share price history';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS fund_snapshots CASCADE;")
