"""005: create fund_positions and fund_trades tables

Revision ID: 005
Revises: 004
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE fund_positions (
            id              BIGSERIAL     PRIMARY KEY,
            fund_id         UUID          NOT NULL REFERENCES funds(id),
            market_id       VARCHAR(128)  NOT NULL,
            market_name     TEXT          NOT NULL DEFAULT '',
            side            VARCHAR(3)    NOT NULL,
            quantity        BIGINT        NOT NULL DEFAULT 0,
            avg_price       BIGINT        NOT NULL DEFAULT 0,
            current_price   BIGINT        NOT NULL DEFAULT 0,
            is_open         BOOLEAN       NOT NULL DEFAULT TRUE,
            created_at      TIMESTAMPTZ   NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ   NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_fund_positions_market_side   UNIQUE (fund_id, market_id, side),
            CONSTRAINT ck_fund_positions_side          CHECK (side IN ('YES', 'NO')),
            CONSTRAINT ck_fund_positions_quantity      CHECK (quantity >= 0),
            CONSTRAINT ck_fund_positions_avg_price     CHECK (avg_price BETWEEN 0 AND 1000000),
            CONSTRAINT ck_fund_positions_current_price CHECK (current_price BETWEEN 0 AND 1000000)
        );
    """)
    op.execute("CREATE INDEX idx_fund_positions_open ON fund_positions (fund_id) WHERE is_open;")
    op.execute("""
        CREATE TRIGGER trg_fund_positions_updated_at
            BEFORE UPDATE ON fund_positions
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)

    op.execute("""
        CREATE TABLE fund_trades (
            id           BIGSERIAL     PRIMARY KEY,
            fund_id      UUID          NOT NULL REFERENCES funds(id),
            tx_sig       VARCHAR(128)  NOT NULL,
            market_id    VARCHAR(128)  NOT NULL,
            market_name  TEXT          NOT NULL DEFAULT '',
            side         VARCHAR(3)    NOT NULL,
            direction    VARCHAR(4)    NOT NULL,
            quantity     BIGINT        NOT NULL,
            price        BIGINT        NOT NULL,
            fee          BIGINT        NOT NULL DEFAULT 0,
            timestamp    TIMESTAMPTZ   NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_fund_trades_tx_sig      UNIQUE (tx_sig),
            CONSTRAINT ck_fund_trades_side        CHECK (side IN ('YES', 'NO')),
            CONSTRAINT ck_fund_trades_direction   CHECK (direction IN ('BUY', 'SELL')),
            CONSTRAINT ck_fund_trades_quantity    CHECK (quantity > 0),
            CONSTRAINT ck_fund_trades_price       CHECK (price > 0 AND price <= 1000000),
            CONSTRAINT ck_fund_trades_fee_gte_0   CHECK (fee >= 0)
        );
    """)
    op.execute("CREATE INDEX idx_fund_trades_fund_id ON fund_trades (fund_id, id DESC);")
    op.execute("""
        CREATE TRIGGER trg_fund_trades_append_only
            BEFORE UPDATE OR DELETE ON fund_trades
            FOR EACH ROW EXECUTE FUNCTION fn_reject_mutation();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS fund_trades CASCADE;")
    op.execute("DROP TABLE IF EXISTS fund_positions CASCADE;")
