"""002: create funds table

Revision ID: 002
Revises: 001
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE funds (
            id                  UUID         PRIMARY KEY DEFAULT gen_random_uuid(),
            address             VARCHAR(64)  NOT NULL,
            fund_id             VARCHAR(64)  NOT NULL,
            name                VARCHAR(32)  NOT NULL,
            symbol              VARCHAR(8)   NOT NULL,
            description         TEXT         NOT NULL DEFAULT '',
            manager             VARCHAR(64)  NOT NULL,
            deposit_fee_bps     SMALLINT     NOT NULL DEFAULT 0,
            perf_fee_bps        SMALLINT     NOT NULL DEFAULT 2000,
            early_exit_fee_bps  SMALLINT     NOT NULL DEFAULT 500,
            stage               VARCHAR(16)  NOT NULL DEFAULT 'Open',
            liquidity_buffer_bps SMALLINT    NOT NULL DEFAULT 1000,
            epoch_interval_secs INTEGER      NOT NULL DEFAULT 86400,
            last_epoch_at       TIMESTAMPTZ,
            trading_start_ts    TIMESTAMPTZ,
            trading_end_ts      TIMESTAMPTZ,
            initial_aum_usdc    BIGINT,
            perf_fee_due_usdc   BIGINT,
            perf_fee_paid       BOOLEAN      NOT NULL DEFAULT FALSE,
            created_at          TIMESTAMPTZ  NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ  NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_funds_address             UNIQUE (address),
            CONSTRAINT uq_funds_fund_id             UNIQUE (fund_id),
            CONSTRAINT ck_funds_stage               CHECK (stage IN ('Open', 'Trading', 'Settlement', 'Closed')),
            CONSTRAINT ck_funds_deposit_fee         CHECK (deposit_fee_bps BETWEEN 0 AND 300),
            CONSTRAINT ck_funds_perf_fee            CHECK (perf_fee_bps BETWEEN 1000 AND 3000),
            CONSTRAINT ck_funds_early_exit_fee      CHECK (early_exit_fee_bps BETWEEN 0 AND 500),
            CONSTRAINT ck_funds_liquidity_buffer    CHECK (liquidity_buffer_bps BETWEEN 0 AND 5000),
            CONSTRAINT ck_funds_epoch_interval      CHECK (epoch_interval_secs BETWEEN 60 AND 2592000),
            CONSTRAINT ck_funds_initial_aum_gte_0   CHECK (initial_aum_usdc IS NULL OR initial_aum_usdc >= 0),
            CONSTRAINT ck_funds_perf_fee_due_gte_0  CHECK (perf_fee_due_usdc IS NULL OR perf_fee_due_usdc >= 0),
            CONSTRAINT ck_funds_trading_window      CHECK (
                trading_start_ts IS NULL OR trading_end_ts IS NULL
                OR trading_end_ts > trading_start_ts
            )
        );
    """)
    op.execute("CREATE INDEX idx_funds_stage ON funds (stage);")
    op.execute("CREATE INDEX idx_funds_manager ON funds (manager);")
    op.execute("""
        CREATE TRIGGER trg_funds_updated_at
            BEFORE UPDATE ON funds
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    # Fee schedule and liquidity policy are fixed at creation
    op.execute("""
        CREATE OR REPLACE FUNCTION fn_funds_fees_immutable()
        RETURNS TRIGGER AS $$
        BEGIN
            IF NEW.deposit_fee_bps <> OLD.deposit_fee_bps
               OR NEW.perf_fee_bps <> OLD.perf_fee_bps
               OR NEW.early_exit_fee_bps <> OLD.early_exit_fee_bps
               OR NEW.liquidity_buffer_bps <> OLD.liquidity_buffer_bps
               OR NEW.epoch_interval_secs <> OLD.epoch_interval_secs THEN
                RAISE EXCEPTION 'fund fee and liquidity parameters are immutable';
            END IF;
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)
    op.execute("""
        CREATE TRIGGER trg_funds_fees_immutable
            BEFORE UPDATE ON funds
            FOR EACH ROW EXECUTE FUNCTION fn_funds_fees_immutable();
    """)
    op.execute("COMMENT ON TABLE funds IS 'Pooled funds (vaults) — amounts in micro-USDC (1e-6)';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS funds CASCADE;")
    op.execute("DROP FUNCTION IF EXISTS fn_funds_fees_immutable();")
