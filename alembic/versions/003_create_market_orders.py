"""003: create market orders and trades

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
        CREATE TABLE market_orders (
            id                   VARCHAR(64) PRIMARY KEY,
            company_id           VARCHAR(64) NOT NULL REFERENCES companies(id),
            item_id              VARCHAR(64) NOT NULL REFERENCES items(id),
            region_id            VARCHAR(64) NOT NULL REFERENCES regions(id),
            side                 VARCHAR(4)  NOT NULL,
            status               VARCHAR(16) NOT NULL DEFAULT 'OPEN',
            quantity             BIGINT      NOT NULL,
            remaining_quantity   BIGINT      NOT NULL,
            unit_price_cents     BIGINT      NOT NULL,
            reserved_cash_cents  BIGINT      NOT NULL DEFAULT 0,
            reserved_quantity    BIGINT      NOT NULL DEFAULT 0,
            tick_placed          BIGINT      NOT NULL,
            tick_closed          BIGINT,
            created_at           TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            closed_at            TIMESTAMPTZ,
            updated_at           TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_market_orders_side      CHECK (side IN ('BUY', 'SELL')),
            CONSTRAINT ck_market_orders_status    CHECK (status IN ('OPEN', 'FILLED', 'CANCELLED')),
            CONSTRAINT ck_market_orders_quantity  CHECK (quantity > 0),
            CONSTRAINT ck_market_orders_remaining CHECK (
                remaining_quantity >= 0 AND remaining_quantity <= quantity
            ),
            CONSTRAINT ck_market_orders_price     CHECK (unit_price_cents > 0),
            CONSTRAINT ck_market_orders_reserves  CHECK (
                reserved_cash_cents >= 0 AND reserved_quantity >= 0
            )
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_market_orders_updated_at
            BEFORE UPDATE ON market_orders
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    # Book scans: crossing counter-orders by (region, item, side, price)
    op.execute("""
        CREATE INDEX idx_market_orders_book
            ON market_orders (region_id, item_id, side, unit_price_cents)
            WHERE status = 'OPEN';
    """)
    op.execute("CREATE INDEX idx_market_orders_company ON market_orders (company_id, status);")

    op.execute("""
        CREATE TABLE trades (
            id                 VARCHAR(64) PRIMARY KEY,
            buy_order_id       VARCHAR(64) NOT NULL REFERENCES market_orders(id),
            sell_order_id      VARCHAR(64) NOT NULL REFERENCES market_orders(id),
            buyer_id           VARCHAR(64) NOT NULL REFERENCES companies(id),
            seller_id          VARCHAR(64) NOT NULL REFERENCES companies(id),
            item_id            VARCHAR(64) NOT NULL REFERENCES items(id),
            region_id          VARCHAR(64) NOT NULL REFERENCES regions(id),
            tick               BIGINT      NOT NULL,
            unit_price_cents   BIGINT      NOT NULL,
            quantity           BIGINT      NOT NULL,
            total_price_cents  BIGINT      NOT NULL,
            created_at         TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_trades_quantity CHECK (quantity > 0),
            CONSTRAINT ck_trades_price    CHECK (unit_price_cents > 0),
            CONSTRAINT ck_trades_total    CHECK (total_price_cents = unit_price_cents * quantity)
        );
    """)
    op.execute("CREATE INDEX idx_trades_tick ON trades (tick, created_at, id);")
    op.execute("CREATE INDEX idx_trades_latest ON trades (region_id, item_id, tick DESC);")
    op.execute("COMMENT ON TABLE trades IS 'Append-only fills; never updated or deleted';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS trades CASCADE;")
    op.execute("DROP TABLE IF EXISTS market_orders CASCADE;")
