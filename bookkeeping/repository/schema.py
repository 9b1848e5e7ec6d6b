"""DDL applied at startup; every statement is idempotent."""

from __future__ import annotations

import logging

from psycopg import sql
from psycopg_pool import ConnectionPool

from ..domain.ledger import LedgerKind

logger = logging.getLogger(__name__)

USERS_DDL = """
CREATE TABLE IF NOT EXISTS users (
    user_id         TEXT PRIMARY KEY,
    name            TEXT NOT NULL,
    email           TEXT NOT NULL UNIQUE,
    password_hash   TEXT NOT NULL,
    phone           TEXT NOT NULL,
    cpf             TEXT NOT NULL UNIQUE,
    status          TEXT NOT NULL DEFAULT 'active',
    gender          TEXT NOT NULL,
    email_verified  BOOLEAN NOT NULL DEFAULT FALSE,
    user_ns         TEXT,
    token_talkbi    TEXT,
    created_at      TIMESTAMPTZ NOT NULL,
    updated_at      TIMESTAMPTZ NOT NULL,
    CONSTRAINT users_namespace_pair CHECK ((user_ns IS NULL) = (token_talkbi IS NULL))
);
CREATE UNIQUE INDEX IF NOT EXISTS users_namespace_uq
    ON users (user_ns, token_talkbi) WHERE user_ns IS NOT NULL;
"""

LEDGER_DDL = """
CREATE TABLE IF NOT EXISTS {table} (
    entry_id        TEXT PRIMARY KEY,
    user_id         TEXT,
    user_ns         TEXT,
    token_talkbi    TEXT,
    year            TEXT NOT NULL,
    month           TEXT NOT NULL,
    day             TEXT NOT NULL,
    hour            TEXT NOT NULL,
    amount          NUMERIC(14, 2) NOT NULL CHECK (amount >= 0),
    description     TEXT NOT NULL,
    invoice_number  TEXT NOT NULL,
    payment_method  TEXT NOT NULL CHECK (payment_method IN ('pix', 'card', 'cash')),
    is_recurring    BOOLEAN NOT NULL DEFAULT FALSE,
    recurring_time  TEXT,
    category        TEXT NOT NULL,
    installment     TEXT,
    paid_status     TEXT NOT NULL,
    due_date        TEXT NOT NULL,
    type            TEXT NOT NULL,
    created_at      TIMESTAMPTZ NOT NULL,
    updated_at      TIMESTAMPTZ NOT NULL,
    CONSTRAINT {single_owner} CHECK (
        (user_id IS NOT NULL AND user_ns IS NULL AND token_talkbi IS NULL)
        OR (user_id IS NULL AND user_ns IS NOT NULL AND token_talkbi IS NOT NULL)
    )
);
CREATE INDEX IF NOT EXISTS {user_idx} ON {table} (user_id, due_date);
CREATE INDEX IF NOT EXISTS {user_category_idx} ON {table} (user_id, category);
CREATE INDEX IF NOT EXISTS {user_status_idx} ON {table} (user_id, paid_status);
CREATE INDEX IF NOT EXISTS {ns_idx} ON {table} (user_ns, token_talkbi, due_date);
CREATE INDEX IF NOT EXISTS {ns_category_idx} ON {table} (user_ns, token_talkbi, category);
CREATE INDEX IF NOT EXISTS {ns_status_idx} ON {table} (user_ns, token_talkbi, paid_status);
"""


def ledger_ddl(kind: LedgerKind) -> sql.Composed:
    table = kind.table
    return sql.SQL(LEDGER_DDL).format(
        table=sql.Identifier(table),
        single_owner=sql.Identifier(f"{table}_single_owner"),
        user_idx=sql.Identifier(f"{table}_user_due_idx"),
        user_category_idx=sql.Identifier(f"{table}_user_category_idx"),
        user_status_idx=sql.Identifier(f"{table}_user_status_idx"),
        ns_idx=sql.Identifier(f"{table}_ns_due_idx"),
        ns_category_idx=sql.Identifier(f"{table}_ns_category_idx"),
        ns_status_idx=sql.Identifier(f"{table}_ns_status_idx"),
    )


def ensure_schema(pool: ConnectionPool) -> None:
    """Create the users, payables and receivables tables and their indexes."""
    with pool.connection() as conn:
        with conn.cursor() as cur:
            cur.execute(USERS_DDL)
            for kind in LedgerKind:
                cur.execute(ledger_ddl(kind))
        conn.commit()
    logger.info("schema ensured for users, %s", ", ".join(kind.table for kind in LedgerKind))
