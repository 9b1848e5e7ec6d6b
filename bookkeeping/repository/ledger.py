"""Database repository shared by payables and receivables.

One class serves both ledger kinds; the instance is bound to its table at
construction. Every query that can touch more than one row carries the owner
predicate built by :func:`owner_clause`, which is the isolation boundary for
list and aggregate operations.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any

from psycopg import sql
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from ..domain.contracts import CreateLedgerEntryInput
from ..domain.ledger import LedgerEntry, LedgerKind, PaymentMethod
from ..domain.owner import IdentityOwner, NamespaceOwner, OwnerKey
from .errors import translate_store_errors

_COLUMNS = (
    "entry_id",
    "user_id",
    "user_ns",
    "token_talkbi",
    "year",
    "month",
    "day",
    "hour",
    "amount",
    "description",
    "invoice_number",
    "payment_method",
    "is_recurring",
    "recurring_time",
    "category",
    "installment",
    "paid_status",
    "due_date",
    "type",
    "created_at",
    "updated_at",
)


def owner_columns(owner: OwnerKey) -> dict[str, str | None]:
    """Return the owner column values stored for ``owner``."""
    if isinstance(owner, IdentityOwner):
        return {"user_id": owner.user_id, "user_ns": None, "token_talkbi": None}
    return {"user_id": None, "user_ns": owner.namespace, "token_talkbi": owner.token}


def owner_clause(owner: OwnerKey) -> tuple[sql.Composable, list[Any]]:
    """Build the ``WHERE`` fragment restricting a query to rows of ``owner``."""
    if isinstance(owner, IdentityOwner):
        return sql.SQL("user_id = %s"), [owner.user_id]
    if isinstance(owner, NamespaceOwner):
        return sql.SQL("user_ns = %s AND token_talkbi = %s"), [owner.namespace, owner.token]
    raise TypeError(f"unsupported owner key: {owner!r}")


def _db_value(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


class LedgerRepository:
    """Postgres persistence for one ledger kind, always scoped by owner key."""

    def __init__(self, pool: ConnectionPool, kind: LedgerKind) -> None:
        self._pool = pool
        self.kind = kind
        self._table = sql.Identifier(kind.table)
        self._conflict_message = f"{kind.value} with this combination already exists"

    def create(self, owner: OwnerKey, payload: CreateLedgerEntryInput) -> LedgerEntry:
        """Persist a record under ``owner`` and return it with its generated id and timestamps."""
        now = datetime.now(timezone.utc)
        row = {
            "entry_id": str(uuid.uuid4()),
            **payload.as_columns(),
            **owner_columns(owner),
            "created_at": now,
            "updated_at": now,
        }
        query = sql.SQL("INSERT INTO {table} ({columns}) VALUES ({values}) RETURNING *").format(
            table=self._table,
            columns=sql.SQL(", ").join(map(sql.Identifier, _COLUMNS)),
            values=sql.SQL(", ").join(sql.Placeholder() * len(_COLUMNS)),
        )
        with translate_store_errors(self._conflict_message):
            with self._pool.connection() as conn:
                with conn.cursor(row_factory=dict_row) as cur:
                    cur.execute(query, [_db_value(row[column]) for column in _COLUMNS])
                    record = cur.fetchone()
                conn.commit()
        return self._map_record(record)

    def get(self, entry_id: str) -> LedgerEntry | None:
        """Fetch a record by id regardless of owner; callers must pass it through the guard."""
        query = sql.SQL("SELECT * FROM {table} WHERE entry_id = %s").format(table=self._table)
        with translate_store_errors(self._conflict_message):
            with self._pool.connection() as conn:
                with conn.cursor(row_factory=dict_row) as cur:
                    cur.execute(query, (entry_id,))
                    record = cur.fetchone()
        return self._map_record(record) if record else None

    def find(
        self,
        owner: OwnerKey,
        *,
        category: str | None = None,
        paid_status: str | None = None,
        due_from: str | None = None,
        due_to: str | None = None,
        year: str | None = None,
        month: str | None = None,
    ) -> list[LedgerEntry]:
        """Return the owner's records matching every supplied filter."""
        owner_sql, params = owner_clause(owner)
        clauses: list[sql.Composable] = [owner_sql]
        for column, value in (
            ("category", category),
            ("paid_status", paid_status),
            ("year", year),
            ("month", month),
        ):
            if value is not None:
                clauses.append(sql.SQL("{} = %s").format(sql.Identifier(column)))
                params.append(value)
        if due_from is not None:
            clauses.append(sql.SQL("due_date >= %s"))
            params.append(due_from)
        if due_to is not None:
            clauses.append(sql.SQL("due_date <= %s"))
            params.append(due_to)

        query = sql.SQL(
            "SELECT * FROM {table} WHERE {where} ORDER BY due_date, created_at, entry_id"
        ).format(table=self._table, where=sql.SQL(" AND ").join(clauses))
        with translate_store_errors(self._conflict_message):
            with self._pool.connection() as conn:
                with conn.cursor(row_factory=dict_row) as cur:
                    cur.execute(query, params)
                    rows = cur.fetchall()
        return [self._map_record(row) for row in rows]

    def update(self, owner: OwnerKey, entry_id: str, patch: dict[str, Any]) -> LedgerEntry | None:
        """Apply a partial update to the owner's record; ``None`` when no owned row matched."""
        owner_sql, owner_params = owner_clause(owner)
        assignments = dict(patch, updated_at=datetime.now(timezone.utc))
        query = sql.SQL(
            "UPDATE {table} SET {assignments} WHERE entry_id = %s AND {owner} RETURNING *"
        ).format(
            table=self._table,
            assignments=sql.SQL(", ").join(
                sql.SQL("{} = %s").format(sql.Identifier(column)) for column in assignments
            ),
            owner=owner_sql,
        )
        params = [_db_value(value) for value in assignments.values()] + [entry_id, *owner_params]
        with translate_store_errors(self._conflict_message):
            with self._pool.connection() as conn:
                with conn.cursor(row_factory=dict_row) as cur:
                    cur.execute(query, params)
                    record = cur.fetchone()
                conn.commit()
        return self._map_record(record) if record else None

    def delete(self, owner: OwnerKey, entry_id: str) -> bool:
        """Delete the owner's record; ``False`` when no owned row matched."""
        owner_sql, owner_params = owner_clause(owner)
        query = sql.SQL("DELETE FROM {table} WHERE entry_id = %s AND {owner}").format(
            table=self._table, owner=owner_sql
        )
        with translate_store_errors(self._conflict_message):
            with self._pool.connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(query, [entry_id, *owner_params])
                    deleted = cur.rowcount
                conn.commit()
        return deleted > 0

    def delete_by_owner(self, owner: OwnerKey) -> int:
        """Delete every record of ``owner`` and return how many were removed."""
        owner_sql, params = owner_clause(owner)
        query = sql.SQL("DELETE FROM {table} WHERE {owner}").format(
            table=self._table, owner=owner_sql
        )
        with translate_store_errors(self._conflict_message):
            with self._pool.connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(query, params)
                    deleted = cur.rowcount
                conn.commit()
        return deleted

    def sum_amount(self, owner: OwnerKey, paid_status: str | None = None) -> Decimal:
        """Sum ``amount`` over the owner's records, optionally for one paid status."""
        owner_sql, params = owner_clause(owner)
        where = owner_sql
        if paid_status is not None:
            where = sql.SQL("{} AND paid_status = %s").format(owner_sql)
            params.append(paid_status)
        query = sql.SQL("SELECT COALESCE(SUM(amount), 0) FROM {table} WHERE {where}").format(
            table=self._table, where=where
        )
        with translate_store_errors(self._conflict_message):
            with self._pool.connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(query, params)
                    (total,) = cur.fetchone()
        return Decimal(total)

    def _map_record(self, row: dict[str, Any]) -> LedgerEntry:
        """Convert a database row into the domain ``LedgerEntry`` dataclass."""
        owner: OwnerKey
        if row["user_id"] is not None:
            owner = IdentityOwner(row["user_id"])
        else:
            owner = NamespaceOwner(row["user_ns"], row["token_talkbi"])
        return LedgerEntry(
            entry_id=row["entry_id"],
            kind=self.kind,
            owner=owner,
            year=row["year"],
            month=row["month"],
            day=row["day"],
            hour=row["hour"],
            amount=Decimal(row["amount"]),
            description=row["description"],
            invoice_number=row["invoice_number"],
            payment_method=PaymentMethod(row["payment_method"]),
            category=row["category"],
            paid_status=row["paid_status"],
            due_date=row["due_date"],
            type=row["type"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            is_recurring=row["is_recurring"],
            recurring_time=row["recurring_time"],
            installment=row["installment"],
        )
