"""Database repository for identity records."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from psycopg import sql
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from ..domain.user import Gender, User, UserStatus
from .errors import translate_store_errors

_COLUMNS = (
    "user_id",
    "name",
    "email",
    "password_hash",
    "phone",
    "cpf",
    "status",
    "gender",
    "email_verified",
    "user_ns",
    "token_talkbi",
    "created_at",
    "updated_at",
)

_DUPLICATE_MESSAGE = "user with this email, cpf or namespace/token already exists"


def _db_value(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


class UserRepository:
    """Postgres-backed credential store."""

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def create(self, fields: dict[str, Any]) -> User:
        """Insert an identity record; ``fields`` must carry the password hash, not the password."""
        now = datetime.now(timezone.utc)
        row = {
            "user_id": str(uuid.uuid4()),
            "status": UserStatus.active,
            "email_verified": False,
            "user_ns": None,
            "token_talkbi": None,
            **fields,
            "created_at": now,
            "updated_at": now,
        }
        query = sql.SQL("INSERT INTO users ({columns}) VALUES ({values}) RETURNING *").format(
            columns=sql.SQL(", ").join(map(sql.Identifier, _COLUMNS)),
            values=sql.SQL(", ").join(sql.Placeholder() * len(_COLUMNS)),
        )
        with translate_store_errors(_DUPLICATE_MESSAGE):
            with self._pool.connection() as conn:
                with conn.cursor(row_factory=dict_row) as cur:
                    cur.execute(query, [_db_value(row[column]) for column in _COLUMNS])
                    record = cur.fetchone()
                conn.commit()
        return self._map_record(record)

    def get(self, user_id: str) -> User | None:
        return self._fetch_one("SELECT * FROM users WHERE user_id = %s", (user_id,))

    def get_by_email(self, email: str) -> User | None:
        return self._fetch_one("SELECT * FROM users WHERE email = %s", (email,))

    def get_by_namespace(self, user_ns: str, token_talkbi: str) -> User | None:
        return self._fetch_one(
            "SELECT * FROM users WHERE user_ns = %s AND token_talkbi = %s",
            (user_ns, token_talkbi),
        )

    def update(self, user_id: str, patch: dict[str, Any]) -> User | None:
        """Apply a partial update and return the stored record, or ``None`` when absent."""
        if not patch:
            return self.get(user_id)
        assignments = dict(patch, updated_at=datetime.now(timezone.utc))
        query = sql.SQL("UPDATE users SET {assignments} WHERE user_id = %s RETURNING *").format(
            assignments=sql.SQL(", ").join(
                sql.SQL("{} = %s").format(sql.Identifier(column)) for column in assignments
            )
        )
        params = [_db_value(value) for value in assignments.values()] + [user_id]
        with translate_store_errors(_DUPLICATE_MESSAGE):
            with self._pool.connection() as conn:
                with conn.cursor(row_factory=dict_row) as cur:
                    cur.execute(query, params)
                    record = cur.fetchone()
                conn.commit()
        return self._map_record(record) if record else None

    def delete(self, user_id: str) -> bool:
        with translate_store_errors(_DUPLICATE_MESSAGE):
            with self._pool.connection() as conn:
                with conn.cursor() as cur:
                    cur.execute("DELETE FROM users WHERE user_id = %s", (user_id,))
                    deleted = cur.rowcount
                conn.commit()
        return deleted > 0

    def _fetch_one(self, query: str, params: tuple[Any, ...]) -> User | None:
        with translate_store_errors(_DUPLICATE_MESSAGE):
            with self._pool.connection() as conn:
                with conn.cursor(row_factory=dict_row) as cur:
                    cur.execute(query, params)
                    record = cur.fetchone()
        return self._map_record(record) if record else None

    def _map_record(self, row: dict[str, Any]) -> User:
        """Convert a database row into the domain ``User`` dataclass."""
        return User(
            user_id=row["user_id"],
            name=row["name"],
            email=row["email"],
            phone=row["phone"],
            cpf=row["cpf"],
            gender=Gender(row["gender"]),
            password_hash=row["password_hash"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            status=UserStatus(row["status"]),
            email_verified=row["email_verified"],
            user_ns=row["user_ns"],
            token_talkbi=row["token_talkbi"],
        )
