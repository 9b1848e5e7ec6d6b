from __future__ import annotations

import dataclasses
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from bookkeeping.config import Settings
from bookkeeping.domain.contracts import CreateLedgerEntryInput
from bookkeeping.domain.ledger import LedgerEntry, LedgerKind
from bookkeeping.domain.owner import OwnerKey
from bookkeeping.domain.user import User, UserStatus
from bookkeeping.errors import Conflict
from bookkeeping.main import create_app, wire_services


class FakeUserRepository:
    """In-memory credential store enforcing the same unique constraints as Postgres."""

    def __init__(self) -> None:
        self._users: dict[str, User] = {}

    def create(self, fields: dict[str, Any]) -> User:
        now = datetime.now(timezone.utc)
        values = {
            "status": UserStatus.active,
            "email_verified": False,
            "user_ns": None,
            "token_talkbi": None,
            **fields,
        }
        user = User(user_id=str(uuid.uuid4()), created_at=now, updated_at=now, **values)
        self._check_unique(user)
        self._users[user.user_id] = user
        return user

    def get(self, user_id: str) -> User | None:
        return self._users.get(user_id)

    def get_by_email(self, email: str) -> User | None:
        return next((u for u in self._users.values() if u.email == email), None)

    def get_by_namespace(self, user_ns: str, token_talkbi: str) -> User | None:
        return next(
            (
                u
                for u in self._users.values()
                if u.user_ns == user_ns and u.token_talkbi == token_talkbi
            ),
            None,
        )

    def update(self, user_id: str, patch: dict[str, Any]) -> User | None:
        current = self._users.get(user_id)
        if current is None:
            return None
        updated = dataclasses.replace(current, **patch, updated_at=datetime.now(timezone.utc))
        self._check_unique(updated)
        self._users[user_id] = updated
        return updated

    def delete(self, user_id: str) -> bool:
        return self._users.pop(user_id, None) is not None

    def _check_unique(self, candidate: User) -> None:
        for other in self._users.values():
            if other.user_id == candidate.user_id:
                continue
            same_pair = candidate.user_ns is not None and (
                (other.user_ns, other.token_talkbi) == (candidate.user_ns, candidate.token_talkbi)
            )
            if other.email == candidate.email or other.cpf == candidate.cpf or same_pair:
                raise Conflict("user with this email, cpf or namespace/token already exists")


class FakeLedgerRepository:
    """In-memory ledger store mirroring the owner-filtered Postgres queries."""

    def __init__(self, kind: LedgerKind) -> None:
        self.kind = kind
        self._entries: dict[str, LedgerEntry] = {}

    def create(self, owner: OwnerKey, payload: CreateLedgerEntryInput) -> LedgerEntry:
        now = datetime.now(timezone.utc)
        entry = LedgerEntry(
            entry_id=str(uuid.uuid4()),
            kind=self.kind,
            owner=owner,
            created_at=now,
            updated_at=now,
            **payload.as_columns(),
        )
        self._entries[entry.entry_id] = entry
        return entry

    def get(self, entry_id: str) -> LedgerEntry | None:
        return self._entries.get(entry_id)

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
        results = [e for e in self._entries.values() if e.owner == owner]
        if category is not None:
            results = [e for e in results if e.category == category]
        if paid_status is not None:
            results = [e for e in results if e.paid_status == paid_status]
        if year is not None:
            results = [e for e in results if e.year == year]
        if month is not None:
            results = [e for e in results if e.month == month]
        if due_from is not None:
            results = [e for e in results if e.due_date >= due_from]
        if due_to is not None:
            results = [e for e in results if e.due_date <= due_to]
        return sorted(results, key=lambda e: (e.due_date, e.created_at, e.entry_id))

    def update(self, owner: OwnerKey, entry_id: str, patch: dict[str, Any]) -> LedgerEntry | None:
        current = self._entries.get(entry_id)
        if current is None or current.owner != owner:
            return None
        updated = dataclasses.replace(current, **patch, updated_at=datetime.now(timezone.utc))
        self._entries[entry_id] = updated
        return updated

    def delete(self, owner: OwnerKey, entry_id: str) -> bool:
        current = self._entries.get(entry_id)
        if current is None or current.owner != owner:
            return False
        del self._entries[entry_id]
        return True

    def delete_by_owner(self, owner: OwnerKey) -> int:
        doomed = [entry_id for entry_id, e in self._entries.items() if e.owner == owner]
        for entry_id in doomed:
            del self._entries[entry_id]
        return len(doomed)

    def sum_amount(self, owner: OwnerKey, paid_status: str | None = None) -> Decimal:
        return sum(
            (e.amount for e in self.find(owner, paid_status=paid_status)),
            Decimal("0"),
        )

    def all(self) -> list[LedgerEntry]:
        return list(self._entries.values())


def make_settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "jwt_secret": "test-secret",
        "jwt_issuer": "bookkeeping-test",
        "tenancy_mode": "identity",
        "rate_limit_requests": 1000,
        "rate_limit_backend": "memory",
        "log_level": "WARNING",
    }
    values.update(overrides)
    return Settings(**values).validate()


def build_app(settings: Settings) -> FastAPI:
    app = create_app(settings, with_database=False)
    wire_services(
        app,
        FakeUserRepository(),  # type: ignore[arg-type]
        {kind: FakeLedgerRepository(kind) for kind in LedgerKind},  # type: ignore[misc]
    )
    return app


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def app(settings: Settings) -> FastAPI:
    return build_app(settings)


@pytest.fixture
def api_client(app: FastAPI):
    """Provide a test client over in-memory repositories in identity tenancy mode."""
    with TestClient(app) as client:
        yield client


@pytest.fixture
def namespace_client():
    """Provide a test client in namespace tenancy mode."""
    with TestClient(build_app(make_settings(tenancy_mode="namespace"))) as client:
        yield client


_counter = iter(range(1, 10_000))


def user_payload(**overrides: Any) -> dict[str, Any]:
    n = next(_counter)
    payload: dict[str, Any] = {
        "name": f"User {n}",
        "email": f"user{n}@example.com",
        "password": "minhasenha123",
        "phone": "11999999999",
        "cpf": f"000.000.{n:03d}-00",
        "gender": "female",
    }
    payload.update(overrides)
    return payload


def entry_payload(**overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "year": "2025",
        "month": "09",
        "day": "20",
        "hour": "10",
        "amount": 340.75,
        "description": "Conta de luz - Setembro",
        "invoice_number": "FAT-2025-002",
        "payment_method": "card",
        "category": "utilidades",
        "paid_status": "pending",
        "due_date": "2025-09-20",
        "type": "conta",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def register_and_login(api_client: TestClient) -> Callable[..., tuple[str, dict[str, str]]]:
    """Register an identity and return its id with bearer headers for it."""

    def _register(**overrides: Any) -> tuple[str, dict[str, str]]:
        payload = user_payload(**overrides)
        created = api_client.post("/auth/register", json=payload)
        assert created.status_code == 201, created.text
        login = api_client.post(
            "/auth/login", json={"email": payload["email"], "password": payload["password"]}
        )
        assert login.status_code == 200, login.text
        token = login.json()["access_token"]
        return created.json()["id"], {"Authorization": f"Bearer {token}"}

    return _register
