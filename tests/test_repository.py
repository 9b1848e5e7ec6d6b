"""Tests for the repository helpers and service wiring that need no database."""

from __future__ import annotations

import psycopg
import pytest
from psycopg import errors as pg_errors
from psycopg import sql

from bookkeeping.domain.ledger import LedgerKind
from bookkeeping.domain.owner import IdentityOwner, NamespaceOwner
from bookkeeping.errors import Conflict, Unexpected
from bookkeeping.repository.errors import translate_store_errors
from bookkeeping.repository.ledger import owner_clause, owner_columns
from bookkeeping.repository.schema import ledger_ddl


def test_owner_columns_have_exactly_one_shape():
    assert owner_columns(IdentityOwner("u1")) == {"user_id": "u1", "user_ns": None, "token_talkbi": None}
    assert owner_columns(NamespaceOwner("acme", "tok")) == {
        "user_id": None,
        "user_ns": "acme",
        "token_talkbi": "tok",
    }


def test_owner_clause_parameters():
    _, identity_params = owner_clause(IdentityOwner("u1"))
    _, namespace_params = owner_clause(NamespaceOwner("acme", "tok"))
    assert identity_params == ["u1"]
    assert namespace_params == ["acme", "tok"]


def test_owner_clause_rejects_unknown_keys():
    with pytest.raises(TypeError):
        owner_clause("u1")  # type: ignore[arg-type]


def test_owner_clause_returns_fresh_parameter_lists():
    _, first = owner_clause(IdentityOwner("u1"))
    first.append("extra")
    _, second = owner_clause(IdentityOwner("u1"))
    assert second == ["u1"]


def test_unique_violation_becomes_conflict():
    with pytest.raises(Conflict, match="already exists"):
        with translate_store_errors("payable with this combination already exists"):
            raise pg_errors.UniqueViolation("duplicate key value violates unique constraint")


def test_other_store_errors_become_unexpected():
    with pytest.raises(Unexpected) as excinfo:
        with translate_store_errors("unused"):
            raise psycopg.OperationalError("connection refused")
    assert isinstance(excinfo.value.__cause__, psycopg.OperationalError)


@pytest.mark.parametrize("kind", list(LedgerKind))
def test_ledger_ddl_targets_its_own_table(kind):
    parts = ledger_ddl(kind).seq
    assert sql.Identifier(kind.table) in parts
    assert sql.Identifier(f"{kind.table}_single_owner") in parts


def test_healthz_does_not_need_a_session(api_client):
    response = api_client.get("/healthz")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
