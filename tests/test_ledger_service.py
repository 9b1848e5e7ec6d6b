from __future__ import annotations

from decimal import Decimal

import pytest
from prometheus_client import CollectorRegistry

from bookkeeping.domain.contracts import CreateLedgerEntryInput
from bookkeeping.domain.ledger import LedgerKind, PaymentMethod
from bookkeeping.domain.ledger_service import LedgerService
from bookkeeping.domain.owner import IdentityOwner, NamespaceOwner, TenancyMode
from bookkeeping.errors import Forbidden, NotFound, ValidationFailed
from bookkeeping.observability import Telemetry
from conftest import FakeLedgerRepository


def _input(amount: str = "10.00", **overrides) -> CreateLedgerEntryInput:
    values = dict(
        year="2025",
        month="09",
        day="20",
        hour="10",
        amount=Decimal(amount),
        description="groceries",
        invoice_number="INV-1",
        payment_method=PaymentMethod.cash,
        category="food",
        paid_status="pending",
        due_date="2025-09-20",
        type="conta",
    )
    values.update(overrides)
    return CreateLedgerEntryInput(**values)


@pytest.fixture
def service() -> LedgerService:
    return LedgerService(
        FakeLedgerRepository(LedgerKind.payable),  # type: ignore[arg-type]
        TenancyMode.identity,
        Telemetry(registry=CollectorRegistry()),
    )


def test_sum_matches_listed_records(service):
    alice, bob = IdentityOwner("alice"), IdentityOwner("bob")
    for amount in ("0.10", "0.20", "99.99"):
        service.create(alice, _input(amount))
    service.create(bob, _input("1000"))

    listed = service.list_by_owner(alice)
    assert all(entry.owner == alice for entry in listed)
    assert service.sum_amount(alice) == sum((e.amount for e in listed), Decimal("0"))
    assert service.sum_amount(alice) == Decimal("100.29")
    assert service.sum_amount(IdentityOwner("nobody")) == Decimal("0")


def test_guard_runs_before_every_single_record_operation(service):
    alice, mallory = IdentityOwner("alice"), IdentityOwner("mallory")
    entry = service.create(alice, _input())

    with pytest.raises(Forbidden):
        service.get_by_id(mallory, entry.entry_id)
    with pytest.raises(Forbidden):
        service.update(mallory, entry.entry_id, {"amount": Decimal("0")})
    with pytest.raises(Forbidden):
        service.remove(mallory, entry.entry_id)

    assert service.get_by_id(alice, entry.entry_id).amount == Decimal("10.00")


def test_remove_is_not_repeatable(service):
    alice = IdentityOwner("alice")
    entry = service.create(alice, _input())
    service.remove(alice, entry.entry_id)
    with pytest.raises(NotFound):
        service.remove(alice, entry.entry_id)


def test_update_rejects_unknown_fields(service):
    alice = IdentityOwner("alice")
    entry = service.create(alice, _input())
    with pytest.raises(ValidationFailed) as excinfo:
        service.update(alice, entry.entry_id, {"user_id": "bob"})
    assert excinfo.value.errors[0]["loc"] == ["body", "user_id"]


def test_empty_patch_returns_current_record(service):
    alice = IdentityOwner("alice")
    entry = service.create(alice, _input())
    assert service.update(alice, entry.entry_id, {}) == entry


def test_owner_key_of_other_mode_is_rejected(service):
    with pytest.raises(ValidationFailed):
        service.list_by_owner(NamespaceOwner("acme", "tok"))
    with pytest.raises(ValidationFailed):
        service.create(NamespaceOwner("acme", "tok"), _input())


def test_date_range_is_inclusive(service):
    alice = IdentityOwner("alice")
    for due in ("2025-01-01", "2025-01-15", "2025-01-31", "2025-02-01"):
        service.create(alice, _input(due_date=due))
    listed = service.list_by_owner_and_date_range(alice, "2025-01-01", "2025-01-31")
    assert [e.due_date for e in listed] == ["2025-01-01", "2025-01-15", "2025-01-31"]


def test_remove_all_only_touches_one_owner(service):
    alice, bob = IdentityOwner("alice"), IdentityOwner("bob")
    service.create(alice, _input())
    service.create(alice, _input())
    service.create(bob, _input())
    assert service.remove_all(alice) == 2
    assert service.list_by_owner(alice) == []
    assert len(service.list_by_owner(bob)) == 1
