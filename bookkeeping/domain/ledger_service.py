"""Owner-scoped ledger workflows shared by payables and receivables."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, cast

from ..errors import NotFound, ValidationFailed
from ..observability import Telemetry
from ..repository.ledger import LedgerRepository
from .contracts import LEDGER_PATCHABLE_FIELDS, CreateLedgerEntryInput
from .guard import authorize, enforce
from .ledger import LedgerEntry
from .owner import OwnerKey, TenancyMode


class LedgerService:
    """Guard-then-act orchestration over one ledger repository.

    Single-record reads, updates and deletes consult :func:`authorize` with
    the same owner key that is later passed to the write. List and sum
    operations rely on the repository's owner predicate instead.
    """

    def __init__(
        self,
        repository: LedgerRepository,
        mode: TenancyMode,
        telemetry: Telemetry,
    ) -> None:
        self._repository = repository
        self._mode = mode
        self._telemetry = telemetry
        self.kind = repository.kind

    def create(self, owner: OwnerKey, payload: CreateLedgerEntryInput) -> LedgerEntry:
        self._check_mode(owner)
        entry = self._repository.create(owner, payload)
        self._telemetry.ledger_write(self.kind.value, "create", entry.entry_id)
        return entry

    def list_by_owner(self, owner: OwnerKey) -> list[LedgerEntry]:
        self._check_mode(owner)
        return self._repository.find(owner)

    def list_by_owner_and_category(self, owner: OwnerKey, category: str) -> list[LedgerEntry]:
        self._check_mode(owner)
        return self._repository.find(owner, category=category)

    def list_by_owner_and_status(self, owner: OwnerKey, paid_status: str) -> list[LedgerEntry]:
        self._check_mode(owner)
        return self._repository.find(owner, paid_status=paid_status)

    def list_by_owner_and_date_range(
        self, owner: OwnerKey, start_date: str, end_date: str
    ) -> list[LedgerEntry]:
        """Return records whose ``due_date`` lies in ``[start_date, end_date]``.

        Dates are compared as strings, so both bounds must be zero-padded
        ``YYYY-MM-DD`` values.
        """
        self._check_mode(owner)
        return self._repository.find(owner, due_from=start_date, due_to=end_date)

    def list_by_owner_and_year_month(
        self, owner: OwnerKey, year: str, month: str
    ) -> list[LedgerEntry]:
        self._check_mode(owner)
        return self._repository.find(owner, year=year, month=month)

    def get_by_id(self, owner: OwnerKey, entry_id: str) -> LedgerEntry:
        """Return the record when ``owner`` owns it.

        Raises
        ------
        NotFound
            When no record has ``entry_id``.
        Forbidden
            When the record exists but belongs to another owner.
        """
        self._check_mode(owner)
        return self._guarded_fetch(owner, entry_id)

    def update(self, owner: OwnerKey, entry_id: str, patch: dict[str, Any]) -> LedgerEntry:
        """Apply a partial update to an owned record and return the stored result."""
        self._check_mode(owner)
        unknown = sorted(set(patch) - LEDGER_PATCHABLE_FIELDS)
        if unknown:
            raise ValidationFailed(
                "unknown or read-only fields in update",
                errors=[{"loc": ["body", name], "msg": "field not permitted"} for name in unknown],
            )
        current = self._guarded_fetch(owner, entry_id)
        if not patch:
            return current

        updated = self._repository.update(owner, entry_id, patch)
        if updated is None:
            # removed between the guard check and the write
            raise NotFound(f"{self.kind.value} with ID {entry_id} not found")
        self._telemetry.ledger_write(self.kind.value, "update", entry_id)
        return updated

    def remove(self, owner: OwnerKey, entry_id: str) -> None:
        self._check_mode(owner)
        self._guarded_fetch(owner, entry_id)
        if not self._repository.delete(owner, entry_id):
            raise NotFound(f"{self.kind.value} with ID {entry_id} not found")
        self._telemetry.ledger_write(self.kind.value, "delete", entry_id)

    def remove_all(self, owner: OwnerKey) -> int:
        """Delete every record of ``owner``; used when the owning account is removed."""
        self._check_mode(owner)
        removed = self._repository.delete_by_owner(owner)
        if removed:
            self._telemetry.ledger_write(self.kind.value, "cascade_delete", str(owner))
        return removed

    def sum_amount(self, owner: OwnerKey, paid_status: str | None = None) -> Decimal:
        """Total ``amount`` of the owner's records; ``Decimal('0')`` when none match."""
        self._check_mode(owner)
        return self._repository.sum_amount(owner, paid_status)

    def _guarded_fetch(self, owner: OwnerKey, entry_id: str) -> LedgerEntry:
        record = self._repository.get(entry_id)
        decision = authorize(owner, record)
        self._telemetry.ownership_decision(self.kind.value, decision.value, entry_id, owner)
        enforce(decision, kind=self.kind.value, record_id=entry_id)
        return cast(LedgerEntry, record)

    def _check_mode(self, owner: OwnerKey) -> None:
        if owner.mode is not self._mode:
            raise ValidationFailed(
                f"{owner.mode.value} owner keys are not accepted in {self._mode.value} tenancy mode"
            )
