"""Domain-level request contracts shared by multiple layers."""

from __future__ import annotations

from dataclasses import dataclass, fields
from decimal import Decimal
from typing import Any

from .ledger import PaymentMethod
from .user import Gender, UserStatus


@dataclass(slots=True)
class RegisterUserInput:
    """Validated inputs required to register an identity."""

    name: str
    email: str
    password: str
    phone: str
    cpf: str
    gender: Gender
    status: UserStatus = UserStatus.active
    email_verified: bool = False
    user_ns: str | None = None
    token_talkbi: str | None = None


@dataclass(slots=True)
class CreateLedgerEntryInput:
    """Validated fields of a new payable or receivable; the owner is supplied separately."""

    year: str
    month: str
    day: str
    hour: str
    amount: Decimal
    description: str
    invoice_number: str
    payment_method: PaymentMethod
    category: str
    paid_status: str
    due_date: str
    type: str
    is_recurring: bool = False
    recurring_time: str | None = None
    installment: str | None = None

    def as_columns(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


# Columns a ledger patch may touch; owner columns are never patchable.
LEDGER_PATCHABLE_FIELDS: frozenset[str] = frozenset(
    f.name for f in fields(CreateLedgerEntryInput)
)

# Profile fields a user patch may touch; the password is handled separately.
USER_PATCHABLE_FIELDS: frozenset[str] = frozenset(
    {"name", "email", "phone", "cpf", "gender", "status", "email_verified"}
)
