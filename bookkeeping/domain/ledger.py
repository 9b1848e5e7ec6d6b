from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum

from .owner import IdentityOwner, NamespaceOwner, OwnerKey


class LedgerKind(str, Enum):
    payable = "payable"
    receivable = "receivable"

    @property
    def table(self) -> str:
        return f"{self.value}s"


class PaymentMethod(str, Enum):
    pix = "pix"
    card = "card"
    cash = "cash"


@dataclass(slots=True)
class LedgerEntry:
    """A payable or receivable; both kinds share this shape."""

    entry_id: str
    kind: LedgerKind
    owner: OwnerKey
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
    created_at: datetime
    updated_at: datetime
    is_recurring: bool = False
    recurring_time: str | None = None
    installment: str | None = None

    @property
    def user_id(self) -> str | None:
        return self.owner.user_id if isinstance(self.owner, IdentityOwner) else None

    @property
    def user_ns(self) -> str | None:
        return self.owner.namespace if isinstance(self.owner, NamespaceOwner) else None

    @property
    def token_talkbi(self) -> str | None:
        return self.owner.token if isinstance(self.owner, NamespaceOwner) else None
