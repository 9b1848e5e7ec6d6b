from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from .owner import IdentityOwner, NamespaceOwner, OwnerKey, TenancyMode


class UserStatus(str, Enum):
    active = "active"
    inactive = "inactive"
    late = "late"


class Gender(str, Enum):
    male = "male"
    female = "female"
    other = "other"
    prefer_not_to_say = "prefer_not_to_say"


@dataclass(slots=True)
class User:
    """Identity record; ``password_hash`` never leaves the service layer."""

    user_id: str
    name: str
    email: str
    phone: str
    cpf: str
    gender: Gender
    password_hash: str
    created_at: datetime
    updated_at: datetime
    status: UserStatus = UserStatus.active
    email_verified: bool = False
    user_ns: str | None = None
    token_talkbi: str | None = None

    def owner_key(self, mode: TenancyMode) -> OwnerKey:
        """Return the owner key this identity's ledger records are stored under."""
        if mode is TenancyMode.namespace:
            if self.user_ns is None or self.token_talkbi is None:
                raise ValueError("user has no namespace markers")
            return NamespaceOwner(self.user_ns, self.token_talkbi)
        return IdentityOwner(self.user_id)
