"""Owner keys: the value every ledger record is scoped to."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union


class TenancyMode(str, Enum):
    identity = "identity"
    namespace = "namespace"


@dataclass(frozen=True, slots=True)
class IdentityOwner:
    """Owner key derived from an authenticated session."""

    user_id: str

    @property
    def mode(self) -> TenancyMode:
        return TenancyMode.identity

    def __str__(self) -> str:
        return f"user:{self.user_id}"


@dataclass(frozen=True, slots=True)
class NamespaceOwner:
    """Owner key supplied as an explicit ``(user_ns, token_talkbi)`` pair."""

    namespace: str
    token: str

    @property
    def mode(self) -> TenancyMode:
        return TenancyMode.namespace

    def __str__(self) -> str:
        # the token is a credential; keep it out of log lines
        return f"ns:{self.namespace}"


OwnerKey = Union[IdentityOwner, NamespaceOwner]
