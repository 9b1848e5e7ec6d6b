"""Ownership guard consulted before every single-record read, update and delete."""

from __future__ import annotations

from enum import Enum

from ..errors import Forbidden, NotFound
from .ledger import LedgerEntry
from .owner import OwnerKey, TenancyMode
from .user import User


class Decision(str, Enum):
    allowed = "allowed"
    forbidden = "forbidden"
    not_found = "not_found"


def authorize(effective_owner: OwnerKey, record: LedgerEntry | None) -> Decision:
    """Decide whether ``effective_owner`` may act on ``record``.

    Owner keys compare by value and by variant, so an identity owner never
    matches a namespace owner even if the underlying strings coincide.
    """
    if record is None:
        return Decision.not_found
    if record.owner != effective_owner:
        return Decision.forbidden
    return Decision.allowed


def enforce(decision: Decision, *, kind: str, record_id: str) -> None:
    """Raise the error matching a non-allowed decision."""
    if decision is Decision.not_found:
        raise NotFound(f"{kind} with ID {record_id} not found")
    if decision is Decision.forbidden:
        raise Forbidden(f"you do not have permission to access this {kind}")


def authorize_identity(effective_owner: OwnerKey, user: User | None, mode: TenancyMode) -> Decision:
    """Apply the same decision rules to an identity record and its caller."""
    if user is None:
        return Decision.not_found
    if mode is TenancyMode.namespace and (user.user_ns is None or user.token_talkbi is None):
        return Decision.forbidden
    if user.owner_key(mode) != effective_owner:
        return Decision.forbidden
    return Decision.allowed
