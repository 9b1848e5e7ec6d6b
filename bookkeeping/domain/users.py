"""Profile workflows for identity records."""

from __future__ import annotations

from typing import Any, Sequence, cast

from ..errors import Conflict, NotFound, ValidationFailed
from ..observability import Telemetry
from ..repository.users import UserRepository
from ..security.passwords import hash_password
from .contracts import USER_PATCHABLE_FIELDS
from .guard import authorize_identity, enforce
from .ledger_service import LedgerService
from .owner import IdentityOwner, NamespaceOwner, OwnerKey, TenancyMode
from .user import User


class UserService:
    """Read, update and delete identities on behalf of their own owner key."""

    def __init__(
        self,
        repository: UserRepository,
        ledgers: Sequence[LedgerService],
        mode: TenancyMode,
        telemetry: Telemetry,
    ) -> None:
        self._repository = repository
        self._ledgers = tuple(ledgers)
        self._mode = mode
        self._telemetry = telemetry

    def current(self, owner: OwnerKey) -> User:
        """Return the identity behind ``owner``."""
        if isinstance(owner, IdentityOwner):
            user = self._repository.get(owner.user_id)
        else:
            user = self._repository.get_by_namespace(owner.namespace, owner.token)
        if user is None:
            raise NotFound("user not found")
        return user

    def list_visible(self, owner: OwnerKey) -> list[User]:
        """Return the identities ``owner`` may see, which is only its own."""
        try:
            return [self.current(owner)]
        except NotFound:
            return []

    def get(self, owner: OwnerKey, user_id: str) -> User:
        return self._guarded_fetch(owner, user_id)

    def find_by_namespace(self, user_ns: str, token_talkbi: str) -> User:
        if self._mode is not TenancyMode.namespace:
            raise ValidationFailed("namespace lookup is only available in namespace tenancy mode")
        return self.current(NamespaceOwner(user_ns, token_talkbi))

    def update(
        self,
        owner: OwnerKey,
        user_id: str,
        patch: dict[str, Any],
        password: str | None = None,
    ) -> User:
        """Apply a partial profile update; a new password is re-hashed before storage."""
        unknown = sorted(set(patch) - USER_PATCHABLE_FIELDS)
        if unknown:
            raise ValidationFailed(
                "unknown or read-only fields in update",
                errors=[{"loc": ["body", name], "msg": "field not permitted"} for name in unknown],
            )
        self._guarded_fetch(owner, user_id)

        changes = dict(patch)
        if "email" in changes:
            email = changes["email"].strip().lower()
            existing = self._repository.get_by_email(email)
            if existing is not None and existing.user_id != user_id:
                raise Conflict("user with this email or cpf already exists")
            changes["email"] = email
        if password is not None:
            changes["password_hash"] = hash_password(password)

        updated = self._repository.update(user_id, changes)
        if updated is None:
            raise NotFound("user not found")
        self._telemetry.logger.info("user %s updated fields %s", user_id, sorted(changes))
        return updated

    def remove(self, owner: OwnerKey, user_id: str) -> None:
        """Delete every payable and receivable the identity owns, then the identity.

        The identity row goes last so a failed ledger delete leaves the account
        in place and the removal can be retried.
        """
        user = self._guarded_fetch(owner, user_id)
        ledger_key = user.owner_key(self._mode)
        removed = sum(ledger.remove_all(ledger_key) for ledger in self._ledgers)
        if not self._repository.delete(user_id):
            raise NotFound("user not found")
        self._telemetry.logger.info("user %s deleted with %d ledger records", user_id, removed)

    def _guarded_fetch(self, owner: OwnerKey, user_id: str) -> User:
        user = self._repository.get(user_id)
        decision = authorize_identity(owner, user, self._mode)
        self._telemetry.ownership_decision("user", decision.value, user_id, owner)
        enforce(decision, kind="user", record_id=user_id)
        return cast(User, user)
