"""FastAPI dependencies resolving services and the caller's owner key."""

from __future__ import annotations

from typing import Callable

from fastapi import Header, Query, Request

from ..domain.auth import AuthService
from ..domain.ledger import LedgerKind
from ..domain.ledger_service import LedgerService
from ..domain.owner import OwnerKey
from ..domain.users import UserService
from ..errors import RateLimited
from ..security.rate_limiter import RateLimiter


def get_auth_service(request: Request) -> AuthService:
    service: AuthService = request.app.state.auth_service
    return service


def get_user_service(request: Request) -> UserService:
    service: UserService = request.app.state.user_service
    return service


def ledger_service_dependency(kind: LedgerKind) -> Callable[[Request], LedgerService]:
    """Build a dependency returning the ``LedgerService`` registered for ``kind``."""

    def get_ledger_service(request: Request) -> LedgerService:
        service: LedgerService = request.app.state.ledger_services[kind]
        return service

    return get_ledger_service


def get_rate_limiter(request: Request) -> RateLimiter:
    limiter: RateLimiter = request.app.state.rate_limiter
    return limiter


def enforce_rate_limit(limiter: RateLimiter, key: str) -> None:
    if not limiter.allow(key):
        raise RateLimited("rate limited")


def resolve_owner(
    request: Request,
    authorization: str | None = Header(default=None),
    user_ns: str | None = Query(default=None, description="Tenant namespace (namespace tenancy mode)"),
    token_talkbi: str | None = Query(default=None, description="Tenant token (namespace tenancy mode)"),
) -> OwnerKey:
    """Resolve the effective owner key once per request."""
    return request.app.state.tenancy.resolve(
        authorization=authorization,
        user_ns=user_ns,
        token_talkbi=token_talkbi,
    )
