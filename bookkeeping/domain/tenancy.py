"""Resolution of the effective owner key for a request."""

from __future__ import annotations

from ..errors import Unauthenticated, ValidationFailed
from .auth import AuthService
from .owner import NamespaceOwner, OwnerKey, TenancyMode


def parse_bearer(authorization: str | None) -> str:
    """Extract the token from an ``Authorization: Bearer <token>`` header value."""
    if not authorization:
        raise Unauthenticated("missing bearer token")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise Unauthenticated("malformed authorization header")
    return token.strip()


class TenancyResolver:
    """Derive the owner key for the configured tenancy mode; the two schemes never mix."""

    def __init__(self, mode: TenancyMode, auth: AuthService) -> None:
        self.mode = mode
        self._auth = auth

    def resolve(
        self,
        *,
        authorization: str | None,
        user_ns: str | None,
        token_talkbi: str | None,
    ) -> OwnerKey:
        if self.mode is TenancyMode.identity:
            if user_ns is not None or token_talkbi is not None:
                raise ValidationFailed(
                    "user_ns and token_talkbi are not accepted in identity tenancy mode"
                )
            return self._auth.resolve_session(parse_bearer(authorization))

        missing = [
            name
            for name, value in (("user_ns", user_ns), ("token_talkbi", token_talkbi))
            if not value
        ]
        if missing:
            raise ValidationFailed(
                "user_ns and token_talkbi are required in namespace tenancy mode",
                errors=[{"loc": ["query", name], "msg": "field required"} for name in missing],
            )
        return NamespaceOwner(user_ns, token_talkbi)  # type: ignore[arg-type]
