"""Authenticator: registration, login and session resolution."""

from __future__ import annotations

from dataclasses import asdict, dataclass

import jwt

from ..config import Settings
from ..errors import Conflict, Unauthenticated, ValidationFailed
from ..observability import Telemetry
from ..repository.users import UserRepository
from ..security.passwords import dummy_verify, hash_password, verify_password
from ..security.tokens import decode_session_token, issue_session_token
from .contracts import RegisterUserInput
from .owner import IdentityOwner, TenancyMode
from .user import User


@dataclass(slots=True)
class Session:
    """A freshly issued session token together with the identity it was issued for."""

    access_token: str
    expires_in: int
    user: User


class AuthService:
    """Identity workflows backed by the credential store."""

    def __init__(
        self,
        repository: UserRepository,
        settings: Settings,
        telemetry: Telemetry,
    ) -> None:
        self._repository = repository
        self._settings = settings
        self._telemetry = telemetry
        self._mode = TenancyMode(settings.tenancy_mode)

    def register(self, candidate: RegisterUserInput) -> User:
        """Create an identity, storing only a one-way hash of its password.

        In namespace mode the ``(user_ns, token_talkbi)`` markers are required;
        in identity mode they must be absent.

        Raises
        ------
        ValidationFailed
            When the tenancy markers do not fit the configured mode.
        Conflict
            When the email, cpf or namespace pair is already registered.
        """
        has_markers = candidate.user_ns is not None or candidate.token_talkbi is not None
        if self._mode is TenancyMode.namespace:
            if not candidate.user_ns or not candidate.token_talkbi:
                raise ValidationFailed(
                    "user_ns and token_talkbi are required in namespace tenancy mode",
                    errors=[
                        {"loc": ["body", name], "msg": "field required"}
                        for name in ("user_ns", "token_talkbi")
                        if not getattr(candidate, name)
                    ],
                )
        elif has_markers:
            raise ValidationFailed("user_ns and token_talkbi are not accepted in identity tenancy mode")

        email = candidate.email.strip().lower()
        if self._repository.get_by_email(email) is not None:
            self._telemetry.auth_event("register.failed", reason="duplicate email")
            raise Conflict("user with this email or cpf already exists")

        fields = asdict(candidate)
        fields["email"] = email
        fields["password_hash"] = hash_password(fields.pop("password"))
        user = self._repository.create(fields)
        self._telemetry.auth_event("register.succeeded", user_id=user.user_id)
        return user

    def login(self, email: str, password: str) -> Session:
        """Verify credentials and issue a session token.

        Raises
        ------
        Unauthenticated
            When the email is unknown or the password does not match.
        """
        user = self._repository.get_by_email(email.strip().lower())
        if user is None:
            # unknown emails cost the same hashing work as a wrong password
            dummy_verify()
            self._telemetry.auth_event("login.failed")
            raise Unauthenticated("invalid credentials")
        if not verify_password(password, user.password_hash):
            self._telemetry.auth_event("login.failed")
            raise Unauthenticated("invalid credentials")

        token, expires_in = issue_session_token(
            subject=user.user_id, email=user.email, settings=self._settings
        )
        self._telemetry.auth_event("login.succeeded", user_id=user.user_id)
        return Session(access_token=token, expires_in=expires_in, user=user)

    def resolve_session(self, token: str) -> IdentityOwner:
        """Decode a session token into the caller's owner key."""
        try:
            claims = decode_session_token(token, self._settings)
        except jwt.PyJWTError as exc:
            self._telemetry.auth_event("session.failed", reason=exc.__class__.__name__)
            raise Unauthenticated("invalid or expired session") from exc

        user_id = str(claims["sub"])
        if self._repository.get(user_id) is None:
            self._telemetry.auth_event("session.failed", reason="unknown subject")
            raise Unauthenticated("invalid or expired session")
        return IdentityOwner(user_id)
