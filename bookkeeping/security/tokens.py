"""Utilities for issuing and validating session JWTs."""

from __future__ import annotations

import time
from typing import Any

import jwt

from ..config import Settings

ALGORITHM = "HS256"


def issue_session_token(*, subject: str, email: str, settings: Settings) -> tuple[str, int]:
    """Create a signed JWT representing an authenticated identity.

    Parameters
    ----------
    subject:
        Identity id embedded in the ``sub`` claim.
    email:
        Identity email, carried alongside ``sub`` for client convenience.
    settings:
        Source of the signing secret, issuer and TTL.

    Returns
    -------
    tuple[str, int]
        The encoded JWT and its TTL in seconds.
    """
    now = int(time.time())
    expires_in = settings.jwt_ttl_seconds
    payload: dict[str, Any] = {
        "iss": settings.jwt_issuer,
        "sub": subject,
        "email": email,
        "iat": now,
        "exp": now + expires_in,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=ALGORITHM), expires_in


def decode_session_token(token: str, settings: Settings) -> dict[str, Any]:
    """Decode and verify a session JWT, returning its claims.

    Raises
    ------
    jwt.PyJWTError
        When the signature, issuer or expiry check fails, or ``sub`` is absent.
    """
    return jwt.decode(
        token,
        settings.jwt_secret,
        algorithms=[ALGORITHM],
        issuer=settings.jwt_issuer,
        options={"require": ["exp", "sub"]},
    )
