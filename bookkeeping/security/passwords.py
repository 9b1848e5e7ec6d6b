"""One-way password hashing."""

from __future__ import annotations

from passlib.context import CryptContext

_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return _context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Return ``True`` when ``password`` matches the stored hash (constant-time)."""
    if not password_hash:
        return False
    try:
        return _context.verify(password, password_hash)
    except ValueError:
        # unrecognised or corrupted hash
        return False


def dummy_verify() -> None:
    """Spend the same hashing effort as a real verify when there is no stored hash."""
    _context.dummy_verify()
