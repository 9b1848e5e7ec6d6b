"""Translation of driver errors into the service's error taxonomy."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

import psycopg
from psycopg import errors as pg_errors

from ..errors import Conflict, Unexpected


@contextmanager
def translate_store_errors(conflict_message: str) -> Iterator[None]:
    """Map duplicate-key violations to ``Conflict`` and other driver errors to ``Unexpected``."""
    try:
        yield
    except pg_errors.UniqueViolation as exc:
        raise Conflict(conflict_message) from exc
    except psycopg.Error as exc:
        raise Unexpected(f"store operation failed: {exc.__class__.__name__}") from exc
