"""
app/repositories/storage_errors.py

Maps SQLAlchemy failures onto row-scoped and systemic storage errors.
"""

from __future__ import annotations

from sqlalchemy.exc import (
    DisconnectionError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
)

from app.domain.score_import import (
    RowLookupError,
    RowPersistenceError,
    StorageUnavailableError,
)

# Connection-level failures: retrying the next row would fail the same way.
_SYSTEMIC_ERRORS: tuple[type[Exception], ...] = (
    OperationalError,
    InterfaceError,
    DisconnectionError,
)


def is_systemic(exc: SQLAlchemyError) -> bool:
    return isinstance(exc, _SYSTEMIC_ERRORS)


def translate_read_error(exc: SQLAlchemyError) -> StorageUnavailableError | RowLookupError:
    if is_systemic(exc):
        return StorageUnavailableError(_describe(exc))
    return RowLookupError(_describe(exc))


def translate_write_error(exc: SQLAlchemyError) -> StorageUnavailableError | RowPersistenceError:
    if is_systemic(exc):
        return StorageUnavailableError(_describe(exc))
    return RowPersistenceError(_describe(exc))


def _describe(exc: SQLAlchemyError) -> str:
    original = getattr(exc, "orig", None)
    detail = str(original) if original is not None else str(exc)
    first_line = detail.strip().splitlines()[0] if detail.strip() else type(exc).__name__
    return first_line[:500]
