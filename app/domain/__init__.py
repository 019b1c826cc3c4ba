"""
app/domain package marker.
"""

from app.domain.score_import import (
    DuplicateDecision,
    DuplicateMode,
    FailedRow,
    ImportPhase,
    ImportResult,
    ImportRow,
    MalformedFileError,
    ProgressSnapshot,
    RowErrorCode,
    RowPersistenceError,
    RowLookupError,
    StorageUnavailableError,
    ValidatedScore,
)

__all__ = [
    "DuplicateDecision",
    "DuplicateMode",
    "FailedRow",
    "ImportPhase",
    "ImportResult",
    "ImportRow",
    "MalformedFileError",
    "ProgressSnapshot",
    "RowErrorCode",
    "RowPersistenceError",
    "RowLookupError",
    "StorageUnavailableError",
    "ValidatedScore",
]
