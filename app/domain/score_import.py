"""
app/domain/score_import.py

Domain models used by the benchmark-score CSV import flow.

A row moves through two distinct shapes: `ImportRow` (raw strings exactly as
parsed) and `ValidatedScore` (typed values ready for persistence). A row that
cannot make the transition becomes a `FailedRow`.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Protocol

# Column order used for both header matching and FailedRow.original_data.
REQUIRED_COLUMNS: tuple[str, ...] = ("model_id", "benchmark_name", "score")
OPTIONAL_COLUMNS: tuple[str, ...] = (
    "max_score",
    "test_date",
    "source_url",
    "verified",
    "notes",
)
IMPORT_COLUMNS: tuple[str, ...] = REQUIRED_COLUMNS + OPTIONAL_COLUMNS


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class MalformedFileError(ValueError):
    """
    Raised when the file as a whole cannot be read as an import file.
    """


class StorageUnavailableError(RuntimeError):
    """
    Raised when storage fails in a way that affects every remaining row.
    """


class RowPersistenceError(RuntimeError):
    """
    Raised when a single row cannot be written; other rows are unaffected.
    """


class RowLookupError(RuntimeError):
    """
    Raised when a lookup fails because of one row's values; other rows are
    unaffected.
    """


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class ImportPhase(str, Enum):
    PARSING = "Parsing"
    VALIDATING = "Validating"
    IMPORTING = "Importing"
    COMPLETE = "Complete"
    CANCELLED = "Cancelled"
    FAILED = "Failed"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_PHASES

    @property
    def rank(self) -> int:
        return _PHASE_ORDER.index(self)


_PHASE_ORDER: tuple[ImportPhase, ...] = (
    ImportPhase.PARSING,
    ImportPhase.VALIDATING,
    ImportPhase.IMPORTING,
    ImportPhase.COMPLETE,
    ImportPhase.CANCELLED,
    ImportPhase.FAILED,
)
_TERMINAL_PHASES = frozenset({ImportPhase.COMPLETE, ImportPhase.CANCELLED, ImportPhase.FAILED})


class RowErrorCode(str, Enum):
    INVALID_MODEL_ID_FORMAT = "InvalidModelIdFormat"
    MODEL_NOT_FOUND = "ModelNotFound"
    BENCHMARK_NOT_FOUND = "BenchmarkNotFound"
    INVALID_SCORE = "InvalidScore"
    INVALID_MAX_SCORE = "InvalidMaxScore"
    INVALID_TEST_DATE = "InvalidTestDate"
    INVALID_SOURCE_URL = "InvalidSourceUrl"
    NOTES_TOO_LONG = "NotesTooLong"
    LOOKUP_FAILED = "LookupFailed"
    PERSISTENCE_FAILED = "PersistenceFailed"


class DuplicateMode(str, Enum):
    SKIP = "skip"
    OVERWRITE = "overwrite"


class DuplicateDecision(str, Enum):
    PROCEED = "proceed"
    SKIP_AS_DUPLICATE = "skip_as_duplicate"
    OVERWRITE_EXISTING = "overwrite_existing"


class PersistOutcome(str, Enum):
    INSERTED = "inserted"
    UPDATED = "updated"
    ALREADY_EXISTS = "already_exists"


# ---------------------------------------------------------------------------
# Row shapes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ImportRow:
    """
    One data record from the file, every value still a raw string.
    """

    row_number: int
    model_id: str
    benchmark_name: str
    score: str
    max_score: str | None = None
    test_date: str | None = None
    source_url: str | None = None
    verified: str | None = None
    notes: str | None = None

    def original_data(self) -> dict[str, str]:
        """
        Column name -> raw value, in import column order, absent values as "".
        """

        return {column: getattr(self, column) or "" for column in IMPORT_COLUMNS}


@dataclass(frozen=True)
class BenchmarkRef:
    """
    The parts of a benchmark definition the import flow needs.
    """

    id: uuid.UUID
    name: str
    typical_range_min: Decimal | None = None
    typical_range_max: Decimal | None = None


@dataclass(frozen=True)
class ValidatedScore:
    row_number: int
    model_id: uuid.UUID
    benchmark_id: uuid.UUID
    score: Decimal
    normalized_score: Decimal
    is_out_of_range: bool
    max_score: Decimal | None = None
    test_date: date | None = None
    source_url: str | None = None
    verified: bool = False
    notes: str | None = None

    @property
    def pair(self) -> tuple[uuid.UUID, uuid.UUID]:
        return (self.model_id, self.benchmark_id)


@dataclass(frozen=True)
class FailedRow:
    row_number: int
    error: str
    code: RowErrorCode
    original_data: dict[str, str] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Run output
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ImportResult:
    """
    Terminal summary of one import run.
    """

    total_rows: int
    successful_imports: int
    failed_imports: int
    skipped_duplicates: int
    errors: tuple[FailedRow, ...] = ()

    def to_dict(self) -> dict[str, object]:
        return {
            "totalRows": self.total_rows,
            "successfulImports": self.successful_imports,
            "failedImports": self.failed_imports,
            "skippedDuplicates": self.skipped_duplicates,
            "errors": [
                {
                    "rowNumber": error.row_number,
                    "error": error.error,
                    "code": error.code.value,
                    "data": dict(error.original_data),
                }
                for error in self.errors
            ],
        }


@dataclass(frozen=True)
class ProgressSnapshot:
    """
    Point-in-time view of a run. A new instance is built for every emission.
    """

    phase: ImportPhase
    total_rows: int = 0
    processed_rows: int = 0
    success_count: int = 0
    failure_count: int = 0
    skipped_count: int = 0
    message: str = ""
    final_result: ImportResult | None = None
    error_message: str | None = None

    def __post_init__(self) -> None:
        if (self.final_result is not None) != (self.phase is ImportPhase.COMPLETE):
            raise ValueError("final_result must be set exactly when phase is Complete.")

    @property
    def percent_complete(self) -> Decimal:
        if self.total_rows <= 0:
            return Decimal("0")
        ratio = Decimal(self.processed_rows) / Decimal(self.total_rows) * 100
        return ratio.quantize(Decimal("0.1"))

    def to_dict(self) -> dict[str, object]:
        return {
            "phase": self.phase.value,
            "totalRows": self.total_rows,
            "processedRows": self.processed_rows,
            "successCount": self.success_count,
            "failureCount": self.failure_count,
            "skippedCount": self.skipped_count,
            "percentComplete": float(self.percent_complete),
            "message": self.message,
            "finalResult": self.final_result.to_dict() if self.final_result else None,
            "errorMessage": self.error_message,
        }


# ---------------------------------------------------------------------------
# Collaborator interfaces
# ---------------------------------------------------------------------------


class ModelLookup(Protocol):
    def model_exists(self, model_id: uuid.UUID) -> bool:
        ...


class BenchmarkResolver(Protocol):
    def resolve_benchmark_by_name(self, name: str) -> BenchmarkRef | None:
        """Case-insensitive lookup restricted to active benchmarks."""
        ...


class ExistingScoreLookup(Protocol):
    def score_exists(self, model_id: uuid.UUID, benchmark_id: uuid.UUID) -> bool:
        ...


class ScoreWriter(Protocol):
    def persist_score(self, score: ValidatedScore, *, overwrite: bool) -> PersistOutcome:
        """
        Write one score as its own unit of work.

        Raises RowPersistenceError for row-scoped failures and
        StorageUnavailableError for systemic ones.
        """
        ...


class CacheInvalidator(Protocol):
    def invalidate(self, patterns: Sequence[str]) -> int:
        ...
