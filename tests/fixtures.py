"""
tests/fixtures.py

In-memory collaborators shared by the score import tests. No database, no
network: every fake is a plain Python object recording what was asked of it.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from dataclasses import replace
from datetime import datetime, timezone
from decimal import Decimal

from app.domain.score_import import (
    BenchmarkRef,
    ImportResult,
    PersistOutcome,
    RowLookupError,
    RowPersistenceError,
    StorageUnavailableError,
    ValidatedScore,
)
from app.services.score_import_service import ImportJobRecord

MODEL_A = uuid.UUID("11111111-1111-4111-8111-111111111111")
MODEL_B = uuid.UUID("22222222-2222-4222-8222-222222222222")
MMLU_ID = uuid.UUID("aaaaaaaa-aaaa-4aaa-8aaa-aaaaaaaaaaaa")
HUMANEVAL_ID = uuid.UUID("bbbbbbbb-bbbb-4bbb-8bbb-bbbbbbbbbbbb")
FLAT_ID = uuid.UUID("cccccccc-cccc-4ccc-8ccc-cccccccccccc")

EXTRA_MODELS = tuple(uuid.UUID(int=0x1000 + index) for index in range(10))

HEADER = "model_id,benchmark_name,score,max_score,test_date,source_url,verified,notes"


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeModels:
    def __init__(
        self,
        model_ids: Sequence[uuid.UUID] = (MODEL_A, MODEL_B, *EXTRA_MODELS),
        *,
        rejected_ids: Sequence[uuid.UUID] = (),
    ) -> None:
        self.model_ids = set(model_ids)
        self.rejected_ids = set(rejected_ids)
        self.calls: list[uuid.UUID] = []

    def model_exists(self, model_id: uuid.UUID) -> bool:
        self.calls.append(model_id)
        if model_id in self.rejected_ids:
            raise RowLookupError("invalid input value for model id")
        return model_id in self.model_ids


class FakeBenchmarks:
    """
    Names containing a NUL byte fail the way PostgreSQL rejects them.
    """

    def __init__(self, benchmarks: Sequence[BenchmarkRef] | None = None) -> None:
        if benchmarks is None:
            benchmarks = (
                BenchmarkRef(MMLU_ID, "MMLU", Decimal("0"), Decimal("100")),
                BenchmarkRef(HUMANEVAL_ID, "HumanEval", Decimal("60"), Decimal("95")),
                BenchmarkRef(FLAT_ID, "Flat", None, None),
            )
        self.by_name = {benchmark.name.lower(): benchmark for benchmark in benchmarks}
        self.calls: list[str] = []

    def resolve_benchmark_by_name(self, name: str) -> BenchmarkRef | None:
        self.calls.append(name)
        if "\x00" in name:
            raise RowLookupError("PostgreSQL text fields cannot contain NUL (0x00) bytes")
        return self.by_name.get(name.strip().lower())


class FakeScoreStore:
    """
    Existing-score lookup and score writer over a dict keyed by pair.

    `fail_rows` makes the given row numbers raise RowPersistenceError;
    `unavailable_from_row` makes every write from that row on raise
    StorageUnavailableError; `rejected_pairs` makes the existence check for
    those pairs raise RowLookupError.
    """

    def __init__(
        self,
        *,
        existing: Sequence[tuple[uuid.UUID, uuid.UUID]] = (),
        fail_rows: Sequence[int] = (),
        unavailable_from_row: int | None = None,
        rejected_pairs: Sequence[tuple[uuid.UUID, uuid.UUID]] = (),
    ) -> None:
        self.rows: dict[tuple[uuid.UUID, uuid.UUID], ValidatedScore | None] = {
            pair: None for pair in existing
        }
        self.fail_rows = set(fail_rows)
        self.unavailable_from_row = unavailable_from_row
        self.rejected_pairs = set(rejected_pairs)
        self.writes: list[tuple[int, bool]] = []

    def score_exists(self, model_id: uuid.UUID, benchmark_id: uuid.UUID) -> bool:
        if (model_id, benchmark_id) in self.rejected_pairs:
            raise RowLookupError("invalid input syntax for type uuid")
        return (model_id, benchmark_id) in self.rows

    def persist_score(self, score: ValidatedScore, *, overwrite: bool) -> PersistOutcome:
        if self.unavailable_from_row is not None and score.row_number >= self.unavailable_from_row:
            raise StorageUnavailableError("connection refused")
        if score.row_number in self.fail_rows:
            raise RowPersistenceError("value too long for column")

        self.writes.append((score.row_number, overwrite))
        if score.pair in self.rows:
            if not overwrite:
                return PersistOutcome.ALREADY_EXISTS
            self.rows[score.pair] = score
            return PersistOutcome.UPDATED
        self.rows[score.pair] = score
        return PersistOutcome.INSERTED

    def written_rows(self) -> list[int]:
        return [row_number for row_number, _ in self.writes]


class FakeCache:
    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[list[str]] = []

    def invalidate(self, patterns: Sequence[str]) -> int:
        self.calls.append(list(patterns))
        if self.fail:
            raise ConnectionError("cache down")
        return len(patterns)


class InMemoryJobStore:
    def __init__(self) -> None:
        self.jobs: dict[uuid.UUID, ImportJobRecord] = {}

    def create(self, *, file_name: str, file_size_bytes: int, duplicate_mode: str) -> ImportJobRecord:
        job = ImportJobRecord(
            job_id=uuid.uuid4(),
            file_name=file_name,
            file_size_bytes=file_size_bytes,
            duplicate_mode=duplicate_mode,
            status="pending",
            created_at=datetime.now(timezone.utc),
        )
        self.jobs[job.job_id] = job
        return job

    def mark_running(self, job_id: uuid.UUID) -> None:
        self.jobs[job_id] = replace(
            self.jobs[job_id],
            status="running",
            started_at=datetime.now(timezone.utc),
        )

    def mark_finished(
        self,
        job_id: uuid.UUID,
        *,
        status: str,
        result: ImportResult,
        error_message: str | None,
    ) -> None:
        self.jobs[job_id] = replace(
            self.jobs[job_id],
            status=status,
            total_rows=result.total_rows,
            successful_imports=result.successful_imports,
            failed_imports=result.failed_imports,
            skipped_duplicates=result.skipped_duplicates,
            result=result.to_dict(),
            error_message=error_message,
            completed_at=datetime.now(timezone.utc),
        )

    def get(self, job_id: uuid.UUID) -> ImportJobRecord | None:
        return self.jobs.get(job_id)

    def recent(self, *, limit: int = 50, status: str | None = None) -> list[ImportJobRecord]:
        jobs = [job for job in self.jobs.values() if status is None or job.status == status]
        return jobs[:limit]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def csv_text(*lines: str, header: str = HEADER) -> str:
    return "\n".join((header, *lines)) + "\n"


def valid_line(model_id: uuid.UUID = MODEL_A, benchmark: str = "MMLU", score: str = "87.5") -> str:
    return f"{model_id},{benchmark},{score},,2026-03-01,https://example.com/report,true,"


