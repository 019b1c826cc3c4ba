"""
app/services/score_import_service.py

Entry point for benchmark-score CSV imports.

Wires one ScoreImportCoordinator per upload to its collaborators (storage
lookups and writes, duplicate policy, response cache), tracks the run as a
`score_import_jobs` row, and executes it either inline (one-shot endpoint)
or on a dedicated worker thread feeding a ProgressChannel (streaming
endpoint).
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Callable, Iterator
from contextlib import AbstractContextManager, contextmanager
from dataclasses import dataclass
from datetime import datetime
from functools import lru_cache
from typing import Any, Protocol

from sqlalchemy.orm import Session

from app.cache.response_cache import get_response_cache
from app.config import (
    CacheSettings,
    ScoreImportSettings,
    get_cache_settings,
    get_score_import_settings,
)
from app.domain.score_import import (
    BenchmarkResolver,
    CacheInvalidator,
    DuplicateMode,
    ExistingScoreLookup,
    ImportPhase,
    ImportResult,
    ModelLookup,
    ProgressSnapshot,
    ScoreWriter,
)
from app.repositories.benchmark_repository import BenchmarkRepository
from app.repositories.benchmark_score_repository import BenchmarkScoreRepository
from app.repositories.model_repository import ModelRepository
from app.services.duplicate_resolver import DuplicateResolver
from app.services.progress_channel import DiscardingProgressSink, ProgressChannel, ProgressSink
from app.services.score_import_coordinator import ScoreImportCoordinator
from app.validators.score_row_validator import ScoreRowValidator
from db.models.score_import_job import ScoreImportJob, ScoreImportJobStatus
from db.repositories.score_import_job_repository import ScoreImportJobRepository

logger = logging.getLogger(__name__)

_TERMINAL_STATUS: dict[ImportPhase, str] = {
    ImportPhase.COMPLETE: ScoreImportJobStatus.COMPLETED,
    ImportPhase.CANCELLED: ScoreImportJobStatus.CANCELLED,
    ImportPhase.FAILED: ScoreImportJobStatus.FAILED,
}


# ---------------------------------------------------------------------------
# Collaborator bundles
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ImportBackend:
    """
    Storage collaborators for one run, all bound to the same session.
    """

    models: ModelLookup
    benchmarks: BenchmarkResolver
    existing_scores: ExistingScoreLookup
    writer: ScoreWriter


BackendFactory = Callable[[], AbstractContextManager[ImportBackend]]


def sql_import_backend(
    session_factory: Callable[[], Session] | None = None,
) -> BackendFactory:
    """
    Backend factory opening a dedicated SQLAlchemy session per run.
    """

    if session_factory is None:
        from db.session import SessionLocal

        session_factory = SessionLocal

    @contextmanager
    def _open() -> Iterator[ImportBackend]:
        with session_factory() as db:
            scores = BenchmarkScoreRepository(db)
            yield ImportBackend(
                models=ModelRepository(db),
                benchmarks=BenchmarkRepository(db),
                existing_scores=scores,
                writer=scores,
            )

    return _open


@dataclass(frozen=True)
class ImportJobRecord:
    """
    Detached view of a score_import_jobs row.
    """

    job_id: uuid.UUID
    file_name: str
    file_size_bytes: int
    duplicate_mode: str
    status: str
    total_rows: int = 0
    successful_imports: int = 0
    failed_imports: int = 0
    skipped_duplicates: int = 0
    result: dict[str, Any] | None = None
    error_message: str | None = None
    created_at: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None


class ImportJobStore(Protocol):
    def create(self, *, file_name: str, file_size_bytes: int, duplicate_mode: str) -> ImportJobRecord:
        ...

    def mark_running(self, job_id: uuid.UUID) -> None:
        ...

    def mark_finished(
        self,
        job_id: uuid.UUID,
        *,
        status: str,
        result: ImportResult,
        error_message: str | None,
    ) -> None:
        ...

    def get(self, job_id: uuid.UUID) -> ImportJobRecord | None:
        ...

    def recent(self, *, limit: int = 50, status: str | None = None) -> list[ImportJobRecord]:
        ...


class SqlImportJobStore:
    """
    ImportJobStore backed by the score_import_jobs table.
    """

    def __init__(self, session_factory: Callable[[], Session] | None = None) -> None:
        if session_factory is None:
            from db.session import SessionLocal

            self._session_factory = SessionLocal
        else:
            self._session_factory = session_factory

    def create(self, *, file_name: str, file_size_bytes: int, duplicate_mode: str) -> ImportJobRecord:
        with self._session_factory() as db:
            repository = ScoreImportJobRepository(db)
            with db.begin():
                job = repository.create_job(
                    file_name=file_name,
                    file_size_bytes=file_size_bytes,
                    duplicate_mode=duplicate_mode,
                )
            return _to_record(job)

    def mark_running(self, job_id: uuid.UUID) -> None:
        with self._session_factory() as db:
            with db.begin():
                if ScoreImportJobRepository(db).mark_running(job_id=job_id) is None:
                    raise RuntimeError(f"Score import job not found: {job_id}")

    def mark_finished(
        self,
        job_id: uuid.UUID,
        *,
        status: str,
        result: ImportResult,
        error_message: str | None,
    ) -> None:
        with self._session_factory() as db:
            with db.begin():
                job = ScoreImportJobRepository(db).mark_finished(
                    job_id=job_id,
                    status=status,
                    total_rows=result.total_rows,
                    successful_imports=result.successful_imports,
                    failed_imports=result.failed_imports,
                    skipped_duplicates=result.skipped_duplicates,
                    result_payload=result.to_dict(),
                    error_message=error_message[:2000] if error_message else None,
                )
                if job is None:
                    raise RuntimeError(f"Score import job not found: {job_id}")

    def get(self, job_id: uuid.UUID) -> ImportJobRecord | None:
        with self._session_factory() as db:
            job = ScoreImportJobRepository(db).get_job(job_id)
            return _to_record(job) if job is not None else None

    def recent(self, *, limit: int = 50, status: str | None = None) -> list[ImportJobRecord]:
        with self._session_factory() as db:
            jobs = ScoreImportJobRepository(db).list_jobs(limit=limit, status=status)
            return [_to_record(job) for job in jobs]


def _to_record(job: ScoreImportJob) -> ImportJobRecord:
    return ImportJobRecord(
        job_id=job.id,
        file_name=job.file_name,
        file_size_bytes=job.file_size_bytes,
        duplicate_mode=job.duplicate_mode,
        status=job.status,
        total_rows=job.total_rows,
        successful_imports=job.successful_imports,
        failed_imports=job.failed_imports,
        skipped_duplicates=job.skipped_duplicates,
        result=job.result_payload,
        error_message=job.error_message,
        created_at=job.created_at,
        started_at=job.started_at,
        completed_at=job.completed_at,
    )


# ---------------------------------------------------------------------------
# Runs
# ---------------------------------------------------------------------------


class CancellableSink(ProgressSink, Protocol):
    def cancel(self) -> None:
        ...


@dataclass(frozen=True)
class ImportRun:
    """
    Handle on an import running in the background.
    """

    job_id: uuid.UUID
    channel: ProgressChannel
    thread: threading.Thread


@dataclass(frozen=True)
class ImportOutcome:
    job_id: uuid.UUID
    terminal: ProgressSnapshot
    result: ImportResult


class ScoreImportService:
    """
    Creates, executes, cancels and reports benchmark-score import runs.

    Runs are independent: each gets its own coordinator, its own storage
    session and its own progress sink. The only shared state is the table of
    active runs used for explicit cancellation.
    """

    def __init__(
        self,
        *,
        backend_factory: BackendFactory | None = None,
        job_store: ImportJobStore | None = None,
        cache: CacheInvalidator | None = None,
        settings: ScoreImportSettings | None = None,
        cache_settings: CacheSettings | None = None,
    ) -> None:
        self._backend_factory = backend_factory or sql_import_backend()
        self._job_store = job_store or SqlImportJobStore()
        self._cache = cache if cache is not None else get_response_cache()
        self._settings = settings or get_score_import_settings()
        self._cache_settings = cache_settings or get_cache_settings()
        self._active: dict[uuid.UUID, CancellableSink] = {}
        self._active_lock = threading.Lock()

    @property
    def settings(self) -> ScoreImportSettings:
        return self._settings

    def run_import(
        self,
        *,
        content: bytes,
        file_name: str,
        duplicate_mode: DuplicateMode | None = None,
    ) -> ImportOutcome:
        """
        Execute an import on the calling thread and return its outcome.
        """

        mode = duplicate_mode or self._settings.default_duplicate_mode
        job = self._job_store.create(
            file_name=file_name,
            file_size_bytes=len(content),
            duplicate_mode=mode.value,
        )
        sink = DiscardingProgressSink()
        self._register(job.job_id, sink)
        return self._execute(job.job_id, content, mode, sink)

    def start_import(
        self,
        *,
        content: bytes,
        file_name: str,
        duplicate_mode: DuplicateMode | None = None,
    ) -> ImportRun:
        """
        Start an import on a worker thread; progress flows through the
        returned run's channel.
        """

        mode = duplicate_mode or self._settings.default_duplicate_mode
        job = self._job_store.create(
            file_name=file_name,
            file_size_bytes=len(content),
            duplicate_mode=mode.value,
        )
        channel = ProgressChannel(
            capacity=self._settings.channel_capacity,
            every_rows=self._settings.progress_every_rows,
            interval_seconds=self._settings.progress_interval_seconds,
        )
        self._register(job.job_id, channel)
        thread = threading.Thread(
            target=self._execute,
            args=(job.job_id, content, mode, channel),
            name=f"score-import-{job.job_id}",
            daemon=True,
        )
        try:
            thread.start()
        except RuntimeError:
            self._unregister(job.job_id)
            self._job_store.mark_finished(
                job.job_id,
                status=ScoreImportJobStatus.FAILED,
                result=ImportResult(0, 0, 0, 0),
                error_message="Failed to start score import worker.",
            )
            raise
        logger.info("Score import started job_id=%s file=%s mode=%s", job.job_id, file_name, mode.value)
        return ImportRun(job_id=job.job_id, channel=channel, thread=thread)

    def cancel_import(self, job_id: uuid.UUID) -> bool:
        """
        Request cancellation of an active run. False when the run is unknown
        or already finished.
        """

        with self._active_lock:
            sink = self._active.get(job_id)
        if sink is None:
            return False
        sink.cancel()
        logger.info("Score import cancellation requested job_id=%s", job_id)
        return True

    def is_active(self, job_id: uuid.UUID) -> bool:
        with self._active_lock:
            return job_id in self._active

    def get_job(self, job_id: uuid.UUID) -> ImportJobRecord | None:
        return self._job_store.get(job_id)

    def list_jobs(self, *, limit: int = 50, status: str | None = None) -> list[ImportJobRecord]:
        return self._job_store.recent(limit=limit, status=status)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def _execute(
        self,
        job_id: uuid.UUID,
        content: bytes,
        mode: DuplicateMode,
        sink: CancellableSink,
    ) -> ImportOutcome:
        try:
            self._job_store.mark_running(job_id)
            with self._backend_factory() as backend:
                coordinator = self._build_coordinator(backend, mode, sink, job_id)
                terminal = coordinator.run(content)
                result = coordinator.result
        except Exception as exc:
            logger.exception("Score import run failed to start job_id=%s", job_id)
            result = ImportResult(0, 0, 0, 0)
            terminal = ProgressSnapshot(
                phase=ImportPhase.FAILED,
                message="Import failed",
                error_message=f"{type(exc).__name__}: {exc}",
            )
            self._publish_quietly(sink, terminal)
        finally:
            self._unregister(job_id)

        self._record_outcome(job_id, terminal, result)
        return ImportOutcome(job_id=job_id, terminal=terminal, result=result)

    def _build_coordinator(
        self,
        backend: ImportBackend,
        mode: DuplicateMode,
        sink: ProgressSink,
        job_id: uuid.UUID,
    ) -> ScoreImportCoordinator:
        settings = self._settings
        return ScoreImportCoordinator(
            validator=ScoreRowValidator(
                models=backend.models,
                benchmarks=backend.benchmarks,
                max_notes_length=settings.max_notes_length,
                default_range_min=settings.default_range_min,
                default_range_max=settings.default_range_max,
            ),
            duplicate_resolver=DuplicateResolver(
                existing_scores=backend.existing_scores,
                mode=mode,
            ),
            writer=backend.writer,
            progress=sink,
            cache=self._cache,
            cache_key_prefix=self._cache_settings.key_prefix,
            log_row_failures=settings.log_row_failures,
            run_label=str(job_id),
        )

    def _record_outcome(
        self,
        job_id: uuid.UUID,
        terminal: ProgressSnapshot,
        result: ImportResult,
    ) -> None:
        try:
            self._job_store.mark_finished(
                job_id,
                status=_TERMINAL_STATUS[terminal.phase],
                result=result,
                error_message=terminal.error_message,
            )
        except Exception:
            logger.exception("Failed to persist score import outcome job_id=%s", job_id)

    @staticmethod
    def _publish_quietly(sink: ProgressSink, snapshot: ProgressSnapshot) -> None:
        try:
            sink.publish(snapshot)
        except ValueError:
            # Terminal snapshot already delivered by the coordinator.
            logger.debug("Terminal snapshot already published phase=%s", snapshot.phase.value)

    def _register(self, job_id: uuid.UUID, sink: CancellableSink) -> None:
        with self._active_lock:
            self._active[job_id] = sink

    def _unregister(self, job_id: uuid.UUID) -> None:
        with self._active_lock:
            self._active.pop(job_id, None)


@lru_cache(maxsize=1)
def get_score_import_service() -> ScoreImportService:
    return ScoreImportService()
