"""
tests/test_score_import_service.py

Job lifecycle, worker-thread runs and explicit cancellation.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterator
from contextlib import contextmanager

from app.config import CacheSettings, ScoreImportSettings
from app.domain.score_import import DuplicateMode, ImportPhase
from app.services.score_import_service import ImportBackend, ScoreImportService
from tests.fixtures import (
    EXTRA_MODELS,
    MMLU_ID,
    MODEL_A,
    FakeBenchmarks,
    FakeCache,
    FakeModels,
    FakeScoreStore,
    InMemoryJobStore,
    csv_text,
    valid_line,
)


def ten_rows() -> bytes:
    return csv_text(*(valid_line(model_id, "MMLU") for model_id in EXTRA_MODELS)).encode("utf-8")


class TestRunImport:
    def test_completed_run_is_recorded(self, import_service: ScoreImportService, job_store: InMemoryJobStore) -> None:
        outcome = import_service.run_import(
            content=csv_text(valid_line(), f"{MODEL_A},HumanEval,abc").encode("utf-8"),
            file_name="scores.csv",
        )

        assert outcome.terminal.phase is ImportPhase.COMPLETE
        job = job_store.get(outcome.job_id)
        assert job is not None
        assert job.status == "completed"
        assert job.duplicate_mode == "skip"
        assert (job.total_rows, job.successful_imports, job.failed_imports) == (2, 1, 1)
        assert job.result is not None
        assert job.result["errors"][0]["rowNumber"] == 2
        assert not import_service.is_active(outcome.job_id)

    def test_explicit_duplicate_mode_is_used(
        self,
        import_service: ScoreImportService,
        score_store: FakeScoreStore,
    ) -> None:
        score_store.rows[(MODEL_A, MMLU_ID)] = None

        outcome = import_service.run_import(
            content=csv_text(valid_line()).encode("utf-8"),
            file_name="scores.csv",
            duplicate_mode=DuplicateMode.OVERWRITE,
        )

        assert outcome.result.successful_imports == 1
        assert score_store.writes == [(1, True)]

    def test_malformed_file_is_recorded_as_failed(
        self,
        import_service: ScoreImportService,
        job_store: InMemoryJobStore,
    ) -> None:
        outcome = import_service.run_import(content=b"a,b,c\n1,2,3\n", file_name="bad.csv")

        job = job_store.get(outcome.job_id)
        assert outcome.terminal.phase is ImportPhase.FAILED
        assert job is not None
        assert job.status == "failed"
        assert "missing required column" in (job.error_message or "")

    def test_backend_failure_fails_run(self, job_store: InMemoryJobStore) -> None:
        @contextmanager
        def broken_backend() -> Iterator[ImportBackend]:
            raise ConnectionError("database unreachable")
            yield  # pragma: no cover

        service = ScoreImportService(
            backend_factory=broken_backend,
            job_store=job_store,
            cache=FakeCache(),
            settings=ScoreImportSettings(),
            cache_settings=CacheSettings(),
        )

        outcome = service.run_import(content=csv_text(valid_line()).encode("utf-8"), file_name="scores.csv")

        assert outcome.terminal.phase is ImportPhase.FAILED
        assert "database unreachable" in (outcome.terminal.error_message or "")
        assert job_store.jobs[outcome.job_id].status == "failed"


class TestStartImport:
    def test_streamed_run_delivers_terminal_snapshot(
        self,
        import_service: ScoreImportService,
        job_store: InMemoryJobStore,
    ) -> None:
        run = import_service.start_import(content=ten_rows(), file_name="scores.csv")

        snapshots = list(run.channel.iter_snapshots(timeout=0.05))
        run.thread.join(timeout=5)

        assert snapshots[0].phase is ImportPhase.PARSING
        assert snapshots[-1].phase is ImportPhase.COMPLETE
        assert snapshots[-1].final_result is not None
        assert snapshots[-1].final_result.successful_imports == 10
        assert job_store.jobs[run.job_id].status == "completed"

    def test_cancel_stops_active_run(self, job_store: InMemoryJobStore) -> None:
        @contextmanager
        def backend() -> Iterator[ImportBackend]:
            store = FakeScoreStore()
            yield ImportBackend(
                models=FakeModels(),
                benchmarks=FakeBenchmarks(),
                existing_scores=store,
                writer=store,
            )

        service = ScoreImportService(
            backend_factory=backend,
            job_store=job_store,
            cache=FakeCache(),
            settings=ScoreImportSettings(channel_capacity=1, progress_every_rows=1, progress_interval_seconds=0.0),
            cache_settings=CacheSettings(),
        )

        # Nobody reads the channel, so the worker blocks once it is full.
        run = service.start_import(content=ten_rows(), file_name="scores.csv")
        assert service.cancel_import(run.job_id) is True
        run.thread.join(timeout=5)

        job = job_store.jobs[run.job_id]
        assert not run.thread.is_alive()
        assert job.status == "cancelled"
        assert job.successful_imports + job.failed_imports + job.skipped_duplicates < 10
        assert service.cancel_import(run.job_id) is False

    def test_cancel_unknown_job(self, import_service: ScoreImportService) -> None:
        assert import_service.cancel_import(uuid.uuid4()) is False


class TestJobQueries:
    def test_list_and_get(self, import_service: ScoreImportService) -> None:
        first = import_service.run_import(content=csv_text(valid_line()).encode("utf-8"), file_name="a.csv")
        import_service.run_import(content=b"x\n", file_name="b.csv")

        assert import_service.get_job(first.job_id) is not None
        assert len(import_service.list_jobs()) == 2
        assert [job.file_name for job in import_service.list_jobs(status="failed")] == ["b.csv"]
