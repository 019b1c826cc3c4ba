"""
tests/conftest.py

Shared pytest fixtures for the score import tests.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

import pytest

from app.config import CacheSettings, ScoreImportSettings
from app.services.score_import_service import ImportBackend, ScoreImportService
from tests.fixtures import (
    FakeBenchmarks,
    FakeCache,
    FakeModels,
    FakeScoreStore,
    InMemoryJobStore,
)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def models() -> FakeModels:
    return FakeModels()


@pytest.fixture()
def benchmarks() -> FakeBenchmarks:
    return FakeBenchmarks()


@pytest.fixture()
def score_store() -> FakeScoreStore:
    return FakeScoreStore()


@pytest.fixture()
def cache() -> FakeCache:
    return FakeCache()


@pytest.fixture()
def job_store() -> InMemoryJobStore:
    return InMemoryJobStore()


@pytest.fixture()
def import_settings() -> ScoreImportSettings:
    return ScoreImportSettings(
        max_file_bytes=4096,
        progress_every_rows=1,
        progress_interval_seconds=0.0,
        channel_capacity=256,
    )


@pytest.fixture()
def import_service(
    models: FakeModels,
    benchmarks: FakeBenchmarks,
    score_store: FakeScoreStore,
    cache: FakeCache,
    job_store: InMemoryJobStore,
    import_settings: ScoreImportSettings,
) -> ScoreImportService:
    @contextmanager
    def backend() -> Iterator[ImportBackend]:
        yield ImportBackend(
            models=models,
            benchmarks=benchmarks,
            existing_scores=score_store,
            writer=score_store,
        )

    return ScoreImportService(
        backend_factory=backend,
        job_store=job_store,
        cache=cache,
        settings=import_settings,
        cache_settings=CacheSettings(key_prefix="test:"),
    )
