"""
app/repositories/benchmark_repository.py

Benchmark lookups used while validating import rows.
"""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.score_import import BenchmarkRef
from app.repositories.storage_errors import translate_read_error
from db.models.benchmark import Benchmark


class BenchmarkRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def resolve_benchmark_by_name(self, name: str) -> BenchmarkRef | None:
        """
        Case-insensitive match on benchmark_name, active benchmarks only.
        """

        normalized = (name or "").strip().lower()
        if not normalized:
            return None

        stmt = (
            select(Benchmark)
            .where(func.lower(Benchmark.benchmark_name) == normalized)
            .where(Benchmark.is_active.is_(True))
            .limit(1)
        )
        try:
            benchmark = self._session.scalars(stmt).first()
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise translate_read_error(exc) from exc

        if benchmark is None:
            return None
        return BenchmarkRef(
            id=benchmark.id,
            name=benchmark.benchmark_name,
            typical_range_min=benchmark.typical_range_min,
            typical_range_max=benchmark.typical_range_max,
        )
