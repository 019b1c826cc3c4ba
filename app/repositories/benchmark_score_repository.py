"""
app/repositories/benchmark_score_repository.py

Persistence for model benchmark scores.

Each `persist_score` call is its own transaction: it commits on success and
rolls back on failure, so the session is clean for the next row either way.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import func, literal_column, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.score_import import PersistOutcome, ValidatedScore
from app.repositories.storage_errors import translate_read_error, translate_write_error
from db.models.benchmark_score import MODEL_BENCHMARK_UNIQUE_CONSTRAINT, BenchmarkScore

_UPDATABLE_COLUMNS: tuple[str, ...] = (
    "score",
    "max_score",
    "normalized_score",
    "is_out_of_range",
    "test_date",
    "source_url",
    "verified",
    "notes",
)


class BenchmarkScoreRepository:
    """
    Repository for single-row score writes with PostgreSQL upsert semantics.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def score_exists(self, model_id: uuid.UUID, benchmark_id: uuid.UUID) -> bool:
        stmt = (
            select(BenchmarkScore.id)
            .where(BenchmarkScore.model_id == model_id)
            .where(BenchmarkScore.benchmark_id == benchmark_id)
            .limit(1)
        )
        try:
            return self._session.scalar(stmt) is not None
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise translate_read_error(exc) from exc

    def persist_score(self, score: ValidatedScore, *, overwrite: bool) -> PersistOutcome:
        """
        Insert one score; with `overwrite`, replace the existing pair's values.

        Without `overwrite` an existing pair is left untouched and
        ALREADY_EXISTS is returned.
        """

        payload = self._payload(score)
        stmt = insert(BenchmarkScore).values(payload)
        if overwrite:
            stmt = stmt.on_conflict_do_update(
                constraint=MODEL_BENCHMARK_UNIQUE_CONSTRAINT,
                set_={
                    **{column: stmt.excluded[column] for column in _UPDATABLE_COLUMNS},
                    "updated_at": func.now(),
                },
            )
        else:
            stmt = stmt.on_conflict_do_nothing(constraint=MODEL_BENCHMARK_UNIQUE_CONSTRAINT)
        # xmax is 0 for freshly inserted tuples and non-zero for upserted ones.
        stmt = stmt.returning(BenchmarkScore.id, literal_column("(xmax = 0)").label("inserted"))

        try:
            written = self._session.execute(stmt).first()
            self._session.commit()
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise translate_write_error(exc) from exc

        if written is None:
            return PersistOutcome.ALREADY_EXISTS
        return PersistOutcome.INSERTED if written.inserted else PersistOutcome.UPDATED

    @staticmethod
    def _payload(score: ValidatedScore) -> dict[str, Any]:
        return {
            "model_id": score.model_id,
            "benchmark_id": score.benchmark_id,
            "score": score.score,
            "max_score": score.max_score,
            "normalized_score": score.normalized_score,
            "is_out_of_range": score.is_out_of_range,
            "test_date": score.test_date,
            "source_url": score.source_url,
            "verified": score.verified,
            "notes": score.notes,
        }
