"""
db/models/benchmark_score.py

One model's result on one benchmark. At most one row per (model, benchmark).
"""

import uuid
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Date, ForeignKey, Index, Numeric, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, TimestampMixin, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from db.models.benchmark import Benchmark
    from db.models.llm_model import LLMModel

MODEL_BENCHMARK_UNIQUE_CONSTRAINT = "uq_model_benchmark_scores_model_benchmark"


class BenchmarkScore(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "model_benchmark_scores"

    model_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("models.id", ondelete="CASCADE"),
        nullable=False,
    )
    benchmark_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("benchmarks.id", ondelete="CASCADE"),
        nullable=False,
    )
    score: Mapped[Decimal] = mapped_column(Numeric(6, 2), nullable=False)
    max_score: Mapped[Decimal | None] = mapped_column(Numeric(6, 2), nullable=True)
    normalized_score: Mapped[Decimal] = mapped_column(
        Numeric(5, 4),
        nullable=False,
        comment="Score mapped into [0, 1] against the benchmark typical range",
    )
    is_out_of_range: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    test_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    source_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    notes: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    model: Mapped["LLMModel"] = relationship("LLMModel", back_populates="scores")
    benchmark: Mapped["Benchmark"] = relationship("Benchmark", back_populates="scores")

    __table_args__ = (
        UniqueConstraint("model_id", "benchmark_id", name=MODEL_BENCHMARK_UNIQUE_CONSTRAINT),
        Index("ix_model_benchmark_scores_model_id", "model_id"),
        Index("ix_model_benchmark_scores_benchmark_id", "benchmark_id"),
    )
