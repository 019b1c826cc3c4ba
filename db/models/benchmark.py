"""
db/models/benchmark.py

Benchmark definition with the typical score range used for normalization.
"""

from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Index, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, TimestampMixin, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from db.models.benchmark_score import BenchmarkScore


class BenchmarkCategory:
    REASONING = "reasoning"
    CODE = "code"
    MATH = "math"
    LANGUAGE = "language"
    MULTIMODAL = "multimodal"


class BenchmarkInterpretation:
    HIGHER_BETTER = "higher_better"
    LOWER_BETTER = "lower_better"


class Benchmark(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """
    A named evaluation suite (MMLU, HumanEval, ...).

    typical_range_min / typical_range_max bound the scores normally seen for
    this benchmark; raw scores are normalized into [0, 1] against them.
    """

    __tablename__ = "benchmarks"

    benchmark_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    full_name: Mapped[str | None] = mapped_column(
        String(300),
        nullable=True,
    )

    description: Mapped[str | None] = mapped_column(
        String(1000),
        nullable=True,
    )

    category: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=BenchmarkCategory.REASONING,
    )

    interpretation: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=BenchmarkInterpretation.HIGHER_BETTER,
    )

    typical_range_min: Mapped[Decimal | None] = mapped_column(
        Numeric(5, 2),
        nullable=True,
    )

    typical_range_max: Mapped[Decimal | None] = mapped_column(
        Numeric(5, 2),
        nullable=True,
    )

    weight_in_qaps: Mapped[Decimal] = mapped_column(
        Numeric(3, 2),
        nullable=False,
        default=Decimal("0"),
        comment="Weight of this benchmark in the composite quality score",
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
    )

    scores: Mapped[list["BenchmarkScore"]] = relationship(
        "BenchmarkScore",
        back_populates="benchmark",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (Index("ix_benchmarks_is_active", "is_active"),)

    def __repr__(self) -> str:
        return f"<Benchmark id={self.id} name={self.benchmark_name!r}>"


# Names are unique regardless of case; lookups during import are case-insensitive.
Index("uq_benchmarks_name_lower", func.lower(Benchmark.benchmark_name), unique=True)
