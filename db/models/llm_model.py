"""
db/models/llm_model.py

LLM model catalogue entry. Benchmark scores reference rows in this table.
"""

from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, TimestampMixin, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from db.models.benchmark_score import BenchmarkScore


class LLMModel(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """
    One priced language model offered by a provider.
    """

    __tablename__ = "models"

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    provider: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        comment="Vendor offering the model (e.g., OpenAI, Anthropic)",
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        comment="Soft-delete flag",
    )

    # ── Relationships ──────────────────────────────────────────────────────────

    scores: Mapped[list["BenchmarkScore"]] = relationship(
        "BenchmarkScore",
        back_populates="model",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    # ── Indexes ────────────────────────────────────────────────────────────────

    __table_args__ = (
        Index("ix_models_provider", "provider"),
        Index("ix_models_is_active", "is_active"),
    )

    def __repr__(self) -> str:
        return f"<LLMModel id={self.id} name={self.name!r} provider={self.provider!r}>"
