"""
db/models/score_import_job.py

Tracks one benchmark-score CSV import run and its terminal result.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class ScoreImportJobStatus:
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


class ScoreImportJob(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "score_import_jobs"

    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_size_bytes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    duplicate_mode: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        comment="skip or overwrite",
    )
    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=ScoreImportJobStatus.PENDING,
    )
    total_rows: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    successful_imports: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    failed_imports: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    skipped_duplicates: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    result_payload: Mapped[dict[str, Any] | None] = mapped_column(
        JSONB,
        nullable=True,
        comment="Final result: counters plus per-row errors",
    )
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_score_import_jobs_status", "status"),
        Index("ix_score_import_jobs_created_at", "created_at"),
    )
