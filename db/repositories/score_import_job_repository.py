"""
Repository for score import job lifecycle persistence and status lookup.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Select, select
from sqlalchemy.orm import Session

from db.models.score_import_job import ScoreImportJob, ScoreImportJobStatus


class ScoreImportJobRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create_job(
        self,
        *,
        file_name: str,
        file_size_bytes: int,
        duplicate_mode: str,
    ) -> ScoreImportJob:
        job = ScoreImportJob(
            file_name=file_name,
            file_size_bytes=file_size_bytes,
            duplicate_mode=duplicate_mode,
            status=ScoreImportJobStatus.PENDING,
        )
        self._session.add(job)
        self._session.flush()
        self._session.refresh(job)
        return job

    def get_job(self, job_id: uuid.UUID) -> ScoreImportJob | None:
        return self._session.get(ScoreImportJob, job_id)

    def list_jobs(
        self,
        *,
        limit: int = 50,
        status: str | None = None,
    ) -> list[ScoreImportJob]:
        stmt: Select[tuple[ScoreImportJob]] = select(ScoreImportJob)

        if status:
            stmt = stmt.where(ScoreImportJob.status == status)

        stmt = stmt.order_by(ScoreImportJob.created_at.desc()).limit(max(1, limit))
        return list(self._session.scalars(stmt).all())

    def mark_running(self, *, job_id: uuid.UUID, total_rows: int = 0) -> ScoreImportJob | None:
        job = self.get_job(job_id)
        if job is None:
            return None
        job.status = ScoreImportJobStatus.RUNNING
        job.total_rows = total_rows
        job.started_at = datetime.now(timezone.utc)
        job.completed_at = None
        job.error_message = None
        return job

    def mark_finished(
        self,
        *,
        job_id: uuid.UUID,
        status: str,
        total_rows: int,
        successful_imports: int,
        failed_imports: int,
        skipped_duplicates: int,
        result_payload: dict[str, Any] | None = None,
        error_message: str | None = None,
    ) -> ScoreImportJob | None:
        job = self.get_job(job_id)
        if job is None:
            return None
        job.status = status
        job.total_rows = total_rows
        job.successful_imports = successful_imports
        job.failed_imports = failed_imports
        job.skipped_duplicates = skipped_duplicates
        job.completed_at = datetime.now(timezone.utc)
        job.error_message = error_message
        if result_payload is not None:
            job.result_payload = result_payload
        return job
