"""
app/api/routers/score_import.py

Benchmark-score CSV import HTTP endpoints.
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from datetime import datetime, timezone
from uuid import UUID

from fastapi import APIRouter, Depends, Form, HTTPException, Query, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import StreamingResponse
from sqlalchemy.exc import SQLAlchemyError

from app.api.dependencies import CSVUploadPayload, read_csv_upload
from app.domain.score_import import DuplicateMode, ImportPhase, ProgressSnapshot
from app.schemas.score_import import (
    ImportCancelResponse,
    ImportJobListResponse,
    ImportJobStatusResponse,
    ImportMetaResponse,
    ImportResultEnvelope,
    ImportResultResponse,
)
from app.services.score_import_service import (
    ImportJobRecord,
    ImportRun,
    ScoreImportService,
    get_score_import_service,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/benchmarks", tags=["benchmark-import"])

_STREAM_POLL_SECONDS = 0.25


@router.post("/import-csv", response_model=ImportResultEnvelope)
def import_csv(
    payload: CSVUploadPayload = Depends(read_csv_upload),
    duplicate_mode: DuplicateMode | None = Form(default=None, description="skip (default) or overwrite"),
    import_service: ScoreImportService = Depends(get_score_import_service),
) -> ImportResultEnvelope:
    """
    Import one CSV file and return the final result once every row is handled.
    """

    logger.info(
        "Score CSV import requested file=%s size=%s",
        payload.file_name,
        len(payload.content),
    )
    try:
        outcome = import_service.run_import(
            content=payload.content,
            file_name=payload.file_name,
            duplicate_mode=duplicate_mode,
        )
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Score import storage is unavailable.",
        ) from exc

    terminal = outcome.terminal
    if terminal.phase is ImportPhase.FAILED:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": terminal.error_message or "CSV file could not be processed.",
                "jobId": str(outcome.job_id),
            },
        )

    result = outcome.result
    if terminal.phase is ImportPhase.COMPLETE:
        message = (
            f"Import completed: {result.successful_imports} successful, "
            f"{result.failed_imports} failed, {result.skipped_duplicates} skipped"
        )
    else:
        message = terminal.message

    return ImportResultEnvelope(
        data=ImportResultResponse.from_result(result),
        meta=ImportMetaResponse(
            message=message,
            timestamp=datetime.now(timezone.utc),
            job_id=outcome.job_id,
            phase=terminal.phase.value,
        ),
    )


@router.post("/import-csv-stream")
def import_csv_stream(
    request: Request,
    payload: CSVUploadPayload = Depends(read_csv_upload),
    duplicate_mode: DuplicateMode | None = Form(default=None, description="skip (default) or overwrite"),
    import_service: ScoreImportService = Depends(get_score_import_service),
) -> StreamingResponse:
    """
    Import one CSV file, streaming ProgressSnapshot events as server-sent events.

    The stream ends after the terminal snapshot. Closing the connection
    cancels the run.
    """

    try:
        run = import_service.start_import(
            content=payload.content,
            file_name=payload.file_name,
            duplicate_mode=duplicate_mode,
        )
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Score import storage is unavailable.",
        ) from exc

    return StreamingResponse(
        _stream_progress(request, run),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@router.post(
    "/imports/{job_id}/cancel",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=ImportCancelResponse,
)
def cancel_import(
    job_id: UUID,
    import_service: ScoreImportService = Depends(get_score_import_service),
) -> ImportCancelResponse:
    if not import_service.cancel_import(job_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No active score import: {job_id}",
        )
    return ImportCancelResponse(job_id=job_id)


@router.get("/imports/{job_id}", response_model=ImportJobStatusResponse)
def get_import(
    job_id: UUID,
    import_service: ScoreImportService = Depends(get_score_import_service),
) -> ImportJobStatusResponse:
    job = import_service.get_job(job_id)
    if job is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Score import job not found: {job_id}",
        )
    return _to_status_response(job, active=import_service.is_active(job_id))


@router.get("/imports", response_model=ImportJobListResponse)
def list_imports(
    status_filter: str | None = Query(default=None, alias="status", description="Optional status filter"),
    limit: int = Query(default=50, ge=1, le=500, description="Max jobs returned"),
    import_service: ScoreImportService = Depends(get_score_import_service),
) -> ImportJobListResponse:
    jobs = import_service.list_jobs(limit=limit, status=status_filter)
    return ImportJobListResponse(
        jobs=[_to_status_response(job, active=import_service.is_active(job.job_id)) for job in jobs]
    )


async def _stream_progress(request: Request, run: ImportRun) -> AsyncIterator[str]:
    finished = False
    try:
        while True:
            snapshot = await run_in_threadpool(run.channel.get, _STREAM_POLL_SECONDS)
            if snapshot is None:
                if await request.is_disconnected():
                    logger.info("Score import stream client disconnected job_id=%s", run.job_id)
                    break
                if run.thread.is_alive():
                    continue
                snapshot = run.channel.get(timeout=0)
                if snapshot is None:
                    logger.warning("Score import worker exited without terminal event job_id=%s", run.job_id)
                    break

            yield _format_event(run.job_id, snapshot)
            if snapshot.phase.is_terminal:
                finished = True
                break
    finally:
        if not finished:
            run.channel.cancel()


def _format_event(job_id: UUID, snapshot: ProgressSnapshot) -> str:
    body = {"jobId": str(job_id), **snapshot.to_dict()}
    return f"data: {json.dumps(body)}\n\n"


def _to_status_response(job: ImportJobRecord, *, active: bool) -> ImportJobStatusResponse:
    return ImportJobStatusResponse(
        job_id=job.job_id,
        file_name=job.file_name,
        file_size_bytes=job.file_size_bytes,
        duplicate_mode=job.duplicate_mode,
        status=job.status,
        active=active,
        total_rows=job.total_rows,
        successful_imports=job.successful_imports,
        failed_imports=job.failed_imports,
        skipped_duplicates=job.skipped_duplicates,
        result=job.result,
        error_message=job.error_message,
        created_at=job.created_at,
        started_at=job.started_at,
        completed_at=job.completed_at,
    )
