"""
app/schemas/score_import.py

Request/response schemas for benchmark-score CSV import endpoints.

Responses are serialized in camelCase to match the progress stream payloads.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.domain.score_import import ImportResult


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ImportErrorEntryResponse(CamelModel):
    """
    One failed row with the raw column values needed to fix and resubmit it.
    """

    row_number: int = Field(..., ge=1)
    error: str
    code: str
    data: dict[str, str] = Field(default_factory=dict)


class ImportResultResponse(CamelModel):
    total_rows: int = Field(..., ge=0)
    successful_imports: int = Field(..., ge=0)
    failed_imports: int = Field(..., ge=0)
    skipped_duplicates: int = Field(..., ge=0)
    errors: list[ImportErrorEntryResponse] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: ImportResult) -> ImportResultResponse:
        return cls(
            total_rows=result.total_rows,
            successful_imports=result.successful_imports,
            failed_imports=result.failed_imports,
            skipped_duplicates=result.skipped_duplicates,
            errors=[
                ImportErrorEntryResponse(
                    row_number=error.row_number,
                    error=error.error,
                    code=error.code.value,
                    data=dict(error.original_data),
                )
                for error in result.errors
            ],
        )


class ImportMetaResponse(CamelModel):
    message: str
    timestamp: datetime
    job_id: UUID
    phase: str


class ImportResultEnvelope(CamelModel):
    data: ImportResultResponse
    meta: ImportMetaResponse


class ImportCancelResponse(CamelModel):
    job_id: UUID
    status: str = "cancelling"


class ImportJobStatusResponse(CamelModel):
    job_id: UUID
    file_name: str
    file_size_bytes: int
    duplicate_mode: str
    status: str
    active: bool = False
    total_rows: int = 0
    successful_imports: int = 0
    failed_imports: int = 0
    skipped_duplicates: int = 0
    result: dict[str, Any] | None = None
    error_message: str | None = None
    created_at: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None


class ImportJobListResponse(CamelModel):
    jobs: list[ImportJobStatusResponse] = Field(default_factory=list)
