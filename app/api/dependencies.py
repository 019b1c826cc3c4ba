"""
app/api/dependencies.py

Shared FastAPI dependencies for request validation.
"""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Depends, File, HTTPException, UploadFile, status

from app.config import ScoreImportSettings, get_score_import_settings

CSV_CONTENT_TYPES = {
    "text/csv",
    "application/csv",
    "application/vnd.ms-excel",
}


@dataclass(frozen=True)
class CSVUploadPayload:
    file_name: str
    content: bytes


def get_csv_upload(file: UploadFile = File(...)) -> UploadFile:
    """
    Validate that the uploaded file is a CSV by extension or MIME type.
    """

    filename = (file.filename or "").strip().lower()
    content_type = (file.content_type or "").strip().lower()

    is_csv_filename = filename.endswith(".csv")
    is_csv_content_type = content_type in CSV_CONTENT_TYPES

    if not is_csv_filename and not is_csv_content_type:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="File must be CSV format.",
        )

    return file


def read_csv_upload(
    file: UploadFile = Depends(get_csv_upload),
    settings: ScoreImportSettings = Depends(get_score_import_settings),
) -> CSVUploadPayload:
    """
    Read the validated CSV upload into memory, enforcing the size limit.
    """

    try:
        file.file.seek(0)
        content = file.file.read(settings.max_file_bytes + 1)
    finally:
        file.file.close()

    if not content:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No file uploaded.",
        )
    if len(content) > settings.max_file_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File exceeds the {settings.max_file_bytes} byte limit.",
        )

    return CSVUploadPayload(file_name=file.filename or "upload.csv", content=content)
