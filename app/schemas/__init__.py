"""
app/schemas package marker.
"""

from app.schemas.score_import import (
    ImportCancelResponse,
    ImportErrorEntryResponse,
    ImportJobListResponse,
    ImportJobStatusResponse,
    ImportMetaResponse,
    ImportResultEnvelope,
    ImportResultResponse,
)

__all__ = [
    "ImportCancelResponse",
    "ImportErrorEntryResponse",
    "ImportJobListResponse",
    "ImportJobStatusResponse",
    "ImportMetaResponse",
    "ImportResultEnvelope",
    "ImportResultResponse",
]
