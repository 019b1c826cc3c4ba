"""
Repository layer exports.
"""

from db.repositories.score_import_job_repository import ScoreImportJobRepository

__all__ = [
    "ScoreImportJobRepository",
]
