"""
app/validators package marker.
"""

from app.validators.score_row_validator import RowValidationFailure, ScoreRowValidator

__all__ = [
    "RowValidationFailure",
    "ScoreRowValidator",
]
