"""
app/parsers package marker.
"""

from app.parsers.score_import_parser import ParsedImportFile, ScoreImportParser

__all__ = ["ParsedImportFile", "ScoreImportParser"]
