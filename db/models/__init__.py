"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.benchmark import Benchmark
from db.models.benchmark_score import BenchmarkScore
from db.models.llm_model import LLMModel
from db.models.score_import_job import ScoreImportJob

__all__ = [
    "Benchmark",
    "BenchmarkScore",
    "LLMModel",
    "ScoreImportJob",
]
