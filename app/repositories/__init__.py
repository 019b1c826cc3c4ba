"""
app/repositories package marker.
"""

from app.repositories.benchmark_repository import BenchmarkRepository
from app.repositories.benchmark_score_repository import BenchmarkScoreRepository
from app.repositories.model_repository import ModelRepository

__all__ = [
    "BenchmarkRepository",
    "BenchmarkScoreRepository",
    "ModelRepository",
]
