"""
app/cache package marker.
"""

from app.cache.response_cache import (
    InMemoryResponseCache,
    build_score_invalidation_patterns,
    get_response_cache,
)

__all__ = ["InMemoryResponseCache", "build_score_invalidation_patterns", "get_response_cache"]
