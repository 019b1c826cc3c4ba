"""
app/cache/response_cache.py

In-process response cache keyed by colon-separated strings, plus the key
patterns that must be dropped after benchmark scores change.

Key layout (prefix defaults to "llmpricing:"):

    {prefix}model:{model_id}:...   per-model detail and score views
    {prefix}models:...             model listings
    {prefix}qaps:...               composite quality scores
    {prefix}bestvalue:...          derived rankings
"""

from __future__ import annotations

import fnmatch
import logging
import threading
import time
import uuid
from collections.abc import Callable, Iterable, Sequence
from functools import lru_cache
from typing import Any

logger = logging.getLogger(__name__)

DERIVED_SCORE_KEY_SPACES: tuple[str, ...] = ("models", "qaps", "bestvalue")


def build_score_invalidation_patterns(
    model_ids: Iterable[uuid.UUID],
    *,
    prefix: str = "llmpricing:",
) -> list[str]:
    """
    Glob patterns covering every entry affected by new scores for `model_ids`.
    """

    patterns = [f"{prefix}model:{model_id}:*" for model_id in model_ids]
    patterns.extend(f"{prefix}{space}:*" for space in DERIVED_SCORE_KEY_SPACES)
    return patterns


class InMemoryResponseCache:
    """
    Thread-safe key/value cache with optional per-entry TTL and glob
    invalidation. Shared by request handlers and import worker threads.
    """

    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._entries: dict[str, tuple[Any, float | None]] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if expires_at is not None and expires_at <= self._clock():
                del self._entries[key]
                return None
            return value

    def set(self, key: str, value: Any, *, ttl_seconds: float | None = None) -> None:
        expires_at = self._clock() + ttl_seconds if ttl_seconds is not None else None
        with self._lock:
            self._entries[key] = (value, expires_at)

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._entries)

    def invalidate(self, patterns: Sequence[str]) -> int:
        """
        Drop every key matching any of `patterns`. Returns the number removed.
        """

        with self._lock:
            doomed = [
                key
                for key in self._entries
                if any(fnmatch.fnmatchcase(key, pattern) for pattern in patterns)
            ]
            for key in doomed:
                del self._entries[key]

        logger.debug("Response cache invalidated patterns=%s removed=%s", len(patterns), len(doomed))
        return len(doomed)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


@lru_cache(maxsize=1)
def get_response_cache() -> InMemoryResponseCache:
    return InMemoryResponseCache()
