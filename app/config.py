"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from functools import lru_cache

from app.domain.score_import import DuplicateMode
from db.config import load_env_files


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_decimal_env(name: str, default: Decimal) -> Decimal:
    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        parsed = Decimal(raw_value.strip())
    except InvalidOperation:
        return default
    return parsed if parsed.is_finite() else default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _get_duplicate_mode_env(name: str, default: DuplicateMode) -> DuplicateMode:
    raw = _get_str_env(name, default.value).lower()
    try:
        return DuplicateMode(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class ScoreImportSettings:
    """
    Runtime settings for benchmark-score CSV imports.
    """

    max_file_bytes: int = 10_485_760
    max_notes_length: int = 500
    progress_every_rows: int = 10
    progress_interval_seconds: float = 0.5
    channel_capacity: int = 64
    default_duplicate_mode: DuplicateMode = DuplicateMode.SKIP
    log_row_failures: bool = True
    default_range_min: Decimal = Decimal("0")
    default_range_max: Decimal = Decimal("100")


@dataclass(frozen=True)
class CacheSettings:
    """
    Key layout of the response cache invalidated after imports.
    """

    key_prefix: str = "llmpricing:"


@lru_cache(maxsize=1)
def get_score_import_settings() -> ScoreImportSettings:
    """
    Return cached score import settings from environment variables.
    """

    return ScoreImportSettings(
        max_file_bytes=max(1, _get_int_env("SCORE_IMPORT_MAX_FILE_BYTES", 10_485_760)),
        max_notes_length=max(1, _get_int_env("SCORE_IMPORT_MAX_NOTES_LENGTH", 500)),
        progress_every_rows=max(1, _get_int_env("SCORE_IMPORT_PROGRESS_EVERY_ROWS", 10)),
        progress_interval_seconds=max(
            0.0, _get_float_env("SCORE_IMPORT_PROGRESS_INTERVAL_SECONDS", 0.5)
        ),
        channel_capacity=max(1, _get_int_env("SCORE_IMPORT_CHANNEL_CAPACITY", 64)),
        default_duplicate_mode=_get_duplicate_mode_env(
            "SCORE_IMPORT_DUPLICATE_MODE", DuplicateMode.SKIP
        ),
        log_row_failures=_get_bool_env("SCORE_IMPORT_LOG_ROW_FAILURES", True),
        default_range_min=_get_decimal_env("SCORE_IMPORT_DEFAULT_RANGE_MIN", Decimal("0")),
        default_range_max=_get_decimal_env("SCORE_IMPORT_DEFAULT_RANGE_MAX", Decimal("100")),
    )


@lru_cache(maxsize=1)
def get_cache_settings() -> CacheSettings:
    """
    Return cached response-cache settings from environment variables.
    """

    return CacheSettings(key_prefix=_get_str_env("CACHE_KEY_PREFIX", "llmpricing:"))
