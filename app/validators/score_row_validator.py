"""
app/validators/score_row_validator.py

Row-level validation and type parsing for benchmark-score CSV imports.

Checks run in a fixed order and stop at the first failure:

    1. model_id is a UUID                      -> InvalidModelIdFormat
    2. the model exists                        -> ModelNotFound
    3. benchmark_name resolves (any case)      -> BenchmarkNotFound
    4. score is a decimal                      -> InvalidScore
    5. max_score (optional) is a decimal >= score -> InvalidMaxScore
    6. test_date (optional) is a calendar date -> InvalidTestDate
    7. source_url (optional) is an absolute URL -> InvalidSourceUrl
    8. notes fit the length limit              -> NotesTooLong

A lookup that storage rejects because of the row's own values (for example
a NUL byte in benchmark_name) fails that row with LookupFailed.

Lookups are read-only. One validator instance serves one import run and
memoizes model/benchmark lookups for that run.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from pydantic import HttpUrl, TypeAdapter, ValidationError

from app.domain.score_import import (
    BenchmarkRef,
    BenchmarkResolver,
    FailedRow,
    ImportRow,
    ModelLookup,
    RowErrorCode,
    RowLookupError,
    ValidatedScore,
)
from app.services.score_normalizer import normalize_score

DATE_FORMATS: tuple[str, ...] = (
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%m/%d/%Y",
)

MAX_SOURCE_URL_LENGTH = 500
TRUTHY_VALUES = frozenset({"true", "1", "yes", "y"})

_HTTP_URL_ADAPTER = TypeAdapter(HttpUrl)


class RowValidationFailure(Exception):
    """
    Internal short-circuit signal; converted to a FailedRow before returning.
    """

    def __init__(self, code: RowErrorCode, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


class ScoreRowValidator:
    """
    Validates one ImportRow into a ValidatedScore or a FailedRow.
    """

    def __init__(
        self,
        *,
        models: ModelLookup,
        benchmarks: BenchmarkResolver,
        max_notes_length: int = 500,
        default_range_min: Decimal = Decimal("0"),
        default_range_max: Decimal = Decimal("100"),
    ) -> None:
        self._models = models
        self._benchmarks = benchmarks
        self._max_notes_length = max_notes_length
        self._default_range_min = default_range_min
        self._default_range_max = default_range_max
        self._model_cache: dict[uuid.UUID, bool] = {}
        self._benchmark_cache: dict[str, BenchmarkRef | None] = {}

    def validate(self, row: ImportRow) -> ValidatedScore | FailedRow:
        try:
            return self._validate(row)
        except RowValidationFailure as failure:
            return FailedRow(
                row_number=row.row_number,
                error=failure.message,
                code=failure.code,
                original_data=row.original_data(),
            )

    def _validate(self, row: ImportRow) -> ValidatedScore:
        model_id = self._parse_model_id(row.model_id)
        if not self._model_exists(model_id):
            raise RowValidationFailure(
                RowErrorCode.MODEL_NOT_FOUND,
                f"Model not found: {row.model_id}",
            )

        benchmark = self._resolve_benchmark(row.benchmark_name)
        score = self._parse_score(row.score)
        max_score = self._parse_max_score(row.max_score, score=score)
        test_date = self._parse_test_date(row.test_date)
        source_url = self._parse_source_url(row.source_url)
        notes = self._parse_notes(row.notes)

        range_min = benchmark.typical_range_min
        range_max = benchmark.typical_range_max
        if range_min is None or range_max is None:
            range_min, range_max = self._default_range_min, self._default_range_max
        normalized = normalize_score(score, range_min, range_max)

        return ValidatedScore(
            row_number=row.row_number,
            model_id=model_id,
            benchmark_id=benchmark.id,
            score=score,
            max_score=max_score,
            normalized_score=normalized.value,
            is_out_of_range=normalized.is_out_of_range,
            test_date=test_date,
            source_url=source_url,
            verified=self._parse_verified(row.verified),
            notes=notes,
        )

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _model_exists(self, model_id: uuid.UUID) -> bool:
        if model_id not in self._model_cache:
            try:
                self._model_cache[model_id] = self._models.model_exists(model_id)
            except RowLookupError as exc:
                raise RowValidationFailure(
                    RowErrorCode.LOOKUP_FAILED,
                    f"Model lookup failed: {exc}",
                ) from exc
        return self._model_cache[model_id]

    def _resolve_benchmark(self, raw_name: str) -> BenchmarkRef:
        name = (raw_name or "").strip()
        if not name:
            raise RowValidationFailure(
                RowErrorCode.BENCHMARK_NOT_FOUND,
                "Benchmark not found: benchmark_name is empty",
            )

        key = name.lower()
        if key not in self._benchmark_cache:
            try:
                self._benchmark_cache[key] = self._benchmarks.resolve_benchmark_by_name(name)
            except RowLookupError as exc:
                raise RowValidationFailure(
                    RowErrorCode.LOOKUP_FAILED,
                    f"Benchmark lookup failed: {exc}",
                ) from exc
        benchmark = self._benchmark_cache[key]
        if benchmark is None:
            raise RowValidationFailure(
                RowErrorCode.BENCHMARK_NOT_FOUND,
                f"Benchmark not found: {name}",
            )
        return benchmark

    # ------------------------------------------------------------------
    # Field parsers
    # ------------------------------------------------------------------

    @staticmethod
    def _parse_model_id(raw: str) -> uuid.UUID:
        try:
            return uuid.UUID((raw or "").strip())
        except ValueError as exc:
            raise RowValidationFailure(
                RowErrorCode.INVALID_MODEL_ID_FORMAT,
                "Invalid model_id format (must be UUID)",
            ) from exc

    def _parse_score(self, raw: str) -> Decimal:
        score = self._parse_decimal(raw)
        if score is None:
            raise RowValidationFailure(
                RowErrorCode.INVALID_SCORE,
                "Invalid score (must be a number)",
            )
        return score

    def _parse_max_score(self, raw: str | None, *, score: Decimal) -> Decimal | None:
        if self._is_blank(raw):
            return None
        max_score = self._parse_decimal(raw)
        if max_score is None:
            raise RowValidationFailure(
                RowErrorCode.INVALID_MAX_SCORE,
                "Invalid max_score (must be a number)",
            )
        if score > max_score:
            raise RowValidationFailure(
                RowErrorCode.INVALID_MAX_SCORE,
                "Score cannot exceed max_score",
            )
        return max_score

    def _parse_test_date(self, raw: str | None) -> date | None:
        if self._is_blank(raw):
            return None

        value = str(raw).strip()
        for fmt in DATE_FORMATS:
            try:
                return datetime.strptime(value, fmt).date()
            except ValueError:
                continue

        normalized = value[:-1] + "+00:00" if value.endswith("Z") else value
        try:
            return datetime.fromisoformat(normalized).date()
        except ValueError:
            pass

        raise RowValidationFailure(
            RowErrorCode.INVALID_TEST_DATE,
            "Invalid test_date format (use YYYY-MM-DD)",
        )

    def _parse_source_url(self, raw: str | None) -> str | None:
        if self._is_blank(raw):
            return None

        value = str(raw).strip()
        if len(value) > MAX_SOURCE_URL_LENGTH:
            raise RowValidationFailure(
                RowErrorCode.INVALID_SOURCE_URL,
                f"Invalid source_url format (exceeds {MAX_SOURCE_URL_LENGTH} characters)",
            )
        try:
            _HTTP_URL_ADAPTER.validate_python(value)
        except ValidationError as exc:
            raise RowValidationFailure(
                RowErrorCode.INVALID_SOURCE_URL,
                "Invalid source_url format",
            ) from exc
        return value

    def _parse_notes(self, raw: str | None) -> str | None:
        if self._is_blank(raw):
            return None
        notes = str(raw).strip()
        if len(notes) > self._max_notes_length:
            raise RowValidationFailure(
                RowErrorCode.NOTES_TOO_LONG,
                f"Notes cannot exceed {self._max_notes_length} characters",
            )
        return notes

    @staticmethod
    def _parse_verified(raw: str | None) -> bool:
        if raw is None:
            return False
        return raw.strip().lower() in TRUTHY_VALUES

    @staticmethod
    def _parse_decimal(raw: str | None) -> Decimal | None:
        if raw is None:
            return None
        try:
            value = Decimal(str(raw).strip())
        except InvalidOperation:
            return None
        return value if value.is_finite() else None

    @staticmethod
    def _is_blank(value: str | None) -> bool:
        return value is None or str(value).strip() == ""
