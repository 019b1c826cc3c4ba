"""
app/services/score_import_coordinator.py

State machine that drives one benchmark-score CSV import run.

    Parsing -> Validating -> Importing -> Complete | Cancelled | Failed

Rows are pipelined: each row is validated, deduplicated and written before
the next one is read. The reported phase moves to Importing at the first
write (or once every row has been validated) and never moves back.

Every write is its own unit of work, so a failing row becomes a FailedRow
and the rest of the file still imports. Only a systemic storage failure
(or an unreadable file) ends the run as Failed.
"""

from __future__ import annotations

import logging
import uuid

from app.cache.response_cache import build_score_invalidation_patterns
from app.domain.score_import import (
    CacheInvalidator,
    DuplicateDecision,
    DuplicateMode,
    FailedRow,
    ImportPhase,
    ImportResult,
    ImportRow,
    MalformedFileError,
    PersistOutcome,
    ProgressSnapshot,
    RowErrorCode,
    RowPersistenceError,
    RowLookupError,
    ScoreWriter,
    StorageUnavailableError,
    ValidatedScore,
)
from app.parsers.score_import_parser import ScoreImportParser
from app.services.duplicate_resolver import DuplicateResolver
from app.services.import_result_aggregator import ImportResultAggregator
from app.services.progress_channel import DiscardingProgressSink, ProgressSink
from app.validators.score_row_validator import ScoreRowValidator

logger = logging.getLogger(__name__)


class ScoreImportCoordinator:
    """
    Owns exactly one import run. Create a new instance per upload.
    """

    def __init__(
        self,
        *,
        validator: ScoreRowValidator,
        duplicate_resolver: DuplicateResolver,
        writer: ScoreWriter,
        progress: ProgressSink | None = None,
        cache: CacheInvalidator | None = None,
        cache_key_prefix: str = "llmpricing:",
        parser: ScoreImportParser | None = None,
        log_row_failures: bool = True,
        run_label: str | None = None,
    ) -> None:
        self._validator = validator
        self._duplicate_resolver = duplicate_resolver
        self._writer = writer
        self._progress = progress or DiscardingProgressSink()
        self._cache = cache
        self._cache_key_prefix = cache_key_prefix
        self._parser = parser or ScoreImportParser()
        self._log_row_failures = log_row_failures
        self._run_label = run_label or "-"

        self._aggregator = ImportResultAggregator()
        self._touched_models: set[uuid.UUID] = set()
        self._phase: ImportPhase | None = None
        self._terminal: ProgressSnapshot | None = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def phase(self) -> ImportPhase | None:
        return self._phase

    @property
    def result(self) -> ImportResult:
        """
        Counters and failures of the run so far (frozen once terminal).
        """

        return self._aggregator.build() if self._terminal else self._snapshot_result()

    @property
    def rows_written(self) -> int:
        return self._aggregator.success_count

    def run(self, content: bytes | str) -> ProgressSnapshot:
        """
        Execute the import and return the terminal snapshot.
        """

        if self._phase is not None:
            raise RuntimeError("ScoreImportCoordinator instances can only run once.")

        self._transition(ImportPhase.PARSING, "Parsing CSV file...")
        try:
            parsed = self._parser.parse(content)
        except MalformedFileError as exc:
            logger.warning("Score import rejected run=%s error=%s", self._run_label, exc)
            return self._finish_failed(str(exc))

        self._aggregator.total_rows = parsed.total_rows
        self._transition(
            ImportPhase.VALIDATING,
            f"Validating {parsed.total_rows} rows...",
        )

        try:
            for row in parsed.rows:
                if self._progress.cancelled:
                    return self._finish_cancelled()
                self._process_row(row)
        except StorageUnavailableError as exc:
            logger.error(
                "Score import storage failure run=%s processed=%s error=%s",
                self._run_label,
                self._aggregator.processed_rows,
                exc,
            )
            return self._finish_failed(f"Storage unavailable: {exc}")
        except Exception as exc:
            logger.exception(
                "Score import crashed run=%s processed=%s",
                self._run_label,
                self._aggregator.processed_rows,
            )
            return self._finish_failed(f"Import failed: {exc}")

        if self._progress.cancelled:
            return self._finish_cancelled()
        if self._phase is not ImportPhase.IMPORTING:
            self._transition(ImportPhase.IMPORTING, "Importing validated rows...")
        return self._finish_complete()

    # ------------------------------------------------------------------
    # Row processing
    # ------------------------------------------------------------------

    def _process_row(self, row: ImportRow) -> None:
        outcome = self._validator.validate(row)
        if isinstance(outcome, FailedRow):
            self._record_failure(outcome)
        else:
            self._import_row(row, outcome)
        self._emit_row_progress(row)

    def _import_row(self, row: ImportRow, score: ValidatedScore) -> None:
        try:
            decision = self._duplicate_resolver.resolve(score)
        except RowLookupError as exc:
            self._record_failure(
                FailedRow(
                    row_number=row.row_number,
                    error=f"Duplicate lookup failed: {exc}",
                    code=RowErrorCode.LOOKUP_FAILED,
                    original_data=row.original_data(),
                )
            )
            return

        if decision is DuplicateDecision.SKIP_AS_DUPLICATE:
            self._aggregator.record_skip()
            return

        if self._phase is not ImportPhase.IMPORTING:
            self._transition(ImportPhase.IMPORTING, f"Importing row {row.row_number}...")

        try:
            persisted = self._writer.persist_score(
                score,
                overwrite=self._duplicate_resolver.mode is DuplicateMode.OVERWRITE,
            )
        except RowPersistenceError as exc:
            self._record_failure(
                FailedRow(
                    row_number=row.row_number,
                    error=f"Failed to save score: {exc}",
                    code=RowErrorCode.PERSISTENCE_FAILED,
                    original_data=row.original_data(),
                )
            )
            return

        if persisted is PersistOutcome.ALREADY_EXISTS:
            # Pair was written by someone else between lookup and insert.
            self._aggregator.record_skip()
            return

        self._aggregator.record_success()
        self._duplicate_resolver.record_written(score)
        self._touched_models.add(score.model_id)

    def _record_failure(self, failure: FailedRow) -> None:
        self._aggregator.record_failure(failure)
        if self._log_row_failures:
            logger.warning(
                "Score import row failed run=%s row=%s code=%s error=%s",
                self._run_label,
                failure.row_number,
                failure.code.value,
                failure.error,
            )

    # ------------------------------------------------------------------
    # Terminal transitions
    # ------------------------------------------------------------------

    def _finish_complete(self) -> ProgressSnapshot:
        result = self._aggregator.build()
        self._invalidate_cache()
        logger.info(
            "Score import complete run=%s total=%s success=%s failed=%s skipped=%s",
            self._run_label,
            result.total_rows,
            result.successful_imports,
            result.failed_imports,
            result.skipped_duplicates,
        )
        return self._publish_terminal(
            ImportPhase.COMPLETE,
            message=(
                f"Import complete: {result.successful_imports} successful, "
                f"{result.failed_imports} failed, {result.skipped_duplicates} skipped"
            ),
            final_result=result,
        )

    def _finish_cancelled(self) -> ProgressSnapshot:
        self._aggregator.build()
        if self._touched_models:
            self._invalidate_cache()
        logger.info(
            "Score import cancelled run=%s processed=%s total=%s",
            self._run_label,
            self._aggregator.processed_rows,
            self._aggregator.total_rows,
        )
        return self._publish_terminal(ImportPhase.CANCELLED, message="Import cancelled by user")

    def _finish_failed(self, error_message: str) -> ProgressSnapshot:
        self._aggregator.build()
        if self._touched_models:
            self._invalidate_cache()
        return self._publish_terminal(
            ImportPhase.FAILED,
            message="Import failed",
            error_message=error_message,
        )

    def _invalidate_cache(self) -> None:
        if self._cache is None:
            return
        patterns = build_score_invalidation_patterns(
            sorted(self._touched_models, key=str),
            prefix=self._cache_key_prefix,
        )
        try:
            removed = self._cache.invalidate(patterns)
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Score import cache invalidation failed run=%s error=%s",
                self._run_label,
                exc,
            )
            return
        logger.info(
            "Score import cache invalidated run=%s patterns=%s removed=%s",
            self._run_label,
            len(patterns),
            removed,
        )

    # ------------------------------------------------------------------
    # Progress
    # ------------------------------------------------------------------

    def _transition(self, phase: ImportPhase, message: str) -> None:
        logger.info(
            "Score import phase run=%s from=%s to=%s",
            self._run_label,
            self._phase.value if self._phase else None,
            phase.value,
        )
        self._phase = phase
        self._progress.publish(self._snapshot(phase, message))

    def _emit_row_progress(self, row: ImportRow) -> None:
        assert self._phase is not None
        verb = "Importing" if self._phase is ImportPhase.IMPORTING else "Validating"
        self._progress.publish(
            self._snapshot(
                self._phase,
                f"{verb} row {row.row_number} of {self._aggregator.total_rows}...",
            )
        )

    def _publish_terminal(
        self,
        phase: ImportPhase,
        *,
        message: str,
        final_result: ImportResult | None = None,
        error_message: str | None = None,
    ) -> ProgressSnapshot:
        self._phase = phase
        snapshot = self._snapshot(
            phase,
            message,
            final_result=final_result,
            error_message=error_message,
        )
        self._terminal = snapshot
        self._progress.publish(snapshot)
        return snapshot

    def _snapshot(
        self,
        phase: ImportPhase,
        message: str,
        *,
        final_result: ImportResult | None = None,
        error_message: str | None = None,
    ) -> ProgressSnapshot:
        aggregator = self._aggregator
        return ProgressSnapshot(
            phase=phase,
            total_rows=aggregator.total_rows,
            processed_rows=aggregator.processed_rows,
            success_count=aggregator.success_count,
            failure_count=aggregator.failure_count,
            skipped_count=aggregator.skipped_count,
            message=message,
            final_result=final_result,
            error_message=error_message,
        )

    def _snapshot_result(self) -> ImportResult:
        aggregator = self._aggregator
        return ImportResult(
            total_rows=aggregator.total_rows,
            successful_imports=aggregator.success_count,
            failed_imports=aggregator.failure_count,
            skipped_duplicates=aggregator.skipped_count,
        )
