"""
app/services/import_result_aggregator.py

Running counters for one import run and the terminal ImportResult built
from them.
"""

from __future__ import annotations

from app.domain.score_import import FailedRow, ImportResult


class ImportResultAggregator:
    """
    Accumulates per-row outcomes in row order.

    Each processed row lands in exactly one bucket (success, failure, skip),
    so for a run that reaches the end of the file the three counters add up
    to the total row count.
    """

    def __init__(self, *, total_rows: int = 0) -> None:
        self.total_rows = total_rows
        self.success_count = 0
        self.skipped_count = 0
        self._failures: list[FailedRow] = []
        self._built: ImportResult | None = None

    @property
    def failure_count(self) -> int:
        return len(self._failures)

    @property
    def processed_rows(self) -> int:
        return self.success_count + self.failure_count + self.skipped_count

    def record_success(self) -> None:
        self.success_count += 1

    def record_skip(self) -> None:
        self.skipped_count += 1

    def record_failure(self, failure: FailedRow) -> None:
        if self._failures and failure.row_number < self._failures[-1].row_number:
            raise ValueError(
                f"Row failures must be recorded in row order "
                f"(got {failure.row_number} after {self._failures[-1].row_number})."
            )
        self._failures.append(failure)

    def build(self) -> ImportResult:
        """
        Freeze the counters into the run's ImportResult. Built once per run.
        """

        if self._built is None:
            self._built = ImportResult(
                total_rows=self.total_rows,
                successful_imports=self.success_count,
                failed_imports=self.failure_count,
                skipped_duplicates=self.skipped_count,
                errors=tuple(self._failures),
            )
        return self._built
