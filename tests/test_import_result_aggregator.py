"""
tests/test_import_result_aggregator.py
"""

from __future__ import annotations

import pytest

from app.domain.score_import import FailedRow, RowErrorCode
from app.services.import_result_aggregator import ImportResultAggregator


def failure(row_number: int) -> FailedRow:
    return FailedRow(
        row_number=row_number,
        error="Invalid score (must be a number)",
        code=RowErrorCode.INVALID_SCORE,
        original_data={"score": "abc"},
    )


class TestImportResultAggregator:
    def test_counts_each_bucket(self) -> None:
        aggregator = ImportResultAggregator(total_rows=4)
        aggregator.record_success()
        aggregator.record_failure(failure(2))
        aggregator.record_success()
        aggregator.record_skip()

        result = aggregator.build()

        assert aggregator.processed_rows == 4
        assert (result.successful_imports, result.failed_imports, result.skipped_duplicates) == (2, 1, 1)
        assert result.successful_imports + result.failed_imports + result.skipped_duplicates == result.total_rows
        assert [error.row_number for error in result.errors] == [2]

    def test_failures_must_arrive_in_row_order(self) -> None:
        aggregator = ImportResultAggregator()
        aggregator.record_failure(failure(5))

        with pytest.raises(ValueError, match="row order"):
            aggregator.record_failure(failure(3))

    def test_build_is_stable(self) -> None:
        aggregator = ImportResultAggregator(total_rows=1)
        aggregator.record_success()

        first = aggregator.build()
        aggregator.record_skip()

        assert aggregator.build() is first

    def test_result_serializes_in_camel_case(self) -> None:
        aggregator = ImportResultAggregator(total_rows=1)
        aggregator.record_failure(failure(1))

        payload = aggregator.build().to_dict()

        assert payload == {
            "totalRows": 1,
            "successfulImports": 0,
            "failedImports": 1,
            "skippedDuplicates": 0,
            "errors": [
                {
                    "rowNumber": 1,
                    "error": "Invalid score (must be a number)",
                    "code": "InvalidScore",
                    "data": {"score": "abc"},
                }
            ],
        }
