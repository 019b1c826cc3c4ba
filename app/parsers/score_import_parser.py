"""
app/parsers/score_import_parser.py

Turns raw benchmark-score CSV content into `ImportRow` records.

The header is matched against a fixed column set; the data rows are then
yielded lazily. `total_rows` is known before the first row is produced so
progress reporting can start with an accurate denominator.
"""

from __future__ import annotations

import csv
import io
from collections.abc import Iterator, Sequence
from dataclasses import dataclass

from app.domain.score_import import (
    IMPORT_COLUMNS,
    REQUIRED_COLUMNS,
    ImportRow,
    MalformedFileError,
)

# Cells are bounded by the upload size limit, not by csv's 128 KiB default.
MAX_FIELD_CHARS = 2**31 - 1

csv.field_size_limit(max(csv.field_size_limit(), MAX_FIELD_CHARS))


@dataclass(frozen=True)
class ParsedImportFile:
    """
    Header resolution plus a single-use iterator over the data rows.
    """

    column_positions: dict[str, int]
    total_rows: int
    rows: Iterator[ImportRow]


class ScoreImportParser:
    """
    Parses the fixed `model_id, benchmark_name, score, ...` CSV layout.
    """

    def parse(self, content: bytes | str) -> ParsedImportFile:
        """
        Resolve the header and return a lazy row sequence.

        Raises MalformedFileError when the content cannot be decoded or
        tokenized, or when a required column is missing from the header.
        """

        text = self._decode(content)
        try:
            records = list(csv.reader(io.StringIO(text, newline="")))
        except csv.Error as exc:
            raise MalformedFileError(f"Invalid CSV format: {exc}") from exc

        if not records or self._is_blank_record(records[0]):
            raise MalformedFileError("CSV header row is missing.")

        column_positions = self._resolve_header(records[0])
        data_records = records[1:]
        total_rows = sum(1 for record in data_records if not self._is_blank_record(record))

        return ParsedImportFile(
            column_positions=column_positions,
            total_rows=total_rows,
            rows=self._iter_rows(data_records, column_positions),
        )

    def _iter_rows(
        self,
        data_records: Sequence[list[str]],
        column_positions: dict[str, int],
    ) -> Iterator[ImportRow]:
        for row_number, record in enumerate(data_records, start=1):
            if self._is_blank_record(record):
                continue
            values = {
                column: self._cell(record, position)
                for column, position in column_positions.items()
            }
            yield ImportRow(
                row_number=row_number,
                model_id=values.get("model_id") or "",
                benchmark_name=values.get("benchmark_name") or "",
                score=values.get("score") or "",
                max_score=values.get("max_score"),
                test_date=values.get("test_date"),
                source_url=values.get("source_url"),
                verified=values.get("verified"),
                notes=values.get("notes"),
            )

    def _resolve_header(self, header: list[str]) -> dict[str, int]:
        positions: dict[str, int] = {}
        for index, raw_name in enumerate(header):
            name = raw_name.strip().lower()
            if name in IMPORT_COLUMNS and name not in positions:
                positions[name] = index

        missing = [column for column in REQUIRED_COLUMNS if column not in positions]
        if missing:
            raise MalformedFileError(
                "CSV header is missing required column(s): " + ", ".join(missing) + "."
            )
        return positions

    @staticmethod
    def _decode(content: bytes | str) -> str:
        if isinstance(content, str):
            return content.lstrip("\ufeff")
        try:
            return content.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise MalformedFileError("CSV must be UTF-8 encoded.") from exc

    @staticmethod
    def _cell(record: list[str], position: int) -> str | None:
        if position >= len(record):
            return None
        value = record[position].strip()
        return value if value else None

    @staticmethod
    def _is_blank_record(record: list[str]) -> bool:
        return all(value.strip() == "" for value in record)
