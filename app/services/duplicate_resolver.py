"""
app/services/duplicate_resolver.py

Decides what happens to a validated score whose (model, benchmark) pair is
already scored, either in storage or by an earlier row of the same file.

    mode=skip       pair already scored anywhere      -> SkipAsDuplicate
    mode=overwrite  pair already scored anywhere      -> OverwriteExisting
    either mode     pair not scored yet               -> Proceed

In overwrite mode a later row for the same pair replaces the value written
by the earlier row, so the last occurrence in the file wins.
"""

from __future__ import annotations

import uuid

from app.domain.score_import import (
    DuplicateDecision,
    DuplicateMode,
    ExistingScoreLookup,
    ValidatedScore,
)

Pair = tuple[uuid.UUID, uuid.UUID]


class DuplicateResolver:
    """
    Per-run resolver. Tracks pairs written earlier in the same run.
    """

    def __init__(
        self,
        *,
        existing_scores: ExistingScoreLookup,
        mode: DuplicateMode = DuplicateMode.SKIP,
    ) -> None:
        self._existing_scores = existing_scores
        self._mode = mode
        self._written_in_run: set[Pair] = set()

    @property
    def mode(self) -> DuplicateMode:
        return self._mode

    def resolve(self, score: ValidatedScore) -> DuplicateDecision:
        if not self._is_already_scored(score.pair):
            return DuplicateDecision.PROCEED
        if self._mode is DuplicateMode.OVERWRITE:
            return DuplicateDecision.OVERWRITE_EXISTING
        return DuplicateDecision.SKIP_AS_DUPLICATE

    def record_written(self, score: ValidatedScore) -> None:
        """
        Remember a pair whose write committed, for later rows of this run.
        """

        self._written_in_run.add(score.pair)

    def _is_already_scored(self, pair: Pair) -> bool:
        if pair in self._written_in_run:
            return True
        return self._existing_scores.score_exists(*pair)
