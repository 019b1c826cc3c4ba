"""
tests/test_duplicate_resolver.py

Duplicate policy for pairs scored in storage or earlier in the same run.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from app.domain.score_import import DuplicateDecision, DuplicateMode, ValidatedScore
from app.services.duplicate_resolver import DuplicateResolver
from tests.fixtures import HUMANEVAL_ID, MMLU_ID, MODEL_A, MODEL_B, FakeScoreStore


def make_score(row_number: int = 1, model_id=MODEL_A, benchmark_id=MMLU_ID) -> ValidatedScore:
    return ValidatedScore(
        row_number=row_number,
        model_id=model_id,
        benchmark_id=benchmark_id,
        score=Decimal("80"),
        normalized_score=Decimal("0.8"),
        is_out_of_range=False,
    )


class TestDuplicateResolver:
    def test_default_mode_is_skip(self) -> None:
        assert DuplicateResolver(existing_scores=FakeScoreStore()).mode is DuplicateMode.SKIP

    @pytest.mark.parametrize("mode", list(DuplicateMode))
    def test_new_pair_proceeds(self, mode: DuplicateMode) -> None:
        resolver = DuplicateResolver(existing_scores=FakeScoreStore(), mode=mode)
        assert resolver.resolve(make_score()) is DuplicateDecision.PROCEED

    @pytest.mark.parametrize(
        ("mode", "expected"),
        [
            (DuplicateMode.SKIP, DuplicateDecision.SKIP_AS_DUPLICATE),
            (DuplicateMode.OVERWRITE, DuplicateDecision.OVERWRITE_EXISTING),
        ],
    )
    def test_persisted_pair(self, mode: DuplicateMode, expected: DuplicateDecision) -> None:
        store = FakeScoreStore(existing=[(MODEL_A, MMLU_ID)])
        resolver = DuplicateResolver(existing_scores=store, mode=mode)

        assert resolver.resolve(make_score()) is expected

    @pytest.mark.parametrize(
        ("mode", "expected"),
        [
            (DuplicateMode.SKIP, DuplicateDecision.SKIP_AS_DUPLICATE),
            (DuplicateMode.OVERWRITE, DuplicateDecision.OVERWRITE_EXISTING),
        ],
    )
    def test_pair_written_earlier_in_run(self, mode: DuplicateMode, expected: DuplicateDecision) -> None:
        resolver = DuplicateResolver(existing_scores=FakeScoreStore(), mode=mode)
        resolver.record_written(make_score(row_number=1))

        assert resolver.resolve(make_score(row_number=4)) is expected

    def test_other_pairs_unaffected(self) -> None:
        resolver = DuplicateResolver(existing_scores=FakeScoreStore())
        resolver.record_written(make_score())

        assert resolver.resolve(make_score(model_id=MODEL_B)) is DuplicateDecision.PROCEED
        assert resolver.resolve(make_score(benchmark_id=HUMANEVAL_ID)) is DuplicateDecision.PROCEED
