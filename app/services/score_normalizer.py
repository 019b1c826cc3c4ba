"""
app/services/score_normalizer.py

Maps raw benchmark scores onto a common [0, 1] scale.

Formula
-------
normalized     = clamp((score - min) / (max - min), 0, 1)
is_out_of_range = score < min or score > max

When the typical range collapses to a single value (min == max) there is no
spread to divide by: a score at or above that value normalizes to 1, anything
below it to 0.

Pure functions only. No repository, session, or logging dependency.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

_ZERO = Decimal("0")
_ONE = Decimal("1")


@dataclass(frozen=True)
class NormalizedScore:
    """
    Result of normalizing one raw score.
    """

    value: Decimal
    """Normalized score, always within [0, 1]."""

    is_out_of_range: bool
    """True when the raw score lies outside the benchmark's typical range."""


def normalize_score(score: Decimal, range_min: Decimal, range_max: Decimal) -> NormalizedScore:
    """
    Normalize ``score`` against the typical range ``[range_min, range_max]``.
    """

    out_of_range = score < range_min or score > range_max

    if range_max == range_min:
        return NormalizedScore(
            value=_ONE if score >= range_max else _ZERO,
            is_out_of_range=out_of_range,
        )

    ratio = (score - range_min) / (range_max - range_min)
    return NormalizedScore(value=clamp_unit(ratio), is_out_of_range=out_of_range)


def clamp_unit(value: Decimal) -> Decimal:
    if value < _ZERO:
        return _ZERO
    if value > _ONE:
        return _ONE
    return value
