"""Score aggregation and the fixed percentage -> grade table."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional, Tuple

__all__ = [
    "GradeBand",
    "ScoreSummary",
    "GRADE_BANDS",
    "FAIL",
    "compute_final_grade",
    "summarize_scores",
    "grade_word_ar",
    "is_passing",
]


@dataclass(frozen=True)
class GradeBand:
    code: str
    english: str
    arabic: str
    minimum: Decimal
    passing: bool = True


FAIL = GradeBand("F", "Fail", "راسب", Decimal("0"), passing=False)

# Highest band first; thresholds are inclusive lower bounds.
GRADE_BANDS: Tuple[GradeBand, ...] = (
    GradeBand("A", "Excellent", "ممتاز", Decimal("85")),
    GradeBand("B", "Very Good", "جيد جدا", Decimal("75")),
    GradeBand("C", "Good", "جيد", Decimal("65")),
    GradeBand("D", "Pass", "مقبول", Decimal("50")),
    FAIL,
)

_TWO_PLACES = Decimal("0.01")


@dataclass(frozen=True)
class ScoreSummary:
    total: Decimal
    maximum: Decimal
    subject_count: int

    @property
    def percentage(self) -> Decimal:
        if not self.maximum:
            return Decimal("0.00")
        return (self.total * 100 / self.maximum).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)


def compute_final_grade(percentage) -> GradeBand:
    value = Decimal(str(percentage))
    for band in GRADE_BANDS:
        if value >= band.minimum:
            return band
    return FAIL


def summarize_scores(rows: Iterable[Tuple[Optional[Decimal], Decimal]]) -> ScoreSummary:
    """Sum ``(score, max_score)`` pairs; a missing score counts as zero."""
    total = Decimal("0")
    maximum = Decimal("0")
    count = 0
    for score, max_score in rows:
        total += Decimal(str(score)) if score is not None else Decimal("0")
        maximum += Decimal(str(max_score))
        count += 1
    return ScoreSummary(total=total, maximum=maximum, subject_count=count)


def grade_word_ar(english: str) -> str:
    for band in GRADE_BANDS:
        if band.english.lower() == (english or "").strip().lower():
            return band.arabic
    return english


def is_passing(band: GradeBand) -> bool:
    return band.passing
