"""
Aggregator

Buckets rows by a category, counts classified outcomes and turns the
counts into one-decimal percentages, suppressing rates whose denominator
is below the minimum sample size.
"""
import math
from dataclasses import dataclass
from typing import Any, Callable, Collection, Dict, Hashable, Iterable, Mapping, Optional

from .classify import Indicator, Susceptibility

# Reported instead of a rate when the sample is too small
RATE_UNAVAILABLE = -1

DEFAULT_POSITIVE = frozenset({Susceptibility.RESISTANT, Indicator.POSITIVE})

GroupKey = Callable[[Mapping[str, Any]], Optional[Hashable]]


@dataclass
class Tally:
    """Numerator / denominator pair for one category"""

    numerator: int = 0
    denominator: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {"numerator": self.numerator, "denominator": self.denominator}


def percentage(numerator: int, denominator: int) -> float:
    """
    One-decimal percentage: round(n / d * 1000) / 10

    Halves round up, e.g. 1/16 -> 6.3.
    """
    if denominator <= 0:
        raise ValueError("denominator must be positive")
    return math.floor(numerator / denominator * 1000 + 0.5) / 10


def suppressed(denominator: int, min_sample_size: Optional[int]) -> bool:
    """True when the denominator is below an enabled threshold"""
    return bool(min_sample_size) and denominator < min_sample_size


def rate(tally: Tally, min_sample_size: Optional[int] = 30) -> float:
    """
    Percentage for a tally, or RATE_UNAVAILABLE

    min_sample_size of None or 0 disables suppression.
    """
    if tally.denominator <= 0 or suppressed(tally.denominator, min_sample_size):
        return RATE_UNAVAILABLE
    return percentage(tally.numerator, tally.denominator)


def column_key(column: str) -> GroupKey:
    """Group key reading one field; blank strings count as missing"""

    def key(row: Mapping[str, Any]) -> Optional[Hashable]:
        value = row.get(column)
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    return key


def constant_key(category: Hashable) -> GroupKey:
    """Every row in the same bucket"""
    return lambda row: category


def aggregate(
    rows: Iterable[Mapping[str, Any]],
    group_key: GroupKey,
    classify: Callable[[Mapping[str, Any]], Any],
    positive: Collection[Any] = DEFAULT_POSITIVE,
) -> Dict[Hashable, Tally]:
    """
    Single-pass bucketing

    Args:
        rows: fetched records
        group_key: record -> category (None skips the record)
        classify: record -> outcome; outcomes that are None or not
            `is_known` are excluded from the denominator
        positive: outcomes counted in the numerator

    Returns:
        category -> Tally; categories with no classified rows are absent
    """
    buckets: Dict[Hashable, Tally] = {}

    for row in rows:
        category = group_key(row)
        if category is None:
            continue
        outcome = classify(row)
        if outcome is None or not getattr(outcome, "is_known", True):
            continue
        tally = buckets.setdefault(category, Tally())
        tally.denominator += 1
        if outcome in positive:
            tally.numerator += 1

    return buckets


def count_by(rows: Iterable[Mapping[str, Any]], group_key: GroupKey) -> Dict[Hashable, int]:
    """Plain frequency per category"""
    counts: Dict[Hashable, int] = {}
    for row in rows:
        category = group_key(row)
        if category is None:
            continue
        counts[category] = counts.get(category, 0) + 1
    return counts
