"""
Ranker / formatter

Orders aggregated groups and shapes them into chart entries.
"""
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Callable, Dict, Hashable, List, Mapping, Optional, Sequence

from .age import DEFAULT_AGE_ORDER, AgeOrder
from .aggregate import RATE_UNAVAILABLE, Tally, percentage, rate

# Tailwind red/slate/green/... as used by the dashboard charts
DEFAULT_PALETTE: Sequence[str] = (
    "#dc2626",
    "#3b82f6",
    "#16a34a",
    "#eab308",
    "#8b5cf6",
    "#f97316",
    "#6b7280",
    "#ef4444",
    "#22c55e",
    "#2563eb",
)


class Ordering(str, Enum):
    RATE_DESC = "rate"
    COUNT_DESC = "count"
    AGE_CATEGORY = "age"


@dataclass
class ChartEntry:
    """One bar / slice / row of a chart"""

    label: str
    value: float
    count: int
    total: int
    color: Optional[str] = None
    key: Optional[str] = None

    @property
    def available(self) -> bool:
        return self.value != RATE_UNAVAILABLE

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _label(category: Hashable, label_for: Optional[Callable[[Any], str]]) -> str:
    return label_for(category) if label_for else str(category)


def _sort(entries: List[ChartEntry], ordering: Ordering, age_order: AgeOrder) -> List[ChartEntry]:
    if ordering is Ordering.RATE_DESC:
        return sorted(entries, key=lambda e: (not e.available, -e.value, -e.total, e.label))
    if ordering is Ordering.COUNT_DESC:
        return sorted(entries, key=lambda e: (-e.count, -e.total, e.label))
    return sorted(entries, key=lambda e: age_order.sort_key(e.key))


def _paint(entries: List[ChartEntry], palette: Sequence[str]) -> List[ChartEntry]:
    if palette:
        for position, entry in enumerate(entries):
            entry.color = palette[position % len(palette)]
    return entries


def rank(
    aggregated: Mapping[Hashable, Tally],
    ordering: Ordering = Ordering.RATE_DESC,
    min_sample_size: Optional[int] = 30,
    label_for: Optional[Callable[[Any], str]] = None,
    palette: Sequence[str] = DEFAULT_PALETTE,
    age_order: AgeOrder = DEFAULT_AGE_ORDER,
) -> List[ChartEntry]:
    """
    Rate entries for aggregated tallies

    value is the one-decimal percentage (RATE_UNAVAILABLE when suppressed),
    count the numerator, total the denominator. Suppressed entries sort
    after every reported rate.
    """
    entries = [
        ChartEntry(
            label=_label(category, label_for),
            value=rate(tally, min_sample_size),
            count=tally.numerator,
            total=tally.denominator,
            key=str(category),
        )
        for category, tally in aggregated.items()
        if tally.denominator > 0
    ]
    return _paint(_sort(entries, ordering, age_order), palette)


def rank_counts(
    counts: Mapping[Hashable, int],
    ordering: Ordering = Ordering.COUNT_DESC,
    label_for: Optional[Callable[[Any], str]] = None,
    palette: Sequence[str] = DEFAULT_PALETTE,
    age_order: AgeOrder = DEFAULT_AGE_ORDER,
    limit: Optional[int] = None,
) -> List[ChartEntry]:
    """Frequency entries; value is the share of all counted rows"""
    total = sum(counts.values())
    entries = [
        ChartEntry(
            label=_label(category, label_for),
            value=percentage(count, total),
            count=count,
            total=total,
            key=str(category),
        )
        for category, count in counts.items()
        if count > 0
    ]
    if ordering is Ordering.RATE_DESC:
        ordering = Ordering.COUNT_DESC
    ranked = _sort(entries, ordering, age_order)
    if limit is not None:
        ranked = ranked[:limit]
    return _paint(ranked, palette)
