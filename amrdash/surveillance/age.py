"""
Age-category ordering

Charts present age groups in clinical order, not alphabetically.
"""
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, TypeVar

T = TypeVar("T", bound=Mapping[str, Any])

AGE_CATEGORY_ORDER: Sequence[str] = (
    "Neonates (<28 days)",
    "Under 5 years",
    "5–14 years",
    "15–24 years",
    "25–34 years",
    "35–44 years",
    "45–54 years",
    "55–64 years",
    "65–74 years",
    "75–84 years",
    "85–94 years",
    "95+ years",
)


class AgeOrder:
    """
    Total order over a fixed age vocabulary

    Known labels sort by vocabulary position and always before unknown
    ones; two unknown labels compare lexicographically. None sorts last.
    """

    def __init__(self, vocabulary: Iterable[str] = AGE_CATEGORY_ORDER):
        self.vocabulary = tuple(vocabulary)
        self._positions: Dict[str, int] = {label: i for i, label in enumerate(self.vocabulary)}

    def index(self, category: Optional[str]) -> int:
        """Position in the vocabulary, -1 if not a known label"""
        if category is None:
            return -1
        return self._positions.get(category, -1)

    def is_valid(self, category: Optional[str]) -> bool:
        return self.index(category) >= 0

    def compare(self, a: Optional[str], b: Optional[str]) -> int:
        ia, ib = self.index(a), self.index(b)

        if ia >= 0 and ib >= 0:
            return (ia > ib) - (ia < ib)
        if ia >= 0:
            return -1
        if ib >= 0:
            return 1

        if a is None or b is None:
            return (a is None) - (b is None)
        return (a > b) - (a < b)

    def sort_key(self, category: Optional[str]):
        """Key for sorted(); consistent with compare()"""
        position = self.index(category)
        if position >= 0:
            return (0, position, "")
        if category is None:
            return (2, 0, "")
        return (1, 0, category)

    def sort(self, categories: Iterable[Optional[str]]) -> List[Optional[str]]:
        return sorted(categories, key=self.sort_key)

    def sort_by(self, rows: Iterable[T], key: str = "age_category") -> List[T]:
        """Sort records by their age-category field"""
        return sorted(rows, key=lambda row: self.sort_key(row.get(key)))


DEFAULT_AGE_ORDER = AgeOrder()


def compare_age_categories(a: Optional[str], b: Optional[str]) -> int:
    """Compare two labels under the default vocabulary: -1, 0 or 1"""
    return DEFAULT_AGE_ORDER.compare(a, b)


def sort_age_categories(categories: Iterable[Optional[str]]) -> List[Optional[str]]:
    return DEFAULT_AGE_ORDER.sort(categories)
