"""
Resistance / compliance classifiers

Source cells are uncurated: booleans arrive as True, "true", 1, "1" or
"YES", susceptibility as "R", "r", " R ". Every classifier here maps a raw
value onto a closed set of outcomes and never raises; anything it does not
recognise is UNKNOWN and drops out of denominators.
"""
from enum import Enum
from typing import Any, Callable, Mapping, Optional, Sequence


class Susceptibility(str, Enum):
    SUSCEPTIBLE = "S"
    INTERMEDIATE = "I"
    RESISTANT = "R"
    UNKNOWN = "unknown"

    @property
    def is_known(self) -> bool:
        return self is not Susceptibility.UNKNOWN


class Indicator(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    UNKNOWN = "unknown"

    @property
    def is_known(self) -> bool:
        return self is not Indicator.UNKNOWN


class AwareCategory(str, Enum):
    ACCESS = "Access"
    WATCH = "Watch"
    RESERVE = "Reserve"
    OTHER = "Other"


class CombineRule(str, Enum):
    """How several antibiotic columns combine into one isolate outcome"""

    SINGLE = "single"
    ANY = "any"
    ALL = "all"


_SUSCEPTIBILITY = {
    "S": Susceptibility.SUSCEPTIBLE,
    "I": Susceptibility.INTERMEDIATE,
    "R": Susceptibility.RESISTANT,
}

_POSITIVE_TEXT = frozenset({"true", "1", "yes"})
_NEGATIVE_TEXT = frozenset({"false", "0", "no"})

_AWARE = {
    "access": AwareCategory.ACCESS,
    "watch": AwareCategory.WATCH,
    "reserve": AwareCategory.RESERVE,
}


def classify_susceptibility(value: Any) -> Susceptibility:
    """Map an AST cell to S/I/R, or UNKNOWN"""
    if not isinstance(value, str):
        return Susceptibility.UNKNOWN
    return _SUSCEPTIBILITY.get(value.strip().upper(), Susceptibility.UNKNOWN)


def classify_indicator(value: Any) -> Indicator:
    """Map a boolean-ish cell to POSITIVE / NEGATIVE / UNKNOWN"""
    if isinstance(value, bool):
        return Indicator.POSITIVE if value else Indicator.NEGATIVE
    if isinstance(value, (int, float)):
        if value == 1:
            return Indicator.POSITIVE
        if value == 0:
            return Indicator.NEGATIVE
        return Indicator.UNKNOWN
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _POSITIVE_TEXT:
            return Indicator.POSITIVE
        if text in _NEGATIVE_TEXT:
            return Indicator.NEGATIVE
    return Indicator.UNKNOWN


IndicatorRule = Callable[[Any], Indicator]


def equals_rule(literal: str) -> IndicatorRule:
    """
    Indicator rule for text-valued cells, e.g. treatment == "TARGETED"

    Null or blank is UNKNOWN; any other value is NEGATIVE.
    """
    expected = literal.strip().lower()

    def rule(value: Any) -> Indicator:
        if value is None:
            return Indicator.UNKNOWN
        text = str(value).strip().lower()
        if not text:
            return Indicator.UNKNOWN
        return Indicator.POSITIVE if text == expected else Indicator.NEGATIVE

    rule.__name__ = f"equals_{expected}"
    return rule


def classify_aware(value: Any) -> Optional[AwareCategory]:
    """AWaRe category of a cell; None (excluded) for null or blank"""
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    return _AWARE.get(text.lower(), AwareCategory.OTHER)


def classify_isolate(
    record: Mapping[str, Any],
    columns: Sequence[str],
    rule: CombineRule = CombineRule.ANY,
) -> Susceptibility:
    """
    Combine one or more antibiotic columns into a resistance outcome

    Returns RESISTANT, SUSCEPTIBLE (meaning "not resistant") or UNKNOWN.
    Untested cells are ignored, never counted as susceptible.
    """
    results = [classify_susceptibility(record.get(column)) for column in columns]
    tested = [r for r in results if r.is_known]

    if rule is CombineRule.SINGLE:
        if len(columns) != 1:
            raise ValueError("CombineRule.SINGLE takes exactly one column")
        if not tested:
            return Susceptibility.UNKNOWN
        return Susceptibility.RESISTANT if tested[0] is Susceptibility.RESISTANT else Susceptibility.SUSCEPTIBLE

    if not tested:
        return Susceptibility.UNKNOWN

    if rule is CombineRule.ANY:
        if any(r is Susceptibility.RESISTANT for r in tested):
            return Susceptibility.RESISTANT
        return Susceptibility.SUSCEPTIBLE

    # ALL: one non-resistant result settles it; otherwise every column must be tested
    if any(r is not Susceptibility.RESISTANT for r in tested):
        return Susceptibility.SUSCEPTIBLE
    if len(tested) < len(columns):
        return Susceptibility.UNKNOWN
    return Susceptibility.RESISTANT
