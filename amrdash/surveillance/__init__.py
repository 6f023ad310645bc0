"""
AMR Surveillance calculations

Pure building blocks; the database-backed pipelines live in
amrdash.surveillance.calculations
"""
from .age import AGE_CATEGORY_ORDER, AgeOrder, compare_age_categories, sort_age_categories
from .aggregate import RATE_UNAVAILABLE, Tally, aggregate, count_by, percentage, rate
from .classify import (
    AwareCategory,
    CombineRule,
    Indicator,
    Susceptibility,
    classify_aware,
    classify_indicator,
    classify_isolate,
    classify_susceptibility,
)
from .esbl import filter_antibiotics_for_organism, is_esbl_organism, should_hide_pair
from .filters import FilterOp, Predicate, build_predicates
from .ranking import ChartEntry, Ordering, rank, rank_counts
from .reference import ReferenceData

__all__ = [
    # Age
    "AGE_CATEGORY_ORDER",
    "AgeOrder",
    "compare_age_categories",
    "sort_age_categories",
    # Aggregation
    "RATE_UNAVAILABLE",
    "Tally",
    "aggregate",
    "count_by",
    "percentage",
    "rate",
    # Classification
    "AwareCategory",
    "CombineRule",
    "Indicator",
    "Susceptibility",
    "classify_aware",
    "classify_indicator",
    "classify_isolate",
    "classify_susceptibility",
    # ESBL
    "filter_antibiotics_for_organism",
    "is_esbl_organism",
    "should_hide_pair",
    # Filters
    "FilterOp",
    "Predicate",
    "build_predicates",
    # Ranking
    "ChartEntry",
    "Ordering",
    "rank",
    "rank_counts",
    "ReferenceData",
]
