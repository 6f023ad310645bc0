"""
Surveillance calculations

Every dashboard metric is one of two shapes:

- resistance: isolates of an organism, one or more antibiotic columns
  combined by a rule (single / any / all), rate of resistant isolates
- prevalence: encounters in a usage table, one indicator column and a
  rule for what counts as positive

Both run fetch -> classify -> aggregate -> rank and differ only in the
ResistanceSpec or PrevalenceSpec handed in, so endpoints are configuration.
"""
import re
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from amrdash.core.database import RowSource
from amrdash.core.exceptions import NotFoundError
from amrdash.core.logging import get_logger

from .aggregate import RATE_UNAVAILABLE, Tally, aggregate, column_key, constant_key, count_by, percentage, rate
from .classify import (
    AwareCategory,
    CombineRule,
    Indicator,
    IndicatorRule,
    Susceptibility,
    classify_aware,
    classify_indicator,
    classify_isolate,
    classify_susceptibility,
    equals_rule,
)
from .esbl import filter_antibiotics_for_organism
from .filters import Predicate, any_of, equals, not_blank, not_null, starts_with, validate_choice, validate_column
from .ranking import ChartEntry, Ordering, rank, rank_counts
from .reference import ReferenceData

logger = get_logger(__name__)

ANTIBIOTIC_COLUMN = re.compile(r"^[A-Z]{3}_N[DM]\d*")


# ---------------------------------------------------------------------------
# Datasets
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Dataset:
    """A source table and the columns callers may filter or group on"""

    key: str
    table: str
    filter_columns: Tuple[str, ...]
    group_columns: Tuple[str, ...]
    organism_column: Optional[str] = "ORGANISM"
    valid_column: Optional[str] = "VALID_AST"
    date_column: Optional[str] = "SPEC_DATE"
    age_column: Optional[str] = "AGE_CAT"


AMR_FILTER_COLUMNS = (
    "ORGANISM", "SEX", "AGE_CAT", "INSTITUTION", "REGION", "DISTRICT",
    "SPEC_TYPE", "SPEC_YEAR", "WARD", "DEPARTMENT",
)
AMR_ANIMAL_FILTER_COLUMNS = (
    "ORGANISM", "SPECIES", "INSTITUTION", "REGION", "DISTRICT",
    "SPEC_TYPE", "SPEC_YEAR",
)

# AMU columns that may drive a filter
AMU_FILTER_COLUMNS = (
    "diagnosis", "indication", "treatment", "district", "year_of_survey",
    "antimicrobial_name", "atc5", "atc4", "atc3", "atc2", "aware", "diagnosis_site",
)

# AMU columns whose distinct values may be listed or grouped on
AMU_VALUE_COLUMNS = (
    "activity", "age_cat", "antimicrobial_name", "atc2", "atc3", "atc4", "atc5",
    "aware", "county", "dept_type", "diagnosis", "diagnosis_site", "district",
    "indication", "main_dept", "name", "route", "sex", "sub_dept", "treatment",
    "year_of_survey",
)

AMU_FILTER_LABELS: Mapping[str, str] = {
    "diagnosis": "Diagnosis",
    "indication": "Indication",
    "treatment": "Treatment Approach",
    "district": "District",
    "year_of_survey": "Year of Survey",
    "antimicrobial_name": "Antimicrobial Name",
    "atc5": "ATC5 Code",
    "atc4": "ATC4 Code",
    "atc3": "ATC3 Code",
    "atc2": "ATC2 Code",
    "aware": "AWaRe Category",
    "diagnosis_site": "Diagnosis Site",
}

HUMAN = Dataset("human", "AMR_HH", AMR_FILTER_COLUMNS, AMR_FILTER_COLUMNS)
ANIMAL = Dataset(
    "animal", "AMR_Animal", AMR_ANIMAL_FILTER_COLUMNS, AMR_ANIMAL_FILTER_COLUMNS, age_column=None
)
USAGE = Dataset(
    "usage", "AMU_HH", AMU_FILTER_COLUMNS, AMU_VALUE_COLUMNS,
    organism_column=None, valid_column=None, date_column=None, age_column="age_cat",
)

AMR_DATASETS: Mapping[str, Dataset] = {d.key: d for d in (HUMAN, ANIMAL)}


def amr_dataset(key: str) -> Dataset:
    return AMR_DATASETS[validate_choice("dataset", key, AMR_DATASETS)]


def _valid(dataset: Dataset, row: Mapping[str, Any]) -> bool:
    if dataset.valid_column is None:
        return True
    return classify_indicator(row.get(dataset.valid_column)) is Indicator.POSITIVE


def _default_ordering(dataset: Dataset, column: str, fallback: Ordering) -> Ordering:
    return Ordering.AGE_CATEGORY if column == dataset.age_column else fallback


# ---------------------------------------------------------------------------
# Resistance
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ResistanceSpec:
    """Organism x antibiotic-group combination"""

    key: str
    label: str
    organisms: Tuple[str, ...]
    columns: Tuple[str, ...]
    rule: CombineRule = CombineRule.ANY
    antibiotic_class: str = ""
    target: Optional[float] = None

    def classify(self, row: Mapping[str, Any]) -> Susceptibility:
        return classify_isolate(row, self.columns, self.rule)

    def matches(self, organism: Any) -> bool:
        return isinstance(organism, str) and organism.strip().lower() in self.organisms


PRIORITY_RESISTANCE: Tuple[ResistanceSpec, ...] = (
    ResistanceSpec("ecoli_3gc", "E. coli resistant to 3rd-gen cephalosporins", ("eco",),
                   ("CTX_ND30", "CRO_ND30", "CAZ_ND30"), antibiotic_class="3rd-gen cephalosporins"),
    ResistanceSpec("ecoli_carbapenems", "E. coli resistant to carbapenems", ("eco",),
                   ("IPM_ND10", "MEM_ND10", "ETP_ND10"), antibiotic_class="Carbapenems"),
    ResistanceSpec("ecoli_fluoroquinolones", "E. coli resistant to fluoroquinolones", ("eco",),
                   ("CIP_ND5", "LVX_ND5"), antibiotic_class="Fluoroquinolones"),
    ResistanceSpec("kpneumoniae_3gc", "K. pneumoniae resistant to 3rd-gen cephalosporins", ("kpn",),
                   ("CTX_ND30", "CRO_ND30", "CAZ_ND30"), antibiotic_class="3rd-gen cephalosporins"),
    ResistanceSpec("kpneumoniae_aminoglycosides", "K. pneumoniae resistant to aminoglycosides", ("kpn",),
                   ("GEN_ND10", "AMK_ND30", "TOB_ND10"), antibiotic_class="Aminoglycosides"),
    ResistanceSpec("kpneumoniae_carbapenems", "K. pneumoniae resistant to carbapenems", ("kpn",),
                   ("IPM_ND10", "MEM_ND10"), antibiotic_class="Carbapenems"),
    ResistanceSpec("kpneumoniae_fluoroquinolones", "K. pneumoniae resistant to fluoroquinolones", ("kpn",),
                   ("CIP_ND5", "OFX_ND5", "NOR_ND10"), antibiotic_class="Fluoroquinolones"),
    ResistanceSpec("abaumannii_carbapenems", "A. baumannii resistant to carbapenems", ("aba",),
                   ("IPM_ND10", "MEM_ND10"), antibiotic_class="Carbapenems"),
    ResistanceSpec("paeruginosa_carbapenems", "P. aeruginosa resistant to carbapenems", ("pae",),
                   ("IPM_ND10", "MEM_ND10"), antibiotic_class="Carbapenems"),
    ResistanceSpec("mrsa", "Methicillin-resistant S. aureus (MRSA)", ("sau",),
                   ("FOX_ND30",), rule=CombineRule.SINGLE, antibiotic_class="Methicillin"),
    # Oxacillin screen confirmed by penicillin: both must read R
    ResistanceSpec("spneumoniae_penicillin", "S. pneumoniae resistant to penicillin", ("spn",),
                   ("OXA_ND1", "PNV_ND10"), rule=CombineRule.ALL, antibiotic_class="Penicillins"),
    ResistanceSpec("spneumoniae_3gc", "S. pneumoniae resistant to 3rd-gen cephalosporins", ("spn",),
                   ("CTX_ND30", "CRO_ND30"), antibiotic_class="3rd-gen cephalosporins"),
    ResistanceSpec("efaecium_vancomycin", "Vancomycin-resistant E. faecium (VRE)", ("efm",),
                   ("VAN_ND30",), rule=CombineRule.SINGLE, antibiotic_class="Glycopeptides"),
)

RESISTANCE_SPECS: Mapping[str, ResistanceSpec] = {s.key: s for s in PRIORITY_RESISTANCE}


def resistance_spec(key: str) -> ResistanceSpec:
    return RESISTANCE_SPECS[validate_choice("key", key, RESISTANCE_SPECS)]


@dataclass
class ResistanceResult:
    key: str
    label: str
    organisms: List[str]
    antibiotics: List[str]
    rule: str
    resistant: int
    total: int
    percentage: float
    min_sample_size: Optional[int] = None

    @property
    def available(self) -> bool:
        return self.percentage != RATE_UNAVAILABLE

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["available"] = self.available
        return data


def summarize_resistance(
    rows: Iterable[Mapping[str, Any]],
    spec: ResistanceSpec,
    dataset: Dataset = HUMAN,
    min_sample_size: Optional[int] = 30,
) -> ResistanceResult:
    """Resistance rate of already-fetched isolates"""
    organism_column = dataset.organism_column or "ORGANISM"
    selected = [
        row for row in rows
        if spec.matches(row.get(organism_column)) and _valid(dataset, row)
    ]
    tally = aggregate(selected, constant_key(spec.key), spec.classify).get(spec.key, Tally())
    return ResistanceResult(
        key=spec.key,
        label=spec.label,
        organisms=list(spec.organisms),
        antibiotics=list(spec.columns),
        rule=spec.rule.value,
        resistant=tally.numerator,
        total=tally.denominator,
        percentage=rate(tally, min_sample_size),
        min_sample_size=min_sample_size or None,
    )


def _isolate_columns(dataset: Dataset, specs: Sequence[ResistanceSpec], extra: Sequence[str] = ()) -> List[str]:
    columns: List[str] = [dataset.organism_column]
    if dataset.valid_column:
        columns.append(dataset.valid_column)
    for spec in specs:
        columns.extend(spec.columns)
    columns.extend(extra)
    return list(dict.fromkeys(columns))


async def fetch_isolates(
    source: RowSource,
    dataset: Dataset,
    specs: Sequence[ResistanceSpec],
    filters: Sequence[Predicate] = (),
    extra_columns: Sequence[str] = (),
    timeout: Optional[float] = None,
) -> List[Dict[str, Any]]:
    """Isolates of every organism the specs name, with the columns they read"""
    organisms = sorted({o for spec in specs for o in spec.organisms})
    predicates = [any_of(dataset.organism_column, organisms), *filters]
    return await source.fetch(
        dataset.table,
        _isolate_columns(dataset, specs, extra_columns),
        predicates,
        timeout=timeout,
    )


async def calculate_resistance(
    source: RowSource,
    dataset: Dataset,
    spec: ResistanceSpec,
    filters: Sequence[Predicate] = (),
    min_sample_size: Optional[int] = 30,
    timeout: Optional[float] = None,
) -> ResistanceResult:
    """
    Resistance rate for one organism / antibiotic-group combination

    Args:
        source: row source
        dataset: AMR table to read
        spec: organisms, antibiotic columns and combine rule
        filters: extra predicates from the request
        min_sample_size: threshold below which the rate is RATE_UNAVAILABLE;
            None or 0 reports regardless of n

    Returns:
        ResistanceResult with resistant / total counts and the rate
    """
    rows = await fetch_isolates(source, dataset, [spec], filters, timeout=timeout)
    result = summarize_resistance(rows, spec, dataset, min_sample_size)
    logger.debug(f"{spec.key} on {dataset.table}: {result.resistant}/{result.total} -> {result.percentage}")
    return result


async def calculate_priority_resistance(
    source: RowSource,
    dataset: Dataset,
    specs: Sequence[ResistanceSpec] = PRIORITY_RESISTANCE,
    filters: Sequence[Predicate] = (),
    min_sample_size: Optional[int] = 30,
    timeout: Optional[float] = None,
) -> List[ResistanceResult]:
    """Every catalogue entry from a single fetch"""
    rows = await fetch_isolates(source, dataset, specs, filters, timeout=timeout)
    return [summarize_resistance(rows, spec, dataset, min_sample_size) for spec in specs]


async def calculate_resistance_by(
    source: RowSource,
    dataset: Dataset,
    spec: ResistanceSpec,
    group_by: str,
    filters: Sequence[Predicate] = (),
    ordering: Optional[Ordering] = None,
    min_sample_size: Optional[int] = 30,
    reference: Optional[ReferenceData] = None,
    timeout: Optional[float] = None,
) -> List[ChartEntry]:
    """Resistance rate per value of a demographic / contextual column"""
    validate_column(group_by, dataset.group_columns)
    reference = reference or ReferenceData()

    rows = await fetch_isolates(source, dataset, [spec], filters, extra_columns=[group_by], timeout=timeout)
    rows = [r for r in rows if spec.matches(r.get(dataset.organism_column)) and _valid(dataset, r)]
    tallies = aggregate(rows, column_key(group_by), spec.classify)

    label_for = reference.organism_name if group_by == dataset.organism_column else None
    return rank(
        tallies,
        ordering or _default_ordering(dataset, group_by, Ordering.RATE_DESC),
        min_sample_size,
        label_for=label_for,
        age_order=reference.age_order,
    )


# ---------------------------------------------------------------------------
# Prevalence
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PrevalenceSpec:
    """Indicator column and what counts as positive"""

    key: str
    label: str
    column: str
    rule: IndicatorRule = classify_indicator
    target: Optional[float] = None

    def classify(self, row: Mapping[str, Any]) -> Indicator:
        return self.rule(row.get(self.column))


QUALITY_INDICATORS: Tuple[PrevalenceSpec, ...] = (
    PrevalenceSpec("reason_in_notes", "Reason in Notes", "reason_in_notes", target=80),
    PrevalenceSpec("guideline_compliance", "Guideline Compliant", "guideline_compliance", target=80),
    PrevalenceSpec("culture_taken", "Culture Taken", "culture_to_lab_yesno", target=80),
    PrevalenceSpec("targeted_therapy", "Targeted Therapy", "treatment", rule=equals_rule("TARGETED"), target=80),
    PrevalenceSpec("biomarker_used", "Biomarker Used", "treatment_based_on_biomarker_d", target=80),
    PrevalenceSpec("review_date", "Review Date", "is_a_stopreview_date_documente", target=80),
)

ANTIBIOTIC_PREVALENCE = PrevalenceSpec("antibiotic_prevalence", "Patients on antibiotics", "antibiotic_yn")

PREVALENCE_SPECS: Mapping[str, PrevalenceSpec] = {
    s.key: s for s in (*QUALITY_INDICATORS, ANTIBIOTIC_PREVALENCE)
}


def prevalence_spec(key: str) -> PrevalenceSpec:
    return PREVALENCE_SPECS[validate_choice("indicator", key, PREVALENCE_SPECS)]


@dataclass
class PrevalenceResult:
    key: str
    label: str
    field: str
    count: int
    total: int
    value: float
    target: Optional[float] = None

    @property
    def available(self) -> bool:
        return self.value != RATE_UNAVAILABLE

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["subject"] = self.label
        data["available"] = self.available
        return data


def summarize_prevalence(
    rows: Iterable[Mapping[str, Any]],
    spec: PrevalenceSpec,
    min_sample_size: Optional[int] = None,
) -> PrevalenceResult:
    tally = aggregate(rows, constant_key(spec.key), spec.classify).get(spec.key, Tally())
    return PrevalenceResult(
        key=spec.key,
        label=spec.label,
        field=spec.column,
        count=tally.numerator,
        total=tally.denominator,
        value=rate(tally, min_sample_size),
        target=spec.target,
    )


async def calculate_prevalence(
    source: RowSource,
    table: str,
    spec: PrevalenceSpec,
    filters: Sequence[Predicate] = (),
    min_sample_size: Optional[int] = None,
    timeout: Optional[float] = None,
) -> PrevalenceResult:
    """Share of classified rows whose indicator is positive"""
    rows = await source.fetch(table, [spec.column], [*filters, *not_null(spec.column)], timeout=timeout)
    return summarize_prevalence(rows, spec, min_sample_size)


async def calculate_prevalence_by(
    source: RowSource,
    dataset: Dataset,
    spec: PrevalenceSpec,
    group_by: str,
    filters: Sequence[Predicate] = (),
    ordering: Optional[Ordering] = None,
    min_sample_size: Optional[int] = None,
    reference: Optional[ReferenceData] = None,
    timeout: Optional[float] = None,
) -> List[ChartEntry]:
    """Indicator prevalence per value of a grouping column"""
    validate_column(group_by, dataset.group_columns)
    reference = reference or ReferenceData()

    columns = list(dict.fromkeys([spec.column, group_by]))
    rows = await source.fetch(dataset.table, columns, [*filters, *not_null(spec.column)], timeout=timeout)
    tallies = aggregate(rows, column_key(group_by), spec.classify)

    label_for = reference.indication_name if group_by == "indication" else None
    return rank(
        tallies,
        ordering or _default_ordering(dataset, group_by, Ordering.RATE_DESC),
        min_sample_size,
        label_for=label_for,
        age_order=reference.age_order,
    )


@dataclass
class QualityIndicators:
    total_records: int
    indicators: List[PrevalenceResult] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalRecords": self.total_records,
            "indicators": [i.to_dict() for i in self.indicators],
        }


async def calculate_quality_indicators(
    source: RowSource,
    filters: Sequence[Predicate] = (),
    specs: Sequence[PrevalenceSpec] = QUALITY_INDICATORS,
    min_sample_size: Optional[int] = None,
    timeout: Optional[float] = None,
) -> QualityIndicators:
    """
    The prescribing-quality indicators over one cohort

    Only encounters with every indicator recorded are included, so all
    indicators share the same population.
    """
    columns = list(dict.fromkeys(s.column for s in specs))
    rows = await source.fetch(USAGE.table, columns, [*filters, *not_null(*columns)], timeout=timeout)
    return QualityIndicators(
        total_records=len(rows),
        indicators=[summarize_prevalence(rows, spec, min_sample_size) for spec in specs],
    )


# ---------------------------------------------------------------------------
# Distributions
# ---------------------------------------------------------------------------

AWARE_COLORS: Mapping[AwareCategory, str] = {
    AwareCategory.ACCESS: "#16a34a",
    AwareCategory.WATCH: "#f59e0b",
    AwareCategory.RESERVE: "#dc2626",
    AwareCategory.OTHER: "#6b7280",
}


@dataclass
class AwareDistribution:
    counts: Dict[AwareCategory, int]
    excluded: int

    @property
    def total(self) -> int:
        return sum(self.counts.values())

    def entries(self) -> List[ChartEntry]:
        """Access, Watch, Reserve, Other, in that order"""
        total = self.total
        return [
            ChartEntry(
                label=category.value,
                value=percentage(self.counts[category], total) if total else 0.0,
                count=self.counts[category],
                total=total,
                color=AWARE_COLORS[category],
                key=category.value,
            )
            for category in AwareCategory
        ]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "excluded": self.excluded,
            "categories": [e.to_dict() for e in self.entries()],
        }


def classify_aware_values(values: Iterable[Any]) -> AwareDistribution:
    counts = {category: 0 for category in AwareCategory}
    excluded = 0
    for value in values:
        category = classify_aware(value)
        if category is None:
            excluded += 1
        else:
            counts[category] += 1
    return AwareDistribution(counts=counts, excluded=excluded)


async def aware_distribution(
    source: RowSource,
    filters: Sequence[Predicate] = (),
    timeout: Optional[float] = None,
) -> AwareDistribution:
    rows = await source.fetch(USAGE.table, ["aware"], filters, timeout=timeout)
    return classify_aware_values(row.get("aware") for row in rows)


ATC_LEVELS = ("atc2", "atc3", "atc4", "atc5")


async def value_distribution(
    source: RowSource,
    dataset: Dataset,
    column: str,
    filters: Sequence[Predicate] = (),
    ordering: Optional[Ordering] = None,
    limit: Optional[int] = None,
    reference: Optional[ReferenceData] = None,
    timeout: Optional[float] = None,
) -> List[ChartEntry]:
    """Frequency of each value of a column"""
    validate_column(column, dataset.group_columns)
    reference = reference or ReferenceData()

    rows = await source.fetch(dataset.table, [column], [*filters, *not_blank(column)], timeout=timeout)
    if column == "atc4":
        label_for = reference.atc4_name
    elif column == "indication":
        label_for = reference.indication_name
    elif column == dataset.organism_column:
        label_for = reference.organism_name
    else:
        label_for = None

    return rank_counts(
        count_by(rows, column_key(column)),
        ordering or _default_ordering(dataset, column, Ordering.COUNT_DESC),
        label_for=label_for,
        age_order=reference.age_order,
        limit=limit,
    )


async def atc_distribution(
    source: RowSource,
    level: str = "atc4",
    filters: Sequence[Predicate] = (),
    limit: Optional[int] = None,
    reference: Optional[ReferenceData] = None,
    timeout: Optional[float] = None,
) -> List[ChartEntry]:
    validate_choice("level", level, ATC_LEVELS)
    return await value_distribution(
        source, USAGE, level, filters, limit=limit, reference=reference, timeout=timeout
    )


async def distinct_values(
    source: RowSource,
    table: str,
    column: str,
    timeout: Optional[float] = None,
) -> List[str]:
    """Sorted distinct non-blank values of a column"""
    rows = await source.fetch(table, [column], not_blank(column), order_by=column, timeout=timeout)
    if not rows:
        return []
    series = pd.DataFrame.from_records(rows, columns=[column])[column].dropna().astype(str).str.strip()
    return sorted(v for v in series.unique() if v)


def antibiotic_columns(rows: Sequence[Mapping[str, Any]]) -> List[str]:
    """Antibiotic result columns present in fetched rows"""
    if not rows:
        return []
    return sorted(c for c in rows[0].keys() if ANTIBIOTIC_COLUMN.match(c))


@dataclass
class SusceptibilityProfile:
    antibiotic: str
    name: str
    susceptible: int
    intermediate: int
    resistant: int

    @property
    def total(self) -> int:
        return self.susceptible + self.intermediate + self.resistant

    def to_dict(self, min_sample_size: Optional[int] = None) -> Dict[str, Any]:
        tally = Tally(self.resistant, self.total)
        return {
            "antibiotic": self.antibiotic,
            "name": self.name,
            "S": self.susceptible,
            "I": self.intermediate,
            "R": self.resistant,
            "total": self.total,
            "resistantPercentage": rate(tally, min_sample_size),
        }


def susceptibility_profile(
    rows: Sequence[Mapping[str, Any]],
    organism: Optional[str] = None,
    antibiotics: Optional[Sequence[str]] = None,
    reference: Optional[ReferenceData] = None,
) -> List[SusceptibilityProfile]:
    """S/I/R counts per antibiotic column, most-tested first"""
    reference = reference or ReferenceData()
    columns = list(antibiotics) if antibiotics else antibiotic_columns(rows)
    if organism:
        columns = filter_antibiotics_for_organism(columns, organism)
    if not rows or not columns:
        return []

    frame = pd.DataFrame.from_records(rows)
    profiles = []
    for column in columns:
        if column not in frame.columns:
            continue
        counts = frame[column].map(lambda v: classify_susceptibility(v).value).value_counts()
        profile = SusceptibilityProfile(
            antibiotic=column,
            name=reference.antibiotic_name(column),
            susceptible=int(counts.get(Susceptibility.SUSCEPTIBLE.value, 0)),
            intermediate=int(counts.get(Susceptibility.INTERMEDIATE.value, 0)),
            resistant=int(counts.get(Susceptibility.RESISTANT.value, 0)),
        )
        if profile.total:
            profiles.append(profile)

    return sorted(profiles, key=lambda p: (-p.total, p.antibiotic))


async def sir_distribution(
    source: RowSource,
    dataset: Dataset,
    organism: str,
    filters: Sequence[Predicate] = (),
    antibiotics: Optional[Sequence[str]] = None,
    reference: Optional[ReferenceData] = None,
    timeout: Optional[float] = None,
) -> List[SusceptibilityProfile]:
    """S/I/R profile of one organism across its antibiotic panel"""
    code = organism.strip().lower()
    predicates = [equals(dataset.organism_column, code), *filters]
    columns = None
    if antibiotics:
        columns = [dataset.organism_column, dataset.valid_column, *antibiotics]
        columns = [c for c in columns if c]
    rows = await source.fetch(dataset.table, columns, predicates, timeout=timeout)
    rows = [r for r in rows if _valid(dataset, r)]
    return susceptibility_profile(rows, code, antibiotics, reference)


async def antibiotics_for_organism(
    source: RowSource,
    dataset: Dataset,
    organism: str,
    reference: Optional[ReferenceData] = None,
    timeout: Optional[float] = None,
) -> List[Dict[str, str]]:
    """Antibiotics with at least one result for the organism, ESBL-filtered"""
    reference = reference or ReferenceData()
    profiles = await sir_distribution(source, dataset, organism, reference=reference, timeout=timeout)
    return sorted(
        ({"column": p.antibiotic, "name": p.name} for p in profiles),
        key=lambda a: a["name"],
    )


def _organism_key(dataset: Dataset):
    """Lower-cased organism code; blank or missing cells are skipped"""
    raw = column_key(dataset.organism_column)

    def key(row: Mapping[str, Any]) -> Optional[str]:
        value = raw(row)
        return None if value is None else str(value).lower()

    return key


async def mdr_by_organism(
    source: RowSource,
    dataset: Dataset,
    filters: Sequence[Predicate] = (),
    min_sample_size: Optional[int] = 30,
    reference: Optional[ReferenceData] = None,
    timeout: Optional[float] = None,
) -> List[ChartEntry]:
    """Share of isolates flagged multidrug resistant, per organism"""
    reference = reference or ReferenceData()
    columns = [c for c in (dataset.organism_column, "MDR_TF", dataset.valid_column) if c]
    rows = await source.fetch(dataset.table, columns, [*filters, *not_null("MDR_TF")], timeout=timeout)
    rows = [r for r in rows if _valid(dataset, r)]
    tallies = aggregate(
        rows,
        _organism_key(dataset),
        lambda r: classify_indicator(r.get("MDR_TF")),
    )
    return rank(tallies, Ordering.RATE_DESC, min_sample_size, label_for=reference.organism_name)


async def top_organisms(
    source: RowSource,
    dataset: Dataset,
    filters: Sequence[Predicate] = (),
    limit: Optional[int] = 10,
    search: Optional[str] = None,
    reference: Optional[ReferenceData] = None,
    timeout: Optional[float] = None,
) -> List[ChartEntry]:
    """Isolate counts per organism, largest first"""
    reference = reference or ReferenceData()
    predicates = [*filters, *not_blank(dataset.organism_column)]
    if search:
        predicates.append(starts_with(dataset.organism_column, search))
    rows = await source.fetch(dataset.table, [dataset.organism_column], predicates, timeout=timeout)
    counts = count_by(rows, _organism_key(dataset))
    return rank_counts(counts, Ordering.COUNT_DESC, label_for=reference.organism_name, limit=limit)


async def isolate_count(
    source: RowSource,
    dataset: Dataset,
    filters: Sequence[Predicate] = (),
    timeout: Optional[float] = None,
) -> int:
    return await source.count(dataset.table, filters, timeout=timeout)


async def most_recent_specimen(
    source: RowSource,
    dataset: Dataset,
    filters: Sequence[Predicate] = (),
    timeout: Optional[float] = None,
) -> Dict[str, Any]:
    """Latest specimen record; NotFoundError when the table has none"""
    rows = await source.fetch(
        dataset.table,
        [dataset.date_column, dataset.organism_column],
        [*filters, *not_null(dataset.date_column)],
        order_by=dataset.date_column,
        descending=True,
        limit=1,
        timeout=timeout,
    )
    if not rows:
        raise NotFoundError(f"No specimens with a {dataset.date_column} in {dataset.table}")
    return rows[0]
