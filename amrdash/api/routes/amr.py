"""Antimicrobial resistance (AMR) routes"""
from typing import Any, Dict, List, Optional, Union

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from amrdash.api.deps import (
    get_amr_dataset,
    get_ordering,
    get_reference,
    get_source,
    query_params,
    sample_threshold,
)
from amrdash.api.responses import envelope
from amrdash.core.database import RowSource
from amrdash.surveillance.calculations import (
    Dataset,
    amr_dataset,
    antibiotics_for_organism,
    calculate_priority_resistance,
    calculate_resistance,
    calculate_resistance_by,
    distinct_values,
    isolate_count,
    mdr_by_organism,
    most_recent_specimen,
    resistance_spec,
    sir_distribution,
    top_organisms,
)
from amrdash.surveillance.filters import build_predicates, validate_column
from amrdash.surveillance.ranking import Ordering
from amrdash.surveillance.reference import ReferenceData

router = APIRouter(tags=["amr"])

# Whole-catalogue and full-row reads scan the most data
WIDE_TIMEOUT = 45.0
VALUES_TIMEOUT = 15.0
COUNT_TIMEOUT = 10.0

Params = Dict[str, Union[str, List[str]]]


class ProfileRequest(BaseModel):
    """Body of POST /amr-profiler"""

    organism: str = Field(..., min_length=1, description="Organism code, e.g. eco")
    dataset: str = Field(default="human", description="human or animal")
    filters: Dict[str, Union[str, bool, List[str]]] = Field(default_factory=dict)
    antibiotics: Optional[List[str]] = Field(default=None, description="Restrict to these columns")


def _filters(params: Params, dataset: Dataset):
    return build_predicates(params, dataset.filter_columns)


@router.get("/amr-filter-values")
async def amr_filter_values(
    column: str = Query(..., description="AMR filter column"),
    dataset: Dataset = Depends(get_amr_dataset),
    source: RowSource = Depends(get_source),
    reference: ReferenceData = Depends(get_reference),
) -> Dict[str, Any]:
    validate_column(column, dataset.filter_columns)
    values = await distinct_values(source, dataset.table, column, timeout=VALUES_TIMEOUT)
    if column == dataset.organism_column:
        options = [{"value": v, "label": reference.organism_name(v)} for v in values]
    elif column == dataset.age_column:
        options = [{"value": v, "label": v} for v in reference.age_order.sort(values)]
    else:
        options = [{"value": v, "label": v} for v in values]
    return envelope(options, dataset.table, column=column, count=len(options))


@router.get("/amr-priority-resistance")
async def priority_resistance(
    params: Params = Depends(query_params),
    dataset: Dataset = Depends(get_amr_dataset),
    threshold: Optional[int] = Depends(sample_threshold),
    source: RowSource = Depends(get_source),
) -> Dict[str, Any]:
    """Every priority organism / antibiotic-group combination"""
    results = await calculate_priority_resistance(
        source, dataset, filters=_filters(params, dataset),
        min_sample_size=threshold, timeout=WIDE_TIMEOUT,
    )
    return envelope(results, dataset.table, minSampleSize=threshold)


@router.get("/amr-resistance/{key}")
async def resistance(
    key: str,
    group_by: Optional[str] = Query(None, description="Column to break the rate down by"),
    params: Params = Depends(query_params),
    dataset: Dataset = Depends(get_amr_dataset),
    ordering: Optional[Ordering] = Depends(get_ordering),
    threshold: Optional[int] = Depends(sample_threshold),
    source: RowSource = Depends(get_source),
    reference: ReferenceData = Depends(get_reference),
) -> Dict[str, Any]:
    spec = resistance_spec(key)
    filters = _filters(params, dataset)
    if group_by is None:
        result = await calculate_resistance(source, dataset, spec, filters, threshold)
        return envelope(result, dataset.table)

    entries = await calculate_resistance_by(
        source, dataset, spec, group_by, filters,
        ordering=ordering, min_sample_size=threshold, reference=reference,
    )
    return envelope(entries, dataset.table, key=spec.key, groupBy=group_by, minSampleSize=threshold)


@router.get("/amr-sir-distribution")
async def sir(
    organism: str = Query(..., min_length=1, description="Organism code"),
    params: Params = Depends(query_params),
    dataset: Dataset = Depends(get_amr_dataset),
    threshold: Optional[int] = Depends(sample_threshold),
    source: RowSource = Depends(get_source),
    reference: ReferenceData = Depends(get_reference),
) -> Dict[str, Any]:
    profiles = await sir_distribution(
        source, dataset, organism, _filters(params, dataset),
        reference=reference, timeout=WIDE_TIMEOUT,
    )
    return envelope(
        [p.to_dict(threshold) for p in profiles],
        dataset.table,
        organism=organism.strip().lower(),
        organismName=reference.organism_name(organism),
    )


@router.post("/amr-profiler")
async def profiler(
    body: ProfileRequest,
    threshold: Optional[int] = Depends(sample_threshold),
    source: RowSource = Depends(get_source),
    reference: ReferenceData = Depends(get_reference),
) -> Dict[str, Any]:
    """S/I/R profile of an organism under arbitrary filters"""
    dataset = amr_dataset(body.dataset)
    profiles = await sir_distribution(
        source, dataset, body.organism, build_predicates(body.filters, dataset.filter_columns),
        antibiotics=body.antibiotics, reference=reference, timeout=WIDE_TIMEOUT,
    )
    return envelope(
        [p.to_dict(threshold) for p in profiles],
        dataset.table,
        organism=body.organism.strip().lower(),
        organismName=reference.organism_name(body.organism),
    )


@router.get("/amr-mdr-prevalence")
async def mdr(
    params: Params = Depends(query_params),
    dataset: Dataset = Depends(get_amr_dataset),
    threshold: Optional[int] = Depends(sample_threshold),
    source: RowSource = Depends(get_source),
    reference: ReferenceData = Depends(get_reference),
) -> Dict[str, Any]:
    entries = await mdr_by_organism(
        source, dataset, _filters(params, dataset), threshold, reference=reference
    )
    return envelope(entries, dataset.table, minSampleSize=threshold)


@router.get("/amr-top-organisms")
async def organisms(
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = Query(None, description="Organism code prefix"),
    params: Params = Depends(query_params),
    dataset: Dataset = Depends(get_amr_dataset),
    source: RowSource = Depends(get_source),
    reference: ReferenceData = Depends(get_reference),
) -> Dict[str, Any]:
    entries = await top_organisms(
        source, dataset, _filters(params, dataset), limit=limit, search=search, reference=reference
    )
    return envelope(entries, dataset.table)


@router.get("/amr-isolates-total")
async def isolates_total(
    params: Params = Depends(query_params),
    dataset: Dataset = Depends(get_amr_dataset),
    source: RowSource = Depends(get_source),
) -> Dict[str, Any]:
    total = await isolate_count(source, dataset, _filters(params, dataset), timeout=COUNT_TIMEOUT)
    return envelope({"total": total}, dataset.table)


@router.get("/amr-most-recent-spec-date")
async def most_recent(
    params: Params = Depends(query_params),
    dataset: Dataset = Depends(get_amr_dataset),
    source: RowSource = Depends(get_source),
) -> Dict[str, Any]:
    record = await most_recent_specimen(source, dataset, _filters(params, dataset))
    spec_date = record.get(dataset.date_column)
    return envelope(
        {
            "specDate": spec_date.isoformat() if hasattr(spec_date, "isoformat") else spec_date,
            "organism": record.get(dataset.organism_column),
        },
        dataset.table,
    )


@router.get("/amr-antibiotics-for-organism")
async def antibiotics(
    organism: str = Query(..., min_length=1, description="Organism code"),
    dataset: Dataset = Depends(get_amr_dataset),
    source: RowSource = Depends(get_source),
    reference: ReferenceData = Depends(get_reference),
) -> Dict[str, Any]:
    """Antibiotics tested against the organism, ESBL-suppressed"""
    items = await antibiotics_for_organism(
        source, dataset, organism, reference=reference, timeout=WIDE_TIMEOUT
    )
    return envelope(items, dataset.table, organism=organism.strip().lower(), count=len(items))
