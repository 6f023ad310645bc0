"""Antimicrobial use (AMU) routes"""
from typing import Any, Dict, List, Optional, Union

from fastapi import APIRouter, Depends, Query

from amrdash.api.deps import get_ordering, get_reference, get_source, query_params, sample_threshold
from amrdash.api.responses import envelope, utc_timestamp
from amrdash.core.database import RowSource
from amrdash.surveillance.calculations import (
    AMU_FILTER_COLUMNS,
    AMU_FILTER_LABELS,
    AMU_VALUE_COLUMNS,
    ANTIBIOTIC_PREVALENCE,
    USAGE,
    atc_distribution,
    aware_distribution,
    calculate_prevalence,
    calculate_prevalence_by,
    calculate_quality_indicators,
    distinct_values,
    prevalence_spec,
    value_distribution,
)
from amrdash.surveillance.filters import build_predicates, validate_column
from amrdash.surveillance.ranking import Ordering
from amrdash.surveillance.reference import ReferenceData

router = APIRouter(tags=["amu"])

# Distinct-value scans read a single column
VALUES_TIMEOUT = 15.0

Params = Dict[str, Union[str, List[str]]]


def _filters(params: Params):
    return build_predicates(params, AMU_FILTER_COLUMNS)


def _value_label(column: str, value: str, reference: ReferenceData) -> str:
    if column == "indication":
        return reference.indication_name(value)
    if column == "atc4":
        return reference.atc4_name(value)
    return value


@router.get("/filter-options")
async def filter_options() -> Dict[str, Any]:
    """AMU filter columns and their display labels"""
    options = [{"value": c, "label": AMU_FILTER_LABELS.get(c, c)} for c in AMU_FILTER_COLUMNS]
    return envelope(options, USAGE.table, count=len(options))


@router.get("/filter-values/{column}")
async def filter_values(
    column: str,
    source: RowSource = Depends(get_source),
    reference: ReferenceData = Depends(get_reference),
) -> Dict[str, Any]:
    validate_column(column, AMU_VALUE_COLUMNS)
    values = await distinct_values(source, USAGE.table, column, timeout=VALUES_TIMEOUT)
    options = [{"value": v, "label": _value_label(column, v, reference)} for v in values]
    return envelope(options, USAGE.table, column=column, count=len(options))


@router.get("/amu-filter-values")
async def amu_filter_values_legacy(
    column: str = Query(..., description="AMU column"),
    source: RowSource = Depends(get_source),
) -> Dict[str, Any]:
    """Distinct values in the older {values, count, column} shape"""
    validate_column(column, AMU_VALUE_COLUMNS)
    values = await distinct_values(source, USAGE.table, column, timeout=VALUES_TIMEOUT)
    return {
        "success": True,
        "values": values,
        "count": len(values),
        "column": column,
        "timestamp": utc_timestamp(),
    }


@router.get("/amu-quality-filter-values")
async def quality_filter_values(
    column: str = Query(..., description="AMU column"),
    source: RowSource = Depends(get_source),
) -> Dict[str, Any]:
    """Distinct values as {value, label} options for the quality view-by chart"""
    validate_column(column, AMU_VALUE_COLUMNS)
    values = await distinct_values(source, USAGE.table, column, timeout=VALUES_TIMEOUT)
    return {
        "success": True,
        "options": [{"value": v, "label": v} for v in values],
        "count": len(values),
        "column": column,
        "timestamp": utc_timestamp(),
    }


@router.get("/amu-quality-indicators")
async def quality_indicators(
    min_sample_size: Optional[int] = Query(None, ge=1, description="Suppress indicators below this cohort size"),
    params: Params = Depends(query_params),
    source: RowSource = Depends(get_source),
) -> Dict[str, Any]:
    """Quality indicators are reported at any cohort size unless min_sample_size is given"""
    result = await calculate_quality_indicators(source, _filters(params), min_sample_size=min_sample_size)
    return envelope(
        result.indicators,
        USAGE.table,
        totalRecords=result.total_records,
        tableName=USAGE.table,
    )


@router.get("/amu-prevalence")
async def antibiotic_prevalence(
    params: Params = Depends(query_params),
    threshold: Optional[int] = Depends(sample_threshold),
    source: RowSource = Depends(get_source),
) -> Dict[str, Any]:
    """Share of surveyed patients on at least one antibiotic"""
    result = await calculate_prevalence(
        source, USAGE.table, ANTIBIOTIC_PREVALENCE, _filters(params), threshold
    )
    return envelope(result, USAGE.table)


@router.get("/amu-indicator/{key}")
async def indicator(
    key: str,
    group_by: Optional[str] = Query(None, description="Column to break the indicator down by"),
    params: Params = Depends(query_params),
    ordering: Optional[Ordering] = Depends(get_ordering),
    threshold: Optional[int] = Depends(sample_threshold),
    source: RowSource = Depends(get_source),
    reference: ReferenceData = Depends(get_reference),
) -> Dict[str, Any]:
    spec = prevalence_spec(key)
    filters = _filters(params)
    if group_by is None:
        result = await calculate_prevalence(source, USAGE.table, spec, filters, threshold)
        return envelope(result, USAGE.table)

    entries = await calculate_prevalence_by(
        source, USAGE, spec, group_by, filters,
        ordering=ordering, min_sample_size=threshold, reference=reference,
    )
    return envelope(entries, USAGE.table, indicator=spec.key, groupBy=group_by, target=spec.target)


@router.get("/amu-aware-distribution")
async def aware(
    params: Params = Depends(query_params),
    source: RowSource = Depends(get_source),
) -> Dict[str, Any]:
    result = await aware_distribution(source, _filters(params))
    return envelope(result, USAGE.table)


@router.get("/amu-atc-distribution")
async def atc(
    level: str = Query("atc4", description="atc2, atc3, atc4 or atc5"),
    limit: Optional[int] = Query(None, ge=1, le=100),
    params: Params = Depends(query_params),
    source: RowSource = Depends(get_source),
    reference: ReferenceData = Depends(get_reference),
) -> Dict[str, Any]:
    entries = await atc_distribution(source, level, _filters(params), limit=limit, reference=reference)
    return envelope(entries, USAGE.table, level=level)


@router.get("/amu-distribution/{column}")
async def distribution(
    column: str,
    limit: Optional[int] = Query(None, ge=1, le=100),
    params: Params = Depends(query_params),
    ordering: Optional[Ordering] = Depends(get_ordering),
    source: RowSource = Depends(get_source),
    reference: ReferenceData = Depends(get_reference),
) -> Dict[str, Any]:
    entries = await value_distribution(
        source, USAGE, column, _filters(params),
        ordering=ordering, limit=limit, reference=reference,
    )
    return envelope(entries, USAGE.table, column=column)
