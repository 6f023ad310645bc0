"""
Request dependencies

Settings, row source and reference data live on app.state; handlers get
them through these FastAPI dependencies.
"""
from typing import Dict, List, Optional, Union

from fastapi import Depends, Query, Request

from amrdash.core.config import AppSettings
from amrdash.core.database import RowSource
from amrdash.surveillance.calculations import Dataset, amr_dataset
from amrdash.surveillance.filters import validate_choice
from amrdash.surveillance.ranking import Ordering
from amrdash.surveillance.reference import ReferenceData


def get_settings(request: Request) -> AppSettings:
    return request.app.state.settings


def get_source(request: Request) -> RowSource:
    return request.app.state.source


def get_reference(request: Request) -> ReferenceData:
    return request.app.state.reference


def query_params(request: Request) -> Dict[str, Union[str, List[str]]]:
    """Query string as a dict; repeated keys become lists"""
    params = request.query_params
    result: Dict[str, Union[str, List[str]]] = {}
    for key in params.keys():
        values = params.getlist(key)
        result[key] = values if len(values) > 1 else values[0]
    return result


def sample_threshold(
    no_limit: bool = Query(False, description="Report rates regardless of sample size"),
    settings: AppSettings = Depends(get_settings),
) -> Optional[int]:
    """Minimum sample size for this request; None disables suppression"""
    if no_limit:
        return None
    return settings.min_sample_size or None


def get_amr_dataset(
    dataset: str = Query("human", description="AMR dataset: human or animal"),
) -> Dataset:
    return amr_dataset(dataset)


def get_ordering(
    order: Optional[str] = Query(None, description="rate, count or age"),
) -> Optional[Ordering]:
    if order is None:
        return None
    return Ordering(validate_choice("order", order, [o.value for o in Ordering]))
