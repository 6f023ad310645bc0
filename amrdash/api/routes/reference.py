"""Reference data routes"""
from typing import Any, Dict

from fastapi import APIRouter, Depends

from amrdash.api.deps import get_reference, get_settings
from amrdash.api.responses import envelope
from amrdash.core.config import AppSettings
from amrdash.surveillance.reference import ReferenceData

router = APIRouter(tags=["reference"])


@router.get("/organism-mappings")
async def organism_mappings(
    reference: ReferenceData = Depends(get_reference),
    settings: AppSettings = Depends(get_settings),
) -> Dict[str, Any]:
    mappings = [{"code": code, "name": name} for code, name in sorted(reference.organisms.items())]
    return envelope(mappings, settings.organism_view, count=len(mappings))


@router.get("/antibiotic-mappings")
async def antibiotic_mappings(
    reference: ReferenceData = Depends(get_reference),
    settings: AppSettings = Depends(get_settings),
) -> Dict[str, Any]:
    mappings = [
        {"column_name": column, "name": name}
        for column, name in sorted(reference.antibiotics.items())
    ]
    return envelope(mappings, settings.antibiotic_view, count=len(mappings))
