"""Service health, diagnostics and route listing"""
import time
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Request
from fastapi.routing import APIRoute
from sqlalchemy.exc import SQLAlchemyError

from amrdash import __version__
from amrdash.api.deps import get_settings, get_source
from amrdash.api.responses import envelope, utc_timestamp
from amrdash.core.config import AppSettings
from amrdash.core.database import RowSource
from amrdash.core.exceptions import SurveillanceError
from amrdash.core.logging import get_logger
from amrdash.surveillance.calculations import ANIMAL, HUMAN, USAGE

logger = get_logger(__name__)

router = APIRouter(tags=["health"])

PROBE_TIMEOUT = 5.0


@router.get("/health")
async def health() -> Dict[str, Any]:
    """Liveness"""
    return {"status": "ok", "version": __version__, "timestamp": utc_timestamp()}


@router.get("/diagnostic")
async def diagnostic(
    settings: AppSettings = Depends(get_settings),
    source: RowSource = Depends(get_source),
) -> Dict[str, Any]:
    """
    Settings presence and a one-row probe per surveillance table

    A failing probe is reported in the payload rather than as an error
    status, so the caller sees every table at once.
    """
    tables: List[Dict[str, Any]] = []
    for dataset in (HUMAN, ANIMAL, USAGE):
        start = time.perf_counter()
        try:
            rows = await source.fetch(dataset.table, limit=1, timeout=PROBE_TIMEOUT)
            status = {"table": dataset.table, "reachable": True, "sampleRows": len(rows)}
        except (SurveillanceError, SQLAlchemyError) as e:
            logger.warning(f"Diagnostic probe of {dataset.table} failed: {e}")
            status = {"table": dataset.table, "reachable": False, "message": str(e)}
        status["durationMs"] = round((time.perf_counter() - start) * 1000, 1)
        tables.append(status)

    return envelope(
        {
            "environment": settings.app_env,
            "databaseUrlSet": bool(settings.database_url),
            "serviceKeySet": bool(settings.database_service_key.get_secret_value()),
            "database": settings.database_host,
            "tables": tables,
        }
    )


@router.get("/routes")
async def list_routes(request: Request) -> Dict[str, Any]:
    routes = [
        {"path": route.path, "methods": sorted(route.methods), "name": route.name}
        for route in request.app.routes
        if isinstance(route, APIRoute)
    ]
    return envelope(routes, count=len(routes))
