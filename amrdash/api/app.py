"""
AMR Surveillance API application

create_app() wires settings, the row source and reference data onto
app.state, registers the routers under the configured prefix and maps
the error taxonomy onto HTTP statuses.
"""
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from amrdash import __version__
from amrdash.core.config import AppSettings, get_config
from amrdash.core.database import RowSource, SqlRowSource, close_database, get_engine
from amrdash.core.exceptions import InvalidInputError, SurveillanceError
from amrdash.core.logging import get_logger, setup_logging
from amrdash.surveillance.reference import ReferenceData, load_reference_data

from .responses import utc_timestamp
from .routes import routers

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the engine and load reference data unless they were supplied"""
    settings: AppSettings = app.state.settings
    owns_source = app.state.source is None

    if owns_source:
        app.state.source = SqlRowSource(get_engine(settings), settings.fetch_timeout)
        app.state.reference = await load_reference_data(
            app.state.source,
            settings.organism_view,
            settings.antibiotic_view,
            timeout=settings.fetch_timeout,
        )

    logger.info(f"{settings.app_name} v{__version__} ready ({settings.app_env})")
    try:
        yield
    finally:
        if owns_source:
            await close_database()
        logger.info(f"{settings.app_name} stopped")


def _error_response(error: SurveillanceError) -> JSONResponse:
    body = error.to_dict()
    body["timestamp"] = utc_timestamp()
    return JSONResponse(status_code=error.status_code, content=body)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(SurveillanceError)
    async def surveillance_error_handler(request: Request, exc: SurveillanceError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
        else:
            logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
        return _error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        problems = [
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
        ]
        return _error_response(InvalidInputError("; ".join(problems)))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.opt(exception=exc).error(f"Unhandled error on {request.method} {request.url.path}")
        return _error_response(SurveillanceError(str(exc) or exc.__class__.__name__))


def create_app(
    settings: Optional[AppSettings] = None,
    source: Optional[RowSource] = None,
    reference: Optional[ReferenceData] = None,
) -> FastAPI:
    """
    Build the application

    Args:
        settings: defaults to get_config()
        source: row source; when omitted one is built on the shared engine
            at startup
        reference: lookup tables; when omitted they are loaded from the
            lookup views at startup (or built-in names if a source was given)

    Returns:
        FastAPI app
    """
    settings = settings or get_config()
    setup_logging(settings)

    app = FastAPI(
        title=settings.app_name,
        description="Read-only AMR / AMU surveillance analytics",
        version=__version__,
        debug=settings.debug,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.source = source
    app.state.reference = reference or ReferenceData()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    for router in routers:
        app.include_router(router, prefix=settings.api_prefix)

    register_exception_handlers(app)
    return app
