"""Core services"""

from .config import AppSettings, get_config, load_settings
from .exceptions import (
    ConfigurationError,
    InvalidInputError,
    NotFoundError,
    SurveillanceError,
    UpstreamUnavailableError,
)
from .logging import setup_logging, get_logger
from .predicates import FilterOp, Predicate
from .database import RowSource, SqlRowSource, get_engine, close_database

__all__ = [
    "AppSettings",
    "get_config",
    "load_settings",
    "setup_logging",
    "get_logger",
    "ConfigurationError",
    "InvalidInputError",
    "NotFoundError",
    "SurveillanceError",
    "UpstreamUnavailableError",
    "FilterOp",
    "Predicate",
    "RowSource",
    "SqlRowSource",
    "get_engine",
    "close_database",
]
