"""
AMR Dashboard database access

Read-only row fetching on SQLAlchemy 2.0 async. Tables are referenced by
name with lightweight table()/column() constructs; the surveillance tables
are owned by the upstream pipeline, not declared here.
"""
import asyncio
import time
from typing import Any, Dict, List, Optional, Protocol, Sequence

import sqlalchemy as sa
from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from .config import AppSettings
from .exceptions import UpstreamUnavailableError
from .logging import get_logger
from .predicates import FilterOp, Predicate

logger = get_logger(__name__)

Row = Dict[str, Any]

# Global engine
_engine: Optional[AsyncEngine] = None


class RowSource(Protocol):
    """What the surveillance calculations need from the database"""

    async def fetch(
        self,
        table: str,
        columns: Optional[Sequence[str]] = None,
        predicates: Sequence[Predicate] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> List[Row]:
        ...

    async def count(
        self,
        table: str,
        predicates: Sequence[Predicate] = (),
        timeout: Optional[float] = None,
    ) -> int:
        ...


def get_engine(settings: AppSettings) -> AsyncEngine:
    """Database engine (singleton)"""
    global _engine
    if _engine is None:
        _engine = create_async_engine(
            settings.database_dsn,
            echo=settings.db_echo,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=True,
            pool_recycle=3600,
        )
        logger.info(f"Database engine created: {settings.database_host}")
    return _engine


async def close_database() -> None:
    """Dispose of the engine"""
    global _engine
    if _engine:
        await _engine.dispose()
        logger.info("Database engine disposed")
        _engine = None


def _textual(value: Any) -> bool:
    if isinstance(value, (list, tuple)):
        return any(isinstance(v, str) for v in value)
    return isinstance(value, str)


def predicate_clause(predicate: Predicate) -> sa.ColumnElement:
    """
    Render one predicate as a SQL expression

    Text values are compared against the column cast to text, so "2023"
    matches an integer year column the same way it matches a text one.
    """
    col = sa.column(predicate.column)
    op = predicate.op
    if op in (FilterOp.EQ, FilterOp.NOT_EQ, FilterOp.IN) and _textual(predicate.value):
        col = sa.cast(col, sa.String)

    if op is FilterOp.EQ:
        return col == predicate.value
    if op is FilterOp.NOT_EQ:
        return col != predicate.value
    if op is FilterOp.IS_NULL:
        return col.is_(None)
    if op is FilterOp.NOT_NULL:
        return col.is_not(None)
    if op is FilterOp.IN:
        return col.in_(list(predicate.value))
    if op is FilterOp.ILIKE_PREFIX:
        return col.istartswith(predicate.value, autoescape=True)
    raise ValueError(f"Unsupported filter operation: {op}")


def build_select(
    table: str,
    columns: Optional[Sequence[str]] = None,
    predicates: Sequence[Predicate] = (),
    order_by: Optional[str] = None,
    descending: bool = False,
    limit: Optional[int] = None,
) -> sa.Select:
    """SELECT statement for a fetch"""
    if columns:
        stmt = sa.select(*[sa.column(c) for c in columns])
    else:
        stmt = sa.select(sa.text("*"))
    stmt = stmt.select_from(sa.table(table))

    clauses = [predicate_clause(p) for p in predicates]
    if clauses:
        stmt = stmt.where(*clauses)
    if order_by:
        order_col = sa.column(order_by)
        stmt = stmt.order_by(order_col.desc() if descending else order_col)
    if limit is not None:
        stmt = stmt.limit(limit)
    return stmt


def build_count(table: str, predicates: Sequence[Predicate] = ()) -> sa.Select:
    """SELECT count(*) statement"""
    stmt = sa.select(sa.func.count()).select_from(sa.table(table))
    clauses = [predicate_clause(p) for p in predicates]
    if clauses:
        stmt = stmt.where(*clauses)
    return stmt


def _is_connectivity_error(exc: BaseException) -> bool:
    if isinstance(exc, (OperationalError, InterfaceError, OSError)):
        return True
    return isinstance(exc, DBAPIError) and exc.connection_invalidated


class SqlRowSource:
    """
    RowSource over an async SQLAlchemy engine

    Each call is one round trip bounded by a timeout; a timeout or a
    connection failure raises UpstreamUnavailableError and is not retried.
    """

    def __init__(self, engine: AsyncEngine, default_timeout: float = 30.0):
        self.engine = engine
        self.default_timeout = default_timeout

    async def _rows(self, stmt: sa.Select) -> List[Row]:
        async with self.engine.connect() as conn:
            result = await conn.execute(stmt)
            return [dict(row) for row in result.mappings().all()]

    async def _scalar(self, stmt: sa.Select) -> int:
        async with self.engine.connect() as conn:
            result = await conn.execute(stmt)
            return int(result.scalar_one())

    async def _run(self, coro, table: str, timeout: Optional[float]):
        limit = timeout or self.default_timeout
        try:
            return await asyncio.wait_for(coro, timeout=limit)
        except asyncio.TimeoutError as e:
            logger.warning(f"Query on {table} timed out after {limit}s")
            raise UpstreamUnavailableError(
                f"Query on {table} exceeded the {limit:g}s timeout", table=table
            ) from e
        except Exception as e:
            if _is_connectivity_error(e):
                logger.error(f"Database unavailable while querying {table}: {e}")
                raise UpstreamUnavailableError(
                    "The database is temporarily unavailable. Please try again in a few moments.",
                    table=table,
                ) from e
            raise

    async def fetch(
        self,
        table: str,
        columns: Optional[Sequence[str]] = None,
        predicates: Sequence[Predicate] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> List[Row]:
        stmt = build_select(table, columns, predicates, order_by, descending, limit)
        start = time.perf_counter()
        rows = await self._run(self._rows(stmt), table, timeout)
        logger.debug(
            f"Fetched {len(rows)} rows from {table} "
            f"({len(predicates)} predicates, {time.perf_counter() - start:.3f}s)"
        )
        return rows

    async def count(
        self,
        table: str,
        predicates: Sequence[Predicate] = (),
        timeout: Optional[float] = None,
    ) -> int:
        total = await self._run(self._scalar(build_count(table, predicates)), table, timeout)
        logger.debug(f"Counted {total} rows in {table} ({len(predicates)} predicates)")
        return total
