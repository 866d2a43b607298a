"""
Persistence Store for Completion Metrics

Writes one row per completion outcome to the llm_metrics table and
answers aggregate queries over it:
- summarize(): request counts, success rate, averages and total cost
- cost_breakdown(): cost per (hour|day bucket, model)

All access goes through one bounded SQLAlchemy async connection pool.
Any driver or pool failure is logged and re-raised as PersistenceError;
nothing is retried and no partial results are returned.

On PostgreSQL/TimescaleDB the time window is evaluated against the server
clock with an interval literal and buckets use time_bucket(). On SQLite
(tests, local runs) the window and buckets are computed with portable
expressions over UTC timestamps.
"""

import logging
import time
from collections.abc import Sequence
from datetime import datetime, timedelta, timezone

from sqlalchemy import case, func, literal_column, select, text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from llm_metrics.config import Settings
from llm_metrics.metrics.outcome import CompletionOutcome, OutcomeStatus
from llm_metrics.schemas.metrics import CostBreakdown, MetricsSummary
from llm_metrics.storage.models import Base, LLMMetricRecord

logger = logging.getLogger(__name__)

# Shorthand time range -> (interval literal, window length)
TIME_RANGES: dict[str, tuple[str, timedelta]] = {
    "1h": ("1 hour", timedelta(hours=1)),
    "6h": ("6 hours", timedelta(hours=6)),
    "12h": ("12 hours", timedelta(hours=12)),
    "24h": ("1 day", timedelta(days=1)),
    "7d": ("7 days", timedelta(days=7)),
    "30d": ("30 days", timedelta(days=30)),
}

DEFAULT_TIME_RANGE = "1h"

BUCKET_INTERVALS = {"hour": "1 hour", "day": "1 day"}

_SQLITE_BUCKET_FORMATS = {"hour": "%Y-%m-%d %H:00:00", "day": "%Y-%m-%d 00:00:00"}


class PersistenceError(RuntimeError):
    """Raised when a query against the metrics store fails."""


def parse_time_range(time_range: str | None) -> str:
    """
    Convert a shorthand time range to an interval literal.

    Unrecognized tokens fall back to DEFAULT_TIME_RANGE.

    Example:
        parse_time_range("24h")  # "1 day"
    """
    interval, _ = TIME_RANGES.get(time_range or "", TIME_RANGES[DEFAULT_TIME_RANGE])
    return interval


def time_range_window(time_range: str | None) -> timedelta:
    """Length of the window a shorthand time range covers."""
    _, window = TIME_RANGES.get(time_range or "", TIME_RANGES[DEFAULT_TIME_RANGE])
    return window


def bucket_unit(group_by: str | None) -> str:
    """'hour' for hourly grouping, 'day' for anything else."""
    return "hour" if group_by == "hour" else "day"


def create_engine(
    url: str,
    *,
    schema: str | None = None,
    pool_size: int = 20,
    max_overflow: int = 0,
    pool_timeout: float = 2.0,
    pool_recycle: int = 30,
    echo: bool = False,
) -> AsyncEngine:
    """
    Create the async engine backing the store.

    Pool sizing and timeouts only apply to server databases; SQLite uses
    SQLAlchemy's default pool. The table schema is applied through
    schema_translate_map for server databases only.
    """
    backend = make_url(url).get_backend_name()

    options: dict = {"echo": echo}
    if backend != "sqlite":
        options.update(
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_timeout=pool_timeout,
            pool_recycle=pool_recycle,
            pool_pre_ping=True,
        )

    engine = create_async_engine(url, **options)
    if schema and backend != "sqlite":
        engine = engine.execution_options(schema_translate_map={None: schema})
    return engine


class MetricsDatabase:
    """
    Accessor for the llm_metrics table.

    The database owns its engine and connection pool; call close() on
    shutdown to release pooled connections.

    Example:
        database = MetricsDatabase.from_settings(get_settings())
        await database.initialize()
        await database.save(outcome)
        summary = await database.summarize("24h", model="gpt-4")
        await database.close()
    """

    def __init__(self, url: str, *, schema: str | None = None, engine: AsyncEngine | None = None, **pool_options):
        """
        Initialize the accessor.

        Args:
            url: SQLAlchemy async database URL
            schema: Schema for the metrics table (server databases only)
            engine: Pre-built engine; when given, url and pool options are ignored
            **pool_options: Forwarded to create_engine()
        """
        self._schema = schema
        self._engine = engine or create_engine(url, schema=schema, **pool_options)
        self._session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
            self._engine, expire_on_commit=False
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "MetricsDatabase":
        """Build an accessor from application settings."""
        return cls(
            settings.get_database_url(),
            schema=settings.db_schema,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_timeout=settings.db_pool_timeout,
            pool_recycle=settings.db_pool_recycle,
            echo=settings.debug,
        )

    @property
    def dialect_name(self) -> str:
        return self._engine.dialect.name

    async def initialize(self, create_tables: bool = False) -> None:
        """
        Verify connectivity and optionally create the table.

        Args:
            create_tables: Create the schema and llm_metrics table if missing

        Raises:
            PersistenceError: If the database cannot be reached
        """
        try:
            async with self._engine.begin() as conn:
                await conn.execute(text("SELECT 1"))
                if create_tables:
                    if self._schema and self.dialect_name == "postgresql":
                        await conn.execute(text(f'CREATE SCHEMA IF NOT EXISTS "{self._schema}"'))
                    await conn.run_sync(Base.metadata.create_all)
        except (SQLAlchemyError, OSError) as exc:
            logger.error(f"Failed to connect to database: {exc}")
            raise PersistenceError("Database is unreachable") from exc

        logger.info("Database connection established successfully")

    async def save(self, outcome: CompletionOutcome) -> None:
        """
        Insert one outcome row.

        No upsert: a duplicate request_id is rejected by the database.

        Raises:
            PersistenceError: If the insert fails
        """
        try:
            async with self._session_factory() as session:
                session.add(LLMMetricRecord.from_outcome(outcome))
                await session.commit()
        except (SQLAlchemyError, OSError) as exc:
            logger.error(f"Failed to save LLM metrics for request {outcome.request_id}: {exc}")
            raise PersistenceError(
                f"Failed to save metrics for request {outcome.request_id}"
            ) from exc

        logger.debug(f"LLM metrics saved to database: request_id={outcome.request_id}")

    async def save_batch(self, outcomes: Sequence[CompletionOutcome]) -> None:
        """
        Insert several outcome rows in a single transaction.

        Either every row is written or none is.

        Raises:
            PersistenceError: If the transaction fails
        """
        if not outcomes:
            return

        try:
            async with self._session_factory() as session:
                session.add_all([LLMMetricRecord.from_outcome(o) for o in outcomes])
                await session.commit()
        except (SQLAlchemyError, OSError) as exc:
            logger.error(f"Failed to save batch of {len(outcomes)} LLM metrics: {exc}")
            raise PersistenceError(f"Failed to save batch of {len(outcomes)} metrics") from exc

        logger.debug(f"Saved batch of {len(outcomes)} LLM metrics")

    def _window_start(self, time_range: str | None):
        """Lower bound of the time filter for a shorthand range."""
        if self.dialect_name == "postgresql":
            interval = parse_time_range(time_range)
            return func.now() - literal_column(f"INTERVAL '{interval}'")
        return datetime.now(timezone.utc) - time_range_window(time_range)

    def _bucket_expression(self, group_by: str | None):
        """Start-of-bucket expression for the time column."""
        unit = bucket_unit(group_by)
        if self.dialect_name == "postgresql":
            return func.time_bucket(
                literal_column(f"INTERVAL '{BUCKET_INTERVALS[unit]}'"), LLMMetricRecord.time
            )
        return func.strftime(_SQLITE_BUCKET_FORMATS[unit], LLMMetricRecord.time)

    async def summarize(self, time_range: str = DEFAULT_TIME_RANGE, model: str | None = None) -> MetricsSummary:
        """
        Aggregate metrics over a time window.

        Args:
            time_range: Shorthand range ('1h', '6h', '12h', '24h', '7d', '30d');
                        anything else is treated as '1h'
            model: Restrict to one model when given

        Returns:
            MetricsSummary; every figure is 0 for an empty window

        Raises:
            PersistenceError: If the query fails
        """
        record = LLMMetricRecord
        is_success = record.status == OutcomeStatus.SUCCESS.value

        stmt = select(
            func.count().label("total_requests"),
            func.count(case((is_success, 1))).label("success_count"),
            func.avg(case((is_success, record.time_to_first_token))).label("avg_ttft"),
            func.avg(case((is_success, record.tokens_per_second))).label("avg_tps"),
            func.avg(case((is_success, record.total_duration))).label("avg_duration"),
            func.sum(case((is_success, record.cost_usd), else_=0)).label("total_cost"),
            func.avg(case((is_success, record.total_tokens))).label("avg_tokens"),
            func.count(case((record.status == OutcomeStatus.ERROR.value, 1))).label("error_count"),
        ).where(record.time >= self._window_start(time_range))

        if model:
            stmt = stmt.where(record.model == model)

        try:
            async with self._session_factory() as session:
                row = (await session.execute(stmt)).one()
        except (SQLAlchemyError, OSError) as exc:
            logger.error(f"Failed to get LLM metrics summary: {exc}")
            raise PersistenceError("Failed to get metrics summary") from exc

        total = int(row.total_requests or 0)
        success_count = int(row.success_count or 0)

        return MetricsSummary(
            total_requests=total,
            success_rate=success_count / total if total else 0.0,
            avg_time_to_first_token=float(row.avg_ttft or 0),
            avg_tokens_per_second=float(row.avg_tps or 0),
            avg_total_duration=float(row.avg_duration or 0),
            total_cost=float(row.total_cost or 0),
            avg_tokens_per_request=float(row.avg_tokens or 0),
            error_count=int(row.error_count or 0),
        )

    async def cost_breakdown(self, time_range: str = "24h", group_by: str = "hour") -> list[CostBreakdown]:
        """
        Cost of successful requests grouped by time bucket and model.

        Args:
            time_range: Shorthand range, as for summarize()
            group_by: 'hour' for hourly buckets; anything else buckets by day

        Returns:
            Newest bucket first, then by model name

        Raises:
            PersistenceError: If the query fails
        """
        record = LLMMetricRecord
        bucket = literal_column("bucket")

        stmt = (
            select(
                self._bucket_expression(group_by).label("bucket"),
                record.model,
                func.sum(record.cost_usd).label("total_cost"),
                func.count().label("request_count"),
                func.avg(record.cost_usd).label("avg_cost"),
            )
            .where(record.time >= self._window_start(time_range))
            .where(record.status == OutcomeStatus.SUCCESS.value)
            .group_by(bucket, record.model)
            .order_by(bucket.desc(), record.model)
        )

        try:
            async with self._session_factory() as session:
                rows = (await session.execute(stmt)).all()
        except (SQLAlchemyError, OSError) as exc:
            logger.error(f"Failed to get LLM cost breakdown: {exc}")
            raise PersistenceError("Failed to get cost breakdown") from exc

        return [
            CostBreakdown(
                timestamp=_as_utc_datetime(row.bucket),
                model=row.model,
                total_cost=float(row.total_cost or 0),
                request_count=int(row.request_count),
                avg_cost_per_request=float(row.avg_cost or 0),
            )
            for row in rows
        ]

    async def health_check(self) -> float:
        """
        Round-trip a trivial query.

        Returns:
            Latency in milliseconds

        Raises:
            PersistenceError: If the database does not answer
        """
        start = time.perf_counter()
        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as exc:
            logger.error(f"Database health check failed: {exc}")
            raise PersistenceError("Database health check failed") from exc
        return (time.perf_counter() - start) * 1000

    async def close(self) -> None:
        """Dispose of the connection pool."""
        await self._engine.dispose()
        logger.info("Database pool closed")


def _as_utc_datetime(value) -> datetime:
    """Normalize a bucket value (datetime or SQLite text) to an aware UTC datetime."""
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value
