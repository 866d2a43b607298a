"""
Storage module: durable record of completion outcomes.

- MetricsDatabase: SQLAlchemy async accessor (save, summarize, cost breakdown)
- MetricsBatchWriter: optional buffered writer in front of the database
- LLMMetricRecord: ORM mapping of the llm_metrics table
"""

from llm_metrics.storage.batch import MetricsBatchWriter
from llm_metrics.storage.database import (
    DEFAULT_TIME_RANGE,
    TIME_RANGES,
    MetricsDatabase,
    PersistenceError,
    bucket_unit,
    create_engine,
    parse_time_range,
    time_range_window,
)
from llm_metrics.storage.models import Base, LLMMetricRecord

__all__ = [
    "Base",
    "LLMMetricRecord",
    "MetricsDatabase",
    "MetricsBatchWriter",
    "PersistenceError",
    "TIME_RANGES",
    "DEFAULT_TIME_RANGE",
    "bucket_unit",
    "create_engine",
    "parse_time_range",
    "time_range_window",
]
