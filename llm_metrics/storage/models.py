"""SQLAlchemy ORM model for the llm_metrics time-series table.

On PostgreSQL the table lives in the configured schema (``metrics`` by
default) and is expected to be a TimescaleDB hypertable on ``time``. The
schema is applied through ``schema_translate_map`` so the same model works
unqualified on SQLite.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, Float, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from llm_metrics.metrics.outcome import CompletionOutcome


class Base(DeclarativeBase):
    pass


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LLMMetricRecord(Base):
    __tablename__ = "llm_metrics"

    request_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, index=True
    )
    model: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    prompt_tokens: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    completion_tokens: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_tokens: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    time_to_first_token: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    tokens_per_second: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    total_duration: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    cost_usd: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    endpoint: Mapped[str] = mapped_column(String(255), nullable=False)

    @classmethod
    def from_outcome(cls, outcome: CompletionOutcome) -> "LLMMetricRecord":
        return cls(
            request_id=outcome.request_id,
            time=outcome.created_at,
            model=outcome.model,
            prompt_tokens=outcome.prompt_tokens,
            completion_tokens=outcome.completion_tokens,
            total_tokens=outcome.total_tokens,
            time_to_first_token=outcome.time_to_first_token,
            tokens_per_second=outcome.tokens_per_second,
            total_duration=outcome.total_duration,
            cost_usd=outcome.cost_usd,
            status=outcome.status.value,
            error_message=outcome.error_message,
            user_id=outcome.user_id,
            endpoint=outcome.endpoint,
        )
