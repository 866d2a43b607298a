"""
Pydantic Schemas for Metrics Queries

Aggregates computed by the persistence store on every read. Nothing here
is stored; empty windows resolve to zeros, never null.
"""

from datetime import datetime

from pydantic import Field

from llm_metrics.schemas.completions import CamelModel


class MetricsSummary(CamelModel):
    """
    Aggregate statistics over a time window.

    Timing, throughput, token and cost figures only consider successful
    requests; counts consider all requests.

    Example:
        {
            "totalRequests": 120,
            "successRate": 0.95,
            "avgTimeToFirstToken": 0.52,
            "avgTokensPerSecond": 38.4,
            "avgTotalDuration": 1.91,
            "totalCost": 0.0213,
            "avgTokensPerRequest": 64.2,
            "errorCount": 6
        }
    """

    total_requests: int = Field(default=0, ge=0)
    success_rate: float = Field(default=0.0, ge=0.0, le=1.0)
    avg_time_to_first_token: float = Field(default=0.0, ge=0.0)
    avg_tokens_per_second: float = Field(default=0.0, ge=0.0)
    avg_total_duration: float = Field(default=0.0, ge=0.0)
    total_cost: float = Field(default=0.0, ge=0.0)
    avg_tokens_per_request: float = Field(default=0.0, ge=0.0)
    error_count: int = Field(default=0, ge=0)


class CostBreakdown(CamelModel):
    """
    Cost of successful requests for one (time bucket, model) pair.

    Example:
        {
            "timestamp": "2024-05-01T14:00:00Z",
            "model": "gpt-4",
            "totalCost": 0.0412,
            "requestCount": 12,
            "avgCostPerRequest": 0.00343
        }
    """

    timestamp: datetime = Field(..., description="Start of the time bucket")
    model: str
    total_cost: float = Field(default=0.0, ge=0.0)
    request_count: int = Field(default=0, ge=0)
    avg_cost_per_request: float = Field(default=0.0, ge=0.0)
