"""
Schemas module: Pydantic request/response models.

This module provides validated data models for the LLM Metrics API:
- Request/response models for the completion and demo endpoints
- Summary and cost breakdown models for metrics queries
- Error response and health check models

All wire-facing models serialise with camelCase field names.

Example usage:
    from llm_metrics.schemas import CompletionRequest, completion_response_from_outcome

    request = CompletionRequest(prompt="Hello", userId="user-1")
    response = completion_response_from_outcome(outcome)
"""

from llm_metrics.schemas.completions import (
    # Base
    CamelModel,
    # Request models
    CompletionRequest,
    DemoRequest,
    # Response models
    CompletionMetrics,
    CompletionResponse,
    DemoResponse,
    # Error models
    ErrorCodes,
    ErrorDetail,
    ErrorResponse,
    # Health models
    ComponentHealth,
    HealthResponse,
    # Conversion utilities
    completion_response_from_outcome,
)
from llm_metrics.schemas.metrics import CostBreakdown, MetricsSummary

__all__ = [
    "CamelModel",
    # Request models
    "CompletionRequest",
    "DemoRequest",
    # Response models
    "CompletionMetrics",
    "CompletionResponse",
    "DemoResponse",
    # Metrics models
    "MetricsSummary",
    "CostBreakdown",
    # Error models
    "ErrorCodes",
    "ErrorDetail",
    "ErrorResponse",
    # Health models
    "ComponentHealth",
    "HealthResponse",
    # Conversion utilities
    "completion_response_from_outcome",
]
