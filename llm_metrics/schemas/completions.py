"""
Pydantic Schemas for the Completion API

This module defines the request and response models for the completion
and demo endpoints, plus the shared error and health check schemas:
- CompletionRequest: Prompt with optional model, caller and sampling hints
- CompletionResponse: Request id, generated text, metrics, model, status
- DemoRequest / DemoResponse: Batch demo generation
- Error responses and health check schemas

Field names are snake_case in Python and camelCase on the wire.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from llm_metrics.metrics.outcome import CompletionOutcome, OutcomeStatus


class CamelModel(BaseModel):
    """Base model serialising fields as camelCase and accepting either form."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# REQUEST MODELS
# =============================================================================


class CompletionRequest(CamelModel):
    """
    Request body for the completion endpoint.

    Only the prompt is required; it is checked by the endpoint so a
    missing prompt is answered with 400 rather than a schema error.

    Example:
        {
            "prompt": "Explain quantum computing",
            "model": "gpt-4",
            "userId": "user-42",
            "maxTokens": 300,
            "temperature": 0.2
        }
    """

    prompt: str | None = Field(
        default=None,
        description="Prompt text to complete",
    )

    model: str | None = Field(
        default=None,
        min_length=1,
        max_length=100,
        description="Model identifier (defaults to the configured model)",
    )

    user_id: str | None = Field(
        default=None,
        min_length=1,
        max_length=255,
        description="Caller identifier used as a metric label",
    )

    max_tokens: int | None = Field(
        default=None,
        gt=0,
        description="Maximum completion tokens",
    )

    temperature: float | None = Field(
        default=None,
        ge=0.0,
        le=2.0,
        description="Sampling temperature",
    )

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {"prompt": "What is machine learning?"},
                {
                    "prompt": "Write a Python function to sort a list",
                    "model": "gpt-4",
                    "userId": "demo-user-1",
                    "maxTokens": 300,
                    "temperature": 0.2,
                },
            ]
        }
    )


class DemoRequest(CamelModel):
    """Request body for the demo batch generation endpoint."""

    count: int = Field(
        default=10,
        ge=1,
        le=1000,
        description="Number of completions to generate",
    )

    include_errors: bool = Field(
        default=False,
        description="Force a configured fraction of requests to fail",
    )


# =============================================================================
# RESPONSE MODELS
# =============================================================================


class CompletionMetrics(CamelModel):
    """Performance and cost metrics of a single completion."""

    prompt_tokens: int = Field(default=0, ge=0)
    completion_tokens: int = Field(default=0, ge=0)
    total_tokens: int = Field(default=0, ge=0)
    time_to_first_token: float = Field(default=0.0, ge=0.0, description="Seconds")
    tokens_per_second: float = Field(default=0.0, ge=0.0)
    total_duration: float = Field(default=0.0, ge=0.0, description="Seconds")
    cost: float = Field(default=0.0, ge=0.0, description="USD")


class CompletionResponse(CamelModel):
    """
    Response from the completion endpoint.

    Always a well-formed outcome: generation failures are reported with
    status 'error' and an error message, not as an HTTP error.

    Example:
        {
            "requestId": "5b0d6f0e-8d8b-4d53-9b8f-2b1a3c9a51e2",
            "response": "Based on your question, ...",
            "metrics": {
                "promptTokens": 7,
                "completionTokens": 52,
                "totalTokens": 59,
                "timeToFirstToken": 0.41,
                "tokensPerSecond": 40.3,
                "totalDuration": 1.7,
                "cost": 0.0001145
            },
            "model": "gpt-3.5-turbo",
            "status": "success"
        }
    """

    request_id: str
    response: str = ""
    metrics: CompletionMetrics
    model: str
    status: OutcomeStatus
    error_message: str | None = None


class DemoResponse(CamelModel):
    """Response from the demo endpoint with a preview of the results."""

    message: str
    results: list[CompletionResponse] = Field(default_factory=list)


# =============================================================================
# ERROR MODELS
# =============================================================================


class ErrorCodes:
    """
    Standard error codes for API responses.

    These codes enable programmatic error handling by clients
    without parsing human-readable messages.
    """

    VALIDATION_ERROR = "VALIDATION_ERROR"
    PERSISTENCE_ERROR = "PERSISTENCE_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ErrorDetail(BaseModel):
    """
    Detailed error information for API error responses.

    Provides machine-readable error codes, human-readable messages,
    and optional field information for validation errors.
    """

    code: str = Field(
        ...,
        description="Machine-readable error code for programmatic handling",
    )

    message: str = Field(
        ...,
        description="Human-readable error message",
    )

    field: str | None = Field(
        default=None,
        description="Field that caused the error (for validation errors)",
    )


class ErrorResponse(BaseModel):
    """
    Standard error response format for all API errors.

    Example:
        {
            "error": {
                "code": "VALIDATION_ERROR",
                "message": "Prompt is required",
                "field": "prompt"
            }
        }
    """

    error: ErrorDetail


# =============================================================================
# HEALTH MODELS
# =============================================================================


class ComponentHealth(BaseModel):
    """Health status of an individual system component."""

    name: str = Field(
        ...,
        description="Component name (e.g., 'database', 'registry')",
    )

    status: Literal["healthy", "degraded", "unhealthy"]

    latency_ms: float | None = Field(
        default=None,
        ge=0.0,
        description="Round-trip latency of the health probe",
    )

    message: str | None = None


class HealthResponse(BaseModel):
    """
    Response from the /health endpoint.

    Example:
        {
            "status": "healthy",
            "service": "llm-metrics-service",
            "version": "1.0.0",
            "components": [
                {"name": "database", "status": "healthy", "latency_ms": 1.9},
                {"name": "registry", "status": "healthy", "message": "4 models registered"}
            ],
            "uptime_seconds": 3600.5
        }
    """

    status: Literal["healthy", "degraded", "unhealthy"]
    service: str = "llm-metrics-service"
    version: str
    components: list[ComponentHealth] = Field(default_factory=list)
    uptime_seconds: float | None = Field(default=None, ge=0.0)


# =============================================================================
# CONVERSION UTILITIES
# =============================================================================


def completion_response_from_outcome(outcome: CompletionOutcome) -> CompletionResponse:
    """
    Convert a CompletionOutcome into the API response model.

    Args:
        outcome: Outcome produced by the completion service

    Returns:
        CompletionResponse ready for API serialization
    """
    return CompletionResponse(
        request_id=outcome.request_id,
        response=outcome.response,
        metrics=CompletionMetrics(
            prompt_tokens=outcome.prompt_tokens,
            completion_tokens=outcome.completion_tokens,
            total_tokens=outcome.total_tokens,
            time_to_first_token=outcome.time_to_first_token,
            tokens_per_second=outcome.tokens_per_second,
            total_duration=outcome.total_duration,
            cost=outcome.cost_usd,
        ),
        model=outcome.model,
        status=outcome.status,
        error_message=outcome.error_message,
    )
