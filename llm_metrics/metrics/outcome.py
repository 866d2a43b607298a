"""
Completion Outcome Record

The immutable record of one generation attempt, success or error. It is
built once by the completion service and then handed by value to both the
Prometheus collector and the persistence store.
"""

import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

# Floor on the generation window used for throughput (seconds)
MIN_GENERATION_WINDOW_S = 0.1


class OutcomeStatus(str, Enum):
    """Final status of a completion attempt."""

    SUCCESS = "success"
    ERROR = "error"


def new_request_id() -> str:
    """Generate a globally unique request identifier."""
    return str(uuid.uuid4())


def estimate_tokens(text: str) -> int:
    """
    Estimate the token count of a text.

    Uses the ~4 characters per token rule of thumb for English text.
    This is an approximation, not a tokenizer.
    """
    return math.ceil(len(text) / 4)


def tokens_per_second(
    completion_tokens: int, total_duration: float, time_to_first_token: float
) -> float:
    """
    Throughput over the post-first-token generation window.

    The window is floored at MIN_GENERATION_WINDOW_S so near-instant
    generations cannot produce unbounded rates.
    """
    window = max(total_duration - time_to_first_token, MIN_GENERATION_WINDOW_S)
    return completion_tokens / window


@dataclass(frozen=True)
class CompletionOutcome:
    """
    Metrics for a single completion attempt.

    Attributes:
        request_id: Unique request identifier (UUID4)
        model: Model identifier as requested
        prompt_tokens: Estimated prompt tokens
        completion_tokens: Estimated completion tokens (0 on error)
        total_tokens: prompt_tokens + completion_tokens
        time_to_first_token: Simulated TTFT in seconds (0 on error)
        tokens_per_second: Completion throughput (0 on error)
        total_duration: Wall-clock duration of the attempt in seconds
        cost_usd: Cost of the request (0 on error)
        status: success or error
        user_id: Caller identity, used as a metric label
        endpoint: Logical route, used as a metric label
        error_message: Failure description, only set on error
        response: Generated text (empty on error, never persisted)
        created_at: UTC timestamp stored as the row time
    """

    request_id: str
    model: str
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int
    time_to_first_token: float
    tokens_per_second: float
    total_duration: float
    cost_usd: float
    status: OutcomeStatus
    user_id: str
    endpoint: str
    error_message: str | None = None
    response: str = ""
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_success(self) -> bool:
        """Check if the attempt completed without errors."""
        return self.status == OutcomeStatus.SUCCESS

    @classmethod
    def failure(
        cls,
        *,
        request_id: str,
        model: str,
        prompt: str,
        total_duration: float,
        error_message: str,
        user_id: str,
        endpoint: str,
    ) -> "CompletionOutcome":
        """
        Build an error outcome.

        Prompt tokens are still estimated; completion, timing, throughput
        and cost fields are zeroed.
        """
        prompt_tokens = estimate_tokens(prompt)
        return cls(
            request_id=request_id,
            model=model,
            prompt_tokens=prompt_tokens,
            completion_tokens=0,
            total_tokens=prompt_tokens,
            time_to_first_token=0.0,
            tokens_per_second=0.0,
            total_duration=total_duration,
            cost_usd=0.0,
            status=OutcomeStatus.ERROR,
            user_id=user_id,
            endpoint=endpoint,
            error_message=error_message,
        )
