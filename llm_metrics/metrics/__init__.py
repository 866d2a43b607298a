"""
Metrics Module: Outcomes, Cost Calculation and Prometheus Instruments

Components:
    CompletionOutcome: Immutable record of one completion attempt
    OutcomeStatus: success / error
    CostCalculator: Price prompt/completion tokens using registry pricing
    TokenCost: Input/output cost split for a single request
    MetricsCollector: Prometheus instruments on a private registry

Usage:
    from llm_metrics.metrics import MetricsCollector, get_cost_calculator

    cost = get_cost_calculator().calculate(
        "gpt-3.5-turbo", prompt_tokens=100, completion_tokens=200
    )

    collector = MetricsCollector()
    collector.record(outcome)
    body = collector.render()  # Prometheus text format
"""

# Outcome record
from llm_metrics.metrics.outcome import (
    MIN_GENERATION_WINDOW_S,
    CompletionOutcome,
    OutcomeStatus,
    estimate_tokens,
    new_request_id,
    tokens_per_second,
)

# Cost calculation
from llm_metrics.metrics.cost import (
    DEFAULT_COST_USD,
    CostCalculator,
    TokenCost,
    get_cost_calculator,
)

# Prometheus instruments
from llm_metrics.metrics.collector import MetricsCollector


__all__ = [
    # Outcome record
    "MIN_GENERATION_WINDOW_S",
    "CompletionOutcome",
    "OutcomeStatus",
    "estimate_tokens",
    "new_request_id",
    "tokens_per_second",
    # Cost calculation
    "DEFAULT_COST_USD",
    "CostCalculator",
    "TokenCost",
    "get_cost_calculator",
    # Prometheus instruments
    "MetricsCollector",
]
