"""
Completion Service - Request orchestration and metric recording.

For every completion request the service:
1. Assigns a request id and raises the active-requests gauge
2. Runs the simulator and derives token, throughput and cost figures
3. Records the outcome in the Prometheus collector
4. Persists the outcome to the store
5. Lowers the active-requests gauge on every exit path

Simulation failures never escape: they become an error outcome that is
recorded and persisted like any other. Only store failures propagate, as
PersistenceError, and the collector entry for that outcome is kept.
"""

import logging
import time
from collections.abc import Callable
from typing import Protocol

from llm_metrics.metrics.collector import MetricsCollector
from llm_metrics.metrics.cost import CostCalculator, get_cost_calculator
from llm_metrics.metrics.outcome import (
    CompletionOutcome,
    OutcomeStatus,
    estimate_tokens,
    new_request_id,
    tokens_per_second,
)
from llm_metrics.simulator.engine import CompletionSimulator

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "/completions"


class OutcomeStore(Protocol):
    """Anything that can durably save an outcome (database or batch writer)."""

    async def save(self, outcome: CompletionOutcome) -> None: ...


class CompletionService:
    """
    Orchestrates simulated completions and their metrics.

    Collaborators are injected so tests can supply a fresh collector, a
    fake store and a deterministic simulator and clock.

    Usage:
        service = CompletionService(simulator, collector, database)
        outcome = await service.generate_completion("Explain DNS", model="gpt-4")
    """

    def __init__(
        self,
        simulator: CompletionSimulator,
        collector: MetricsCollector,
        store: OutcomeStore,
        cost_calculator: CostCalculator | None = None,
        clock: Callable[[], float] = time.perf_counter,
        default_model: str = "gpt-3.5-turbo",
        default_user_id: str = "demo-user",
        default_max_tokens: int = 500,
        default_temperature: float = 0.7,
    ):
        self.simulator = simulator
        self.collector = collector
        self.store = store
        self.cost_calculator = cost_calculator or get_cost_calculator()
        self._clock = clock

        self.default_model = default_model
        self.default_user_id = default_user_id
        self.default_max_tokens = default_max_tokens
        self.default_temperature = default_temperature

    async def generate_completion(
        self,
        prompt: str,
        model: str | None = None,
        user_id: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        endpoint: str = DEFAULT_ENDPOINT,
    ) -> CompletionOutcome:
        """
        Run one simulated completion and record its metrics.

        Args:
            prompt: Prompt text (validated by the caller)
            model: Model identifier, defaults to default_model
            user_id: Caller identifier, defaults to default_user_id
            max_tokens: Caps the simulated streaming length
            temperature: Accepted and passed through; has no effect
            endpoint: Route label for the metrics

        Returns:
            CompletionOutcome with status success or error

        Raises:
            PersistenceError: If the store rejects the outcome
        """
        model = model or self.default_model
        user_id = user_id or self.default_user_id
        max_tokens = max_tokens or self.default_max_tokens
        temperature = self.default_temperature if temperature is None else temperature

        request_id = new_request_id()
        start = self._clock()
        self.collector.increment_active_requests(model, endpoint)

        logger.info(f"Starting LLM request: request_id={request_id}, model={model}, user={user_id}")

        try:
            try:
                result = await self.simulator.simulate(prompt, model, max_tokens, temperature)

                prompt_tokens = estimate_tokens(prompt)
                completion_tokens = estimate_tokens(result.response)
                total_duration = self._clock() - start

                outcome = CompletionOutcome(
                    request_id=request_id,
                    model=model,
                    prompt_tokens=prompt_tokens,
                    completion_tokens=completion_tokens,
                    total_tokens=prompt_tokens + completion_tokens,
                    time_to_first_token=result.time_to_first_token,
                    tokens_per_second=tokens_per_second(
                        completion_tokens, total_duration, result.time_to_first_token
                    ),
                    total_duration=total_duration,
                    cost_usd=self.cost_calculator.calculate(model, prompt_tokens, completion_tokens),
                    status=OutcomeStatus.SUCCESS,
                    user_id=user_id,
                    endpoint=endpoint,
                    response=result.response,
                )
            except Exception as exc:
                logger.error(f"LLM request failed: request_id={request_id}, error={exc}")
                outcome = CompletionOutcome.failure(
                    request_id=request_id,
                    model=model,
                    prompt=prompt,
                    total_duration=self._clock() - start,
                    error_message=str(exc) or "Unknown error",
                    user_id=user_id,
                    endpoint=endpoint,
                )

            await self.record_outcome(outcome)
        finally:
            self.collector.decrement_active_requests(model, endpoint)

        if outcome.is_success:
            logger.info(
                f"LLM request completed: request_id={request_id}, "
                f"duration={outcome.total_duration:.3f}s, tokens={outcome.total_tokens}, "
                f"cost=${outcome.cost_usd:.6f}"
            )
        return outcome

    async def record_outcome(self, outcome: CompletionOutcome) -> None:
        """
        Write an outcome to the collector, then to the store.

        The two sinks are not transactional: if the store write fails the
        collector has already counted the outcome.

        Raises:
            PersistenceError: If the store rejects the outcome
        """
        self.collector.record(outcome)
        await self.store.save(outcome)
