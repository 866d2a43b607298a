"""
Demo batch generation.

Issues completions sequentially with a short pause between them to fill
the collector and the store with realistic-looking traffic. When errors
are requested, each request is independently forced to fail with
probability error_rate; forced failures are recorded through the same
collector and store path as real ones.
"""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable

from llm_metrics.metrics.outcome import CompletionOutcome, new_request_id
from llm_metrics.service.completions import DEFAULT_ENDPOINT, CompletionService
from llm_metrics.storage.database import PersistenceError

logger = logging.getLogger(__name__)

DEMO_MODELS = ("gpt-3.5-turbo", "gpt-4", "gpt-4-turbo")

DEMO_PROMPTS = (
    "Explain quantum computing",
    "Write a Python function to sort a list",
    "What is machine learning?",
    "Describe the water cycle",
    "How does blockchain work?",
)

DEMO_USER_COUNT = 5

# Forced failures report a duration in [MIN, MIN + SPREAD) seconds
FORCED_ERROR_MIN_DURATION_S = 2.5
FORCED_ERROR_DURATION_SPREAD_S = 2.0


class DemoGenerator:
    """
    Sequential demo traffic generator.

    Usage:
        generator = DemoGenerator(service, rng=random.Random(7))
        outcomes = await generator.generate(count=20, include_errors=True)
    """

    def __init__(
        self,
        service: CompletionService,
        rng: random.Random | None = None,
        error_rate: float = 0.5,
        delay: float = 0.1,
        error_message: str = "API rate limit exceeded",
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.service = service
        self.error_rate = error_rate
        self.delay = delay
        self.error_message = error_message
        self._rng = rng or random.Random()
        self._sleep = sleep

    async def generate(
        self, count: int, include_errors: bool = False, endpoint: str = DEFAULT_ENDPOINT
    ) -> list[CompletionOutcome]:
        """
        Generate count completions one after another.

        Outcomes whose persistence fails are logged and left out of the
        returned list; the remaining requests still run.

        Returns:
            Outcomes in generation order
        """
        results: list[CompletionOutcome] = []

        for i in range(count):
            model = self._rng.choice(DEMO_MODELS)
            prompt = self._rng.choice(DEMO_PROMPTS)
            user_id = f"demo-user-{self._rng.randint(1, DEMO_USER_COUNT)}"

            try:
                if include_errors and self._rng.random() < self.error_rate:
                    outcome = await self._forced_failure(prompt, model, user_id, endpoint)
                else:
                    outcome = await self.service.generate_completion(
                        prompt, model=model, user_id=user_id, endpoint=endpoint
                    )
                results.append(outcome)
            except PersistenceError as exc:
                logger.error(f"Error generating demo metric {i}: {exc}")

            if self.delay:
                await self._sleep(self.delay)

        errors = sum(1 for outcome in results if not outcome.is_success)
        logger.info(f"Generated {len(results)} demo metrics ({errors} errors)")
        return results

    async def _forced_failure(
        self, prompt: str, model: str, user_id: str, endpoint: str
    ) -> CompletionOutcome:
        outcome = CompletionOutcome.failure(
            request_id=new_request_id(),
            model=model,
            prompt=prompt,
            total_duration=FORCED_ERROR_MIN_DURATION_S
            + self._rng.random() * FORCED_ERROR_DURATION_SPREAD_S,
            error_message=self.error_message,
            user_id=user_id,
            endpoint=endpoint,
        )
        await self.service.record_outcome(outcome)
        return outcome
