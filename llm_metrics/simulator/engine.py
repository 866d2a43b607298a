"""
Completion Simulator - Synthetic stand-in for an upstream LLM API.

This module produces a response string and timing figures that emulate a
real generative call without invoking one:
1. Wait for the model's base latency plus random jitter (time to first token)
2. Build a templated response, padded longer for premium models
3. Wait again in proportion to the output token count (streaming)

Randomness and sleeping are injected so tests can make latency and
response-length assertions deterministic.
"""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from llm_metrics.metrics.outcome import estimate_tokens
from llm_metrics.registry.models import ModelRegistry, get_model_registry

logger = logging.getLogger(__name__)

# Upper bound of the random jitter added to the base latency (seconds)
MAX_TTFT_JITTER_S = 0.5

# Per-token streaming delay is drawn from [MIN, MIN + SPREAD) seconds
TOKEN_DELAY_MIN_S = 0.02
TOKEN_DELAY_SPREAD_S = 0.01

PREMIUM_LENGTH_MULTIPLIER = 1.5

RESPONSE_TEMPLATES = (
    "This is a comprehensive response to your query. The answer involves "
    "multiple considerations and requires a detailed explanation.",
    "Based on your question, I can provide the following insights and "
    "recommendations for your specific use case.",
    "Here's a detailed analysis of the topic you've asked about, including "
    "relevant examples and best practices.",
    "To address your question effectively, let me break down the key "
    "components and provide a structured response.",
    "Your inquiry touches on several important aspects. Here's a thorough "
    "examination of each relevant factor.",
)


@dataclass
class SimulationResult:
    """
    Result from a simulated completion.

    Attributes:
        response: Generated response text
        time_to_first_token: Seconds waited before the first token
        generation_time: Seconds waited while "streaming" tokens
    """

    response: str
    time_to_first_token: float
    generation_time: float = 0.0


class CompletionSimulator:
    """
    Simulated completion backend.

    The simulator has no failure path of its own; failures are injected by
    callers. Its only side effects are the two timed suspensions.

    Usage:
        simulator = CompletionSimulator(rng=random.Random(42))
        result = await simulator.simulate("Explain DNS", "gpt-4")
    """

    def __init__(
        self,
        registry: ModelRegistry | None = None,
        rng: random.Random | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        latency_scale: float = 1.0,
    ):
        """
        Initialize the simulator.

        Args:
            registry: Model registry for base latencies and premium flags.
            rng: Random source. Pass a seeded Random for reproducible output.
            sleep: Coroutine used to suspend; replaced by a fake in tests.
            latency_scale: Multiplier applied to both waits. The result reports the
                scaled values, so 0 (tests and demos only) yields a zero TTFT.
        """
        self._registry = registry or get_model_registry()
        self._rng = rng or random.Random()
        self._sleep = sleep
        self._latency_scale = latency_scale

    def time_to_first_token(self, model: str) -> float:
        """Draw a TTFT: base latency for the model plus bounded jitter."""
        base = self._registry.get_base_latency(model)
        return base + self._rng.random() * MAX_TTFT_JITTER_S

    def generate_response(self, prompt: str, model: str) -> str:
        """
        Build a synthetic response.

        One of RESPONSE_TEMPLATES is padded to a pseudo-random length
        (longer for premium models), followed by a sentence naming the model.
        """
        base_response = self._rng.choice(RESPONSE_TEMPLATES)

        multiplier = PREMIUM_LENGTH_MULTIPLIER if self._registry.is_premium(model) else 1.0
        target_length = int(len(base_response) * multiplier * (0.8 + self._rng.random() * 0.4))
        padding = " " * max(0, target_length - len(base_response))

        return (
            base_response
            + padding
            + f"This response demonstrates the capabilities of the {model} model "
            "in generating contextual content."
        )

    async def simulate(
        self,
        prompt: str,
        model: str,
        max_tokens: int = 1000,
        temperature: float = 0.7,
    ) -> SimulationResult:
        """
        Simulate a completion call.

        Args:
            prompt: Prompt text.
            model: Model identifier; unknown models use the default latency.
            max_tokens: Caps the number of tokens used for the streaming wait.
            temperature: Accepted for interface parity; has no effect.

        Returns:
            SimulationResult with the response and the time actually waited.
        """
        ttft = self.time_to_first_token(model) * self._latency_scale
        await self._sleep(ttft)

        response = self.generate_response(prompt, model)

        streamed_tokens = min(estimate_tokens(response), max_tokens)
        per_token = TOKEN_DELAY_MIN_S + self._rng.random() * TOKEN_DELAY_SPREAD_S
        generation_time = streamed_tokens * per_token * self._latency_scale
        await self._sleep(generation_time)

        logger.debug(
            f"Simulated completion: model={model}, ttft={ttft:.3f}s, "
            f"generation={generation_time:.3f}s, tokens={streamed_tokens}"
        )

        return SimulationResult(
            response=response,
            time_to_first_token=ttft,
            generation_time=generation_time,
        )
