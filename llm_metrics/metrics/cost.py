"""
Cost Calculator for Completions

Prices the prompt and completion tokens of a request using the per-1K
token rates from the model registry.

Models missing from the registry are not an error: they are charged a
fixed minimal cost and a warning is logged, so unknown model names never
break the request path.
"""

import logging
from dataclasses import dataclass

from llm_metrics.registry.models import ModelPricing, ModelRegistry, get_model_registry

logger = logging.getLogger(__name__)

# Flat cost charged for models without registered pricing (USD)
DEFAULT_COST_USD = 0.001


@dataclass
class TokenCost:
    """
    Cost split for a single request.

    Attributes:
        input_cost_usd: Cost for prompt tokens in USD
        output_cost_usd: Cost for completion tokens in USD
        priced: False when the model was unknown and the default cost applied
    """

    input_cost_usd: float
    output_cost_usd: float
    priced: bool = True

    @property
    def total_cost_usd(self) -> float:
        """Total cost (input + output)."""
        return self.input_cost_usd + self.output_cost_usd


class CostCalculator:
    """
    Calculate completion costs.

    The calculator only performs read operations on the model registry,
    so one instance can be shared across concurrent requests.

    Example:
        calculator = CostCalculator()
        cost = calculator.calculate("gpt-3.5-turbo", prompt_tokens=100, completion_tokens=200)
        print(f"${cost:.6f}")  # $0.000550
    """

    def __init__(self, registry: ModelRegistry | None = None):
        """
        Initialize the cost calculator.

        Args:
            registry: Model registry to price against.
                      If None, uses the global singleton.
        """
        self._registry = registry or get_model_registry()

    @staticmethod
    def price(model: ModelPricing, prompt_tokens: int, completion_tokens: int) -> TokenCost:
        """
        Price tokens against a known model.

        Args:
            model: Model metadata with per-1K pricing
            prompt_tokens: Number of prompt tokens
            completion_tokens: Number of completion tokens

        Returns:
            TokenCost with the input/output split
        """
        return TokenCost(
            input_cost_usd=(prompt_tokens / 1000) * model.cost_per_1k_input_tokens,
            output_cost_usd=(completion_tokens / 1000) * model.cost_per_1k_output_tokens,
        )

    def breakdown(self, model_id: str, prompt_tokens: int, completion_tokens: int) -> TokenCost:
        """
        Price tokens by model ID, falling back to DEFAULT_COST_USD.

        Args:
            model_id: Model identifier (registered or not)
            prompt_tokens: Number of prompt tokens
            completion_tokens: Number of completion tokens

        Returns:
            TokenCost; for unknown models the whole default cost is
            reported as input cost and ``priced`` is False.
        """
        model = self._registry.get_model(model_id)
        if model is None:
            logger.warning(f"No pricing found for model: {model_id}, using default")
            return TokenCost(input_cost_usd=DEFAULT_COST_USD, output_cost_usd=0.0, priced=False)
        return self.price(model, prompt_tokens, completion_tokens)

    def calculate(self, model_id: str, prompt_tokens: int, completion_tokens: int) -> float:
        """Total cost in USD for a request."""
        return self.breakdown(model_id, prompt_tokens, completion_tokens).total_cost_usd


_calculator: CostCalculator | None = None


def get_cost_calculator() -> CostCalculator:
    """
    Get the global cost calculator instance.

    Returns:
        Singleton CostCalculator instance
    """
    global _calculator
    if _calculator is None:
        _calculator = CostCalculator()
    return _calculator
