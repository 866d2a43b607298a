"""
Model Registry

This module defines the fixed pool of completion models the service knows
how to price and simulate:
- gpt-3.5-turbo: cheapest and fastest (~$0.0015/1K input)
- gpt-4: most expensive, slowest first token
- gpt-4-turbo: mid-priced GPT-4 variant
- gpt-4o: GPT-4 class quality at a fraction of the price

Each model entry includes:
- Model ID and display name
- Cost per 1K tokens (input/output)
- Base time-to-first-token latency used by the simulator
- Premium flag (premium models produce longer simulated responses)

Models outside the registry are still accepted everywhere; callers fall
back to DEFAULT_BASE_LATENCY_S and the calculator's default cost.
"""

from pydantic import BaseModel, Field

# Base latency for models not in the registry (seconds)
DEFAULT_BASE_LATENCY_S = 0.5


class ModelPricing(BaseModel):
    """
    Pricing and latency metadata for a registered model.

    This class holds all information needed to:
    1. Simulate a realistic completion for the model
    2. Price the prompt and completion tokens of an outcome
    """

    model_id: str = Field(
        ...,
        description="Unique identifier used in requests and metric labels",
    )

    display_name: str = Field(
        ...,
        description="Human-readable model name",
    )

    cost_per_1k_input_tokens: float = Field(
        ...,
        ge=0,
        description="Cost in USD per 1 thousand input (prompt) tokens",
    )

    cost_per_1k_output_tokens: float = Field(
        ...,
        ge=0,
        description="Cost in USD per 1 thousand output (completion) tokens",
    )

    base_latency_s: float = Field(
        ...,
        gt=0,
        description="Typical time to first token in seconds",
    )

    premium: bool = Field(
        default=False,
        description="Whether the model generates longer responses",
    )


class ModelRegistry:
    """
    Central registry of all priced models.

    The registry follows a singleton-like pattern where model definitions
    are loaded once and reused throughout the application lifecycle.

    Attributes:
        _models: Dictionary mapping model IDs to their metadata
    """

    def __init__(self) -> None:
        self._models: dict[str, ModelPricing] = {}
        self._initialize_models()

    def _initialize_models(self) -> None:
        """Register all available models with their metadata."""

        self._register(
            ModelPricing(
                model_id="gpt-3.5-turbo",
                display_name="GPT-3.5 Turbo",
                cost_per_1k_input_tokens=0.0015,
                cost_per_1k_output_tokens=0.002,
                base_latency_s=0.3,
            )
        )

        self._register(
            ModelPricing(
                model_id="gpt-4",
                display_name="GPT-4",
                cost_per_1k_input_tokens=0.03,
                cost_per_1k_output_tokens=0.06,
                base_latency_s=0.8,
                premium=True,
            )
        )

        self._register(
            ModelPricing(
                model_id="gpt-4-turbo",
                display_name="GPT-4 Turbo",
                cost_per_1k_input_tokens=0.01,
                cost_per_1k_output_tokens=0.03,
                base_latency_s=0.5,
                premium=True,
            )
        )

        self._register(
            ModelPricing(
                model_id="gpt-4o",
                display_name="GPT-4o",
                cost_per_1k_input_tokens=0.005,
                cost_per_1k_output_tokens=0.015,
                base_latency_s=0.4,
                premium=True,
            )
        )

    def _register(self, model: ModelPricing) -> None:
        """Register a model in the registry."""
        self._models[model.model_id] = model

    def get_model(self, model_id: str) -> ModelPricing | None:
        """
        Retrieve model metadata by ID.

        Args:
            model_id: The unique identifier of the model

        Returns:
            ModelPricing if found, None otherwise
        """
        return self._models.get(model_id)

    def get_base_latency(self, model_id: str) -> float:
        """
        Base time-to-first-token for a model.

        Args:
            model_id: The model identifier (registered or not)

        Returns:
            Registered base latency, or DEFAULT_BASE_LATENCY_S for unknown models
        """
        model = self.get_model(model_id)
        if model is None:
            return DEFAULT_BASE_LATENCY_S
        return model.base_latency_s

    def is_premium(self, model_id: str) -> bool:
        """
        Whether the model produces longer responses.

        Unknown models are treated as premium when they belong to the
        GPT-4 family by name.
        """
        model = self.get_model(model_id)
        if model is None:
            return "gpt-4" in model_id
        return model.premium

    def list_models(self) -> list[ModelPricing]:
        """
        Return all registered models.

        Returns:
            List of all ModelPricing instances
        """
        return list(self._models.values())

    def get_model_ids(self) -> list[str]:
        """
        Return all registered model IDs.

        Returns:
            List of model ID strings
        """
        return list(self._models.keys())


_registry_instance: ModelRegistry | None = None


def get_model_registry() -> ModelRegistry:
    """
    Get the global model registry instance.

    Uses lazy initialization to create the registry only when needed.
    The registry is read-only, so sharing one instance is safe.

    Returns:
        The singleton ModelRegistry instance
    """
    global _registry_instance
    if _registry_instance is None:
        _registry_instance = ModelRegistry()
    return _registry_instance
