"""
Registry module: Model pricing and latency metadata.

This module contains:
- models.py: priced model table used by the simulator and cost calculator

Public API:
- ModelPricing: Pydantic model for per-model pricing/latency
- ModelRegistry: Central registry class
- DEFAULT_BASE_LATENCY_S: Latency used for unregistered models
- get_model_registry: Singleton accessor function
"""

from llm_metrics.registry.models import (
    DEFAULT_BASE_LATENCY_S,
    ModelPricing,
    ModelRegistry,
    get_model_registry,
)

__all__ = [
    "DEFAULT_BASE_LATENCY_S",
    "ModelPricing",
    "ModelRegistry",
    "get_model_registry",
]
