"""
Simulator module: Synthetic completion generation.

Public API:
- CompletionSimulator: Emulates latency and output of a completion call
- SimulationResult: Response text plus timing figures
- RESPONSE_TEMPLATES: Base texts the simulator draws from
"""

from llm_metrics.simulator.engine import (
    RESPONSE_TEMPLATES,
    CompletionSimulator,
    SimulationResult,
)

__all__ = [
    "RESPONSE_TEMPLATES",
    "CompletionSimulator",
    "SimulationResult",
]
