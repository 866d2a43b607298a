"""
Service module: completion orchestration and demo traffic.

Usage:
    from llm_metrics.service import CompletionService, DemoGenerator

    service = CompletionService(simulator, collector, database)
    outcome = await service.generate_completion("Explain DNS")

    demo = DemoGenerator(service)
    outcomes = await demo.generate(count=10, include_errors=True)
"""

from llm_metrics.service.completions import DEFAULT_ENDPOINT, CompletionService, OutcomeStore
from llm_metrics.service.demo import DEMO_MODELS, DEMO_PROMPTS, DemoGenerator

__all__ = [
    "CompletionService",
    "OutcomeStore",
    "DEFAULT_ENDPOINT",
    "DemoGenerator",
    "DEMO_MODELS",
    "DEMO_PROMPTS",
]
