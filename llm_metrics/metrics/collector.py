"""
Prometheus Metrics Collector

In-process counters, histograms and gauges for completion outcomes,
exposed as a text snapshot in the Prometheus exposition format for the
external scraper.

Each collector owns its own CollectorRegistry instead of using the
prometheus_client global REGISTRY, so the application and every test can
hold an independent set of instruments. Nothing here is persisted; the
values reset when the process restarts.
"""

import logging

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    GCCollector,
    PlatformCollector,
    ProcessCollector,
    generate_latest,
)

from llm_metrics.metrics.outcome import CompletionOutcome

logger = logging.getLogger(__name__)


class MetricsCollector:
    """
    Label-keyed LLM instruments on a private registry.

    Instruments:
        llm_requests_total: every outcome, by (model, status, user_id, endpoint)
        llm_response_time_seconds: total duration of successful requests
        llm_time_to_first_token_seconds: TTFT of successful requests
        llm_tokens_per_second: throughput of successful requests
        llm_total_tokens: token count of successful requests
        llm_cost_usd_total: accumulated cost of successful requests
        llm_active_requests: requests currently in flight

    prometheus_client instruments are safe under concurrent increments,
    so no additional locking is needed.

    Example:
        collector = MetricsCollector()
        collector.increment_active_requests("gpt-4", "/completions")
        collector.record(outcome)
        collector.decrement_active_requests("gpt-4", "/completions")
        body = collector.render()
    """

    def __init__(
        self,
        registry: CollectorRegistry | None = None,
        include_process_metrics: bool = False,
    ):
        """
        Initialize the collector.

        Args:
            registry: Registry to register instruments on.
                      If None, a fresh CollectorRegistry is created.
            include_process_metrics: Also export process, platform and GC
                                     metrics on the same registry.
        """
        self.registry = registry or CollectorRegistry(auto_describe=True)

        labels = ["model", "endpoint"]

        self.requests_total = Counter(
            "llm_requests_total",
            "Total number of LLM requests",
            ["model", "status", "user_id", "endpoint"],
            registry=self.registry,
        )

        self.response_time = Histogram(
            "llm_response_time_seconds",
            "LLM response time in seconds",
            labels,
            buckets=(0.1, 0.5, 1, 2, 5, 10, 30, 60),
            registry=self.registry,
        )

        self.time_to_first_token = Histogram(
            "llm_time_to_first_token_seconds",
            "Time to first token in seconds",
            labels,
            buckets=(0.1, 0.2, 0.5, 1, 2, 5, 10),
            registry=self.registry,
        )

        self.tokens_per_second = Histogram(
            "llm_tokens_per_second",
            "Token generation speed (tokens/second)",
            labels,
            buckets=(1, 5, 10, 20, 50, 100, 200),
            registry=self.registry,
        )

        self.total_tokens = Histogram(
            "llm_total_tokens",
            "Total tokens per request",
            labels,
            buckets=(10, 50, 100, 500, 1000, 2000, 4000, 8000),
            registry=self.registry,
        )

        # prometheus_client appends _total to counter names on exposition
        self.cost_total = Counter(
            "llm_cost_usd",
            "Total cost in USD",
            labels,
            registry=self.registry,
        )

        self.active_requests = Gauge(
            "llm_active_requests",
            "Number of active LLM requests",
            labels,
            registry=self.registry,
        )

        if include_process_metrics:
            ProcessCollector(registry=self.registry)
            PlatformCollector(registry=self.registry)
            GCCollector(registry=self.registry)

    def record(self, outcome: CompletionOutcome) -> None:
        """
        Record one completion outcome.

        The request counter is incremented for every outcome; timing,
        token and cost instruments only observe successful outcomes.

        Args:
            outcome: The completion outcome to record
        """
        self.requests_total.labels(
            model=outcome.model,
            status=outcome.status.value,
            user_id=outcome.user_id,
            endpoint=outcome.endpoint,
        ).inc()

        if not outcome.is_success:
            return

        labels = {"model": outcome.model, "endpoint": outcome.endpoint}
        self.response_time.labels(**labels).observe(outcome.total_duration)
        self.time_to_first_token.labels(**labels).observe(outcome.time_to_first_token)
        self.tokens_per_second.labels(**labels).observe(outcome.tokens_per_second)
        self.total_tokens.labels(**labels).observe(outcome.total_tokens)
        self.cost_total.labels(**labels).inc(outcome.cost_usd)

    def increment_active_requests(self, model: str, endpoint: str) -> None:
        """Mark a request as started."""
        self.active_requests.labels(model=model, endpoint=endpoint).inc()

    def decrement_active_requests(self, model: str, endpoint: str) -> None:
        """Mark a request as finished."""
        self.active_requests.labels(model=model, endpoint=endpoint).dec()

    def get_value(self, name: str, labels: dict[str, str] | None = None) -> float:
        """
        Read the current value of a sample from the registry.

        Args:
            name: Sample name, e.g. 'llm_requests_total'
            labels: Label set identifying the sample

        Returns:
            Sample value, or 0.0 if the sample has never been touched
        """
        value = self.registry.get_sample_value(name, labels or {})
        return value if value is not None else 0.0

    def render(self) -> bytes:
        """Render the registry in the Prometheus text exposition format."""
        return generate_latest(self.registry)

    @property
    def content_type(self) -> str:
        """Content-Type header for the rendered snapshot."""
        return CONTENT_TYPE_LATEST
