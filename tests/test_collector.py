"""
Prometheus Collector Tests

Validates which instruments each outcome touches and the exposition output.

Test Categories:
1. TestRecord - Success and error outcome recording
2. TestActiveRequests - In-flight gauge
3. TestRender - Text exposition format
"""

import pytest

from llm_metrics.metrics import MetricsCollector, OutcomeStatus


class TestRecord:
    """Tests for MetricsCollector.record()."""

    def test_success_updates_all_instruments(self, collector, make_outcome):
        """Successful outcomes update the counter, histograms and cost."""
        outcome = make_outcome(model="gpt-4", cost_usd=0.02, total_duration=1.5)

        collector.record(outcome)

        labels = {"model": "gpt-4", "endpoint": "/completions"}
        assert collector.get_value(
            "llm_requests_total",
            {"model": "gpt-4", "status": "success", "user_id": "user-1", "endpoint": "/completions"},
        ) == 1.0
        assert collector.get_value("llm_response_time_seconds_count", labels) == 1.0
        assert collector.get_value("llm_response_time_seconds_sum", labels) == pytest.approx(1.5)
        assert collector.get_value("llm_time_to_first_token_seconds_count", labels) == 1.0
        assert collector.get_value("llm_tokens_per_second_count", labels) == 1.0
        assert collector.get_value("llm_total_tokens_sum", labels) == outcome.total_tokens
        assert collector.get_value("llm_cost_usd_total", labels) == pytest.approx(0.02)

    def test_error_only_counts_request(self, collector, make_outcome):
        """Error outcomes increment the request counter and nothing else."""
        collector.record(make_outcome(model="gpt-4", status=OutcomeStatus.ERROR))

        labels = {"model": "gpt-4", "endpoint": "/completions"}
        assert collector.get_value(
            "llm_requests_total",
            {"model": "gpt-4", "status": "error", "user_id": "user-1", "endpoint": "/completions"},
        ) == 1.0
        assert collector.get_value("llm_response_time_seconds_count", labels) == 0.0
        assert collector.get_value("llm_total_tokens_count", labels) == 0.0
        assert collector.get_value("llm_cost_usd_total", labels) == 0.0

    def test_counter_labels_by_user_and_endpoint(self, collector, make_outcome):
        """Request counts are kept per user and endpoint."""
        collector.record(make_outcome(user_id="alice"))
        collector.record(make_outcome(user_id="alice"))
        collector.record(make_outcome(user_id="bob", endpoint="/api/llm/chat"))

        assert collector.get_value(
            "llm_requests_total",
            {"model": "gpt-3.5-turbo", "status": "success", "user_id": "alice", "endpoint": "/completions"},
        ) == 2.0
        assert collector.get_value(
            "llm_requests_total",
            {"model": "gpt-3.5-turbo", "status": "success", "user_id": "bob", "endpoint": "/api/llm/chat"},
        ) == 1.0

    def test_cost_accumulates(self, collector, make_outcome):
        """Cost counter sums the cost of successful outcomes."""
        for _ in range(4):
            collector.record(make_outcome(cost_usd=0.25))

        assert collector.get_value(
            "llm_cost_usd_total", {"model": "gpt-3.5-turbo", "endpoint": "/completions"}
        ) == pytest.approx(1.0)

    def test_collectors_are_isolated(self, make_outcome):
        """Each collector owns its registry."""
        first, second = MetricsCollector(), MetricsCollector()

        first.record(make_outcome())

        labels = {"model": "gpt-3.5-turbo", "status": "success", "user_id": "user-1", "endpoint": "/completions"}
        assert first.get_value("llm_requests_total", labels) == 1.0
        assert second.get_value("llm_requests_total", labels) == 0.0


class TestActiveRequests:
    """Tests for the active requests gauge."""

    def test_increment_and_decrement(self, collector):
        """Gauge tracks in-flight requests per (model, endpoint)."""
        labels = {"model": "gpt-4", "endpoint": "/completions"}

        collector.increment_active_requests("gpt-4", "/completions")
        collector.increment_active_requests("gpt-4", "/completions")
        assert collector.get_value("llm_active_requests", labels) == 2.0

        collector.decrement_active_requests("gpt-4", "/completions")
        assert collector.get_value("llm_active_requests", labels) == 1.0

    def test_untouched_sample_reads_zero(self, collector):
        """Missing samples read as 0."""
        assert collector.get_value("llm_active_requests", {"model": "x", "endpoint": "y"}) == 0.0


class TestRender:
    """Tests for the exposition output."""

    def test_render_contains_instruments(self, collector, make_outcome):
        """Rendered snapshot lists every llm_* instrument."""
        collector.increment_active_requests("gpt-4", "/completions")
        collector.record(make_outcome(model="gpt-4"))

        body = collector.render().decode()

        for name in (
            "llm_requests_total",
            "llm_response_time_seconds_bucket",
            "llm_time_to_first_token_seconds_bucket",
            "llm_tokens_per_second_bucket",
            "llm_total_tokens_bucket",
            "llm_cost_usd_total",
            "llm_active_requests",
        ):
            assert name in body
        assert 'user_id="user-1"' in body

    def test_content_type(self, collector):
        """Content type is the Prometheus text format."""
        assert collector.content_type.startswith("text/plain")

    def test_process_metrics_optional(self):
        """Platform and GC metrics are only exported when requested."""
        plain = MetricsCollector().render().decode()
        full = MetricsCollector(include_process_metrics=True).render().decode()

        assert "python_info" not in plain
        assert "python_info" in full
        assert "python_gc_objects_collected_total" in full
