"""
API Endpoint Tests

Integration tests for REST API endpoints using FastAPI TestClient against
a SQLite metrics database.

Test Categories:
1. TestCompletionsEndpoint - /completions and its legacy aliases
2. TestPrometheusEndpoint - /metrics exposition
3. TestSummaryEndpoint - /metrics/summary
4. TestCostsEndpoint - /metrics/costs
5. TestDemoEndpoint - /demo/generate
6. TestOperationalEndpoints - /, /health, /config, /models
7. TestErrorHandling - Validation and persistence errors
"""

from unittest.mock import AsyncMock

from prometheus_client.parser import text_string_to_metric_families

from llm_metrics.storage import PersistenceError


class TestCompletionsEndpoint:
    """Tests for the completion endpoint."""

    def test_valid_request(self, test_client):
        """Valid request returns a camelCase outcome."""
        response = test_client.post("/completions", json={"prompt": "What is machine learning?"})

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "success"
        assert data["model"] == "gpt-3.5-turbo"
        assert len(data["requestId"]) == 36
        assert "gpt-3.5-turbo" in data["response"]

        metrics = data["metrics"]
        for key in (
            "promptTokens",
            "completionTokens",
            "totalTokens",
            "timeToFirstToken",
            "tokensPerSecond",
            "totalDuration",
            "cost",
        ):
            assert key in metrics
        assert metrics["totalTokens"] == metrics["promptTokens"] + metrics["completionTokens"]
        assert metrics["cost"] >= 0

    def test_all_fields(self, test_client):
        """Model, user and sampling hints are accepted."""
        response = test_client.post(
            "/completions",
            json={
                "prompt": "Write a Python function to sort a list",
                "model": "gpt-4",
                "userId": "user-42",
                "maxTokens": 50,
                "temperature": 0.2,
            },
        )

        assert response.status_code == 200
        assert response.json()["model"] == "gpt-4"

    def test_legacy_aliases(self, test_client):
        """Legacy paths serve completions too."""
        for path in ("/api/llm/chat", "/api/llm/generate"):
            response = test_client.post(path, json={"prompt": "Hello"})
            assert response.status_code == 200
            assert response.json()["status"] == "success"

    def test_request_ids_are_unique(self, test_client):
        """Each request gets its own id."""
        ids = {
            test_client.post("/completions", json={"prompt": "Hi"}).json()["requestId"]
            for _ in range(5)
        }

        assert len(ids) == 5


class TestPrometheusEndpoint:
    """Tests for /metrics."""

    def test_exposition_format(self, test_client):
        """The snapshot is Prometheus text with the llm_* instruments."""
        test_client.post("/completions", json={"prompt": "Hi", "userId": "alice"})

        response = test_client.get("/metrics")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        body = response.text
        assert "llm_requests_total" in body
        assert "llm_cost_usd_total" in body
        assert 'user_id="alice"' in body

    def test_endpoint_label_is_request_path(self, test_client):
        """Metrics recorded through an alias carry the alias path."""
        test_client.post("/api/llm/chat", json={"prompt": "Hi"})

        body = test_client.get("/metrics").text

        assert 'endpoint="/api/llm/chat"' in body

    def test_active_requests_idle(self, test_client):
        """No requests are in flight between calls."""
        test_client.post("/completions", json={"prompt": "Hi"})

        body = test_client.get("/metrics").text

        samples = {
            (sample.name, sample.labels.get("model"), sample.labels.get("endpoint")): sample.value
            for family in text_string_to_metric_families(body)
            for sample in family.samples
        }
        assert samples[("llm_active_requests", "gpt-3.5-turbo", "/completions")] == 0.0


class TestSummaryEndpoint:
    """Tests for /metrics/summary."""

    def test_empty_summary(self, test_client):
        """An empty store reports zeros."""
        response = test_client.get("/metrics/summary")

        assert response.status_code == 200
        assert response.json() == {
            "totalRequests": 0,
            "successRate": 0.0,
            "avgTimeToFirstToken": 0.0,
            "avgTokensPerSecond": 0.0,
            "avgTotalDuration": 0.0,
            "totalCost": 0.0,
            "avgTokensPerRequest": 0.0,
            "errorCount": 0,
        }

    def test_summary_after_requests(self, test_client):
        """Completions show up in the summary."""
        for _ in range(3):
            test_client.post("/completions", json={"prompt": "Hi", "model": "gpt-4"})
        test_client.post("/completions", json={"prompt": "Hi"})

        data = test_client.get("/metrics/summary", params={"timeRange": "24h"}).json()
        assert data["totalRequests"] == 4
        assert data["successRate"] == 1.0
        assert data["totalCost"] > 0

        filtered = test_client.get("/metrics/summary", params={"model": "gpt-4"}).json()
        assert filtered["totalRequests"] == 3

    def test_legacy_alias(self, test_client):
        """The legacy summary path returns the same shape."""
        response = test_client.get("/api/metrics/llm/summary", params={"timeRange": "7d"})

        assert response.status_code == 200
        assert "totalRequests" in response.json()


class TestCostsEndpoint:
    """Tests for /metrics/costs."""

    def test_cost_breakdown(self, test_client):
        """Costs are grouped by model for the current bucket."""
        test_client.post("/completions", json={"prompt": "Hi", "model": "gpt-4"})
        test_client.post("/completions", json={"prompt": "Hi", "model": "gpt-3.5-turbo"})

        response = test_client.get("/metrics/costs")

        assert response.status_code == 200
        rows = response.json()
        assert [row["model"] for row in rows] == ["gpt-3.5-turbo", "gpt-4"]
        for row in rows:
            assert set(row) == {"timestamp", "model", "totalCost", "requestCount", "avgCostPerRequest"}
            assert row["requestCount"] == 1

    def test_group_by_day_alias(self, test_client):
        """The legacy path accepts groupBy=day."""
        test_client.post("/completions", json={"prompt": "Hi"})

        response = test_client.get(
            "/api/metrics/llm/costs", params={"timeRange": "7d", "groupBy": "day"}
        )

        assert response.status_code == 200
        assert len(response.json()) == 1

    def test_empty(self, test_client):
        """No successful requests means an empty list."""
        assert test_client.get("/metrics/costs").json() == []


class TestDemoEndpoint:
    """Tests for /demo/generate."""

    def test_generate_demo(self, test_client):
        """Demo generation returns a message and a preview of five results."""
        response = test_client.post("/demo/generate", json={"count": 7})

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Generated 7 demo metrics"
        assert len(data["results"]) == 5

        summary = test_client.get("/metrics/summary").json()
        assert summary["totalRequests"] == 7

    def test_generate_with_errors(self, test_client):
        """includeErrors produces error outcomes in the store."""
        response = test_client.post(
            "/api/demo/generate-metrics", json={"count": 40, "includeErrors": True}
        )

        assert response.status_code == 200
        summary = test_client.get("/metrics/summary").json()
        assert summary["totalRequests"] == 40
        assert 0 < summary["errorCount"] < 40

    def test_default_body(self, test_client):
        """An empty body generates the default ten requests."""
        response = test_client.post("/demo/generate")

        assert response.status_code == 200
        assert response.json()["message"] == "Generated 10 demo metrics"

    def test_count_bounds(self, test_client):
        """count must be between 1 and 1000."""
        assert test_client.post("/demo/generate", json={"count": 0}).status_code == 422
        assert test_client.post("/demo/generate", json={"count": 1001}).status_code == 422


class TestOperationalEndpoints:
    """Tests for /, /health, /config and /models."""

    def test_root(self, test_client):
        """Root lists service information."""
        data = test_client.get("/").json()

        assert data["name"] == "LLM Metrics Service"
        assert data["metrics"] == "/metrics"

    def test_health(self, test_client):
        """Health reports a healthy database and registry."""
        response = test_client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["service"] == "llm-metrics-service"
        components = {c["name"]: c for c in data["components"]}
        assert components["database"]["status"] == "healthy"
        assert components["database"]["latency_ms"] >= 0
        assert components["registry"]["message"] == "4 models registered"
        assert data["uptime_seconds"] >= 0

    def test_health_database_down(self, test_client):
        """A failing database makes the service unhealthy."""
        test_client.app.state.database.health_check = AsyncMock(
            side_effect=PersistenceError("Database health check failed")
        )

        data = test_client.get("/health").json()

        assert data["status"] == "unhealthy"

    def test_config_hides_secrets(self, test_client):
        """Config exposes no credentials."""
        response = test_client.get("/config")

        assert response.status_code == 200
        text = response.text
        assert "prometheus_password" not in text
        assert "demo_key" not in text
        assert response.json()["completions"]["has_real_api_key"] is False

    def test_models(self, test_client):
        """All priced models are listed."""
        data = test_client.get("/models").json()

        assert data["total_models"] == 4
        ids = {m["model_id"] for m in data["models"]}
        assert ids == {"gpt-3.5-turbo", "gpt-4", "gpt-4-turbo", "gpt-4o"}


class TestErrorHandling:
    """Tests for error responses."""

    def test_missing_prompt_returns_400(self, test_client):
        """A request without a prompt is rejected before any work."""
        response = test_client.post("/completions", json={"model": "gpt-4"})

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["field"] == "prompt"

        body = test_client.get("/metrics").text
        assert 'model="gpt-4"' not in body

    def test_no_body_returns_400(self, test_client):
        """A request with no body is treated as a missing prompt."""
        response = test_client.post("/completions")

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["field"] == "prompt"

    def test_blank_prompt_returns_400(self, test_client):
        """Whitespace-only prompts count as missing."""
        response = test_client.post("/completions", json={"prompt": "   "})

        assert response.status_code == 400

    def test_invalid_field_returns_422(self, test_client):
        """Schema violations use the validation error format."""
        response = test_client.post("/completions", json={"prompt": "Hi", "maxTokens": 0})

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_malformed_json_returns_422(self, test_client):
        """Malformed JSON is a validation error."""
        response = test_client.post(
            "/completions",
            content="{not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 422

    def test_persistence_failure_on_completion(self, test_client):
        """A store failure during a completion yields a generic 500."""
        service = test_client.app.state.service
        service.store = AsyncMock()
        service.store.save = AsyncMock(side_effect=PersistenceError("connection refused"))

        response = test_client.post("/completions", json={"prompt": "Hi"})

        assert response.status_code == 500
        error = response.json()["error"]
        assert error["code"] == "PERSISTENCE_ERROR"
        assert "connection refused" not in error["message"]

    def test_persistence_failure_on_summary(self, test_client):
        """A failing summary query yields a 500."""
        test_client.app.state.database.summarize = AsyncMock(
            side_effect=PersistenceError("timeout")
        )

        response = test_client.get("/metrics/summary")

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "PERSISTENCE_ERROR"

    def test_persistence_failure_on_costs(self, test_client):
        """A failing cost query yields a 500."""
        test_client.app.state.database.cost_breakdown = AsyncMock(
            side_effect=PersistenceError("timeout")
        )

        assert test_client.get("/metrics/costs").status_code == 500
