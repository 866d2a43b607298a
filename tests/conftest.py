"""
Pytest configuration and shared fixtures.

Provides fake time, mock stores, a throwaway SQLite metrics database and
an application TestClient for the LLM Metrics Service test suite.

IMPORTANT: Environment variables must be set BEFORE importing app modules
that use pydantic-settings, as Settings validates on import.
"""

import os

# Set test environment variables before importing app modules
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["DEBUG"] = "false"
os.environ["DB_CREATE_TABLES"] = "true"
os.environ["SIMULATOR_LATENCY_SCALE"] = "0"
os.environ["DEMO_REQUEST_DELAY"] = "0"

# Now safe to import everything else
import random
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient


def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "asyncio: mark test as async")
    config.addinivalue_line("markers", "slow: mark test as slow-running")


@pytest.fixture(autouse=True)
def reset_singletons():
    """
    Reset all singleton instances between tests.

    This ensures each test starts with a clean state.
    """
    from llm_metrics.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()

    from llm_metrics.metrics import cost
    from llm_metrics.registry import models

    cost._calculator = None
    models._registry_instance = None


class FakeTime:
    """
    Deterministic clock with a matching sleep coroutine.

    Sleeping advances the clock instead of waiting, so durations measured
    with clock() equal the sum of the requested sleeps.
    """

    def __init__(self) -> None:
        self.now = 1000.0
        self.sleeps: list[float] = []

    def clock(self) -> float:
        return self.now

    async def sleep(self, delay: float) -> None:
        self.sleeps.append(delay)
        self.now += delay


@pytest.fixture
def fake_time():
    """Fake clock/sleep pair shared by the simulator and the service."""
    return FakeTime()


@pytest.fixture
def collector():
    """Fresh MetricsCollector on a private registry."""
    from llm_metrics.metrics import MetricsCollector

    return MetricsCollector()


@pytest.fixture
def simulator(fake_time):
    """Seeded simulator that never actually waits."""
    from llm_metrics.simulator import CompletionSimulator

    return CompletionSimulator(rng=random.Random(42), sleep=fake_time.sleep)


@pytest.fixture
def mock_store():
    """Store double recording saved outcomes via AsyncMock."""
    store = AsyncMock()
    store.save = AsyncMock(return_value=None)
    return store


@pytest.fixture
def service(simulator, collector, mock_store, fake_time):
    """CompletionService wired to fakes."""
    from llm_metrics.service import CompletionService

    return CompletionService(simulator, collector, mock_store, clock=fake_time.clock)


@pytest.fixture
def make_outcome():
    """
    Factory fixture for creating CompletionOutcome objects.

    Usage:
        outcome = make_outcome(model="gpt-4", cost_usd=0.01)
        failed = make_outcome(status=OutcomeStatus.ERROR)
    """
    from llm_metrics.metrics import CompletionOutcome, OutcomeStatus, new_request_id

    def _create(
        model: str = "gpt-3.5-turbo",
        status: OutcomeStatus = OutcomeStatus.SUCCESS,
        prompt_tokens: int = 10,
        completion_tokens: int = 40,
        time_to_first_token: float = 0.4,
        tokens_per_second: float = 25.0,
        total_duration: float = 2.0,
        cost_usd: float = 0.0001,
        user_id: str = "user-1",
        endpoint: str = "/completions",
        created_at=None,
    ):
        is_error = status == OutcomeStatus.ERROR
        fields = dict(
            request_id=new_request_id(),
            model=model,
            prompt_tokens=prompt_tokens,
            completion_tokens=0 if is_error else completion_tokens,
            total_tokens=prompt_tokens + (0 if is_error else completion_tokens),
            time_to_first_token=0.0 if is_error else time_to_first_token,
            tokens_per_second=0.0 if is_error else tokens_per_second,
            total_duration=total_duration,
            cost_usd=0.0 if is_error else cost_usd,
            status=status,
            user_id=user_id,
            endpoint=endpoint,
            error_message="API rate limit exceeded" if is_error else None,
        )
        if created_at is not None:
            fields["created_at"] = created_at
        return CompletionOutcome(**fields)

    return _create


@pytest.fixture
def database_url(tmp_path):
    """URL of a throwaway SQLite database file."""
    return f"sqlite+aiosqlite:///{tmp_path / 'metrics.db'}"


@pytest.fixture
async def database(database_url):
    """Initialized MetricsDatabase with the llm_metrics table created."""
    from llm_metrics.storage import MetricsDatabase

    db = MetricsDatabase(database_url)
    await db.initialize(create_tables=True)
    yield db
    await db.close()


@pytest.fixture
def test_client(database_url, monkeypatch):
    """
    Create a FastAPI TestClient backed by a SQLite metrics database.

    Simulated latency and demo pacing are disabled through the environment
    so requests complete immediately.
    """
    from llm_metrics.config import get_settings

    monkeypatch.setenv("DATABASE_URL", database_url)
    get_settings.cache_clear()

    from llm_metrics.main import app

    with TestClient(app) as client:
        yield client
