"""
Pytest configuration and shared fixtures.

This module provides common fixtures and configuration for all tests
in the Competitor Monitor test suite.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, Mock

import pytest

from competitor_monitor.db.repositories import TargetRepository
from competitor_monitor.db.session import (
    create_db_engine,
    create_session_factory,
    init_schema,
)
from competitor_monitor.models.config import (
    Configuration,
    CrawlerConfig,
    DatabaseConfig,
    LLMProviderConfig,
    NotificationConfig,
)
from competitor_monitor.models.extraction import (
    ExtractedData,
    MenuItem,
    PriceEntry,
    Promotion,
)
from competitor_monitor.models.job import CrawlJob
from competitor_monitor.utils.error_handling import get_degradation_manager


class FakeClock:
    """Controllable UTC clock for time-dependent components."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


# Database fixtures
@pytest.fixture
def engine():
    """In-memory SQLite engine with the full schema."""
    db_engine = create_db_engine(DatabaseConfig(url="sqlite://"))
    init_schema(db_engine)
    yield db_engine
    db_engine.dispose()


@pytest.fixture
def session_factory(engine):
    """Session factory bound to the in-memory engine."""
    return create_session_factory(engine)


@pytest.fixture
def clock():
    """Fake clock starting at 2024-01-01 12:00 UTC."""
    return FakeClock(datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def make_target(session_factory):
    """Factory creating monitored targets; returns the new target id."""

    def _make_target(url="https://burgerbarn.example.com/menu", **kwargs):
        with session_factory.begin() as session:
            target = TargetRepository(session).create_target(url=url, **kwargs)
            return target.id

    return _make_target


# Test data fixtures
@pytest.fixture
def sample_extracted_data():
    """Create a sample ExtractedData for testing."""
    return ExtractedData(
        prices=[
            PriceEntry(item="Burger", price="$10.00", currency="USD", category="Mains"),
            PriceEntry(item="Fries", price="$4.00", currency="USD", category="Sides"),
        ],
        promotions=[
            Promotion(
                title="Happy Hour",
                description="Half price drinks every weekday from 4pm to 6pm",
                discount="50%",
            )
        ],
        menu_items=[
            MenuItem(name="Burger", category="Mains", price="$10.00"),
            MenuItem(name="Fries", category="Sides", price="$4.00"),
        ],
    )


@pytest.fixture
def sample_crawl_job(clock):
    """Create a sample CrawlJob for testing."""
    return CrawlJob(
        id=1,
        target_id=1,
        url="https://burgerbarn.example.com/menu",
        priority=0,
        attempt=0,
        max_attempts=3,
        scheduled_for=clock(),
    )


@pytest.fixture
def sample_configuration(tmp_path):
    """Create a sample Configuration for testing."""
    return Configuration(
        llm_provider=LLMProviderConfig(
            type="local",
            local={"model": "llama3", "base_url": "http://localhost:11434"},
        ),
        database=DatabaseConfig(url="sqlite://"),
        crawler=CrawlerConfig(max_jobs_per_batch=5, poll_interval_seconds=1),
        notifications=NotificationConfig(to_email="owner@example.com"),
        log_dir=str(tmp_path / "logs"),
    )


# Mock fixtures
@pytest.fixture
def mock_llm_router():
    """Create a mock LLM router for testing."""
    router = Mock()
    router.complete = AsyncMock()
    router.test_connection.return_value = True
    return router


@pytest.fixture(autouse=True)
def reset_degradation():
    """Clear global degradation state between tests."""
    manager = get_degradation_manager()
    manager.degraded_components.clear()
    yield
    manager.degraded_components.clear()


# Pytest configuration
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "slow: mark test as slow running")
    config.addinivalue_line("markers", "integration: mark test as integration test")
    config.addinivalue_line("markers", "unit: mark test as unit test")


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers automatically."""
    for item in items:
        # Add unit marker to all tests by default
        if not any(
            marker.name in ["integration", "slow"] for marker in item.iter_markers()
        ):
            item.add_marker(pytest.mark.unit)

        if "integration" in item.name.lower():
            item.add_marker(pytest.mark.slow)
