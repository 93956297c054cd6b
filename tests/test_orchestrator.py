"""
Tests for the application orchestrator.
"""

import signal
from dataclasses import replace
from unittest.mock import AsyncMock, Mock, patch

import pytest
import pytest_asyncio
import requests

from competitor_monitor.db.repositories import TargetRepository
from competitor_monitor.models.config import DatabaseConfig
from competitor_monitor.models.job import BatchResult
from competitor_monitor.orchestrator import ApplicationOrchestrator

PAGE = "<html><body><h1>Burger Barn</h1><p>Classic Burger $10.00</p></body></html>"


@pytest.fixture
def file_config(sample_configuration, tmp_path):
    """Configuration backed by an on-disk SQLite database."""
    return replace(
        sample_configuration,
        database=DatabaseConfig(url=f"sqlite:///{tmp_path / 'monitor.db'}"),
    )


@pytest_asyncio.fixture
async def orchestrator(sample_configuration):
    orchestrator = ApplicationOrchestrator(config=sample_configuration)
    assert await orchestrator.initialize() is True
    orchestrator.init_database()
    yield orchestrator
    await orchestrator.shutdown()


class TestApplicationOrchestrator:
    """Test cases for ApplicationOrchestrator."""

    @pytest.mark.asyncio
    async def test_initialize_with_injected_config(self, sample_configuration):
        orchestrator = ApplicationOrchestrator(config=sample_configuration)

        assert await orchestrator.initialize() is True
        orchestrator.init_database()

        assert orchestrator.config is sample_configuration
        assert orchestrator.session_factory is not None
        status = orchestrator.get_system_status()
        assert status["config_loaded"] is True
        assert status["component_health"] == {
            "database": True,
            "extraction_engine": True,
            "notification_fanout": True,
        }
        await orchestrator.shutdown()

    @pytest.mark.asyncio
    async def test_initialize_failure_returns_false(self, tmp_path):
        orchestrator = ApplicationOrchestrator(config_path=str(tmp_path / "missing.yaml"))

        assert await orchestrator.initialize() is False
        assert orchestrator.config is None

    @pytest.mark.asyncio
    async def test_run_rejects_unknown_mode(self, sample_configuration):
        orchestrator = ApplicationOrchestrator(config=sample_configuration)

        with pytest.raises(ValueError, match="Unknown mode"):
            await orchestrator.run("crawl-everything")

    @pytest.mark.asyncio
    async def test_run_raises_when_initialization_fails(self, tmp_path):
        orchestrator = ApplicationOrchestrator(config_path=str(tmp_path / "missing.yaml"))

        with pytest.raises(RuntimeError, match="initialization failed"):
            await orchestrator.run("batch")

    @pytest.mark.asyncio
    async def test_init_db_then_stats(self, file_config):
        assert await ApplicationOrchestrator(config=file_config).run("init-db") is None

        status = await ApplicationOrchestrator(config=file_config).run("stats")

        assert status["queue"]["pending"] == 0
        assert status["queue"]["oldest_job"] is None
        assert status["extraction"]["cache_entries"] == 0
        assert status["extraction"]["circuit_state"] == "closed"
        assert status["running"] is False

    @pytest.mark.asyncio
    async def test_batch_mode_on_empty_queue(self, file_config):
        await ApplicationOrchestrator(config=file_config).run("init-db")

        result = await ApplicationOrchestrator(config=file_config).run("batch")

        assert isinstance(result, BatchResult)
        assert result.processed == 0

    @pytest.mark.asyncio
    async def test_schedule_and_batch_crawl_a_target(self, orchestrator):
        with orchestrator.session_factory.begin() as session:
            target_id = TargetRepository(session).create_target(
                url="https://burgerbarn.example.com/menu", name="Burger Barn"
            ).id
        orchestrator._fetcher.fetch = AsyncMock(return_value=PAGE)

        assert orchestrator.run_scheduler() == 1

        # No LLM is reachable, so extraction falls back to regex
        with patch(
            "requests.post", side_effect=requests.exceptions.ConnectionError("refused")
        ):
            result = await orchestrator.run_batch()

        assert result.processed == 1
        assert result.succeeded == 1
        assert result.results[0].target_id == target_id
        status = orchestrator.get_system_status()
        assert status["queue"]["pending"] == 0
        assert status["extraction"]["fallback_extractions"] == 1

    @pytest.mark.asyncio
    async def test_worker_loop_stops_on_signal(self, orchestrator):
        orchestrator.run_scheduler = Mock(return_value=0)

        async def batch_then_stop(max_jobs=None):
            orchestrator._signal_handler(signal.SIGTERM)
            return BatchResult()

        orchestrator.run_batch = AsyncMock(side_effect=batch_then_stop)

        with patch.object(orchestrator.error_tracker, "clear_old_errors") as clear_old_errors:
            await orchestrator.run_worker()

        orchestrator.run_scheduler.assert_called_once()
        orchestrator.run_batch.assert_awaited_once()
        clear_old_errors.assert_called_once_with(older_than_days=7)
        assert orchestrator.get_system_status()["running"] is False

    @pytest.mark.asyncio
    async def test_worker_loop_counts_errors(self, orchestrator):
        def failing_scheduler():
            orchestrator._shutdown_event.set()
            raise RuntimeError("database is down")

        orchestrator.run_scheduler = Mock(side_effect=failing_scheduler)

        await orchestrator.run_worker()

        assert orchestrator.get_system_status()["error_counts"] == {"worker_loop": 1}

    @pytest.mark.asyncio
    async def test_shutdown_releases_resources(self, sample_configuration):
        orchestrator = ApplicationOrchestrator(config=sample_configuration)
        await orchestrator.initialize()
        orchestrator._fetcher.close = AsyncMock()
        orchestrator._fanout.shutdown = Mock()

        await orchestrator.shutdown()

        orchestrator._fetcher.close.assert_awaited_once()
        orchestrator._fanout.shutdown.assert_called_once_with(wait_for_pending=True)
