"""
Tests for the command line entry point.
"""

from unittest.mock import AsyncMock, Mock, patch

import pytest

from competitor_monitor.main import async_main, build_parser, main
from competitor_monitor.models.job import BatchResult


@pytest.fixture(autouse=True)
def run_in_tmp(tmp_path, monkeypatch):
    # async_main writes logs relative to the working directory
    monkeypatch.chdir(tmp_path)


class TestParser:
    """Test cases for argument parsing."""

    def test_defaults(self):
        args = build_parser().parse_args([])

        assert args.mode == "batch"
        assert args.config_path is None

    def test_mode_and_config(self):
        args = build_parser().parse_args(["--config", "config/prod.yaml", "schedule"])

        assert args.mode == "schedule"
        assert args.config_path == "config/prod.yaml"

    def test_unknown_mode(self):
        with pytest.raises(SystemExit) as exc_info:
            build_parser().parse_args(["crawl-everything"])

        assert exc_info.value.code == 2


class TestAsyncMain:
    """Test cases for async_main."""

    @pytest.mark.asyncio
    async def test_batch_prints_summary(self, capsys):
        batch = BatchResult(processed=3, succeeded=2, failed=1, duration_seconds=4.2)

        with patch("competitor_monitor.main.ApplicationOrchestrator") as mock_orchestrator:
            mock_orchestrator.return_value.run = AsyncMock(return_value=batch)
            exit_code = await async_main("config.yaml", "batch")

        assert exit_code == 0
        mock_orchestrator.assert_called_once_with("config.yaml")
        assert "Processed 3 jobs: 2 succeeded, 1 failed in 4.2s" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_schedule_prints_count(self, capsys):
        with patch("competitor_monitor.main.ApplicationOrchestrator") as mock_orchestrator:
            mock_orchestrator.return_value.run = AsyncMock(return_value=4)
            exit_code = await async_main(None, "schedule")

        assert exit_code == 0
        assert "Enqueued 4 targets" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_stats_prints_json(self, capsys):
        with patch("competitor_monitor.main.ApplicationOrchestrator") as mock_orchestrator:
            mock_orchestrator.return_value.run = AsyncMock(
                return_value={"queue": {"pending": 2}}
            )
            await async_main(None, "stats")

        assert '"pending": 2' in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_failure_returns_one(self):
        with patch("competitor_monitor.main.ApplicationOrchestrator") as mock_orchestrator:
            mock_orchestrator.return_value.run = AsyncMock(
                side_effect=RuntimeError("System initialization failed")
            )
            assert await async_main(None, "batch") == 1


class TestMain:
    """Test cases for main."""

    def test_exit_code_is_propagated(self):
        with patch("competitor_monitor.main.async_main", new=AsyncMock(return_value=1)) as mock_main:
            with pytest.raises(SystemExit) as exc_info:
                main(["--config", "x.yaml", "init-db"])

        assert exc_info.value.code == 1
        mock_main.assert_awaited_once_with("x.yaml", "init-db")

    def test_keyboard_interrupt_exits_cleanly(self, capsys):
        with patch("competitor_monitor.main.async_main", new=Mock()), patch(
            "competitor_monitor.main.asyncio.run", side_effect=KeyboardInterrupt
        ):
            with pytest.raises(SystemExit) as exc_info:
                main([])

        assert exc_info.value.code == 0
        assert "Shutdown requested" in capsys.readouterr().out
