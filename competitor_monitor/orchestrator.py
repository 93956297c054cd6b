"""
Main application orchestrator for the Competitor Monitor system.

This module provides the central coordination point for all system components,
wiring them together from configuration, running the scheduler and the batch
driver, and shutting everything down cleanly.
"""

import asyncio
import signal
import sys
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from .components.change_detector import ChangeDetector
from .components.extraction_engine import ExtractionEngine
from .components.fetcher import PageFetcher
from .components.industry_detector import IndustryDetector
from .components.llm_client import LLMRouter
from .components.notification_fanout import (
    DisabledPushSender,
    EmailNotificationQueue,
    NotificationFanout,
    PushGatewaySender,
)
from .components.prompt_manager import PromptManager
from .db.session import create_db_engine, create_session_factory, init_schema
from .models.config import Configuration
from .models.job import BatchResult
from .services.config_manager import ConfigurationManager
from .services.crawl_worker import CrawlWorker
from .services.job_queue import JobQueue
from .services.scheduler import CrawlScheduler
from .utils.error_handling import (
    ErrorCategory,
    ErrorSeverity,
    get_degradation_manager,
    get_error_tracker,
    with_error_handling,
)
from .utils.logging import get_logger, setup_logging
from .utils.rate_limiter import DomainRateLimiter

MODES = ["batch", "worker", "schedule", "init-db", "stats"]

ERROR_RETENTION_DAYS = 7


class ApplicationOrchestrator:
    """
    Main application orchestrator that coordinates all system components.

    This class builds the components in dependency order, exposes one entry
    point per run mode and releases the browser, the fan-out pool and the
    database engine on shutdown.
    """

    def __init__(
        self,
        config_path: Optional[str] = None,
        config: Optional[Configuration] = None,
    ):
        """
        Initialize the application orchestrator.

        Args:
            config_path: Path to configuration file. If None, uses default paths.
            config: Pre-built configuration, skips loading when given.
        """
        self.logger = get_logger("orchestrator")

        self.config_path = config_path
        self._config = config
        self._running = False
        self._shutdown_event = asyncio.Event()

        # Error handling and monitoring
        self.error_tracker = get_error_tracker()
        self.degradation_manager = get_degradation_manager()

        # Component instances
        self._config_manager: Optional[ConfigurationManager] = None
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None
        self._job_queue: Optional[JobQueue] = None
        self._fetcher: Optional[PageFetcher] = None
        self._extraction_engine: Optional[ExtractionEngine] = None
        self._fanout: Optional[NotificationFanout] = None
        self._push_sender: Optional[PushGatewaySender] = None
        self._worker: Optional[CrawlWorker] = None
        self._scheduler: Optional[CrawlScheduler] = None

        self._startup_time: Optional[datetime] = None
        self._component_health: Dict[str, bool] = {}
        self._error_counts: Dict[str, int] = {}

    @property
    def config(self) -> Optional[Configuration]:
        return self._config

    @property
    def session_factory(self) -> Optional[sessionmaker]:
        return self._session_factory

    @with_error_handling(
        component="orchestrator",
        category=ErrorCategory.SYSTEM,
        severity=ErrorSeverity.CRITICAL,
        fallback_value=False,
        suppress_exceptions=True,
    )
    async def initialize(self) -> bool:
        """
        Load configuration and initialize all system components.

        Returns:
            True if initialization successful, False otherwise.
        """
        if self._config is None:
            self._config_manager = ConfigurationManager(self.config_path)
            self._config = self._config_manager.load_config()
            self._component_health["config_manager"] = True

        setup_logging(log_dir=self._config.log_dir, log_level=self._config.log_level)
        self.logger.info("Initializing Competitor Monitor system...")

        self._initialize_components()

        self._startup_time = datetime.now()
        self.logger.info("System initialization completed successfully")
        return True

    def _initialize_components(self) -> None:
        """Build every component in dependency order."""
        config = self._config

        self._engine = create_db_engine(config.database)
        self._session_factory = create_session_factory(self._engine)
        self._component_health["database"] = True

        self._job_queue = JobQueue(self._session_factory)
        rate_limiter = DomainRateLimiter(
            self._session_factory, requests_per_hour=config.crawler.requests_per_hour
        )
        self._fetcher = PageFetcher.from_config(config.crawler)

        llm_router = LLMRouter(config.llm_provider)
        self._extraction_engine = ExtractionEngine(
            self._session_factory,
            llm_router,
            prompt_manager=PromptManager(config.extraction.prompts_directory),
            config=config.extraction,
        )
        self._component_health["extraction_engine"] = True

        notifications = config.notifications
        if notifications.push_enabled and notifications.push_gateway_url:
            self._push_sender = PushGatewaySender(
                notifications.push_gateway_url, token=notifications.push_gateway_token
            )
            push_sender = self._push_sender
        else:
            push_sender = DisabledPushSender()
        self._fanout = NotificationFanout(
            EmailNotificationQueue(self._session_factory, notifications),
            push_sender,
            config=notifications,
        )
        self._component_health["notification_fanout"] = True

        change_detector = ChangeDetector(
            self._session_factory,
            dispatcher=self._fanout,
            cooldown_hours=config.crawler.alert_cooldown_hours,
        )

        self._worker = CrawlWorker(
            self._session_factory,
            self._job_queue,
            rate_limiter,
            self._fetcher,
            self._extraction_engine,
            change_detector,
            config=config.crawler,
            industry_classifier=IndustryDetector(llm_router),
            business_industry=config.extraction.business_industry,
        )
        self._scheduler = CrawlScheduler(self._session_factory, config=config.crawler)
        self.logger.info("All components initialized")

    def init_database(self) -> None:
        """Create any missing tables."""
        init_schema(self._engine)
        self.logger.info("Database schema initialized")

    def run_scheduler(self) -> int:
        """Enqueue every due target. Returns the number of jobs enqueued."""
        return self._scheduler.enqueue_due_targets()

    async def run_batch(self, max_jobs: Optional[int] = None) -> BatchResult:
        """Drain the queue up to the configured job count and time budget."""
        return await self._worker.process_batch(max_jobs=max_jobs)

    async def run_worker(self) -> None:
        """Schedule and process batches until a shutdown is requested."""
        if self._running:
            self.logger.warning("System is already running")
            return

        self._running = True
        self._setup_signal_handlers()
        poll_interval = self._config.crawler.poll_interval_seconds
        self.logger.info(
            "Starting worker loop", extra={"poll_interval_seconds": poll_interval}
        )

        while self._running and not self._shutdown_event.is_set():
            try:
                self._check_config_reload()
                self.run_scheduler()
                await self.run_batch()
                self.error_tracker.clear_old_errors(older_than_days=ERROR_RETENTION_DAYS)
            except Exception as e:
                self.logger.error(f"Error in worker loop: {e}", exc_info=True)
                self._increment_error_count("worker_loop")
                if self._error_counts["worker_loop"] > 50:
                    self.logger.critical("Too many worker loop errors, stopping")
                    break

            try:
                await asyncio.wait_for(self._shutdown_event.wait(), timeout=poll_interval)
            except asyncio.TimeoutError:
                pass

        self._running = False

    def _setup_signal_handlers(self) -> None:
        """Setup signal handlers for graceful shutdown."""
        loop = asyncio.get_running_loop()
        if sys.platform != "win32":
            for signum in (signal.SIGINT, signal.SIGTERM):
                loop.add_signal_handler(signum, self._signal_handler, signum)

    def _signal_handler(self, signum: int) -> None:
        """Handle shutdown signals."""
        self.logger.info(
            "Received shutdown signal, initiating graceful shutdown",
            extra={"signal": signum},
        )
        self._running = False
        self._shutdown_event.set()

    def _check_config_reload(self) -> None:
        """Reload configuration between batches if the file changed."""
        if self._config_manager is None:
            return
        try:
            if self._config_manager.reload_if_changed():
                # Components keep the settings they were built with
                self.logger.info("Configuration file changed, restart to apply")
        except Exception as e:
            self.logger.error(f"Error checking config reload: {e}")

    def _increment_error_count(self, error_type: str) -> None:
        """Increment error count for a specific error type."""
        self._error_counts[error_type] = self._error_counts.get(error_type, 0) + 1

        if self._error_counts[error_type] % 10 == 0:
            self.logger.warning(
                f"High error count for {error_type}: {self._error_counts[error_type]}"
            )

    def get_system_status(self) -> Dict[str, Any]:
        """Get current system status information."""
        status: Dict[str, Any] = {
            "running": self._running,
            "startup_time": self._startup_time.isoformat()
            if self._startup_time
            else None,
            "component_health": self._component_health.copy(),
            "error_counts": self._error_counts.copy(),
            "config_loaded": self._config is not None,
            "degraded_components": self.degradation_manager.get_all_degraded(),
            "errors": self.error_tracker.get_error_stats(),
        }

        if self._job_queue is not None:
            queue_stats = self._job_queue.get_stats()
            status["queue"] = {
                "pending": queue_stats.pending,
                "max_attempt_failed": queue_stats.max_attempt_failed,
                "average_attempt": queue_stats.average_attempt,
                "oldest_job": queue_stats.oldest_job.isoformat()
                if queue_stats.oldest_job
                else None,
            }

        if self._extraction_engine is not None:
            extraction_stats = self._extraction_engine.get_stats()
            status["extraction"] = {
                "cache_hits": extraction_stats.cache_hits,
                "llm_extractions": extraction_stats.llm_extractions,
                "fallback_extractions": extraction_stats.fallback_extractions,
                "cache_entries": extraction_stats.cache_entries,
                **self._extraction_engine.get_status(),
            }

        return status

    async def shutdown(self) -> None:
        """Gracefully shutdown the system."""
        self.logger.info("Initiating graceful shutdown...")
        self._running = False
        self._shutdown_event.set()

        try:
            if self._fetcher is not None:
                await self._fetcher.close()
                self.logger.info("Browser closed")

            if self._fanout is not None:
                self._fanout.shutdown(wait_for_pending=True)
                self.logger.info("Notification fan-out drained")

            if self._push_sender is not None:
                self._push_sender.close()

            if self._engine is not None:
                self._engine.dispose()

            uptime = datetime.now() - self._startup_time if self._startup_time else None
            self.logger.info(f"System shutdown complete. Uptime: {uptime}")

        except Exception as e:
            self.logger.error(f"Error during shutdown: {e}", exc_info=True)

    async def run(self, mode: str = "batch") -> Any:
        """
        Run the application in the given mode.

        Args:
            mode: One of ``MODES``

        Returns:
            The mode's result: a BatchResult for ``batch``, the number of
            jobs enqueued for ``schedule``, the status dictionary for
            ``stats``, otherwise None.
        """
        if mode not in MODES:
            raise ValueError(f"Unknown mode: {mode}. Must be one of: {MODES}")

        if not await self.initialize():
            raise RuntimeError("System initialization failed")

        try:
            if mode == "init-db":
                self.init_database()
                return None
            if mode == "schedule":
                return self.run_scheduler()
            if mode == "batch":
                return await self.run_batch()
            if mode == "stats":
                return self.get_system_status()

            await self.run_worker()
            return None
        finally:
            await self.shutdown()
