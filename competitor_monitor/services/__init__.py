"""
Service layer for the Competitor Monitor system.

This module contains the services that load configuration, manage the
crawl queue, schedule recurring crawls and drive crawl jobs through the
pipeline.
"""

from .config_manager import ConfigurationManager
from .crawl_worker import CrawlWorker
from .job_queue import JobQueue
from .scheduler import CrawlScheduler

__all__ = [
    "ConfigurationManager",
    "CrawlWorker",
    "JobQueue",
    "CrawlScheduler",
]
