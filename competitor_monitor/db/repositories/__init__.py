"""
Repositories wrapping a SQLAlchemy ``Session`` per aggregate.
"""

from .alert_repository import AlertRepository
from .cache_repository import ExtractionCacheRepository
from .email_queue_repository import EmailQueueRepository
from .queue_repository import CrawlQueueRepository
from .rate_limit_repository import RateLimitRepository
from .snapshot_repository import SnapshotRepository
from .target_repository import TargetRepository

__all__ = [
    "AlertRepository",
    "CrawlQueueRepository",
    "EmailQueueRepository",
    "ExtractionCacheRepository",
    "RateLimitRepository",
    "SnapshotRepository",
    "TargetRepository",
]
