"""
db/models

Importing this package registers every table on ``Base.metadata``.
"""

from .alert import Alert
from .crawl_queue import CrawlQueueEntry
from .email_queue import EmailQueueEntry, EmailQueueStatus
from .extraction_cache import ExtractionCacheEntry
from .rate_limit import RateLimitWindow
from .snapshot import Snapshot
from .target import MonitoredTarget

__all__ = [
    "Alert",
    "CrawlQueueEntry",
    "EmailQueueEntry",
    "EmailQueueStatus",
    "ExtractionCacheEntry",
    "MonitoredTarget",
    "RateLimitWindow",
    "Snapshot",
]
