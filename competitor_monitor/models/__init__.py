"""
Data models for the Competitor Monitor system.

This module contains the data classes and type definitions used throughout
the application for representing jobs, extracted records, alerts,
notifications and configuration.
"""

from .alert import (
    AlertDraft,
    AlertType,
    ChangeDetectionResult,
    CreatedAlert,
    DetectionOutcome,
)
from .config import (
    Configuration,
    CrawlerConfig,
    DatabaseConfig,
    ExtractionConfig,
    LLMProviderConfig,
    NotificationConfig,
)
from .extraction import ExtractedData, MenuItem, PriceEntry, Promotion, RecordKind
from .industry import Industry, IndustryDetectionResult, get_effective_industry
from .job import BatchResult, CrawlJob, JobErrorCode, ProcessResult, QueueStats
from .notification import EnqueueResult, PushPayload, PushResult

__all__ = [
    "AlertDraft",
    "AlertType",
    "ChangeDetectionResult",
    "CreatedAlert",
    "DetectionOutcome",
    "Configuration",
    "CrawlerConfig",
    "DatabaseConfig",
    "ExtractionConfig",
    "LLMProviderConfig",
    "NotificationConfig",
    "ExtractedData",
    "MenuItem",
    "PriceEntry",
    "Promotion",
    "RecordKind",
    "Industry",
    "IndustryDetectionResult",
    "get_effective_industry",
    "BatchResult",
    "CrawlJob",
    "JobErrorCode",
    "ProcessResult",
    "QueueStats",
    "EnqueueResult",
    "PushPayload",
    "PushResult",
]
