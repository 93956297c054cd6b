"""
Core components for the Competitor Monitor system.

This module contains the main components that handle page fetching,
structured extraction, industry classification, change detection and
notification fan-out.
"""

from .change_detector import ChangeDetector
from .extraction_engine import ExtractionEngine
from .fetcher import BrowserManager, FetchOptions, PageFetcher
from .industry_detector import IndustryDetector
from .llm_client import APILLMClient, LLMProvider, LLMRouter, LocalLLMClient
from .notification_fanout import (
    DisabledPushSender,
    EmailNotificationQueue,
    NotificationFanout,
    PushGatewaySender,
)
from .prompt_manager import PromptManager

__all__ = [
    "ChangeDetector",
    "ExtractionEngine",
    "BrowserManager",
    "FetchOptions",
    "PageFetcher",
    "IndustryDetector",
    "LLMRouter",
    "LocalLLMClient",
    "APILLMClient",
    "LLMProvider",
    "DisabledPushSender",
    "EmailNotificationQueue",
    "NotificationFanout",
    "PushGatewaySender",
    "PromptManager",
]
