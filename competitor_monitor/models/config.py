"""
Configuration models for the system.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .industry import Industry

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

ALERT_TYPES = ["price_change", "new_promotion", "menu_change"]


@dataclass
class LLMProviderConfig:
    """Configuration for LLM provider."""

    type: str  # "local" or "api"
    local: Optional[Dict[str, Any]] = None
    api: Optional[Dict[str, Any]] = None

    def validate(self) -> bool:
        """Validate LLM provider configuration."""
        if not self.type:
            raise ValueError("LLM provider type cannot be empty")

        if self.type not in ["local", "api"]:
            raise ValueError("LLM provider type must be 'local' or 'api'")

        if self.type == "local":
            if not self.local:
                raise ValueError(
                    "Local LLM configuration required when type is 'local'"
                )

            if "model" not in self.local:
                raise ValueError("Local LLM configuration must include 'model'")

        if self.type == "api":
            if not self.api:
                raise ValueError("API LLM configuration required when type is 'api'")

            if "provider" not in self.api:
                raise ValueError("API LLM configuration must include 'provider'")

            if "model" not in self.api:
                raise ValueError("API LLM configuration must include 'model'")

            valid_providers = ["openai", "anthropic"]
            if self.api["provider"] not in valid_providers:
                raise ValueError(f"API provider must be one of: {valid_providers}")

            # Validate API key is present and not a placeholder
            api_key = self.api.get("api_key") or ""
            if not api_key or api_key.startswith("__MISSING_ENV_VAR_"):
                missing_var = (
                    api_key.replace("__MISSING_ENV_VAR_", "").replace("__", "")
                    if api_key.startswith("__MISSING_ENV_VAR_")
                    else "OPENAI_API_KEY"
                )
                raise ValueError(
                    f"API key is required when using API-based LLM provider. Please set the {missing_var} environment variable."
                )

        return True


@dataclass
class DatabaseConfig:
    """Configuration for the backing relational store."""

    url: str = "sqlite:///competitor_monitor.db"
    echo: bool = False
    pool_size: int = 5
    max_overflow: int = 10
    pool_recycle: int = 1800

    def validate(self) -> bool:
        """Validate database configuration."""
        if not self.url or not self.url.strip():
            raise ValueError("Database URL cannot be empty")

        if not self.url.startswith(("postgresql", "postgres", "sqlite")):
            raise ValueError("Database URL must be a PostgreSQL or SQLite URL")

        if self.pool_size <= 0:
            raise ValueError("Database pool size must be positive")

        return True


@dataclass
class CrawlerConfig:
    """Crawl queue, rate limiting and fetch settings."""

    request_timeout_ms: int = 30000
    max_jobs_per_batch: int = 5
    default_recrawl_minutes: int = 60
    requests_per_hour: int = 10
    alert_cooldown_hours: float = 1.0
    max_attempts: int = 3
    batch_time_budget_seconds: int = 540
    rate_limit_retry_minutes: int = 30
    fetch_retry_minutes: int = 5
    industry_confidence_threshold: float = 0.7
    settle_delay_ms: int = 1000
    include_images: bool = False
    browser_executable_path: Optional[str] = None
    user_agent: str = DEFAULT_USER_AGENT
    poll_interval_seconds: int = 60

    def validate(self) -> bool:
        """Validate crawler configuration."""
        if not isinstance(self.request_timeout_ms, int) or self.request_timeout_ms <= 0:
            raise ValueError("Request timeout must be a positive integer (ms)")

        if not isinstance(self.max_jobs_per_batch, int) or self.max_jobs_per_batch <= 0:
            raise ValueError("Max jobs per batch must be a positive integer")

        if self.max_jobs_per_batch > 100:
            raise ValueError("Max jobs per batch cannot exceed 100")

        if (
            not isinstance(self.default_recrawl_minutes, int)
            or self.default_recrawl_minutes <= 0
        ):
            raise ValueError("Default recrawl frequency must be a positive integer")

        if not isinstance(self.requests_per_hour, int) or self.requests_per_hour <= 0:
            raise ValueError("Requests per hour must be a positive integer")

        if self.alert_cooldown_hours < 0:
            raise ValueError("Alert cooldown hours cannot be negative")

        if not isinstance(self.max_attempts, int) or self.max_attempts <= 0:
            raise ValueError("Max attempts must be a positive integer")

        if self.batch_time_budget_seconds <= 0:
            raise ValueError("Batch time budget must be positive")

        if not (0 <= self.industry_confidence_threshold <= 1):
            raise ValueError("Industry confidence threshold must be between 0 and 1")

        if self.settle_delay_ms < 0:
            raise ValueError("Settle delay cannot be negative")

        return True


@dataclass
class ExtractionConfig:
    """Structured extraction settings."""

    max_content_chars: int = 30000
    max_tokens: int = 2000
    temperature: float = 0.1
    prompts_directory: str = "prompts"
    default_industry: str = Industry.RESTAURANT_FOOD.value
    business_industry: Optional[str] = None
    circuit_failure_threshold: int = 5
    circuit_recovery_seconds: int = 300

    def validate(self) -> bool:
        """Validate extraction configuration."""
        if self.max_content_chars <= 0:
            raise ValueError("Max content characters must be positive")

        if self.max_tokens <= 0:
            raise ValueError("Max tokens must be positive")

        if not (0 <= self.temperature <= 2):
            raise ValueError("Temperature must be between 0 and 2")

        valid_industries = [industry.value for industry in Industry]
        if self.default_industry not in valid_industries:
            raise ValueError(f"Default industry must be one of: {valid_industries}")

        if self.business_industry is not None and self.business_industry not in valid_industries:
            raise ValueError(f"Business industry must be one of: {valid_industries}")

        if self.circuit_failure_threshold <= 0:
            raise ValueError("Circuit failure threshold must be positive")

        return True


@dataclass
class NotificationConfig:
    """Email enqueue preferences and push gateway settings."""

    email_enabled: bool = True
    to_email: Optional[str] = None
    alert_types: List[str] = field(default_factory=lambda: list(ALERT_TYPES))
    quiet_hours_start: Optional[str] = None  # "HH:MM"
    quiet_hours_end: Optional[str] = None
    timezone: str = "UTC"
    push_enabled: bool = False
    push_gateway_url: Optional[str] = None
    push_gateway_token: Optional[str] = None
    dashboard_path: str = "/dashboard/alerts"
    fanout_workers: int = 4

    def validate(self) -> bool:
        """Validate notification configuration."""
        if not isinstance(self.alert_types, list):
            raise ValueError("Alert types must be a list")

        for alert_type in self.alert_types:
            if alert_type not in ALERT_TYPES:
                raise ValueError(f"Unknown alert type: {alert_type}")

        if bool(self.quiet_hours_start) != bool(self.quiet_hours_end):
            raise ValueError("Quiet hours need both a start and an end")

        for value in (self.quiet_hours_start, self.quiet_hours_end):
            if value:
                parse_clock_time(value)

        if self.push_enabled and not self.push_gateway_url:
            raise ValueError("Push gateway URL required when push is enabled")

        if self.fanout_workers <= 0:
            raise ValueError("Fan-out workers must be positive")

        return True


def parse_clock_time(value: str) -> tuple:
    """Parse "HH:MM" into an (hour, minute) tuple."""
    try:
        hour_text, minute_text = value.split(":")
        hour, minute = int(hour_text), int(minute_text)
    except (AttributeError, ValueError):
        raise ValueError(f"Invalid clock time (expected HH:MM): {value}")

    if not (0 <= hour < 24 and 0 <= minute < 60):
        raise ValueError(f"Invalid clock time (expected HH:MM): {value}")

    return hour, minute


@dataclass
class Configuration:
    """System configuration."""

    llm_provider: LLMProviderConfig
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    crawler: CrawlerConfig = field(default_factory=CrawlerConfig)
    extraction: ExtractionConfig = field(default_factory=ExtractionConfig)
    notifications: NotificationConfig = field(default_factory=NotificationConfig)
    log_level: str = "INFO"
    log_dir: str = "logs"

    def validate(self) -> bool:
        """Validate system configuration."""
        if self.log_level.upper() not in [
            "DEBUG",
            "INFO",
            "WARNING",
            "ERROR",
            "CRITICAL",
        ]:
            raise ValueError(f"Invalid log level: {self.log_level}")

        # Validate nested configurations
        self.database.validate()
        self.crawler.validate()
        self.extraction.validate()
        self.notifications.validate()
        self.llm_provider.validate()

        return True
