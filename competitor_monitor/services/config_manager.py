"""
Configuration management system for the Competitor Monitor.

Configuration comes from an optional YAML or JSON file, with ``${VAR}``
references expanded from the environment, and is then overlaid with the
well-known environment variables. Without a file the configuration is
built from defaults plus environment.
"""

import json
import os
import re
from typing import Any, Callable, Dict, Mapping, Optional

import yaml

from ..models.config import (
    Configuration,
    CrawlerConfig,
    DatabaseConfig,
    ExtractionConfig,
    LLMProviderConfig,
    NotificationConfig,
)

DEFAULT_CONFIG_PATHS = [
    "config/config.yaml",
    "config/config.yml",
    "config/config.json",
    "config.yaml",
    "config.yml",
    "config.json",
]

DEFAULT_LLM_PROVIDER = {
    "type": "api",
    "api": {
        "provider": "openai",
        "model": "gpt-4o-mini",
        "api_key": "${OPENAI_API_KEY}",
    },
}

_ENV_REFERENCE = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")

# (env var, section, field, converter)
ENV_OVERRIDES = [
    ("DATABASE_URL", "database", "url", str),
    ("CRAWL_TIMEOUT_MS", "crawler", "request_timeout_ms", int),
    ("CRAWL_MAX_CONCURRENT", "crawler", "max_jobs_per_batch", int),
    ("CRAWL_DEFAULT_FREQUENCY_MINUTES", "crawler", "default_recrawl_minutes", int),
    ("RATE_LIMIT_REQUESTS_PER_HOUR", "crawler", "requests_per_hour", int),
    ("ALERT_COOLDOWN_HOURS", "crawler", "alert_cooldown_hours", float),
    ("CRAWL_MAX_ATTEMPTS", "crawler", "max_attempts", int),
    ("BATCH_TIME_BUDGET_SECONDS", "crawler", "batch_time_budget_seconds", int),
    ("PLAYWRIGHT_EXECUTABLE_PATH", "crawler", "browser_executable_path", str),
]


class ConfigurationManager:
    """Manages loading, validation, and reloading of system configuration."""

    def __init__(
        self,
        config_path: Optional[str] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        """
        Initialize the configuration manager.

        Args:
            config_path: Path to the configuration file. If None, standard
                locations are searched and defaults are used when none exists.
            environ: Environment mapping, defaults to ``os.environ``
        """
        self.environ = environ if environ is not None else os.environ
        self.config_path = config_path or self._find_config_file()
        self._config: Optional[Configuration] = None
        self._last_modified: Optional[float] = None

    def _find_config_file(self) -> Optional[str]:
        """Find the configuration file in standard locations."""
        for path in DEFAULT_CONFIG_PATHS:
            if os.path.exists(path):
                return path
        return None

    def load_config(self) -> Configuration:
        """
        Load configuration from file (if any) and the environment.

        Returns:
            Configuration object with validated settings.

        Raises:
            ValueError: If configuration is invalid or file cannot be read.
            FileNotFoundError: If an explicit configuration file doesn't exist.
        """
        raw_config: Dict[str, Any] = {}

        if self.config_path is not None:
            if not os.path.exists(self.config_path):
                raise FileNotFoundError(
                    f"Configuration file not found: {self.config_path}"
                )
            raw_config = self._read_file(self.config_path)

        try:
            raw_config = self._expand_env_vars(raw_config)
            config = self._parse_config(raw_config)
            self._apply_env_overrides(config)
            config.validate()
        except ValueError as e:
            raise ValueError(f"Error loading configuration: {e}") from e

        self._config = config
        if self.config_path is not None:
            self._last_modified = os.path.getmtime(self.config_path)

        return config

    def _read_file(self, path: str) -> Dict[str, Any]:
        try:
            with open(path, "r", encoding="utf-8") as f:
                if path.endswith(".json"):
                    raw_config = json.load(f)
                else:
                    raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}") from e
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in configuration file: {e}") from e

        if raw_config is None:
            return {}
        if not isinstance(raw_config, dict):
            raise ValueError("Configuration file must contain a mapping")
        return raw_config

    def _expand_env_vars(self, obj: Any) -> Any:
        """Recursively expand ``${VAR}`` references.

        Missing variables become ``__MISSING_ENV_VAR_<NAME>__`` so that
        validation can name them.
        """
        if isinstance(obj, dict):
            return {key: self._expand_env_vars(value) for key, value in obj.items()}
        elif isinstance(obj, list):
            return [self._expand_env_vars(item) for item in obj]
        elif isinstance(obj, str):
            return _ENV_REFERENCE.sub(self._lookup_env, obj)
        else:
            return obj

    def _lookup_env(self, match: "re.Match[str]") -> str:
        name = match.group(1)
        value = self.environ.get(name)
        if value is None:
            return f"__MISSING_ENV_VAR_{name}__"
        return value

    def _parse_config(self, raw_config: Dict[str, Any]) -> Configuration:
        """Parse raw configuration dictionary into Configuration object."""
        llm_data = raw_config.get("llm_provider") or self._expand_env_vars(
            DEFAULT_LLM_PROVIDER
        )
        llm_provider = LLMProviderConfig(
            type=llm_data.get("type", ""),
            local=llm_data.get("local"),
            api=llm_data.get("api"),
        )

        try:
            return Configuration(
                llm_provider=llm_provider,
                database=DatabaseConfig(**(raw_config.get("database") or {})),
                crawler=CrawlerConfig(**(raw_config.get("crawler") or {})),
                extraction=ExtractionConfig(**(raw_config.get("extraction") or {})),
                notifications=NotificationConfig(
                    **(raw_config.get("notifications") or {})
                ),
                log_level=raw_config.get("log_level", "INFO"),
                log_dir=raw_config.get("log_dir", "logs"),
            )
        except TypeError as e:
            # Unknown keys in a section
            raise ValueError(f"Error parsing configuration: {e}") from e

    def _apply_env_overrides(self, config: Configuration) -> None:
        """Overlay well-known environment variables onto the parsed config."""
        for env_name, section, field_name, convert in ENV_OVERRIDES:
            value = self.environ.get(env_name)
            if value is None or value == "":
                continue
            setattr(
                getattr(config, section),
                field_name,
                _convert(env_name, value, convert),
            )

        log_level = self.environ.get("LOG_LEVEL")
        if log_level:
            config.log_level = log_level.upper()

        # An explicit key in the file wins over OPENAI_API_KEY
        api = config.llm_provider.api
        openai_key = self.environ.get("OPENAI_API_KEY")
        if api is not None and openai_key and api.get("provider") == "openai":
            current = api.get("api_key") or ""
            if not current or current.startswith("__MISSING_ENV_VAR_"):
                api["api_key"] = openai_key

    def get_config(self) -> Configuration:
        """
        Get current configuration, loading if necessary.

        Returns:
            Current configuration object.
        """
        if self._config is None:
            return self.load_config()
        return self._config

    def reload_if_changed(self) -> bool:
        """
        Reload configuration if file has been modified.

        Returns:
            True if configuration was reloaded, False otherwise.
        """
        if self.config_path is None or not os.path.exists(self.config_path):
            return False

        current_modified = os.path.getmtime(self.config_path)

        if self._last_modified is None or current_modified > self._last_modified:
            try:
                self.load_config()
                return True
            except (ValueError, FileNotFoundError):
                # If reload fails, keep current config
                return False

        return False

    def get_config_template(self) -> Dict[str, Any]:
        """
        Get a template configuration dictionary.

        Returns:
            Dictionary with example configuration structure.
        """
        return {
            "llm_provider": {
                "type": "api",
                "api": {
                    "provider": "openai",
                    "api_key": "${OPENAI_API_KEY}",
                    "model": "gpt-4o-mini",
                },
                "local": {"model": "llama3"},
            },
            "database": {"url": "${DATABASE_URL}"},
            "crawler": {
                "request_timeout_ms": 30000,
                "max_jobs_per_batch": 5,
                "default_recrawl_minutes": 60,
                "requests_per_hour": 10,
                "alert_cooldown_hours": 1,
                "max_attempts": 3,
            },
            "extraction": {"prompts_directory": "prompts"},
            "notifications": {
                "email_enabled": True,
                "to_email": "${ALERT_EMAIL}",
                "alert_types": ["price_change", "new_promotion", "menu_change"],
                "quiet_hours_start": "22:00",
                "quiet_hours_end": "07:00",
                "timezone": "UTC",
                "push_enabled": False,
            },
            "log_level": "INFO",
        }


def _convert(env_name: str, value: str, convert: Callable[[str], Any]) -> Any:
    try:
        return convert(value)
    except ValueError as e:
        raise ValueError(f"Invalid value for {env_name}: {value!r}") from e
