"""
Error handling utilities for the Competitor Monitor system.

This module provides error tracking, retry and circuit breaking for calls
to external services, and graceful degradation bookkeeping.
"""

import asyncio
import functools
import random
import traceback
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Type

from ..errors import CircuitOpenError
from .logging import get_logger


class ErrorSeverity(Enum):
    """Error severity levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Error categories for classification."""

    NETWORK = "network"
    CONFIGURATION = "configuration"
    FETCH = "fetch"
    EXTRACTION = "extraction"
    LLM = "llm"
    STORAGE = "storage"
    NOTIFICATION = "notification"
    SYSTEM = "system"


@dataclass
class ErrorInfo:
    """Information about an error occurrence."""

    timestamp: datetime
    component: str
    category: ErrorCategory
    severity: ErrorSeverity
    message: str
    exception_type: str
    traceback: str
    context: Dict[str, Any]


class ErrorTracker:
    """
    Tracks errors and provides statistics for monitoring.
    """

    def __init__(self, max_errors: int = 1000):
        """
        Initialize error tracker.

        Args:
            max_errors: Maximum number of errors to keep in memory
        """
        self.max_errors = max_errors
        self.errors: List[ErrorInfo] = []
        self.error_counts: Dict[str, int] = {}
        self.component_errors: Dict[str, List[ErrorInfo]] = {}
        self.logger = get_logger("error_tracker")

    def record_error(
        self,
        component: str,
        category: ErrorCategory,
        severity: ErrorSeverity,
        message: str,
        exception: Optional[Exception] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> ErrorInfo:
        """
        Record an error occurrence.

        Args:
            component: Component where error occurred
            category: Error category
            severity: Error severity
            message: Error message
            exception: Exception object if available
            context: Additional context information

        Returns:
            ErrorInfo object
        """
        error_info = ErrorInfo(
            timestamp=datetime.now(),
            component=component,
            category=category,
            severity=severity,
            message=message,
            exception_type=type(exception).__name__ if exception else "Unknown",
            traceback=(
                "".join(
                    traceback.format_exception(
                        type(exception), exception, exception.__traceback__
                    )
                )
                if exception
                else ""
            ),
            context=context or {},
        )

        self.errors.append(error_info)
        if len(self.errors) > self.max_errors:
            self.errors.pop(0)

        error_key = f"{component}.{category.value}.{severity.value}"
        self.error_counts[error_key] = self.error_counts.get(error_key, 0) + 1

        if component not in self.component_errors:
            self.component_errors[component] = []
        self.component_errors[component].append(error_info)

        # Keep only recent errors per component
        if len(self.component_errors[component]) > 100:
            self.component_errors[component].pop(0)

        self.logger.error(
            f"Error recorded: {message}",
            extra={
                "error_component": component,
                "category": category.value,
                "severity": severity.value,
                "exception_type": error_info.exception_type,
                "context": context,
            },
        )

        return error_info

    def get_error_stats(self) -> Dict[str, Any]:
        """Get error statistics."""
        now = datetime.now()
        last_hour = now - timedelta(hours=1)
        last_day = now - timedelta(days=1)

        return {
            "total_errors": len(self.errors),
            "errors_last_hour": len([e for e in self.errors if e.timestamp >= last_hour]),
            "errors_last_day": len([e for e in self.errors if e.timestamp >= last_day]),
            "error_counts": self.error_counts.copy(),
            "component_error_counts": {
                component: len(errors)
                for component, errors in self.component_errors.items()
            },
            "severity_breakdown": {
                severity.value: len([e for e in self.errors if e.severity == severity])
                for severity in ErrorSeverity
            },
            "category_breakdown": {
                category.value: len([e for e in self.errors if e.category == category])
                for category in ErrorCategory
            },
        }

    def clear_old_errors(self, older_than_days: int = 7):
        """Clear errors older than specified days."""
        cutoff = datetime.now() - timedelta(days=older_than_days)

        self.errors = [e for e in self.errors if e.timestamp >= cutoff]

        for component in self.component_errors:
            self.component_errors[component] = [
                e for e in self.component_errors[component] if e.timestamp >= cutoff
            ]


class RetryConfig:
    """Configuration for retry behavior."""

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 60.0,
        exponential_backoff: bool = True,
        jitter: bool = True,
    ):
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_backoff = exponential_backoff
        self.jitter = jitter

    def delay_for(self, attempt: int) -> float:
        """Delay in seconds before retrying after the given zero-based attempt."""
        delay = self.base_delay
        if self.exponential_backoff:
            delay = min(self.base_delay * (2**attempt), self.max_delay)

        if self.jitter:
            delay *= 0.5 + random.random() * 0.5

        return delay


class CircuitBreakerState(Enum):
    """Circuit breaker states."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """
    Circuit breaker for external service calls.

    Prevents cascading failures by temporarily disabling calls
    to failing services.
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: int = 60,
        expected_exception: Type[Exception] = Exception,
        name: str = "circuit_breaker",
    ):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.expected_exception = expected_exception
        self.name = name

        self.failure_count = 0
        self.last_failure_time: Optional[datetime] = None
        self.state = CircuitBreakerState.CLOSED
        self.logger = get_logger("circuit_breaker", {"breaker": name})

    def __call__(self, func: Callable) -> Callable:
        """Decorator to apply circuit breaker to a coroutine function."""

        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            if self.state == CircuitBreakerState.OPEN:
                if self._should_attempt_reset():
                    self.state = CircuitBreakerState.HALF_OPEN
                    self.logger.info("Circuit breaker moving to HALF_OPEN state")
                else:
                    raise CircuitOpenError(f"Circuit breaker '{self.name}' is OPEN")

            try:
                result = await func(*args, **kwargs)
            except self.expected_exception:
                self._on_failure()
                raise

            self._on_success()
            return result

        return wrapper

    def _should_attempt_reset(self) -> bool:
        """Check if circuit breaker should attempt reset."""
        if self.last_failure_time is None:
            return True

        elapsed = datetime.now() - self.last_failure_time
        return elapsed.total_seconds() >= self.recovery_timeout

    def _on_success(self):
        """Handle successful call."""
        self.failure_count = 0
        if self.state == CircuitBreakerState.HALF_OPEN:
            self.state = CircuitBreakerState.CLOSED
            self.logger.info("Circuit breaker reset to CLOSED state")

    def _on_failure(self):
        """Handle failed call."""
        self.failure_count += 1
        self.last_failure_time = datetime.now()

        if (
            self.state == CircuitBreakerState.HALF_OPEN
            or self.failure_count >= self.failure_threshold
        ):
            self.state = CircuitBreakerState.OPEN
            self.logger.warning(
                f"Circuit breaker opened after {self.failure_count} failures"
            )


# Global error tracker instance
_error_tracker: Optional[ErrorTracker] = None


def get_error_tracker() -> ErrorTracker:
    """Get global error tracker instance."""
    global _error_tracker
    if _error_tracker is None:
        _error_tracker = ErrorTracker()
    return _error_tracker


def with_error_handling(
    component: str,
    category: ErrorCategory,
    severity: ErrorSeverity = ErrorSeverity.MEDIUM,
    retry_config: Optional[RetryConfig] = None,
    fallback_value: Any = None,
    suppress_exceptions: bool = False,
):
    """
    Decorator for error tracking, retry and optional suppression.

    Args:
        component: Component name
        category: Error category
        severity: Error severity
        retry_config: Retry configuration (coroutine functions only)
        fallback_value: Value to return on failure
        suppress_exceptions: Whether to suppress exceptions
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            error_tracker = get_error_tracker()
            logger = get_logger(component)

            attempts = retry_config.max_attempts if retry_config else 1

            for attempt in range(attempts):
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    error_tracker.record_error(
                        component=component,
                        category=category,
                        severity=severity,
                        message=f"Error in {func.__name__}: {str(e)}",
                        exception=e,
                        context={
                            "function": func.__name__,
                            "attempt": attempt + 1,
                            "max_attempts": attempts,
                        },
                    )

                    if attempt == attempts - 1:
                        if suppress_exceptions:
                            logger.warning(
                                f"Suppressing exception in {func.__name__}: {str(e)}"
                            )
                            return fallback_value
                        raise

                    delay = retry_config.delay_for(attempt)
                    logger.info(
                        f"Retrying {func.__name__} in {delay:.2f} seconds (attempt {attempt + 1}/{attempts})"
                    )
                    await asyncio.sleep(delay)
                    continue

                if attempt > 0:
                    logger.info(f"Function succeeded on attempt {attempt + 1}")
                return result

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs):
            error_tracker = get_error_tracker()
            logger = get_logger(component)

            try:
                return func(*args, **kwargs)
            except Exception as e:
                error_tracker.record_error(
                    component=component,
                    category=category,
                    severity=severity,
                    message=f"Error in {func.__name__}: {str(e)}",
                    exception=e,
                    context={"function": func.__name__},
                )

                if suppress_exceptions:
                    logger.warning(
                        f"Suppressing exception in {func.__name__}: {str(e)}"
                    )
                    return fallback_value
                raise

        if asyncio.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator


class GracefulDegradation:
    """
    Manages graceful degradation of system functionality.

    Allows components to continue operating with reduced functionality
    when dependencies fail.
    """

    def __init__(self):
        self.degraded_components: Dict[str, Dict[str, Any]] = {}
        self.logger = get_logger("graceful_degradation")

    def degrade_component(
        self,
        component: str,
        reason: str,
        fallback_behavior: str,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
    ):
        """
        Mark a component as degraded.

        Args:
            component: Component name
            reason: Reason for degradation
            fallback_behavior: Description of fallback behavior
            severity: Degradation severity
        """
        already_degraded = component in self.degraded_components
        self.degraded_components[component] = {
            "reason": reason,
            "fallback_behavior": fallback_behavior,
            "severity": severity.value,
            "timestamp": datetime.now().isoformat(),
        }

        if not already_degraded:
            self.logger.warning(
                f"Component degraded: {component}",
                extra={
                    "degraded_component": component,
                    "reason": reason,
                    "fallback_behavior": fallback_behavior,
                    "severity": severity.value,
                },
            )

    def restore_component(self, component: str):
        """Restore a component from degraded state."""
        if component in self.degraded_components:
            del self.degraded_components[component]
            self.logger.info(f"Component restored: {component}")

    def is_degraded(self, component: str) -> bool:
        """Check if a component is in degraded state."""
        return component in self.degraded_components

    def get_all_degraded(self) -> Dict[str, Dict[str, Any]]:
        """Get all degraded components."""
        return self.degraded_components.copy()


# Global graceful degradation manager
_degradation_manager: Optional[GracefulDegradation] = None


def get_degradation_manager() -> GracefulDegradation:
    """Get global graceful degradation manager."""
    global _degradation_manager
    if _degradation_manager is None:
        _degradation_manager = GracefulDegradation()
    return _degradation_manager
