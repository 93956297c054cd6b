"""
Per-domain rate limiting for outbound crawls.

Each domain gets a fixed one-hour window stored in the database. Window
rows are locked while being updated so concurrent workers share one budget.
Storage failures never block crawling: the limiter fails open.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional
from urllib.parse import urlparse

from sqlalchemy.orm import sessionmaker

from ..db.base import utcnow
from ..db.repositories import RateLimitRepository
from .logging import get_logger

logger = get_logger("rate_limiter")

WINDOW = timedelta(hours=1)


@dataclass
class RateLimitStatus:
    """Current budget for one domain."""

    domain: str
    limit: int
    used: int
    remaining: int
    window_start: Optional[datetime]


def get_domain(url: str) -> str:
    """Lower-cased hostname of a URL; ``www.example.com`` and ``example.com`` are distinct."""
    parsed = urlparse(url if "://" in url else f"http://{url}")
    return (parsed.hostname or "").lower()


class DomainRateLimiter:
    """Fixed hourly request window per domain."""

    def __init__(
        self,
        session_factory: sessionmaker,
        requests_per_hour: int = 10,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize rate limiter.

        Args:
            session_factory: SQLAlchemy session factory
            requests_per_hour: Request ceiling per domain per window
            clock: Source of the current UTC time
        """
        self.session_factory = session_factory
        self.requests_per_hour = requests_per_hour
        self.clock = clock

    def try_acquire(self, domain: str) -> bool:
        """
        Count one request against a domain's window.

        Returns:
            True if the request may proceed, False if the window is exhausted
        """
        now = self.clock()

        try:
            with self.session_factory.begin() as session:
                repository = RateLimitRepository(session)

                if repository.open_window(domain=domain, now=now):
                    logger.debug("Opened rate limit window", extra={"domain": domain})
                    return True

                window = repository.get_for_update(domain)
                if window is None:
                    # Deleted between the insert attempt and the lock
                    return True

                if now - window.window_start > WINDOW:
                    window.request_count = 1
                    window.window_start = now
                    return True

                if window.request_count >= self.requests_per_hour:
                    logger.info(
                        "Rate limit reached",
                        extra={
                            "domain": domain,
                            "request_count": window.request_count,
                            "limit": self.requests_per_hour,
                        },
                    )
                    return False

                window.request_count += 1
                return True

        except Exception as e:
            logger.error(
                "Rate limiter storage error, allowing request",
                extra={"domain": domain, "error": str(e)},
            )
            return True

    def get_status(self, domain: str) -> RateLimitStatus:
        """Get the remaining budget for a domain."""
        now = self.clock()

        with self.session_factory() as session:
            window = RateLimitRepository(session).get(domain)

        if window is None or now - window.window_start > WINDOW:
            return RateLimitStatus(
                domain=domain,
                limit=self.requests_per_hour,
                used=0,
                remaining=self.requests_per_hour,
                window_start=None,
            )

        return RateLimitStatus(
            domain=domain,
            limit=self.requests_per_hour,
            used=window.request_count,
            remaining=max(0, self.requests_per_hour - window.request_count),
            window_start=window.window_start,
        )

    def reset(self, domain: str) -> bool:
        """Drop a domain's window. Returns True if one existed."""
        with self.session_factory.begin() as session:
            deleted = RateLimitRepository(session).delete(domain)

        if deleted:
            logger.info("Rate limit window reset", extra={"domain": domain})
        return bool(deleted)
