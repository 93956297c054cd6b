"""
Browser-driven page fetching.

One headless Chromium process is shared by every fetch made through a
``BrowserManager``; each fetch gets its own page, which is always closed
before returning.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from playwright.async_api import Browser, Playwright, Route, async_playwright
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ..errors import (
    BrowserUnavailableError,
    FetchHTTPError,
    FetchNavigationError,
    FetchTimeoutError,
)
from ..models.config import DEFAULT_USER_AGENT, CrawlerConfig
from ..utils.error_handling import (
    ErrorCategory,
    ErrorSeverity,
    RetryConfig,
    with_error_handling,
)

logger = logging.getLogger(__name__)

DEFAULT_VIEWPORT = {"width": 1280, "height": 800}
ALWAYS_BLOCKED_RESOURCES = frozenset({"stylesheet", "font", "media"})


@dataclass
class FetchOptions:
    """Per-call fetch settings."""

    timeout_ms: int = 30000
    wait_for_idle: bool = True
    include_images: bool = False


class BrowserManager:
    """Owns the shared browser: launched lazily, relaunched when disconnected."""

    def __init__(
        self,
        executable_path: Optional[str] = None,
        headless: bool = True,
    ):
        self.executable_path = executable_path
        self.headless = headless
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._lock = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        return self._browser is not None and self._browser.is_connected()

    @with_error_handling(
        component="browser_manager",
        category=ErrorCategory.FETCH,
        severity=ErrorSeverity.HIGH,
        retry_config=RetryConfig(max_attempts=2, base_delay=1.0, jitter=False),
    )
    async def acquire(self) -> Browser:
        """Return a connected browser, launching one if needed."""
        async with self._lock:
            if self._browser is not None and self._browser.is_connected():
                return self._browser

            if self._browser is not None:
                logger.warning("Browser disconnected, relaunching")
                self._browser = None

            if self._playwright is None:
                self._playwright = await async_playwright().start()

            launch_args = {
                "headless": self.headless,
                "args": ["--no-sandbox", "--disable-dev-shm-usage"],
            }
            if self.executable_path:
                launch_args["executable_path"] = self.executable_path

            self._browser = await self._playwright.chromium.launch(**launch_args)
            logger.info("Launched headless browser")
            return self._browser

    async def release(self) -> None:
        """Close the browser and stop Playwright."""
        async with self._lock:
            if self._browser is not None:
                try:
                    await self._browser.close()
                except PlaywrightError as e:
                    logger.warning(f"Error closing browser: {e}")
                self._browser = None

            if self._playwright is not None:
                try:
                    await self._playwright.stop()
                except PlaywrightError as e:
                    logger.warning(f"Error stopping Playwright: {e}")
                self._playwright = None

        logger.info("Browser released")


class PageFetcher:
    """Renders a URL in an isolated page and returns the final markup."""

    def __init__(
        self,
        browser_manager: Optional[BrowserManager] = None,
        user_agent: str = DEFAULT_USER_AGENT,
        settle_delay_ms: int = 1000,
        default_options: Optional[FetchOptions] = None,
    ):
        self.browser_manager = browser_manager or BrowserManager()
        self.user_agent = user_agent
        self.settle_delay_ms = settle_delay_ms
        self.default_options = default_options or FetchOptions()

    @classmethod
    def from_config(cls, config: CrawlerConfig) -> "PageFetcher":
        return cls(
            browser_manager=BrowserManager(executable_path=config.browser_executable_path),
            user_agent=config.user_agent,
            settle_delay_ms=config.settle_delay_ms,
            default_options=FetchOptions(
                timeout_ms=config.request_timeout_ms,
                wait_for_idle=True,
                include_images=config.include_images,
            ),
        )

    async def fetch(self, url: str, options: Optional[FetchOptions] = None) -> str:
        """
        Fetch a page and return its HTML.

        Raises:
            FetchTimeoutError: Navigation exceeded the timeout
            FetchNavigationError: Navigation failed without a response
            FetchHTTPError: The response status was not 2xx
            BrowserUnavailableError: The browser could not be launched
        """
        options = options or self.default_options

        try:
            browser = await self.browser_manager.acquire()
        except Exception as e:
            raise BrowserUnavailableError(url, f"Browser unavailable: {e}") from e

        try:
            page = await browser.new_page(
                user_agent=self.user_agent,
                viewport=DEFAULT_VIEWPORT,
            )
        except PlaywrightError as e:
            raise BrowserUnavailableError(url, f"Could not open page: {e}") from e

        try:
            blocked = set(ALWAYS_BLOCKED_RESOURCES)
            if not options.include_images:
                blocked.add("image")

            async def block_resources(route: Route) -> None:
                if route.request.resource_type in blocked:
                    await route.abort()
                else:
                    await route.continue_()

            await page.route("**/*", block_resources)

            wait_until = "networkidle" if options.wait_for_idle else "domcontentloaded"
            try:
                response = await page.goto(
                    url, timeout=options.timeout_ms, wait_until=wait_until
                )
            except PlaywrightTimeoutError as e:
                raise FetchTimeoutError(
                    url, f"Navigation timed out after {options.timeout_ms}ms"
                ) from e
            except PlaywrightError as e:
                raise FetchNavigationError(url, f"Navigation failed: {e}") from e

            if response is None:
                raise FetchNavigationError(url, "Navigation returned no response")

            if not 200 <= response.status < 300:
                raise FetchHTTPError(url, response.status)

            try:
                if options.wait_for_idle and self.settle_delay_ms:
                    # Client-rendered content may still be painting after network idle
                    await page.wait_for_timeout(self.settle_delay_ms)

                html = await page.content()
            except PlaywrightError as e:
                raise FetchNavigationError(url, f"Failed to read page content: {e}") from e

            logger.debug(f"Fetched {url} ({len(html)} chars)")
            return html

        finally:
            try:
                await page.close()
            except PlaywrightError as e:
                logger.warning(f"Error closing page for {url}: {e}")

    async def close(self) -> None:
        await self.browser_manager.release()
