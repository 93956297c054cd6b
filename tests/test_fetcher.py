"""
Unit tests for the browser page fetcher.
"""

from unittest.mock import AsyncMock, Mock

import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from competitor_monitor.components.fetcher import FetchOptions, PageFetcher
from competitor_monitor.errors import (
    BrowserUnavailableError,
    FetchError,
    FetchHTTPError,
    FetchNavigationError,
    FetchTimeoutError,
)
from competitor_monitor.models.config import CrawlerConfig

URL = "https://burgerbarn.example.com/menu"
HTML = "<html><body>Classic Burger $10.00</body></html>"


@pytest.fixture
def page():
    page = AsyncMock()
    page.goto.return_value = Mock(status=200)
    page.content.return_value = HTML
    return page


@pytest.fixture
def browser_manager(page):
    browser = Mock()
    browser.new_page = AsyncMock(return_value=page)
    manager = Mock()
    manager.acquire = AsyncMock(return_value=browser)
    manager.release = AsyncMock()
    return manager


@pytest.fixture
def fetcher(browser_manager):
    return PageFetcher(browser_manager=browser_manager, settle_delay_ms=500)


class TestPageFetcher:
    """Test cases for PageFetcher."""

    @pytest.mark.asyncio
    async def test_fetch_returns_html(self, fetcher, page):
        html = await fetcher.fetch(URL, FetchOptions(timeout_ms=5000))

        assert html == HTML
        page.goto.assert_awaited_once_with(URL, timeout=5000, wait_until="networkidle")
        page.wait_for_timeout.assert_awaited_once_with(500)
        page.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_without_idle_wait(self, fetcher, page):
        await fetcher.fetch(URL, FetchOptions(wait_for_idle=False))

        assert page.goto.await_args.kwargs["wait_until"] == "domcontentloaded"
        page.wait_for_timeout.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_blocks_heavy_resources(self, fetcher, page):
        await fetcher.fetch(URL)

        handler = page.route.await_args.args[1]
        for resource_type, blocked in [
            ("image", True),
            ("stylesheet", True),
            ("font", True),
            ("document", False),
            ("script", False),
        ]:
            route = Mock()
            route.request.resource_type = resource_type
            route.abort = AsyncMock()
            route.continue_ = AsyncMock()

            await handler(route)

            assert route.abort.await_count == (1 if blocked else 0)
            assert route.continue_.await_count == (0 if blocked else 1)

    @pytest.mark.asyncio
    async def test_images_allowed_when_requested(self, fetcher, page):
        await fetcher.fetch(URL, FetchOptions(include_images=True))

        handler = page.route.await_args.args[1]
        route = Mock()
        route.request.resource_type = "image"
        route.abort = AsyncMock()
        route.continue_ = AsyncMock()
        await handler(route)

        route.continue_.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_http_error_status(self, fetcher, page):
        page.goto.return_value = Mock(status=404)

        with pytest.raises(FetchHTTPError) as exc_info:
            await fetcher.fetch(URL)

        assert exc_info.value.status_code == 404
        page.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_timeout(self, fetcher, page):
        page.goto.side_effect = PlaywrightTimeoutError("Timeout 30000ms exceeded")

        with pytest.raises(FetchTimeoutError):
            await fetcher.fetch(URL)

        page.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_navigation_error(self, fetcher, page):
        page.goto.side_effect = PlaywrightError("net::ERR_NAME_NOT_RESOLVED")

        with pytest.raises(FetchNavigationError):
            await fetcher.fetch(URL)

    @pytest.mark.asyncio
    async def test_no_response(self, fetcher, page):
        page.goto.return_value = None

        with pytest.raises(FetchNavigationError):
            await fetcher.fetch(URL)

    @pytest.mark.asyncio
    async def test_page_close_error_is_ignored(self, fetcher, page):
        page.close.side_effect = PlaywrightError("Target closed")

        assert await fetcher.fetch(URL) == HTML

    @pytest.mark.asyncio
    async def test_browser_unavailable(self, fetcher, browser_manager):
        browser_manager.acquire.side_effect = RuntimeError("Executable doesn't exist")

        with pytest.raises(BrowserUnavailableError) as exc_info:
            await fetcher.fetch(URL)

        assert exc_info.value.url == URL

    @pytest.mark.asyncio
    async def test_browser_closed_before_page_opens(self, fetcher, browser_manager, page):
        browser = browser_manager.acquire.return_value
        browser.new_page.side_effect = PlaywrightError(
            "Target page, context or browser has been closed"
        )

        with pytest.raises(BrowserUnavailableError, match="Could not open page") as exc_info:
            await fetcher.fetch(URL)

        assert isinstance(exc_info.value, FetchError)
        assert exc_info.value.url == URL
        page.goto.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_close_releases_browser(self, fetcher, browser_manager):
        await fetcher.close()

        browser_manager.release.assert_awaited_once()

    def test_from_config(self):
        config = CrawlerConfig(request_timeout_ms=45000, include_images=True)

        fetcher = PageFetcher.from_config(config)

        assert fetcher.default_options.timeout_ms == 45000
        assert fetcher.default_options.include_images is True
        assert fetcher.user_agent == config.user_agent
