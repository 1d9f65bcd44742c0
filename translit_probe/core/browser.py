"""
Playwright Browser Session

Owns the browser lifecycle and hands out one fresh page per scenario:
- Context management for browser lifecycle
- Isolated browser context per scenario (no shared page state)
- Navigation to the target page with retry on network-level errors
- Failure screenshots
"""

import base64
from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import Enum
from typing import AsyncGenerator

import structlog
from playwright.async_api import (
    async_playwright,
    Browser,
    Error as PlaywrightError,
    Page,
    Playwright,
    TimeoutError as PlaywrightTimeout,
)
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from translit_probe.config import Settings, settings as default_settings

logger = structlog.get_logger()


class BrowserType(str, Enum):
    """Supported browser types."""

    CHROMIUM = "chromium"
    FIREFOX = "firefox"
    WEBKIT = "webkit"


@dataclass
class BrowserOptions:
    """Browser configuration options."""

    browser_type: BrowserType = BrowserType.CHROMIUM
    headless: bool = True
    slow_mo: int = 0
    timeout: int = 30000
    viewport_width: int = 1280
    viewport_height: int = 720
    user_agent: str | None = None
    locale: str = "en-US"
    navigation_retries: int = 3
    ready_timeout: int = 10000

    @classmethod
    def from_settings(cls, config: Settings | None = None) -> "BrowserOptions":
        config = config or default_settings
        return cls(
            browser_type=BrowserType(config.playwright_browser),
            headless=config.playwright_headless,
            slow_mo=config.playwright_slow_mo,
            timeout=config.playwright_timeout,
            viewport_width=config.viewport_width,
            viewport_height=config.viewport_height,
            navigation_retries=config.navigation_retries,
        )


class BrowserSession:
    """
    One launched browser, many isolated scenario pages.

    Usage:
        async with BrowserSession() as session:
            async with session.scenario_page("https://example.com") as page:
                ...
    """

    def __init__(self, options: BrowserOptions | None = None):
        self.options = options or BrowserOptions.from_settings()
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None

    @property
    def browser(self) -> Browser:
        """Get the browser, raise if not initialized."""
        if self._browser is None:
            raise RuntimeError("Browser not initialized. Use 'async with' context.")
        return self._browser

    async def __aenter__(self) -> "BrowserSession":
        """Initialize browser on context enter."""
        await self._initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Clean up browser on context exit."""
        await self._cleanup()

    async def _initialize(self) -> None:
        """Start Playwright and launch the browser."""
        log = logger.bind(browser=self.options.browser_type.value)
        log.info("initializing_browser")

        self._playwright = await async_playwright().start()

        browser_launcher = getattr(self._playwright, self.options.browser_type.value)
        self._browser = await browser_launcher.launch(
            headless=self.options.headless,
            slow_mo=self.options.slow_mo,
        )

        log.info("browser_initialized")

    async def _cleanup(self) -> None:
        """Clean up browser resources."""
        logger.info("cleaning_up_browser")

        if self._browser:
            await self._browser.close()
        if self._playwright:
            await self._playwright.stop()

        self._browser = None
        self._playwright = None

    @asynccontextmanager
    async def scenario_page(self, url: str) -> AsyncGenerator[Page, None]:
        """
        Open a fresh context and page on ``url``; closed when the block exits.

        Pages never outlive their scenario, so the target's hidden input and
        output state cannot leak between scenarios.
        """
        context_options = {
            "viewport": {
                "width": self.options.viewport_width,
                "height": self.options.viewport_height,
            },
            "locale": self.options.locale,
        }
        if self.options.user_agent:
            context_options["user_agent"] = self.options.user_agent

        context = await self.browser.new_context(**context_options)
        context.set_default_timeout(self.options.timeout)
        try:
            page = await context.new_page()
            await self.open(page, url)
            yield page
        finally:
            await context.close()

    async def open(self, page: Page, url: str) -> None:
        """Navigate and wait until the page shows an editable text control."""
        log = logger.bind(url=url)

        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.options.navigation_retries),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            retry=retry_if_exception_type(PlaywrightError),
            reraise=True,
        ):
            with attempt:
                await page.goto(url, wait_until="domcontentloaded")

        try:
            await page.wait_for_load_state("networkidle", timeout=self.options.ready_timeout)
        except PlaywrightTimeout:
            log.debug("network_not_idle")

        try:
            await page.wait_for_selector(
                "textarea", state="visible", timeout=self.options.ready_timeout
            )
        except PlaywrightTimeout:
            log.debug("no_visible_textarea")

        log.info("navigation_complete", title=await page.title())


async def capture_screenshot(page: Page) -> str | None:
    """Take a screenshot and return base64 encoded string."""
    try:
        screenshot_bytes = await page.screenshot()
        return base64.b64encode(screenshot_bytes).decode("utf-8")
    except PlaywrightError as e:
        logger.debug("screenshot_failed", error=str(e))
        return None


@asynccontextmanager
async def create_browser(
    options: BrowserOptions | None = None,
) -> AsyncGenerator[BrowserSession, None]:
    """
    Convenience context manager for creating a browser session.

    Usage:
        async with create_browser() as session:
            ...
    """
    session = BrowserSession(options)
    try:
        await session._initialize()
        yield session
    finally:
        await session._cleanup()
