import base64
from unittest.mock import AsyncMock, MagicMock

import pytest
from playwright.async_api import Error as PlaywrightError, TimeoutError as PlaywrightTimeout

from translit_probe.config import Settings
from translit_probe.core.browser import (
    BrowserOptions,
    BrowserSession,
    BrowserType,
    capture_screenshot,
)

URL = "https://translit.test/"


def make_page():
    page = AsyncMock()
    page.title.return_value = "Translator"
    return page


def test_options_from_settings():
    config = Settings(
        _env_file=None,
        playwright_browser="webkit",
        playwright_headless=False,
        viewport_width=800,
        navigation_retries=5,
    )

    options = BrowserOptions.from_settings(config)

    assert options.browser_type == BrowserType.WEBKIT
    assert options.headless is False
    assert options.viewport_width == 800
    assert options.navigation_retries == 5


def test_browser_requires_context_manager():
    with pytest.raises(RuntimeError, match="not initialized"):
        BrowserSession(BrowserOptions()).browser


async def test_open_waits_for_ready_page():
    page = make_page()

    await BrowserSession(BrowserOptions()).open(page, URL)

    page.goto.assert_awaited_once_with(URL, wait_until="domcontentloaded")
    page.wait_for_load_state.assert_awaited_once()
    assert page.wait_for_selector.await_args.args == ("textarea",)


async def test_open_retries_network_errors():
    page = make_page()
    page.goto.side_effect = [PlaywrightError("net::ERR_CONNECTION_RESET"), None]

    await BrowserSession(BrowserOptions(navigation_retries=2)).open(page, URL)

    assert page.goto.await_count == 2


async def test_open_gives_up_after_retries():
    page = make_page()
    page.goto.side_effect = PlaywrightError("net::ERR_NAME_NOT_RESOLVED")

    with pytest.raises(PlaywrightError):
        await BrowserSession(BrowserOptions(navigation_retries=1)).open(page, URL)

    assert page.goto.await_count == 1


async def test_open_tolerates_busy_network_and_missing_textarea():
    page = make_page()
    page.wait_for_load_state.side_effect = PlaywrightTimeout("networkidle")
    page.wait_for_selector.side_effect = PlaywrightTimeout("textarea")

    await BrowserSession(BrowserOptions()).open(page, URL)

    page.title.assert_awaited_once()


async def test_scenario_page_closes_context_on_failure():
    page = make_page()
    context = MagicMock()
    context.new_page = AsyncMock(return_value=page)
    context.close = AsyncMock()

    session = BrowserSession(BrowserOptions(viewport_width=800, viewport_height=600))
    session._browser = MagicMock()
    session._browser.new_context = AsyncMock(return_value=context)
    session.open = AsyncMock()

    with pytest.raises(RuntimeError):
        async with session.scenario_page(URL) as opened:
            assert opened is page
            raise RuntimeError("scenario crashed")

    context.close.assert_awaited_once()
    session.open.assert_awaited_once_with(page, URL)
    kwargs = session._browser.new_context.await_args.kwargs
    assert kwargs["viewport"] == {"width": 800, "height": 600}
    context.set_default_timeout.assert_called_once_with(30000)


async def test_capture_screenshot():
    page = make_page()
    page.screenshot.return_value = b"png-bytes"

    assert base64.b64decode(await capture_screenshot(page)) == b"png-bytes"

    page.screenshot.side_effect = PlaywrightError("Target closed")
    assert await capture_screenshot(page) is None
