"""
Browser Adapter
===============
Thin async Playwright wrapper exposing exactly what the crawler needs:

- ``add_cookie(name, value, url)``
- ``navigate(url, timeout_ms) -> page``   (raises ``NavigationError``)
- ``wait_for_network_idle(page, timeout_ms)``
- ``evaluate(page, script)``

The crawler only talks to this seam, so tests swap in an in-memory fake
and never start a browser.  Returned pages are Playwright ``Page``
objects; the crawler uses ``page.url``, ``title()``, ``content()`` and
``close()`` on them.

Architecture (same shape as the rest of the engine):
- Single browser instance, single BrowserContext (shared cookies)
- One new page per task, closed by the caller
- Heavy resources (images, media, fonts) blocked at the route level
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, Protocol

from playwright.async_api import Browser, BrowserContext, Page, async_playwright
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeout

from .errors import NavigationError

logger = logging.getLogger(__name__)

# Resource types to block for speed
_BLOCKED_RESOURCE_TYPES = frozenset([
    "image", "media", "font",
])

_HTML_CONTENT_TYPES = ("text/html", "application/xhtml")

# Absolute targets of every anchor, resolved by the browser (honours <base>)
LINK_SCRIPT = """
() => Array.from(document.querySelectorAll('a[href]'), a => a.href)
"""


class PageHandle(Protocol):
    url: str

    async def title(self) -> str: ...

    async def content(self) -> str: ...

    async def close(self) -> None: ...


class BrowserSession(Protocol):
    """Collaborator interface the crawler drives."""

    async def start(self) -> None: ...

    async def close(self) -> None: ...

    async def add_cookie(self, name: str, value: str, url: str) -> None: ...

    async def navigate(self, url: str, timeout_ms: int) -> PageHandle: ...

    async def wait_for_network_idle(self, page: PageHandle, timeout_ms: int) -> None: ...

    async def evaluate(self, page: PageHandle, script: str) -> Any: ...


@dataclass
class BrowserOptions:
    headless: bool = True
    viewport_width: int = 1920
    viewport_height: int = 1080
    user_agent: str = (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
        "AppleWebKit/537.36 (KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36"
    )
    block_resources: bool = True


class PlaywrightBrowser:
    """``BrowserSession`` backed by async Playwright Chromium."""

    def __init__(self, options: Optional[BrowserOptions] = None):
        self.options = options or BrowserOptions()
        self._playwright = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None

    async def start(self) -> None:
        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(
            headless=self.options.headless,
            args=[
                '--disable-gpu',
                '--no-sandbox',
                '--disable-dev-shm-usage',
                '--disable-extensions',
                '--no-first-run',
            ],
        )
        await self._new_context()
        logger.info(
            f"Playwright browser initialized "
            f"(headless={self.options.headless}, "
            f"blocking={'images,fonts,media' if self.options.block_resources else 'none'})"
        )

    async def _new_context(self) -> None:
        self._context = await self._browser.new_context(
            user_agent=self.options.user_agent,
            viewport={
                'width': self.options.viewport_width,
                'height': self.options.viewport_height,
            },
            locale='en-US',
        )
        if self.options.block_resources:
            await self._context.route("**/*", self._route_handler)

    async def _route_handler(self, route) -> None:
        if route.request.resource_type in _BLOCKED_RESOURCE_TYPES:
            await route.abort()
            return
        await route.continue_()

    async def close(self) -> None:
        """Close context, browser and Playwright; errors during shutdown are logged only."""
        for name, closer in (
            ("context", self._context.close if self._context else None),
            ("browser", self._browser.close if self._browser else None),
            ("playwright", self._playwright.stop if self._playwright else None),
        ):
            if closer is None:
                continue
            try:
                await closer()
            except PlaywrightError as exc:
                logger.debug(f"Error closing {name}: {exc}")
        self._context = None
        self._browser = None
        self._playwright = None

    async def add_cookie(self, name: str, value: str, url: str) -> None:
        if self._context is None:
            raise RuntimeError("Browser not started")
        await self._context.add_cookies([{"name": name, "value": value, "url": url}])

    async def navigate(self, url: str, timeout_ms: int) -> Page:
        """
        Open a new page and load *url*.

        Raises:
            NavigationError: on timeout, network failure, HTTP >= 400 or a
                non-HTML response.  The page is closed before raising.
        """
        if self._context is None:
            raise RuntimeError("Browser not started")
        page = await self._context.new_page()
        try:
            response = await page.goto(url, timeout=timeout_ms, wait_until='load')
            if response is None:
                raise NavigationError("No response", url=url)
            if response.status >= 400:
                raise NavigationError(f"HTTP {response.status}", url=url)
            content_type = (response.headers.get('content-type') or '').lower()
            if content_type and not any(h in content_type for h in _HTML_CONTENT_TYPES):
                raise NavigationError(
                    f"Non-HTML response ({content_type.split(';')[0]})", url=url
                )
            return page
        except PlaywrightTimeout as exc:
            await _safe_close(page)
            raise NavigationError(f"Navigation timed out after {timeout_ms}ms", url=url) from exc
        except PlaywrightError as exc:
            await _safe_close(page)
            raise NavigationError(f"Navigation failed: {exc}", url=url) from exc
        except NavigationError:
            await _safe_close(page)
            raise

    async def wait_for_network_idle(self, page: Page, timeout_ms: int) -> None:
        try:
            await page.wait_for_load_state('networkidle', timeout=timeout_ms)
        except PlaywrightTimeout as exc:
            raise NavigationError(
                f"Network did not go idle within {timeout_ms}ms", url=page.url
            ) from exc

    async def evaluate(self, page: Page, script: str) -> Any:
        try:
            return await page.evaluate(script)
        except PlaywrightError as exc:
            raise NavigationError(f"In-page evaluation failed: {exc}", url=page.url) from exc


async def _safe_close(page: PageHandle) -> None:
    try:
        await page.close()
    except PlaywrightError as exc:
        logger.debug(f"Error closing page: {exc}")
