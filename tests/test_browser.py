"""
Tests for the Playwright adapter's navigation checks, with the context stubbed out.
"""

import pytest

from dashcrawl.browser import PlaywrightBrowser
from dashcrawl.errors import NavigationError


class _Response:
    def __init__(self, status=200, content_type="text/html; charset=utf-8"):
        self.status = status
        self.headers = {"content-type": content_type} if content_type else {}


class _Page:
    def __init__(self, response):
        self._response = response
        self.url = "about:blank"
        self.closed = False

    async def goto(self, url, timeout, wait_until):
        self.url = url
        return self._response

    async def close(self):
        self.closed = True


class _Context:
    def __init__(self, response):
        self.response = response
        self.pages = []
        self.cookies = []

    async def new_page(self):
        page = _Page(self.response)
        self.pages.append(page)
        return page

    async def add_cookies(self, cookies):
        self.cookies.extend(cookies)


def _browser(response):
    browser = PlaywrightBrowser()
    browser._context = _Context(response)
    return browser


class TestNavigate:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content_type", [
        "text/html; charset=utf-8",
        "application/xhtml+xml",
        None,
    ])
    async def test_html_pages_accepted(self, content_type):
        browser = _browser(_Response(content_type=content_type))
        page = await browser.navigate("https://app.example.com/", 1000)
        assert page.url == "https://app.example.com/"
        assert not page.closed

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content_type", [
        "text/plain",
        "application/json",
        "application/pdf",
    ])
    async def test_non_html_fails_and_closes_page(self, content_type):
        browser = _browser(_Response(content_type=content_type))
        with pytest.raises(NavigationError, match="Non-HTML"):
            await browser.navigate("https://app.example.com/export", 1000)
        assert browser._context.pages[0].closed

    @pytest.mark.asyncio
    async def test_http_error_status(self):
        browser = _browser(_Response(status=403))
        with pytest.raises(NavigationError, match="HTTP 403"):
            await browser.navigate("https://app.example.com/admin", 1000)
        assert browser._context.pages[0].closed

    @pytest.mark.asyncio
    async def test_not_started(self):
        with pytest.raises(RuntimeError):
            await PlaywrightBrowser().navigate("https://app.example.com/", 1000)


class TestAddCookie:

    @pytest.mark.asyncio
    async def test_cookie_scoped_by_url(self):
        browser = _browser(_Response())
        await browser.add_cookie("sid", "token", "https://api.example.com")
        assert browser._context.cookies == [
            {"name": "sid", "value": "token", "url": "https://api.example.com"},
        ]
