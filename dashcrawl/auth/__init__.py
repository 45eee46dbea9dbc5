"""
Authentication Module
=====================
Session-cookie authentication for dashboard crawling.

The dashboard is reached with an existing session token: no login form
is driven.  The cookie is read-only for the whole run and is injected
into the browser context before *every* navigation, because the context
may be recreated between tasks.

    - ``SessionCookie``        — name / value / origin triple
    - ``CookieAuthenticator``  — pre-navigation hook applying the cookie

Usage::

    from dashcrawl.auth import SessionCookie, CookieAuthenticator

    cookie = SessionCookie(name="__Secure-authjs.session-token",
                           value=token, url="https://qrticket.app")
    auth = CookieAuthenticator(cookie)
    await auth.apply(browser)
"""

from .session_cookie import CookieAuthenticator, SessionCookie, load_cookie_from_state

__all__ = [
    "SessionCookie",
    "CookieAuthenticator",
    "load_cookie_from_state",
]
