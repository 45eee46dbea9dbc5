"""
Session Cookie
==============
The authentication value for a run, and the hook that applies it.

The cookie is validated once at configuration time (a missing or
malformed cookie is a ``ConfigurationError`` and the crawl never
starts), then applied before each navigation by ``CookieAuthenticator``.

A cookie value can also be lifted from a Playwright ``storage_state``
JSON file (the format ``context.storage_state(path=...)`` writes), so a
session captured from a manual login can be reused.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol
from urllib.parse import urlparse

from ..errors import ConfigurationError

logger = logging.getLogger(__name__)


class CookieTarget(Protocol):
    """Anything that can receive a cookie (the browser adapter, a fake in tests)."""

    async def add_cookie(self, name: str, value: str, url: str) -> None:
        ...


@dataclass(frozen=True)
class SessionCookie:
    """Name / value / origin triple identifying the authenticated session."""
    name: str
    value: str
    url: str

    def validate(self) -> None:
        """
        Raises:
            ConfigurationError: if any part of the triple is missing or malformed
        """
        if not self.name or not self.name.strip():
            raise ConfigurationError("Session cookie name is missing")
        if not self.value:
            raise ConfigurationError(f"Session cookie '{self.name}' has no value")
        parsed = urlparse(self.url or "")
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ConfigurationError(
                f"Session cookie URL must be an absolute http(s) origin, got '{self.url}'"
            )

    @property
    def origin(self) -> str:
        parsed = urlparse(self.url)
        return f"{parsed.scheme}://{parsed.netloc}"

    def masked(self) -> str:
        """Value with everything but the edges hidden, for logs."""
        if len(self.value) <= 8:
            return "*" * len(self.value)
        return f"{self.value[:4]}…{self.value[-4:]}"


def load_cookie_from_state(state_path: str, name: str, url: str) -> SessionCookie:
    """
    Read the cookie called *name* out of a Playwright storage-state file.

    Raises:
        ConfigurationError: if the file is unreadable or has no such cookie
    """
    path = Path(state_path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigurationError(f"Cannot read storage state '{state_path}': {exc}") from exc

    host = urlparse(url).hostname or ""
    for cookie in data.get("cookies", []):
        if cookie.get("name") != name:
            continue
        domain = (cookie.get("domain") or "").lstrip(".")
        if domain and host and not (host == domain or host.endswith("." + domain)):
            continue
        logger.info(f"[AUTH] Loaded cookie '{name}' from {path}")
        return SessionCookie(name=name, value=cookie.get("value", ""), url=url)

    raise ConfigurationError(f"Cookie '{name}' not found in storage state '{state_path}'")


class CookieAuthenticator:
    """
    Pre-navigation hook: makes sure the session cookie is set for the target origin.

    ``apply`` is called before every navigation attempt.  The cookie is
    always set for the configured origin and, when the navigation target
    lives on another host of the same site (``api.example.com`` next to
    ``app.example.com``), for the target's origin as well.  Adding a
    cookie that already exists simply overwrites it.
    """

    def __init__(self, cookie: SessionCookie):
        cookie.validate()
        self.cookie = cookie
        self._applied = 0
        self._origins: set = set()

    async def apply(self, target: CookieTarget, url: Optional[str] = None) -> None:
        origins = [self.cookie.origin]
        target_origin = _origin_of(url) if url else None
        if target_origin and target_origin != self.cookie.origin:
            origins.append(target_origin)

        for origin in origins:
            await target.add_cookie(self.cookie.name, self.cookie.value, origin)
            if origin not in self._origins:
                self._origins.add(origin)
                logger.info(
                    f"[AUTH] Session cookie '{self.cookie.name}' "
                    f"({self.cookie.masked()}) applied for {origin}"
                )
        self._applied += 1
        if self._applied > 1 and url:
            logger.debug(f"[AUTH] Cookie re-applied before {url[:70]}")

    @property
    def times_applied(self) -> int:
        return self._applied


def _origin_of(url: str) -> Optional[str]:
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return None
    return f"{parsed.scheme}://{parsed.netloc}"
