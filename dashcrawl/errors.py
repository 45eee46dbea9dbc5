"""
Crawler Errors
==============
Exception taxonomy for the dashboard crawler.

Per-page errors (``NavigationError``, ``ExtractionError``) are isolated
to the task that raised them: the worker logs them, marks the task
``FAILED`` and moves on.  ``ConfigurationError`` is raised before the
browser starts and aborts the run.  ``BudgetExhausted`` is not an error,
just the signal that no new tasks may be scheduled.
"""

from __future__ import annotations

from typing import Optional


class DashcrawlError(Exception):
    """Base class for every error raised by the crawler.

    Attributes:
        message: Human-readable description
        url:     URL being processed when the error occurred (if any)
    """

    def __init__(self, message: str, url: Optional[str] = None):
        self.message = message
        self.url = url
        super().__init__(message)

    def __str__(self) -> str:
        if self.url:
            return f"{self.message} | url={self.url}"
        return self.message


class NavigationError(DashcrawlError):
    """Network, DNS or timeout failure while reaching a URL.

    Not retried by the crawler; the task becomes ``FAILED``.
    """


class ExtractionError(DashcrawlError):
    """The sanitized document is missing expected structure (e.g. no ``<body>``)."""


class ConfigurationError(DashcrawlError):
    """Invalid run configuration: missing cookie, malformed exclusion pattern, ...

    Fatal: the crawl must not start.
    """


class BudgetExhausted(DashcrawlError):
    """The total-page budget has been reached.

    A normal terminal condition, never propagated out of ``crawl()``.
    """

    def __init__(self, max_pages: int):
        super().__init__(f"Page budget of {max_pages} exhausted")
        self.max_pages = max_pages
