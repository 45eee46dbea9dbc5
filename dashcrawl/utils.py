"""
Utility Functions
URL normalization, registrable-domain lookup, per-domain pacing and text helpers.
"""

import asyncio
import logging
import re
import time
from typing import Awaitable, Callable, Dict, Optional
from urllib.parse import urlparse, urlunparse, urljoin, parse_qs, urlencode

import tldextract

logger = logging.getLogger(__name__)

# Offline extractor: use the public-suffix snapshot bundled with tldextract
_TLD_EXTRACT = tldextract.TLDExtract(suffix_list_urls=())


def registrable_domain(url: str) -> str:
    """
    Return the registrable domain (eTLD+1) of *url*.

    ``https://app.qrticket.app/x`` -> ``qrticket.app``.  Hosts without a
    public suffix (``localhost``, IPs, single-label intranet names) are
    returned as-is.
    """
    try:
        host = (urlparse(url).hostname or "").lower()
    except ValueError:
        return ""
    if not host:
        return ""
    ext = _TLD_EXTRACT(host)
    if ext.domain and ext.suffix:
        return f"{ext.domain}.{ext.suffix}"
    return host


class URLNormalizer:
    """
    Handles URL normalization to prevent duplicate crawling.
    Removes fragments, normalizes trailing slashes, drops tracking params, etc.
    """

    # Common tracking parameters to remove
    TRACKING_PARAMS = {
        'utm_source', 'utm_medium', 'utm_campaign', 'utm_term', 'utm_content',
        'fbclid', 'gclid', 'mc_cid', 'mc_eid', '_ga', '_gid', 'dclid',
    }

    # Non-HTML resources are never crawled
    SKIP_EXTENSIONS = {
        '.jpg', '.jpeg', '.png', '.gif', '.bmp', '.svg', '.webp', '.ico',
        '.pdf', '.doc', '.docx', '.xls', '.xlsx', '.ppt', '.pptx',
        '.zip', '.rar', '.tar', '.gz', '.7z',
        '.mp3', '.mp4', '.avi', '.mov', '.wmv', '.flv', '.webm',
        '.css', '.js', '.json', '.xml', '.rss', '.atom',
        '.woff', '.woff2', '.ttf', '.eot', '.otf'
    }

    def __init__(
        self,
        remove_tracking_params: bool = True,
        remove_fragments: bool = True,
    ):
        """
        Args:
            remove_tracking_params: Remove common tracking query parameters
            remove_fragments: Remove URL fragments (#section)
        """
        self.remove_tracking_params = remove_tracking_params
        self.remove_fragments = remove_fragments

    def normalize(self, url: str, base_url: str = None) -> Optional[str]:
        """
        Normalize a URL for consistent comparison.

        Args:
            url: The URL to normalize
            base_url: Optional base URL for resolving relative URLs

        Returns:
            Normalized URL string or None if invalid / not an HTML page
        """
        if not url:
            return None

        url = url.strip()

        # Skip javascript:, mailto:, tel:, data: and pure-fragment URLs
        if url.lower().startswith(('javascript:', 'mailto:', 'tel:', 'data:', '#')):
            return None

        if base_url:
            url = urljoin(base_url, url)

        try:
            parsed = urlparse(url)
        except ValueError:
            return None

        if parsed.scheme.lower() not in ('http', 'https'):
            return None
        if not parsed.netloc:
            return None

        netloc = parsed.netloc.lower()

        # Collapse duplicate slashes, drop trailing slash unless root
        path = re.sub(r'/+', '/', parsed.path or '/')
        if path != '/' and path.endswith('/'):
            path = path.rstrip('/')

        lower_path = path.lower()
        for ext in self.SKIP_EXTENSIONS:
            if lower_path.endswith(ext):
                return None

        query = parsed.query
        if query and self.remove_tracking_params:
            params = parse_qs(query, keep_blank_values=True)
            filtered_params = {
                k: v for k, v in params.items()
                if k.lower() not in self.TRACKING_PARAMS
            }
            query = urlencode(filtered_params, doseq=True)

        fragment = '' if self.remove_fragments else parsed.fragment

        return urlunparse((
            parsed.scheme.lower(),
            netloc,
            path,
            parsed.params,
            query,
            fragment
        ))


class DomainPacer:
    """
    Enforces a minimum interval between navigations to the same registrable domain.

    Each call to ``wait`` reserves the next free slot for the URL's domain
    under a lock, then sleeps outside the lock, so concurrent workers line
    up one ``min_interval`` apart instead of firing together.
    """

    def __init__(
        self,
        min_interval: float = 2.0,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.min_interval = max(0.0, min_interval)
        self._clock = clock
        self._sleep = sleep
        self._next_slot: Dict[str, float] = {}
        self._lock = asyncio.Lock()

    async def wait(self, url: str) -> float:
        """
        Block until *url*'s domain may be hit again.

        Returns:
            Seconds waited (0 if the navigation may go immediately)
        """
        key = registrable_domain(url) or url
        async with self._lock:
            now = self._clock()
            slot = max(now, self._next_slot.get(key, now))
            self._next_slot[key] = slot + self.min_interval
        delay = slot - now
        if delay > 0:
            logger.debug(f"[PACE] {key}: waiting {delay:.2f}s")
            await self._sleep(delay)
        return delay


def clean_text(text: str) -> str:
    """Collapse whitespace runs to single spaces and trim."""
    if not text:
        return ""
    return re.sub(r'\s+', ' ', text).strip()
