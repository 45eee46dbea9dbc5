"""
Scope Filter
=============
URL scope enforcement for a dashboard crawl.

Two independent checks decide what happens to a discovered link:

- **Site scope**: the link must share the seed URL's registrable domain
  (``app.example.com`` and ``example.com`` are the same site,
  ``example.org`` is not).  Off-site links are dropped silently.
- **Exclusion**: links whose canonical URL matches any configured
  exclusion regex are out of scope for the crawl; the frontier records
  them as ``SKIPPED`` instead of queueing them.

All URL comparisons go through ``_canonicalize()`` which guarantees
identical normalisation for every URL the frontier sees:

- Fragment removal
- Percent-encoding normalisation (decode unreserved, no double-decode)
- Dot-segment resolution (``/a/../b`` → ``/b``)
- Trailing-slash normalisation
- Host case normalisation + default-port stripping
- Path case is **preserved** (servers are case-sensitive)

Public API
----------
- ``canonical_url(url)`` — canonical string or ``None``
- ``ScopeFilter``        — seed-bound filter with exclusion patterns
"""

from __future__ import annotations

import logging
import posixpath
import re
from dataclasses import dataclass, field
from typing import List, NamedTuple, Optional
from urllib.parse import urlparse, urlunparse

from .errors import ConfigurationError
from .utils import registrable_domain

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------
# Canonical URL representation
# -----------------------------------------------------------------------

class _CanonURL(NamedTuple):
    """Immutable, fully-normalised URL components for scope comparison."""
    scheme: str
    host: str        # lower-cased, default-port stripped
    path: str        # dot-segments resolved, trailing-slash stripped, case preserved
    query: str
    raw: str         # reconstructed full URL string


# -----------------------------------------------------------------------
# RFC 3986 §2.3: unreserved characters that should be decoded
# -----------------------------------------------------------------------
_UNRESERVED_RE = re.compile(r"%([0-9A-Fa-f]{2})")

_UNRESERVED_CHARS = frozenset(
    "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz"
    "0123456789-._~"
)


def _decode_unreserved(path: str) -> str:
    """
    Decode percent-encoded *unreserved* characters only (RFC 3986 §2.3).

    Encoded reserved characters (``/``, ``?``, ``#``, ``&``, ``=``, ...)
    keep their encoding, with the hex digits upper-cased.
    """

    def _replace(m: re.Match) -> str:
        char = chr(int(m.group(1), 16))
        if char in _UNRESERVED_CHARS:
            return char
        return f"%{m.group(1).upper()}"

    return _UNRESERVED_RE.sub(_replace, path)


def _strip_default_port(netloc: str, scheme: str) -> str:
    """Remove ``:80`` for http and ``:443`` for https from *netloc*."""
    if ":" not in netloc:
        return netloc
    host, _, port = netloc.rpartition(":")
    if scheme == "http" and port == "80":
        return host
    if scheme == "https" and port == "443":
        return host
    return netloc


def _canonicalize(url: str) -> Optional[_CanonURL]:
    """
    Produce a canonical ``_CanonURL`` from an absolute URL string.

    Normalisation steps (applied in order):

    1. Reject non-HTTP(S) and empty/invalid URLs.
    2. Lower-case scheme and host.
    3. Strip default ports (``:80`` / ``:443``).
    4. Decode unreserved percent-encoded characters in path.
    5. Resolve dot-segments in path.
    6. Ensure path starts with ``/`` and strip trailing slash (except root).
    7. Remove fragment.
    """
    if not url:
        return None
    url = url.strip()
    if url.lower().startswith(("javascript:", "mailto:", "tel:", "data:", "#")):
        return None

    try:
        p = urlparse(url)
    except ValueError:
        return None

    scheme = p.scheme.lower()
    if scheme not in ("http", "https"):
        return None
    if not p.netloc:
        return None

    host = _strip_default_port(p.netloc.lower(), scheme)

    raw_path = _decode_unreserved(p.path or "/")
    # normpath keeps a leading "//" as-is (POSIX rule), collapse it first
    raw_path = posixpath.normpath(re.sub(r"/{2,}", "/", raw_path))
    if not raw_path.startswith("/"):
        raw_path = "/" + raw_path
    if raw_path != "/" and raw_path.endswith("/"):
        raw_path = raw_path.rstrip("/")

    raw = urlunparse((scheme, host, raw_path, "", p.query, ""))
    return _CanonURL(scheme=scheme, host=host, path=raw_path, query=p.query, raw=raw)


def canonical_url(url: str) -> Optional[str]:
    """Canonical string form of *url*, or ``None`` if it is not crawlable."""
    canon = _canonicalize(url)
    return canon.raw if canon is not None else None


def compile_patterns(patterns: List[str]) -> List[re.Pattern]:
    """
    Compile exclusion regexes.

    Raises:
        ConfigurationError: on the first pattern that fails to compile
    """
    compiled = []
    for pat in patterns:
        try:
            compiled.append(re.compile(pat, re.IGNORECASE))
        except re.error as exc:
            raise ConfigurationError(f"Invalid exclusion pattern '{pat}': {exc}") from exc
    return compiled


# -----------------------------------------------------------------------
# ScopeFilter
# -----------------------------------------------------------------------

@dataclass
class ScopeFilter:
    """
    Scope enforcer for a single crawl run.

    Parameters
    ----------
    root_url : str
        The seed URL; its registrable domain bounds the crawl.
    exclude_patterns : list[str]
        Regex patterns searched against the canonical URL.  Compiled once
        at init; an invalid pattern raises ``ConfigurationError``.
    """

    root_url: str = ""
    exclude_patterns: List[str] = field(default_factory=list)

    _root_canon: Optional[_CanonURL] = field(init=False, repr=False, default=None)
    _site: str = field(init=False, repr=False, default="")
    _compiled: List[re.Pattern] = field(init=False, repr=False, default_factory=list)

    def __post_init__(self):
        if self.root_url:
            self._root_canon = _canonicalize(self.root_url)
            if self._root_canon is not None:
                self._site = registrable_domain(self._root_canon.raw)
            else:
                logger.warning(f"[SCOPE] Could not canonicalise root URL: {self.root_url}")
        self._compiled = compile_patterns(self.exclude_patterns)

    # ------------------------------------------------------------------
    # Primary API
    # ------------------------------------------------------------------

    def clean(self, candidate_url: str) -> Optional[str]:
        """Canonical form of *candidate_url*, or ``None`` if invalid."""
        return canonical_url(candidate_url)

    def in_site(self, candidate_url: str) -> bool:
        """True if *candidate_url* shares the seed's registrable domain."""
        if not self._site:
            return False
        cand = _canonicalize(candidate_url)
        if cand is None:
            return False
        return registrable_domain(cand.raw) == self._site

    def is_excluded(self, candidate_url: str) -> bool:
        """True if *candidate_url* matches any exclusion pattern."""
        cand = _canonicalize(candidate_url)
        target = cand.raw if cand is not None else candidate_url
        return any(rx.search(target) for rx in self._compiled)

    # ------------------------------------------------------------------
    # Logging / introspection
    # ------------------------------------------------------------------

    def log_scope(self) -> None:
        """Emit scope information to the logger."""
        logger.info(f"[SCOPE] {self.scope_description}")
        if self._compiled:
            logger.info(f"[SCOPE] Exclusion patterns: {[rx.pattern for rx in self._compiled]}")

    @property
    def site(self) -> str:
        return self._site

    @property
    def scope_description(self) -> str:
        return f"Registrable domain: {self._site or '(unknown)'}"
