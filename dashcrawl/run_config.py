"""
Unified Run Configuration
=========================
Single source of truth for every crawler default and runtime limit.

Values are layered: canonical defaults → ``DASHCRAWL_*`` environment
variables (``.env`` is loaded by the CLI) → command-line flags.
``validate()`` must pass before a browser is started; any problem is a
``ConfigurationError`` and the run never begins.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace
from typing import List, Mapping, Optional
from urllib.parse import urlparse

from .auth import SessionCookie, load_cookie_from_state
from .browser import BrowserOptions
from .errors import ConfigurationError
from .scope_filter import compile_patterns

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Canonical defaults, the only place these numbers live
# ---------------------------------------------------------------------------
_DEFAULTS = {
    "max_pages": 100,
    "max_workers": 4,
    "same_domain_delay": 2.0,        # seconds between navigations to one domain
    "nav_timeout_seconds": 30,
    "idle_timeout_seconds": 15,
    "headless": True,
    "block_resources": True,
    "output_dir": "storage/datasets/default",
    "user_agent": (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
        "AppleWebKit/537.36 (KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36"
    ),
}

ENV_PREFIX = "DASHCRAWL_"


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class CrawlerRunConfig:
    """
    Configuration consumed by every crawler subsystem.

    Populate via:
      - ``CrawlerRunConfig(seed_url=..., cookie_name=..., cookie_value=...)``
      - ``CrawlerRunConfig.from_env()``             → from ``DASHCRAWL_*`` vars
      - ``CrawlerRunConfig.from_cli_args(ns, base)`` → overlay argparse flags
    """

    # ---- Target ----
    seed_url: str = ""

    # ---- Authentication ----
    cookie_name: str = ""
    cookie_value: str = ""
    cookie_url: str = ""                       # defaults to the seed's origin
    cookie_state_file: Optional[str] = None    # Playwright storage_state JSON

    # ---- Scope ----
    exclude_patterns: List[str] = field(default_factory=list)

    # ---- Limits ----
    max_pages: int = _DEFAULTS["max_pages"]
    max_workers: int = _DEFAULTS["max_workers"]
    same_domain_delay: float = _DEFAULTS["same_domain_delay"]
    nav_timeout_seconds: float = _DEFAULTS["nav_timeout_seconds"]
    idle_timeout_seconds: float = _DEFAULTS["idle_timeout_seconds"]

    # ---- Browser ----
    headless: bool = _DEFAULTS["headless"]
    block_resources: bool = _DEFAULTS["block_resources"]
    user_agent: str = _DEFAULTS["user_agent"]

    # ---- Output (None = skip) ----
    output_dir: Optional[str] = _DEFAULTS["output_dir"]
    markdown_dir: Optional[str] = None
    output_docx: Optional[str] = None

    # -----------------------------------------------------------------------
    # Factory helpers
    # -----------------------------------------------------------------------
    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "CrawlerRunConfig":
        """Build config from ``DASHCRAWL_*`` environment variables."""
        env = os.environ if environ is None else environ

        def get(name: str) -> Optional[str]:
            value = env.get(ENV_PREFIX + name)
            return value if value not in (None, "") else None

        cfg = cls()
        try:
            if get("SEED_URL"):
                cfg.seed_url = get("SEED_URL")
            if get("COOKIE_NAME"):
                cfg.cookie_name = get("COOKIE_NAME")
            if get("COOKIE_VALUE"):
                cfg.cookie_value = get("COOKIE_VALUE")
            if get("COOKIE_URL"):
                cfg.cookie_url = get("COOKIE_URL")
            if get("COOKIE_STATE_FILE"):
                cfg.cookie_state_file = get("COOKIE_STATE_FILE")
            if get("EXCLUDE"):
                cfg.exclude_patterns = [get("EXCLUDE")]
            if get("MAX_PAGES"):
                cfg.max_pages = int(get("MAX_PAGES"))
            if get("WORKERS"):
                cfg.max_workers = int(get("WORKERS"))
            if get("DELAY"):
                cfg.same_domain_delay = float(get("DELAY"))
            if get("HEADLESS"):
                cfg.headless = _env_bool(get("HEADLESS"))
            if get("OUTPUT_DIR"):
                cfg.output_dir = get("OUTPUT_DIR")
        except ValueError as exc:
            raise ConfigurationError(f"Invalid numeric value in environment: {exc}") from exc
        return cfg

    @classmethod
    def from_cli_args(cls, args, base: Optional["CrawlerRunConfig"] = None) -> "CrawlerRunConfig":
        """Overlay every flag the user actually passed onto *base* (or the defaults)."""
        overrides = {}
        mapping = {
            "url": "seed_url",
            "cookie_name": "cookie_name",
            "cookie_value": "cookie_value",
            "cookie_url": "cookie_url",
            "cookie_state_file": "cookie_state_file",
            "max_pages": "max_pages",
            "workers": "max_workers",
            "delay": "same_domain_delay",
            "nav_timeout": "nav_timeout_seconds",
            "idle_timeout": "idle_timeout_seconds",
            "output_dir": "output_dir",
            "markdown_dir": "markdown_dir",
            "output_docx": "output_docx",
        }
        for arg_name, field_name in mapping.items():
            value = getattr(args, arg_name, None)
            if value is not None:
                overrides[field_name] = value
        if getattr(args, "exclude", None):
            overrides["exclude_patterns"] = list(args.exclude)
        if getattr(args, "headful", False):
            overrides["headless"] = False
        if getattr(args, "no_block_resources", False):
            overrides["block_resources"] = False
        return replace(base or cls(), **overrides)

    # -----------------------------------------------------------------------
    # Validation
    # -----------------------------------------------------------------------
    def session_cookie(self) -> SessionCookie:
        """
        Resolve the authentication cookie (inline value, else storage-state file).

        Raises:
            ConfigurationError: if no usable cookie can be produced
        """
        url = self.cookie_url or self._seed_origin()
        if not self.cookie_value and self.cookie_state_file:
            cookie = load_cookie_from_state(self.cookie_state_file, self.cookie_name, url)
        else:
            cookie = SessionCookie(name=self.cookie_name, value=self.cookie_value, url=url)
        cookie.validate()
        return cookie

    def validate(self) -> None:
        """
        Raises:
            ConfigurationError: on the first invalid setting
        """
        parsed = urlparse(self.seed_url or "")
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ConfigurationError(f"Seed URL must be an absolute http(s) URL, got '{self.seed_url}'")
        self.session_cookie()
        compile_patterns(self.exclude_patterns)
        if self.max_pages < 1:
            raise ConfigurationError(f"max_pages must be >= 1, got {self.max_pages}")
        if self.max_workers < 1:
            raise ConfigurationError(f"max_workers must be >= 1, got {self.max_workers}")
        if self.same_domain_delay < 0:
            raise ConfigurationError(f"same_domain_delay must be >= 0, got {self.same_domain_delay}")
        if self.nav_timeout_seconds <= 0 or self.idle_timeout_seconds <= 0:
            raise ConfigurationError("Timeouts must be positive")

    def _seed_origin(self) -> str:
        parsed = urlparse(self.seed_url or "")
        if not parsed.scheme or not parsed.netloc:
            return ""
        return f"{parsed.scheme}://{parsed.netloc}"

    # -----------------------------------------------------------------------
    # Converters
    # -----------------------------------------------------------------------
    @property
    def nav_timeout_ms(self) -> int:
        return int(self.nav_timeout_seconds * 1000)

    @property
    def idle_timeout_ms(self) -> int:
        return int(self.idle_timeout_seconds * 1000)

    def to_browser_options(self) -> BrowserOptions:
        return BrowserOptions(
            headless=self.headless,
            user_agent=self.user_agent,
            block_resources=self.block_resources,
        )

    # -----------------------------------------------------------------------
    # Logging helper
    # -----------------------------------------------------------------------
    def log_summary(self) -> None:
        """Emit a structured summary to the logger."""
        logger.info("=" * 60)
        logger.info("CRAWL RUN CONFIG")
        logger.info("=" * 60)
        logger.info(f"  Seed URL:         {self.seed_url}")
        logger.info(f"  Auth Cookie:      {self.cookie_name or '(none)'} @ {self.cookie_url or self._seed_origin()}")
        logger.info(f"  Max Pages:        {self.max_pages}")
        logger.info(f"  Workers:          {self.max_workers}")
        logger.info(f"  Domain Delay:     {self.same_domain_delay}s")
        logger.info(f"  Timeouts:         nav {self.nav_timeout_seconds}s, idle {self.idle_timeout_seconds}s")
        if self.exclude_patterns:
            logger.info(f"  Exclude:          {self.exclude_patterns}")
        if self.output_dir:
            logger.info(f"  Dataset Dir:      {self.output_dir}")
        if self.markdown_dir:
            logger.info(f"  Markdown Dir:     {self.markdown_dir}")
        if self.output_docx:
            logger.info(f"  DOCX Report:      {self.output_docx}")
        logger.info("=" * 60)
