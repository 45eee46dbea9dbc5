"""
Dashboard Crawler Package
Authenticated same-site crawler that turns each dashboard page into an
LLM-ready structured record.

CLI Usage:
    python -m dashcrawl <seed_url> --cookie-name NAME --cookie-value VALUE [options]

    Options:
        --exclude        Regex exclusion pattern (repeatable)
        --max-pages      Total page budget (default: 100)
        --workers        Concurrent workers (default: 4)
        --delay          Seconds between navigations to one domain (default: 2.0)
        --output-dir     JSON dataset directory
        --markdown-dir   Markdown output directory
        --output-docx    Export to DOCX file
"""

from .async_crawler import DashboardCrawler, CrawlResult
from .errors import (
    DashcrawlError,
    NavigationError,
    ExtractionError,
    ConfigurationError,
    BudgetExhausted,
)
from .extractor import extract
from .formatter import format_for_llm
from .models import PageRecord, PageOutput, TaskState, CrawlTask
from .run_config import CrawlerRunConfig
from .sanitizer import sanitize, sanitize_html, parse_html
from .scope_filter import ScopeFilter, canonical_url
from .sinks import MemorySink, DatasetSink, MarkdownSink, CompositeSink

__version__ = "0.1.0"

__all__ = [
    'DashboardCrawler',
    'CrawlResult',
    'CrawlerRunConfig',
    # Pipeline
    'sanitize',
    'sanitize_html',
    'parse_html',
    'extract',
    'format_for_llm',
    # Models
    'PageRecord',
    'PageOutput',
    'TaskState',
    'CrawlTask',
    # Scope
    'ScopeFilter',
    'canonical_url',
    # Sinks
    'MemorySink',
    'DatasetSink',
    'MarkdownSink',
    'CompositeSink',
    # Errors
    'DashcrawlError',
    'NavigationError',
    'ExtractionError',
    'ConfigurationError',
    'BudgetExhausted',
]
