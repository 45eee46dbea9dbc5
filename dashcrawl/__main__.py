#!/usr/bin/env python3
"""
Command-line entry point for the dashboard crawler
===================================================
Crawls an authenticated dashboard from a seed URL and writes one JSON
record per page (plus optional Markdown and DOCX exports).

All configuration flows through ``CrawlerRunConfig``: defaults, then
``DASHCRAWL_*`` environment variables (``.env`` is honoured), then flags.

Run with: python -m dashcrawl <seed_url> --cookie-name NAME --cookie-value VALUE
"""

import argparse
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from .async_crawler import DashboardCrawler
from .errors import ConfigurationError
from .run_config import CrawlerRunConfig
from .sinks import CompositeSink, DatasetSink, MarkdownSink

logger = logging.getLogger(__name__)

EXIT_CONFIG_ERROR = 2


def _load_env() -> None:
    """Load ``.env`` from the project root if present, else from the CWD."""
    env_path = Path(__file__).resolve().parent.parent / '.env'
    if env_path.exists():
        load_dotenv(env_path)
    else:
        load_dotenv()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='dashcrawl',
        description='Dashboard crawler - authenticated same-site crawl with LLM-ready page records',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m dashcrawl https://app.example.com --cookie-name session --cookie-value TOKEN
  python -m dashcrawl https://app.example.com --cookie-name session --cookie-value TOKEN \\
      --exclude '/logout' --max-pages 50 --markdown-dir out/md --output-docx out/report.docx
  DASHCRAWL_SEED_URL=... DASHCRAWL_COOKIE_VALUE=... python -m dashcrawl
        """
    )

    parser.add_argument('url', nargs='?', help='Seed URL (default: $DASHCRAWL_SEED_URL)')
    parser.add_argument('--max-pages', type=int, help='Total page budget (default: 100)')
    parser.add_argument('--workers', type=int, help='Number of concurrent workers (default: 4)')
    parser.add_argument('--delay', type=float, help='Seconds between navigations to one domain (default: 2.0)')
    parser.add_argument('--nav-timeout', type=float, help='Navigation timeout in seconds (default: 30)')
    parser.add_argument('--idle-timeout', type=float, help='Network-idle timeout in seconds (default: 15)')
    parser.add_argument(
        '--exclude', type=str, action='append', default=[],
        help='Regex exclusion pattern for URLs (repeatable)',
    )

    # ── Authentication flags ──────────────────────────────────────
    auth_group = parser.add_argument_group(
        'Authentication',
        'The dashboard is reached with an existing session cookie; no login is performed.')
    auth_group.add_argument('--cookie-name', type=str, help='Session cookie name')
    auth_group.add_argument('--cookie-value', type=str, help='Session cookie value')
    auth_group.add_argument('--cookie-url', type=str, help='Origin the cookie is set for (default: seed origin)')
    auth_group.add_argument(
        '--cookie-state-file', type=str,
        help='Read the cookie value from a Playwright storage_state JSON file',
    )

    # ── Browser flags ─────────────────────────────────────────────
    browser_group = parser.add_argument_group('Browser')
    browser_group.add_argument('--headful', action='store_true', help='Show the browser window')
    browser_group.add_argument(
        '--no-block-resources', action='store_true',
        help='Load images, media and fonts (blocked by default)',
    )

    # ── Output flags ──────────────────────────────────────────────
    output_group = parser.add_argument_group('Output')
    output_group.add_argument('--output-dir', type=str, help='Dataset directory for JSON records')
    output_group.add_argument('--markdown-dir', type=str, help='Write each LLM rendering as <slug>.md')
    output_group.add_argument('--output-docx', type=str, help='DOCX report output file path')

    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')
    return parser


def build_sink(cfg: CrawlerRunConfig) -> CompositeSink:
    sinks = []
    if cfg.output_dir:
        sinks.append(DatasetSink(cfg.output_dir))
    if cfg.markdown_dir:
        sinks.append(MarkdownSink(cfg.markdown_dir))
    return CompositeSink(*sinks)


def print_summary(stats: dict) -> None:
    """Print final crawl summary."""
    print("\n" + "=" * 65)
    print("CRAWL COMPLETE")
    print("=" * 65)
    print(f"  Pages extracted:     {stats.get('pages_extracted', 0)}")
    print(f"  Pages skipped:       {stats.get('pages_skipped', 0)}")
    print(f"  Pages failed:        {stats.get('pages_failed', 0)}")
    print(f"  Budget used:         {stats.get('pages_total', 0)}/{stats.get('max_pages', 0)}")
    print(f"  Links enqueued:      {stats.get('links_enqueued', 0)}")
    print(f"  Total words:         {stats.get('total_words', 0):,}")
    print(f"  Total time:          {stats.get('elapsed_sec', 0):.1f}s")
    print(f"  Stop reason:         {stats.get('stop_reason', 'completed')}")
    print("=" * 65)


def main(argv=None) -> int:
    """Parse argv, build CrawlerRunConfig, run."""
    _load_env()
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s | %(levelname)s | %(message)s',
        datefmt='%H:%M:%S'
    )

    try:
        cfg = CrawlerRunConfig.from_cli_args(args, base=CrawlerRunConfig.from_env())
        cfg.validate()
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return EXIT_CONFIG_ERROR

    cfg.log_summary()
    crawler = DashboardCrawler(cfg, sink=build_sink(cfg))
    try:
        result = crawler.run()
    except KeyboardInterrupt:
        print("\nCrawl interrupted.")
        return 130

    if cfg.output_docx:
        from .word_exporter import export_docx
        path = export_docx(result.outputs, cfg.output_docx, result.stats)
        print("\n" + "-" * 40)
        print(f"  Exported: {path}")
        print("-" * 40)

    print_summary(result.stats)
    return 0


if __name__ == '__main__':
    sys.exit(main())
