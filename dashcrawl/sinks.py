"""
Output Sinks
============
Receivers for finished pages.  The crawler calls ``sink.push(output)``
once per extracted page, in whatever order pages complete.

- ``MemorySink``    — keeps outputs in a list (tests, DOCX export)
- ``DatasetSink``   — one JSON file per page: ``000000001.json``, ...
- ``MarkdownSink``  — the LLM rendering of each page as ``<slug>.md``
- ``CompositeSink`` — fans a push out to several sinks
"""

from __future__ import annotations

import hashlib
import json
import logging
import re
from pathlib import Path
from typing import List, Protocol
from urllib.parse import urlparse

from .models import PageOutput

logger = logging.getLogger(__name__)


class Sink(Protocol):
    def push(self, output: PageOutput) -> None: ...


class MemorySink:
    def __init__(self):
        self.outputs: List[PageOutput] = []

    def push(self, output: PageOutput) -> None:
        self.outputs.append(output)

    def __len__(self) -> int:
        return len(self.outputs)


class DatasetSink:
    """Writes each output as a numbered, pretty-printed JSON file."""

    def __init__(self, directory: str):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self._count = 0

    def push(self, output: PageOutput) -> None:
        self._count += 1
        path = self.directory / f"{self._count:09d}.json"
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(output.to_dict(), f, indent=2, ensure_ascii=False)
        logger.debug(f"[SINK] {output.url[:60]} -> {path.name}")

    @property
    def count(self) -> int:
        return self._count


def slug_from_url(url: str) -> str:
    """
    Derive a filesystem-safe, collision-free name from a URL.

    The readable part is lossy (``/a/b`` and ``/a_b`` look the same, long
    URLs are cut), so a short hash of the full URL is appended.
    """
    parsed = urlparse(url)
    base = parsed.netloc.replace('.', '_').replace(':', '_')
    path = parsed.path.strip('/')
    if path:
        base = f"{base}_{path.replace('/', '_')}"
    if parsed.query:
        base = f"{base}_{parsed.query}"
    readable = re.sub(r'[^\w\-]', '_', base)[:120]
    digest = hashlib.md5(url.encode('utf-8')).hexdigest()[:8]
    return f"{readable}_{digest}"


class MarkdownSink:
    """Writes the LLM-facing rendering of every page to its own file."""

    def __init__(self, directory: str):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def push(self, output: PageOutput) -> None:
        path = self.directory / f"{slug_from_url(output.url)}.md"
        path.write_text(output.formatted, encoding='utf-8')


class CompositeSink:
    def __init__(self, *sinks: Sink):
        self.sinks = list(sinks)

    def push(self, output: PageOutput) -> None:
        for sink in self.sinks:
            sink.push(output)
