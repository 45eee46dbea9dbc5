"""
Page Data Model
===============
Structured records produced for every crawled dashboard page.

A ``PageRecord`` is the semantic projection of one sanitized page:
headings, navigation, form controls and body text.  It is frozen once
built; the crawler produces exactly one per successfully visited URL.

``PageOutput`` is what the sink receives: the record, its LLM rendering
and the cleaned markup, stamped with the capture time.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Tuple


# ---------------------------------------------------------------------------
# Page elements
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Heading:
    """A heading element; ``level`` comes from the tag's numeric suffix."""
    level: int
    text: str
    anchor_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"level": self.level, "text": self.text, "anchor_id": self.anchor_id}


@dataclass(frozen=True)
class Link:
    text: str
    href: str

    def to_dict(self) -> Dict[str, Any]:
        return {"text": self.text, "href": self.href}


@dataclass(frozen=True)
class InputElement:
    kind: str
    label: str
    placeholder: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "label": self.label, "placeholder": self.placeholder}


@dataclass(frozen=True)
class ButtonElement:
    kind: str
    label: str

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "label": self.label}


@dataclass(frozen=True)
class FormElement:
    kind: str
    label: str

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "label": self.label}


@dataclass(frozen=True)
class InteractiveElement:
    """Any clickable/focusable control not already an input, button or form."""
    kind: str
    label: str
    id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "label": self.label, "id": self.id}


# ---------------------------------------------------------------------------
# Page record
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PageRecord:
    """
    Immutable, structured view of one sanitized page.

    Sequences are tuples so the record (and everything in it) is hashable
    and can be compared structurally.  Links with empty text are kept here;
    they are only dropped when rendering for the LLM.
    """
    title: str
    url: str
    headings: Tuple[Heading, ...] = ()
    navigation_links: Tuple[Link, ...] = ()
    inputs: Tuple[InputElement, ...] = ()
    buttons: Tuple[ButtonElement, ...] = ()
    forms: Tuple[FormElement, ...] = ()
    interactive_elements: Tuple[InteractiveElement, ...] = ()
    text_content: str = ""

    @property
    def word_count(self) -> int:
        return len(self.text_content.split())

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a plain dict for JSON export."""
        return {
            "title": self.title,
            "url": self.url,
            "headings": [h.to_dict() for h in self.headings],
            "navigation_links": [l.to_dict() for l in self.navigation_links],
            "inputs": [i.to_dict() for i in self.inputs],
            "buttons": [b.to_dict() for b in self.buttons],
            "forms": [f.to_dict() for f in self.forms],
            "interactive_elements": [e.to_dict() for e in self.interactive_elements],
            "text_content": self.text_content,
        }


# ---------------------------------------------------------------------------
# Crawl bookkeeping
# ---------------------------------------------------------------------------

class TaskState(str, Enum):
    """Lifecycle of a crawl task: Queued -> Navigating -> terminal."""
    QUEUED = "queued"
    NAVIGATING = "navigating"
    EXTRACTED = "extracted"
    SKIPPED = "skipped"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskState.EXTRACTED, TaskState.SKIPPED, TaskState.FAILED)


@dataclass(frozen=True)
class CrawlTask:
    """Transient unit of work: consumed when its navigation attempt completes."""
    url: str
    discovered_from: Optional[str] = None


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class PageOutput:
    """
    Per-page payload pushed to the output sink.

    ``timestamp`` is the ISO-8601 UTC capture time.  ``html`` is the
    cleaned body markup returned by the sanitizer.
    """
    title: str
    url: str
    html: str
    record: PageRecord
    formatted: str
    timestamp: str = field(default_factory=_utc_now)
    discovered_from: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "url": self.url,
            "timestamp": self.timestamp,
            "html": self.html,
            "record": self.record.to_dict(),
            "formatted": self.formatted,
            "discoveredFrom": self.discovered_from,
        }
