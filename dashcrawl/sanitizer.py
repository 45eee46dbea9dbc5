"""
DOM Sanitizer
=============
Strips a loaded page down to its semantic skeleton before extraction.

The crawler snapshots the live document after network idle and parses it
into a BeautifulSoup tree; every pass below mutates that in-memory tree,
never the page in the browser.

Passes (order matters, later passes rely on earlier removals):

1. Drop non-content elements (scripts, styles, media, route announcers)
2. Drop comment nodes
3. Strip presentation-only attributes (``data-*`` + a fixed deny-list)
4. Drop empty leaf wrappers (``div``/``span``/``p`` with no id/href/type)
5. Collapse wrappers whose whole subtree is empty wrappers, to a fixed point

The result is the inner markup of ``<body>``.
"""

from __future__ import annotations

import logging
from typing import Optional, Union

from bs4 import BeautifulSoup, Comment, Tag

from .errors import ExtractionError

logger = logging.getLogger(__name__)

HTML_PARSER = "lxml"

# Elements with no content semantics
REMOVED_TAGS = (
    "script", "style", "noscript", "svg", "img", "br", "hr", "canvas",
    "video", "audio", "picture", "source", "next-route-announcer",
)

DATA_ATTR_PREFIX = "data-"

# Presentation / interaction-hint attributes
REMOVED_ATTRIBUTES = frozenset({
    "class",
    "style",
    "tabindex",
    "aria-expanded",
    "aria-selected",
    "aria-haspopup",
    "aria-atomic",
    "aria-live",
    "aria-relevant",
    "target",
    "rel",
    "spellcheck",
    "draggable",
    "contenteditable",
    "aria-label",
})

# Wrappers removed when empty (pass 4)
EMPTY_LEAF_TAGS = ("div", "span", "p")

# Wrappers collapsed when their subtree is empty (pass 5)
COLLAPSIBLE_TAGS = ("div", "span")

# Attributes that make an otherwise-empty element meaningful
_MEANINGFUL_ATTRS = ("id", "href", "type")


def parse_html(markup: str) -> BeautifulSoup:
    """Parse raw page markup into a mutable document tree."""
    return BeautifulSoup(markup or "", HTML_PARSER)


def sanitize(document: Union[BeautifulSoup, Tag], url: Optional[str] = None) -> str:
    """
    Sanitize *document* in place and return the cleaned ``<body>`` markup.

    Args:
        document: Parsed page (see ``parse_html``)
        url:      Page URL, only used for error context

    Raises:
        ExtractionError: if the document has no ``<body>``
    """
    body = document.body if document.name != "body" else document
    if body is None:
        raise ExtractionError("Document has no <body>", url=url)

    removed = _remove_non_semantic(document)
    comments = _remove_comments(document)
    _strip_attributes(document)
    leaves = _remove_empty_leaves(body)
    collapsed = _collapse_empty_containers(body)

    logger.debug(
        f"[SANITIZE] removed {removed} elements, {comments} comments, "
        f"{leaves} empty leaves, {collapsed} empty containers"
    )
    return body.decode_contents()


def sanitize_html(markup: str, url: Optional[str] = None) -> str:
    """Parse *markup* and sanitize it in one call."""
    return sanitize(parse_html(markup), url=url)


# ---------------------------------------------------------------------------
# Passes
# ---------------------------------------------------------------------------

def _remove_non_semantic(document: Tag) -> int:
    count = 0
    for tag in document.find_all(REMOVED_TAGS):
        # Children of an already-removed element are destroyed with it
        if tag.decomposed:
            continue
        tag.decompose()
        count += 1
    return count


def _remove_comments(document: Tag) -> int:
    comments = document.find_all(string=lambda s: isinstance(s, Comment))
    for comment in comments:
        comment.extract()
    return len(comments)


def _strip_attributes(document: Tag) -> None:
    for tag in document.find_all(True):
        if not tag.attrs:
            continue
        tag.attrs = {
            name: value
            for name, value in tag.attrs.items()
            if not name.startswith(DATA_ATTR_PREFIX)
            and name not in REMOVED_ATTRIBUTES
        }


def _has_meaningful_attr(tag: Tag) -> bool:
    return any(tag.has_attr(attr) for attr in _MEANINGFUL_ATTRS)


def _is_blank(tag: Tag) -> bool:
    return tag.get_text().strip() == ""


def _remove_empty_leaves(body: Tag) -> int:
    count = 0
    for tag in body.find_all(EMPTY_LEAF_TAGS):
        if tag.decomposed:
            continue
        if tag.find(True) is not None:
            continue
        if _is_blank(tag) and not _has_meaningful_attr(tag):
            tag.decompose()
            count += 1
    return count


def _is_collapsible(tag: Tag) -> bool:
    """True if *tag* and its whole subtree are attribute-free empty wrappers."""
    if tag.name not in COLLAPSIBLE_TAGS or _has_meaningful_attr(tag):
        return False
    if not _is_blank(tag):
        return False
    return all(_is_collapsible(child) for child in tag.find_all(True, recursive=False))


def _collapse_empty_containers(body: Tag) -> int:
    total = 0
    while True:
        # Outermost first; descendants of a removed container go with it
        removed = 0
        for tag in body.find_all(COLLAPSIBLE_TAGS):
            if tag.decomposed:
                continue
            if _is_collapsible(tag):
                tag.decompose()
                removed += 1
        if removed == 0:
            return total
        total += removed
