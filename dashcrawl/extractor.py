"""
Page Extractor
==============
Read-only projection of a sanitized page into a ``PageRecord``.

Run this only on a document that already went through
``sanitizer.sanitize`` so scripts, hidden announcers and layout wrappers
never show up in the structural queries.  Extraction never mutates the
tree: calling it twice on the same snapshot yields equal records.
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional, Union

from bs4 import BeautifulSoup, Tag

from .errors import ExtractionError
from .models import (
    ButtonElement,
    FormElement,
    Heading,
    InputElement,
    InteractiveElement,
    Link,
    PageRecord,
)
from .utils import clean_text

logger = logging.getLogger(__name__)

_HEADING_RE = re.compile(r"^h([1-6])$")
HEADING_TAGS = ("h1", "h2", "h3", "h4", "h5", "h6")

INPUT_TAGS = ("input", "textarea", "select")

# Roles that make an arbitrary element a control
INTERACTIVE_ROLES = frozenset({
    "button", "link", "tab", "menuitem", "menuitemcheckbox", "menuitemradio",
    "checkbox", "radio", "switch", "option", "combobox", "treeitem",
    "listbox", "slider", "spinbutton", "textbox", "searchbox",
})
INTERACTIVE_TAGS = ("summary", "details")

# Already covered by the link/input/button/form collections
_CLASSIFIED_TAGS = frozenset({"a", "button", "input", "textarea", "select", "form"})


def extract(
    document: Union[BeautifulSoup, Tag],
    *,
    title: str,
    url: str,
) -> PageRecord:
    """
    Build a ``PageRecord`` from a sanitized document.

    Args:
        document: Sanitized page tree
        title:    Document title captured from the live page
        url:      Final (post-redirect) page URL

    Raises:
        ExtractionError: if the document has no ``<body>``
    """
    body = document.body if document.name != "body" else document
    if body is None:
        raise ExtractionError("Document has no <body>", url=url)

    record = PageRecord(
        title=title or "",
        url=url,
        headings=tuple(_extract_headings(body)),
        navigation_links=tuple(_extract_links(body)),
        inputs=tuple(_extract_inputs(document, body)),
        buttons=tuple(_extract_buttons(document, body)),
        forms=tuple(_extract_forms(document, body)),
        interactive_elements=tuple(_extract_interactive(document, body)),
        text_content=clean_text(body.get_text(" ")),
    )
    logger.debug(
        f"[EXTRACT] {url[:70]} — {len(record.headings)} headings, "
        f"{len(record.navigation_links)} links, {len(record.inputs)} inputs, "
        f"{len(record.buttons)} buttons, {len(record.interactive_elements)} controls"
    )
    return record


# ---------------------------------------------------------------------------
# Collections
# ---------------------------------------------------------------------------

def _extract_headings(body: Tag) -> List[Heading]:
    headings = []
    for tag in body.find_all(HEADING_TAGS):
        m = _HEADING_RE.match(tag.name)
        headings.append(Heading(
            level=int(m.group(1)),
            text=_visible_text(tag),
            anchor_id=tag.get("id") or None,
        ))
    return headings


def _extract_links(body: Tag) -> List[Link]:
    return [
        Link(text=_visible_text(tag), href=tag.get("href") or "")
        for tag in body.find_all("a")
    ]


def _extract_inputs(document: Tag, body: Tag) -> List[InputElement]:
    inputs = []
    for tag in body.find_all(INPUT_TAGS):
        if tag.name == "input":
            kind = (tag.get("type") or "text").strip().lower()
            if kind == "hidden":
                continue
        else:
            kind = tag.name
        inputs.append(InputElement(
            kind=kind,
            label=_label_for(document, tag),
            placeholder=tag.get("placeholder"),
        ))
    return inputs


def _extract_buttons(document: Tag, body: Tag) -> List[ButtonElement]:
    return [
        ButtonElement(
            kind=(tag.get("type") or "submit").strip().lower(),
            label=_label_for(document, tag),
        )
        for tag in body.find_all("button")
    ]


def _extract_forms(document: Tag, body: Tag) -> List[FormElement]:
    return [
        FormElement(kind="form", label=_label_for(document, tag))
        for tag in body.find_all("form")
    ]


def _extract_interactive(document: Tag, body: Tag) -> List[InteractiveElement]:
    elements = []
    for tag in body.find_all(_is_interactive):
        role = (tag.get("role") or "").strip().lower()
        elements.append(InteractiveElement(
            kind=role if role in INTERACTIVE_ROLES else tag.name,
            label=_label_for(document, tag),
            id=tag.get("id") or None,
        ))
    return elements


def _is_interactive(tag: Tag) -> bool:
    if tag.name in _CLASSIFIED_TAGS:
        return False
    if tag.name in INTERACTIVE_TAGS:
        return True
    if tag.has_attr("onclick"):
        return True
    return (tag.get("role") or "").strip().lower() in INTERACTIVE_ROLES


# ---------------------------------------------------------------------------
# Text / label helpers
# ---------------------------------------------------------------------------

def _visible_text(tag: Tag) -> str:
    return clean_text(tag.get_text(" "))


def _label_for(document: Tag, tag: Tag) -> str:
    """
    Visible text of *tag*, falling back to its nearest accessible label.

    Fallback order: ``<label for=id>``, wrapping ``<label>``,
    ``aria-labelledby`` targets, then the ``title``, ``value`` and
    ``name`` attributes.
    """
    text = _visible_text(tag)
    if text:
        return text

    el_id = tag.get("id")
    if el_id:
        label = document.find("label", attrs={"for": el_id})
        if label is not None:
            text = _visible_text(label)
            if text:
                return text

    wrapper = tag.find_parent("label")
    if wrapper is not None:
        text = _visible_text(wrapper)
        if text:
            return text

    labelled_by = _labelled_by_text(document, tag.get("aria-labelledby"))
    if labelled_by:
        return labelled_by

    for attr in ("title", "value", "name"):
        value = tag.get(attr)
        if isinstance(value, str) and value.strip():
            return clean_text(value)
    return ""


def _labelled_by_text(document: Tag, ids: Optional[str]) -> str:
    if not ids:
        return ""
    parts = []
    for ref in ids.split():
        target = document.find(id=ref)
        if target is not None:
            parts.append(_visible_text(target))
    return clean_text(" ".join(parts))
