"""
LLM Formatter
=============
Deterministic, human-readable rendering of a ``PageRecord``.

Sections appear in a fixed order and only when they have something to
show; each is a ``## `` heading, a blank line, its entries, and exactly
one blank line after.  The same record always renders to the same string.

"Something to show" is decided after filtering: a navigation section whose
links are all text-less, or an interactive section whose elements are all
unlabelled, is left out entirely rather than rendered as a bare heading.
Page Content follows the same rule and is omitted for an empty body.
"""

from __future__ import annotations

from typing import List

from .models import PageRecord


def format_for_llm(record: PageRecord) -> str:
    """Render *record* as Markdown-flavoured text for documentation prompts."""
    parts = [
        f"# {record.title}\n\n",
        f"**URL:** {record.url}\n\n",
    ]

    parts.append(_section("Page Structure", [
        f"{'  ' * (h.level - 1)}- {h.text}" for h in record.headings
    ]))

    parts.append(_section("Available Navigation", [
        f"- {link.text}: {link.href}" for link in record.navigation_links if link.text
    ]))

    parts.append(_section("Interactive Elements", [
        f'- **{el.kind.upper()}**: "{el.label}"' + (f" (ID: {el.id})" if el.id else "")
        for el in record.interactive_elements
        if el.label
    ]))

    parts.append(_section("Input Elements", [
        f'- **{el.kind.upper()}**: "{el.label}"'
        + (f' (placeholder: "{el.placeholder}")' if el.placeholder else "")
        for el in record.inputs
    ]))

    parts.append(_section("Button Elements", [
        f'- **{el.kind.upper()}**: "{el.label}"' for el in record.buttons
    ]))

    parts.append(_section("Form Elements", [
        f'- **{el.kind.upper()}**: "{el.label}"' for el in record.forms
    ]))

    if record.text_content:
        parts.append(f"## Page Content\n\n{record.text_content}\n")

    return "".join(parts)


def _section(heading: str, lines: List[str]) -> str:
    if not lines:
        return ""
    return f"## {heading}\n\n" + "".join(f"{line}\n" for line in lines) + "\n"
