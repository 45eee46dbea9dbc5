"""
Structured Word Document Exporter
===================================
Produces a DOCX report from the pages of a dashboard crawl.

Features:
- Cover page with crawl summary statistics
- Auto-generated Table of Contents (TOC)
- Page heading hierarchy preserved (H1–H6 → Word Heading 2–6)
- Navigation links and interactive controls as compact tables
- Page text split into readable paragraphs
- Page breaks between pages
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from .models import PageOutput, PageRecord

logger = logging.getLogger(__name__)


def export_docx(
    outputs: Sequence[PageOutput],
    filepath: str,
    stats: Optional[Dict] = None,
    *,
    include_toc: bool = True,
    max_content_chars: int = 20_000,
) -> str:
    """
    Export crawled pages to a structured Word document.

    Args:
        outputs: Pages in the order they should appear
        filepath: Output .docx path
        stats: Crawl stats dict (as returned in ``CrawlResult.stats``)
        include_toc: Whether to insert a TOC field
        max_content_chars: Max chars of page text per section

    Returns:
        Absolute path to the created file
    """
    from docx import Document
    from docx.shared import Pt
    from docx.enum.text import WD_ALIGN_PARAGRAPH
    from docx.enum.table import WD_TABLE_ALIGNMENT

    output_path = Path(filepath)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    stats = stats or {}

    doc = Document()

    # ── Configure base styles ──────────────────────────────────────
    style = doc.styles["Normal"]
    style.font.name = "Calibri"
    style.font.size = Pt(10)
    style.paragraph_format.space_after = Pt(4)

    # ── Cover Page ─────────────────────────────────────────────────
    title = doc.add_heading("Dashboard Crawl Report", level=0)
    title.alignment = WD_ALIGN_PARAGRAPH.CENTER

    total_words = sum(o.record.word_count for o in outputs)
    summary_items = [
        ("Scope", str(stats.get("scope", "N/A"))),
        ("Pages Extracted", str(len(outputs))),
        ("Pages Skipped", str(stats.get("pages_skipped", 0))),
        ("Pages Failed", str(stats.get("pages_failed", 0))),
        ("Total Words", f"{total_words:,}"),
        ("Elapsed Time", f"{stats.get('elapsed_sec', 0)}s"),
        ("Stop Reason", str(stats.get("stop_reason", "N/A"))),
    ]

    summary_table = doc.add_table(rows=len(summary_items), cols=2)
    summary_table.alignment = WD_TABLE_ALIGNMENT.CENTER
    for i, (label, value) in enumerate(summary_items):
        row = summary_table.rows[i]
        _cell_text(row.cells[0], label, bold=True, size=Pt(10))
        _cell_text(row.cells[1], value, size=Pt(10))

    doc.add_page_break()

    # ── Table of Contents ──────────────────────────────────────────
    if include_toc:
        doc.add_heading("Table of Contents", level=1)
        _add_toc_field(doc)
        doc.add_page_break()

    # ── Per-Page Sections ──────────────────────────────────────────
    for idx, output in enumerate(outputs):
        _render_page(doc, output, max_content_chars)
        if idx < len(outputs) - 1:
            doc.add_page_break()

    doc.save(str(output_path))
    logger.info(f"Exported DOCX to {output_path.absolute()}")
    return str(output_path.absolute())


# ---------------------------------------------------------------------------
# Per-page rendering
# ---------------------------------------------------------------------------

def _render_page(doc, output: PageOutput, max_content_chars: int) -> None:
    """Render a single crawled page into the Word document."""
    from docx.shared import Pt, RGBColor

    record = output.record
    doc.add_heading((record.title or output.url)[:120], level=1)

    url_para = doc.add_paragraph()
    url_run = url_para.add_run(output.url)
    url_run.font.color.rgb = RGBColor(0x25, 0x63, 0xEB)
    url_run.font.size = Pt(9)

    if output.discovered_from:
        src_para = doc.add_paragraph()
        src_label = src_para.add_run("Linked from: ")
        src_label.bold = True
        src_label.font.size = Pt(9)
        src_value = src_para.add_run(output.discovered_from)
        src_value.font.size = Pt(9)
        src_value.font.color.rgb = RGBColor(0x64, 0x74, 0x8B)

    # ── Page structure ─────────────────────────────────────────────
    if record.headings:
        doc.add_heading("Page Structure", level=2)
        for heading in record.headings:
            p = doc.add_paragraph(heading.text[:200], style="List Bullet")
            p.paragraph_format.left_indent = Pt(12 * (heading.level - 1))

    # ── Navigation ─────────────────────────────────────────────────
    nav_rows = [(link.text, link.href) for link in record.navigation_links if link.text]
    if nav_rows:
        doc.add_heading("Available Navigation", level=2)
        _render_table(doc, ("Link", "Target"), nav_rows)

    # ── Controls ───────────────────────────────────────────────────
    control_rows = _control_rows(record)
    if control_rows:
        doc.add_heading("Controls", level=2)
        _render_table(doc, ("Kind", "Label", "Detail"), control_rows)

    # ── Text ───────────────────────────────────────────────────────
    content = record.text_content
    if content:
        doc.add_heading("Page Content", level=2)
        if len(content) > max_content_chars:
            content = content[:max_content_chars]
            truncated = True
        else:
            truncated = False
        for para_text in _paragraphs(content):
            p = doc.add_paragraph(para_text)
            for run in p.runs:
                run.font.size = Pt(10)
        if truncated:
            p = doc.add_paragraph("[... content truncated ...]")
            p.runs[0].font.italic = True
            p.runs[0].font.size = Pt(9)


def _control_rows(record: PageRecord) -> List[Tuple[str, str, str]]:
    rows: List[Tuple[str, str, str]] = []
    for el in record.interactive_elements:
        if el.label:
            rows.append((el.kind.upper(), el.label, f"id={el.id}" if el.id else ""))
    for inp in record.inputs:
        rows.append((inp.kind.upper(), inp.label, f"placeholder={inp.placeholder}" if inp.placeholder else ""))
    for btn in record.buttons:
        rows.append((btn.kind.upper(), btn.label, "button"))
    for form in record.forms:
        rows.append((form.kind.upper(), form.label, ""))
    return rows


def _render_table(doc, header: Sequence[str], rows: Sequence[Sequence[str]]) -> None:
    """Render rows as a Word table with a bold header."""
    from docx.shared import Pt
    from docx.enum.table import WD_TABLE_ALIGNMENT

    table = doc.add_table(rows=1 + len(rows), cols=len(header))
    table.alignment = WD_TABLE_ALIGNMENT.LEFT
    table.style = "Table Grid"

    for i, label in enumerate(header):
        _cell_text(table.rows[0].cells[i], label, bold=True, size=Pt(9))
    for row_idx, row in enumerate(rows):
        for col_idx, value in enumerate(row[:len(header)]):
            _cell_text(table.rows[row_idx + 1].cells[col_idx], value[:300], size=Pt(9))

    doc.add_paragraph()  # spacing after table


def _paragraphs(text: str, max_len: int = 1200) -> List[str]:
    """Split flattened page text into paragraph-sized pieces on sentence ends."""
    pieces: List[str] = []
    current = ""
    for sentence in text.replace(". ", ".\n").split("\n"):
        if current and len(current) + len(sentence) + 1 > max_len:
            pieces.append(current)
            current = sentence
        else:
            current = f"{current} {sentence}" if current else sentence
    if current:
        pieces.append(current)
    return pieces


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _cell_text(cell, text: str, bold: bool = False, size=None) -> None:
    """Set cell text with formatting."""
    cell.text = text
    for paragraph in cell.paragraphs:
        for run in paragraph.runs:
            run.bold = bold
            if size:
                run.font.size = size


def _add_toc_field(doc) -> None:
    """Insert a Word TOC field code (updates on open in Word)."""
    from docx.oxml.ns import qn
    from docx.oxml import OxmlElement

    paragraph = doc.add_paragraph()
    run = paragraph.add_run()

    fld_char_begin = OxmlElement("w:fldChar")
    fld_char_begin.set(qn("w:fldCharType"), "begin")
    run._element.append(fld_char_begin)

    instr_text = OxmlElement("w:instrText")
    instr_text.set(qn("xml:space"), "preserve")
    instr_text.text = ' TOC \\o "1-2" \\h \\z \\u '
    run._element.append(instr_text)

    fld_char_separate = OxmlElement("w:fldChar")
    fld_char_separate.set(qn("w:fldCharType"), "separate")
    run._element.append(fld_char_separate)

    placeholder_run = paragraph.add_run(
        "[Open in Microsoft Word and press F9 to update Table of Contents]"
    )
    placeholder_run.font.italic = True

    fld_char_end = OxmlElement("w:fldChar")
    fld_char_end.set(qn("w:fldCharType"), "end")
    run._element.append(fld_char_end)
