"""
Tests for output sinks and the DOCX exporter.
"""

import json

from dashcrawl.models import Heading, Link, PageOutput, PageRecord
from dashcrawl.sinks import CompositeSink, DatasetSink, MarkdownSink, MemorySink, slug_from_url
from dashcrawl.word_exporter import export_docx


def _output(url="https://app.example.com/events", discovered_from=None):
    record = PageRecord(
        title="Events",
        url=url,
        headings=(Heading(1, "Events"), Heading(2, "Upcoming")),
        navigation_links=(Link("Home", "/"),),
        text_content="Events Upcoming Two events this week.",
    )
    return PageOutput(
        title="Events",
        url=url,
        html="<h1>Events</h1>",
        record=record,
        formatted="# Events\n\n**URL:** " + url + "\n\n",
        discovered_from=discovered_from,
    )


class TestDatasetSink:

    def test_numbered_json_files(self, tmp_path):
        sink = DatasetSink(str(tmp_path / "dataset"))
        sink.push(_output())
        sink.push(_output("https://app.example.com/settings", discovered_from="https://app.example.com/"))

        files = sorted(p.name for p in (tmp_path / "dataset").iterdir())
        assert files == ["000000001.json", "000000002.json"]
        assert sink.count == 2

        data = json.loads((tmp_path / "dataset" / "000000002.json").read_text(encoding="utf-8"))
        assert set(data) == {"title", "url", "timestamp", "html", "record", "formatted", "discoveredFrom"}
        assert data["discoveredFrom"] == "https://app.example.com/"
        assert data["record"]["headings"][1] == {"level": 2, "text": "Upcoming", "anchor_id": None}


class TestMarkdownSink:

    def test_writes_formatted_text(self, tmp_path):
        sink = MarkdownSink(str(tmp_path / "md"))
        out = _output()
        sink.push(out)
        path = tmp_path / "md" / f"{slug_from_url(out.url)}.md"
        assert path.read_text(encoding="utf-8") == out.formatted

    def test_slug_from_url(self):
        slug = slug_from_url("https://app.example.com/a/b?x=1")
        assert slug.startswith("app_example_com_a_b_x_1_")
        assert len(slug.rsplit("_", 1)[1]) == 8
        assert slug_from_url("https://app.example.com/a/b?x=1") == slug

    def test_similar_urls_get_distinct_files(self, tmp_path):
        """``/a/b`` and ``/a_b`` flatten to the same text; neither file overwrites the other."""
        sink = MarkdownSink(str(tmp_path / "md"))
        sink.push(_output("https://app.example.com/a/b"))
        sink.push(_output("https://app.example.com/a_b"))
        assert len(list((tmp_path / "md").iterdir())) == 2

    def test_long_urls_differing_at_the_end(self, tmp_path):
        stem = "https://app.example.com/" + "x" * 200
        a, b = slug_from_url(stem + "/one"), slug_from_url(stem + "/two")
        assert a != b
        assert len(a) <= 129


class TestCompositeSink:

    def test_fans_out(self):
        a, b = MemorySink(), MemorySink()
        CompositeSink(a, b).push(_output())
        assert len(a) == len(b) == 1

    def test_empty_composite_is_noop(self):
        CompositeSink().push(_output())


class TestDocxExport:

    def test_report_written(self, tmp_path):
        from docx import Document

        path = export_docx(
            [_output(), _output("https://app.example.com/settings", "https://app.example.com/")],
            str(tmp_path / "out" / "report.docx"),
            {"scope": "Registrable domain: example.com", "pages_failed": 1, "stop_reason": "Queue exhausted"},
        )
        doc = Document(path)
        text = "\n".join(p.text for p in doc.paragraphs)
        assert "Dashboard Crawl Report" in text
        assert "https://app.example.com/settings" in text
        assert "Upcoming" in text
        cover = doc.tables[0]
        assert cover.rows[1].cells[1].text == "2"

    def test_no_stats(self, tmp_path):
        path = export_docx([], str(tmp_path / "empty.docx"), include_toc=False)
        assert (tmp_path / "empty.docx").exists()
        assert path.endswith("empty.docx")
