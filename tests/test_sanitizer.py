"""
Tests for sanitizer.py.

Covers:
  1. Removal of non-semantic elements and comments
  2. Attribute stripping (presentation attributes, data-*)
  3. Empty-leaf removal and fixed-point collapse of empty containers
  4. Error on documents without a <body>
"""

import pytest

from dashcrawl.errors import ExtractionError
from dashcrawl.sanitizer import parse_html, sanitize, sanitize_html


def _clean(body_markup: str) -> str:
    return sanitize_html(f"<html><head><title>t</title></head><body>{body_markup}</body></html>")


# ====================================================================
# 1. Non-semantic nodes
# ====================================================================

class TestNonSemanticRemoval:
    """Scripts, styles, media and comments never survive sanitization."""

    def test_script_and_style_removed(self):
        out = _clean('<p>Hello</p><script>var x = 1;</script><style>p {}</style>')
        assert out == "<p>Hello</p>"

    def test_media_removed(self):
        out = _clean('<p>A<br>B</p><img src="a.png"><svg><path d="M0"></path></svg><hr>')
        assert "<img" not in out
        assert "<svg" not in out
        assert "<path" not in out
        assert "<br" not in out
        assert "<hr" not in out

    def test_route_announcer_removed(self):
        out = _clean('<main>Dash</main><next-route-announcer>x</next-route-announcer>')
        assert out == "<main>Dash</main>"

    def test_comments_removed(self):
        out = _clean('<p>Visible<!-- hidden note --></p><!-- top level -->')
        assert "<!--" not in out
        assert "hidden note" not in out
        assert out == "<p>Visible</p>"


# ====================================================================
# 2. Attributes
# ====================================================================

class TestAttributeStripping:
    """Presentation attributes go; structure-bearing ones stay."""

    def test_presentation_attributes_removed(self):
        out = _clean(
            '<button class="btn" style="color:red" tabindex="0" aria-label="Go" '
            'aria-expanded="false" type="button">Go</button>'
        )
        assert out == '<button type="button">Go</button>'

    def test_data_attributes_removed(self):
        out = _clean('<section data-testid="card" data-v-123="">Card</section>')
        assert out == "<section>Card</section>"

    def test_link_attributes(self):
        out = _clean('<a href="/events" target="_blank" rel="noopener">Events</a>')
        assert out == '<a href="/events">Events</a>'

    def test_id_and_role_kept(self):
        out = _clean('<nav id="menu" role="navigation" class="x">Menu</nav>')
        assert out == '<nav id="menu" role="navigation">Menu</nav>'


# ====================================================================
# 3. Empty wrappers
# ====================================================================

class TestEmptyWrappers:
    """Empty leaves go first, then empty containers collapse to a fixed point."""

    def test_documented_example(self):
        out = _clean('<div><span></span><p>  </p><a href="/x">Go</a></div>')
        assert out == '<div><a href="/x">Go</a></div>'

    def test_nested_empty_wrappers_collapse(self):
        out = _clean('<div><div><span> </span></div></div><p>Hi</p>')
        assert out == "<p>Hi</p>"

    def test_wrapper_emptied_by_removal_collapses(self):
        """A div whose only child was a script disappears too."""
        out = _clean('<div><span><script>x()</script></span></div><p>Hi</p>')
        assert out == "<p>Hi</p>"

    def test_deep_empty_chain(self):
        out = _clean("<div>" * 6 + "</div>" * 6 + "<p>End</p>")
        assert out == "<p>End</p>"

    def test_element_with_id_preserved(self):
        """Mount points (id) are kept even when empty."""
        out = _clean('<div id="root"></div><p>x</p>')
        assert out == '<div id="root"></div><p>x</p>'

    def test_container_with_meaningful_child_kept(self):
        out = _clean('<div><span><input type="checkbox"></span></div>')
        assert '<input type="checkbox"/>' in out
        assert out.startswith("<div><span>")

    def test_other_empty_tags_kept(self):
        """Only div/span/p are treated as empty wrappers."""
        out = _clean("<section></section><p>x</p>")
        assert out == "<section></section><p>x</p>"

    def test_idempotent(self):
        once = _clean('<div class="a"><span></span><p>Text <b>bold</b></p></div>')
        twice = _clean(once)
        assert once == twice


# ====================================================================
# 4. Errors / API shape
# ====================================================================

class TestSanitizeApi:

    def test_sanitize_mutates_document_in_place(self):
        doc = parse_html("<html><body><p class='x'>Hi</p><script>1</script></body></html>")
        out = sanitize(doc)
        assert out == "<p>Hi</p>"
        assert doc.find("script") is None
        assert doc.p.get("class") is None

    def test_missing_body_raises(self):
        fragment = parse_html("<p>orphan</p>").p
        with pytest.raises(ExtractionError) as exc:
            sanitize(fragment, url="https://example.com/x")
        assert exc.value.url == "https://example.com/x"

    def test_body_tag_accepted_directly(self):
        doc = parse_html("<html><body><p>Hi</p></body></html>")
        assert sanitize(doc.body) == "<p>Hi</p>"
