"""
Unit tests for the node model and tag classification helpers.
"""

import pytest
from bs4 import Tag
from bs4.element import CData, ProcessingInstruction

from htmlsift.errors import UpstreamParseError
from htmlsift.extractor import dom
from htmlsift.extractor.dom import NodeKind, TagClass


class TestNodeKinds:
    """Classification of BeautifulSoup nodes."""

    def test_document_element_and_text(self):
        """Document, element and text nodes map to their kinds."""
        soup = dom.parse_document("<p>hi</p>")
        paragraph = soup.find("p")

        assert dom.node_kind(soup) is NodeKind.DOCUMENT
        assert dom.node_kind(paragraph) is NodeKind.ELEMENT
        assert dom.node_kind(paragraph.contents[0]) is NodeKind.TEXT

    def test_comment_and_doctype(self):
        """Comments and doctypes are not text."""
        soup = dom.parse_document("<!DOCTYPE html><!-- note --><p>x</p>")
        kinds = [dom.node_kind(node) for node in soup.contents]

        assert NodeKind.DOCTYPE in kinds
        assert NodeKind.COMMENT in kinds

    def test_non_content_markup_is_error_kind(self):
        """CDATA sections and processing instructions are classed as error nodes."""
        assert dom.node_kind(CData("raw")) is NodeKind.ERROR
        assert dom.node_kind(ProcessingInstruction("xml version='1.0'")) is NodeKind.ERROR

    def test_attributes_are_plain_strings(self):
        """class and rel are not split into lists."""
        soup = dom.parse_document('<a class="one two" rel="nofollow noopener" href="/x">x</a>')
        anchor = soup.find("a")

        assert anchor["class"] == "one two"
        assert dom.attr(anchor, "rel") == "nofollow noopener"
        assert dom.attr(anchor, "missing") == ""


class TestTagClasses:
    """Static tag classification table."""

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("p", TagClass.BLOCK),
            ("H2", TagClass.BLOCK),
            ("span", TagClass.INLINE),
            ("img", TagClass.MEDIA),
            ("iframe", TagClass.MEDIA),
            ("a", TagClass.LINK),
            ("script", TagClass.SCRIPT),
            ("noscript", TagClass.SCRIPT),
            ("form", TagClass.EXCLUDED),
            ("custom-element", TagClass.INLINE),
        ],
    )
    def test_tag_class(self, name, expected):
        assert dom.tag_class(name) is expected

    def test_unknown_name(self):
        assert dom.tag_class(None) is TagClass.INLINE


class TestKeywordMatching:
    """Negative keyword matching on tag, id and class tokens."""

    def _tag(self, markup: str) -> Tag:
        soup = dom.parse_document(markup)
        return next(node for node in soup.descendants if isinstance(node, Tag))

    def test_tag_name_matches(self):
        assert dom.matches_keywords(self._tag("<nav>x</nav>"), dom.NEGATIVE_KEYWORDS)

    def test_class_token_matches(self):
        assert dom.matches_keywords(self._tag('<div class="left-sidebar">x</div>'), dom.NEGATIVE_KEYWORDS)
        assert dom.matches_keywords(self._tag('<div id="AD_slot">x</div>'), dom.NEGATIVE_KEYWORDS)

    def test_substrings_do_not_match(self):
        """'ad' inside 'heading' or 'reading' is not the 'ad' keyword."""
        assert not dom.matches_keywords(self._tag('<div class="heading reading">x</div>'), dom.NEGATIVE_KEYWORDS)

    def test_hidden_elements_are_boilerplate(self):
        assert dom.is_boilerplate(self._tag('<div style="display: none">x</div>'))
        assert dom.is_boilerplate(self._tag("<div hidden>x</div>"))
        assert not dom.is_boilerplate(self._tag('<div class="story">x</div>'))


class TestUrls:
    """URL resolution and external detection."""

    def test_resolve_relative(self):
        assert dom.resolve_url("img/a.png", "https://example.com/post/") == "https://example.com/post/img/a.png"

    def test_no_base_leaves_url_as_is(self):
        assert dom.resolve_url(" /a/b ", None) == "/a/b"

    def test_external_against_base(self):
        assert dom.is_external("https://other.example/x", "https://example.com")
        assert not dom.is_external("https://EXAMPLE.com/x", "https://example.com")

    def test_external_without_base(self):
        assert dom.is_external("//cdn.example.net/x.js", None)
        assert not dom.is_external("/relative/path", None)
        assert not dom.is_external("mailto:someone@example.com", None)


class TestParse:
    """Tree builder boundary."""

    def test_parse_failure_is_wrapped(self, monkeypatch):
        """Builder exceptions surface as UpstreamParseError with the cause attached."""

        def boom(*args, **kwargs):
            raise RuntimeError("builder exploded")

        monkeypatch.setattr(dom, "BeautifulSoup", boom)
        with pytest.raises(UpstreamParseError) as exc_info:
            dom.parse_document("<p>x</p>")

        assert isinstance(exc_info.value.__cause__, RuntimeError)
