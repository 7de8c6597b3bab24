"""
Read-only view over the BeautifulSoup tree.

BeautifulSoup (``html.parser`` backend) is the tree builder; this module
classifies its nodes into a small fixed set of kinds, maps tag names to a
static ``TagClass`` table, and provides the attribute/keyword helpers shared by
the scorer and the content processors. Nothing here mutates the tree.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Iterable
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup, Comment, Doctype, NavigableString, Tag
from bs4.element import CData, Declaration, PageElement, ProcessingInstruction

from htmlsift.errors import UpstreamParseError


class NodeKind(Enum):
    DOCUMENT = "document"
    ELEMENT = "element"
    TEXT = "text"
    COMMENT = "comment"
    DOCTYPE = "doctype"
    ERROR = "error"


class TagClass(Enum):
    BLOCK = "block"
    INLINE = "inline"
    MEDIA = "media"
    LINK = "link"
    SCRIPT = "script"
    EXCLUDED = "excluded"


def _table() -> dict[str, TagClass]:
    groups = {
        TagClass.BLOCK: (
            "html body p div article section main blockquote pre ul ol li dl dt dd "
            "table thead tbody tfoot tr td th caption br hr figure figcaption header "
            "footer nav aside address details summary h1 h2 h3 h4 h5 h6"
        ),
        TagClass.MEDIA: "img picture video audio source track iframe embed object",
        TagClass.LINK: "a area",
        TagClass.SCRIPT: "script style noscript template",
        TagClass.EXCLUDED: "form input button select textarea option svg canvas head meta link base title",
    }
    return {name: cls for cls, names in groups.items() for name in names.split()}


TAG_CLASSES: dict[str, TagClass] = _table()

# Tags that never contribute content once sanitization is on.
SANITIZED_CLASSES = frozenset({TagClass.SCRIPT, TagClass.EXCLUDED})

NEGATIVE_KEYWORDS = frozenset(
    {
        "nav",
        "navigation",
        "footer",
        "aside",
        "comment",
        "comments",
        "sidebar",
        "ad",
        "ads",
        "advert",
        "advertisement",
        "sponsor",
        "sponsored",
        "promo",
        "banner",
        "menu",
    }
)

# Structural boilerplate pruned from text, media and link scopes.
BOILERPLATE_TAGS = frozenset({"nav", "aside", "footer", "header", "form"})

_TOKEN_SPLIT = re.compile(r"[^a-z0-9]+")
_WHITESPACE = re.compile(r"\s+")
_HIDDEN_STYLE = re.compile(r"display\s*:\s*none|visibility\s*:\s*hidden", re.IGNORECASE)


def parse_document(markup: str) -> BeautifulSoup:
    """Build the tree, wrapping any builder failure in ``UpstreamParseError``."""
    try:
        return BeautifulSoup(markup, "html.parser", multi_valued_attributes=None)
    except Exception as exc:  # tree builder is an external collaborator
        raise UpstreamParseError(f"HTML tree builder failed: {exc}") from exc


def node_kind(node: PageElement) -> NodeKind:
    if isinstance(node, BeautifulSoup):
        return NodeKind.DOCUMENT
    if isinstance(node, Tag):
        return NodeKind.ELEMENT
    if isinstance(node, Comment):
        return NodeKind.COMMENT
    if isinstance(node, Doctype):
        return NodeKind.DOCTYPE
    if isinstance(node, (CData, Declaration, ProcessingInstruction)):
        return NodeKind.ERROR
    if isinstance(node, NavigableString):
        return NodeKind.TEXT
    return NodeKind.ERROR


def tag_class(name: str | None) -> TagClass:
    if not name:
        return TagClass.INLINE
    return TAG_CLASSES.get(name.lower(), TagClass.INLINE)


def is_sanitized(tag: Tag) -> bool:
    return tag_class(tag.name) in SANITIZED_CLASSES


def attr(tag: Tag, name: str) -> str:
    value = tag.attrs.get(name)
    if value is None:
        return ""
    if isinstance(value, list):
        return " ".join(value)
    return str(value)


def tokens(value: str) -> set[str]:
    return {t for t in _TOKEN_SPLIT.split(value.lower()) if t}


def matches_keywords(tag: Tag, keywords: Iterable[str]) -> bool:
    """True when the tag name, an id token or a class token is a keyword."""
    keywords = keywords if isinstance(keywords, (set, frozenset)) else set(keywords)
    if tag.name and tag.name.lower() in keywords:
        return True
    return not keywords.isdisjoint(tokens(attr(tag, "id")) | tokens(attr(tag, "class")))


def is_hidden(tag: Tag) -> bool:
    if "hidden" in tag.attrs or attr(tag, "aria-hidden").lower() == "true":
        return True
    return bool(_HIDDEN_STYLE.search(attr(tag, "style")))


def is_boilerplate(tag: Tag) -> bool:
    """Elements pruned from the extraction scope below its root."""
    if tag.name in BOILERPLATE_TAGS or is_hidden(tag):
        return True
    return matches_keywords(tag, NEGATIVE_KEYWORDS)


def collapse_whitespace(value: str) -> str:
    return _WHITESPACE.sub(" ", value)


def normalized_text(value: str) -> str:
    return " ".join(value.split())


def element_depth(node: PageElement) -> int:
    depth = 0
    parent = node.parent
    while parent is not None:
        depth += 1
        parent = parent.parent
    return depth


def resolve_url(url: str, base_url: str | None) -> str:
    url = url.strip()
    if not base_url or not url:
        return url
    return urljoin(base_url, url)


def host_of(url: str) -> str:
    try:
        return (urlparse(url).hostname or "").lower()
    except ValueError:
        return ""


def is_external(url: str, base_url: str | None) -> bool:
    """Host differs from the base URL's host, or is absolute when no base is set."""
    host = host_of(url)
    if not host:
        return False
    if base_url:
        return host != host_of(base_url)
    return True
