"""
Content processors that turn the selected content root into structured data.

- Text: plain text with block-aware line breaks and optional inline images
- Title: document title with a heading fallback
- Media: images, videos and audios with resolved URLs
- Links: anchors with external / nofollow classification

Each processor makes its own guarded pass over its scope. Boilerplate
descendants (navigation, footers, hidden elements, ...) are pruned from every
scope the same way, so image positions agree between Text and Media.
"""

from __future__ import annotations

import html
import re
from collections import Counter
from dataclasses import dataclass
from datetime import timedelta
from pathlib import PurePosixPath
from typing import Callable
from urllib.parse import urlparse

import structlog
from bs4 import BeautifulSoup, Tag
from bs4.element import PageElement

from htmlsift.config.config import ExtractConfig, InlineImageFormat, TableFormat

from .dom import (
    NodeKind,
    TagClass,
    attr,
    collapse_whitespace,
    is_boilerplate,
    is_external,
    is_sanitized,
    node_kind,
    normalized_text,
    resolve_url,
    tag_class,
)
from .guard import ResourceGuard, Visit
from .models import AudioInfo, ImageInfo, LinkInfo, VideoInfo

logger = structlog.get_logger(__name__)

VIDEO_TYPES = {
    ".mp4": "video/mp4",
    ".m4v": "video/mp4",
    ".webm": "video/webm",
    ".ogg": "video/ogg",
    ".ogv": "video/ogg",
    ".mov": "video/quicktime",
    ".avi": "video/x-msvideo",
    ".wmv": "video/x-ms-wmv",
    ".flv": "video/x-flv",
    ".mkv": "video/x-matroska",
    ".3gp": "video/3gpp",
}

AUDIO_TYPES = {
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".ogg": "audio/ogg",
    ".oga": "audio/ogg",
    ".m4a": "audio/mp4",
    ".aac": "audio/aac",
    ".flac": "audio/flac",
    ".wma": "audio/x-ms-wma",
    ".opus": "audio/opus",
}

EMBED_PATTERNS = (
    "youtube.com/embed/",
    "youtube-nocookie.com/embed/",
    "player.vimeo.com/video/",
    "dailymotion.com/embed/",
    "player.youku.com/",
    "v.qq.com/",
    "bilibili.com/",
)


def scope_filter(sanitize: bool) -> Callable[[Tag], bool]:
    """Skip predicate shared by all content-scope walks."""
    if sanitize:
        return lambda tag: is_sanitized(tag) or is_boilerplate(tag)
    return is_boilerplate


def _extension(url: str) -> str:
    try:
        path = urlparse(url).path
    except ValueError:
        return ""
    return PurePosixPath(path).suffix.lower()


def video_type(url: str) -> str:
    mime = VIDEO_TYPES.get(_extension(url))
    if mime:
        return mime
    lowered = url.lower()
    if any(pattern in lowered for pattern in EMBED_PATTERNS):
        return "embed"
    return ""


def audio_type(url: str) -> str:
    return AUDIO_TYPES.get(_extension(url), "")


def image_from_tag(tag: Tag, base_url: str | None, position: int, max_url_length: int) -> ImageInfo | None:
    src = attr(tag, "src").strip()
    if not src:
        return None
    url = resolve_url(src, base_url)
    if len(url) > max_url_length:
        return None
    alt = normalized_text(attr(tag, "alt"))
    return ImageInfo(
        url=url,
        alt=alt,
        title=normalized_text(attr(tag, "title")),
        width=attr(tag, "width"),
        height=attr(tag, "height"),
        is_decorative=not alt,
        position=position,
    )


_ALIGN_STYLE = re.compile(r"text-align\s*:\s*(left|center|right|justify)", re.IGNORECASE)
_WIDTH_STYLE = re.compile(r"(?:^|;)\s*width\s*:\s*([^;\"'}]+)", re.IGNORECASE)

# Browsers clamp spans to these values.
MAX_COLSPAN = 1000
MAX_ROWSPAN = 65534


def _pruned(node: PageElement, stop: Tag, skip: Callable[[Tag], bool]) -> bool:
    """True when an element between ``node`` and ``stop`` is skipped."""
    parent = node.parent
    while parent is not None and parent is not stop:
        if skip(parent):
            return True
        parent = parent.parent
    return False


@dataclass(slots=True)
class TableCell:
    text: str
    align: str = ""
    colspan: int = 1
    rowspan: int = 1
    is_header: bool = False
    width: str = ""
    placeholder: bool = False


class TableProcessor:
    """
    HTML table renderer with structure preservation.

    Markdown output expands ``colspan`` into empty cells, pads every column
    to its widest cell and picks each column's alignment by majority vote
    over the cells' ``align`` attribute or ``text-align`` style. HTML output
    keeps spans, alignment and widths as attributes.
    """

    def render(self, table: Tag, mode: TableFormat, skip: Callable[[Tag], bool] | None = None) -> str:
        rows = [cells for cells in (self._row_cells(row, skip) for row in self._rows(table)) if cells]
        if not rows:
            return ""
        if mode is TableFormat.HTML:
            return self._render_html(rows)
        return self._render_markdown(rows)

    @staticmethod
    def _rows(table: Tag):
        """Rows of this table, not of tables nested in its cells."""
        for row in table.find_all("tr"):
            if row.find_parent("table") is table:
                yield row

    def _row_cells(self, row: Tag, skip: Callable[[Tag], bool] | None) -> list[TableCell]:
        cells = []
        for child in row.children:
            if not isinstance(child, Tag) or child.name not in ("td", "th"):
                continue
            cells.append(
                TableCell(
                    text=self._cell_text(child, skip),
                    align=self._align(child),
                    colspan=self._span(child, "colspan", MAX_COLSPAN),
                    rowspan=self._span(child, "rowspan", MAX_ROWSPAN),
                    is_header=child.name == "th",
                    width=self._width(child),
                )
            )
        return cells

    @staticmethod
    def _cell_text(cell: Tag, skip: Callable[[Tag], bool] | None) -> str:
        pieces = []
        for string in cell.find_all(string=True):
            if node_kind(string) is not NodeKind.TEXT:
                continue
            if skip is not None and _pruned(string, cell, skip):
                continue
            pieces.append(str(string))
        return normalized_text("".join(pieces))

    @staticmethod
    def _span(cell: Tag, name: str, limit: int) -> int:
        value = attr(cell, name).strip()
        if not value.isdecimal() or int(value) < 1:
            return 1
        return min(int(value), limit)

    @staticmethod
    def _align(cell: Tag) -> str:
        value = attr(cell, "align").strip().lower()
        if value in ("left", "center", "right", "justify"):
            return value
        match = _ALIGN_STYLE.search(attr(cell, "style"))
        return match.group(1).lower() if match else ""

    @staticmethod
    def _width(cell: Tag) -> str:
        value = attr(cell, "width").strip()
        if value and value != "0":
            return value
        match = _WIDTH_STYLE.search(attr(cell, "style"))
        return match.group(1).strip() if match else ""

    @staticmethod
    def _is_structure_row(row: list[TableCell]) -> bool:
        """A row that only carries column widths."""
        return all(cell.width and not cell.text for cell in row)

    def _render_markdown(self, rows: list[list[TableCell]]) -> str:
        grid = [self._expand(row) for row in rows if not self._is_structure_row(row)]
        if not grid:
            return ""
        columns = max(len(row) for row in grid)
        for row in grid:
            row.extend(TableCell(text="") for _ in range(columns - len(row)))

        # Columns made only of colspan filler are dropped.
        keep = [i for i in range(columns) if not all(row[i].placeholder and not row[i].text for row in grid)]
        texts = [[row[i].text.replace("|", "\\|") for i in keep] for row in grid]
        aligns = [self._column_align(grid, i) for i in keep]
        widths = [max(3, *(len(line[j]) for line in texts)) for j in range(len(keep))]

        lines = [self._markdown_row(texts[0], aligns, widths), self._markdown_separator(aligns, widths)]
        lines.extend(self._markdown_row(line, aligns, widths) for line in texts[1:])
        return "\n".join(lines)

    @staticmethod
    def _expand(row: list[TableCell]) -> list[TableCell]:
        expanded = []
        for cell in row:
            expanded.append(cell)
            expanded.extend(
                TableCell(text="", align=cell.align, is_header=cell.is_header, placeholder=True)
                for _ in range(cell.colspan - 1)
            )
        return expanded

    @staticmethod
    def _column_align(grid: list[list[TableCell]], index: int) -> str:
        votes = Counter(
            row[index].align for row in grid if row[index].align and row[index].text and not row[index].placeholder
        )
        if votes["left"] and votes["right"]:
            return ""
        if votes:
            return votes.most_common(1)[0][0]
        return grid[0][index].align

    @staticmethod
    def _markdown_row(texts: list[str], aligns: list[str], widths: list[int]) -> str:
        cells = []
        for text, align, width in zip(texts, aligns, widths):
            if align == "right":
                cells.append(text.rjust(width))
            elif align == "center":
                cells.append(text.center(width))
            else:
                cells.append(text.ljust(width))
        return "| " + " | ".join(cells) + " |"

    @staticmethod
    def _markdown_separator(aligns: list[str], widths: list[int]) -> str:
        markers = []
        for align, width in zip(aligns, widths):
            if align == "left":
                markers.append(":" + "-" * (width - 1))
            elif align == "right":
                markers.append("-" * (width - 1) + ":")
            elif align == "center":
                markers.append(":" + "-" * (width - 2) + ":")
            else:
                markers.append("-" * width)
        return "| " + " | ".join(markers) + " |"

    @staticmethod
    def _render_html(rows: list[list[TableCell]]) -> str:
        lines = ["<table>"]
        for row in rows:
            lines.append("  <tr>")
            for cell in row:
                tag = "th" if cell.is_header else "td"
                style = ";".join(
                    part
                    for part in (
                        f"text-align:{cell.align}" if cell.align else "",
                        f"width:{cell.width}" if cell.width else "",
                    )
                    if part
                )
                attrs = f' style="{html.escape(style)}"' if style else ""
                if cell.colspan > 1:
                    attrs += f' colspan="{cell.colspan}"'
                if cell.rowspan > 1:
                    attrs += f' rowspan="{cell.rowspan}"'
                lines.append(f"    <{tag}{attrs}>{html.escape(cell.text, quote=False)}</{tag}>")
            lines.append("  </tr>")
        lines.append("</table>")
        return "\n".join(lines)


class TextProcessor:
    """
    Plain text of a scope with line breaks at block boundaries.

    Tables are rendered whole by ``TableProcessor`` and set off from the
    surrounding text by blank lines.
    """

    def __init__(self, tables: TableProcessor | None = None) -> None:
        self.tables = tables or TableProcessor()

    def extract(
        self,
        root: PageElement,
        guard: ResourceGuard,
        config: ExtractConfig,
        *,
        sanitize: bool = True,
        max_url_length: int = 2000,
    ) -> str:
        inline = config.inline_image_format if config.preserve_images else InlineImageFormat.NONE
        skip = scope_filter(sanitize)
        blocks: list[tuple[bool, str]] = []
        parts: list[str] = []
        position = 0
        table_depth = 0

        for visit, node in guard.walk(root, skip=skip):
            if isinstance(node, Tag):
                if node.name == "table" and node is not root:
                    if visit is Visit.LEAVE:
                        table_depth -= 1
                        continue
                    table_depth += 1
                    if table_depth == 1:
                        blocks.append((False, self.clean_text("".join(parts))))
                        blocks.append((True, self.tables.render(node, config.table_format, skip)))
                        parts = []
                elif visit is Visit.ENTER and node.name == "img" and inline is not InlineImageFormat.NONE:
                    # Images inside tables still take a position so Media numbering agrees.
                    image = image_from_tag(node, config.base_url, position + 1, max_url_length)
                    if image is not None:
                        position += 1
                        if not table_depth:
                            parts.append(f"\n{self.render_image(image, inline)}\n")
                elif not table_depth and tag_class(node.name) is TagClass.BLOCK:
                    parts.append("\n")
                continue
            if not table_depth and node_kind(node) is NodeKind.TEXT:
                parts.append(collapse_whitespace(str(node)))

        blocks.append((False, self.clean_text("".join(parts))))
        return self._join_blocks(blocks)

    @staticmethod
    def _join_blocks(blocks: list[tuple[bool, str]]) -> str:
        text = ""
        previous_table = False
        for is_table, block in blocks:
            if not block:
                continue
            if text:
                text += "\n\n" if is_table or previous_table else "\n"
            text += block
            previous_table = is_table
        return text

    @staticmethod
    def clean_text(text: str) -> str:
        """Collapse whitespace within lines and drop empty lines."""
        lines = (normalized_text(line) for line in text.split("\n"))
        return "\n".join(line for line in lines if line)

    @staticmethod
    def render_image(image: ImageInfo, mode: InlineImageFormat) -> str:
        if mode is InlineImageFormat.PLACEHOLDER:
            return f"[IMAGE:{image.position}]"
        if mode is InlineImageFormat.MARKDOWN:
            alt = image.alt or f"Image {image.position}"
            return f"![{alt}]({image.url})"
        rendered = f'<img src="{html.escape(image.url)}" alt="{html.escape(image.alt)}"'
        if image.width:
            rendered += f' width="{html.escape(image.width)}"'
        if image.height:
            rendered += f' height="{html.escape(image.height)}"'
        return rendered + ">"

    @staticmethod
    def word_count(text: str) -> int:
        return len(text.split())

    @staticmethod
    def reading_time(word_count: int, words_per_minute: int) -> timedelta:
        """Fractional minutes are kept."""
        if word_count <= 0:
            return timedelta()
        return timedelta(minutes=word_count / words_per_minute)


class TitleProcessor:
    """Document ``<title>``, else the first ``<h1>`` of the content root."""

    def extract(self, document: BeautifulSoup, content_root: PageElement, guard: ResourceGuard) -> str:
        for visit, node in guard.walk(document, skip=lambda tag: tag.name == "svg"):
            if visit is Visit.ENTER and isinstance(node, Tag) and node.name == "title":
                title = normalized_text(node.get_text())
                if title:
                    return title
                break

        for visit, node in guard.walk(content_root):
            if visit is Visit.ENTER and isinstance(node, Tag) and node.name == "h1":
                heading = normalized_text(node.get_text())
                if heading:
                    return heading
        return ""


class MediaProcessor:
    """
    Image, video and audio records for a scope.
    """

    def extract(
        self,
        root: PageElement,
        guard: ResourceGuard,
        config: ExtractConfig,
        *,
        sanitize: bool = True,
        max_url_length: int = 2000,
    ) -> tuple[tuple[ImageInfo, ...], tuple[VideoInfo, ...], tuple[AudioInfo, ...]]:
        images: list[ImageInfo] = []
        videos: dict[str, VideoInfo] = {}
        audios: dict[str, AudioInfo] = {}
        base_url = config.base_url

        for visit, node in guard.walk(root, skip=scope_filter(sanitize)):
            if visit is not Visit.ENTER or not isinstance(node, Tag):
                continue
            name = node.name
            if name == "img" and config.preserve_images:
                image = image_from_tag(node, base_url, len(images) + 1, max_url_length)
                if image is not None:
                    images.append(image)
            elif name == "video" and config.preserve_videos:
                video = self._video_element(node, base_url)
                if video is not None and len(video.url) <= max_url_length:
                    videos.setdefault(video.url, video)
            elif name == "audio" and config.preserve_audios:
                audio = self._audio_element(node, base_url)
                if audio is not None and len(audio.url) <= max_url_length:
                    audios.setdefault(audio.url, audio)
            elif name in ("iframe", "embed", "object"):
                src = attr(node, "data" if name == "object" else "src").strip()
                if not src:
                    continue
                url = resolve_url(src, base_url)
                if len(url) > max_url_length:
                    continue
                kind = video_type(url)
                if kind and config.preserve_videos:
                    videos.setdefault(
                        url,
                        VideoInfo(url=url, type=kind, width=attr(node, "width"), height=attr(node, "height")),
                    )
                elif not kind and config.preserve_audios and audio_type(url):
                    audios.setdefault(url, AudioInfo(url=url, type=audio_type(url)))

        return tuple(images), tuple(videos.values()), tuple(audios.values())

    @staticmethod
    def _source(node: Tag) -> tuple[str, str]:
        """``src`` of the element, else of its first ``<source>`` child."""
        src = attr(node, "src").strip()
        if src:
            return src, attr(node, "type")
        source = node.find("source", recursive=False)
        if isinstance(source, Tag):
            return attr(source, "src").strip(), attr(source, "type")
        return "", ""

    def _video_element(self, node: Tag, base_url: str | None) -> VideoInfo | None:
        src, declared = self._source(node)
        if not src:
            return None
        url = resolve_url(src, base_url)
        poster = attr(node, "poster").strip()
        return VideoInfo(
            url=url,
            type=declared or video_type(url),
            poster=resolve_url(poster, base_url) if poster else "",
            width=attr(node, "width"),
            height=attr(node, "height"),
            duration=attr(node, "duration") or attr(node, "data-duration"),
        )

    def _audio_element(self, node: Tag, base_url: str | None) -> AudioInfo | None:
        src, declared = self._source(node)
        if not src:
            return None
        url = resolve_url(src, base_url)
        return AudioInfo(
            url=url,
            type=declared or audio_type(url),
            duration=attr(node, "duration") or attr(node, "data-duration"),
        )


class LinkProcessor:
    """Anchor records with external and nofollow flags."""

    def extract(
        self,
        root: PageElement,
        guard: ResourceGuard,
        config: ExtractConfig,
        *,
        sanitize: bool = True,
        max_url_length: int = 2000,
    ) -> tuple[LinkInfo, ...]:
        links: list[LinkInfo] = []
        for visit, node in guard.walk(root, skip=scope_filter(sanitize)):
            if visit is not Visit.ENTER or not isinstance(node, Tag) or tag_class(node.name) is not TagClass.LINK:
                continue
            href = attr(node, "href").strip()
            if not href or href.lower().startswith("javascript:"):
                continue
            url = resolve_url(href, config.base_url)
            if len(url) > max_url_length:
                continue
            rel = {token.lower() for token in attr(node, "rel").split()}
            links.append(
                LinkInfo(
                    url=url,
                    text=normalized_text(node.get_text()),
                    title=normalized_text(attr(node, "title")),
                    is_external=is_external(url, config.base_url),
                    is_nofollow="nofollow" in rel,
                )
            )
        return tuple(links)
