"""
One-call helpers.

Each helper builds a short-lived ``Processor`` so no statistics or cache are
shared between calls. Keep a ``Processor`` around yourself when extracting
many documents.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Any, Mapping

from htmlsift.config.config import (
    ExtractConfig,
    InlineImageFormat,
    LinkExtractionConfig,
    ProcessorSettings,
    config_for_markdown,
    config_for_summary,
)
from htmlsift.extractor.models import AudioInfo, ImageInfo, LinkInfo, LinkResource, Result, VideoInfo
from htmlsift.extractor.resources import group_links_by_type
from htmlsift.processor import Processor, Source

__all__ = [
    "extract",
    "extract_all_links",
    "extract_and_clean",
    "extract_audios",
    "extract_images",
    "extract_links",
    "extract_text",
    "extract_title",
    "extract_to_json",
    "extract_to_markdown",
    "extract_videos",
    "group_links_by_type",
    "reading_time",
    "summarize",
    "word_count",
]


def extract(
    source: Source,
    config: ExtractConfig | Mapping[str, Any] | None = None,
    *,
    settings: ProcessorSettings | Mapping[str, Any] | None = None,
) -> Result:
    with Processor(settings) as processor:
        return processor.extract(source, config)


def extract_text(source: Source) -> str:
    return extract(source, _text_only()).text


def extract_title(source: Source) -> str:
    return extract(source, _text_only()).title


def extract_images(source: Source) -> tuple[ImageInfo, ...]:
    return extract(source, ExtractConfig(preserve_links=False, preserve_videos=False, preserve_audios=False)).images


def extract_videos(source: Source) -> tuple[VideoInfo, ...]:
    return extract(source, ExtractConfig(preserve_images=False, preserve_links=False, preserve_audios=False)).videos


def extract_audios(source: Source) -> tuple[AudioInfo, ...]:
    return extract(source, ExtractConfig(preserve_images=False, preserve_links=False, preserve_videos=False)).audios


def extract_links(source: Source, base_url: str | None = None) -> tuple[LinkInfo, ...]:
    config = ExtractConfig(preserve_images=False, preserve_videos=False, preserve_audios=False, base_url=base_url)
    return extract(source, config).links


def word_count(source: Source) -> int:
    return extract(source, _text_only()).word_count


def reading_time(source: Source) -> timedelta:
    return extract(source, _text_only()).reading_time


def summarize(source: Source, max_words: int = 0) -> str:
    """Article text cut to ``max_words`` words (``0`` keeps everything)."""
    text = extract(source, config_for_summary()).text
    if max_words <= 0:
        return text
    words = text.split()
    if len(words) <= max_words:
        return text
    return " ".join(words[:max_words]) + "..."


def extract_and_clean(source: Source) -> str:
    """Whole-document text without article detection."""
    return extract(source, ExtractConfig(extract_article=False, **_NO_MEDIA)).text


def extract_to_markdown(source: Source) -> str:
    """Article text with images inlined as markdown, headed by the title."""
    result = extract(source, config_for_markdown())
    if result.title and not result.text.startswith(result.title):
        return f"# {result.title}\n\n{result.text}"
    return result.text


def extract_to_json(source: Source, config: ExtractConfig | None = None) -> str:
    return extract(source, config).to_json()


def extract_all_links(source: Source, config: LinkExtractionConfig | None = None) -> list[LinkResource]:
    with Processor() as processor:
        return processor.extract_all_links(source, config)


_NO_MEDIA = {
    "preserve_images": False,
    "preserve_links": False,
    "preserve_videos": False,
    "preserve_audios": False,
}


def _text_only() -> ExtractConfig:
    return ExtractConfig(inline_image_format=InlineImageFormat.NONE, **_NO_MEDIA)
