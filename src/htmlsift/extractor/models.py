"""
Data models for extraction results.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from datetime import timedelta
from typing import Any


@dataclass(slots=True, frozen=True)
class ImageInfo:
    url: str
    alt: str = ""
    title: str = ""
    width: str = ""
    height: str = ""
    is_decorative: bool = False
    position: int = 0


@dataclass(slots=True, frozen=True)
class LinkInfo:
    url: str
    text: str = ""
    title: str = ""
    is_external: bool = False
    is_nofollow: bool = False


@dataclass(slots=True, frozen=True)
class VideoInfo:
    url: str
    type: str = ""
    poster: str = ""
    width: str = ""
    height: str = ""
    duration: str = ""


@dataclass(slots=True, frozen=True)
class AudioInfo:
    url: str
    type: str = ""
    duration: str = ""


@dataclass(slots=True, frozen=True)
class LinkResource:
    """A URL found by the whole-document link pass, tagged by resource type."""

    url: str
    title: str
    type: str


@dataclass(slots=True, frozen=True)
class Result:
    """Result of extracting one HTML document."""

    text: str = ""
    title: str = ""
    images: tuple[ImageInfo, ...] = ()
    links: tuple[LinkInfo, ...] = ()
    videos: tuple[VideoInfo, ...] = ()
    audios: tuple[AudioInfo, ...] = ()
    word_count: int = 0
    reading_time: timedelta = field(default_factory=timedelta)
    processing_time: timedelta = field(default_factory=timedelta)

    def __post_init__(self) -> None:
        """Validate the result."""
        if self.word_count < 0:
            raise ValueError("word_count must not be negative")

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["reading_time"] = self.reading_time.total_seconds()
        data["processing_time"] = self.processing_time.total_seconds()
        for key in ("images", "links", "videos", "audios"):
            data[key] = list(data[key])
        return data

    def to_json(self, *, indent: int | None = 2) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=indent)
