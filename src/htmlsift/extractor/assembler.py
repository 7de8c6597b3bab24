"""
Composes processor outputs into an immutable ``Result``.
"""

from __future__ import annotations

import time
from datetime import timedelta

from htmlsift.observability.statistics import ProcessorStatistics

from .content_processors import TextProcessor
from .models import AudioInfo, ImageInfo, LinkInfo, Result, VideoInfo


class ResultAssembler:
    """Attaches derived metrics and wall-clock time, then records the document."""

    def __init__(self, statistics: ProcessorStatistics, words_per_minute: int) -> None:
        self._statistics = statistics
        self._words_per_minute = words_per_minute

    def assemble(
        self,
        *,
        started: float,
        text: str,
        title: str,
        images: tuple[ImageInfo, ...] = (),
        links: tuple[LinkInfo, ...] = (),
        videos: tuple[VideoInfo, ...] = (),
        audios: tuple[AudioInfo, ...] = (),
    ) -> Result:
        words = TextProcessor.word_count(text)
        elapsed = time.monotonic() - started
        result = Result(
            text=text,
            title=title,
            images=images,
            links=links,
            videos=videos,
            audios=audios,
            word_count=words,
            reading_time=TextProcessor.reading_time(words, self._words_per_minute),
            processing_time=timedelta(seconds=elapsed),
        )
        self._statistics.record_success(elapsed)
        return result
