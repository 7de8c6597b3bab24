"""
The extraction processor.

A ``Processor`` owns the process-wide settings, the content cache and the
statistics counters, and runs the single-document pipeline:

    size check -> cache lookup -> parse -> score -> text/title/media/links
    -> assemble -> cache insert

Batch extraction fans documents out to ``htmlsift.batch.BatchRunner``, whose
workers call ``Processor.extract`` exactly like a direct caller would.
"""

from __future__ import annotations

import asyncio
import threading
import time
from pathlib import Path
from typing import TYPE_CHECKING, Any, Iterable, Mapping

import structlog
from pydantic import ValidationError

from htmlsift.cache import ContentCache
from htmlsift.config.config import ExtractConfig, LinkExtractionConfig, ProcessorSettings
from htmlsift.errors import HtmlSiftError, InvalidConfigError, ProcessorClosedError
from htmlsift.extractor.assembler import ResultAssembler
from htmlsift.extractor.content_processors import LinkProcessor, MediaProcessor, TextProcessor, TitleProcessor
from htmlsift.extractor.dom import parse_document
from htmlsift.extractor.encoding import decode_document
from htmlsift.extractor.guard import ResourceGuard
from htmlsift.extractor.models import LinkResource, Result
from htmlsift.extractor.resources import LinkResourceExtractor
from htmlsift.extractor.scorer import ReadabilityScorer
from htmlsift.observability import histogram, increment
from htmlsift.observability.statistics import ProcessorStatistics, Statistics

if TYPE_CHECKING:
    from htmlsift.batch import BatchResult, FailurePolicy

logger = structlog.get_logger(__name__)

Source = str | bytes


class Processor:
    """
    HTML content extraction with caching and statistics.

    Thread-safe: ``extract`` may be called from many threads at once. The
    cache and the statistics counters are the only shared state.
    """

    def __init__(self, settings: ProcessorSettings | Mapping[str, Any] | None = None) -> None:
        self.settings = self._resolve_settings(settings)
        self.logger = logger.bind(component="Processor")

        self._cache = ContentCache(self.settings.max_cache_entries, self.settings.cache_ttl)
        self._statistics = ProcessorStatistics()
        self._assembler = ResultAssembler(self._statistics, self.settings.words_per_minute)
        self._scorer = ReadabilityScorer(sanitize=self.settings.enable_sanitization)
        self._text = TextProcessor()
        self._title = TitleProcessor()
        self._media = MediaProcessor()
        self._links = LinkProcessor()
        self._resources = LinkResourceExtractor(self.settings.max_url_length)
        self._closed = False
        self._close_lock = threading.Lock()

        self.logger.debug(
            "Processor initialized",
            max_input_size=self.settings.max_input_size,
            max_cache_entries=self.settings.max_cache_entries,
            worker_pool_size=self.settings.worker_pool_size,
            max_depth=self.settings.max_depth,
        )

    # --- Single extraction ---

    def extract(
        self,
        source: Source,
        config: ExtractConfig | Mapping[str, Any] | None = None,
        *,
        cancel_event: threading.Event | None = None,
    ) -> Result:
        """
        Extract content from one HTML document.

        Args:
            source: HTML as text or bytes in any charset
            config: Per-call options, defaults to ``ExtractConfig()``
            cancel_event: When set, the running extraction aborts with
                ``ProcessingTimeoutError`` at its next traversal check

        Raises:
            InputTooLargeError, DepthExceededError, ProcessingTimeoutError,
            UpstreamParseError, InvalidConfigError, ProcessorClosedError
        """
        self._ensure_open()
        started = time.monotonic()
        try:
            extract_config = self._resolve_config(config)
            document, markup = self._prepare(source, extract_config.encoding)
            key = self._cache.compute_key(document, extract_config)
            cached, hit = self._cache.get(key)
            if hit and cached is not None:
                self._statistics.record_cache_hit()
                increment("documents_processed", labels={"outcome": "cache_hit"})
                return cached

            guard = self._new_guard(cancel_event)
            result = self._run_pipeline(markup, extract_config, guard, started)
        except HtmlSiftError as exc:
            self._record_failure(exc)
            raise

        self._cache.put(key, result)
        increment("documents_processed", labels={"outcome": "success"})
        histogram("extraction_duration", result.processing_time.total_seconds())
        return result

    def extract_from_file(self, path: str | Path, config: ExtractConfig | Mapping[str, Any] | None = None) -> Result:
        """Read an HTML file and extract it; the size limit applies before reading."""
        self._ensure_open()
        file_path = Path(path)
        if not file_path.is_file():
            raise FileNotFoundError(f"HTML file not found: {file_path}")
        size = file_path.stat().st_size
        try:
            ResourceGuard.check_input_size(size, self.settings.max_input_size)
        except HtmlSiftError as exc:
            self._record_failure(exc)
            raise
        return self.extract(file_path.read_bytes(), config)

    def extract_all_links(
        self,
        source: Source,
        config: LinkExtractionConfig | None = None,
    ) -> list[LinkResource]:
        """Every resource URL in the whole document, classified by type."""
        self._ensure_open()
        _, markup = self._prepare(source)
        if not markup.strip():
            return []
        document = parse_document(markup)
        return self._resources.extract(document, self._new_guard(None), config or LinkExtractionConfig())

    # --- Batch extraction ---

    async def extract_batch(
        self,
        sources: Iterable[Source],
        config: ExtractConfig | Mapping[str, Any] | None = None,
        *,
        pool_size: int | None = None,
        failure_policy: FailurePolicy | str | None = None,
        batch_timeout: float | None = None,
    ) -> BatchResult:
        """Extract many documents with at most ``pool_size`` running at once."""
        from htmlsift.batch import BatchRunner, FailurePolicy

        self._ensure_open()
        runner = BatchRunner(self, pool_size or self.settings.worker_pool_size)
        return await runner.run(
            sources,
            self._resolve_config(config),
            failure_policy=FailurePolicy(failure_policy or FailurePolicy.COLLECT_ALL),
            batch_timeout=batch_timeout,
        )

    def extract_batch_sync(
        self,
        sources: Iterable[Source],
        config: ExtractConfig | Mapping[str, Any] | None = None,
        **kwargs: Any,
    ) -> BatchResult:
        """Blocking wrapper around ``extract_batch`` for code without an event loop."""
        return asyncio.run(self.extract_batch(sources, config, **kwargs))

    # --- Observability ---

    def get_statistics(self) -> Statistics:
        documents, errors, average = self._statistics.snapshot()
        cache = self._cache.stats()
        return Statistics(
            documents_processed=documents,
            cache_hits=cache.hits,
            cache_misses=cache.misses,
            evictions=cache.evictions,
            expirations=cache.expirations,
            error_count=errors,
            cache_entries=cache.entries,
            average_processing_time=average,
        )

    def reset_statistics(self) -> None:
        self._statistics.reset()
        self._cache.reset_stats()

    def clear_cache(self) -> None:
        self._cache.clear()

    # --- Lifecycle ---

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        with self._close_lock:
            if self._closed:
                return
            self._closed = True
        self._cache.clear()
        self.logger.debug("Processor closed")

    def __enter__(self) -> Processor:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # --- Internals ---

    def _run_pipeline(self, markup: str, config: ExtractConfig, guard: ResourceGuard, started: float) -> Result:
        if not markup.strip():
            return self._assembler.assemble(started=started, text="", title="")

        document = parse_document(markup)
        sanitize = self.settings.enable_sanitization
        max_url_length = self.settings.max_url_length

        # Unpruned pass first so nesting limits hold inside subtrees every
        # content walk skips, such as forms and svg.
        for _ in guard.walk(document):
            pass

        if config.extract_article:
            root = self._scorer.select(document, guard)
        else:
            root = document

        title = self._title.extract(document, root, guard)
        text = self._text.extract(root, guard, config, sanitize=sanitize, max_url_length=max_url_length)

        images = videos = audios = ()
        if config.preserve_images or config.preserve_videos or config.preserve_audios:
            images, videos, audios = self._media.extract(
                root, guard, config, sanitize=sanitize, max_url_length=max_url_length
            )
        links = ()
        if config.preserve_links:
            links = self._links.extract(root, guard, config, sanitize=sanitize, max_url_length=max_url_length)

        guard.check_deadline()
        return self._assembler.assemble(
            started=started,
            text=text,
            title=title,
            images=images,
            links=links,
            videos=videos,
            audios=audios,
        )

    def _prepare(self, source: Source, encoding: str | None = None) -> tuple[bytes, str]:
        """
        Return ``(bytes, text)`` for the input after the size check.

        Bytes are decoded with ``encoding`` when given, else with the detected charset.
        """
        if isinstance(source, bytes):
            ResourceGuard.check_input_size(len(source), self.settings.max_input_size)
            text, _ = decode_document(source, encoding)
            return source, text
        if isinstance(source, str):
            document = source.encode("utf-8", errors="surrogatepass")
            ResourceGuard.check_input_size(len(document), self.settings.max_input_size)
            return document, source
        raise TypeError(f"HTML source must be str or bytes, not {type(source).__name__}")

    def _new_guard(self, cancel_event: threading.Event | None) -> ResourceGuard:
        return ResourceGuard(
            self.settings.max_depth,
            self.settings.processing_timeout,
            cancel_event=cancel_event,
        )

    def _record_failure(self, exc: HtmlSiftError) -> None:
        self._statistics.record_failure(exc.kind)
        increment("documents_processed", labels={"outcome": exc.kind.value})
        self.logger.warning("Extraction failed", error_kind=exc.kind.value, error=str(exc))

    def _ensure_open(self) -> None:
        if self._closed:
            raise ProcessorClosedError()

    @staticmethod
    def _resolve_config(config: ExtractConfig | Mapping[str, Any] | None) -> ExtractConfig:
        if config is None:
            return ExtractConfig()
        if isinstance(config, ExtractConfig):
            return config
        if isinstance(config, Mapping):
            return ExtractConfig.from_mapping(dict(config))
        raise InvalidConfigError(f"unsupported extract config type: {type(config).__name__}")

    @staticmethod
    def _resolve_settings(settings: ProcessorSettings | Mapping[str, Any] | None) -> ProcessorSettings:
        if settings is None:
            return ProcessorSettings()
        if isinstance(settings, ProcessorSettings):
            return settings
        try:
            return ProcessorSettings.model_validate(dict(settings))
        except ValidationError as exc:
            raise InvalidConfigError(f"invalid processor settings: {exc}") from exc
