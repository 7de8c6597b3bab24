"""
htmlsift - readability-style HTML content extraction with caching and batch processing.
"""

from __future__ import annotations

__version__ = "0.1.0"

from .batch import BatchItem, BatchResult, BatchRunner, FailurePolicy
from .config import (
    ExtractConfig,
    HtmlSiftConfig,
    InlineImageFormat,
    LinkExtractionConfig,
    ProcessorSettings,
    TableFormat,
    config_for_markdown,
    config_for_rss,
    config_for_search_index,
    config_for_summary,
)
from .errors import (
    BatchError,
    DepthExceededError,
    ErrorKind,
    HtmlSiftError,
    InputTooLargeError,
    InvalidConfigError,
    ProcessingTimeoutError,
    ProcessorClosedError,
    UpstreamParseError,
)
from .extractor.models import AudioInfo, ImageInfo, LinkInfo, LinkResource, Result, VideoInfo
from .observability.statistics import Statistics
from .processor import Processor

__all__ = [
    "__version__",
    "AudioInfo",
    "BatchError",
    "BatchItem",
    "BatchResult",
    "BatchRunner",
    "DepthExceededError",
    "ErrorKind",
    "ExtractConfig",
    "FailurePolicy",
    "HtmlSiftConfig",
    "HtmlSiftError",
    "ImageInfo",
    "InlineImageFormat",
    "InputTooLargeError",
    "InvalidConfigError",
    "LinkExtractionConfig",
    "LinkInfo",
    "LinkResource",
    "ProcessingTimeoutError",
    "Processor",
    "ProcessorClosedError",
    "ProcessorSettings",
    "Result",
    "Statistics",
    "TableFormat",
    "UpstreamParseError",
    "VideoInfo",
    "config_for_markdown",
    "config_for_rss",
    "config_for_search_index",
    "config_for_summary",
]
