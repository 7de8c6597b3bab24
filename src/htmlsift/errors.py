"""
Exception hierarchy for htmlsift.

Every failure raised by the extraction core derives from ``HtmlSiftError`` and
carries an ``ErrorKind`` so callers (and batch result slots) can branch on
the category without string matching.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Category of an extraction failure."""

    INPUT_TOO_LARGE = "input_too_large"
    DEPTH_EXCEEDED = "depth_exceeded"
    PROCESSING_TIMEOUT = "processing_timeout"
    UPSTREAM_PARSE_FAILURE = "upstream_parse_failure"
    INVALID_CONFIG = "invalid_config"
    PROCESSOR_CLOSED = "processor_closed"
    BATCH_FAILURE = "batch_failure"


class HtmlSiftError(Exception):
    """Base class for all htmlsift errors."""

    kind: ErrorKind = ErrorKind.UPSTREAM_PARSE_FAILURE


class InputTooLargeError(HtmlSiftError):
    """Raised when the input exceeds the configured byte limit."""

    kind = ErrorKind.INPUT_TOO_LARGE

    def __init__(self, size: int, limit: int) -> None:
        super().__init__(f"input size {size} bytes exceeds limit of {limit} bytes")
        self.size = size
        self.limit = limit


class DepthExceededError(HtmlSiftError):
    """Raised when a traversal descends past the configured maximum depth."""

    kind = ErrorKind.DEPTH_EXCEEDED

    def __init__(self, depth: int, limit: int) -> None:
        super().__init__(f"document nesting depth {depth} exceeds limit of {limit}")
        self.depth = depth
        self.limit = limit


class ProcessingTimeoutError(HtmlSiftError):
    """Raised when an extraction runs past its deadline or is cancelled."""

    kind = ErrorKind.PROCESSING_TIMEOUT


class UpstreamParseError(HtmlSiftError):
    """Raised when the HTML tree builder rejects the markup."""

    kind = ErrorKind.UPSTREAM_PARSE_FAILURE


class InvalidConfigError(HtmlSiftError, ValueError):
    """Raised for invalid processor settings or extraction options."""

    kind = ErrorKind.INVALID_CONFIG


class ProcessorClosedError(HtmlSiftError):
    """Raised when a closed processor is used."""

    kind = ErrorKind.PROCESSOR_CLOSED

    def __init__(self) -> None:
        super().__init__("processor is closed")


class BatchError(HtmlSiftError):
    """Raised by ``BatchResult.raise_for_errors`` when items failed."""

    kind = ErrorKind.BATCH_FAILURE

    def __init__(self, message: str, errors: list[BaseException]) -> None:
        super().__init__(message)
        self.errors = errors
