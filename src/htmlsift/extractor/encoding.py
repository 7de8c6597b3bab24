"""
Character set detection for byte input.

Resolution order:

1. an encoding forced by the caller
2. a byte order mark
3. UTF-8, when the bytes are valid UTF-8 and either hold multi-byte
   sequences or the document declares UTF-8 itself
4. the charset declared by ``<meta charset>`` or ``http-equiv`` near the top
5. statistical detection with ``charset_normalizer``
6. windows-1252

Undecodable bytes never fail an extraction; they become U+FFFD.
"""

from __future__ import annotations

import codecs

import charset_normalizer
import structlog
from bs4.dammit import EncodingDetector

logger = structlog.get_logger(__name__)

DEFAULT_ENCODING = "cp1252"


def lookup_encoding(name: str | None) -> str | None:
    """Canonical codec name for ``name``, or None when Python does not know it."""
    if not name:
        return None
    try:
        return codecs.lookup(name.strip()).name
    except LookupError:
        return None


def declared_encoding(data: bytes) -> str | None:
    """Charset named by the document's own ``<meta>`` or XML declaration."""
    declared = lookup_encoding(EncodingDetector.find_declared_encoding(data, is_html=True))
    # A byte stream that parsed as ASCII cannot really be UTF-16/32.
    if declared is not None and declared.startswith(("utf-16", "utf-32")):
        return "utf-8"
    return declared


def detect_encoding(data: bytes) -> str:
    stripped, bom = EncodingDetector.strip_byte_order_mark(data)
    if bom:
        return lookup_encoding(bom) or "utf-8"

    declared = declared_encoding(stripped)
    try:
        stripped.decode("utf-8")
    except UnicodeDecodeError:
        valid_utf8 = False
    else:
        valid_utf8 = True

    if valid_utf8 and (declared == "utf-8" or not stripped.isascii()):
        return "utf-8"
    if declared is not None:
        return declared
    if valid_utf8:
        return "utf-8"

    best = charset_normalizer.from_bytes(stripped).best()
    if best is not None:
        return lookup_encoding(best.encoding) or DEFAULT_ENCODING
    return DEFAULT_ENCODING


def decode_document(data: bytes, forced: str | None = None) -> tuple[str, str]:
    """
    Decode HTML bytes to text.

    Args:
        data: Raw document bytes
        forced: Encoding to use regardless of what the bytes declare

    Returns:
        ``(text, encoding)`` where ``encoding`` is the codec that was applied
    """
    encoding = lookup_encoding(forced) or detect_encoding(data)
    payload = data
    if not forced:
        payload, _ = EncodingDetector.strip_byte_order_mark(data)
    text = payload.decode(encoding, errors="replace")
    logger.debug("Decoded byte input", encoding=encoding, forced=bool(forced), size=len(data))
    return text, encoding
