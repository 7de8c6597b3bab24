"""
htmlsift content extraction engine.

- ``dom``: node kinds and the static tag classification table over the BeautifulSoup tree
- ``guard``: input size, depth and deadline checks plus the iterative walk
- ``scorer``: readability-style content root selection
- ``encoding``: charset detection for byte input
- ``content_processors``: text, table, title, media and link extraction
- ``resources``: whole-document link resource pass
- ``assembler``: immutable ``Result`` composition
"""

from .assembler import ResultAssembler
from .content_processors import LinkProcessor, MediaProcessor, TableProcessor, TextProcessor, TitleProcessor
from .dom import NodeKind, TagClass, node_kind, parse_document, tag_class
from .encoding import decode_document, detect_encoding
from .guard import ResourceGuard, Visit
from .models import AudioInfo, ImageInfo, LinkInfo, LinkResource, Result, VideoInfo
from .resources import LinkResourceExtractor, group_links_by_type
from .scorer import ReadabilityScorer, ScoredCandidate

__all__ = [
    "AudioInfo",
    "ImageInfo",
    "LinkInfo",
    "LinkProcessor",
    "LinkResource",
    "LinkResourceExtractor",
    "MediaProcessor",
    "NodeKind",
    "ReadabilityScorer",
    "ResourceGuard",
    "Result",
    "ResultAssembler",
    "ScoredCandidate",
    "TableProcessor",
    "TagClass",
    "TextProcessor",
    "TitleProcessor",
    "VideoInfo",
    "Visit",
    "decode_document",
    "detect_encoding",
    "group_links_by_type",
    "node_kind",
    "parse_document",
    "tag_class",
]
