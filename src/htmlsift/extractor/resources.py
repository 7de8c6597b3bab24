"""
Whole-document link resource pass.

Unlike ``LinkProcessor``, which only sees anchors inside the content scope,
this pass visits the entire document (head included) and classifies every
referenced URL as css, js, link, icon, image, video or audio.
"""

from __future__ import annotations

from typing import Iterable
from urllib.parse import urlparse

import structlog
from bs4 import BeautifulSoup, Tag

from htmlsift.config.config import LinkExtractionConfig

from .content_processors import audio_type, video_type
from .dom import attr, is_external, normalized_text, resolve_url
from .guard import ResourceGuard, Visit
from .models import LinkResource

logger = structlog.get_logger(__name__)

RESOURCE_TYPES = ("css", "js", "link", "icon", "image", "video", "audio")

_ICON_RELS = frozenset({"icon", "apple-touch-icon", "apple-touch-icon-precomposed", "mask-icon"})
_PRELOAD_TYPES = {"style": "css", "script": "js", "image": "image", "video": "video", "audio": "audio"}


def detect_base_url(document: BeautifulSoup, guard: ResourceGuard) -> str:
    """
    Best-effort base URL: ``<base href>``, then the canonical link, then
    ``og:url``, then the origin of the first absolute URL in the document.
    """
    canonical = og_url = first_absolute = ""
    for visit, node in guard.walk(document):
        if visit is not Visit.ENTER or not isinstance(node, Tag):
            continue
        if node.name == "base" and attr(node, "href").strip():
            return attr(node, "href").strip()
        if node.name == "link" and not canonical and "canonical" in attr(node, "rel").lower().split():
            canonical = attr(node, "href").strip()
        elif node.name == "meta" and not og_url and attr(node, "property").lower() == "og:url":
            og_url = attr(node, "content").strip()
        elif not first_absolute:
            for name in ("href", "src"):
                parsed = urlparse(attr(node, name).strip())
                if parsed.scheme in ("http", "https") and parsed.netloc:
                    first_absolute = f"{parsed.scheme}://{parsed.netloc}/"
                    break
    return canonical or og_url or first_absolute


class LinkResourceExtractor:
    """Collects every resource URL referenced by a document."""

    def __init__(self, max_url_length: int = 2000) -> None:
        self.max_url_length = max_url_length

    def extract(
        self,
        document: BeautifulSoup,
        guard: ResourceGuard,
        config: LinkExtractionConfig,
    ) -> list[LinkResource]:
        base_url = config.base_url or (detect_base_url(document, guard) if config.resolve_relative_urls else "")
        resolve_against = base_url if config.resolve_relative_urls else None
        found: dict[str, LinkResource] = {}

        def add(raw: str, title: str, kind: str) -> None:
            raw = raw.strip()
            if not raw or raw.lower().startswith(("javascript:", "data:")):
                return
            url = resolve_url(raw, resolve_against)
            if len(url) > self.max_url_length or url in found:
                return
            found[url] = LinkResource(url=url, title=title, type=kind)

        for visit, node in guard.walk(document):
            if visit is not Visit.ENTER or not isinstance(node, Tag):
                continue
            for raw, title, kind in self._classify(node, config, base_url):
                add(raw, title, kind)

        logger.debug("Link resources extracted", count=len(found), base_url=base_url or None)
        return list(found.values())

    def _classify(self, node: Tag, config: LinkExtractionConfig, base_url: str) -> Iterable[tuple[str, str, str]]:
        name = node.name
        title = normalized_text(attr(node, "title"))

        if name == "link":
            rels = set(attr(node, "rel").lower().split())
            kind = ""
            if "stylesheet" in rels:
                kind = "css"
            elif rels & _ICON_RELS:
                kind = "icon"
            elif rels & {"preload", "prefetch", "modulepreload"}:
                kind = "js" if "modulepreload" in rels else _PRELOAD_TYPES.get(attr(node, "as").lower(), "")
            if kind and self._wanted(kind, config):
                yield attr(node, "href"), title, kind

        elif name == "script" and config.include_js:
            yield attr(node, "src"), title, "js"

        elif name in ("a", "area"):
            href = attr(node, "href").strip()
            if not href:
                return
            external = is_external(resolve_url(href, base_url or None), base_url or None)
            if (external and config.include_external_links) or (not external and config.include_content_links):
                yield href, title or normalized_text(node.get_text()), "link"

        elif name == "img" and config.include_images:
            yield attr(node, "src"), title or normalized_text(attr(node, "alt")), "image"

        elif name in ("video", "audio"):
            kind = name
            if self._wanted(kind, config):
                yield attr(node, "src"), title, kind
                poster = attr(node, "poster")
                if kind == "video" and poster and config.include_images:
                    yield poster, title, "image"

        elif name == "source":
            parent = node.parent.name if node.parent is not None else ""
            src = attr(node, "src")
            if parent == "video" or (parent != "audio" and video_type(src)):
                kind = "video"
            elif parent == "audio" or audio_type(src):
                kind = "audio"
            else:
                kind = "image" if parent == "picture" else ""
            if kind and self._wanted(kind, config):
                yield src or attr(node, "srcset").split(" ")[0], title, kind

        elif name in ("iframe", "embed", "object"):
            src = attr(node, "data" if name == "object" else "src")
            if video_type(src) and config.include_videos:
                yield src, title, "video"
            elif audio_type(src) and config.include_audios:
                yield src, title, "audio"

    @staticmethod
    def _wanted(kind: str, config: LinkExtractionConfig) -> bool:
        return {
            "css": config.include_css,
            "js": config.include_js,
            "icon": config.include_icons,
            "image": config.include_images,
            "video": config.include_videos,
            "audio": config.include_audios,
        }.get(kind, False)


def group_links_by_type(resources: Iterable[LinkResource]) -> dict[str, list[LinkResource]]:
    """Group resources by type, dropping untyped entries."""
    grouped: dict[str, list[LinkResource]] = {}
    for resource in resources:
        if resource.type:
            grouped.setdefault(resource.type, []).append(resource)
    return grouped
