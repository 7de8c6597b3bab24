"""
Readability-style content region detection.

The scorer walks the whole document once and rates every block-level
candidate by text density:

    density = owned_text_length / (1 + owned_link_text_length)
    raw     = density + semantic_bonus

Raw scores flow upward so a container holding many paragraphs outscores any
one of them. Each level up receives a decayed share of the level below (half
by default), so the parent of a lone paragraph never ties with it.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog
from bs4 import BeautifulSoup, Tag
from bs4.element import PageElement

from .dom import NEGATIVE_KEYWORDS, NodeKind, attr, is_sanitized, matches_keywords, node_kind, normalized_text
from .guard import ResourceGuard, Visit

logger = structlog.get_logger(__name__)

CANDIDATE_TAGS = frozenset({"p", "div", "article", "section", "main", "td", "blockquote", "pre"})
SEMANTIC_TAGS = frozenset({"article", "section", "main"})
SEMANTIC_ROLES = frozenset({"main", "article"})


@dataclass(slots=True)
class ScoredCandidate:
    """A candidate element and its density metrics, alive only while scoring."""

    node: Tag
    depth: int
    order: int
    semantic_bonus: float = 0.0
    text_length: int = 0
    link_text_length: int = 0
    total_text_length: int = 0
    raw_score: float = 0.0
    score: float = 0.0

    @property
    def density(self) -> float:
        return self.text_length / (1 + self.link_text_length)


@dataclass(slots=True)
class _Frame:
    candidate: ScoredCandidate | None
    negative: bool
    relayed: float = 0.0


class ReadabilityScorer:
    """Selects the element most likely to hold a page's primary content."""

    def __init__(
        self,
        *,
        min_text_length: int = 25,
        sanitize: bool = True,
        positive_bonus: float = 50.0,
        negative_bonus: float = -50.0,
        decay: float = 0.5,
    ) -> None:
        self.min_text_length = min_text_length
        self.sanitize = sanitize
        self.positive_bonus = positive_bonus
        self.negative_bonus = negative_bonus
        self.decay = decay

    def select(self, document: BeautifulSoup, guard: ResourceGuard) -> PageElement:
        """Return the content root: best candidate, else ``<body>``, else the document."""
        best = self.best_candidate(self.score(document, guard))
        if best is not None:
            logger.debug(
                "Content root selected",
                tag=best.node.name,
                score=round(best.score, 2),
                depth=best.depth,
            )
            return best.node

        body = document.find("body")
        logger.debug("No qualifying candidate, falling back", fallback="body" if body else "document")
        return body if body is not None else document

    def best_candidate(self, candidates: list[ScoredCandidate]) -> ScoredCandidate | None:
        best: ScoredCandidate | None = None
        for candidate in candidates:
            if candidate.score <= 0:
                continue
            if best is None or (candidate.score, -candidate.depth, -candidate.order) > (
                best.score,
                -best.depth,
                -best.order,
            ):
                best = candidate
        return best

    def score(self, document: BeautifulSoup, guard: ResourceGuard) -> list[ScoredCandidate]:
        """Score every eligible candidate in one guarded pass."""
        scored: list[ScoredCandidate] = []
        frames: list[_Frame] = []
        open_candidates: list[ScoredCandidate] = []
        link_depth = 0
        order = 0
        skip = is_sanitized if self.sanitize else None

        for visit, node in guard.walk(document, skip=skip):
            if visit is Visit.ENTER:
                if isinstance(node, Tag):
                    negative = (bool(frames) and frames[-1].negative) or matches_keywords(node, NEGATIVE_KEYWORDS)
                    candidate = None
                    if node.name in CANDIDATE_TAGS:
                        order += 1
                        candidate = ScoredCandidate(
                            node=node,
                            depth=guard.depth,
                            order=order,
                            semantic_bonus=self._semantic_bonus(node, negative),
                        )
                        open_candidates.append(candidate)
                    if node.name == "a":
                        link_depth += 1
                    frames.append(_Frame(candidate, negative))
                elif open_candidates and node_kind(node) is NodeKind.TEXT:
                    length = len(normalized_text(node))
                    if length:
                        owner = open_candidates[-1]
                        owner.text_length += length
                        owner.total_text_length += length
                        if link_depth:
                            owner.link_text_length += length
                continue

            frame = frames.pop()
            if node.name == "a":
                link_depth -= 1
            parent = frames[-1] if frames else None
            candidate = frame.candidate
            if candidate is None:
                if parent is not None:
                    parent.relayed += frame.relayed * self.decay
                continue

            open_candidates.pop()
            enclosing = open_candidates[-1] if open_candidates else None
            if enclosing is not None:
                enclosing.total_text_length += candidate.total_text_length

            if candidate.total_text_length < self.min_text_length:
                # Too short to win; its text counts toward the enclosing candidate.
                if enclosing is not None:
                    enclosing.text_length += candidate.text_length
                    enclosing.link_text_length += candidate.link_text_length
                if parent is not None:
                    parent.relayed += frame.relayed * self.decay
                continue

            candidate.raw_score = candidate.density + candidate.semantic_bonus
            candidate.score = candidate.raw_score + frame.relayed
            scored.append(candidate)
            if parent is not None:
                parent.relayed += (candidate.raw_score + frame.relayed) * self.decay

        return scored

    def _semantic_bonus(self, node: Tag, negative: bool) -> float:
        bonus = 0.0
        if node.name in SEMANTIC_TAGS or attr(node, "role").lower() in SEMANTIC_ROLES:
            bonus += self.positive_bonus
        if negative:
            bonus += self.negative_bonus
        return bonus
