"""
Resource guard and the iterative tree walk built on it.

Every traversal in the extraction core goes through ``ResourceGuard.walk``.
The walk keeps an explicit stack instead of recursing, so the guard's depth
counter is the only thing bounding nesting and a pathological document can
never exhaust the interpreter's call stack.
"""

from __future__ import annotations

import threading
import time
from enum import Enum
from typing import Callable, Iterator

from bs4 import Tag
from bs4.element import PageElement

from htmlsift.errors import DepthExceededError, InputTooLargeError, ProcessingTimeoutError

from .dom import element_depth

# Deadline is checked every this many visited nodes.
DEADLINE_CHECK_INTERVAL = 64


class Visit(Enum):
    ENTER = "enter"
    LEAVE = "leave"


class ResourceGuard:
    """Input size, traversal depth and deadline checks for one extraction."""

    def __init__(
        self,
        max_depth: int,
        timeout: float,
        *,
        cancel_event: threading.Event | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_depth = max_depth
        self.depth = 0
        self._clock = clock
        self._deadline = clock() + timeout
        self._cancel_event = cancel_event
        self._steps = 0

    @staticmethod
    def check_input_size(size: int, limit: int) -> None:
        if size > limit:
            raise InputTooLargeError(size, limit)

    def descend(self) -> None:
        self.depth += 1
        if self.depth > self.max_depth:
            raise DepthExceededError(self.depth, self.max_depth)

    def ascend(self) -> None:
        self.depth -= 1

    def check_deadline(self) -> None:
        if self._cancel_event is not None and self._cancel_event.is_set():
            raise ProcessingTimeoutError("extraction cancelled")
        if self._clock() > self._deadline:
            raise ProcessingTimeoutError("extraction exceeded its processing timeout")

    def walk(
        self,
        root: PageElement,
        skip: Callable[[Tag], bool] | None = None,
    ) -> Iterator[tuple[Visit, PageElement]]:
        """
        Depth-first walk yielding ``(Visit.ENTER, node)`` for every node and
        ``(Visit.LEAVE, tag)`` after an element's children.

        Elements for which ``skip`` returns true are not yielded and their
        subtrees are not entered. The root itself is never skipped.
        """
        self.depth = element_depth(root)
        if self.depth > self.max_depth:
            raise DepthExceededError(self.depth, self.max_depth)
        self.check_deadline()

        # Stack items are (node, leaving); leaving markers pop the depth counter.
        stack: list[tuple[PageElement, bool]] = [(root, False)]
        while stack:
            node, leaving = stack.pop()
            if leaving:
                if node is not root:
                    self.ascend()
                yield Visit.LEAVE, node
                continue

            self._steps += 1
            if self._steps % DEADLINE_CHECK_INTERVAL == 0:
                self.check_deadline()

            if not isinstance(node, Tag):
                self.descend()
                yield Visit.ENTER, node
                self.ascend()
                continue

            if node is not root:
                if skip is not None and skip(node):
                    continue
                self.descend()
            yield Visit.ENTER, node
            stack.append((node, True))
            stack.extend((child, False) for child in reversed(node.contents))

        self.check_deadline()
