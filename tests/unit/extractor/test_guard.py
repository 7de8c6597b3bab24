"""
Unit tests for ResourceGuard and the iterative walk.
"""

import threading

import pytest
from bs4 import Tag

from htmlsift.errors import DepthExceededError, InputTooLargeError, ProcessingTimeoutError
from htmlsift.extractor.dom import parse_document
from htmlsift.extractor.guard import ResourceGuard, Visit


class TestInputSize:
    def test_within_limit(self):
        ResourceGuard.check_input_size(100, 100)

    def test_over_limit(self):
        with pytest.raises(InputTooLargeError) as exc_info:
            ResourceGuard.check_input_size(101, 100)

        assert exc_info.value.size == 101
        assert exc_info.value.limit == 100


class TestWalk:
    """Traversal order and depth bookkeeping."""

    def test_preorder_with_leave_events(self):
        """Elements are entered before children and left after them."""
        soup = parse_document("<div><p>a</p><span>b</span></div>")
        guard = ResourceGuard(max_depth=10, timeout=5)

        events = [
            (visit.value, node.name if isinstance(node, Tag) else str(node)) for visit, node in guard.walk(soup.div)
        ]

        assert events == [
            ("enter", "div"),
            ("enter", "p"),
            ("enter", "a"),
            ("leave", "p"),
            ("enter", "span"),
            ("enter", "b"),
            ("leave", "span"),
            ("leave", "div"),
        ]

    def test_depth_returns_to_start(self):
        soup = parse_document("<div><div><div>x</div></div></div>")
        guard = ResourceGuard(max_depth=10, timeout=5)
        max_seen = 0

        for _ in guard.walk(soup):
            max_seen = max(max_seen, guard.depth)

        assert max_seen == 4
        assert guard.depth == 0

    def test_skip_prunes_subtree(self):
        soup = parse_document("<div><script>var x;</script><p>kept</p></div>")
        guard = ResourceGuard(max_depth=10, timeout=5)

        walk = guard.walk(soup, skip=lambda tag: tag.name == "script")
        texts = [str(node) for visit, node in walk if not isinstance(node, Tag)]

        assert texts == ["kept"]

    def test_depth_exceeded(self, make_nested):
        """Nesting past max_depth aborts the walk."""
        soup = parse_document(make_nested(30))
        guard = ResourceGuard(max_depth=20, timeout=5)

        with pytest.raises(DepthExceededError) as exc_info:
            for _ in guard.walk(soup):
                pass

        assert exc_info.value.depth == 21

    def test_very_deep_document_does_not_recurse(self, make_nested):
        """Depth far beyond the interpreter recursion limit is handled by the counter."""
        soup = parse_document(make_nested(5000))
        guard = ResourceGuard(max_depth=10_000, timeout=30)

        count = sum(1 for visit, node in guard.walk(soup) if visit is Visit.ENTER)

        assert count == 5002


class TestDeadline:
    def test_deadline_exceeded(self, clock):
        guard = ResourceGuard(max_depth=10, timeout=1.0, clock=clock)
        guard.check_deadline()

        clock.advance(1.5)
        with pytest.raises(ProcessingTimeoutError):
            guard.check_deadline()

    def test_walk_checks_deadline(self, clock):
        soup = parse_document("<p>x</p>")
        guard = ResourceGuard(max_depth=10, timeout=1.0, clock=clock)
        clock.advance(2.0)

        with pytest.raises(ProcessingTimeoutError):
            list(guard.walk(soup))

    def test_cancel_event(self):
        event = threading.Event()
        guard = ResourceGuard(max_depth=10, timeout=60, cancel_event=event)
        guard.check_deadline()

        event.set()
        with pytest.raises(ProcessingTimeoutError):
            guard.check_deadline()
