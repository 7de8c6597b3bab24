"""
Shared fixtures for the htmlsift test suite.
"""

from __future__ import annotations

from typing import Iterator

import pytest

from htmlsift import Processor, ProcessorSettings

ARTICLE_HTML = (
    "<html><nav>Nav</nav><article><h1>Hello World</h1>"
    "<p>Content here and more content to exceed the minimum length threshold.</p>"
    "</article><footer>Footer</footer></html>"
)

BLOG_HTML = """
<!DOCTYPE html>
<html>
<head>
    <title>Field Notes | Example Blog</title>
    <style>body { color: red; }</style>
    <script>var tracking = "should never appear";</script>
</head>
<body>
    <header class="site-header"><a href="/">Example Blog</a></header>
    <nav class="menu">
        <a href="/">Home</a> <a href="/about">About</a> <a href="/archive">Archive</a>
    </nav>
    <div id="main-content">
        <article class="post">
            <h1>Field Notes</h1>
            <p>The first paragraph describes the morning walk along the river and the birds seen there.</p>
            <img src="/images/heron.jpg" alt="A grey heron" width="640" height="480">
            <p>The second paragraph continues with notes on weather, water level and the light on the reeds.</p>
            <p>Read the <a href="https://birds.example.org/heron" rel="external nofollow">heron guide</a>
               or the <a href="/guides/reeds">reed guide</a> for more.</p>
            <video src="/media/river.mp4" poster="/media/river.jpg" width="1280" height="720"></video>
            <audio><source src="/media/birdsong.mp3" type="audio/mpeg"></audio>
            <iframe src="https://www.youtube.com/embed/abc123" width="560" height="315"></iframe>
        </article>
    </div>
    <aside class="sidebar">
        <p>Sponsored: buy premium binoculars today, limited offer for all readers.</p>
        <img src="/ads/binoculars.png" alt="">
    </aside>
    <footer class="site-footer"><p>Copyright Example Blog, all rights reserved, since forever.</p></footer>
</body>
</html>
"""


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def nested_html(depth: int, leaf: str = "deep text") -> str:
    return "<div>" * depth + leaf + "</div>" * depth


@pytest.fixture
def article_html() -> str:
    return ARTICLE_HTML


@pytest.fixture
def blog_html() -> str:
    return BLOG_HTML


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def processor() -> Iterator[Processor]:
    proc = Processor()
    yield proc
    proc.close()


@pytest.fixture
def small_processor() -> Iterator[Processor]:
    """Processor with a tiny cache and depth limit for limit tests."""
    proc = Processor(ProcessorSettings(max_cache_entries=2, max_depth=50, max_input_size=4096))
    yield proc
    proc.close()


@pytest.fixture
def make_nested():
    return nested_html
