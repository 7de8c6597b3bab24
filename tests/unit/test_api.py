"""
Unit tests for the one-call helpers.
"""

import json
from datetime import timedelta

import pytest

from htmlsift import api
from htmlsift.errors import InputTooLargeError

FIRST = "The first paragraph describes the morning walk along the river and the birds seen there."


class TestTextHelpers:
    def test_extract_text(self, blog_html):
        text = api.extract_text(blog_html)

        assert text.startswith("Field Notes\n" + FIRST)
        assert "[IMAGE" not in text

    def test_extract_title(self, article_html, blog_html):
        assert api.extract_title(article_html) == "Hello World"
        assert api.extract_title(blog_html) == "Field Notes | Example Blog"

    def test_word_count_and_reading_time(self, blog_html):
        words = api.word_count(blog_html)

        assert words == len(api.extract_text(blog_html).split())
        assert api.reading_time(blog_html) == timedelta(minutes=words / 200)

    def test_extract_and_clean_ignores_article_detection(self):
        html = (
            "<body><div><p>Short intro line here.</p></div>"
            "<article><p>A much longer paragraph of article text that is certainly above the threshold.</p>"
            "</article></body>"
        )
        text = api.extract_and_clean(html)

        assert "Short intro line here." in text
        assert "A much longer paragraph" in text

    def test_settings_are_passed_through(self):
        with pytest.raises(InputTooLargeError):
            api.extract("<p>" + "x" * 100 + "</p>", settings={"max_input_size": 10})


class TestSummarize:
    def test_full_text_by_default(self, article_html):
        assert api.summarize(article_html) == api.extract_text(article_html)

    def test_truncates_with_ellipsis(self, article_html):
        assert api.summarize(article_html, max_words=3) == "Hello World Content..."

    def test_short_text_untouched(self, article_html):
        text = api.extract_text(article_html)
        assert api.summarize(article_html, max_words=500) == text


class TestMediaHelpers:
    def test_extract_images(self, blog_html):
        images = api.extract_images(blog_html)
        assert [image.alt for image in images] == ["A grey heron"]

    def test_extract_videos_and_audios(self, blog_html):
        assert [video.type for video in api.extract_videos(blog_html)] == ["video/mp4", "embed"]
        assert [audio.url for audio in api.extract_audios(blog_html)] == ["/media/birdsong.mp3"]

    def test_extract_links_with_base(self, blog_html):
        links = api.extract_links(blog_html, base_url="https://example.com/")

        assert [link.url for link in links] == ["https://birds.example.org/heron", "https://example.com/guides/reeds"]


class TestFormatting:
    def test_markdown_adds_title_heading(self, blog_html):
        markdown = api.extract_to_markdown(blog_html)

        assert markdown.startswith("# Field Notes | Example Blog\n\nField Notes\n")
        assert "![A grey heron](/images/heron.jpg)" in markdown

    def test_markdown_skips_duplicate_heading(self, article_html):
        """The h1 fallback title already opens the text."""
        markdown = api.extract_to_markdown(article_html)
        assert markdown.startswith("Hello World\n")

    def test_json(self, blog_html):
        data = json.loads(api.extract_to_json(blog_html))

        assert data["title"] == "Field Notes | Example Blog"
        assert data["images"][0]["url"] == "/images/heron.jpg"
        assert data["reading_time"] == pytest.approx(data["word_count"] / 200 * 60)
        assert isinstance(data["processing_time"], float)


class TestLinkResources:
    def test_extract_all_links_and_grouping(self, blog_html):
        grouped = api.group_links_by_type(api.extract_all_links(blog_html))

        assert set(grouped) >= {"link", "image", "video", "audio"}
        assert all(resource.type == kind for kind, items in grouped.items() for resource in items)
