"""Tests for markdown_html module."""

import pytest
from kindlify.markdown_html import (
    STEPS,
    convert,
    convert_breaks,
    convert_emphasis,
    convert_headers,
    convert_horizontal_rules,
    convert_images,
    convert_links,
    convert_ordered_lists,
    convert_strong,
    convert_unordered_lists,
    unwrap_headings,
    wrap_paragraphs,
)
from kindlify.ocr import join_pages


class TestHeaders:
    """Tests for the header step."""

    @pytest.mark.parametrize("markdown, expected", [
        ("# Title", "<h1>Title</h1>"),
        ("## Title", "<h2>Title</h2>"),
        ("### Title", "<h3>Title</h3>"),
    ])
    def test_header_levels(self, markdown, expected):
        assert convert_headers(markdown) == expected

    def test_specific_level_not_swallowed(self):
        """'###' must not be read as '#' followed by text."""
        assert convert_headers("### Deep") == "<h3>Deep</h3>"
        assert "<h1>" not in convert_headers("### Deep")

    def test_headers_only_at_line_start(self):
        assert convert_headers("not # a header") == "not # a header"

    def test_multiline(self):
        result = convert_headers("# One\ntext\n## Two")
        assert result == "<h1>One</h1>\ntext\n<h2>Two</h2>"

    def test_hash_without_space_is_text(self):
        assert convert_headers("#hashtag") == "#hashtag"

    @pytest.mark.parametrize("markdown, expected", [
        ("# Title", "<h1>Title</h1>"),
        ("## Title", "<h2>Title</h2>"),
        ("### Title", "<h3>Title</h3>"),
    ])
    def test_full_conversion_is_exact(self, markdown, expected):
        """A lone heading is not wrapped in a paragraph."""
        assert convert(markdown) == expected


class TestInlineFormatting:
    """Tests for strong, emphasis, links and images."""

    def test_strong_stars(self):
        assert convert_strong("**bold**") == "<strong>bold</strong>"

    def test_strong_underscores(self):
        assert convert_strong("__bold__") == "<strong>bold</strong>"

    def test_strong_is_non_greedy(self):
        result = convert_strong("**a** and **b**")
        assert result == "<strong>a</strong> and <strong>b</strong>"

    def test_emphasis_stars(self):
        assert convert_emphasis("*italic*") == "<em>italic</em>"

    def test_emphasis_underscores(self):
        assert convert_emphasis("_italic_") == "<em>italic</em>"

    def test_strong_before_emphasis(self):
        """Doubled markers are consumed before single ones."""
        assert convert("**bold** and *italic*") == (
            "<p><strong>bold</strong> and <em>italic</em></p>"
        )

    def test_unmatched_marker_stays_literal(self):
        assert convert_emphasis("5 * 3 = 15") == "5 * 3 = 15"

    def test_link(self):
        assert convert_links("[text](http://x)") == '<a href="http://x">text</a>'

    def test_image(self):
        assert convert_images("![alt](http://x)") == '<img src="http://x" alt="alt" />'

    def test_image_with_empty_alt(self):
        assert convert_images("![](pic.png)") == '<img src="pic.png" alt="" />'

    def test_link_step_leaves_image_syntax(self):
        assert convert_links("![alt](http://x)") == "![alt](http://x)"

    def test_convert_link(self):
        assert '<a href="http://x">text</a>' in convert("[text](http://x)")

    def test_convert_image(self):
        assert '<img src="http://x" alt="alt" />' in convert("![alt](http://x)")

    def test_convert_strong_and_emphasis(self):
        assert "<strong>bold</strong>" in convert("**bold**")
        assert "<em>italic</em>" in convert("*italic*")


class TestParagraphs:
    """Tests for line breaks and paragraph wrapping."""

    def test_breaks(self):
        assert convert_breaks("a\n\nb\nc") == "a</p><p>b<br>c"

    def test_wrap(self):
        assert wrap_paragraphs("a</p><p>b") == "<p>a</p><p>b</p>"

    def test_empty_input(self):
        assert convert("") == "<p></p>"

    def test_plain_text(self):
        assert convert("Just some text.") == "<p>Just some text.</p>"

    def test_single_newlines_become_breaks(self):
        assert convert("line one\nline two") == "<p>line one<br>line two</p>"

    def test_blank_line_splits_paragraphs(self):
        assert convert("first\n\nsecond") == "<p>first</p><p>second</p>"

    def test_angle_brackets_pass_through(self):
        assert convert("a <b> c") == "<p>a <b> c</p>"

    def test_table_passes_through_as_text(self):
        result = convert("| a | b |\n| - | - |")
        assert result == "<p>| a | b |<br>| - | - |</p>"


class TestHeadingBlocks:
    """Tests for lifting headings out of paragraphs."""

    def test_heading_alone(self):
        assert unwrap_headings("<p><h1>T</h1></p>") == "<h1>T</h1>"

    def test_heading_followed_by_text(self):
        assert convert("# Title\nBody text") == "<h1>Title</h1><p>Body text</p>"

    def test_heading_after_text(self):
        assert convert("Intro\n## Part") == "<p>Intro</p><h2>Part</h2>"

    def test_consecutive_headings(self):
        assert convert("# A\n## B") == "<h1>A</h1><h2>B</h2>"


class TestLists:
    """Tests for list detection and merging."""

    def test_single_item(self):
        assert convert_unordered_lists("<p>- a</p>") == "<ul><li>a</li></ul>"

    def test_three_items_merge_into_one_list(self):
        result = convert("- a\n- b\n- c")
        assert result == "<ul><li>a</li><li>b</li><li>c</li></ul>"
        assert result.count("<ul>") == 1
        assert result.count("<li>") == 3

    def test_blank_line_keeps_lists_separate(self):
        result = convert("- a\n\n- b")
        assert result == "<ul><li>a</li></ul><ul><li>b</li></ul>"

    def test_list_after_text(self):
        result = convert("Items:\n- a\n- b")
        assert result == "<p>Items:</p><ul><li>a</li><li>b</li></ul>"

    def test_text_after_list(self):
        assert convert("- a\nafter") == "<ul><li>a</li></ul><p>after</p>"

    def test_ordered_items_merge(self):
        result = convert("1. one\n2. two\n3. three")
        assert result == "<ol><li>one</li><li>two</li><li>three</li></ol>"

    def test_ordered_step_alone(self):
        assert convert_ordered_lists("<p>10. ten</p>") == "<ol><li>ten</li></ol>"

    def test_dash_inside_line_is_not_a_list(self):
        assert convert("a - b") == "<p>a - b</p>"


class TestHorizontalRules:
    """Tests for horizontal rules and page separators."""

    def test_rule_step(self):
        assert convert_horizontal_rules("<p>---</p>") == "<hr>"

    def test_lone_rule(self):
        assert convert("---") == "<hr>"

    def test_page_separator_before_heading(self):
        """Page break is followed directly by the next page's heading."""
        markdown = join_pages(["First page text.", "# Chapter Two\nMore text."])
        result = convert(markdown)
        assert "<hr><h1>Chapter Two</h1>" in result
        assert result == "<p>First page text.</p><hr><h1>Chapter Two</h1><p>More text.</p>"


class TestPipeline:
    """Tests for the converter as a whole."""

    def test_step_order(self):
        names = [step.__name__ for step in STEPS]
        assert names.index("convert_strong") < names.index("convert_emphasis")
        assert names.index("convert_links") < names.index("convert_images")
        assert names.index("wrap_paragraphs") < names.index("convert_unordered_lists")

    def test_not_idempotent(self):
        """Running the converter on its own output is accepted to change it."""
        once = convert("line one\nline two")
        twice = convert(once)
        assert twice != once
        assert twice == "<p><p>line one<br>line two</p></p>"

    def test_never_raises_on_malformed_input(self):
        for markdown in ["**unclosed", "[broken](", "![", "_", "\n\n\n", "1.", "- "]:
            assert isinstance(convert(markdown), str)

    def test_none_treated_as_empty(self):
        assert convert(None) == "<p></p>"
