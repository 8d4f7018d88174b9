"""
Unit tests for the Markdown serializer.
"""

import pytest

from marginalia.config import ExportFilters, ExportOptions
from marginalia.export.markdown import (
    escape_markdown,
    format_annotation_as_markdown,
    generate_markdown_export,
)


@pytest.fixture
def options() -> ExportOptions:
    return ExportOptions(format="markdown", book_title="Test Book", book_author="Test Author")


class TestEscape:
    """Test escape_markdown()."""

    def test_special_characters(self):
        """Markdown control characters are backslash-prefixed."""
        assert escape_markdown("Hello *world*") == r"Hello \*world\*"
        assert escape_markdown("[link](url)") == r"\[link\]\(url\)"
        assert escape_markdown("1. item") == r"1\. item"

    def test_backslash(self):
        """A literal backslash is escaped too."""
        assert escape_markdown("a\\b") == "a\\\\b"

    def test_plain_text_unchanged(self):
        """Text without specials passes through."""
        assert escape_markdown("plain words") == "plain words"


class TestItems:
    """Test per-annotation templates."""

    def test_highlight(self, highlight, options):
        """Highlights quote the text and show color and date."""
        text = format_annotation_as_markdown(highlight, options, 1)
        assert text.startswith("### 1. Highlight")
        assert "> This is highlighted text" in text
        assert "**Color:** Yellow | **Date:** January 1, 2024" in text
        assert "**Note:** A note on the highlight" in text

    def test_note(self, note, options):
        """Notes show their text and italic context."""
        text = format_annotation_as_markdown(note, options, 2)
        assert text.startswith("### 2. Note")
        assert "This is a standalone note" in text
        assert "> *Some selected text*" in text
        assert "**Date:** January 2, 2024" in text

    def test_bookmark(self, bookmark, options):
        """Bookmarks show their position."""
        text = format_annotation_as_markdown(bookmark, options, 1)
        assert "**Position:** 200 | **Date:** January 3, 2024" in text
        assert "**Note:** Important section" in text

    def test_selected_text_escaped(self, highlight, options):
        """User text is escaped before interpolation."""
        highlight.selected_text = "*bold* claim"
        text = format_annotation_as_markdown(highlight, options, 1)
        assert r"> \*bold\* claim" in text

    def test_blank_note_omitted(self, highlight, bookmark, options):
        """Whitespace-only notes produce no Note line."""
        highlight.note = "  "
        bookmark.note = "   "
        assert "**Note:**" not in format_annotation_as_markdown(highlight, options, 1)
        assert "**Note:**" not in format_annotation_as_markdown(bookmark, options, 1)

    def test_iso_dates(self, bookmark):
        """date_format is honored per item."""
        options = ExportOptions("markdown", "Book", date_format="iso")
        assert "2024-01-03" in format_annotation_as_markdown(bookmark, options, 1)


class TestDocument:
    """Test generate_markdown_export()."""

    def test_structure(self, annotations, options, export_time):
        """Header, summary, TOC, sections and footer appear in order."""
        text = generate_markdown_export(annotations, options, now=export_time)
        assert text.startswith("# Test Book\n**Author:** Test Author\n")
        order = [
            "## Summary",
            "## Table of Contents",
            "## Highlights",
            "## Notes",
            "## Bookmarks",
            "*Exported from Marginalia on March 15, 2024*",
        ]
        positions = [text.index(marker) for marker in order]
        assert positions == sorted(positions)
        assert text.endswith("*Exported from Marginalia on March 15, 2024*")

    def test_summary_counts(self, annotations, options, export_time):
        """Summary lists the counts and export date."""
        text = generate_markdown_export(annotations, options, now=export_time)
        assert "- **Total Annotations:** 3" in text
        assert "- **Highlights:** 1" in text
        assert "- **Exported:** March 15, 2024" in text

    def test_toc_links(self, annotations, options, export_time):
        """TOC links each non-empty section with its count."""
        text = generate_markdown_export(annotations, options, now=export_time)
        assert "- [Highlights](#highlights) (1)" in text
        assert "- [Notes](#notes) (1)" in text
        assert "- [Bookmarks](#bookmarks) (1)" in text

    def test_filtered_sections(self, annotations, options, export_time):
        """Filtered-out buckets produce no section at all."""
        options.filters = ExportFilters(types=["HIGHLIGHT"])
        text = generate_markdown_export(annotations, options, now=export_time)
        assert "## Highlights" in text
        assert "## Notes" not in text
        assert "## Bookmarks" not in text
        assert "(#notes)" not in text

    def test_optional_sections(self, annotations, export_time):
        """Summary and TOC can be switched off; no author line without an author."""
        options = ExportOptions("markdown", "Book", include_toc=False, include_stats=False)
        text = generate_markdown_export(annotations, options, now=export_time)
        assert "## Summary" not in text
        assert "## Table of Contents" not in text
        assert "**Author:**" not in text

    def test_no_divider_after_last_section(self, annotations, options, export_time):
        """Sections are separated, the last one runs into the footer."""
        text = generate_markdown_export(annotations, options, now=export_time)
        tail = text[text.index("## Bookmarks") :]
        assert tail.count("---") == 1
