"""
Unit tests for date and text formatting.
"""

from datetime import datetime, timezone

import pytest

from marginalia.exceptions import ConfigurationError
from marginalia.formatting import (
    format_annotation_date,
    format_export_date,
    get_color_display_name,
    get_excerpt_text,
    truncate_text,
)


class TestExportDate:
    """Test format_export_date()."""

    @pytest.mark.parametrize(
        "fmt,expected",
        [("iso", "2024-01-05"), ("short", "01/05/2024"), ("long", "January 5, 2024")],
    )
    def test_formats(self, fmt, expected):
        """Each format renders the UTC date."""
        assert format_export_date("2024-01-05T23:30:00Z", fmt) == expected

    def test_offset_converted_to_utc(self):
        """Non-UTC offsets are normalized before formatting."""
        assert format_export_date("2024-01-05T23:30:00-05:00", "iso") == "2024-01-06"

    def test_unknown_format(self):
        """Unknown formats are configuration errors."""
        with pytest.raises(ConfigurationError):
            format_export_date("2024-01-05T00:00:00Z", "roman")


class TestAnnotationDate:
    """Test format_annotation_date()."""

    NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("2024-03-15T01:00:00Z", "Today"),
            ("2024-03-14T23:00:00Z", "Yesterday"),
            ("2024-03-12T12:00:00Z", "3 days ago"),
            ("2024-03-01T12:00:00Z", "3/1/2024"),
        ],
    )
    def test_relative(self, value, expected):
        """Recent dates are relative; older ones are M/D/YYYY."""
        assert format_annotation_date(value, now=self.NOW) == expected


class TestText:
    """Test truncation helpers."""

    def test_short_text_unchanged(self):
        """Text within the limit is returned as is."""
        assert truncate_text("short", 10) == "short"

    def test_truncate_includes_ellipsis(self):
        """The ellipsis counts toward the limit."""
        result = truncate_text("abcdefghijklmnop", 10)
        assert result == "abcdefg..."
        assert len(result) == 10

    def test_excerpt_default_length(self):
        """Excerpts default to 100 characters."""
        assert len(get_excerpt_text("x" * 250)) == 100

    def test_color_display_name(self):
        """Color names are capitalized."""
        assert get_color_display_name("blue") == "Blue"
