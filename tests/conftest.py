"""
Pytest configuration and fixtures for Marginalia tests.
"""

from datetime import datetime, timezone

import pytest

from marginalia.models import Bookmark, Highlight, Note


@pytest.fixture
def export_time() -> datetime:
    """Fixed export timestamp."""
    return datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def highlight() -> Highlight:
    """Yellow highlight at [0, 50) with a note."""
    return Highlight(
        id="highlight-1",
        book_id="book-1",
        start_offset=0,
        end_offset=50,
        selected_text="This is highlighted text",
        color="yellow",
        note="A note on the highlight",
        created_at="2024-01-01T10:00:00Z",
    )


@pytest.fixture
def note() -> Note:
    """Public note at [100, 150) with context."""
    return Note(
        id="note-1",
        book_id="book-1",
        start_offset=100,
        end_offset=150,
        note="This is a standalone note",
        selected_text="Some selected text",
        is_public=True,
        created_at="2024-01-02T10:00:00Z",
    )


@pytest.fixture
def bookmark() -> Bookmark:
    """Bookmark at offset 200."""
    return Bookmark(
        id="bookmark-1",
        book_id="book-1",
        start_offset=200,
        end_offset=200,
        note="Important section",
        created_at="2024-01-03T10:00:00Z",
    )


@pytest.fixture
def annotations(highlight, note, bookmark) -> list:
    """One annotation of each type, in document order."""
    return [highlight, note, bookmark]
