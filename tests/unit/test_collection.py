"""
Unit tests for BookAnnotations and CRUD event handling.
"""

import pytest

from marginalia.collection import AnnotationEvent, BookAnnotations
from marginalia.exceptions import ValidationError
from marginalia.models import Bookmark, HighlightColor, Note


@pytest.fixture
def book(annotations) -> BookAnnotations:
    return BookAnnotations("book-1", annotations)


class TestBookAnnotations:
    """Test the id-keyed collection."""

    def test_construction(self, book):
        """Initial annotations are added in order."""
        assert len(book) == 3
        assert "note-1" in book
        assert [a.id for a in book] == ["highlight-1", "note-1", "bookmark-1"]

    def test_duplicate_id_rejected(self, book, note):
        """Ids are unique within a book."""
        with pytest.raises(ValidationError, match="Duplicate"):
            book.add(note)

    def test_foreign_book_rejected(self, book):
        """Annotations from another book are refused."""
        other = Bookmark(id="x", book_id="book-2", start_offset=1, end_offset=1)
        with pytest.raises(ValidationError, match="belongs to book"):
            book.add(other)

    def test_remove(self, book):
        """Remove returns the annotation, or None when absent."""
        assert book.remove("note-1").id == "note-1"
        assert book.remove("note-1") is None
        assert len(book) == 2

    def test_update_fields(self, book):
        """Only the given fields change."""
        updated = book.update("highlight-1", color="blue", is_public=True)
        assert updated.color is HighlightColor.BLUE
        assert updated.is_public
        assert updated.note == "A note on the highlight"

    def test_update_color_on_note(self, book):
        """Color is a highlight-only field."""
        with pytest.raises(ValidationError, match="Only highlights"):
            book.update("note-1", color="green")

    def test_update_unknown_id(self, book):
        """Updating a missing annotation is an error."""
        with pytest.raises(ValidationError, match="Unknown annotation id"):
            book.update("nope", is_public=True)

    def test_snapshot_is_independent(self, book):
        """Mutating the collection does not change a taken snapshot."""
        snap = book.snapshot()
        book.remove("highlight-1")
        assert len(snap) == 3
        assert len(book) == 2


class TestEvents:
    """Test apply_event()."""

    def test_create(self, book):
        """Create builds the variant from its camelCase payload."""
        event = AnnotationEvent(
            "create",
            payload={
                "id": "note-2",
                "bookId": "book-1",
                "type": "NOTE",
                "startOffset": 300,
                "endOffset": 320,
                "note": "Follow up",
            },
        )
        created = book.apply_event(event)
        assert isinstance(created, Note)
        assert book.get("note-2") is created

    def test_update(self, book):
        """Update applies the changed fields."""
        book.apply_event(AnnotationEvent("update", "bookmark-1", {"isLikedByCurrentUser": True}))
        assert book.get("bookmark-1").like_count == 1

    def test_delete(self, book):
        """Delete removes; a missed delete returns None."""
        assert book.apply_event(AnnotationEvent("delete", "note-1")).id == "note-1"
        assert book.apply_event(AnnotationEvent("delete", "note-1")) is None

    def test_missing_id(self, book):
        """Update and delete need a target id."""
        with pytest.raises(ValidationError, match="needs an annotation_id"):
            book.apply_event(AnnotationEvent("delete"))

    def test_unknown_action(self, book):
        """Unknown actions are rejected."""
        with pytest.raises(ValidationError, match="Unknown event action"):
            book.apply_event(AnnotationEvent("archive", "note-1"))
