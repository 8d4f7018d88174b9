"""
Selection validation and annotation drafts.

A draft is what the selection-capture flow sends to the backend: the
annotation's content without the server-assigned id and timestamps.
build() turns a draft into a validated annotation.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from marginalia.models import (
    ANNOTATION_CLASSES,
    DEFAULT_HIGHLIGHT_COLOR,
    Annotation,
    AnnotationType,
    HighlightColor,
    parse_color,
    utc_now,
)


@dataclass(frozen=True)
class SelectionRect:
    """Screen rectangle of a selection (for toolbar placement)."""

    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True)
class TextSelection:
    """Text selected by the reader, in canonical offsets."""

    text: str
    start_offset: int
    end_offset: int
    rect: SelectionRect | None = None


@dataclass(frozen=True)
class SelectionCheck:
    """Outcome of validate_selection()."""

    valid: bool
    error: str | None = None


def validate_selection(selection: TextSelection | None) -> SelectionCheck:
    """Check that a selection can become a highlight or note."""
    if selection is None:
        return SelectionCheck(False, "No text selected")
    if not selection.text.strip():
        return SelectionCheck(False, "Selection is empty")
    if selection.start_offset < 0:
        return SelectionCheck(False, "Invalid start offset")
    if selection.end_offset <= selection.start_offset:
        return SelectionCheck(False, "Invalid selection range")
    return SelectionCheck(True)


@dataclass
class AnnotationDraft:
    """An annotation awaiting an id."""

    book_id: str
    type: AnnotationType
    start_offset: int
    end_offset: int
    selected_text: str | None = None
    color: HighlightColor | None = None
    note: str | None = None
    is_public: bool = False

    def to_dict(self) -> dict[str, Any]:
        """camelCase create payload; optional fields are omitted when unset."""
        data: dict[str, Any] = {
            "bookId": self.book_id,
            "type": self.type.value,
            "startOffset": self.start_offset,
            "endOffset": self.end_offset,
            "isPublic": self.is_public,
        }
        if self.selected_text is not None:
            data["selectedText"] = self.selected_text
        if self.color is not None:
            data["color"] = self.color.value
        if self.note is not None:
            data["note"] = self.note
        return data

    def build(self, annotation_id: str, created_at: datetime | str | None = None) -> Annotation:
        """
        Create the validated annotation for this draft.

        Raises:
            ValidationError: If the draft breaks an annotation invariant.
        """
        kwargs: dict[str, Any] = {
            "id": annotation_id,
            "book_id": self.book_id,
            "start_offset": self.start_offset,
            "end_offset": self.end_offset,
            "note": self.note,
            "is_public": self.is_public,
            "created_at": created_at if created_at is not None else utc_now(),
        }
        if self.type is AnnotationType.HIGHLIGHT:
            kwargs["selected_text"] = self.selected_text
            kwargs["color"] = self.color or DEFAULT_HIGHLIGHT_COLOR
        elif self.type is AnnotationType.NOTE:
            kwargs["selected_text"] = self.selected_text
        return ANNOTATION_CLASSES[self.type](**kwargs)


def create_highlight_input(
    book_id: str,
    selection: TextSelection,
    color: HighlightColor | str = DEFAULT_HIGHLIGHT_COLOR,
    note: str | None = None,
) -> AnnotationDraft:
    """Draft a highlight over the selection."""
    return AnnotationDraft(
        book_id=book_id,
        type=AnnotationType.HIGHLIGHT,
        start_offset=selection.start_offset,
        end_offset=selection.end_offset,
        selected_text=selection.text,
        color=parse_color(color),
        note=note,
    )


def create_note_input(book_id: str, selection: TextSelection, note: str) -> AnnotationDraft:
    """Draft a note attached to the selection (kept as context)."""
    return AnnotationDraft(
        book_id=book_id,
        type=AnnotationType.NOTE,
        start_offset=selection.start_offset,
        end_offset=selection.end_offset,
        selected_text=selection.text,
        note=note,
    )


def create_bookmark_input(book_id: str, offset: int, note: str | None = None) -> AnnotationDraft:
    """Draft a bookmark at a single offset."""
    return AnnotationDraft(
        book_id=book_id,
        type=AnnotationType.BOOKMARK,
        start_offset=offset,
        end_offset=offset,
        note=note,
    )
