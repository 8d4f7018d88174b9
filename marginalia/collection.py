"""
Id-keyed annotation set for a single book.

Applies create/update/delete events coming from the UI layer. Readers
(queries, exports) should work on snapshot() so a concurrent mutation
can never be observed mid-pass.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any, Literal

from marginalia.exceptions import ValidationError
from marginalia.models import Annotation, Highlight, annotation_from_dict

logger = logging.getLogger(__name__)


@dataclass
class AnnotationEvent:
    """
    A CRUD event from the UI layer.

    Attributes:
        action: "create", "update" or "delete".
        annotation_id: Target id (update/delete).
        payload: camelCase annotation data (create) or changed fields (update).
    """

    action: Literal["create", "update", "delete"]
    annotation_id: str | None = None
    payload: dict[str, Any] = field(default_factory=dict)


class BookAnnotations:
    """
    The annotations of one book, unique by id.

    Example:
        >>> book = BookAnnotations("book-1")
        >>> book.add(Bookmark(id="b1", book_id="book-1", start_offset=10, end_offset=10))
        >>> result = export_annotations(book.snapshot(), options)
    """

    def __init__(self, book_id: str, annotations: list[Annotation] | None = None):
        self.book_id = book_id
        self._items: dict[str, Annotation] = {}
        for annotation in annotations or []:
            self.add(annotation)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Annotation]:
        return iter(list(self._items.values()))

    def __contains__(self, annotation_id: object) -> bool:
        return annotation_id in self._items

    def add(self, annotation: Annotation) -> None:
        """
        Add an annotation.

        Raises:
            ValidationError: If the id is taken or the annotation belongs to another book.
        """
        if annotation.book_id != self.book_id:
            raise ValidationError(
                f"Annotation {annotation.id!r} belongs to book {annotation.book_id!r}, "
                f"not {self.book_id!r}"
            )
        if annotation.id in self._items:
            raise ValidationError(f"Duplicate annotation id: {annotation.id!r}")
        self._items[annotation.id] = annotation

    def get(self, annotation_id: str) -> Annotation | None:
        return self._items.get(annotation_id)

    def remove(self, annotation_id: str) -> Annotation | None:
        """Delete by id. Returns the removed annotation, or None if absent."""
        return self._items.pop(annotation_id, None)

    def update(
        self,
        annotation_id: str,
        *,
        note: str | None = None,
        color: str | None = None,
        is_public: bool | None = None,
        liked: bool | None = None,
    ) -> Annotation:
        """
        Mutate the mutable fields of an annotation in place.

        Only the arguments that are given are applied.

        Raises:
            ValidationError: If the id is unknown, a color is set on a
                non-highlight, or the new value breaks an invariant.
        """
        annotation = self._items.get(annotation_id)
        if annotation is None:
            raise ValidationError(f"Unknown annotation id: {annotation_id!r}")

        if note is not None:
            annotation.set_note(note)
        if color is not None:
            if not isinstance(annotation, Highlight):
                raise ValidationError(f"Only highlights have a color ({annotation_id!r})")
            annotation.set_color(color)
        if is_public is not None:
            annotation.set_public(is_public)
        if liked is not None:
            annotation.set_liked(liked)
        return annotation

    def apply_event(self, event: AnnotationEvent) -> Annotation | None:
        """
        Apply a create/update/delete event.

        Returns:
            The created, updated or removed annotation (None if a delete missed)
        """
        if event.action == "create":
            annotation = annotation_from_dict(event.payload)
            self.add(annotation)
            return annotation

        if event.annotation_id is None:
            raise ValidationError(f"{event.action} event needs an annotation_id")

        if event.action == "update":
            changes = event.payload
            return self.update(
                event.annotation_id,
                note=changes.get("note"),
                color=changes.get("color"),
                is_public=changes.get("isPublic"),
                liked=changes.get("isLikedByCurrentUser"),
            )

        if event.action == "delete":
            removed = self.remove(event.annotation_id)
            if removed is None:
                logger.debug("Delete for unknown annotation %s ignored", event.annotation_id)
            return removed

        raise ValidationError(f"Unknown event action: {event.action!r}")

    def snapshot(self) -> list[Annotation]:
        """Shallow copy of the current annotations, safe to sort and filter."""
        return list(self._items.values())
