"""
Query engine over annotation collections.

Every function here is pure: inputs are never mutated and new lists are
returned. Empty inputs yield empty results.

Offsets follow the half-open convention [start, end) for range overlap,
while point lookup is inclusive on both ends so that bookmarks
(start == end) can be hit.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from marginalia.exceptions import ConfigurationError
from marginalia.models import (
    AnnotationType,
    Highlight,
    parse_annotation_type,
)

if TYPE_CHECKING:
    from marginalia.models import Annotation

logger = logging.getLogger(__name__)

SORT_FIELDS = ("createdAt", "updatedAt", "startOffset", "type")
SORT_DIRECTIONS = ("asc", "desc")


# =============================================================================
# FILTERING
# =============================================================================


@dataclass(frozen=True)
class FilterCriteria:
    """
    Predicates for filter_annotations(). All given fields are ANDed.

    Attributes:
        type: Exact annotation type.
        has_note: True keeps annotations with a non-empty note,
            False keeps those without one.
        search: Case-insensitive substring of the note or, for highlights,
            of the selected text.
    """

    type: AnnotationType | None = None
    has_note: bool | None = None
    search: str | None = None

    def __post_init__(self):
        if self.type is not None:
            object.__setattr__(self, "type", parse_annotation_type(self.type))

    def matches(self, annotation: Annotation) -> bool:
        """Check a single annotation against every criterion."""
        if self.type is not None and annotation.type is not self.type:
            return False

        if self.has_note is not None and annotation.has_note != self.has_note:
            return False

        if self.search:
            needle = self.search.lower()
            haystacks = [annotation.note or ""]
            if isinstance(annotation, Highlight):
                haystacks.append(annotation.selected_text)
            if not any(needle in h.lower() for h in haystacks):
                return False

        return True


def filter_annotations(
    annotations: Iterable[Annotation], criteria: FilterCriteria | None = None
) -> list[Annotation]:
    """
    Return the annotations matching criteria, preserving input order.

    Args:
        annotations: Annotations to filter (not modified)
        criteria: Predicates to apply; None or empty criteria keep everything

    Returns:
        New list of matching annotations
    """
    if criteria is None:
        return list(annotations)
    return [a for a in annotations if criteria.matches(a)]


# =============================================================================
# SORTING
# =============================================================================


@dataclass(frozen=True)
class SortSpec:
    """Sort field and direction. Invalid values raise ConfigurationError."""

    field: str = "createdAt"
    direction: str = "desc"

    def __post_init__(self):
        """Validate configuration."""
        if self.field not in SORT_FIELDS:
            raise ConfigurationError(
                f"sort field must be one of {SORT_FIELDS}, got {self.field!r}"
            )
        if self.direction not in SORT_DIRECTIONS:
            raise ConfigurationError(
                f"sort direction must be one of {SORT_DIRECTIONS}, got {self.direction!r}"
            )


def _sort_key(field: str):
    if field == "createdAt":
        return lambda a: a.created_at
    if field == "updatedAt":
        return lambda a: a.updated_at
    if field == "startOffset":
        return lambda a: a.start_offset
    return lambda a: a.type.value


def sort_annotations(annotations: Iterable[Annotation], order: SortSpec) -> list[Annotation]:
    """
    Stable sort by order.field in order.direction.

    Ties keep their relative input order in both directions.

    Args:
        annotations: Annotations to sort (not modified)
        order: Field and direction

    Returns:
        New sorted list
    """
    # sorted() with reverse=True keeps equal elements in input order
    return sorted(annotations, key=_sort_key(order.field), reverse=order.direction == "desc")


# =============================================================================
# RANGE QUERIES
# =============================================================================


def get_annotations_in_range(
    annotations: Iterable[Annotation], start_offset: int, end_offset: int
) -> list[Annotation]:
    """
    Annotations whose range overlaps [start_offset, end_offset).

    Uses the open overlap test ``a.start < end and a.end > start``; use
    get_annotation_at_position() for point hits.
    """
    return [a for a in annotations if a.start_offset < end_offset and a.end_offset > start_offset]


def get_annotation_at_position(
    annotations: Iterable[Annotation], offset: int
) -> Annotation | None:
    """First annotation (in input order) with start <= offset <= end, or None."""
    for annotation in annotations:
        if annotation.start_offset <= offset <= annotation.end_offset:
            return annotation
    return None


# =============================================================================
# INTERVAL MERGE
# =============================================================================


@dataclass(frozen=True)
class MergedRange:
    """
    A paint region formed by one or more overlapping/touching highlights.

    Attributes:
        start: Smallest start offset of the group.
        end: Largest end offset of the group.
        annotation_ids: Ids of every contributing highlight, in
            (start_offset, end_offset) order.
    """

    start: int
    end: int
    annotation_ids: tuple[str, ...]

    def __len__(self) -> int:
        return self.end - self.start


def merge_overlapping_ranges(annotations: Iterable[Annotation]) -> list[MergedRange]:
    """
    Coalesce highlight ranges into maximal non-overlapping regions.

    Non-highlight annotations are ignored. Ranges merge when the next one
    starts at or before the current region's end (touching counts).

    Args:
        annotations: Annotations to merge (not modified)

    Returns:
        Merged regions ordered by start offset
    """
    highlights = sorted(
        (a for a in annotations if isinstance(a, Highlight)),
        key=lambda h: (h.start_offset, h.end_offset),
    )
    if not highlights:
        return []

    merged: list[MergedRange] = []
    first = highlights[0]
    start, end, ids = first.start_offset, first.end_offset, [first.id]

    for highlight in highlights[1:]:
        if highlight.start_offset <= end:
            end = max(end, highlight.end_offset)
            ids.append(highlight.id)
        else:
            merged.append(MergedRange(start, end, tuple(ids)))
            start, end, ids = highlight.start_offset, highlight.end_offset, [highlight.id]

    merged.append(MergedRange(start, end, tuple(ids)))
    logger.debug("Merged %d highlights into %d regions", len(highlights), len(merged))
    return merged


# =============================================================================
# GROUPING
# =============================================================================


def group_annotations_by_type(
    annotations: Iterable[Annotation],
) -> dict[AnnotationType, list[Annotation]]:
    """Bucket annotations by type; every type is present, input order kept per bucket."""
    groups: dict[AnnotationType, list[Annotation]] = {t: [] for t in AnnotationType}
    for annotation in annotations:
        groups[annotation.type].append(annotation)
    return groups


def count_annotations_by_type(annotations: Sequence[Annotation]) -> dict[AnnotationType, int]:
    """Number of annotations per type; every type is present."""
    return {t: len(items) for t, items in group_annotations_by_type(annotations).items()}
