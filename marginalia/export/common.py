"""
Shared export stage feeding both serializers.

Steps, in order:
1. validate options (title, format)
2. filter with ExportFilters
3. sort by start offset (document order, regardless of UI sort)
4. compute ExportStats
5. group into Highlights / Notes / Bookmarks buckets with 1-based indices
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import TYPE_CHECKING

from marginalia.config import EXPORT_FORMATS, ExportFilters, ExportOptions
from marginalia.exceptions import ExportOptionsError
from marginalia.models import (
    Annotation,
    AnnotationType,
    Bookmark,
    Highlight,
    Note,
    format_timestamp,
    get_annotation_label,
    parse_timestamp,
    utc_now,
)

if TYPE_CHECKING:
    from marginalia.config import ExportFormat

logger = logging.getLogger(__name__)

MAX_SLUG_LENGTH = 50
FILE_EXTENSIONS = {"markdown": "md", "pdf": "pdf"}

_SLUG_PATTERN = re.compile(r"[^a-z0-9]+")


# =============================================================================
# DATA STRUCTURES
# =============================================================================


@dataclass(frozen=True)
class ExportStats:
    """Counts over the filtered, sorted export set."""

    total_annotations: int
    highlights: int
    notes: int
    bookmarks: int
    with_notes: int
    public_annotations: int
    export_date: str  # ISO-8601 timestamp


@dataclass(frozen=True)
class ExportItem:
    """An annotation with its 1-based position inside its bucket."""

    index: int
    annotation: Annotation


@dataclass
class ExportGroups:
    """The three ordered buckets, in the order serializers render them."""

    highlights: list[ExportItem] = field(default_factory=list)
    notes: list[ExportItem] = field(default_factory=list)
    bookmarks: list[ExportItem] = field(default_factory=list)

    def sections(self) -> list[tuple[str, str, list[ExportItem]]]:
        """(title, anchor, items) for each non-empty bucket."""
        candidates = [
            ("Highlights", "highlights", self.highlights),
            ("Notes", "notes", self.notes),
            ("Bookmarks", "bookmarks", self.bookmarks),
        ]
        return [c for c in candidates if c[2]]


@dataclass
class PreparedExport:
    """Output of the common stage."""

    options: ExportOptions
    annotations: list[Annotation]  # filtered + sorted
    stats: ExportStats
    groups: ExportGroups


@dataclass(frozen=True)
class OptionsCheck:
    """Non-raising result of check_export_options()."""

    valid: bool
    error: str | None = None
    code: str | None = None


# =============================================================================
# STEP 1: VALIDATION
# =============================================================================


def validate_export_options(options: ExportOptions) -> None:
    """
    Check options before any rendering work.

    Raises:
        ExportOptionsError: code "invalid_title" for a blank title,
            "invalid_format" for a format other than markdown/pdf.
    """
    if not options.book_title or not options.book_title.strip():
        raise ExportOptionsError("invalid_title", "Book title is required")
    if options.format not in EXPORT_FORMATS:
        raise ExportOptionsError("invalid_format", f"Invalid export format: {options.format!r}")


def check_export_options(options: ExportOptions) -> OptionsCheck:
    """validate_export_options() as a value instead of an exception."""
    try:
        validate_export_options(options)
    except ExportOptionsError as e:
        return OptionsCheck(valid=False, error=str(e), code=e.code)
    return OptionsCheck(valid=True)


# =============================================================================
# STEPS 2-5
# =============================================================================


def filter_annotations_for_export(
    annotations: Iterable[Annotation], filters: ExportFilters | None = None
) -> list[Annotation]:
    """
    Apply export filters, preserving input order.

    A color filter drops everything that is not a highlight of a listed color.
    """
    if filters is None:
        return list(annotations)

    result = []
    for annotation in annotations:
        if filters.types and annotation.type not in filters.types:
            continue
        if filters.public_only and not annotation.is_public:
            continue
        if filters.colors:
            if not isinstance(annotation, Highlight) or annotation.color not in filters.colors:
                continue
        result.append(annotation)
    return result


def sort_annotations_for_export(annotations: Iterable[Annotation]) -> list[Annotation]:
    """Document order: start offset ascending, ties keep input order."""
    return sorted(annotations, key=lambda a: a.start_offset)


def calculate_export_stats(
    annotations: Iterable[Annotation], now: datetime | None = None
) -> ExportStats:
    """Count annotations by type, with notes, and public ones."""
    highlights = notes = bookmarks = with_notes = public = total = 0

    for annotation in annotations:
        total += 1
        if isinstance(annotation, Highlight):
            highlights += 1
        elif isinstance(annotation, Note):
            notes += 1
        elif isinstance(annotation, Bookmark):
            bookmarks += 1

        if annotation.has_note:
            with_notes += 1
        if annotation.is_public:
            public += 1

    return ExportStats(
        total_annotations=total,
        highlights=highlights,
        notes=notes,
        bookmarks=bookmarks,
        with_notes=with_notes,
        public_annotations=public,
        export_date=format_timestamp(parse_timestamp(now) if now is not None else utc_now()),
    )


def group_for_export(annotations: Iterable[Annotation]) -> ExportGroups:
    """Split sorted annotations into buckets, numbering each bucket from 1."""
    groups = ExportGroups()
    buckets = {
        AnnotationType.HIGHLIGHT: groups.highlights,
        AnnotationType.NOTE: groups.notes,
        AnnotationType.BOOKMARK: groups.bookmarks,
    }
    for annotation in annotations:
        bucket = buckets[annotation.type]
        bucket.append(ExportItem(index=len(bucket) + 1, annotation=annotation))
    return groups


def prepare_export(
    annotations: Iterable[Annotation],
    options: ExportOptions,
    now: datetime | None = None,
) -> PreparedExport:
    """
    Run the common stage.

    Args:
        annotations: All annotations of the book (not modified)
        options: Export options
        now: Export time (defaults to the current time)

    Returns:
        PreparedExport ready for a serializer

    Raises:
        ExportOptionsError: If options are invalid
    """
    validate_export_options(options)

    filtered = filter_annotations_for_export(annotations, options.filters)
    ordered = sort_annotations_for_export(filtered)
    stats = calculate_export_stats(ordered, now=now)
    groups = group_for_export(ordered)

    logger.debug(
        "Prepared export: %d annotations (%d highlights, %d notes, %d bookmarks)",
        stats.total_annotations,
        stats.highlights,
        stats.notes,
        stats.bookmarks,
    )
    return PreparedExport(options=options, annotations=ordered, stats=stats, groups=groups)


# =============================================================================
# NAMING
# =============================================================================


def slugify_title(title: str) -> str:
    """Lowercase, collapse non [a-z0-9] runs to "-", trim dashes, cap at 50 chars."""
    slug = _SLUG_PATTERN.sub("-", title.lower()).strip("-")
    return slug[:MAX_SLUG_LENGTH]


def generate_export_filename(
    book_title: str, export_format: ExportFormat, today: date | None = None
) -> str:
    """
    Suggested filename: ``{slug}-annotations-YYYY-MM-DD.{md|pdf}``.

    Args:
        book_title: Title of the book
        export_format: "markdown" or "pdf"
        today: Date stamp (defaults to the current UTC date)
    """
    stamp = (today or utc_now().date()).isoformat()
    extension = FILE_EXTENSIONS.get(export_format, "pdf")
    return f"{slugify_title(book_title)}-annotations-{stamp}.{extension}"


def get_export_type_label(annotation_type: AnnotationType | str) -> str:
    """Section/item label for a type."""
    return get_annotation_label(annotation_type)
