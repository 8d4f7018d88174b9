"""
Annotation export: Markdown and paginated PDF.

Data flows one way: annotations -> common stage (filter, sort, stats,
grouping) -> serializer -> document + suggested filename.

Example:
    >>> from marginalia.export import export_annotations
    >>> result = export_annotations(annotations, ExportOptions("pdf", "Being and Time"))
    >>> if result.success:
    ...     result.save("exports/")
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from marginalia.config import ExportOptions
from marginalia.exceptions import MarginaliaError
from marginalia.export.common import (
    ExportGroups,
    ExportItem,
    ExportStats,
    OptionsCheck,
    PreparedExport,
    calculate_export_stats,
    check_export_options,
    filter_annotations_for_export,
    generate_export_filename,
    get_export_type_label,
    group_for_export,
    prepare_export,
    sort_annotations_for_export,
    validate_export_options,
)
from marginalia.export.markdown import escape_markdown, generate_markdown_export
from marginalia.export.pdf import (
    PageWriter,
    PdfLayout,
    generate_pdf_export,
    get_chars_per_line,
    layout_pdf,
    wrap_text_for_pdf,
)
from marginalia.models import Annotation, parse_timestamp

logger = logging.getLogger(__name__)


@dataclass
class ExportResult:
    """
    Outcome of export_annotations().

    Exactly one of content (Markdown) or data (PDF bytes) is set on success.
    On failure, error holds the message and error_code the reason
    (e.g. "invalid_title").
    """

    success: bool
    filename: str
    content: str | None = None
    data: bytes | None = None
    error: str | None = None
    error_code: str | None = None

    def save(self, directory: str | Path) -> Path:
        """
        Write the document under the suggested filename.

        Args:
            directory: Target directory (created if missing)

        Returns:
            Path of the written file

        Raises:
            ValueError: If the export failed
        """
        if not self.success:
            raise ValueError(f"Cannot save a failed export: {self.error}")
        path = Path(directory) / self.filename
        path.parent.mkdir(parents=True, exist_ok=True)
        if self.data is not None:
            path.write_bytes(self.data)
        else:
            path.write_text(self.content or "", encoding="utf-8")
        return path


def export_annotations(
    annotations: Iterable[Annotation],
    options: ExportOptions,
    now: datetime | None = None,
) -> ExportResult:
    """
    Export annotations in the requested format.

    Options are validated before any rendering; an invalid title or format
    produces a failed result and no document.

    Args:
        annotations: All annotations of the book (not modified)
        options: Export options
        now: Export time (defaults to the current time)

    Returns:
        ExportResult; never raises for well-typed input
    """
    today = parse_timestamp(now).date() if now is not None else None
    filename = generate_export_filename(options.book_title or "", options.format, today=today)
    snapshot = list(annotations)

    try:
        validate_export_options(options)
        if options.format == "markdown":
            result = ExportResult(
                success=True,
                filename=filename,
                content=generate_markdown_export(snapshot, options, now=now),
            )
        else:
            result = ExportResult(
                success=True,
                filename=filename,
                data=generate_pdf_export(snapshot, options, now=now),
            )
    except MarginaliaError as e:
        logger.warning("Export of %r failed: %s", options.book_title, e)
        return ExportResult(
            success=False,
            filename=filename,
            error=str(e),
            error_code=getattr(e, "code", None),
        )

    logger.info("Exported %d annotations as %s to %s", len(snapshot), options.format, filename)
    return result


__all__ = [
    "export_annotations",
    "ExportResult",
    # Common stage
    "ExportGroups",
    "ExportItem",
    "ExportStats",
    "OptionsCheck",
    "PreparedExport",
    "calculate_export_stats",
    "check_export_options",
    "filter_annotations_for_export",
    "generate_export_filename",
    "get_export_type_label",
    "group_for_export",
    "prepare_export",
    "sort_annotations_for_export",
    "validate_export_options",
    # Serializers
    "escape_markdown",
    "generate_markdown_export",
    "generate_pdf_export",
    "get_chars_per_line",
    "layout_pdf",
    "PageWriter",
    "PdfLayout",
    "wrap_text_for_pdf",
]
