"""
Paginated (PDF) serializer.

Layout is a single top-to-bottom pass over a fixed A4 page. A PageWriter
owns the cursor (y, page_index); every structural unit checks that its
estimated height fits above the bottom margin before drawing and starts
a new page otherwise. The pass records DrawOps into a PdfLayout, which
render_pdf() then paints with PyMuPDF.

Width is estimated with a fixed-pitch heuristic (char width = 0.5 × font
size, in mm); there is no kerning or justification. Wrapping never splits
a word.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Literal

import fitz  # PyMuPDF

from marginalia.config import PDF_PAGE, ExportOptions, PageGeometry
from marginalia.export.common import (
    ExportItem,
    PreparedExport,
    get_export_type_label,
    prepare_export,
)
from marginalia.export.markdown import APP_NAME
from marginalia.formatting import format_export_date, get_color_display_name
from marginalia.models import AnnotationType, Bookmark, Highlight, Note, utc_now

if TYPE_CHECKING:
    from marginalia.models import Annotation

logger = logging.getLogger(__name__)

# =============================================================================
# CONSTANTS
# =============================================================================

MM_TO_PT = 72 / 25.4
CHAR_WIDTH_FACTOR = 0.5

CONTENT_INDENT = 5
NOTE_INDENT = 10
NOTE_WRAP_REDUCTION = 5

DIVIDER_GRAY = 200
META_GRAY = 100
FOOTER_GRAY = 128

# Base-14 Helvetica variants
FONT_NAMES = {"normal": "helv", "bold": "hebo", "italic": "heit"}

FontStyle = Literal["normal", "bold", "italic"]


# =============================================================================
# TEXT MEASUREMENT
# =============================================================================


def get_pdf_content_width(geometry: PageGeometry = PDF_PAGE) -> float:
    """Usable width between the side margins (mm)."""
    return geometry.content_width


def get_chars_per_line(font_size: float, geometry: PageGeometry = PDF_PAGE) -> int:
    """Characters that fit on one line: floor(contentWidth / (fontSize * 0.5))."""
    return math.floor(geometry.content_width / (font_size * CHAR_WIDTH_FACTOR))


def wrap_text_for_pdf(text: str, max_chars_per_line: int) -> list[str]:
    """
    Greedy word wrap.

    Words are added to the current line while ``len(line) + 1 + len(word)``
    fits in max_chars_per_line. A word longer than the limit gets a line
    of its own, unsplit. Whitespace runs collapse to single spaces.

    Args:
        text: Text to wrap
        max_chars_per_line: Line length limit

    Returns:
        Wrapped lines; empty for blank input
    """
    lines: list[str] = []
    current = ""

    for word in text.split():
        if not current:
            current = word
        elif len(current) + 1 + len(word) <= max_chars_per_line:
            current = f"{current} {word}"
        else:
            lines.append(current)
            current = word

    if current:
        lines.append(current)
    return lines


# =============================================================================
# ANNOTATION BLOCKS
# =============================================================================


@dataclass
class PdfAnnotationBlock:
    """Render-ready data for one exported annotation."""

    type: AnnotationType
    type_label: str
    index: int
    content: str
    date: str
    note: str | None = None
    selected_text: str | None = None
    color: str | None = None  # hex
    color_name: str | None = None
    position: int | None = None


def format_annotation_for_pdf(
    annotation: Annotation, options: ExportOptions, index: int
) -> PdfAnnotationBlock:
    """
    Build the block for one annotation.

    Content is the selected text for highlights, the note for notes, and the
    note (or "Position: n") for bookmarks.
    """
    block = PdfAnnotationBlock(
        type=annotation.type,
        type_label=get_export_type_label(annotation.type),
        index=index,
        content="",
        date=format_export_date(annotation.created_at, options.date_format),
    )

    if isinstance(annotation, Highlight):
        block.content = annotation.selected_text
        block.selected_text = annotation.selected_text
        block.color = annotation.color.hex
        block.color_name = get_color_display_name(annotation.color)
        block.note = annotation.note if annotation.has_note else None
    elif isinstance(annotation, Note):
        block.content = annotation.note
        block.note = annotation.note
        block.selected_text = annotation.selected_text or None
    elif isinstance(annotation, Bookmark):
        block.position = annotation.start_offset
        block.note = annotation.note if annotation.has_note else None
        block.content = block.note or f"Position: {annotation.start_offset}"

    return block


@dataclass
class PdfSections:
    """Blocks per bucket, in render order."""

    highlights: list[PdfAnnotationBlock] = field(default_factory=list)
    notes: list[PdfAnnotationBlock] = field(default_factory=list)
    bookmarks: list[PdfAnnotationBlock] = field(default_factory=list)


def prepare_annotations_for_pdf(prepared: PreparedExport) -> PdfSections:
    """Turn the grouped export items into blocks, keeping their bucket indices."""

    def blocks(items: list[ExportItem]) -> list[PdfAnnotationBlock]:
        return [
            format_annotation_for_pdf(item.annotation, prepared.options, item.index)
            for item in items
        ]

    groups = prepared.groups
    return PdfSections(
        highlights=blocks(groups.highlights),
        notes=blocks(groups.notes),
        bookmarks=blocks(groups.bookmarks),
    )


# =============================================================================
# LAYOUT
# =============================================================================


@dataclass(frozen=True)
class DrawOp:
    """
    A positioned drawing instruction, in mm.

    For text, (x, y) is the baseline start. For lines, the segment runs
    from (x, y) to (x2, y).
    """

    page_index: int
    kind: Literal["text", "line"]
    x: float
    y: float
    text: str = ""
    font: FontStyle = "normal"
    size: float = 0
    gray: int = 0
    x2: float = 0


@dataclass
class PdfLayout:
    """Recorded draw operations for the whole document."""

    geometry: PageGeometry
    ops: list[DrawOp] = field(default_factory=list)
    page_count: int = 1

    def page_ops(self, page_index: int) -> list[DrawOp]:
        return [op for op in self.ops if op.page_index == page_index]

    def texts(self) -> list[str]:
        return [op.text for op in self.ops if op.kind == "text"]


class PageWriter:
    """
    The page cursor: current y (mm from the top) and page index.

    Example:
        >>> writer = PageWriter(PDF_PAGE)
        >>> writer.check_page_break(PDF_PAGE.line_height * 3)
        >>> writer.advance(PDF_PAGE.line_height)
    """

    def __init__(self, geometry: PageGeometry = PDF_PAGE):
        self.geometry = geometry
        self.y = geometry.margin_top
        self.page_index = 0

    def check_page_break(self, needed_height: float) -> bool:
        """
        Start a new page if a block of needed_height would cross the bottom margin.

        Returns:
            True if a new page was started
        """
        if self.y + needed_height > self.geometry.bottom_limit:
            self.page_index += 1
            self.y = self.geometry.margin_top
            logger.debug(
                "Page break before %.1fmm block -> page %d", needed_height, self.page_index + 1
            )
            return True
        return False

    def advance(self, dy: float) -> float:
        """Move the cursor down and return the new y."""
        self.y += dy
        return self.y


def draw_text(
    layout: PdfLayout,
    writer: PageWriter,
    text: str,
    *,
    x: float,
    size: float,
    font: FontStyle = "normal",
    gray: int = 0,
) -> float:
    """Record a text op at the cursor. Returns the (unchanged) cursor y."""
    layout.ops.append(
        DrawOp(
            page_index=writer.page_index,
            kind="text",
            x=x,
            y=writer.y,
            text=text,
            font=font,
            size=size,
            gray=gray,
        )
    )
    return writer.y


def draw_divider(layout: PdfLayout, writer: PageWriter) -> float:
    """Record a full-width rule at the cursor. Returns the cursor y."""
    g = writer.geometry
    layout.ops.append(
        DrawOp(
            page_index=writer.page_index,
            kind="line",
            x=g.margin_left,
            y=writer.y,
            x2=g.width - g.margin_right,
            gray=DIVIDER_GRAY,
        )
    )
    return writer.y


def _layout_header(layout: PdfLayout, writer: PageWriter, options: ExportOptions) -> None:
    g = writer.geometry
    lh = g.line_height

    title_lines = wrap_text_for_pdf(options.book_title, get_chars_per_line(g.title_font_size, g))
    for line in title_lines:
        writer.check_page_break(lh + 2)
        draw_text(layout, writer, line, x=g.margin_left, size=g.title_font_size, font="bold")
        writer.advance(lh + 2)

    if options.book_author:
        writer.check_page_break(lh)
        draw_text(
            layout,
            writer,
            f"Author: {options.book_author}",
            x=g.margin_left,
            size=g.body_font_size,
            font="italic",
        )
        writer.advance(lh)

    writer.advance(3)
    writer.check_page_break(lh)
    draw_divider(layout, writer)
    writer.advance(lh)


def _layout_stats(layout: PdfLayout, writer: PageWriter, prepared: PreparedExport) -> None:
    g = writer.geometry
    lh = g.line_height
    stats = prepared.stats

    # Heading, four rows and the closing rule stay together
    writer.check_page_break(2 * lh + 3 * (lh - 1) + 3)

    draw_text(layout, writer, "Summary", x=g.margin_left, size=g.heading_font_size, font="bold")
    writer.advance(lh)

    rows = [
        f"Total Annotations: {stats.total_annotations}",
        f"Highlights: {stats.highlights}",
        f"Notes: {stats.notes}",
        f"Bookmarks: {stats.bookmarks}",
    ]
    for i, row in enumerate(rows):
        draw_text(layout, writer, row, x=g.margin_left, size=g.body_font_size)
        writer.advance(lh + 3 if i == len(rows) - 1 else lh - 1)

    draw_divider(layout, writer)
    writer.advance(lh)


def _layout_block(layout: PdfLayout, writer: PageWriter, block: PdfAnnotationBlock) -> None:
    g = writer.geometry
    lh = g.line_height
    chars_per_line = get_chars_per_line(g.body_font_size, g)

    writer.check_page_break(lh * 5)
    draw_text(
        layout,
        writer,
        f"{block.index}. {block.type_label}",
        x=g.margin_left,
        size=g.body_font_size,
        font="bold",
    )
    writer.advance(lh)

    for line in wrap_text_for_pdf(block.content, chars_per_line):
        writer.check_page_break(lh)
        draw_text(layout, writer, line, x=g.margin_left + CONTENT_INDENT, size=g.body_font_size)
        writer.advance(lh - 1)

    if block.note and block.note != block.content:
        # Label stays with the first note line
        writer.check_page_break(lh * 2)
        draw_text(
            layout,
            writer,
            "Note:",
            x=g.margin_left + CONTENT_INDENT,
            size=g.body_font_size,
            font="italic",
        )
        writer.advance(lh - 1)
        for line in wrap_text_for_pdf(block.note, chars_per_line - NOTE_WRAP_REDUCTION):
            writer.check_page_break(lh)
            draw_text(
                layout,
                writer,
                line,
                x=g.margin_left + NOTE_INDENT,
                size=g.body_font_size,
                font="italic",
            )
            writer.advance(lh - 1)

    meta = f"Date: {block.date}"
    if block.color_name:
        meta += f" | Color: {block.color_name}"
    writer.check_page_break(lh)
    draw_text(
        layout,
        writer,
        meta,
        x=g.margin_left + CONTENT_INDENT,
        size=g.small_font_size,
        gray=META_GRAY,
    )
    writer.advance(lh + 3)


def _layout_section(
    layout: PdfLayout, writer: PageWriter, title: str, blocks: list[PdfAnnotationBlock]
) -> None:
    if not blocks:
        return
    g = writer.geometry
    lh = g.line_height

    writer.check_page_break(lh * 3)
    draw_text(layout, writer, title, x=g.margin_left, size=g.heading_font_size, font="bold")
    writer.advance(lh + 2)

    for block in blocks:
        _layout_block(layout, writer, block)

    writer.check_page_break(lh)
    draw_divider(layout, writer)
    writer.advance(lh)


def layout_pdf(
    prepared: PreparedExport,
    geometry: PageGeometry = PDF_PAGE,
    now: datetime | None = None,
) -> PdfLayout:
    """
    Lay out the document.

    Order: title, author, divider, stats, then each non-empty bucket
    (section title, items, divider), then the footer.

    Args:
        prepared: Output of the common export stage
        geometry: Page geometry
        now: Export time for the footer

    Returns:
        PdfLayout with every op placed at or above the bottom margin
    """
    options = prepared.options
    layout = PdfLayout(geometry=geometry)
    writer = PageWriter(geometry)

    _layout_header(layout, writer, options)
    if options.include_stats:
        _layout_stats(layout, writer, prepared)

    sections = prepare_annotations_for_pdf(prepared)
    _layout_section(layout, writer, "Highlights", sections.highlights)
    _layout_section(layout, writer, "Notes", sections.notes)
    _layout_section(layout, writer, "Bookmarks", sections.bookmarks)

    writer.check_page_break(geometry.line_height * 2)
    exported_on = format_export_date(now if now is not None else utc_now(), "long")
    draw_text(
        layout,
        writer,
        f"Exported from {APP_NAME} on {exported_on}",
        x=geometry.margin_left,
        size=geometry.small_font_size,
        gray=FOOTER_GRAY,
    )

    layout.page_count = writer.page_index + 1
    return layout


# =============================================================================
# RENDERING
# =============================================================================


def _rgb(gray: int) -> tuple[float, float, float]:
    level = gray / 255
    return (level, level, level)


def render_pdf(layout: PdfLayout, title: str = "", author: str | None = None) -> bytes:
    """
    Paint a layout with PyMuPDF.

    Args:
        layout: Recorded layout
        title: Document metadata title
        author: Document metadata author

    Returns:
        The PDF file as bytes
    """
    g = layout.geometry
    doc = fitz.open()
    try:
        # A new page invalidates Page objects handed out earlier, so paint each
        # page completely before creating the next one.
        for page_index in range(layout.page_count):
            page = doc.new_page(width=g.width * MM_TO_PT, height=g.height * MM_TO_PT)
            for op in layout.page_ops(page_index):
                if op.kind == "text":
                    page.insert_text(
                        fitz.Point(op.x * MM_TO_PT, op.y * MM_TO_PT),
                        op.text,
                        fontsize=op.size,
                        fontname=FONT_NAMES[op.font],
                        color=_rgb(op.gray),
                    )
                else:
                    page.draw_line(
                        fitz.Point(op.x * MM_TO_PT, op.y * MM_TO_PT),
                        fitz.Point(op.x2 * MM_TO_PT, op.y * MM_TO_PT),
                        color=_rgb(op.gray),
                        width=0.5,
                    )

        doc.set_metadata({"title": title, "author": author or "", "creator": APP_NAME})
        return doc.tobytes()
    finally:
        doc.close()


def generate_pdf_export(
    annotations: Iterable[Annotation],
    options: ExportOptions,
    now: datetime | None = None,
    geometry: PageGeometry = PDF_PAGE,
) -> bytes:
    """
    Render the paginated export.

    Args:
        annotations: All annotations of the book (not modified)
        options: Export options
        now: Export time (defaults to the current time)
        geometry: Page geometry

    Returns:
        PDF bytes

    Raises:
        ExportOptionsError: If options are invalid
    """
    prepared = prepare_export(annotations, options, now=now)
    layout = layout_pdf(prepared, geometry=geometry, now=now)
    logger.debug("Laid out %d ops on %d pages", len(layout.ops), layout.page_count)
    return render_pdf(layout, title=options.book_title, author=options.book_author)
