"""
Configuration for Marginalia exports and the notes panel.

Export options are plain dataclasses; the notes panel reads its size bounds
from PanelConstraints.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from marginalia.exceptions import ConfigurationError, ExportOptionsError
from marginalia.models import AnnotationType, HighlightColor, parse_annotation_type, parse_color

EXPORT_FORMATS = ("markdown", "pdf")
DATE_FORMATS = ("short", "long", "iso")

ExportFormat = Literal["markdown", "pdf"]
DateFormat = Literal["short", "long", "iso"]


@dataclass
class ExportFilters:
    """
    Narrow the set of annotations that end up in an export.

    Empty lists (or None) impose no constraint. A color filter only keeps
    highlights, since only highlights carry a color.

    Example:
        >>> ExportFilters(types=[AnnotationType.HIGHLIGHT], colors=["blue"])
    """

    types: list[AnnotationType] = field(default_factory=list)
    public_only: bool = False
    colors: list[HighlightColor] = field(default_factory=list)

    def __post_init__(self):
        """Normalize string values to enums."""
        self.types = [parse_annotation_type(t) for t in self.types or []]
        self.colors = [parse_color(c) for c in self.colors or []]


@dataclass
class ExportOptions:
    """
    Options for a single export call.

    The title and format are checked by the export pipeline itself
    (validate_export_options) so that failures can be reported as
    result codes. The date format is checked here.

    Example:
        >>> options = ExportOptions(
        ...     format="markdown",
        ...     book_title="Critique of Pure Reason",
        ...     filters=ExportFilters(types=["HIGHLIGHT"]),
        ... )
        >>> result = marginalia.export_annotations(annotations, options)
    """

    format: ExportFormat
    book_title: str
    book_author: str | None = None
    filters: ExportFilters | None = None

    # Output sections
    include_toc: bool = True
    include_stats: bool = True

    # Timestamps on each item
    date_format: DateFormat = "long"

    def __post_init__(self):
        """Validate configuration."""
        if self.date_format not in DATE_FORMATS:
            raise ExportOptionsError(
                "invalid_date_format",
                f"date_format must be one of {DATE_FORMATS}, got {self.date_format!r}",
            )


@dataclass(frozen=True)
class PageGeometry:
    """
    Fixed page geometry for the paginated export.

    Units are millimetres, font sizes are points. Defaults describe an
    A4 portrait page with 20 mm margins.
    """

    width: float = 210
    height: float = 297
    margin_top: float = 20
    margin_bottom: float = 20
    margin_left: float = 20
    margin_right: float = 20
    line_height: float = 7
    title_font_size: float = 18
    heading_font_size: float = 14
    body_font_size: float = 11
    small_font_size: float = 9

    def __post_init__(self):
        """Validate that the page leaves room for content."""
        if self.content_width <= 0:
            raise ConfigurationError(
                f"margins leave no horizontal space on a {self.width}mm wide page"
            )
        if self.bottom_limit - self.margin_top < self.line_height:
            raise ConfigurationError(
                f"margins leave less than one line of vertical space on a "
                f"{self.height}mm tall page"
            )

    @property
    def content_width(self) -> float:
        """Usable width between the side margins."""
        return self.width - self.margin_left - self.margin_right

    @property
    def bottom_limit(self) -> float:
        """Lowest y at which content may be drawn."""
        return self.height - self.margin_bottom


PDF_PAGE = PageGeometry()


@dataclass(frozen=True)
class PanelConstraints:
    """Size bounds (in pixels) for the resizable notes panel."""

    min_width: int = 280
    max_width: int = 600
    default_width: int = 360
    min_height: int = 200
    max_height: int = 500
    default_height: int = 300


DEFAULT_PANEL_CONSTRAINTS = PanelConstraints()
