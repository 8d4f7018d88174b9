"""
Marginalia: annotate books at stable character offsets and export the marks.

Highlights, notes and bookmarks live at canonical character offsets into a
book's extracted plain text. This library validates them, queries them
(filter, sort, overlap and point lookups, interval merging) and exports
them as Markdown or as a paginated PDF.

Example:
    >>> import marginalia
    >>> h = marginalia.Highlight(
    ...     id="h1", book_id="kant", start_offset=150, end_offset=160,
    ...     selected_text="transcend.", color="blue",
    ... )
    >>> options = marginalia.ExportOptions(format="markdown", book_title="Critique")
    >>> result = marginalia.export_annotations([h], options)
    >>> print(result.filename)
"""

from marginalia.collection import AnnotationEvent, BookAnnotations
from marginalia.config import (
    DEFAULT_PANEL_CONSTRAINTS,
    PDF_PAGE,
    ExportFilters,
    ExportOptions,
    PageGeometry,
    PanelConstraints,
)
from marginalia.exceptions import (
    ConfigurationError,
    ExportOptionsError,
    MarginaliaError,
    StorageError,
    ValidationError,
)
from marginalia.export import (
    ExportResult,
    ExportStats,
    calculate_export_stats,
    escape_markdown,
    export_annotations,
    generate_export_filename,
    generate_markdown_export,
    generate_pdf_export,
    wrap_text_for_pdf,
)
from marginalia.models import (
    DEFAULT_HIGHLIGHT_COLOR,
    Annotation,
    AnnotationType,
    Bookmark,
    Highlight,
    HighlightColor,
    Note,
    annotation_from_dict,
    color_to_hex,
    get_annotation_icon,
    get_annotation_label,
    hex_to_color,
    is_bookmark,
    is_highlight,
    is_note,
)
from marginalia.query import (
    FilterCriteria,
    MergedRange,
    SortSpec,
    count_annotations_by_type,
    filter_annotations,
    get_annotation_at_position,
    get_annotations_in_range,
    group_annotations_by_type,
    merge_overlapping_ranges,
    sort_annotations,
)
from marginalia.settings import (
    JsonFileStore,
    MemoryStore,
    PanelSettings,
    load_panel_settings,
    preset_to_filters,
    save_panel_settings,
    validate_panel_settings,
)

__version__ = "0.1.0"
__all__ = [
    # Models
    "Annotation",
    "AnnotationType",
    "Bookmark",
    "Highlight",
    "HighlightColor",
    "Note",
    "DEFAULT_HIGHLIGHT_COLOR",
    "annotation_from_dict",
    "color_to_hex",
    "hex_to_color",
    "get_annotation_icon",
    "get_annotation_label",
    "is_bookmark",
    "is_highlight",
    "is_note",
    "AnnotationEvent",
    "BookAnnotations",
    # Queries
    "FilterCriteria",
    "MergedRange",
    "SortSpec",
    "count_annotations_by_type",
    "filter_annotations",
    "get_annotation_at_position",
    "get_annotations_in_range",
    "group_annotations_by_type",
    "merge_overlapping_ranges",
    "sort_annotations",
    # Export
    "export_annotations",
    "ExportResult",
    "ExportStats",
    "calculate_export_stats",
    "escape_markdown",
    "generate_export_filename",
    "generate_markdown_export",
    "generate_pdf_export",
    "wrap_text_for_pdf",
    # Configuration
    "ExportFilters",
    "ExportOptions",
    "PageGeometry",
    "PanelConstraints",
    "PDF_PAGE",
    "DEFAULT_PANEL_CONSTRAINTS",
    # Settings
    "JsonFileStore",
    "MemoryStore",
    "PanelSettings",
    "load_panel_settings",
    "preset_to_filters",
    "save_panel_settings",
    "validate_panel_settings",
    # Exceptions
    "MarginaliaError",
    "ValidationError",
    "ExportOptionsError",
    "ConfigurationError",
    "StorageError",
]
