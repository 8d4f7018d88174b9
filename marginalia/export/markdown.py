"""
Markdown serializer.

Heading levels: ``#`` book title, ``##`` sections, ``###`` items.
Every user-supplied string (selected text, notes) goes through
escape_markdown() exactly once before interpolation.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from datetime import datetime

from marginalia.config import ExportOptions
from marginalia.export.common import ExportGroups, ExportStats, prepare_export
from marginalia.formatting import format_export_date, get_color_display_name
from marginalia.models import Annotation, Bookmark, Highlight, Note, utc_now

APP_NAME = "Marginalia"
DIVIDER = "---"

_MARKDOWN_SPECIAL = re.compile(r"([\\`*_{}\[\]()#+\-.!])")


def escape_markdown(text: str) -> str:
    r"""Backslash-prefix ``\ ` * _ { } [ ] ( ) # + - . !`` (single pass)."""
    return _MARKDOWN_SPECIAL.sub(r"\\\1", text)


def generate_markdown_header(options: ExportOptions) -> str:
    lines = [f"# {options.book_title}"]
    if options.book_author:
        lines.append(f"**Author:** {options.book_author}")
    lines += ["", DIVIDER, ""]
    return "\n".join(lines)


def generate_markdown_stats(stats: ExportStats) -> str:
    lines = [
        "## Summary",
        "",
        f"- **Total Annotations:** {stats.total_annotations}",
        f"- **Highlights:** {stats.highlights}",
        f"- **Notes:** {stats.notes}",
        f"- **Bookmarks:** {stats.bookmarks}",
        f"- **Exported:** {format_export_date(stats.export_date, 'long')}",
        "",
        DIVIDER,
        "",
    ]
    return "\n".join(lines)


def generate_markdown_toc(groups: ExportGroups) -> str:
    """Table of contents; buckets without items get no line."""
    lines = ["## Table of Contents", ""]
    for title, anchor, items in groups.sections():
        lines.append(f"- [{title}](#{anchor}) ({len(items)})")
    lines += ["", DIVIDER, ""]
    return "\n".join(lines)


def format_annotation_as_markdown(
    annotation: Annotation, options: ExportOptions, index: int
) -> str:
    """Render one item with the template for its type."""
    date_str = format_export_date(annotation.created_at, options.date_format)
    lines: list[str] = []

    if isinstance(annotation, Highlight):
        lines += [
            f"### {index}. Highlight",
            "",
            f"> {escape_markdown(annotation.selected_text)}",
            "",
            f"**Color:** {get_color_display_name(annotation.color)} | **Date:** {date_str}",
        ]
        if annotation.has_note:
            lines += ["", f"**Note:** {escape_markdown(annotation.note)}"]

    elif isinstance(annotation, Note):
        lines += [f"### {index}. Note", "", escape_markdown(annotation.note)]
        if annotation.selected_text:
            lines += ["", f"> *{escape_markdown(annotation.selected_text)}*"]
        lines += ["", f"**Date:** {date_str}"]

    elif isinstance(annotation, Bookmark):
        lines += [
            f"### {index}. Bookmark",
            "",
            f"**Position:** {annotation.start_offset} | **Date:** {date_str}",
        ]
        if annotation.has_note:
            lines += ["", f"**Note:** {escape_markdown(annotation.note)}"]

    lines.append("")
    return "\n".join(lines)


def generate_markdown_export(
    annotations: Iterable[Annotation],
    options: ExportOptions,
    now: datetime | None = None,
) -> str:
    """
    Render the full Markdown document.

    Args:
        annotations: All annotations of the book (not modified)
        options: Export options
        now: Export time (defaults to the current time)

    Returns:
        The Markdown text

    Raises:
        ExportOptionsError: If options are invalid
    """
    prepared = prepare_export(annotations, options, now=now)
    groups = prepared.groups
    parts = [generate_markdown_header(options)]

    if options.include_stats:
        parts.append(generate_markdown_stats(prepared.stats))
    if options.include_toc:
        parts.append(generate_markdown_toc(groups))

    sections = groups.sections()
    for position, (title, _anchor, items) in enumerate(sections):
        parts.append(f"## {title}\n\n")
        for item in items:
            parts.append(format_annotation_as_markdown(item.annotation, options, item.index))
        if position < len(sections) - 1:
            parts.append(f"{DIVIDER}\n\n")

    exported_on = format_export_date(now if now is not None else utc_now(), "long")
    parts.append(f"\n{DIVIDER}\n")
    parts.append(f"*Exported from {APP_NAME} on {exported_on}*")
    return "".join(parts)
