#!/usr/bin/env python3
"""
Basic Marginalia Usage Example

This example demonstrates the core workflow:
1. Capture selections as highlights, notes and bookmarks
2. Query the annotations of a book
3. Configure the notes panel and persist its settings
4. Export to Markdown and PDF
"""

import logging
from pathlib import Path

from marginalia import (
    AnnotationEvent,
    BookAnnotations,
    ExportFilters,
    ExportOptions,
    FilterCriteria,
    JsonFileStore,
    SortSpec,
    export_annotations,
    filter_annotations,
    get_annotation_at_position,
    get_annotations_in_range,
    load_panel_settings,
    merge_overlapping_ranges,
    save_panel_settings,
    sort_annotations,
)
from marginalia.selection import (
    TextSelection,
    create_bookmark_input,
    create_highlight_input,
    create_note_input,
    validate_selection,
)
from marginalia.settings import get_filtered_annotations


def main():
    logging.basicConfig(level=logging.INFO)
    book = BookAnnotations("critique-of-pure-reason")

    # ─────────────────────────────────────────────────────────────────────────
    # 1. Capture
    # ─────────────────────────────────────────────────────────────────────────

    selection = TextSelection(
        text="All our knowledge begins with experience", start_offset=120, end_offset=160
    )
    check = validate_selection(selection)
    if not check.valid:
        raise SystemExit(check.error)

    # Drafts carry everything except the id assigned by the backend
    drafts = [
        create_highlight_input(book.book_id, selection, color="blue"),
        create_note_input(book.book_id, selection, "Compare with the B edition preface"),
        create_bookmark_input(book.book_id, 4200, note="Transcendental Aesthetic"),
    ]
    for i, draft in enumerate(drafts, start=1):
        book.add(draft.build(f"a{i}"))

    # UI events go through the same collection
    book.apply_event(AnnotationEvent("update", "a1", {"note": "Opening claim"}))

    # ─────────────────────────────────────────────────────────────────────────
    # 2. Query
    # ─────────────────────────────────────────────────────────────────────────

    annotations = book.snapshot()

    with_notes = filter_annotations(annotations, FilterCriteria(has_note=True))
    print(f"{len(with_notes)} of {len(annotations)} annotations have notes")

    for annotation in sort_annotations(annotations, SortSpec("startOffset", "asc")):
        print(f"  {annotation.type.value:<9} [{annotation.start_offset}, {annotation.end_offset})")

    hit = get_annotation_at_position(annotations, 4200)
    if hit:
        print(f"Offset 4200 is marked by {hit.id}")

    print(f"In [0, 1000): {len(get_annotations_in_range(annotations, 0, 1000))}")
    for region in merge_overlapping_ranges(annotations):
        print(f"Paint [{region.start}, {region.end}) for {', '.join(region.annotation_ids)}")

    # ─────────────────────────────────────────────────────────────────────────
    # 3. Notes panel settings
    # ─────────────────────────────────────────────────────────────────────────

    store = JsonFileStore(Path("output/settings.json"))
    settings = load_panel_settings(store)  # defaults if missing or corrupt
    save_panel_settings({**settings.to_dict(), "filterPreset": "with-notes"}, store)

    visible = get_filtered_annotations(annotations, load_panel_settings(store))
    print(f"Panel shows {len(visible)} annotations")

    # ─────────────────────────────────────────────────────────────────────────
    # 4. Export
    # ─────────────────────────────────────────────────────────────────────────

    for export_format in ("markdown", "pdf"):
        options = ExportOptions(
            format=export_format,
            book_title="Critique of Pure Reason",
            book_author="Immanuel Kant",
            filters=ExportFilters(types=["HIGHLIGHT", "NOTE"]),
            date_format="iso",
        )
        result = export_annotations(annotations, options)
        if result.success:
            print(f"Wrote {result.save('output')}")
        else:
            print(f"Export failed ({result.error_code}): {result.error}")


if __name__ == "__main__":
    main()
