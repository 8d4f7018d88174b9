"""
Unit tests for the annotation query engine.
"""

import pytest

from marginalia.exceptions import ConfigurationError, ValidationError
from marginalia.models import AnnotationType, Bookmark, Highlight, Note
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


def make_highlight(hid: str, start: int, end: int, created_at: str = "2024-01-01T00:00:00Z"):
    return Highlight(
        id=hid,
        book_id="book-1",
        start_offset=start,
        end_offset=end,
        selected_text="x" * max(end - start, 1),
        created_at=created_at,
    )


class TestFilter:
    """Test filter_annotations()."""

    def test_no_criteria_keeps_everything(self, annotations):
        """None criteria returns a copy of the input."""
        result = filter_annotations(annotations)
        assert result == annotations
        assert result is not annotations

    def test_filter_by_type(self, annotations):
        """Type filter keeps a single variant."""
        result = filter_annotations(annotations, FilterCriteria(type="HIGHLIGHT"))
        assert [a.id for a in result] == ["highlight-1"]

    def test_filter_has_note(self, annotations):
        """All three fixtures carry a note."""
        assert len(filter_annotations(annotations, FilterCriteria(has_note=True))) == 3
        assert filter_annotations(annotations, FilterCriteria(has_note=False)) == []

    def test_search_note_case_insensitive(self, annotations):
        """Search matches the note text regardless of case."""
        result = filter_annotations(annotations, FilterCriteria(search="IMPORTANT"))
        assert [a.id for a in result] == ["bookmark-1"]

    def test_search_highlight_text(self, annotations):
        """Highlights are also searched by their selected text."""
        result = filter_annotations(annotations, FilterCriteria(search="highlighted"))
        assert [a.id for a in result] == ["highlight-1"]

    def test_search_ignores_note_context(self, annotations):
        """A Note's selected_text is not searched."""
        assert filter_annotations(annotations, FilterCriteria(search="Some selected")) == []

    def test_criteria_combine(self, annotations):
        """All given criteria must hold."""
        criteria = FilterCriteria(type=AnnotationType.NOTE, search="highlight")
        assert filter_annotations(annotations, criteria) == []

    def test_filter_is_idempotent(self, annotations):
        """Filtering twice with the same criteria changes nothing."""
        criteria = FilterCriteria(has_note=True, search="note")
        once = filter_annotations(annotations, criteria)
        assert filter_annotations(once, criteria) == once

    def test_empty_input(self):
        """Empty input yields empty output."""
        assert filter_annotations([], FilterCriteria(type="NOTE")) == []

    def test_unknown_type_rejected(self):
        """Unknown type tokens are rejected when the criteria are built."""
        with pytest.raises(ValidationError):
            FilterCriteria(type="STICKER")


class TestSort:
    """Test sort_annotations()."""

    def test_default_is_newest_first(self, annotations):
        """createdAt desc puts the newest first."""
        result = sort_annotations(annotations, SortSpec())
        assert [a.id for a in result] == ["bookmark-1", "note-1", "highlight-1"]

    def test_sort_by_offset_asc(self, annotations):
        """startOffset asc is document order."""
        shuffled = [annotations[2], annotations[0], annotations[1]]
        result = sort_annotations(shuffled, SortSpec("startOffset", "asc"))
        assert [a.start_offset for a in result] == [0, 100, 200]

    def test_sort_by_type(self, annotations):
        """Type sorts by the type token."""
        result = sort_annotations(annotations, SortSpec("type", "asc"))
        assert [a.type for a in result] == [
            AnnotationType.BOOKMARK,
            AnnotationType.HIGHLIGHT,
            AnnotationType.NOTE,
        ]

    @pytest.mark.parametrize("direction", ["asc", "desc"])
    def test_sort_is_stable(self, direction):
        """Equal keys keep their input order in both directions."""
        items = [make_highlight(f"h{i}", i, i + 5) for i in range(5)]
        result = sort_annotations(items, SortSpec("createdAt", direction))
        assert [a.id for a in result] == ["h0", "h1", "h2", "h3", "h4"]

    def test_input_not_modified(self, annotations):
        """Sorting returns a new list."""
        before = list(annotations)
        sort_annotations(annotations, SortSpec("startOffset", "desc"))
        assert annotations == before

    def test_invalid_sort_order(self):
        """Unknown fields and directions are configuration errors."""
        with pytest.raises(ConfigurationError):
            SortSpec("likeCount", "asc")
        with pytest.raises(ConfigurationError):
            SortSpec("createdAt", "up")


class TestRangeQueries:
    """Test range and point lookups."""

    def test_range_covers_all(self, annotations):
        """A wide range picks up the interior bookmark too."""
        assert len(get_annotations_in_range(annotations, 0, 250)) == 3

    def test_range_overlap_is_open(self, annotations):
        """Ranges that only touch do not overlap."""
        assert get_annotations_in_range(annotations, 50, 100) == []

    def test_range_partial(self, annotations):
        """Partial overlap is enough."""
        result = get_annotations_in_range(annotations, 25, 120)
        assert [a.id for a in result] == ["highlight-1", "note-1"]

    def test_position_inside(self, annotations):
        """Point lookup finds the covering annotation."""
        assert get_annotation_at_position(annotations, 25).id == "highlight-1"

    def test_position_hits_bookmark(self, annotations):
        """Point lookup is inclusive, so bookmarks can be hit."""
        assert get_annotation_at_position(annotations, 200).id == "bookmark-1"

    def test_position_gap(self, annotations):
        """Offsets between annotations return None."""
        assert get_annotation_at_position(annotations, 75) is None

    def test_position_first_match_wins(self):
        """With overlaps, the first in input order is returned."""
        items = [make_highlight("a", 0, 20), make_highlight("b", 10, 30)]
        assert get_annotation_at_position(items, 15).id == "a"


class TestMerge:
    """Test merge_overlapping_ranges()."""

    def test_merge_overlapping_and_touching(self):
        """Overlapping and touching highlights coalesce; gaps split."""
        items = [
            make_highlight("c", 40, 50),
            make_highlight("a", 0, 10),
            make_highlight("b", 5, 20),
            make_highlight("d", 50, 55),
            make_highlight("e", 70, 80),
        ]
        result = merge_overlapping_ranges(items)
        assert result == [
            MergedRange(0, 20, ("a", "b")),
            MergedRange(40, 55, ("c", "d")),
            MergedRange(70, 80, ("e",)),
        ]

    def test_contained_range(self):
        """A range inside another does not shrink the region."""
        items = [make_highlight("outer", 0, 100), make_highlight("inner", 10, 20)]
        result = merge_overlapping_ranges(items)
        assert result == [MergedRange(0, 100, ("outer", "inner"))]
        assert len(result[0]) == 100

    def test_non_highlights_ignored(self, annotations):
        """Notes and bookmarks do not paint."""
        assert merge_overlapping_ranges(annotations) == [MergedRange(0, 50, ("highlight-1",))]

    def test_regions_are_disjoint_and_cover_inputs(self):
        """Output regions are sorted, disjoint, and cover every input range."""
        items = [make_highlight(f"h{i}", (i * 7) % 60, (i * 7) % 60 + 4) for i in range(12)]
        result = merge_overlapping_ranges(items)
        for left, right in zip(result, result[1:]):
            assert left.end < right.start
        for item in items:
            assert any(r.start <= item.start_offset and item.end_offset <= r.end for r in result)
        assert sorted(i for r in result for i in r.annotation_ids) == sorted(h.id for h in items)

    def test_empty(self):
        """No highlights, no regions."""
        assert merge_overlapping_ranges([]) == []


class TestGrouping:
    """Test grouping and counting by type."""

    def test_group_has_every_type(self):
        """Empty input still yields all three buckets."""
        groups = group_annotations_by_type([])
        assert set(groups) == set(AnnotationType)
        assert all(v == [] for v in groups.values())

    def test_count(self, annotations):
        """One of each type."""
        extra = Note(id="n2", book_id="book-1", start_offset=1, end_offset=2, note="x")
        mark = Bookmark(id="b2", book_id="book-1", start_offset=3, end_offset=3)
        counts = count_annotations_by_type([*annotations, extra, mark])
        assert counts == {
            AnnotationType.HIGHLIGHT: 1,
            AnnotationType.NOTE: 2,
            AnnotationType.BOOKMARK: 2,
        }
