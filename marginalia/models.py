"""
Data models for Marginalia.

An annotation marks a range of a book's extracted plain text using
canonical character offsets. There are three closed variants:

- Highlight: a colored range with the exact selected text
- Note: a range carrying a required, non-empty note
- Bookmark: a single point (start_offset == end_offset)

Construction enforces the offset and content invariants and raises
ValidationError otherwise. Query and export code only reads annotations.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar

from marginalia.exceptions import ValidationError

# =============================================================================
# ENUMS
# =============================================================================


class AnnotationType(str, Enum):
    """Discriminator for the annotation variants."""

    HIGHLIGHT = "HIGHLIGHT"
    NOTE = "NOTE"
    BOOKMARK = "BOOKMARK"


class HighlightColor(str, Enum):
    """The fixed highlight palette. No other colors are accepted."""

    YELLOW = "yellow"
    GREEN = "green"
    BLUE = "blue"
    PINK = "pink"
    PURPLE = "purple"
    ORANGE = "orange"

    @property
    def hex(self) -> str:
        """Display color as #rrggbb."""
        return HIGHLIGHT_COLOR_VALUES[self]


HIGHLIGHT_COLOR_VALUES: dict[HighlightColor, str] = {
    HighlightColor.YELLOW: "#fff176",
    HighlightColor.GREEN: "#a5d6a7",
    HighlightColor.BLUE: "#90caf9",
    HighlightColor.PINK: "#f48fb1",
    HighlightColor.PURPLE: "#ce93d8",
    HighlightColor.ORANGE: "#ffcc80",
}

DEFAULT_HIGHLIGHT_COLOR = HighlightColor.YELLOW

_ICONS = {
    AnnotationType.HIGHLIGHT: "highlight",
    AnnotationType.NOTE: "note",
    AnnotationType.BOOKMARK: "bookmark",
}

_LABELS = {
    AnnotationType.HIGHLIGHT: "Highlight",
    AnnotationType.NOTE: "Note",
    AnnotationType.BOOKMARK: "Bookmark",
}


def parse_annotation_type(value: AnnotationType | str) -> AnnotationType:
    """Coerce a type token to AnnotationType, raising ValidationError if unknown."""
    try:
        return AnnotationType(value)
    except ValueError:
        raise ValidationError(f"Unknown annotation type: {value!r}") from None


def parse_color(value: HighlightColor | str) -> HighlightColor:
    """Coerce a color name to HighlightColor, raising ValidationError if unknown."""
    try:
        return HighlightColor(value)
    except ValueError:
        valid = ", ".join(c.value for c in HighlightColor)
        raise ValidationError(
            f"Unknown highlight color {value!r} (expected one of {valid})"
        ) from None


def color_to_hex(color: HighlightColor | str) -> str:
    """Return the display hex for a palette color."""
    return parse_color(color).hex


def hex_to_color(value: str) -> HighlightColor | None:
    """Reverse lookup of a display hex (case-insensitive). None if not in the palette."""
    needle = value.lower()
    for color, hex_value in HIGHLIGHT_COLOR_VALUES.items():
        if hex_value == needle:
            return color
    return None


# =============================================================================
# TIMESTAMPS
# =============================================================================


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def parse_timestamp(value: datetime | str) -> datetime:
    """
    Parse an ISO-8601 timestamp into an aware UTC datetime.

    Naive values are taken to be UTC. A trailing "Z" is accepted.

    Raises:
        ValidationError: If the value cannot be parsed.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            raise ValidationError(f"Invalid timestamp: {value!r}") from None
    else:
        raise ValidationError(f"Invalid timestamp: {value!r}")

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """Render a datetime as e.g. 2024-01-01T10:00:00.000Z."""
    utc = value.astimezone(timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


# =============================================================================
# ANNOTATIONS
# =============================================================================


@dataclass(kw_only=True)
class Annotation:
    """
    Fields shared by every annotation variant.

    Do not instantiate directly; use Highlight, Note or Bookmark.

    Attributes:
        id: Opaque identifier, unique within a book.
        book_id: Book the annotation belongs to.
        start_offset: Canonical character offset where the range starts.
        end_offset: Canonical character offset where the range ends (exclusive).
        note: Optional free-text note.
        is_public: Whether other readers can see it.
        like_count: Number of likes (never negative).
        is_liked_by_current_user: Whether the current reader liked it.
        created_at: Creation time (ISO-8601 string or datetime, stored as UTC).
        updated_at: Last modification time.
    """

    type: ClassVar[AnnotationType]

    id: str
    book_id: str
    start_offset: int
    end_offset: int
    note: str | None = None
    is_public: bool = False
    like_count: int = 0
    is_liked_by_current_user: bool = False
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime | None = None

    def __post_init__(self):
        """Validate offsets and normalize blank notes and timestamps."""
        if type(self) is Annotation:
            raise TypeError("Annotation is abstract; use Highlight, Note or Bookmark")
        if self.start_offset < 0 or self.end_offset < 0:
            raise ValidationError(
                f"Offsets must be >= 0, got [{self.start_offset}, {self.end_offset})"
            )
        if self.end_offset < self.start_offset:
            raise ValidationError(
                f"end_offset ({self.end_offset}) must be >= start_offset ({self.start_offset})"
            )
        if self.like_count < 0:
            raise ValidationError(f"like_count must be >= 0, got {self.like_count}")
        if self.note is not None and not self.note.strip():
            self.note = None

        self.created_at = parse_timestamp(self.created_at)
        if self.updated_at is None:
            self.updated_at = self.created_at
        else:
            self.updated_at = parse_timestamp(self.updated_at)

    @property
    def length(self) -> int:
        """Number of characters covered by the range."""
        return self.end_offset - self.start_offset

    @property
    def has_note(self) -> bool:
        """True if the note has non-whitespace content."""
        return bool(self.note and self.note.strip())

    # ─────────────────────────────────────────────────────────────────────────
    # In-place mutation
    # ─────────────────────────────────────────────────────────────────────────

    def touch(self, now: datetime | None = None) -> None:
        """Bump updated_at."""
        self.updated_at = parse_timestamp(now) if now is not None else utc_now()

    def set_note(self, note: str | None) -> None:
        """Replace the note. Blank strings clear it."""
        self.note = note if note and note.strip() else None
        self.touch()

    def set_public(self, is_public: bool) -> None:
        """Change visibility."""
        self.is_public = is_public
        self.touch()

    def set_liked(self, liked: bool) -> None:
        """Like or unlike as the current user, keeping like_count consistent."""
        if liked == self.is_liked_by_current_user:
            return
        self.is_liked_by_current_user = liked
        self.like_count = self.like_count + 1 if liked else max(self.like_count - 1, 0)

    # ─────────────────────────────────────────────────────────────────────────
    # Serialization
    # ─────────────────────────────────────────────────────────────────────────

    def to_dict(self) -> dict[str, Any]:
        """
        Convert to a JSON-friendly dictionary using camelCase wire keys.

        Returns:
            Dictionary representation of the annotation
        """
        data: dict[str, Any] = {
            "id": self.id,
            "bookId": self.book_id,
            "type": self.type.value,
            "startOffset": self.start_offset,
            "endOffset": self.end_offset,
            "isPublic": self.is_public,
            "likeCount": self.like_count,
            "isLikedByCurrentUser": self.is_liked_by_current_user,
            "createdAt": format_timestamp(self.created_at),
            "updatedAt": format_timestamp(self.updated_at),
        }
        if self.note is not None:
            data["note"] = self.note
        return data


@dataclass(kw_only=True)
class Highlight(Annotation):
    """A colored range. selected_text is the caller-supplied snippet for the range."""

    type: ClassVar[AnnotationType] = AnnotationType.HIGHLIGHT

    selected_text: str
    color: HighlightColor = DEFAULT_HIGHLIGHT_COLOR

    def __post_init__(self):
        super().__post_init__()
        if self.end_offset == self.start_offset:
            raise ValidationError(
                f"Highlight range must not be empty, got [{self.start_offset}, {self.end_offset})"
            )
        if not self.selected_text:
            raise ValidationError("Highlight selected_text must not be empty")
        self.color = parse_color(self.color)

    def set_color(self, color: HighlightColor | str) -> None:
        """Recolor the highlight. Unknown colors are rejected."""
        self.color = parse_color(color)
        self.touch()

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["selectedText"] = self.selected_text
        data["color"] = self.color.value
        return data


@dataclass(kw_only=True)
class Note(Annotation):
    """A range carrying a required note; selected_text is optional context."""

    type: ClassVar[AnnotationType] = AnnotationType.NOTE

    note: str
    selected_text: str | None = None

    def __post_init__(self):
        super().__post_init__()
        if not self.has_note:
            raise ValidationError("Note text must not be empty")

    def set_note(self, note: str | None) -> None:
        if not note or not note.strip():
            raise ValidationError("Note text must not be empty")
        super().set_note(note)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        if self.selected_text is not None:
            data["selectedText"] = self.selected_text
        return data


@dataclass(kw_only=True)
class Bookmark(Annotation):
    """A point annotation."""

    type: ClassVar[AnnotationType] = AnnotationType.BOOKMARK

    def __post_init__(self):
        super().__post_init__()
        if self.start_offset != self.end_offset:
            raise ValidationError(
                f"Bookmark offsets must be equal, got [{self.start_offset}, {self.end_offset})"
            )

    @property
    def position(self) -> int:
        """The bookmarked offset."""
        return self.start_offset


ANNOTATION_CLASSES: dict[AnnotationType, type[Annotation]] = {
    AnnotationType.HIGHLIGHT: Highlight,
    AnnotationType.NOTE: Note,
    AnnotationType.BOOKMARK: Bookmark,
}

# Wire key -> dataclass field
_WIRE_FIELDS = {
    "id": "id",
    "bookId": "book_id",
    "startOffset": "start_offset",
    "endOffset": "end_offset",
    "note": "note",
    "isPublic": "is_public",
    "likeCount": "like_count",
    "isLikedByCurrentUser": "is_liked_by_current_user",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "selectedText": "selected_text",
    "color": "color",
}


def annotation_from_dict(data: dict[str, Any]) -> Annotation:
    """
    Build the right variant from a camelCase dictionary (e.g. a CRUD event payload).

    Unknown keys are ignored.

    Raises:
        ValidationError: If the type is missing/unknown or the data breaks an invariant.
    """
    if "type" not in data:
        raise ValidationError("Annotation data has no 'type'")
    cls = ANNOTATION_CLASSES[parse_annotation_type(data["type"])]

    kwargs = {_WIRE_FIELDS[k]: v for k, v in data.items() if k in _WIRE_FIELDS}
    if cls is Bookmark:
        kwargs.pop("selected_text", None)
        kwargs.pop("color", None)
    elif cls is Note:
        kwargs.pop("color", None)

    try:
        return cls(**kwargs)
    except TypeError as e:
        raise ValidationError(f"Invalid {cls.__name__} data: {e}") from e


# =============================================================================
# TYPE HELPERS
# =============================================================================


def is_highlight(annotation: Annotation) -> bool:
    """True for Highlight annotations."""
    return isinstance(annotation, Highlight)


def is_note(annotation: Annotation) -> bool:
    """True for Note annotations."""
    return isinstance(annotation, Note)


def is_bookmark(annotation: Annotation) -> bool:
    """True for Bookmark annotations."""
    return isinstance(annotation, Bookmark)


def get_annotation_icon(annotation_type: AnnotationType | str) -> str:
    """Icon token for a type: "highlight", "note" or "bookmark"."""
    return _ICONS[parse_annotation_type(annotation_type)]


def get_annotation_label(annotation_type: AnnotationType | str) -> str:
    """Display label for a type: "Highlight", "Note" or "Bookmark"."""
    return _LABELS[parse_annotation_type(annotation_type)]
