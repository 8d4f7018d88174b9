"""
Notes panel view state.

PanelSettings is a small value object persisted as camelCase JSON under
a single key. Anything read from storage is untrusted: it always goes
through validate_panel_settings(), and storage failures fall back to
defaults instead of propagating.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Literal, Protocol

from marginalia.config import DEFAULT_PANEL_CONSTRAINTS, PanelConstraints
from marginalia.exceptions import ConfigurationError, StorageError
from marginalia.formatting import truncate_text
from marginalia.models import Annotation, AnnotationType, Bookmark, Highlight, Note
from marginalia.query import (
    SORT_DIRECTIONS,
    SORT_FIELDS,
    FilterCriteria,
    SortSpec,
    filter_annotations,
    sort_annotations,
)

logger = logging.getLogger(__name__)

NOTES_PANEL_STORAGE_KEY = "marginalia.notes-panel.settings"

PANEL_POSITIONS = ("right", "bottom")
FILTER_PRESETS = ("all", "notes-only", "with-notes", "recent")

PanelPosition = Literal["right", "bottom"]
FilterPreset = Literal["all", "notes-only", "with-notes", "recent"]

_PRESET_LABEL_KEYS = {
    "all": "reader.notes.filters.all",
    "notes-only": "reader.notes.filters.notesOnly",
    "with-notes": "reader.notes.filters.withNotes",
    "recent": "reader.notes.filters.recent",
}

_SORT_LABEL_KEYS = {
    "createdAt": "reader.notes.sort.created",
    "updatedAt": "reader.notes.sort.updated",
    "startOffset": "reader.notes.sort.position",
    "type": "reader.notes.sort.type",
}

# JSON key -> dataclass field
_WIRE_FIELDS = {
    "position": "position",
    "width": "width",
    "height": "height",
    "filterPreset": "filter_preset",
    "sortField": "sort_field",
    "sortDirection": "sort_direction",
}


# =============================================================================
# SETTINGS
# =============================================================================


@dataclass(frozen=True)
class PanelSettings:
    """Persisted notes panel configuration, passed by value."""

    position: PanelPosition = "right"
    width: int = DEFAULT_PANEL_CONSTRAINTS.default_width
    height: int = DEFAULT_PANEL_CONSTRAINTS.default_height
    filter_preset: FilterPreset = "all"
    sort_field: str = "createdAt"
    sort_direction: str = "desc"

    @property
    def sort_spec(self) -> SortSpec:
        return SortSpec(field=self.sort_field, direction=self.sort_direction)

    def to_dict(self) -> dict[str, Any]:
        """camelCase dictionary as stored."""
        values = asdict(self)
        return {wire: values[attr] for wire, attr in _WIRE_FIELDS.items()}


def get_default_panel_settings(
    constraints: PanelConstraints = DEFAULT_PANEL_CONSTRAINTS,
) -> PanelSettings:
    return PanelSettings(width=constraints.default_width, height=constraints.default_height)


def clamp(value: float, minimum: float, maximum: float) -> float:
    """Bound value to [minimum, maximum]."""
    return max(minimum, min(maximum, value))


clamp_panel_size = clamp


def clamp_width(width: float, constraints: PanelConstraints = DEFAULT_PANEL_CONSTRAINTS) -> float:
    return clamp_panel_size(width, constraints.min_width, constraints.max_width)


def clamp_height(
    height: float, constraints: PanelConstraints = DEFAULT_PANEL_CONSTRAINTS
) -> float:
    return clamp_panel_size(height, constraints.min_height, constraints.max_height)


def _choice(data: Mapping[str, Any], key: str, allowed: tuple[str, ...], default: str) -> str:
    value = data.get(key, default)
    if value not in allowed:
        logger.warning("Ignoring invalid %s %r in panel settings", key, value)
        return default
    return value


def _size(data: Mapping[str, Any], key: str, default: int, lo: int, hi: int) -> int:
    value = data.get(key, default)
    # bool is an int subclass
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        logger.warning("Ignoring non-numeric %s %r in panel settings", key, value)
        value = default
    return int(clamp_panel_size(value, lo, hi))


def validate_panel_settings(
    partial: Mapping[str, Any] | PanelSettings | None,
    constraints: PanelConstraints = DEFAULT_PANEL_CONSTRAINTS,
) -> PanelSettings:
    """
    Build complete, in-range settings from untrusted data.

    Missing fields take defaults, sizes are clamped, and unknown enum
    values are replaced by their defaults. Accepts camelCase (stored)
    or snake_case keys.

    Args:
        partial: Settings mapping, PanelSettings, or None
        constraints: Size bounds

    Returns:
        Valid PanelSettings
    """
    if isinstance(partial, PanelSettings):
        data: dict[str, Any] = partial.to_dict()
    elif isinstance(partial, Mapping):
        data = {}
        for wire, attr in _WIRE_FIELDS.items():
            if wire in partial:
                data[wire] = partial[wire]
            elif attr in partial:
                data[wire] = partial[attr]
    else:
        data = {}

    defaults = get_default_panel_settings(constraints)
    return PanelSettings(
        position=_choice(data, "position", PANEL_POSITIONS, defaults.position),
        width=_size(
            data, "width", defaults.width, constraints.min_width, constraints.max_width
        ),
        height=_size(
            data, "height", defaults.height, constraints.min_height, constraints.max_height
        ),
        filter_preset=_choice(data, "filterPreset", FILTER_PRESETS, defaults.filter_preset),
        sort_field=_choice(data, "sortField", SORT_FIELDS, defaults.sort_field),
        sort_direction=_choice(data, "sortDirection", SORT_DIRECTIONS, defaults.sort_direction),
    )


# =============================================================================
# PRESETS & FILTERING
# =============================================================================


def preset_to_filters(preset: str) -> FilterCriteria:
    """
    Criteria for a filter preset.

    "recent" adds no filter; sorting by date expresses recency.

    Raises:
        ConfigurationError: For an unknown preset.
    """
    if preset in ("all", "recent"):
        return FilterCriteria()
    if preset == "notes-only":
        return FilterCriteria(type=AnnotationType.NOTE)
    if preset == "with-notes":
        return FilterCriteria(has_note=True)
    raise ConfigurationError(f"filter preset must be one of {FILTER_PRESETS}, got {preset!r}")


def get_filtered_annotations(
    annotations: Iterable[Annotation],
    settings: PanelSettings,
    search_query: str | None = None,
) -> list[Annotation]:
    """Apply the preset and optional search, then the panel's sort."""
    preset = preset_to_filters(settings.filter_preset)
    criteria = FilterCriteria(type=preset.type, has_note=preset.has_note, search=search_query)
    return sort_annotations(filter_annotations(annotations, criteria), settings.sort_spec)


def count_by_preset(annotations: Iterable[Annotation], preset: str) -> int:
    return len(filter_annotations(annotations, preset_to_filters(preset)))


def get_filter_presets() -> list[str]:
    return list(FILTER_PRESETS)


def get_sort_fields() -> list[str]:
    return list(SORT_FIELDS)


def get_filter_preset_label_key(preset: str) -> str:
    """Translation key for a preset label. Unknown presets raise ConfigurationError."""
    try:
        return _PRESET_LABEL_KEYS[preset]
    except KeyError:
        raise ConfigurationError(
            f"filter preset must be one of {FILTER_PRESETS}, got {preset!r}"
        ) from None


def get_sort_field_label_key(sort_field: str) -> str:
    """Translation key for a sort field label. Unknown fields raise ConfigurationError."""
    try:
        return _SORT_LABEL_KEYS[sort_field]
    except KeyError:
        raise ConfigurationError(
            f"sort field must be one of {SORT_FIELDS}, got {sort_field!r}"
        ) from None


# =============================================================================
# ANNOTATION TEXT FOR THE PANEL
# =============================================================================


def get_annotation_edit_text(annotation: Annotation) -> str:
    """Text shown in the editor: the note, else a highlight's text, else ""."""
    if annotation.has_note:
        return annotation.note
    if isinstance(annotation, Highlight):
        return annotation.selected_text
    return ""


def get_annotation_context(annotation: Annotation) -> str | None:
    """Selected text shown as context, or None (always None for bookmarks)."""
    if isinstance(annotation, (Highlight, Note)):
        return annotation.selected_text or None
    return None


def is_annotation_editable(annotation: Annotation) -> bool:
    return isinstance(annotation, (Highlight, Note, Bookmark))


def get_annotation_list_excerpt(annotation: Annotation, max_length: int = 100) -> str:
    return truncate_text(get_annotation_edit_text(annotation), max_length)


# =============================================================================
# LAYOUT
# =============================================================================


@dataclass(frozen=True)
class PanelLayout:
    panel_width: float
    panel_height: float
    reader_width: float
    reader_height: float


def calculate_panel_layout(
    position: str,
    width: float,
    height: float,
    container_width: float,
    container_height: float,
    constraints: PanelConstraints = DEFAULT_PANEL_CONSTRAINTS,
) -> PanelLayout:
    """Split the container between the reader and the docked panel."""
    if position == "bottom":
        panel_height = clamp_height(height, constraints)
        return PanelLayout(
            panel_width=container_width,
            panel_height=panel_height,
            reader_width=container_width,
            reader_height=container_height - panel_height,
        )
    panel_width = clamp_width(width, constraints)
    return PanelLayout(
        panel_width=panel_width,
        panel_height=container_height,
        reader_width=container_width - panel_width,
        reader_height=container_height,
    )


# =============================================================================
# PERSISTENCE
# =============================================================================


class SettingsStore(Protocol):
    """String key-value store. Implementations raise StorageError on I/O failure."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...


class MemoryStore:
    """In-process store."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def clear(self) -> None:
        self._data.clear()


class JsonFileStore:
    """
    Store backed by one JSON object in a file. Last write wins.

    Example:
        >>> store = JsonFileStore("~/.config/marginalia/settings.json")
        >>> settings = load_panel_settings(store)
    """

    def __init__(self, path: str | Path):
        self.path = Path(path).expanduser()

    def _read_all(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise StorageError(f"Cannot read {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise StorageError(f"{self.path} does not hold a JSON object")
        return data

    def get(self, key: str) -> str | None:
        value = self._read_all().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        try:
            data = self._read_all()
        except StorageError:
            data = {}
        data[key] = value
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Cannot write {self.path}: {e}") from e


def load_panel_settings(
    store: SettingsStore,
    key: str = NOTES_PANEL_STORAGE_KEY,
    constraints: PanelConstraints = DEFAULT_PANEL_CONSTRAINTS,
) -> PanelSettings:
    """
    Load settings, falling back to defaults for absent or malformed data.

    Never raises for storage or parse failures.
    """
    try:
        raw = store.get(key)
    except StorageError as e:
        logger.warning("Could not read panel settings: %s", e)
        return get_default_panel_settings(constraints)

    if raw is None:
        return get_default_panel_settings(constraints)

    try:
        data = json.loads(raw)
    except (TypeError, json.JSONDecodeError) as e:
        logger.warning("Malformed panel settings, using defaults: %s", e)
        return get_default_panel_settings(constraints)

    if not isinstance(data, dict):
        logger.warning("Panel settings are not a JSON object, using defaults")
        return get_default_panel_settings(constraints)

    return validate_panel_settings(data, constraints)


def save_panel_settings(
    settings: PanelSettings | Mapping[str, Any],
    store: SettingsStore,
    key: str = NOTES_PANEL_STORAGE_KEY,
    constraints: PanelConstraints = DEFAULT_PANEL_CONSTRAINTS,
) -> bool:
    """
    Validate and persist settings.

    Returns:
        True if written, False if the store failed (the failure is logged)
    """
    valid = validate_panel_settings(settings, constraints)
    try:
        store.set(key, json.dumps(valid.to_dict()))
    except StorageError as e:
        logger.warning("Could not save panel settings: %s", e)
        return False
    return True
