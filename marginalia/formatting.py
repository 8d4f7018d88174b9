"""
Text and date formatting shared by the panel helpers and the exporters.

All dates are rendered in UTC so output does not depend on the host's
timezone or locale.
"""

from __future__ import annotations

from datetime import datetime

from marginalia.exceptions import ConfigurationError
from marginalia.models import HighlightColor, parse_color, parse_timestamp, utc_now

MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)

ELLIPSIS = "..."
DEFAULT_EXCERPT_LENGTH = 100


def format_export_date(value: datetime | str, fmt: str = "long") -> str:
    """
    Format a timestamp for export output.

    Args:
        value: Datetime or ISO-8601 string
        fmt: "short" (01/15/2024), "long" (January 15, 2024) or "iso" (2024-01-15)

    Returns:
        The formatted date (time of day is dropped)
    """
    dt = parse_timestamp(value)
    if fmt == "iso":
        return dt.date().isoformat()
    if fmt == "short":
        return f"{dt.month:02d}/{dt.day:02d}/{dt.year}"
    if fmt == "long":
        return f"{MONTH_NAMES[dt.month - 1]} {dt.day}, {dt.year}"
    raise ConfigurationError(f"Unknown date format: {fmt!r}")


def format_annotation_date(value: datetime | str, now: datetime | None = None) -> str:
    """
    Relative date for list views: "Today", "Yesterday", "3 days ago", or M/D/YYYY.

    Args:
        value: When the annotation was created
        now: Reference time (defaults to the current time)
    """
    dt = parse_timestamp(value)
    ref = parse_timestamp(now) if now is not None else utc_now()
    days = (ref.date() - dt.date()).days

    if days <= 0:
        return "Today"
    if days == 1:
        return "Yesterday"
    if days < 7:
        return f"{days} days ago"
    return f"{dt.month}/{dt.day}/{dt.year}"


def truncate_text(text: str, max_length: int) -> str:
    """Shorten text to max_length characters, ending in "..." when cut."""
    if len(text) <= max_length:
        return text
    return text[: max(max_length - len(ELLIPSIS), 0)] + ELLIPSIS


def get_excerpt_text(text: str, max_length: int = DEFAULT_EXCERPT_LENGTH) -> str:
    """Excerpt for previews; same rule as truncate_text with a default length."""
    return truncate_text(text, max_length)


def get_color_display_name(color: HighlightColor | str) -> str:
    """Capitalized color name, e.g. "Blue"."""
    name = parse_color(color).value
    return name[:1].upper() + name[1:]
