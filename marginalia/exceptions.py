"""
Exception classes for Marginalia.

All Marginalia exceptions inherit from MarginaliaError,
making it easy to catch all library errors.

Example:
    >>> try:
    ...     Bookmark(id="b1", book_id="book-1", start_offset=10, end_offset=12)
    ... except marginalia.ValidationError as e:
    ...     print(f"Rejected: {e}")
    ... except marginalia.MarginaliaError as e:
    ...     print(f"Marginalia error: {e}")
"""


class MarginaliaError(Exception):
    """
    Base exception for all Marginalia errors.

    Catch this to handle any Marginalia-specific error.
    """

    pass


class ValidationError(MarginaliaError):
    """
    Raised when an annotation cannot be constructed or mutated.

    Example:
        >>> Note(id="n1", book_id="b", start_offset=0, end_offset=5, note="  ")
        ValidationError: Note text must not be empty
    """

    pass


class ExportOptionsError(MarginaliaError):
    """
    Raised when export options are invalid.

    The export is aborted before any rendering work begins.

    Attributes:
        code: Machine-readable reason ("invalid_title", "invalid_format",
            "invalid_date_format").
    """

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code


class ConfigurationError(MarginaliaError):
    """
    Raised for invalid configuration.

    Example:
        >>> SortSpec(field="color", direction="asc")
        ConfigurationError: sort field must be one of (...), got 'color'
    """

    pass


class StorageError(MarginaliaError):
    """
    Raised when a settings store cannot be read or written.

    Never propagated out of load_panel_settings() / save_panel_settings();
    those fall back to defaults instead.
    """

    pass
