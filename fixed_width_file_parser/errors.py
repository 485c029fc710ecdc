from __future__ import annotations


class FixedWidthError(Exception):
    """Base error for this package."""


class InvalidArgument(FixedWidthError, ValueError):
    """Raised before any I/O when a filepath, layout or option is malformed."""


class LayoutFileError(FixedWidthError):
    """Raised when a layout file cannot be read or decoded."""


class ExportError(FixedWidthError, ValueError):
    """Raised when parsed records cannot be exported."""
