"""Streaming extraction of records from fixed-width text files."""

from .errors import ExportError, FixedWidthError, InvalidArgument, LayoutFileError
from .layout import load_layout, validate_fields, validate_filepath
from .models import BatchOptions, FieldLayout, FieldSpec, ParseOptions
from .parsing_engine import (
    extract_record,
    iter_batches,
    iter_records,
    normalize_line,
    parse,
    parse_in_batches,
    release_memory,
)

__version__ = "0.1.0"

__all__ = [
    "BatchOptions",
    "ExportError",
    "FieldLayout",
    "FieldSpec",
    "FixedWidthError",
    "InvalidArgument",
    "LayoutFileError",
    "ParseOptions",
    "extract_record",
    "iter_batches",
    "iter_records",
    "load_layout",
    "normalize_line",
    "parse",
    "parse_in_batches",
    "release_memory",
    "validate_fields",
    "validate_filepath",
]
