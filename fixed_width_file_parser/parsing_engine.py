from __future__ import annotations

import gc
import logging
from collections.abc import Callable, Iterable, Iterator
from itertools import islice
from os import PathLike
from typing import Any

from pydantic import ValidationError

from .errors import InvalidArgument
from .layout import validate_fields, validate_filepath
from .models import BatchOptions, FieldLayout, ParseOptions

LOGGER = logging.getLogger(__name__)

Record = dict[str, str | None]
RecordCallback = Callable[[Record], Any]
BatchCallback = Callable[[int, int], Any]


def release_memory() -> None:
    """Ask the garbage collector to reclaim memory between large scans.

    Only a footprint hint; parsing never depends on it.
    """
    gc.collect()


def _options(model: type[ParseOptions], **values: Any) -> ParseOptions:
    try:
        return model(**values)
    except ValidationError as error:
        detail = error.errors()[0]
        location = ".".join(str(part) for part in detail.get("loc", ()))
        raise InvalidArgument(f"Invalid option `{location}`: {detail.get('msg')}") from error


def strip_terminator(raw_line: bytes) -> bytes:
    if raw_line.endswith(b"\r\n"):
        return raw_line[:-2]
    if raw_line.endswith((b"\n", b"\r")):
        return raw_line[:-1]
    return raw_line


def normalize_line(
    raw_line: bytes,
    force_utf8_encoding: bool = True,
    encoding: str = "latin-1",
) -> str | None:
    """Turn one raw line into text, or None when the line is blank.

    With ``force_utf8_encoding`` the bytes are read as UTF-8 and any invalid
    sequence is silently dropped. This repair is lossy and cannot be undone.
    Otherwise the bytes are decoded with ``encoding`` and decoding errors
    propagate.
    """
    line = strip_terminator(raw_line)
    if not line:
        return None
    if force_utf8_encoding:
        return line.decode("utf-8", errors="ignore")
    return line.decode(encoding)


def extract_record(line: str, layout: FieldLayout) -> Record:
    record: Record = {}
    for field in layout.fields:
        record[field.name] = field.extract(line)
    return record


def _records_from_lines(
    raw_lines: Iterable[bytes],
    layout: FieldLayout,
    options: ParseOptions,
) -> Iterator[Record]:
    for raw_line in raw_lines:
        line = normalize_line(
            raw_line,
            force_utf8_encoding=options.force_utf8_encoding,
            encoding=options.encoding,
        )
        if line is None:
            continue
        yield extract_record(line, layout)


def iter_records(
    filepath: str | PathLike[str],
    fields: Any,
    *,
    force_utf8_encoding: bool = True,
    encoding: str = "latin-1",
) -> Iterator[Record]:
    """Lazily yield one record per non-blank line of ``filepath``.

    Arguments are validated on the first ``next()`` call; the file stays open
    until the generator is exhausted or closed.
    """
    path = validate_filepath(filepath)
    layout = validate_fields(fields)
    options = _options(ParseOptions, force_utf8_encoding=force_utf8_encoding, encoding=encoding)

    with path.open("rb") as handle:
        yield from _records_from_lines(handle, layout, options)


def parse(
    filepath: str | PathLike[str],
    fields: Any,
    on_record: RecordCallback,
    *,
    force_utf8_encoding: bool = True,
    encoding: str = "latin-1",
) -> int:
    """Parse a fixed-width file, calling ``on_record`` once per non-blank line.

    Example::

        fields = [
            {"name": "first_name", "position": range(0, 11)},
            {"name": "middle_initial", "position": 11},
            {"name": "last_name", "position": range(12, 26)},
        ]
        parse("path/to/file", fields, print)

    Returns the number of records delivered.

    Raises:
        InvalidArgument: before the file is opened, if an argument is malformed.
        OSError: if the file cannot be opened or read.
    """
    path = validate_filepath(filepath)
    layout = validate_fields(fields)
    options = _options(ParseOptions, force_utf8_encoding=force_utf8_encoding, encoding=encoding)

    LOGGER.info("Parsing %s with %s field(s)", path, len(layout.fields))
    release_memory()

    count = 0
    with path.open("rb") as handle:
        for record in _records_from_lines(handle, layout, options):
            on_record(record)
            count += 1

    release_memory()
    LOGGER.info("Parsed %s record(s) from %s", count, path)
    return count


def _raw_batches(handle: Iterable[bytes], batch_size: int) -> Iterator[list[bytes]]:
    lines = iter(handle)
    next(lines, None)
    while True:
        window = list(islice(lines, batch_size))
        if not window:
            return
        yield window


def iter_batches(
    filepath: str | PathLike[str],
    fields: Any,
    *,
    batch_size: int = 1000,
    force_utf8_encoding: bool = True,
    encoding: str = "latin-1",
) -> Iterator[list[Record]]:
    """Lazily yield the records of each window of ``batch_size`` raw lines.

    The first line of the file is always skipped. Blank lines take a slot in
    their window but produce no record, so a yielded list may be shorter
    than ``batch_size`` or even empty.
    """
    path = validate_filepath(filepath)
    layout = validate_fields(fields)
    options = _options(
        BatchOptions,
        batch_size=batch_size,
        force_utf8_encoding=force_utf8_encoding,
        encoding=encoding,
    )

    with path.open("rb") as handle:
        for window in _raw_batches(handle, options.batch_size):
            yield list(_records_from_lines(window, layout, options))


def parse_in_batches(
    filepath: str | PathLike[str],
    fields: Any,
    on_record: RecordCallback,
    *,
    batch_size: int = 1000,
    force_utf8_encoding: bool = True,
    encoding: str = "latin-1",
    on_batch: BatchCallback | None = None,
) -> int:
    """Parse a fixed-width file in windows of ``batch_size`` raw lines.

    The first line is treated as a header and always discarded, even when it
    holds data. Batch boundaries count raw lines, blank ones included.
    Memory is released after every batch and ``on_batch(index, records)`` is
    called with the zero-based batch index and the number of records the
    batch produced.

    Returns the number of records delivered.
    """
    path = validate_filepath(filepath)
    layout = validate_fields(fields)
    options = _options(
        BatchOptions,
        batch_size=batch_size,
        force_utf8_encoding=force_utf8_encoding,
        encoding=encoding,
    )

    LOGGER.info("Parsing %s in batches of %s line(s)", path, options.batch_size)
    release_memory()

    count = 0
    with path.open("rb") as handle:
        for index, window in enumerate(_raw_batches(handle, options.batch_size)):
            produced = 0
            for record in _records_from_lines(window, layout, options):
                on_record(record)
                produced += 1
            count += produced

            release_memory()
            LOGGER.debug("Batch %s: %s line(s), %s record(s)", index, len(window), produced)
            if on_batch is not None:
                on_batch(index, produced)

    LOGGER.info("Parsed %s record(s) from %s", count, path)
    return count
