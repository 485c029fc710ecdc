from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import pandas as pd

from .errors import ExportError
from .models import FieldLayout

LOGGER = logging.getLogger(__name__)

_SHEET_RECORDS = "RECORDS"
_MIN_COLUMN_WIDTH = 10
_MAX_COLUMN_WIDTH = 54
_WIDTH_SAMPLE_ROWS = 3000


class JsonlWriter:
    """Append records to a JSONL file as they are produced.

    Records go to a temporary sibling file that replaces ``output_path`` only
    when the block exits cleanly; on error any previous output is left as is.
    """

    def __init__(self, output_path: Path) -> None:
        self.output_path = output_path
        self.count = 0
        self._handle = None
        self._partial_path = output_path.with_name(f".{output_path.name}.partial")

    def __enter__(self) -> "JsonlWriter":
        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        self._handle = self._partial_path.open("w", encoding="utf-8")
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        if self._handle is None:
            return
        self._handle.close()
        self._handle = None
        if exc_type is None:
            self._partial_path.replace(self.output_path)
        else:
            self._partial_path.unlink(missing_ok=True)

    def __call__(self, record: dict[str, Any]) -> None:
        self.write(record)

    def write(self, record: dict[str, Any]) -> None:
        if self._handle is None:
            raise RuntimeError("JsonlWriter must be used as a context manager")
        self._handle.write(json.dumps(record, ensure_ascii=False, default=str))
        self._handle.write("\n")
        self.count += 1


def save_jsonl(records: Iterable[dict[str, Any]], output_path: Path) -> int:
    with JsonlWriter(output_path) as writer:
        for record in records:
            writer.write(record)
    return writer.count


def load_jsonl(input_path: Path) -> list[dict[str, Any]]:
    records: list[dict[str, Any]] = []
    with input_path.open("r", encoding="utf-8") as handle:
        for line in handle:
            stripped = line.strip()
            if stripped:
                records.append(json.loads(stripped))
    return records


def records_to_frame(
    records: list[dict[str, Any]],
    layout: FieldLayout | None = None,
) -> pd.DataFrame:
    frame = pd.DataFrame(records)
    if layout is None:
        return frame
    ordered = list(dict.fromkeys(layout.names))
    for column in ordered:
        if column not in frame.columns:
            frame[column] = None
    extra = [column for column in frame.columns if column not in ordered]
    return frame[ordered + extra]


def _set_column_widths(worksheet) -> None:
    from openpyxl.utils import get_column_letter

    for col_idx in range(1, worksheet.max_column + 1):
        max_len = 0
        sample_limit = min(worksheet.max_row, _WIDTH_SAMPLE_ROWS)
        for row_idx in range(1, sample_limit + 1):
            value = worksheet.cell(row_idx, col_idx).value
            if value is None:
                continue
            max_len = max(max_len, len(str(value)))

        width = min(max(max_len + 2, _MIN_COLUMN_WIDTH), _MAX_COLUMN_WIDTH)
        worksheet.column_dimensions[get_column_letter(col_idx)].width = width


def _style_header(worksheet) -> None:
    from openpyxl.styles import Font, PatternFill

    header_fill = PatternFill(fill_type="solid", start_color="1F4E78", end_color="1F4E78")
    header_font = Font(bold=True, color="FFFFFF")
    for cell in worksheet[1]:
        cell.fill = header_fill
        cell.font = header_font
    worksheet.freeze_panes = "A2"


def export_to_excel(
    records: list[dict[str, Any]],
    output_path: Path,
    layout: FieldLayout | None = None,
) -> None:
    if not records:
        raise ExportError("No records to export to Excel.")

    output_path.parent.mkdir(parents=True, exist_ok=True)
    frame = records_to_frame(records, layout)

    with pd.ExcelWriter(output_path, engine="openpyxl") as writer:
        frame.to_excel(writer, index=False, sheet_name=_SHEET_RECORDS)
        worksheet = writer.sheets[_SHEET_RECORDS]
        _style_header(worksheet)
        _set_column_widths(worksheet)

    LOGGER.info("Excel exported: %s (%s records)", output_path, len(records))
