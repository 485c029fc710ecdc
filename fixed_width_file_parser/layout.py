from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from .errors import InvalidArgument, LayoutFileError
from .models import FieldLayout, FieldSpec

LOGGER = logging.getLogger(__name__)

_REQUIRED_KEYS = ("name", "position")


def _has_required_keys(item: Any) -> bool:
    if isinstance(item, FieldSpec):
        return True
    if isinstance(item, Mapping):
        return all(key in item for key in _REQUIRED_KEYS)
    return False


def _first_error(error: ValidationError) -> str:
    details = error.errors()
    if not details:
        return str(error)
    return str(details[0].get("msg", error))


def _failed_key(error: ValidationError) -> str | None:
    details = error.errors()
    if not details or not details[0].get("loc"):
        return None
    return str(details[0]["loc"][0])


def validate_filepath(filepath: Any) -> Path:
    if not isinstance(filepath, (str, os.PathLike)):
        raise InvalidArgument("`filepath` must be a string or a path-like object")
    return Path(filepath)


def validate_fields(fields: Any) -> FieldLayout:
    """Validate a field layout and return it as a ``FieldLayout``.

    Checks run in a fixed order so the first problem found is the one
    reported: the container type, emptiness, the presence of ``name`` and
    ``position`` on every entry, then the shape of every position.

    Raises:
        InvalidArgument: on the first failed check.
    """
    if isinstance(fields, FieldLayout):
        return fields

    if isinstance(fields, (str, bytes, bytearray)) or not isinstance(fields, Sequence):
        raise InvalidArgument("`fields` must be a list")
    if not fields:
        raise InvalidArgument("`fields` must contain at least 1 item")

    if not all(_has_required_keys(item) for item in fields):
        raise InvalidArgument("Each field must include a `name` and a `position`")

    specs: list[FieldSpec] = []
    for index, item in enumerate(fields):
        if isinstance(item, FieldSpec):
            specs.append(item)
            continue
        try:
            specs.append(FieldSpec(name=item["name"], position=item["position"]))
        except ValidationError as error:
            if _failed_key(error) == "name":
                message = "Each field's `name` must be a string"
            else:
                message = "Each field's `position` must be an integer or a range"
            raise InvalidArgument(f"{message} (field #{index}: {_first_error(error)})") from error

    layout = FieldLayout(fields=specs)
    duplicates = layout.duplicate_names
    if duplicates:
        LOGGER.warning(
            "Duplicate field names in layout, last one wins: %s",
            ", ".join(duplicates),
        )
    return layout


def _position_from_json(raw: Any) -> Any:
    if isinstance(raw, list) and len(raw) == 2:
        start, end = raw
        if end is None:
            return slice(start, None)
        if isinstance(start, int) and isinstance(end, int):
            return range(start, end)
        return slice(start, end)
    if isinstance(raw, dict) and "start" in raw:
        start = raw["start"]
        end = raw.get("end")
        if end is None:
            return slice(start, None)
        if isinstance(start, int) and isinstance(end, int):
            return range(start, end)
        return slice(start, end)
    return raw


def layout_from_payload(payload: Any) -> FieldLayout:
    """Build a layout from decoded JSON.

    Positions may be written as an integer, a ``[start, end]`` pair or a
    ``{"start": ..., "end": ...}`` object; spans are half-open and an end of
    ``null`` reads to the end of the line.
    """
    if isinstance(payload, dict) and "fields" in payload:
        payload = payload["fields"]
    if isinstance(payload, list):
        payload = [
            {**item, "position": _position_from_json(item["position"])}
            if isinstance(item, dict) and "position" in item
            else item
            for item in payload
        ]
    return validate_fields(payload)


def load_layout(layout_path: Path) -> FieldLayout:
    try:
        text = layout_path.read_text(encoding="utf-8")
    except OSError as error:
        raise LayoutFileError(f"Layout {layout_path} cannot be read: {error}") from error
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as error:
        raise LayoutFileError(f"Layout {layout_path} is not valid JSON: {error}") from error
    return layout_from_payload(payload)


def position_to_json(position: Any) -> Any:
    if isinstance(position, int):
        return position
    return [position.start or 0, position.stop]


def layout_to_payload(layout: FieldLayout) -> list[dict[str, Any]]:
    return [{"name": field.name, "position": position_to_json(field.position)} for field in layout.fields]
