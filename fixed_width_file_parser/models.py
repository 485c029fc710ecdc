from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

Position = int | range | slice


def _check_bound(value: Any, label: str) -> None:
    if value is None:
        return
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{label} must be an integer, got {type(value).__name__}")
    if value < 0:
        raise ValueError(f"{label} must be >= 0, got {value}")


class FieldSpec(BaseModel):
    """Location of one named field inside a fixed-width line.

    ``position`` is either a zero-based column index or a half-open column
    span following Python's own convention: ``range(0, 4)`` and
    ``slice(0, 4)`` both cover columns 0 to 3. A slice may leave ``stop``
    open to read until the end of the line.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    name: str
    position: Any

    @field_validator("position")
    @classmethod
    def validate_position(cls, position: Any) -> Position:
        if isinstance(position, bool):
            raise ValueError("position must be an integer or a range, got bool")
        if isinstance(position, int):
            _check_bound(position, "position")
            return position
        if isinstance(position, range):
            if position.step != 1:
                raise ValueError(f"range position must have step 1, got {position.step}")
            _check_bound(position.start, "range start")
            _check_bound(position.stop, "range stop")
            return position
        if isinstance(position, slice):
            if position.step not in (None, 1):
                raise ValueError(f"slice position must have step 1, got {position.step}")
            _check_bound(position.start, "slice start")
            _check_bound(position.stop, "slice stop")
            return position
        raise ValueError(f"position must be an integer or a range, got {type(position).__name__}")

    @property
    def start(self) -> int:
        if isinstance(self.position, int):
            return self.position
        return self.position.start or 0

    @property
    def stop(self) -> int | None:
        if isinstance(self.position, int):
            return self.position + 1
        return self.position.stop

    def extract(self, line: str) -> str | None:
        """Return the trimmed value of this field, or None when the line is too short."""
        if isinstance(self.position, int):
            if self.position >= len(line):
                return None
            return line[self.position].strip()
        if self.start > len(line):
            return None
        return line[self.start : self.stop].strip()


class FieldLayout(BaseModel):
    fields: list[FieldSpec] = Field(min_length=1)

    @property
    def names(self) -> list[str]:
        return [field.name for field in self.fields]

    @property
    def duplicate_names(self) -> list[str]:
        names = self.names
        return sorted({name for name in names if names.count(name) > 1})


class ParseOptions(BaseModel):
    model_config = ConfigDict(strict=True)

    force_utf8_encoding: bool = True
    encoding: str = Field(default="latin-1", min_length=1)


class BatchOptions(ParseOptions):
    batch_size: int = Field(default=1000, ge=1)
