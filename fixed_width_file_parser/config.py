from __future__ import annotations

import os
from dataclasses import dataclass

from .errors import InvalidArgument

DEFAULT_BATCH_SIZE = 1000
DEFAULT_INPUT_ENCODING = "latin-1"


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError as error:
        raise InvalidArgument(f"{name} must be an integer, got {raw!r}") from error


@dataclass
class ParserSettings:
    batch_size: int = DEFAULT_BATCH_SIZE
    force_utf8_encoding: bool = True
    input_encoding: str = DEFAULT_INPUT_ENCODING

    @classmethod
    def from_env(cls) -> "ParserSettings":
        return cls(
            batch_size=_env_int("FIXED_WIDTH_BATCH_SIZE", DEFAULT_BATCH_SIZE),
            force_utf8_encoding=_env_flag("FIXED_WIDTH_FORCE_UTF8", True),
            input_encoding=os.getenv("FIXED_WIDTH_INPUT_ENCODING", DEFAULT_INPUT_ENCODING),
        )
