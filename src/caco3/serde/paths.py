"""Filesystem path adaptors (feature ``path``).

Accepted shapes:
  - a non-empty string, ``"data/cache"``
  - a :class:`os.PathLike`
  - the map form ``{"path": "data/cache"}``

Paths always encode as a POSIX-style string.

:data:`SOURCE_RELATIVE_PATH` marks a field whose relative value should be
read against the directory of the config file that supplied it. The
adaptor itself only decodes; the config loader rewrites such values
before validation (see :mod:`caco3.config.schema`). Values from layers
with no file behind them are left relative to the working directory.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, Any, ClassVar

from caco3.domain.errors import InvalidFormatError
from caco3.serde.base import InvalidValueError, TypeMismatchError
from caco3.serde.fields import Adapted

FEATURE = "path"

PATH_KEY = "path"


@dataclass(frozen=True)
class PathAdaptor:
    name: str = "path"
    relative_to_source: bool = False

    target: ClassVar[type[Path]] = Path
    json_schema: ClassVar[dict[str, Any]] = {
        "anyOf": [
            {"type": "string", "minLength": 1},
            {
                "type": "object",
                "properties": {PATH_KEY: {"type": "string", "minLength": 1}},
                "required": [PATH_KEY],
                "additionalProperties": False,
            },
        ]
    }

    def encode(self, value: Path, *, human_readable: bool = True) -> str:
        return value.as_posix()

    def decode(self, shape: Any) -> Path:
        match shape:
            case Path():
                return shape
            case str():
                if not shape:
                    raise InvalidValueError(InvalidFormatError("empty path", shape))
                return Path(shape)
            case {"path": str() as inner} if len(shape) == 1:
                return self.decode(inner)
            case os.PathLike():
                return self.decode(os.fspath(shape))
            case _:
                raise TypeMismatchError("path string or {path = ...} table", shape)


PATH = PathAdaptor()
SOURCE_RELATIVE_PATH = PathAdaptor(name="path/source-relative", relative_to_source=True)

ADAPTORS = (PATH, SOURCE_RELATIVE_PATH)

ConfigPath = Annotated[Path, Adapted(PATH)]
SourceRelativePath = Annotated[Path, Adapted(SOURCE_RELATIVE_PATH)]
