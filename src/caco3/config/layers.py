"""Configuration layers and their parsing into untyped trees.

A layer is captured once and never changes afterwards. Parsing produces a
fresh tree of dicts, lists and scalars on every call, so merging the same
layers twice gives the same result.

Environment overlay convention:
  ``<PREFIX><A><delimiter><B>=value`` becomes ``{"a": {"b": "value"}}``.
  The prefix is matched case-insensitively and stripped; the remaining
  key is lower-cased before splitting on the delimiter (default ``__``).
  Values stay strings; schema validation coerces them. When a schema is
  known, the loader maps lower-cased keys back to its field spelling
  (``APP_APIKEY`` reaches ``apiKey``); see :func:`caco3.config.schema.align_keys`.
"""

from __future__ import annotations

import copy
import logging
import os
import tomllib
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from types import MappingProxyType
from typing import Any

from caco3.config.errors import LayerParseError

DEFAULT_ENV_DELIMITER = "__"

logger = logging.getLogger(__name__)


class LayerKind(StrEnum):
    MAPPING = "mapping"
    TOML = "toml"
    FILE = "file"
    ENV = "env"


@dataclass(frozen=True)
class ConfigLayer:
    """One named configuration source.

    Use the ``from_*`` constructors rather than building one directly.
    Precedence comes from position in the layer list handed to the
    loader: later layers win.
    """

    name: str
    kind: LayerKind
    source: Any
    env_prefix: str = ""
    env_delimiter: str = DEFAULT_ENV_DELIMITER
    required: bool = True

    @classmethod
    def from_mapping(cls, name: str, data: Mapping[str, Any]) -> ConfigLayer:
        """Capture an in-memory mapping (defaults, explicit overrides)."""
        if not isinstance(data, Mapping):
            raise TypeError(f"layer {name!r} data must be a mapping, got {type(data).__name__}")
        return cls(name, LayerKind.MAPPING, _freeze(data))

    @classmethod
    def from_toml(cls, name: str, text: str) -> ConfigLayer:
        """Capture TOML document text; it is parsed at load time."""
        return cls(name, LayerKind.TOML, text)

    @classmethod
    def from_file(
        cls, path: Path | str, *, name: str | None = None, required: bool = True
    ) -> ConfigLayer:
        """Reference a TOML file; it is read at load time.

        A missing file is a parse failure when *required*, otherwise an
        empty layer.
        """
        path = Path(path)
        return cls(name or str(path), LayerKind.FILE, path, required=required)

    @classmethod
    def from_env(
        cls,
        prefix: str,
        environ: Mapping[str, str] | None = None,
        *,
        delimiter: str = DEFAULT_ENV_DELIMITER,
        name: str = "env",
    ) -> ConfigLayer:
        """Snapshot the variables starting with *prefix* (case-insensitive)."""
        if not prefix:
            raise ValueError("environment layer needs a non-empty prefix")
        if not delimiter:
            raise ValueError("environment layer needs a non-empty delimiter")
        env = os.environ if environ is None else environ
        folded = prefix.lower()
        snapshot = tuple(sorted((k, v) for k, v in env.items() if k.lower().startswith(folded)))
        return cls(
            name,
            LayerKind.ENV,
            snapshot,
            env_prefix=prefix,
            env_delimiter=delimiter,
        )


def parse_layer(layer: ConfigLayer) -> dict[str, Any]:
    """Parse *layer* into a fresh untyped tree.

    Raises:
        LayerParseError: The source is unreadable or malformed.
    """
    try:
        tree = _parse_source(layer)
    except (OSError, ValueError) as exc:
        # tomllib.TOMLDecodeError and UnicodeDecodeError are ValueErrors.
        raise LayerParseError(layer.name, exc) from exc
    logger.debug("Parsed layer %s (%s): %d top-level key(s)", layer.name, layer.kind, len(tree))
    return tree


def _parse_source(layer: ConfigLayer) -> dict[str, Any]:
    match layer.kind:
        case LayerKind.MAPPING:
            return _thaw(layer.source)
        case LayerKind.TOML:
            return tomllib.loads(layer.source)
        case LayerKind.FILE:
            path: Path = layer.source
            if not path.is_file() and not layer.required:
                logger.debug("Optional config file %s not found", path)
                return {}
            return tomllib.loads(path.read_text(encoding="utf-8"))
        case LayerKind.ENV:
            return env_to_tree(layer.source, layer.env_prefix, layer.env_delimiter)
    raise ValueError(f"unsupported layer kind: {layer.kind}")


def env_to_tree(
    pairs: Iterable[tuple[str, str]],
    prefix: str,
    delimiter: str = DEFAULT_ENV_DELIMITER,
) -> dict[str, Any]:
    """Translate flat ``KEY=value`` pairs into a nested tree.

    Raises:
        ValueError: A key has an empty path segment, two keys fold to the
            same path, or a key needs a table where another key set a value.
    """
    folded_prefix = prefix.lower()
    tree: dict[str, Any] = {}
    for key, value in pairs:
        folded = key.lower()
        if not folded.startswith(folded_prefix):
            continue
        segments = folded[len(folded_prefix) :].split(delimiter)
        if any(not segment for segment in segments):
            raise ValueError(f"environment key {key!r} has an empty path segment")

        node = tree
        for segment in segments[:-1]:
            child = node.setdefault(segment, {})
            if not isinstance(child, dict):
                raise ValueError(f"environment key {key!r} nests under a plain value")
            node = child
        leaf = segments[-1]
        if leaf in node:
            raise ValueError(f"environment key {key!r} collides with another key")
        node[leaf] = value
    return tree


def _freeze(value: Any) -> Any:
    """Read-only deep copy: tables become mapping proxies, arrays tuples."""
    if isinstance(value, Mapping):
        return MappingProxyType({key: _freeze(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(item) for item in value)
    return copy.deepcopy(value)


def _thaw(value: Any) -> Any:
    """Fresh mutable tree from a frozen one."""
    if isinstance(value, Mapping):
        return {key: _thaw(item) for key, item in value.items()}
    if isinstance(value, tuple):
        return [_thaw(item) for item in value]
    return copy.deepcopy(value)
