"""MergedConfig — the untyped result of merging layers.

Lookups use dot-separated paths (``"server.port"``). Getters return None
when the path is absent or holds a different kind of value, so callers
can inspect loosely-structured configuration without a schema.
"""

from __future__ import annotations

import copy
from collections.abc import Iterable, Iterator, Mapping
from datetime import datetime
from typing import Any, TypeVar

from pydantic import BaseModel

from caco3.config.errors import KeyNotFoundError
from caco3.config.merge import KeyPath, contains_path
from caco3.domain.timestamps import ZonedTimestamp
from caco3.serde.base import DecodeError
from caco3.serde.registry import AdaptorSet
from caco3.serde.time import RFC3339

PATH_SEP = "."

ModelT = TypeVar("ModelT", bound=BaseModel)

_MISSING = object()


def split_path(path: str) -> KeyPath:
    return tuple(path.split(PATH_SEP)) if path else ()


class MergedConfig:
    """Immutable merged configuration tree.

    Every accessor hands out copies, so the tree cannot be changed
    through the values it returns.
    """

    __slots__ = ("_tree", "_origins")

    def __init__(
        self,
        tree: Mapping[str, Any] | None = None,
        origins: Mapping[KeyPath, str] | None = None,
    ) -> None:
        self._tree: dict[str, Any] = copy.deepcopy(dict(tree or {}))
        self._origins: dict[KeyPath, str] = dict(origins or {})

    def to_dict(self) -> dict[str, Any]:
        return copy.deepcopy(self._tree)

    def get(self, path: str, default: Any = None) -> Any:
        """Value at dotted *path*, or *default* when absent."""
        value = self._lookup(path)
        return default if value is _MISSING else copy.deepcopy(value)

    def has_key(self, path: str) -> bool:
        """Whether *path* exists. A blank path is never a key."""
        return bool(path) and contains_path(self._tree, split_path(path))

    def origin(self, path: str) -> str | None:
        """Name of the layer that supplied the value at *path*.

        Paths below a leaf (e.g. into an array) resolve to that leaf.
        """
        return self.origin_at(split_path(path))

    def origin_at(self, parts: KeyPath) -> str | None:
        """Like :meth:`origin`, for a path already split into keys."""
        while parts:
            if parts in self._origins:
                return self._origins[parts]
            parts = parts[:-1]
        return None

    def as_bool(self, path: str) -> bool | None:
        value = self._lookup(path)
        return value if isinstance(value, bool) else None

    def as_int(self, path: str) -> int | None:
        value = self._lookup(path)
        return value if isinstance(value, int) and not isinstance(value, bool) else None

    def as_float(self, path: str) -> float | None:
        value = self._lookup(path)
        return value if isinstance(value, float) else None

    def as_str(self, path: str) -> str | None:
        value = self._lookup(path)
        return value if isinstance(value, str) else None

    def to_timestamp(self, path: str) -> ZonedTimestamp | None:
        """TOML offset date-time or canonical RFC 3339 string at *path*.

        Local date-times, dates and times have no offset and give None.
        """
        value = self._lookup(path)
        if not isinstance(value, (str, datetime)):
            return None
        try:
            return RFC3339.decode(value)
        except DecodeError:
            return None

    def to_value(self, path: str, target: type[Any], adaptors: AdaptorSet | None = None) -> Any:
        """Decode the value at *path* with the adaptor registered for *target*.

        Returns None when *path* is absent.

        Raises:
            LookupError: *adaptors* has no adaptor for *target*.
            DecodeError: The value is present but cannot be decoded.
        """
        adaptor = (adaptors or AdaptorSet.all()).for_type(target)
        value = self._lookup(path)
        if value is _MISSING:
            return None
        return adaptor.decode(copy.deepcopy(value))

    def to_instance(self, path: str, model: type[ModelT]) -> ModelT | None:
        """Validate the table at *path* as *model*; None when absent.

        Raises:
            pydantic.ValidationError: The table does not fit *model*.
        """
        value = self._lookup(path)
        if value is _MISSING:
            return None
        return model.model_validate(copy.deepcopy(value))

    def without_keys(self, keys: Iterable[str]) -> MergedConfig:
        """Copy of this config with every key in *keys* removed.

        Raises:
            KeyNotFoundError: The first key that does not exist.
        """
        tree = copy.deepcopy(self._tree)
        origins = dict(self._origins)
        for key in keys:
            removed = split_path(key)
            if not removed or not contains_path(tree, removed):
                raise KeyNotFoundError(key)
            *parents, field = removed
            node = tree
            for parent in parents:
                node = node[parent]
            del node[field]
            origins = {p: n for p, n in origins.items() if p[: len(removed)] != removed}
        return MergedConfig(tree, origins)

    def _lookup(self, path: str) -> Any:
        node: Any = self._tree
        for key in split_path(path):
            if not isinstance(node, Mapping) or key not in node:
                return _MISSING
            node = node[key]
        return node

    def __contains__(self, path: object) -> bool:
        return isinstance(path, str) and self.has_key(path)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._tree))

    def __len__(self) -> int:
        return len(self._tree)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MergedConfig):
            return NotImplemented
        return self._tree == other._tree

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"MergedConfig({self._tree!r})"
