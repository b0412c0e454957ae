"""Feature-gated adaptor capability sets.

Each optional adaptor family is a module exposing ``FEATURE`` and
``ADAPTORS``. An :class:`AdaptorSet` imports only the modules for the
features it is built with, so consumers that never ask for, say,
``byte-unit`` never load it.
"""

from __future__ import annotations

import importlib
import logging
from collections.abc import Iterable, Iterator
from typing import Any

from caco3.serde.base import Adaptor

FEATURE_MODULES: dict[str, str] = {
    "byte-unit": "caco3.serde.bytes",
    "choice": "caco3.serde.choice",
    "duration": "caco3.serde.duration",
    "path": "caco3.serde.paths",
    "time": "caco3.serde.time",
}

DEFAULT_FEATURES: frozenset[str] = frozenset({"time"})

logger = logging.getLogger(__name__)


class AdaptorSet:
    """An immutable collection of adaptors keyed by name.

    The first adaptor registered for a target type is that type's
    default, returned by :meth:`for_type`.
    """

    def __init__(self, adaptors: Iterable[Adaptor[Any]], features: Iterable[str] = ()) -> None:
        by_name: dict[str, Adaptor[Any]] = {}
        by_type: dict[type[Any], Adaptor[Any]] = {}
        for adaptor in adaptors:
            if adaptor.name in by_name:
                raise ValueError(f"Duplicate adaptor name: {adaptor.name!r}")
            by_name[adaptor.name] = adaptor
            by_type.setdefault(adaptor.target, adaptor)
        self._by_name = by_name
        self._by_type = by_type
        self._features = frozenset(features)

    @classmethod
    def from_features(cls, features: Iterable[str]) -> AdaptorSet:
        """Load the adaptor modules for *features*.

        Raises:
            ValueError: A feature name is not in :data:`FEATURE_MODULES`.
        """
        requested = sorted(set(features))
        unknown = [f for f in requested if f not in FEATURE_MODULES]
        if unknown:
            known = ", ".join(sorted(FEATURE_MODULES))
            raise ValueError(f"Unknown adaptor feature(s) {unknown}; known: {known}")

        adaptors: list[Adaptor[Any]] = []
        for feature in requested:
            module = importlib.import_module(FEATURE_MODULES[feature])
            adaptors.extend(module.ADAPTORS)
            logger.debug("Enabled adaptor feature: %s", feature)
        return cls(adaptors, requested)

    @classmethod
    def default(cls) -> AdaptorSet:
        return cls.from_features(DEFAULT_FEATURES)

    @classmethod
    def all(cls) -> AdaptorSet:
        return cls.from_features(FEATURE_MODULES)

    @property
    def features(self) -> frozenset[str]:
        return self._features

    def get(self, name: str) -> Adaptor[Any]:
        try:
            return self._by_name[name]
        except KeyError:
            raise LookupError(f"No adaptor named {name!r} in this set") from None

    def for_type(self, target: type[Any]) -> Adaptor[Any]:
        """Return the default adaptor for *target*.

        Raises:
            LookupError: No enabled feature handles *target*.
        """
        try:
            return self._by_type[target]
        except KeyError:
            raise LookupError(
                f"No adaptor for {target.__name__}; enabled features: {sorted(self._features)}"
            ) from None

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __iter__(self) -> Iterator[Adaptor[Any]]:
        return iter(self._by_name.values())

    def __len__(self) -> int:
        return len(self._by_name)
