"""ConfigError family.

INVARIANT: ``load_config`` is all-or-nothing. It either returns a fully
validated schema instance or raises :class:`ConfigLoadError` carrying
every layer and field problem found in one pass.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import StrEnum
from typing import Any


class ConfigError(Exception):
    """Base class for configuration failures."""


class LayerParseError(ConfigError):
    """A layer's raw source could not be parsed into a tree."""

    def __init__(self, layer_name: str, cause: BaseException) -> None:
        self.layer_name = layer_name
        self.cause = cause
        super().__init__(f"layer {layer_name!r}: {cause}")


class FieldErrorKind(StrEnum):
    """Why a schema field could not be resolved."""

    MISSING = "missing"
    TYPE_MISMATCH = "type_mismatch"
    ADAPTOR_REJECTED = "adaptor_rejected"


class FieldError(ConfigError):
    """A schema field failed to resolve from the merged tree.

    Attributes:
        path: Dotted field path, e.g. ``"server.port"`` or ``"hosts[0]"``.
        kind: Failure category.
        detail: Validator message.
        value: The offending value (None for missing fields).
        layer: Name of the layer that supplied the value, when known.
    """

    def __init__(
        self,
        path: str,
        kind: FieldErrorKind,
        detail: str,
        *,
        value: Any = None,
        layer: str | None = None,
    ) -> None:
        self.path = path
        self.kind = kind
        self.detail = detail
        self.value = value
        self.layer = layer
        message = f"{path}: {kind} ({detail})"
        if kind is not FieldErrorKind.MISSING:
            message += f", got {value!r}"
        if layer is not None:
            message += f" from layer {layer!r}"
        super().__init__(message)


class ConfigLoadError(ConfigError):
    """Every problem found while loading one configuration."""

    def __init__(self, errors: Iterable[LayerParseError | FieldError]) -> None:
        self.errors: tuple[LayerParseError | FieldError, ...] = tuple(errors)
        lines = [f"{len(self.errors)} configuration error(s):"]
        lines.extend(f"  - {error}" for error in self.errors)
        super().__init__("\n".join(lines))

    @property
    def layer_errors(self) -> list[LayerParseError]:
        return [e for e in self.errors if isinstance(e, LayerParseError)]

    @property
    def field_errors(self) -> list[FieldError]:
        return [e for e in self.errors if isinstance(e, FieldError)]


class KeyNotFoundError(ConfigError):
    """A dotted key expected to exist in a merged tree does not."""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"key {key!r} not found")
