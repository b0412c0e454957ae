"""Layered configuration loading.

Three steps, each a pure function of its inputs:

1. Parse every layer into an untyped tree. A malformed layer drops out of
   the merge and is reported as :class:`LayerParseError`.
2. Merge the trees left to right; the last layer has the highest
   precedence.
3. Validate the merged tree against a pydantic schema. Every field
   problem becomes a :class:`FieldError`. Before validation, environment
   keys are aligned to the schema's field spelling and source-relative
   paths are rebased onto their file's directory (:mod:`caco3.config.schema`).

All problems from steps 1 and 3 are raised together as one
:class:`ConfigLoadError`, so the caller sees the complete set at once.
No state is kept between calls; concurrent calls need no coordination.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError
from pydantic_core import ErrorDetails

from caco3.config.errors import ConfigLoadError, FieldError, FieldErrorKind, LayerParseError
from caco3.config.layers import ConfigLayer, LayerKind, parse_layer
from caco3.config.merge import KeyPath, Tree, contains_path, leaf_origins, merge_all
from caco3.config.meta import MergedConfig
from caco3.config.schema import align_keys, resolve_source_relative_paths, source_dirs
from caco3.serde.base import TypeMismatchError

SchemaT = TypeVar("SchemaT", bound=BaseModel)

# Layer name reported for values passed directly to the constructor.
OVERRIDES_LAYER = "overrides"

logger = logging.getLogger(__name__)


def merge_layers(layers: Sequence[ConfigLayer]) -> MergedConfig:
    """Parse and merge *layers* without a schema.

    Raises:
        ConfigLoadError: One or more layers failed to parse.
    """
    merged, errors = merge_with_errors(layers)
    if errors:
        raise ConfigLoadError(errors)
    return merged


def load_config(layers: Sequence[ConfigLayer], schema: type[SchemaT]) -> SchemaT:
    """Merge *layers* and resolve the result as an instance of *schema*.

    An empty layer list resolves against an empty tree: fields with
    defaults take them, required fields are reported missing.

    Raises:
        ConfigLoadError: Any layer failed to parse or any field failed to
            resolve. Nothing partial is returned.
    """
    merged, errors = merge_with_errors(layers, schema)
    data = resolve_source_relative_paths(merged.to_dict(), merged, schema, source_dirs(layers))
    config: SchemaT | None = None
    try:
        config = schema.model_validate(data)
    except ValidationError as exc:
        errors.extend(field_errors_from_validation(exc, merged))

    if errors or config is None:
        logger.debug("Config load for %s failed with %d error(s)", schema.__name__, len(errors))
        raise ConfigLoadError(errors)
    logger.debug("Loaded %s from %d layer(s)", schema.__name__, len(layers))
    return config


def merge_with_errors(
    layers: Sequence[ConfigLayer],
    schema: type[BaseModel] | None = None,
) -> tuple[MergedConfig, list[LayerParseError | FieldError]]:
    """Parse and merge *layers*, returning layer failures instead of raising.

    Layers that fail to parse are left out of the merge. With a *schema*,
    environment layer keys are first aligned to its field spelling.
    """
    errors: list[LayerParseError | FieldError] = []
    named_trees: list[tuple[str, Tree]] = []
    for layer in layers:
        try:
            tree = parse_layer(layer)
        except LayerParseError as exc:
            logger.debug("Skipping layer %s: %s", layer.name, exc.cause)
            errors.append(exc)
            continue
        if schema is not None and layer.kind is LayerKind.ENV:
            tree = align_keys(tree, schema)
        named_trees.append((layer.name, tree))

    combined = merge_all([t for _, t in named_trees])
    return MergedConfig(combined, leaf_origins(combined, named_trees)), errors


def field_errors_from_validation(
    exc: ValidationError,
    merged: MergedConfig | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> list[FieldError]:
    """Translate pydantic errors into :class:`FieldError` values.

    *merged*, when given, supplies the layer each offending value came from.
    Values found in *overrides* are reported as layer ``"overrides"``.
    """
    field_errors = []
    for error in exc.errors():
        path = format_loc(error["loc"])
        kind = classify_error(error)
        if kind is FieldErrorKind.MISSING:
            field_errors.append(FieldError(path, kind, error["msg"]))
            continue
        keys = _key_path(error["loc"])
        layer = None
        if keys and overrides is not None and contains_path(overrides, keys):
            layer = OVERRIDES_LAYER
        elif merged is not None:
            layer = merged.origin_at(keys)
        field_errors.append(
            FieldError(path, kind, _detail(error), value=error.get("input"), layer=layer)
        )
    return field_errors


def classify_error(error: ErrorDetails) -> FieldErrorKind:
    if error["type"] == "missing":
        return FieldErrorKind.MISSING
    if error["type"] == "value_error":
        cause = error.get("ctx", {}).get("error")
        if isinstance(cause, TypeMismatchError):
            return FieldErrorKind.TYPE_MISMATCH
        return FieldErrorKind.ADAPTOR_REJECTED
    return FieldErrorKind.TYPE_MISMATCH


def format_loc(loc: tuple[int | str, ...]) -> str:
    """Render a pydantic location as ``server.hosts[0].name``."""
    path = ""
    for part in loc:
        if isinstance(part, int):
            path += f"[{part}]"
        else:
            path += f".{part}" if path else part
    return path


def _key_path(loc: tuple[int | str, ...]) -> KeyPath:
    keys = []
    for part in loc:
        if isinstance(part, int):
            break
        keys.append(part)
    return tuple(keys)


def _detail(error: ErrorDetails) -> str:
    cause: Any = error.get("ctx", {}).get("error")
    return str(cause) if cause is not None else error["msg"]
