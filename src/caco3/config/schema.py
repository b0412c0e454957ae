"""Schema-aware adjustments applied between merging and validation.

Two rewrites need to know the target model:

- :func:`align_keys` maps the lower-cased keys of an environment layer
  onto the schema's own spelling, so ``APP_APIKEY`` reaches a field
  named ``apiKey``.
- :func:`resolve_source_relative_paths` rebases relative values of
  :data:`~caco3.serde.paths.SourceRelativePath` fields onto the directory
  of the config file that supplied them.
"""

from __future__ import annotations

import logging
import types
from collections.abc import Iterator, Mapping, Sequence
from enum import Enum
from pathlib import Path
from typing import Annotated, Any, Union, get_args, get_origin

from pydantic import BaseModel

from caco3.config.layers import ConfigLayer, LayerKind
from caco3.config.merge import KeyPath, Tree
from caco3.config.meta import MergedConfig
from caco3.serde.fields import Adapted
from caco3.serde.paths import PATH_KEY

logger = logging.getLogger(__name__)


class _PathShape(Enum):
    SINGLE = "single"
    ARRAY = "array"


def field_keys(model: type[BaseModel]) -> dict[str, str]:
    """Map each field's input key (its alias, else its name) to the field name."""
    return {field.alias or name: name for name, field in model.model_fields.items()}


def model_types(annotation: Any) -> Iterator[type[BaseModel]]:
    """Yield the model classes a field annotation can hold, unions unwrapped."""
    origin = get_origin(annotation)
    if origin is Annotated:
        yield from model_types(get_args(annotation)[0])
    elif origin is Union or origin is types.UnionType:
        for arg in get_args(annotation):
            yield from model_types(arg)
    elif isinstance(annotation, type) and issubclass(annotation, BaseModel):
        yield annotation


def align_keys(tree: Tree, model: type[BaseModel]) -> Tree:
    """Return *tree* with keys renamed to the spelling *model* expects.

    A key with no exact field match is renamed when exactly one field
    key matches it case-insensitively. Tables under model-typed fields
    are aligned against that model. Anything else is left alone.
    """
    keys = field_keys(model)
    folded: dict[str, list[str]] = {}
    for key in keys:
        folded.setdefault(key.lower(), []).append(key)

    aligned: Tree = {}
    for key, value in tree.items():
        target = key
        if key not in keys:
            candidates = folded.get(key.lower(), [])
            if len(candidates) == 1 and candidates[0] not in tree:
                target = candidates[0]
        if isinstance(value, dict) and target in keys:
            field = model.model_fields[keys[target]]
            for nested in model_types(field.annotation):
                value = align_keys(value, nested)
        aligned[target] = value
    return aligned


def source_dirs(layers: Sequence[ConfigLayer]) -> dict[str, Path]:
    """Directory of each file-backed layer, keyed by layer name."""
    return {
        layer.name: Path(layer.source).absolute().parent
        for layer in layers
        if layer.kind is LayerKind.FILE
    }


def resolve_source_relative_paths(
    data: Tree,
    merged: MergedConfig,
    model: type[BaseModel],
    dirs: Mapping[str, Path],
    prefix: KeyPath = (),
) -> Tree:
    """Rebase relative source-relative path values in *data*, in place.

    *data* is the merged tree about to be validated as *model*; *merged*
    tells which layer each value came from. Absolute paths and values
    from layers missing in *dirs* stay as they are.
    """
    keys = field_keys(model)
    for key, name in keys.items():
        if key not in data:
            continue
        path = (*prefix, key)
        field = model.model_fields[name]
        value = data[key]
        shape = _source_relative_shape(field.annotation, field.metadata)
        if shape is not None:
            # A {path = ...} table is not a leaf; its origin is on the inner key.
            leaf = (*path, PATH_KEY) if isinstance(value, dict) else path
            base = dirs.get(merged.origin_at(leaf) or "")
            if base is None:
                continue
            if shape is _PathShape.ARRAY and isinstance(value, list):
                data[key] = [_rebase(item, base) for item in value]
            else:
                data[key] = _rebase(value, base)
            logger.debug("Resolved %s against %s", ".".join(path), base)
        elif isinstance(value, dict):
            for nested in model_types(field.annotation):
                resolve_source_relative_paths(value, merged, nested, dirs, path)
    return data


def _source_relative_shape(annotation: Any, metadata: Sequence[Any] = ()) -> _PathShape | None:
    if any(_is_source_relative(m) for m in metadata):
        return _PathShape.SINGLE
    origin = get_origin(annotation)
    args = get_args(annotation)
    if origin is Annotated:
        return _source_relative_shape(args[0], args[1:])
    if origin is Union or origin is types.UnionType:
        for arg in args:
            shape = _source_relative_shape(arg)
            if shape is not None:
                return shape
        return None
    if origin in (list, tuple, Sequence) and args:
        if _source_relative_shape(args[0]) is _PathShape.SINGLE:
            return _PathShape.ARRAY
    return None


def _is_source_relative(marker: Any) -> bool:
    return isinstance(marker, Adapted) and getattr(marker.adaptor, "relative_to_source", False)


def _rebase(value: Any, base: Path) -> Any:
    if isinstance(value, dict) and set(value) == {PATH_KEY}:
        return {PATH_KEY: _rebase(value[PATH_KEY], base)}
    if isinstance(value, str) and value and not Path(value).is_absolute():
        return str(base / value)
    return value
