"""Deterministic tree merge.

Rule per key: when both sides hold a table, recurse; otherwise the
higher-precedence value replaces the lower one outright. That includes
arrays (never concatenated) and table/scalar or table/array conflicts
(never partially merged).
"""

from __future__ import annotations

import copy
from collections.abc import Iterator, Mapping, Sequence
from typing import Any

Tree = dict[str, Any]
KeyPath = tuple[str, ...]


def merge_trees(lower: Mapping[str, Any], higher: Mapping[str, Any]) -> Tree:
    """Return a new tree with *higher* laid over *lower*; inputs untouched."""
    merged: Tree = {key: copy.deepcopy(value) for key, value in lower.items()}
    for key, value in higher.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = merge_trees(current, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def merge_all(trees: Sequence[Mapping[str, Any]]) -> Tree:
    """Fold *trees* left to right, lowest precedence first."""
    merged: Tree = {}
    for tree in trees:
        merged = merge_trees(merged, tree)
    return merged


def iter_leaves(tree: Mapping[str, Any], prefix: KeyPath = ()) -> Iterator[tuple[KeyPath, Any]]:
    """Yield ``(path, value)`` for every non-table value; empty tables count as leaves."""
    for key, value in tree.items():
        path = (*prefix, key)
        if isinstance(value, Mapping) and value:
            yield from iter_leaves(value, path)
        else:
            yield path, value


def contains_path(tree: Mapping[str, Any], path: KeyPath) -> bool:
    node: Any = tree
    for key in path:
        if not isinstance(node, Mapping) or key not in node:
            return False
        node = node[key]
    return True


def leaf_origins(
    merged: Mapping[str, Any], named_trees: Sequence[tuple[str, Tree]]
) -> dict[KeyPath, str]:
    """Map each leaf of *merged* to the name of the layer it came from.

    A leaf comes from the highest-precedence tree that has its path: any
    higher tree touching the path would have replaced or merged into it.
    """
    origins: dict[KeyPath, str] = {}
    for path, _ in iter_leaves(merged):
        for name, tree in reversed(named_trees):
            if contains_path(tree, path):
                origins[path] = name
                break
    return origins
