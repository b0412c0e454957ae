"""Tests for the deterministic tree merge."""

from __future__ import annotations

from caco3.config.merge import iter_leaves, leaf_origins, merge_all, merge_trees


class TestMergeTrees:
    def test_tables_merge_recursively(self) -> None:
        lower = {"server": {"host": "a", "port": 1}}
        higher = {"server": {"port": 2}}
        assert merge_trees(lower, higher) == {"server": {"host": "a", "port": 2}}

    def test_arrays_replaced(self) -> None:
        assert merge_trees({"hosts": ["a", "b"]}, {"hosts": ["c"]}) == {"hosts": ["c"]}

    def test_scalar_replaces_table(self) -> None:
        assert merge_trees({"db": {"host": "x"}}, {"db": "sqlite://"}) == {"db": "sqlite://"}

    def test_table_replaces_scalar(self) -> None:
        assert merge_trees({"db": "sqlite://"}, {"db": {"host": "x"}}) == {"db": {"host": "x"}}

    def test_inputs_untouched(self) -> None:
        lower = {"a": {"b": [1]}}
        higher = {"a": {"c": 2}}
        merged = merge_trees(lower, higher)
        merged["a"]["b"].append(9)
        assert lower == {"a": {"b": [1]}}
        assert higher == {"a": {"c": 2}}


class TestMergeAll:
    def test_empty(self) -> None:
        assert merge_all([]) == {}

    def test_last_wins(self) -> None:
        assert merge_all([{"x": 1}, {"x": 2}, {"x": 3}]) == {"x": 3}

    def test_repeating_last_layer_is_idempotent(self) -> None:
        a = {"server": {"port": 8080, "host": "localhost"}, "hosts": ["a"]}
        b = {"server": {"port": 9090}, "hosts": ["b", "c"]}
        assert merge_all([a, b]) == merge_all([a, b, b])


class TestProvenance:
    def test_iter_leaves_counts_empty_tables(self) -> None:
        leaves = dict(iter_leaves({"a": {"b": 1, "c": {}}, "d": [1]}))
        assert leaves == {("a", "b"): 1, ("a", "c"): {}, ("d",): [1]}

    def test_leaf_origins(self) -> None:
        defaults = {"server": {"host": "localhost", "port": 8080}}
        site = {"server": {"port": 9090}}
        merged = merge_all([defaults, site])
        origins = leaf_origins(merged, [("defaults", defaults), ("site", site)])
        assert origins == {("server", "host"): "defaults", ("server", "port"): "site"}
