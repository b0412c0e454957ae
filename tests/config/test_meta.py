"""Tests for MergedConfig lookups."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest
from pydantic import BaseModel, ValidationError

from caco3.config.errors import KeyNotFoundError
from caco3.config.meta import MergedConfig
from caco3.domain.bytes import ByteQuantity, ByteUnit
from caco3.domain.durations import HumanDuration
from caco3.domain.timestamps import ZonedTimestamp
from caco3.serde.base import InvalidValueError
from caco3.serde.registry import AdaptorSet


class Server(BaseModel):
    host: str
    port: int = 80


@pytest.fixture
def merged() -> MergedConfig:
    tree = {
        "server": {"host": "example.org", "port": 9090, "tls": True, "ratio": 0.5},
        "limits": {"body": "10 MiB", "timeout": "1h 30m"},
        "hosts": ["a", "b"],
        "started": datetime(2022, 1, 1, 12, tzinfo=timezone(timedelta(hours=7))),
        "started_text": "2022-01-01T12:00:00Z",
        "birthday": date(2022, 1, 1),
    }
    origins = {
        ("server", "host"): "defaults",
        ("server", "port"): "site",
        ("hosts",): "env",
    }
    return MergedConfig(tree, origins)


class TestLookup:
    def test_get(self, merged: MergedConfig) -> None:
        assert merged.get("server.port") == 9090
        assert merged.get("server.missing") is None
        assert merged.get("server.missing", 5) == 5

    def test_get_returns_copy(self, merged: MergedConfig) -> None:
        hosts = merged.get("hosts")
        hosts.append("c")
        assert merged.get("hosts") == ["a", "b"]

    def test_to_dict_returns_copy(self, merged: MergedConfig) -> None:
        tree = merged.to_dict()
        tree["server"]["port"] = 1
        assert merged.get("server.port") == 9090

    def test_has_key(self, merged: MergedConfig) -> None:
        assert merged.has_key("server")
        assert merged.has_key("server.host")
        assert not merged.has_key("server.host.name")
        assert not merged.has_key("")
        assert "limits.body" in merged
        assert 5 not in merged

    def test_mapping_protocol(self, merged: MergedConfig) -> None:
        assert set(merged) == {"server", "limits", "hosts", "started", "started_text", "birthday"}
        assert len(merged) == 6
        assert len(MergedConfig()) == 0


class TestTypedGetters:
    def test_as_bool(self, merged: MergedConfig) -> None:
        assert merged.as_bool("server.tls") is True
        assert merged.as_bool("server.port") is None

    def test_as_int_excludes_bool(self, merged: MergedConfig) -> None:
        assert merged.as_int("server.port") == 9090
        assert merged.as_int("server.tls") is None

    def test_as_float(self, merged: MergedConfig) -> None:
        assert merged.as_float("server.ratio") == 0.5
        assert merged.as_float("server.port") is None

    def test_as_str(self, merged: MergedConfig) -> None:
        assert merged.as_str("server.host") == "example.org"
        assert merged.as_str("nowhere") is None

    def test_to_timestamp(self, merged: MergedConfig) -> None:
        ts = merged.to_timestamp("started")
        assert isinstance(ts, ZonedTimestamp)
        assert str(ts) == "2022-01-01T12:00:00+07:00"
        assert str(merged.to_timestamp("started_text")) == "2022-01-01T12:00:00Z"

    def test_to_timestamp_rejects_offsetless(self, merged: MergedConfig) -> None:
        assert merged.to_timestamp("birthday") is None
        assert merged.to_timestamp("server.host") is None
        assert merged.to_timestamp("server.port") is None


class TestDecodedValues:
    def test_to_value(self, merged: MergedConfig) -> None:
        assert merged.to_value("limits.body", ByteQuantity) == ByteQuantity.of(10, ByteUnit.MIB)
        assert merged.to_value("limits.timeout", HumanDuration) == HumanDuration(5400)

    def test_to_value_absent(self, merged: MergedConfig) -> None:
        assert merged.to_value("limits.nothing", ByteQuantity) is None

    def test_to_value_invalid(self, merged: MergedConfig) -> None:
        with pytest.raises(InvalidValueError):
            merged.to_value("server.host", ByteQuantity)

    def test_to_value_feature_disabled(self, merged: MergedConfig) -> None:
        with pytest.raises(LookupError):
            merged.to_value("limits.body", ByteQuantity, AdaptorSet.default())

    def test_to_instance(self, merged: MergedConfig) -> None:
        server = merged.to_instance("server", Server)
        assert server == Server(host="example.org", port=9090)
        assert merged.to_instance("absent", Server) is None

    def test_to_instance_invalid(self) -> None:
        with pytest.raises(ValidationError):
            MergedConfig({"server": {"port": 1}}).to_instance("server", Server)


class TestProvenance:
    def test_origin(self, merged: MergedConfig) -> None:
        assert merged.origin("server.port") == "site"
        assert merged.origin("server.host") == "defaults"
        assert merged.origin("server.tls") is None

    def test_origin_below_leaf(self, merged: MergedConfig) -> None:
        assert merged.origin("hosts.0") == "env"


class TestWithoutKeys:
    def test_removes_nested_key(self, merged: MergedConfig) -> None:
        trimmed = merged.without_keys(["server.port", "hosts"])
        assert not trimmed.has_key("server.port")
        assert not trimmed.has_key("hosts")
        assert trimmed.has_key("server.host")
        assert trimmed.origin("server.port") is None
        assert merged.has_key("server.port")

    def test_missing_key(self, merged: MergedConfig) -> None:
        with pytest.raises(KeyNotFoundError) as exc_info:
            merged.without_keys(["server.port", "server.port"])
        assert exc_info.value.key == "server.port"


class TestEquality:
    def test_equal_trees(self) -> None:
        assert MergedConfig({"a": 1}) == MergedConfig({"a": 1}, {("a",): "x"})
        assert MergedConfig({"a": 1}) != MergedConfig({"a": 2})

    def test_unhashable(self) -> None:
        with pytest.raises(TypeError):
            hash(MergedConfig())
