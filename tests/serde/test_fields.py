"""Tests for adaptor-backed pydantic fields."""

from __future__ import annotations

import json

import pytest
from pydantic import BaseModel, ValidationError

from caco3.domain.bytes import ByteQuantity, ByteUnit
from caco3.domain.durations import HumanDuration
from caco3.domain.timestamps import ZonedTimestamp, parse_timestamp
from caco3.serde.base import TypeMismatchError
from caco3.serde.bytes import AppropriateByteSize, ByteSize
from caco3.serde.choice import ChoiceBool
from caco3.serde.duration import Duration
from caco3.serde.time import Timestamp, TimestampMillis


class Limits(BaseModel):
    model_config = {"frozen": True}

    max_body: ByteSize
    cache: AppropriateByteSize = ByteQuantity.of(64, ByteUnit.MIB)
    started: Timestamp | None = None
    checked: TimestampMillis | None = None
    timeout: Duration = HumanDuration(30)
    strict: ChoiceBool = False


class TestValidation:
    def test_decodes_human_shapes(self) -> None:
        limits = Limits.model_validate(
            {
                "max_body": "10 MiB",
                "started": "2022-01-01T19:00:10+07:00",
                "timeout": "2m",
                "strict": "yes",
            }
        )
        assert limits.max_body == ByteQuantity.of(10, ByteUnit.MIB)
        assert isinstance(limits.started, ZonedTimestamp)
        assert limits.timeout == HumanDuration(120)
        assert limits.strict is True

    def test_decodes_compact_shapes(self) -> None:
        limits = Limits.model_validate({"max_body": 1024, "timeout": 90, "strict": 0})
        assert limits.max_body.bytes == 1024
        assert limits.timeout.seconds == 90
        assert limits.strict is False

    def test_adaptor_error_surfaces_as_value_error(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            Limits.model_validate({"max_body": True})
        (error,) = exc_info.value.errors()
        assert error["type"] == "value_error"
        assert error["loc"] == ("max_body",)
        assert isinstance(error["ctx"]["error"], TypeMismatchError)

    def test_missing_required(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            Limits.model_validate({})
        assert exc_info.value.errors()[0]["type"] == "missing"


class TestSerialization:
    def _limits(self) -> Limits:
        return Limits(
            max_body=ByteQuantity.of(10, ByteUnit.MIB),
            cache=ByteQuantity.from_bytes(1572864),
            started=parse_timestamp("2022-01-01T19:00:10.123+07:00"),
            checked=parse_timestamp("2022-01-01T00:00:00.123456Z"),
            timeout=HumanDuration(3600),
            strict=True,
        )

    def test_json_mode_is_human_readable(self) -> None:
        dumped = self._limits().model_dump(mode="json")
        assert dumped == {
            "max_body": "10 MiB",
            "cache": "1.5 MiB",
            "started": "2022-01-01T19:00:10.123+07:00",
            "checked": "2022-01-01T00:00:00.123Z",
            "timeout": "1h 0m 0s",
            "strict": True,
        }

    def test_python_mode_keeps_domain_values(self) -> None:
        limits = self._limits()
        dumped = limits.model_dump()
        assert dumped["max_body"] is limits.max_body
        assert dumped["timeout"] is limits.timeout

    def test_compact_context(self) -> None:
        dumped = self._limits().model_dump(mode="json", context={"human_readable": False})
        assert dumped["max_body"] == 10 * 1024**2
        assert dumped["cache"] == 1572864
        assert dumped["timeout"] == 3600
        assert dumped["checked"] == {"unix_micros": 1640995200123000, "offset_seconds": 0}

    def test_json_round_trip(self) -> None:
        limits = self._limits()
        restored = Limits.model_validate_json(limits.model_dump_json())
        assert restored.max_body == limits.max_body
        assert restored.started == limits.started
        assert restored.timeout == limits.timeout

    def test_compact_json_round_trip(self) -> None:
        limits = self._limits()
        raw = limits.model_dump_json(context={"human_readable": False})
        restored = Limits.model_validate(json.loads(raw))
        assert restored.cache == limits.cache
        assert restored.started == limits.started


class TestJsonSchema:
    def test_adaptor_schemas(self) -> None:
        props = Limits.model_json_schema()["properties"]
        assert props["max_body"]["anyOf"][0]["type"] == "string"
        assert props["timeout"]["anyOf"][1] == {"type": "integer", "minimum": 0}
