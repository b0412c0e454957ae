"""RFC 3339 timestamp adaptors (feature ``time``).

Human-readable shape: canonical text, e.g. ``"2022-01-01T19:00:10.123+07:00"``.
Compact shape: ``{"unix_micros": int, "offset_seconds": int}``.

Decode also accepts aware ``datetime`` values, which is what ``tomllib``
yields for TOML offset date-times. Local date-times, dates and times
carry no offset and are rejected as incomplete.

The ``millis`` and ``seconds`` variants floor on both encode and decode.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta, timezone
from typing import Annotated, Any, ClassVar

from caco3.domain.errors import IncompleteTimestampError, InvalidFormatError, ParseError
from caco3.domain.timestamps import (
    Precision,
    ZonedTimestamp,
    format_timestamp,
    parse_timestamp,
)
from caco3.serde.base import InvalidValueError, TypeMismatchError
from caco3.serde.fields import Adapted

FEATURE = "time"

_COMPACT_KEYS = frozenset({"unix_micros", "offset_seconds"})
_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


@dataclass(frozen=True)
class TimestampAdaptor:
    """Encode/decode :class:`ZonedTimestamp` at an optional fixed precision."""

    name: str = "rfc3339"
    precision: Precision | None = None

    target: ClassVar[type[ZonedTimestamp]] = ZonedTimestamp
    json_schema: ClassVar[dict[str, Any]] = {"type": "string", "format": "date-time"}

    def encode(self, value: ZonedTimestamp, *, human_readable: bool = True) -> str | dict[str, int]:
        value = self._floor(value)
        if human_readable:
            return format_timestamp(value, self.precision)
        return {
            "unix_micros": value.unix_micros(),
            "offset_seconds": int(value.utc_offset.total_seconds()),
        }

    def decode(self, shape: Any) -> ZonedTimestamp:
        try:
            return self._floor(self._decode(shape))
        except ParseError as exc:
            raise InvalidValueError(exc) from exc

    def _decode(self, shape: Any) -> ZonedTimestamp:
        match shape:
            case ZonedTimestamp():
                return shape
            case datetime() if shape.utcoffset() is not None:
                return ZonedTimestamp(shape)
            case datetime() | date() | time():
                raise IncompleteTimestampError(
                    "timestamp needs date, time and UTC offset", shape.isoformat()
                )
            case str():
                return parse_timestamp(shape)
            case dict():
                return _decode_compact(shape)
            case _:
                raise TypeMismatchError("RFC 3339 string, datetime or map", shape)

    def _floor(self, value: ZonedTimestamp) -> ZonedTimestamp:
        return value.floor(self.precision) if self.precision is not None else value


def _decode_compact(shape: dict[str, Any]) -> ZonedTimestamp:
    if set(shape) != _COMPACT_KEYS or not all(
        isinstance(shape[k], int) and not isinstance(shape[k], bool) for k in _COMPACT_KEYS
    ):
        raise InvalidFormatError(
            "expected map with integer 'unix_micros' and 'offset_seconds'", repr(shape)
        )
    try:
        tz = timezone(timedelta(seconds=shape["offset_seconds"]))
        instant = (_EPOCH + timedelta(microseconds=shape["unix_micros"])).astimezone(tz)
    except (ValueError, OverflowError) as exc:
        raise InvalidFormatError(str(exc), repr(shape)) from None
    return ZonedTimestamp(instant)


RFC3339 = TimestampAdaptor()
RFC3339_MILLIS = TimestampAdaptor(name="rfc3339/millis", precision=Precision.MILLIS)
RFC3339_SECONDS = TimestampAdaptor(name="rfc3339/seconds", precision=Precision.SECONDS)

ADAPTORS = (RFC3339, RFC3339_MILLIS, RFC3339_SECONDS)

Timestamp = Annotated[ZonedTimestamp, Adapted(RFC3339)]
TimestampMillis = Annotated[ZonedTimestamp, Adapted(RFC3339_MILLIS)]
TimestampSeconds = Annotated[ZonedTimestamp, Adapted(RFC3339_SECONDS)]
