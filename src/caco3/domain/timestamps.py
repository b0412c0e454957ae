"""Zoned timestamps with a single canonical RFC 3339 profile.

Canonical form: ``YYYY-MM-DDTHH:MM:SS[.fraction](Z|+HH:MM|-HH:MM)``.
The formatter writes UTC as ``Z`` and picks the shortest fraction width
out of none, 3 or 6 digits unless a fixed :class:`Precision` is asked
for. The parser accepts 1-9 fraction digits and floors anything beyond
microseconds.

INVARIANT: for canonical text ``t``, ``format_timestamp(parse_timestamp(t)) == t``.
"""

from __future__ import annotations

import functools
import os
import re
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta, timezone, tzinfo
from enum import StrEnum
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from caco3.domain.choices import is_truthy
from caco3.domain.errors import IncompleteTimestampError, InvalidFormatError

CACHE_TIMEZONE_ENV_VAR = "CACO3_CACHE_TIMEZONE"

THAILAND_UTC_OFFSET = timezone(timedelta(hours=7))

_CANONICAL_PATTERN = re.compile(
    r"^(?P<year>\d{4})-(?P<month>\d{2})-(?P<day>\d{2})"
    r"T(?P<hour>\d{2}):(?P<minute>\d{2}):(?P<second>\d{2})"
    r"(?:\.(?P<fraction>\d{1,9}))?"
    r"(?P<offset>Z|[+-]\d{2}:\d{2})$",
    re.ASCII,
)

# Shapes that look like a timestamp but leave out a required component.
_PARTIAL_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"^\d{4}(-\d{2}){0,2}$", re.ASCII),
    re.compile(r"^\d{4}-\d{2}-\d{2}[T ]\d{2}(:\d{2}){0,2}(\.\d+)?$", re.ASCII),
    re.compile(r"^\d{4}-\d{2}-\d{2}[T ]\d{2}(:\d{2})?(Z|[+-]\d{2}:\d{2})$", re.ASCII),
    re.compile(r"^\d{2}:\d{2}(:\d{2}(\.\d+)?)?$", re.ASCII),
)


class Precision(StrEnum):
    """Fixed fraction widths for formatting."""

    SECONDS = "seconds"
    MILLIS = "millis"
    MICROS = "micros"


@dataclass(frozen=True, order=True)
class ZonedTimestamp:
    """An aware instant together with the zone it is displayed in.

    Equality and ordering compare instants, so ``12:00Z`` equals
    ``19:00+07:00``.
    """

    instant: datetime

    def __post_init__(self) -> None:
        if self.instant.tzinfo is None or self.instant.utcoffset() is None:
            raise ValueError("ZonedTimestamp requires an aware datetime")

    @classmethod
    def now(cls, zone: tzinfo | str | None = None) -> ZonedTimestamp:
        """Current time in *zone* (default: the local zone)."""
        tz = resolve_zone(zone) if zone is not None else local_timezone()
        return cls(datetime.now(tz))

    @classmethod
    def from_unix(cls, seconds: float, zone: tzinfo | str = UTC) -> ZonedTimestamp:
        return cls(datetime.fromtimestamp(seconds, resolve_zone(zone)))

    @property
    def utc_offset(self) -> timedelta:
        offset = self.instant.utcoffset()
        assert offset is not None
        return offset

    @property
    def zone_name(self) -> str | None:
        """IANA name when the zone came from the zone database."""
        tz = self.instant.tzinfo
        return tz.key if isinstance(tz, ZoneInfo) else None

    def unix_micros(self) -> int:
        delta = self.instant - datetime(1970, 1, 1, tzinfo=UTC)
        return (delta.days * 86_400 + delta.seconds) * 1_000_000 + delta.microseconds

    def to_zone(self, zone: tzinfo | str) -> ZonedTimestamp:
        """Same instant, displayed in *zone*."""
        return ZonedTimestamp(self.instant.astimezone(resolve_zone(zone)))

    def floor(self, precision: Precision) -> ZonedTimestamp:
        """Drop sub-*precision* digits, never rounding up."""
        if precision is Precision.SECONDS:
            return ZonedTimestamp(self.instant.replace(microsecond=0))
        if precision is Precision.MILLIS:
            micros = self.instant.microsecond // 1000 * 1000
            return ZonedTimestamp(self.instant.replace(microsecond=micros))
        return self

    def __str__(self) -> str:
        return format_timestamp(self)


def resolve_zone(zone: tzinfo | str) -> tzinfo:
    """Turn an IANA zone name into a tzinfo; pass tzinfo through."""
    if isinstance(zone, tzinfo):
        return zone
    try:
        return ZoneInfo(zone)
    except (ZoneInfoNotFoundError, ValueError):
        raise InvalidFormatError("unknown time zone", zone) from None


def parse_timestamp(text: str) -> ZonedTimestamp:
    """Parse the canonical RFC 3339 profile into a :class:`ZonedTimestamp`.

    Raises:
        IncompleteTimestampError: Date, time, seconds or offset is missing.
        InvalidFormatError: Anything else outside the profile, or
            out-of-range fields.
    """
    match = _CANONICAL_PATTERN.match(text)
    if match is None:
        if any(p.match(text) for p in _PARTIAL_PATTERNS):
            raise IncompleteTimestampError("timestamp needs date, time and UTC offset", text)
        raise InvalidFormatError("expected RFC 3339 'YYYY-MM-DDTHH:MM:SS[.f]Z|±HH:MM'", text)

    fraction = match.group("fraction") or ""
    microsecond = int(fraction[:6].ljust(6, "0")) if fraction else 0
    try:
        tz = _parse_offset(match.group("offset"))
        instant = datetime(
            int(match.group("year")),
            int(match.group("month")),
            int(match.group("day")),
            int(match.group("hour")),
            int(match.group("minute")),
            int(match.group("second")),
            microsecond,
            tzinfo=tz,
        )
    except ValueError as exc:
        raise InvalidFormatError(str(exc), text) from None
    return ZonedTimestamp(instant)


def format_timestamp(timestamp: ZonedTimestamp, precision: Precision | None = None) -> str:
    """Render the canonical RFC 3339 text for *timestamp*.

    With *precision* the value is floored and the fraction width fixed;
    without it the shortest of none, 3 or 6 digits is used.
    """
    if precision is not None:
        timestamp = timestamp.floor(precision)
    instant = timestamp.instant
    if int(timestamp.utc_offset.total_seconds()) % 60:
        # Historical LMT offsets carry seconds; RFC 3339 cannot express them.
        instant = instant.astimezone(UTC)
    micros = instant.microsecond

    if precision is Precision.SECONDS:
        fraction = ""
    elif precision is Precision.MILLIS:
        fraction = f".{micros // 1000:03d}"
    elif precision is Precision.MICROS:
        fraction = f".{micros:06d}"
    elif micros == 0:
        fraction = ""
    elif micros % 1000 == 0:
        fraction = f".{micros // 1000:03d}"
    else:
        fraction = f".{micros:06d}"

    base = (
        f"{instant.year:04d}-{instant.month:02d}-{instant.day:02d}"
        f"T{instant.hour:02d}:{instant.minute:02d}:{instant.second:02d}"
    )
    offset = instant.utcoffset()
    assert offset is not None
    return f"{base}{fraction}{_format_offset(offset)}"


def _parse_offset(raw: str) -> tzinfo:
    if raw == "Z":
        return UTC
    if raw == "-00:00":
        # RFC 3339 section 4.3: the local offset is unknown.
        raise ValueError("offset -00:00 leaves the local offset unknown")
    sign = -1 if raw[0] == "-" else 1
    hours, minutes = int(raw[1:3]), int(raw[4:6])
    if hours > 23 or minutes > 59:
        raise ValueError(f"UTC offset out of range: {raw}")
    delta = sign * timedelta(hours=hours, minutes=minutes)
    return UTC if delta == timedelta(0) else timezone(delta)


def _format_offset(offset: timedelta) -> str:
    if offset == timedelta(0):
        return "Z"
    total = int(offset.total_seconds())
    sign = "-" if total < 0 else "+"
    hours, minutes = divmod(abs(total) // 60, 60)
    return f"{sign}{hours:02d}:{minutes:02d}"


# --- local zone detection ---


def local_timezone() -> tzinfo:
    """The local zone, from ``TZ`` when it names a known zone.

    The result is cached for the process lifetime unless
    ``CACO3_CACHE_TIMEZONE`` is set to a falsy value.
    """
    if _use_cached_timezone():
        return _cached_local_timezone()
    return _detect_local_timezone()


def local_utc_offset() -> timedelta:
    offset = datetime.now(local_timezone()).utcoffset()
    assert offset is not None
    return offset


@functools.cache
def _use_cached_timezone() -> bool:
    value = os.environ.get(CACHE_TIMEZONE_ENV_VAR)
    return value is None or is_truthy(value)


@functools.cache
def _cached_local_timezone() -> tzinfo:
    return _detect_local_timezone()


def _detect_local_timezone() -> tzinfo:
    tz_name = os.environ.get("TZ", "").lstrip(":")
    if tz_name:
        try:
            return ZoneInfo(tz_name)
        except (ZoneInfoNotFoundError, ValueError):
            pass  # fall back to the system zone
    local = datetime.now().astimezone().tzinfo
    return local if local is not None else UTC
