"""Human-friendly durations.

:class:`HumanDuration` counts whole seconds and renders as ``1d 5h 7m 3s``.
Leading zero components are omitted; seconds are always present when no
larger component is. :func:`format_elapsed` is the single-unit variant
used for timing output (``7 s``, ``15 ms``, ``20 µs``, ``25 ns``).
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import timedelta
from itertools import islice

from caco3.domain.errors import InvalidFormatError, UnknownUnitError

MINUTE_SECONDS = 60
HOUR_SECONDS = 60 * MINUTE_SECONDS
DAY_SECONDS = 24 * HOUR_SECONDS

ALL_COMPONENTS = 4

# Largest first; the parser requires components in this order.
_UNITS: tuple[tuple[str, int], ...] = (
    ("d", DAY_SECONDS),
    ("h", HOUR_SECONDS),
    ("m", MINUTE_SECONDS),
    ("s", 1),
)
_UNIT_ORDER = {suffix: index for index, (suffix, _) in enumerate(_UNITS)}
_UNIT_SECONDS = dict(_UNITS)

_COMPONENT_PATTERN = re.compile(r"^(?P<value>\d+)(?P<unit>[A-Za-zµ]+)$", re.ASCII)


@dataclass(frozen=True)
class DurationComponent:
    value: int
    unit: str

    def __str__(self) -> str:
        return f"{self.value}{self.unit}"


@dataclass(frozen=True, order=True)
class HumanDuration:
    """A non-negative whole number of seconds."""

    seconds: int

    def __post_init__(self) -> None:
        if self.seconds < 0:
            raise ValueError(f"duration must be non-negative, got {self.seconds}")

    @classmethod
    def from_timedelta(cls, delta: timedelta) -> HumanDuration:
        return cls(int(delta.total_seconds()))

    def to_timedelta(self) -> timedelta:
        return timedelta(seconds=self.seconds)

    @property
    def days(self) -> int | None:
        return self.seconds // DAY_SECONDS if self.seconds >= DAY_SECONDS else None

    @property
    def hours(self) -> int | None:
        return self.seconds // HOUR_SECONDS % 24 if self.seconds >= HOUR_SECONDS else None

    @property
    def minutes(self) -> int | None:
        return self.seconds // MINUTE_SECONDS % 60 if self.seconds >= MINUTE_SECONDS else None

    @property
    def secs(self) -> int:
        return self.seconds % MINUTE_SECONDS

    def components(self) -> Iterator[DurationComponent]:
        """Yield components from the largest present unit down to seconds."""
        for unit, value in (("d", self.days), ("h", self.hours), ("m", self.minutes)):
            if value is not None:
                yield DurationComponent(value, unit)
        yield DurationComponent(self.secs, "s")

    def __str__(self) -> str:
        return format_duration(self)


def format_duration(duration: HumanDuration, components: int = ALL_COMPONENTS) -> str:
    """Render the *components* most significant parts, e.g. ``"1h 0m"``."""
    parts = [str(c) for c in islice(duration.components(), components)]
    return " ".join(parts)


def parse_duration(text: str) -> HumanDuration:
    """Parse ``"1d 5h 7m 3s"`` style text.

    Components are separated by single spaces and must appear largest
    unit first, each unit at most once.

    Raises:
        UnknownUnitError: A suffix other than d/h/m/s.
        InvalidFormatError: Empty text, bad spacing, repeated or
            out-of-order units.
    """
    stripped = text.strip()
    if not stripped:
        raise InvalidFormatError("empty duration", text)

    total = 0
    last_index = -1
    for token in stripped.split(" "):
        match = _COMPONENT_PATTERN.match(token)
        if match is None:
            raise InvalidFormatError("expected components like '1h 30m'", text)
        unit = match.group("unit")
        if unit not in _UNIT_ORDER:
            raise UnknownUnitError(f"unknown duration unit {unit!r}", text)
        index = _UNIT_ORDER[unit]
        if index <= last_index:
            raise InvalidFormatError("duration units must be unique and largest first", text)
        last_index = index
        total += int(match.group("value")) * _UNIT_SECONDS[unit]
    return HumanDuration(total)


def format_elapsed(elapsed: timedelta | float) -> str:
    """Render an elapsed time in the largest whole unit that is non-zero.

    Accepts a timedelta or float seconds. Zero renders as ``"0 ns"``.
    """
    if isinstance(elapsed, timedelta):
        nanos = (
            (elapsed.days * 86_400 + elapsed.seconds) * 1_000_000 + elapsed.microseconds
        ) * 1000
    else:
        nanos = round(elapsed * 1_000_000_000)

    if nanos >= 1_000_000_000:
        return f"{nanos // 1_000_000_000} s"
    if nanos >= 1_000_000:
        return f"{nanos // 1_000_000} ms"
    if nanos >= 1000:
        return f"{nanos // 1000} µs"
    return f"{nanos} ns"
