"""Human duration adaptor (feature ``duration``).

Human-readable shape: ``"1d 5h 7m 3s"``. Compact shape: whole seconds.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Annotated, Any, ClassVar

from caco3.domain.durations import HumanDuration, format_duration, parse_duration
from caco3.domain.errors import InvalidFormatError, ParseError
from caco3.serde.base import InvalidValueError, TypeMismatchError
from caco3.serde.fields import Adapted

FEATURE = "duration"


@dataclass(frozen=True)
class DurationAdaptor:
    name: str = "duration"

    target: ClassVar[type[HumanDuration]] = HumanDuration
    json_schema: ClassVar[dict[str, Any]] = {
        "anyOf": [
            {"type": "string", "pattern": r"^\d+[dhms]( \d+[dhms])*$"},
            {"type": "integer", "minimum": 0},
        ]
    }

    def encode(self, value: HumanDuration, *, human_readable: bool = True) -> str | int:
        return format_duration(value) if human_readable else value.seconds

    def decode(self, shape: Any) -> HumanDuration:
        match shape:
            case HumanDuration():
                return shape
            case bool():
                raise TypeMismatchError("string or integer", shape)
            case int():
                if shape < 0:
                    raise InvalidValueError(
                        InvalidFormatError("duration must be non-negative", str(shape))
                    )
                return HumanDuration(shape)
            case timedelta():
                if shape < timedelta(0):
                    raise InvalidValueError(
                        InvalidFormatError("duration must be non-negative", str(shape))
                    )
                return HumanDuration.from_timedelta(shape)
            case str():
                try:
                    return parse_duration(shape)
                except ParseError as exc:
                    raise InvalidValueError(exc) from exc
            case _:
                raise TypeMismatchError("string or integer", shape)


DURATION = DurationAdaptor()

ADAPTORS = (DURATION,)

Duration = Annotated[HumanDuration, Adapted(DURATION)]
