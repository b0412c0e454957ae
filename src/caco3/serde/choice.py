"""Truthy/falsy boolean adaptor (feature ``choice``).

Accepts booleans, the integers 0 and 1, and the choice strings from
:mod:`caco3.domain.choices`. Encodes as a plain boolean.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated, Any, ClassVar

from caco3.domain.choices import FALSY_VALUES, TRUTHY_VALUES, parse_choice
from caco3.domain.errors import InvalidFormatError, ParseError
from caco3.serde.base import InvalidValueError, TypeMismatchError
from caco3.serde.fields import Adapted

FEATURE = "choice"


@dataclass(frozen=True)
class ChoiceAdaptor:
    name: str = "choice"

    target: ClassVar[type[bool]] = bool
    json_schema: ClassVar[dict[str, Any]] = {
        "anyOf": [
            {"type": "boolean"},
            {"enum": [0, 1]},
            {"enum": [*TRUTHY_VALUES, *FALSY_VALUES]},
        ]
    }

    def encode(self, value: bool, *, human_readable: bool = True) -> bool:
        return value

    def decode(self, shape: Any) -> bool:
        match shape:
            case bool():
                return shape
            case int():
                if shape not in (0, 1):
                    raise InvalidValueError(InvalidFormatError("expected 0 or 1", str(shape)))
                return shape == 1
            case str():
                try:
                    return parse_choice(shape)
                except ParseError as exc:
                    raise InvalidValueError(exc) from exc
            case _:
                raise TypeMismatchError("boolean, 0/1 or choice string", shape)


CHOICE = ChoiceAdaptor()

ADAPTORS = (CHOICE,)

ChoiceBool = Annotated[bool, Adapted(CHOICE)]
