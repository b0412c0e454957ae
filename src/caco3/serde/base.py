"""Adaptor contract and the DecodeError family.

INVARIANT: ``encode`` never fails for a constructed value; ``decode``
either returns a value or raises :class:`DecodeError`. Adaptors hold no
mutable state, so a failed decode leaves nothing behind.
"""

from __future__ import annotations

from datetime import date, datetime, time
from typing import Any, Protocol, TypeVar

from caco3.domain.errors import ParseError

T = TypeVar("T")


class DecodeError(ValueError):
    """A primitive shape could not be decoded into a domain value."""


class TypeMismatchError(DecodeError):
    """The primitive shape is not one the adaptor accepts.

    Attributes:
        expected: Description of accepted shapes, e.g. ``"string or integer"``.
        actual: Shape name of the rejected input.
    """

    def __init__(self, expected: str, actual: Any) -> None:
        self.expected = expected
        self.actual = shape_name(actual)
        super().__init__(f"expected {expected}, got {self.actual}")


class InvalidValueError(DecodeError):
    """The shape was right but the domain parser rejected its content."""

    def __init__(self, cause: ParseError) -> None:
        self.cause = cause
        super().__init__(str(cause))


class Adaptor(Protocol[T]):
    """Bidirectional converter for one domain value type."""

    name: str
    target: type[Any]
    json_schema: dict[str, Any]

    def encode(self, value: T, *, human_readable: bool = True) -> Any: ...

    def decode(self, shape: Any) -> T: ...


def shape_name(shape: Any) -> str:
    """Name the primitive shape of *shape* for error messages."""
    match shape:
        case None:
            return "null"
        case bool():
            return "boolean"
        case int():
            return "integer"
        case float():
            return "float"
        case str():
            return "string"
        case dict():
            return "map"
        case list() | tuple():
            return "array"
        case datetime():
            return "datetime"
        case date():
            return "date"
        case time():
            return "time"
        case _:
            return type(shape).__name__
