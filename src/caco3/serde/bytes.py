"""Byte quantity adaptors (feature ``byte-unit``).

Human-readable shape: ``"10 MiB"``. Compact shape: raw byte count as int.
Both shapes are accepted on decode.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated, Any, ClassVar

from caco3.domain.bytes import ByteQuantity, format_byte_quantity, parse_byte_quantity
from caco3.domain.errors import InvalidFormatError, ParseError
from caco3.serde.base import InvalidValueError, TypeMismatchError
from caco3.serde.fields import Adapted

FEATURE = "byte-unit"


@dataclass(frozen=True)
class ByteQuantityAdaptor:
    """Encode/decode :class:`ByteQuantity`.

    With ``appropriate_unit`` the value is re-expressed in the largest
    binary unit that keeps it at least one before formatting, so
    ``1572864`` bytes encodes as ``"1.5 MiB"``.
    """

    name: str = "byte-unit"
    appropriate_unit: bool = False

    target: ClassVar[type[ByteQuantity]] = ByteQuantity
    json_schema: ClassVar[dict[str, Any]] = {
        "anyOf": [
            {"type": "string", "pattern": r"^\d+(\.\d+)? ?[A-Za-z]+$"},
            {"type": "integer", "minimum": 0},
        ]
    }

    def encode(self, value: ByteQuantity, *, human_readable: bool = True) -> str | int:
        if not human_readable:
            return value.bytes
        if self.appropriate_unit:
            value = value.with_appropriate_unit(binary=True)
        return format_byte_quantity(value)

    def decode(self, shape: Any) -> ByteQuantity:
        match shape:
            case ByteQuantity():
                return shape
            case bool():
                raise TypeMismatchError("string or integer", shape)
            case int():
                if shape < 0:
                    raise InvalidValueError(
                        InvalidFormatError("byte count must be non-negative", str(shape))
                    )
                return ByteQuantity.from_bytes(shape)
            case str():
                try:
                    return parse_byte_quantity(shape)
                except ParseError as exc:
                    raise InvalidValueError(exc) from exc
            case _:
                raise TypeMismatchError("string or integer", shape)


BYTE_QUANTITY = ByteQuantityAdaptor()
APPROPRIATE_BINARY_UNIT = ByteQuantityAdaptor(
    name="byte-unit/appropriate-binary", appropriate_unit=True
)

ADAPTORS = (BYTE_QUANTITY, APPROPRIATE_BINARY_UNIT)

ByteSize = Annotated[ByteQuantity, Adapted(BYTE_QUANTITY)]
AppropriateByteSize = Annotated[ByteQuantity, Adapted(APPROPRIATE_BINARY_UNIT)]
