"""pydantic integration for adaptors.

``Annotated[ByteQuantity, Adapted(BYTE_QUANTITY)]`` turns any adaptor into
a pydantic field type. Validation runs ``adaptor.decode``; serialization
runs ``adaptor.encode``:

- ``model_dump(mode="json")`` writes the human-readable shape.
- ``model_dump()`` keeps the domain value untouched.
- ``context={"human_readable": False}`` selects the compact shape in
  either mode (``True`` forces the human-readable one).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import GetCoreSchemaHandler, GetJsonSchemaHandler
from pydantic.json_schema import JsonSchemaValue
from pydantic_core import core_schema

from caco3.serde.base import Adaptor

HUMAN_READABLE = "human_readable"


@dataclass(frozen=True)
class Adapted:
    """Annotation marker binding a field to an adaptor."""

    adaptor: Adaptor[Any]

    def __get_pydantic_core_schema__(
        self, source_type: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        return core_schema.no_info_plain_validator_function(
            self.adaptor.decode,
            serialization=core_schema.plain_serializer_function_ser_schema(
                self._serialize, info_arg=True
            ),
        )

    def __get_pydantic_json_schema__(
        self, schema: core_schema.CoreSchema, handler: GetJsonSchemaHandler
    ) -> JsonSchemaValue:
        return dict(self.adaptor.json_schema)

    def _serialize(self, value: Any, info: core_schema.SerializationInfo) -> Any:
        context = info.context if isinstance(info.context, dict) else {}
        human_readable = context.get(HUMAN_READABLE)
        if human_readable is None:
            if not info.mode_is_json():
                return value
            human_readable = True
        return self.adaptor.encode(value, human_readable=bool(human_readable))
