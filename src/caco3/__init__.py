"""caco3 — typed configuration layers and serialization adaptors.

Public API::

    parse_byte_quantity / format_byte_quantity
    parse_timestamp / format_timestamp
    load_config(layers, schema)
    build_info()
"""

from __future__ import annotations

from caco3.buildinfo import BuildInfo, build_info
from caco3.config.errors import (
    ConfigError,
    ConfigLoadError,
    FieldError,
    FieldErrorKind,
    LayerParseError,
)
from caco3.config.layers import ConfigLayer
from caco3.config.loader import load_config, merge_layers
from caco3.config.meta import MergedConfig
from caco3.domain.bytes import ByteQuantity, ByteUnit, format_byte_quantity, parse_byte_quantity
from caco3.domain.errors import (
    IncompleteTimestampError,
    InvalidFormatError,
    ParseError,
    UnknownUnitError,
)
from caco3.domain.timestamps import ZonedTimestamp, format_timestamp, parse_timestamp
from caco3.serde.base import DecodeError, InvalidValueError, TypeMismatchError

__all__ = [
    "BuildInfo",
    "ByteQuantity",
    "ByteUnit",
    "ConfigError",
    "ConfigLayer",
    "ConfigLoadError",
    "DecodeError",
    "FieldError",
    "FieldErrorKind",
    "IncompleteTimestampError",
    "InvalidFormatError",
    "InvalidValueError",
    "LayerParseError",
    "MergedConfig",
    "ParseError",
    "TypeMismatchError",
    "UnknownUnitError",
    "ZonedTimestamp",
    "build_info",
    "format_byte_quantity",
    "format_timestamp",
    "load_config",
    "merge_layers",
    "parse_byte_quantity",
    "parse_timestamp",
]
