"""Byte quantities with a fixed, enumerated set of unit suffixes.

Text form: ``<integer>[.<fraction>][ ]<unit>``, e.g. ``"10 MiB"`` or
``"1.5GB"``. Fractions are quantized to whole bytes at parse time, so the
raw byte count is the only thing equality and ordering look at.

INVARIANT: ``parse_byte_quantity(format_byte_quantity(q)) == q``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from decimal import ROUND_HALF_EVEN, Context, Decimal, localcontext
from enum import StrEnum
from fractions import Fraction

from caco3.domain.errors import InvalidFormatError, UnknownUnitError


class ByteUnit(StrEnum):
    """Display units for byte quantities."""

    B = "B"
    KB = "KB"
    KIB = "KiB"
    MB = "MB"
    MIB = "MiB"
    GB = "GB"
    GIB = "GiB"
    TB = "TB"
    TIB = "TiB"

    @property
    def factor(self) -> int:
        """Number of bytes in one of this unit."""
        return _FACTORS[self]

    @property
    def is_binary(self) -> bool:
        return self in BINARY_UNITS


_FACTORS: dict[ByteUnit, int] = {
    ByteUnit.B: 1,
    ByteUnit.KB: 1000,
    ByteUnit.KIB: 1 << 10,
    ByteUnit.MB: 1000**2,
    ByteUnit.MIB: 1 << 20,
    ByteUnit.GB: 1000**3,
    ByteUnit.GIB: 1 << 30,
    ByteUnit.TB: 1000**4,
    ByteUnit.TIB: 1 << 40,
}

BINARY_UNITS: tuple[ByteUnit, ...] = (
    ByteUnit.B,
    ByteUnit.KIB,
    ByteUnit.MIB,
    ByteUnit.GIB,
    ByteUnit.TIB,
)
DECIMAL_UNITS: tuple[ByteUnit, ...] = (
    ByteUnit.B,
    ByteUnit.KB,
    ByteUnit.MB,
    ByteUnit.GB,
    ByteUnit.TB,
)

_BYTE_QUANTITY_PATTERN = re.compile(
    r"^(?P<integer>\d+)(?:\.(?P<fraction>\d+))? ?(?P<unit>[A-Za-z]+)$", re.ASCII
)

# n / 2**k has at most k fractional digits; TiB is 2**40.
_MAX_FRACTION_DIGITS = 40

# Decimal places at which TiB display precision drops below one byte.
_MAX_FORMAT_PLACES = 13


@dataclass(frozen=True, order=True)
class ByteQuantity:
    """A whole number of bytes plus the unit it prefers to be shown in.

    The unit never takes part in comparisons: ``1 KiB == 1024 B``.
    """

    bytes: int
    unit: ByteUnit = field(default=ByteUnit.B, compare=False)

    def __post_init__(self) -> None:
        if isinstance(self.bytes, bool) or not isinstance(self.bytes, int):
            raise TypeError(f"byte count must be int, got {type(self.bytes).__name__}")
        if self.bytes < 0:
            raise ValueError(f"byte count must be non-negative, got {self.bytes}")

    @classmethod
    def from_bytes(cls, count: int) -> ByteQuantity:
        return cls(count, ByteUnit.B)

    @classmethod
    def of(cls, value: int, unit: ByteUnit) -> ByteQuantity:
        """Build ``value`` whole *unit*s, e.g. ``ByteQuantity.of(10, ByteUnit.MIB)``."""
        return cls(value * unit.factor, unit)

    def in_unit(self, unit: ByteUnit) -> Decimal:
        """Exact value of this quantity expressed in *unit*."""
        with localcontext(_exact_context(self.bytes)):
            return Decimal(self.bytes) / Decimal(unit.factor)

    def with_unit(self, unit: ByteUnit) -> ByteQuantity:
        return replace(self, unit=unit)

    def with_appropriate_unit(self, *, binary: bool = True) -> ByteQuantity:
        """Pick the largest unit in which the value is at least one.

        ``binary`` selects between the KiB/MiB/... and KB/MB/... families.
        """
        units = BINARY_UNITS if binary else DECIMAL_UNITS
        chosen = ByteUnit.B
        for unit in units:
            if self.bytes >= unit.factor:
                chosen = unit
        return self.with_unit(chosen)

    def __str__(self) -> str:
        return format_byte_quantity(self)


def parse_byte_quantity(text: str) -> ByteQuantity:
    """Parse ``"<integer>[.<fraction>] <unit>"`` into a :class:`ByteQuantity`.

    Raises:
        UnknownUnitError: The suffix is not one of :class:`ByteUnit`.
        InvalidFormatError: Anything else that does not fit the grammar.
    """
    match = _BYTE_QUANTITY_PATTERN.match(text.strip())
    if match is None:
        raise InvalidFormatError("expected '<number> <unit>'", text)

    raw_unit = match.group("unit")
    try:
        unit = ByteUnit(raw_unit)
    except ValueError:
        raise UnknownUnitError(f"unknown byte unit {raw_unit!r}", text) from None

    number = match.group("integer")
    if match.group("fraction") is not None:
        number = f"{number}.{match.group('fraction')}"
    try:
        exact = Fraction(number)
    except ValueError:
        # More digits than int() converts (sys.get_int_max_str_digits).
        raise InvalidFormatError("number has too many digits", text) from None
    # Fraction keeps every digit; round() on it is half-to-even.
    return ByteQuantity(round(exact * unit.factor), unit)


def format_byte_quantity(quantity: ByteQuantity) -> str:
    """Render *quantity* in its display unit.

    Whole values print without a fraction. Otherwise the shortest
    fraction that re-parses to the same byte count is used.
    """
    unit = quantity.unit
    value = quantity.in_unit(unit)
    if value == value.to_integral_value():
        return f"{int(value)} {unit}"

    with localcontext(_exact_context(quantity.bytes)):
        for places in range(1, _MAX_FORMAT_PLACES + 1):
            rounded = value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_EVEN)
            if round(Fraction(rounded) * unit.factor) == quantity.bytes:
                return f"{rounded.normalize():f} {unit}"
    return f"{quantity.bytes} {ByteUnit.B}"


def _exact_context(count: int) -> Context:
    """A context wide enough that ``count / unit.factor`` is never rounded."""
    # bit_length * log10(2) bounds the integer digit count from above.
    digits = count.bit_length() * 30103 // 100000 + 1
    return Context(prec=digits + _MAX_FRACTION_DIGITS + 1)
