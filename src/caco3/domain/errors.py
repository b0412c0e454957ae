"""ParseError family raised by the domain value parsers.

INVARIANT: every parser failure carries the offending input verbatim
so callers can point at the exact text that needs fixing.
"""

from __future__ import annotations


class ParseError(ValueError):
    """Malformed domain-value text.

    Attributes:
        reason: Human-readable explanation of the failure.
        offending_input: The text that was rejected.
    """

    def __init__(self, reason: str, offending_input: str) -> None:
        super().__init__(f"{reason}: {offending_input!r}")
        self.reason = reason
        self.offending_input = offending_input


class InvalidFormatError(ParseError):
    """Text does not match the value type's grammar."""


class UnknownUnitError(ParseError):
    """Quantity carries a unit suffix outside its enumerated set."""


class IncompleteTimestampError(ParseError):
    """Timestamp is missing a date, time or UTC offset component."""
