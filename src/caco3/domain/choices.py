"""Truthy/falsy choice strings, compared case-insensitively."""

from __future__ import annotations

from caco3.domain.errors import InvalidFormatError

TRUTHY_VALUES: tuple[str, ...] = ("1", "true", "y", "yes", "on")
FALSY_VALUES: tuple[str, ...] = ("0", "false", "n", "no", "off")


def is_truthy(value: str) -> bool:
    return value.strip().lower() in TRUTHY_VALUES


def is_falsy(value: str) -> bool:
    return value.strip().lower() in FALSY_VALUES


def describe_choices() -> str:
    """Render the accepted choices for error messages."""
    values = ", ".join(f'"{v}"' for v in (*TRUTHY_VALUES, *FALSY_VALUES))
    return f"any of [{values}] (case-insensitive)"


def parse_choice(text: str) -> bool:
    """Map a truthy or falsy string to a bool.

    Raises:
        InvalidFormatError: *text* is neither truthy nor falsy.
    """
    if is_truthy(text):
        return True
    if is_falsy(text):
        return False
    raise InvalidFormatError(f"expected {describe_choices()}", text)
