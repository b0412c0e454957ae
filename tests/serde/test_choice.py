"""Tests for the truthy/falsy boolean adaptor."""

from __future__ import annotations

import pytest

from caco3.serde.base import InvalidValueError, TypeMismatchError
from caco3.serde.choice import CHOICE


class TestChoiceAdaptor:
    @pytest.mark.parametrize(
        ("shape", "expected"),
        [(True, True), (False, False), (1, True), (0, False), ("yes", True), ("Off", False)],
    )
    def test_decode(self, shape: object, expected: bool) -> None:
        assert CHOICE.decode(shape) is expected

    def test_encode_is_plain_bool(self) -> None:
        assert CHOICE.encode(True) is True
        assert CHOICE.encode(False, human_readable=False) is False

    @pytest.mark.parametrize("shape", [2, -1, "perhaps"])
    def test_invalid(self, shape: object) -> None:
        with pytest.raises(InvalidValueError):
            CHOICE.decode(shape)

    @pytest.mark.parametrize("shape", [None, 1.0, ["yes"]])
    def test_type_mismatch(self, shape: object) -> None:
        with pytest.raises(TypeMismatchError):
            CHOICE.decode(shape)
