"""Tests for the filesystem path adaptors."""

from __future__ import annotations

from pathlib import Path, PurePosixPath

import pytest
from pydantic import BaseModel

from caco3.serde.base import InvalidValueError, TypeMismatchError
from caco3.serde.paths import PATH, SOURCE_RELATIVE_PATH, ConfigPath, SourceRelativePath


class Layout(BaseModel):
    root: ConfigPath
    assets: SourceRelativePath | None = None


class TestPathAdaptor:
    @pytest.mark.parametrize(
        "shape",
        ["var/data", Path("var/data"), PurePosixPath("var/data"), {"path": "var/data"}],
    )
    def test_decode(self, shape: object) -> None:
        assert PATH.decode(shape) == Path("var/data")

    def test_encode_posix_string(self) -> None:
        assert PATH.encode(Path("var") / "data") == "var/data"
        assert SOURCE_RELATIVE_PATH.encode(Path("/srv/app"), human_readable=False) == "/srv/app"

    @pytest.mark.parametrize("shape", ["", {"path": ""}])
    def test_empty_rejected(self, shape: object) -> None:
        with pytest.raises(InvalidValueError):
            PATH.decode(shape)

    @pytest.mark.parametrize(
        "shape", [None, True, 3, ["a"], {"path": "a", "extra": 1}, {"file": "a"}, b"var"]
    )
    def test_type_mismatch(self, shape: object) -> None:
        with pytest.raises(TypeMismatchError):
            PATH.decode(shape)

    def test_source_relative_marker(self) -> None:
        assert SOURCE_RELATIVE_PATH.relative_to_source is True
        assert PATH.relative_to_source is False
        assert SOURCE_RELATIVE_PATH.target is Path


class TestPathFields:
    def test_validate_and_dump(self) -> None:
        layout = Layout.model_validate({"root": "/srv", "assets": {"path": "static"}})
        assert layout.root == Path("/srv")
        assert layout.assets == Path("static")
        assert layout.model_dump(mode="json") == {"root": "/srv", "assets": "static"}

    def test_python_dump_keeps_path(self) -> None:
        assert Layout(root=Path("/srv")).model_dump()["root"] == Path("/srv")

    def test_json_schema(self) -> None:
        schema = Layout.model_json_schema()
        assert schema["properties"]["root"]["anyOf"][0] == {"type": "string", "minLength": 1}
