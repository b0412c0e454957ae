"""Hatch build hook: record commit, dirty state and build time in the wheel.

The record lands at ``caco3/_build_info.json`` and is read back by
:mod:`caco3.buildinfo`, so an installed wheel reports the commit it was
built from without asking git at import time. Editable installs get no
record; they run from the checkout and query git directly.
"""

from __future__ import annotations

import json
import os
import re
import subprocess
import tempfile
import time
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from hatchling.builders.hooks.plugin.interface import BuildHookInterface

RECORD_TARGET = "caco3/_build_info.json"

_COMMIT_ID_PATTERN = re.compile(r"^[0-9a-fA-F]{7,64}$")
_TRUTHY = frozenset({"1", "true", "yes", "on", "y"})


def build_record(root: Path, environ: Mapping[str, str]) -> dict[str, object]:
    """Values to store for a build of the project checked out at *root*.

    ``CACO3_BUILD_COMMIT`` / ``CACO3_BUILD_DIRTY`` win over git. Git is
    only used when *root* is the top of its own work tree; an sdist
    unpacked inside another repository records no commit.
    """
    record: dict[str, object] = {}
    commit = environ.get("CACO3_BUILD_COMMIT", "")
    if commit:
        if _COMMIT_ID_PATTERN.match(commit):
            record["commit"] = commit.lower()
            record["dirty"] = environ.get("CACO3_BUILD_DIRTY", "").strip().lower() in _TRUTHY
    else:
        record.update(_git_state(root))

    epoch = environ.get("SOURCE_DATE_EPOCH", "")
    record["built_at"] = int(epoch) if epoch.isdigit() else int(time.time())
    profile = environ.get("CACO3_BUILD_PROFILE")
    if profile:
        record["profile"] = profile
    return record


def _git_state(root: Path) -> dict[str, object]:
    try:
        toplevel = _git(root, "rev-parse", "--show-toplevel").strip()
        if not toplevel or Path(toplevel).resolve() != root.resolve():
            return {}
        commit = _git(root, "rev-parse", "HEAD").strip()
        dirty = bool(_git(root, "status", "--porcelain").strip())
    except (OSError, subprocess.SubprocessError):
        return {}
    if not _COMMIT_ID_PATTERN.match(commit):
        return {}
    return {"commit": commit.lower(), "dirty": dirty}


def _git(root: Path, *args: str) -> str:
    return subprocess.run(
        ["git", *args],
        cwd=root,
        capture_output=True,
        text=True,
        check=True,
        timeout=5,
    ).stdout


class BuildInfoHook(BuildHookInterface):
    PLUGIN_NAME = "custom"

    def initialize(self, version: str, build_data: dict[str, Any]) -> None:
        self._record_path: str | None = None
        if version == "editable":
            return
        record = build_record(Path(self.root), os.environ)
        fd, path = tempfile.mkstemp(prefix="caco3-build-info-", suffix=".json")
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(record, handle, sort_keys=True)
        self._record_path = path
        build_data["force_include"][path] = RECORD_TARGET

    def finalize(self, version: str, build_data: dict[str, Any], artifact_path: str) -> None:
        if self._record_path is not None:
            os.unlink(self._record_path)
