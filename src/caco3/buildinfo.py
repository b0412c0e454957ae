"""Build and provenance metadata.

:func:`build_info` captures version, commit and build time once per
process and returns the same frozen :class:`BuildInfo` on every call.

Sources, in order of preference:
  - version:   ``CACO3_BUILD_VERSION``, then installed package metadata
  - commit:    ``CACO3_BUILD_COMMIT`` (+ ``CACO3_BUILD_DIRTY``), then the
               values recorded in the wheel, then ``git rev-parse HEAD`` /
               ``git status --porcelain``
  - timestamp: ``SOURCE_DATE_EPOCH``, then the recorded build time, then
               the capture time
  - profile:   ``CACO3_BUILD_PROFILE``, then the recorded profile

Wheels carry ``caco3/_build_info.json``, written by the build hook in
``hatch_build.py``. Git is only asked when this module runs from the
project's own source checkout (``<toplevel>/src/caco3``); an install
that merely sits inside some other repository, e.g. a ``.venv`` in an
application repo, never reports that repository's commit.

All git subprocess calls are wrapped in try/except so a missing git
binary or a non-repo directory only yields the ``"unknown"`` sentinel.

INVARIANT: no string field is ever empty or None; unavailable values are
``"unknown"``.
"""

from __future__ import annotations

import functools
import json
import logging
import os
import platform
import re
import subprocess
from collections.abc import Callable, Mapping
from datetime import UTC
from importlib import metadata, resources
from pathlib import Path

from pydantic import BaseModel

from caco3.domain.choices import is_truthy
from caco3.domain.timestamps import Precision, ZonedTimestamp
from caco3.serde.time import TimestampSeconds

DISTRIBUTION = "caco3"
UNKNOWN = "unknown"

VERSION_ENV_VAR = "CACO3_BUILD_VERSION"
COMMIT_ENV_VAR = "CACO3_BUILD_COMMIT"
DIRTY_ENV_VAR = "CACO3_BUILD_DIRTY"
PROFILE_ENV_VAR = "CACO3_BUILD_PROFILE"
SOURCE_DATE_EPOCH_ENV_VAR = "SOURCE_DATE_EPOCH"

# Written into wheels by hatch_build.py.
RECORD_RESOURCE = "_build_info.json"

# 7 hex chars is git's shortest abbreviation; 64 covers SHA-256 ids.
_COMMIT_ID_PATTERN = re.compile(r"^[0-9a-fA-F]{7,64}$")

GitRunner = Callable[..., str]

logger = logging.getLogger(__name__)


class BuildInfo(BaseModel):
    """Immutable build metadata."""

    model_config = {"frozen": True}

    version: str = UNKNOWN
    commit: str = UNKNOWN
    dirty: bool = False
    built_at: TimestampSeconds
    profile: str = UNKNOWN
    python_version: str = UNKNOWN

    def short_commit(self, length: int = 7) -> str:
        return self.commit if self.commit == UNKNOWN else self.commit[:length]

    def commit_and_dirty(self) -> str:
        """Commit id with a trailing ``*`` when the tree was dirty."""
        if self.commit == UNKNOWN:
            return UNKNOWN
        return f"{self.commit}*" if self.dirty else self.commit

    def summary(self) -> str:
        """One-line description for diagnostics."""
        commit = self.short_commit()
        if self.dirty and commit != UNKNOWN:
            commit += "*"
        return f"{DISTRIBUTION} {self.version} ({commit}, built {self.built_at}, {self.profile})"


def is_valid_commit_id(value: str) -> bool:
    return _COMMIT_ID_PATTERN.match(value) is not None


def capture_build_info(
    environ: Mapping[str, str] | None = None,
    *,
    run_git: GitRunner | None = None,
    package_dir: Path | None = None,
    recorded: Mapping[str, object] | None = None,
) -> BuildInfo:
    """Collect build metadata from *environ* (default: ``os.environ``).

    *run_git* executes ``git <args>`` and returns stdout; it is injectable
    for tests. *package_dir* is where this package is imported from and
    *recorded* the values the build hook stored in the wheel (default:
    read from the package resource). Nothing here raises: each
    unavailable value becomes ``"unknown"``.
    """
    env = os.environ if environ is None else environ
    package_dir = package_dir or Path(__file__).resolve().parent
    runner = run_git or functools.partial(_run_git, cwd=package_dir)
    if recorded is None:
        recorded = load_recorded_build_values()
    commit, dirty = _capture_commit(env, recorded, runner, package_dir)
    return BuildInfo(
        version=env.get(VERSION_ENV_VAR) or _installed_version(),
        commit=commit,
        dirty=dirty,
        built_at=_capture_timestamp(env, recorded),
        profile=env.get(PROFILE_ENV_VAR) or _recorded_str(recorded, "profile") or UNKNOWN,
        python_version=platform.python_version() or UNKNOWN,
    )


@functools.cache
def build_info() -> BuildInfo:
    """Process-wide build metadata, captured on first call."""
    info = capture_build_info()
    logger.debug("Captured build info: %s", info.summary())
    return info


def load_recorded_build_values() -> dict[str, object]:
    """Values the wheel build hook wrote to ``caco3/_build_info.json``.

    Source checkouts and editable installs have no such file; the result
    is then empty.
    """
    resource = resources.files(DISTRIBUTION).joinpath(RECORD_RESOURCE)
    if not resource.is_file():
        return {}
    try:
        data = json.loads(resource.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.debug("Unreadable %s: %s", RECORD_RESOURCE, exc)
        return {}
    return data if isinstance(data, dict) else {}


def _installed_version() -> str:
    try:
        return metadata.version(DISTRIBUTION)
    except metadata.PackageNotFoundError:
        return UNKNOWN


def _recorded_str(recorded: Mapping[str, object], key: str) -> str | None:
    value = recorded.get(key)
    return value if isinstance(value, str) and value else None


def _capture_commit(
    env: Mapping[str, str],
    recorded: Mapping[str, object],
    run_git: GitRunner,
    package_dir: Path,
) -> tuple[str, bool]:
    from_env = env.get(COMMIT_ENV_VAR)
    if from_env:
        if not is_valid_commit_id(from_env):
            logger.debug("Ignoring malformed %s=%r", COMMIT_ENV_VAR, from_env)
            return UNKNOWN, False
        return from_env.lower(), is_truthy(env.get(DIRTY_ENV_VAR, ""))

    from_record = _recorded_str(recorded, "commit")
    if from_record is not None and is_valid_commit_id(from_record):
        return from_record.lower(), recorded.get("dirty") is True

    try:
        if not _is_own_checkout(run_git, package_dir):
            return UNKNOWN, False
        commit = run_git("rev-parse", "HEAD").strip()
        dirty = bool(run_git("status", "--porcelain").strip())
    except (OSError, subprocess.SubprocessError) as exc:
        logger.debug("git commit lookup failed: %s", exc)
        return UNKNOWN, False
    if not is_valid_commit_id(commit):
        return UNKNOWN, False
    return commit.lower(), dirty


def _is_own_checkout(run_git: GitRunner, package_dir: Path) -> bool:
    """True when *package_dir* is ``src/caco3`` of the enclosing work tree."""
    toplevel = run_git("rev-parse", "--show-toplevel").strip()
    if not toplevel:
        return False
    root = Path(toplevel)
    if (root / "src" / DISTRIBUTION).resolve() != package_dir.resolve():
        logger.debug("Not querying git: %s is not this project's checkout", root)
        return False
    return (root / "pyproject.toml").is_file()


def _capture_timestamp(env: Mapping[str, str], recorded: Mapping[str, object]) -> ZonedTimestamp:
    raw = env.get(SOURCE_DATE_EPOCH_ENV_VAR)
    if raw:
        try:
            return ZonedTimestamp.from_unix(int(raw), UTC)
        except (ValueError, OverflowError, OSError):
            logger.debug("Ignoring malformed %s=%r", SOURCE_DATE_EPOCH_ENV_VAR, raw)
    built_at = recorded.get("built_at")
    if isinstance(built_at, int) and not isinstance(built_at, bool):
        try:
            return ZonedTimestamp.from_unix(built_at, UTC)
        except (ValueError, OverflowError, OSError):
            logger.debug("Ignoring malformed recorded built_at=%r", built_at)
    return ZonedTimestamp.now(UTC).floor(Precision.SECONDS)


def _run_git(*args: str, cwd: Path | None = None) -> str:
    """Run a git command and return stdout. Raises on failure."""
    return subprocess.run(
        ["git", *args],
        cwd=cwd,
        capture_output=True,
        text=True,
        check=True,
        timeout=5,
    ).stdout
