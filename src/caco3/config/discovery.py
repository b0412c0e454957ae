"""Config file discovery and the conventional layer stack.

Walk-up finder locates caco3.toml, similar to how git finds .git/.
Supports the CACO3_CONFIG env var override.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from caco3.config.layers import ConfigLayer

CONFIG_FILENAME = "caco3.toml"
CONFIG_ENV_VAR = "CACO3_CONFIG"


def find_config(start: Path | None = None, filename: str = CONFIG_FILENAME) -> Path | None:
    """Walk up from *start* (default: cwd) looking for *filename*.

    Returns the path to the config file, or None if not found.
    Checks CACO3_CONFIG env var first.
    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        p = Path(env_path)
        if p.is_file():
            return p
        return None

    current = (start or Path.cwd()).resolve()
    while True:
        candidate = current / filename
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break
        current = parent
    return None


def discover_layers(
    *,
    defaults: Mapping[str, Any] | None = None,
    env_prefix: str | None = None,
    overrides: Mapping[str, Any] | None = None,
    start: Path | None = None,
    filename: str = CONFIG_FILENAME,
) -> list[ConfigLayer]:
    """Build the usual layer stack, lowest precedence first.

    Priority chain (highest to lowest):
      1. *overrides*   — explicit values from the caller
      2. Env vars      — ``<env_prefix>*`` when a prefix is given
      3. TOML file     — discovered via walk-up
      4. *defaults*
    """
    layers: list[ConfigLayer] = []
    if defaults is not None:
        layers.append(ConfigLayer.from_mapping("defaults", defaults))
    path = find_config(start, filename)
    if path is not None:
        layers.append(ConfigLayer.from_file(path))
    if env_prefix:
        layers.append(ConfigLayer.from_env(env_prefix))
    if overrides is not None:
        layers.append(ConfigLayer.from_mapping("overrides", overrides))
    return layers
