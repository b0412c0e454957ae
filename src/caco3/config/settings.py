"""pydantic-settings integration for layered configuration.

Priority chain (highest to lowest):
  1. Init kwargs  — values passed to :meth:`LayeredSettings.from_layers`
  2. Layers       — merged left to right, last layer wins
  3. Code defaults — baked into the subclass fields

Environment variables enter only through an explicit
:meth:`ConfigLayer.from_env` layer, so the overlay convention is the one
documented in :mod:`caco3.config.layers` rather than pydantic-settings' own.
"""

from __future__ import annotations

import threading
from collections.abc import Mapping, Sequence
from typing import Any, Self

from pydantic import ValidationError
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from caco3.config.errors import ConfigLoadError
from caco3.config.layers import ConfigLayer
from caco3.config.loader import field_errors_from_validation, merge_with_errors
from caco3.config.schema import resolve_source_relative_paths, source_dirs


class LayeredSettingsSource(PydanticBaseSettingsSource):
    """Feed a merged layer stack into pydantic-settings."""

    def __init__(self, settings_cls: type[BaseSettings], data: Mapping[str, Any]) -> None:
        super().__init__(settings_cls)
        self._data: dict[str, Any] = dict(data)

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        """Return ``(value, field_name, value_is_complex)``."""
        val = self._data.get(field_name)
        return val, field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        """Return the full merged dict for pydantic to validate."""
        return self._data


# Thread-local storage for the merged layer data during construction.
_tls = threading.local()


class LayeredSettings(BaseSettings):
    """Base class for settings resolved from configuration layers.

    Subclasses declare fields (adaptor types included) and are built with
    :meth:`from_layers`. Instances are frozen.
    """

    model_config = {"frozen": True}

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Replace env/dotenv/secret sources with the merged layers."""
        data = getattr(_tls, "data", None) or {}
        return (
            init_settings,
            LayeredSettingsSource(settings_cls, data),
        )

    @classmethod
    def from_layers(cls, layers: Sequence[ConfigLayer], **overrides: Any) -> Self:
        """Construct settings from *layers*, with *overrides* on top.

        Raises:
            ConfigLoadError: A layer failed to parse, or fields failed to
                resolve.
        """
        merged, errors = merge_with_errors(layers, cls)
        settings: Self | None = None
        _tls.data = resolve_source_relative_paths(
            merged.to_dict(), merged, cls, source_dirs(layers)
        )
        try:
            settings = cls(**overrides)
        except ValidationError as exc:
            errors.extend(field_errors_from_validation(exc, merged, overrides))
        finally:
            _tls.data = None

        if errors or settings is None:
            raise ConfigLoadError(errors)
        return settings
