"""Shared pytest fixtures for caco3 tests."""

from __future__ import annotations

from collections.abc import Generator

import pytest

from caco3.domain import timestamps


@pytest.fixture(autouse=True)
def _reset_zone_cache() -> Generator[None]:
    """Local zone detection is cached per process; start each test clean."""
    timestamps._use_cached_timezone.cache_clear()
    timestamps._cached_local_timezone.cache_clear()
    yield
    timestamps._use_cached_timezone.cache_clear()
    timestamps._cached_local_timezone.cache_clear()
