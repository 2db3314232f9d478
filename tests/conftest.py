"""Shared pytest fixtures."""

from __future__ import annotations

import pytest

from landguard.observability import reset_observability_cache
from landguard.settings import reload_settings


@pytest.fixture(autouse=True)
def _fresh_settings():
    """Drop cached settings so env overrides from one test never leak into the next."""

    yield
    reload_settings()
    reset_observability_cache()
