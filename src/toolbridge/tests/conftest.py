"""Shared fixtures: captured logs and stub REST backends."""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from toolbridge.foundation.config import clear_settings_cache
from toolbridge.runtime.observability import ListRenderer, NoOpRenderer, set_renderer


@pytest.fixture(autouse=True)
def quiet_logs() -> Iterator[None]:
    """Keep stderr clean; tests that inspect logs install their own renderer."""
    set_renderer(NoOpRenderer())
    yield
    set_renderer(NoOpRenderer())


@pytest.fixture(autouse=True)
def fresh_settings() -> Iterator[None]:
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def logs() -> ListRenderer:
    renderer = ListRenderer()
    set_renderer(renderer, "DEBUG")
    return renderer
