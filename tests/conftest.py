"""Shared fixtures: every test starts from default settings."""

import os

import pytest

from novu_init.config import get_settings


@pytest.fixture(autouse=True)
def default_settings(monkeypatch, tmp_path):
    for name in list(os.environ):
        if name.startswith("NOVU_INIT_"):
            monkeypatch.delenv(name)
    monkeypatch.setenv("NOVU_INIT_CONFIG_DIR", str(tmp_path / "config"))
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
