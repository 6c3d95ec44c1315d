"""Pytest configuration and fixtures."""

import pytest

from ghupvotes.config import ENV_VARS


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Run without upvotes environment variables or a config file in the cwd."""
    for var in ENV_VARS.values():
        monkeypatch.delenv(var, raising=False)
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    monkeypatch.delenv("GHUPVOTES_LOG_API", raising=False)
    monkeypatch.chdir(tmp_path)
