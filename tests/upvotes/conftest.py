"""Pytest configuration for upvotes tests."""

import pytest

from ghupvotes.upvotes.rate_limit import RateLimitGovernor

from .helpers import FakeClient


@pytest.fixture
def governor() -> RateLimitGovernor:
    return RateLimitGovernor(reserve=10)


@pytest.fixture
def fake_client() -> FakeClient:
    """In-memory client with no pages registered."""
    return FakeClient()


@pytest.fixture(autouse=True)
def no_api_logging(monkeypatch):
    """Keep GHUPVOTES_LOG_API from a developer's shell out of the tests."""
    monkeypatch.delenv("GHUPVOTES_LOG_API", raising=False)
