"""Pytest fixtures and config."""

import pytest


@pytest.fixture(autouse=True)
def env_cleanup(monkeypatch):
    """Avoid picking up a real endpoint or password from the environment."""
    for name in ("LANESTREAM_API_URL", "LANESTREAM_API_PASSWORD", "LANESTREAM_ENV"):
        monkeypatch.delenv(name, raising=False)
    yield
