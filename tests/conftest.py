"""Shared fixtures for movie-projector tests."""

from pathlib import Path

import pytest


def pytest_configure(config):
    """Register the asyncio marker."""
    config.addinivalue_line("markers", "asyncio: mark test as async")


@pytest.fixture
def player_dir(tmp_path: Path) -> Path:
    """A player directory holding one 10-byte dummy executable."""
    d = tmp_path / "player"
    d.mkdir()
    (d / "projector").write_bytes(b"0123456789")
    return d
