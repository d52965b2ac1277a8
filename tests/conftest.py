"""Pytest configuration and shared fixtures for ftpclient tests."""

import pytest
from pathlib import Path


@pytest.fixture
def sample_file(tmp_path: Path) -> Path:
    """Create a small local file for upload tests."""
    path = tmp_path / "report.txt"
    path.write_bytes(b"line one\nline two\n")
    return path


@pytest.fixture
def temp_settings_file(tmp_path: Path) -> Path:
    """Provide a temporary settings file path for testing."""
    return tmp_path / "settings.json"
