"""Shared pytest configuration for icalsync_lite tests."""

from typing import Any


def pytest_configure(config: Any) -> None:
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Fast unit tests")
    config.addinivalue_line("markers", "integration: End-to-end parse/serialize tests")
