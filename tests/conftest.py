"""Shared fixtures for trip matcher tests."""

from datetime import date

import pytest


@pytest.fixture
def june_window() -> tuple[date, date]:
    """The 2024-06-01..2024-06-10 window used across scenarios."""
    return date(2024, 6, 1), date(2024, 6, 10)
