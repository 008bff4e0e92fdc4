"""Pytest fixtures for storage tests."""

import tempfile
import uuid
from pathlib import Path

import pytest


@pytest.fixture
def temp_db_path() -> Path:
    """Create a temporary database path (path only, not the file)."""
    temp_dir = Path(tempfile.gettempdir())
    return temp_dir / f"test_simtrade_{uuid.uuid4().hex}.duckdb"
