"""Shared pytest configuration."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Make src importable without installing the package
SRC_DIR = Path(__file__).parent.parent / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def fake_cli_path() -> Path:
    """Path to the fake CLI helper program."""
    return FIXTURES_DIR / "fake_cli.py"
