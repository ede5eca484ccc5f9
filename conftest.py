"""Pytest configuration — ensures the project root is importable."""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent))


@pytest.fixture(autouse=True)
def _clean_statsbook_env(monkeypatch: pytest.MonkeyPatch):
    """Keep a developer's .env / shell settings out of the test runs."""
    for variable in (
        "STATSBOOK_TEMPLATE_DIR",
        "STATSBOOK_CURRENT_VERSION",
        "STATSBOOK_DEFAULT_VERSION",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(variable, raising=False)
    yield
