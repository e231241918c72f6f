"""Pytest configuration for test isolation.

Settings are read from ``SPREADSHEET_FINANCE_*`` environment variables (and
the CLI additionally loads a ``.env`` from the working directory). A developer
shell or a stray ``.env`` must not change parse results, so every test starts
from a clean environment and an empty working directory.
"""

from __future__ import annotations

import os
from pathlib import Path

import pytest


@pytest.fixture(autouse=True)
def _isolate_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Drop package env vars and run each test from its own temp directory."""

    for name in list(os.environ):
        if name.startswith("SPREADSHEET_FINANCE_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
