"""Pytest configuration for test isolation.

The CLI reads and writes its obligation list at ``EKSTRE_STATE_PATH`` and picks
up ``EKSTRE_*`` knobs from the environment (and from a ``.env`` in the working
directory). Tests that run in the developer's tree must not see those values
or touch a real state file, so every test gets its own state path and a clean
set of knobs.
"""

from __future__ import annotations

import os
from pathlib import Path

import pytest

_KNOBS = (
    "EKSTRE_LOOKAHEAD_DAYS",
    "EKSTRE_RETRIEVAL_WINDOW_MONTHS",
    "EKSTRE_EMAIL_MAX_RESULTS",
    "EKSTRE_MESSAGE_MAX_RESULTS",
    "EKSTRE_CONCURRENCY",
    "EKSTRE_MANUAL_HORIZON_MONTHS",
    "EKSTRE_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _isolate_state(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Point the state file into the test's temporary directory."""

    state_root = tmp_path / "state"
    state_root.mkdir(parents=True, exist_ok=True)
    monkeypatch.setenv("EKSTRE_STATE_PATH", os.fspath(state_root / "state.json"))
    for name in _KNOBS:
        monkeypatch.delenv(name, raising=False)
    # Keep a stray .env in the repo from leaking into CLI tests.
    monkeypatch.chdir(tmp_path)
