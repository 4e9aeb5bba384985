"""Pytest configuration and fixtures for MFA tests.

This module provides common fixtures and configuration for all tests.
"""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from mfa.config import ENV_DATABASE_URL, ENV_LIST_LIMIT_MAX, ENV_SAVE_DEBOUNCE_MS
from mfa.persistence.db import reset_engines
from mfa.persistence.store import InMemoryAnalysisStore, clear_in_memory_store


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Run every test against the in-memory store with default settings.

    Clears MFA_* variables inherited from the shell, empties the process-wide
    in-memory store and disposes any cached engine afterwards.
    """
    for env_var in (ENV_DATABASE_URL, ENV_SAVE_DEBOUNCE_MS, ENV_LIST_LIMIT_MAX):
        monkeypatch.delenv(env_var, raising=False)
    clear_in_memory_store()
    yield
    clear_in_memory_store()
    reset_engines()


@pytest.fixture
def store() -> InMemoryAnalysisStore:
    """A fresh, private in-memory store."""
    return InMemoryAnalysisStore()
