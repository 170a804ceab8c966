"""
Pytest configuration and fixtures.

For factories and test doubles, see tests/__init__.py
"""
from __future__ import annotations

import pytest

from jobmatch.config import MatchSettings

_ENV_KEYS = (
    "OPENAI_API_KEY", "REDIS_URL", "MATCH_MIN_SCORE", "MATCH_LLM_MODEL",
    "MATCH_LLM_BASE_URL", "MATCH_LLM_TIMEOUT", "MATCH_LLM_ATTEMPTS", "MATCH_MAX_WORKERS",
    "MATCH_SEARCH_LOG",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def settings() -> MatchSettings:
    return MatchSettings(max_workers=4)
