"""Tunable matching constants plus env / YAML settings loading."""
from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from jobmatch.log import get_logger

log = get_logger(__name__)

load_dotenv()

ROOT_DIR: Path = Path(__file__).resolve().parent.parent
CONFIG_DIR: Path = ROOT_DIR / "config"
SETTINGS_PATH: Path = CONFIG_DIR / "matching.yaml"
DATA_DIR: Path = ROOT_DIR / "data"

# Candidates scoring at or below this are discarded.
MIN_MATCH_SCORE = 0.3

# Over-fetch factor applied to the requested result count.
CANDIDATE_OVERFETCH = 2

FACTOR_CAPS: dict[str, float] = {
    "location": 0.25,
    "salary": 0.20,
    "skills": 0.30,
    "experience": 0.15,
}

STATIC_BONUSES: dict[str, float] = {
    "employment_type": 0.10,
    "urgent": 0.05,
    "immediate_start": 0.03,
    "no_experience": 0.02,
}

# Location factor split between region and city matches (fractions of the cap).
LOCATION_REGION_SHARE = 0.8
LOCATION_CITY_SHARE = 0.2

# Posting salary bounds assumed when a posting leaves them blank.
DEFAULT_SALARY_FLOOR = 0
DEFAULT_SALARY_CEILING = 100_000

# Neutral skill signal (fraction of the cap) when no profile skills exist.
NEUTRAL_SKILL_SHARE = 0.3
MIN_SKILL_DENOMINATOR = 3

# Experience bands as fractions of the experience cap.
EXPERIENCE_BANDS: dict[str, float] = {
    "entry": 0.9,
    "high": 0.8,
    "mid_reduced": 0.4,
    "senior_low": 0.2,
    "neutral": 0.5,
}
MID_LEVEL_YEARS = 2
SENIOR_LEVEL_YEARS = 5

# Basic-matching (outage) and popular-jobs linear decay.
BASIC_MATCH_START = 0.7
BASIC_MATCH_STEP = 0.05
POPULAR_MATCH_START = 0.6
POPULAR_MATCH_STEP = 0.03

MATCH_CACHE_TTL_SECONDS = 3600
RECOMMENDATION_CACHE_TTL_SECONDS = 1800

REASON_SEPARATOR = " | "
INSIGHT_MAX_WORDS = 20

DEFAULT_LLM_MODEL = "gpt-4o-mini"
DEFAULT_LLM_TIMEOUT = 8.0
DEFAULT_LLM_MAX_ATTEMPTS = 2
DEFAULT_MAX_WORKERS = 8

# Placeholder keys shipped in sample env files; treated as "not configured".
PLACEHOLDER_API_KEYS = frozenset({"", "demo-key", "changeme"})


@dataclass
class MatchSettings:
    min_match_score: float = MIN_MATCH_SCORE
    candidate_overfetch: int = CANDIDATE_OVERFETCH
    factor_caps: dict[str, float] = field(default_factory=lambda: dict(FACTOR_CAPS))
    static_bonuses: dict[str, float] = field(default_factory=lambda: dict(STATIC_BONUSES))
    match_cache_ttl: int = MATCH_CACHE_TTL_SECONDS
    recommendation_cache_ttl: int = RECOMMENDATION_CACHE_TTL_SECONDS
    llm_model: str = DEFAULT_LLM_MODEL
    llm_base_url: str = ""
    llm_timeout_seconds: float = DEFAULT_LLM_TIMEOUT
    llm_max_attempts: int = DEFAULT_LLM_MAX_ATTEMPTS
    max_workers: int = DEFAULT_MAX_WORKERS
    redis_url: str = ""
    search_log_path: str = ""

    def factor_cap_total(self) -> float:
        return sum(self.factor_caps.values())


_ENV_OVERRIDES: dict[str, tuple[str, type]] = {
    "MATCH_MIN_SCORE": ("min_match_score", float),
    "MATCH_LLM_MODEL": ("llm_model", str),
    "MATCH_LLM_BASE_URL": ("llm_base_url", str),
    "MATCH_LLM_TIMEOUT": ("llm_timeout_seconds", float),
    "MATCH_LLM_ATTEMPTS": ("llm_max_attempts", int),
    "MATCH_MAX_WORKERS": ("max_workers", int),
    "REDIS_URL": ("redis_url", str),
    "MATCH_SEARCH_LOG": ("search_log_path", str),
}


def get_env(key: str, default: str = "") -> str:
    return os.environ.get(key, default).strip()


def load_settings(path: Path | None = None) -> MatchSettings:
    """Build settings from defaults, the YAML file (if any), then env vars."""
    path = path or SETTINGS_PATH
    data: dict[str, Any] = {}
    if path.exists():
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

    known = {f.name for f in fields(MatchSettings)}
    unknown = sorted(set(data) - known)
    if unknown:
        log.warning("Ignoring unknown settings in %s: %s", path.name, ", ".join(unknown))

    settings = MatchSettings()
    for key in known & set(data):
        value = data[key]
        if key in ("factor_caps", "static_bonuses"):
            merged = dict(getattr(settings, key))
            merged.update({k: float(v) for k, v in (value or {}).items()})
            value = merged
        setattr(settings, key, value)

    for env_key, (attr, cast) in _ENV_OVERRIDES.items():
        raw = get_env(env_key)
        if not raw:
            continue
        try:
            setattr(settings, attr, cast(raw))
        except ValueError:
            log.warning("Invalid value for %s=%r, keeping %r", env_key, raw, getattr(settings, attr))

    settings.max_workers = max(settings.max_workers, 1)
    settings.llm_max_attempts = max(settings.llm_max_attempts, 1)
    cap_total = settings.factor_cap_total()
    if cap_total > 1.0 + 1e-9:
        log.warning(
            "Factor caps sum to %.2f; factor scores alone can exceed 1.0 and will be clamped", cap_total
        )
    return settings
