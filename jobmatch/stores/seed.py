"""Load job postings and seeker profiles from a YAML seed file."""
from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from jobmatch.log import get_logger
from jobmatch.models import (
    EducationRecord,
    EmploymentInterval,
    JobPosting,
    SalaryRange,
    SeekerProfile,
)
from jobmatch.search_log import CsvSearchLog
from jobmatch.stores.base import StoreUnavailable
from jobmatch.stores.memory import InMemoryJobStore

log = get_logger(__name__)


def parse_profile(raw: dict[str, Any]) -> SeekerProfile:
    salary = raw.get("expected_salary")
    return SeekerProfile(
        skills=[str(s) for s in raw.get("skills", [])],
        experience=[EmploymentInterval(**e) for e in raw.get("experience", [])],
        education=[EducationRecord(**e) for e in raw.get("education", [])],
        preferred_locations=[str(s) for s in raw.get("preferred_locations", [])],
        expected_salary=SalaryRange(**salary) if salary else None,
        summary=raw.get("summary", "") or "",
    )


def load_seed(path: Path) -> tuple[list[JobPosting], dict[str, SeekerProfile]]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise StoreUnavailable(f"Cannot read seed file {path}: {exc}") from exc

    try:
        jobs = [JobPosting(**j) for j in data.get("jobs", [])]
        profiles = {
            str(sid): parse_profile(p or {})
            for sid, p in (data.get("profiles") or {}).items()
        }
    except (TypeError, ValueError) as exc:
        raise StoreUnavailable(f"Malformed seed file {path}: {exc}") from exc

    log.info("Loaded %d postings and %d profiles from %s", len(jobs), len(profiles), path.name)
    return jobs, profiles


def seeded_store(path: Path, search_log: CsvSearchLog | None = None) -> InMemoryJobStore:
    jobs, profiles = load_seed(path)
    return InMemoryJobStore(jobs, profiles, search_log=search_log)
