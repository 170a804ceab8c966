"""
Shared test utilities: posting/profile factories and store / language-model doubles.

Language-model behaviour is forced through ``StubLanguageModel`` (success or
degraded outcomes) rather than by mocking network failures.
"""
from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Any

from jobmatch.models import EmploymentInterval, JobPosting, Outcome, SeekerProfile
from jobmatch.stores import InMemoryJobStore, StoreUnavailable

BASE_TIME = datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)
TODAY = date(2026, 10, 1)


def make_job(job_id: str = "job-1", hours_ago: float = 0, **overrides: Any) -> JobPosting:
    fields: dict[str, Any] = {
        "id": job_id,
        "title": "Kitchen Assistant",
        "company": "Ocean Basket",
        "description": "Food preparation and cleaning in a busy kitchen",
        "city": "Cape Town",
        "region": "Western Cape",
        "salary_min": 3500,
        "salary_max": 5500,
        "employment_type": "full-time",
        "category": "Food Service",
        "experience_level": "entry",
        "posted_at": BASE_TIME - timedelta(hours=hours_ago),
    }
    fields.update(overrides)
    return JobPosting(**fields)


def make_profile(years: float = 0, skills: list[str] | None = None, **overrides: Any) -> SeekerProfile:
    experience = []
    if years:
        experience.append(EmploymentInterval(start=TODAY - timedelta(days=round(years * 365.25)), end=TODAY))
    fields: dict[str, Any] = {
        "skills": skills if skills is not None else [],
        "experience": experience,
    }
    fields.update(overrides)
    return SeekerProfile(**fields)


class StubLanguageModel:
    """Language model double returning preset outcomes (or raising, if given an exception)."""

    def __init__(self, enabled: bool = True, skill: Any = None, insight: Any = None) -> None:
        self.enabled = enabled
        self.skill = skill if skill is not None else Outcome.fallback("stubbed failure")
        self.insight = insight if insight is not None else Outcome.fallback("stubbed failure")
        self.skill_calls: list[tuple[tuple[str, ...], str]] = []
        self.insight_prompts: list[str] = []

    def score_skill_match(self, skills, job):
        self.skill_calls.append((tuple(skills), job.id))
        if isinstance(self.skill, Exception):
            raise self.skill
        return self.skill

    def generate_insight(self, prompt):
        self.insight_prompts.append(prompt)
        if isinstance(self.insight, Exception):
            raise self.insight
        return self.insight


class FlakyStore(InMemoryJobStore):
    """In-memory store whose first ``failures`` job lookups raise StoreUnavailable."""

    def __init__(self, *args: Any, failures: int = 1, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.failures = failures
        self.calls: list[int] = []

    def find_active_jobs(self, predicate, limit, order=None):
        self.calls.append(limit)
        if len(self.calls) <= self.failures:
            raise StoreUnavailable("database unreachable")
        if order is None:
            return super().find_active_jobs(predicate, limit)
        return super().find_active_jobs(predicate, limit, order)


class SpyStore(InMemoryJobStore):
    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.limits: list[int] = []

    def find_active_jobs(self, predicate, limit, order=None):
        self.limits.append(limit)
        if order is None:
            return super().find_active_jobs(predicate, limit)
        return super().find_active_jobs(predicate, limit, order)

