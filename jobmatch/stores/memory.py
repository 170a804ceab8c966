"""In-process job store, used for seeded demos and tests."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable

from jobmatch.config import DEFAULT_SALARY_CEILING, DEFAULT_SALARY_FLOOR
from jobmatch.log import get_logger
from jobmatch.models import JobPosting, SeekerProfile, same_region, utcnow
from jobmatch.search_log import CsvSearchLog
from jobmatch.stores.base import JobOrder, JobPredicate, JobStore

log = get_logger(__name__)


def _contains(haystack: str, needle: str) -> bool:
    return needle.lower() in (haystack or "").lower()


def matches_predicate(job: JobPosting, predicate: JobPredicate, now: datetime | None = None) -> bool:
    if predicate.active_only and not job.is_open(now):
        return False
    if predicate.location and not _contains(job.city, predicate.location):
        return False
    if predicate.region and not same_region(job.region, predicate.region):
        return False
    if predicate.salary_min is not None or predicate.salary_max is not None:
        job_min = job.salary_min if job.salary_min is not None else DEFAULT_SALARY_FLOOR
        job_max = job.salary_max if job.salary_max is not None else DEFAULT_SALARY_CEILING
        if predicate.salary_min is not None and job_max < predicate.salary_min:
            return False
        if predicate.salary_max is not None and job_min > predicate.salary_max:
            return False
    if predicate.employment_types and job.employment_type not in predicate.employment_types:
        return False
    if predicate.categories and job.category not in predicate.categories:
        return False
    if predicate.experience_level and job.experience_level != predicate.experience_level:
        return False
    if predicate.keywords:
        kw = predicate.keywords
        if not (_contains(job.title, kw) or _contains(job.description, kw) or _contains(job.company, kw)):
            return False
    return True


class InMemoryJobStore(JobStore):
    def __init__(
        self,
        jobs: Iterable[JobPosting] = (),
        profiles: dict[str, SeekerProfile] | None = None,
        search_log: CsvSearchLog | None = None,
    ) -> None:
        self.jobs: list[JobPosting] = list(jobs)
        self.profiles: dict[str, SeekerProfile] = dict(profiles or {})
        self.search_log = search_log
        self.searches: list[dict[str, Any]] = []

    def add_job(self, job: JobPosting) -> None:
        self.jobs.append(job)

    def add_profile(self, seeker_id: str, profile: SeekerProfile) -> None:
        self.profiles[seeker_id] = profile

    def find_active_jobs(
        self, predicate: JobPredicate, limit: int, order: JobOrder = JobOrder.RECENT
    ) -> list[JobPosting]:
        now = utcnow()
        if predicate.is_unconstrained():
            hits = [j for j in self.jobs if not predicate.active_only or j.is_open(now)]
        else:
            hits = [j for j in self.jobs if matches_predicate(j, predicate, now)]
        if order is JobOrder.POPULAR:
            hits.sort(key=lambda j: (j.view_count, j.posted_at), reverse=True)
        else:
            hits.sort(key=lambda j: j.posted_at, reverse=True)
        log.debug("In-memory store matched %d of %d postings", len(hits), len(self.jobs))
        return hits[: max(limit, 0)]

    def find_profile(self, seeker_id: str) -> SeekerProfile | None:
        return self.profiles.get(seeker_id)

    def record_search(
        self,
        seeker_id: str | None,
        query: str,
        filters: dict[str, Any],
        result_count: int,
    ) -> None:
        entry = {
            "seeker_id": seeker_id,
            "query": query,
            "filters": filters,
            "result_count": result_count,
        }
        self.searches.append(entry)
        if self.search_log is not None:
            self.search_log.record(seeker_id, query, filters, result_count)
