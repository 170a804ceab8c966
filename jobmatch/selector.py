"""Translate match criteria into a job-store predicate and fetch candidates."""
from __future__ import annotations

from jobmatch.log import get_logger
from jobmatch.models import JobPosting, MatchCriteria
from jobmatch.stores.base import JobOrder, JobPredicate, JobStore

log = get_logger(__name__)


def build_predicate(criteria: MatchCriteria) -> JobPredicate:
    c = criteria.normalized()
    salary = c.salary_range
    return JobPredicate(
        location=c.location,
        region=c.region,
        salary_min=salary.min if salary else None,
        salary_max=salary.max if salary else None,
        employment_types=tuple(c.employment_types),
        categories=tuple(c.categories),
        experience_level=c.experience_level,
        keywords=c.keywords,
    )


class CandidateSelector:
    def __init__(self, store: JobStore) -> None:
        self.store = store

    def select(self, criteria: MatchCriteria, max_candidates: int) -> list[JobPosting]:
        """Most recent active postings satisfying *criteria*; may be empty."""
        if max_candidates <= 0:
            return []
        predicate = build_predicate(criteria)
        candidates = self.store.find_active_jobs(predicate, max_candidates, JobOrder.RECENT)
        log.info("Selected %d candidate(s) (max %d)", len(candidates), max_candidates)
        return candidates

    def popular(self, limit: int) -> list[JobPosting]:
        return self.store.find_active_jobs(JobPredicate(), limit, JobOrder.POPULAR)
