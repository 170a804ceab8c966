"""Job store interface consumed by the matching engine."""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from jobmatch.models import JobPosting, SeekerProfile


class StoreUnavailable(RuntimeError):
    """The backing data source could not be read."""


class JobOrder(Enum):
    RECENT = "recent"
    POPULAR = "popular"


@dataclass(frozen=True)
class JobPredicate:
    """Conjunctive filter over active postings; empty fields do not constrain."""

    location: str | None = None
    region: str | None = None
    salary_min: float | None = None
    salary_max: float | None = None
    employment_types: tuple[str, ...] = ()
    categories: tuple[str, ...] = ()
    experience_level: str | None = None
    keywords: str | None = None
    active_only: bool = field(default=True)

    def is_unconstrained(self) -> bool:
        return not any((
            self.location, self.region, self.salary_min is not None,
            self.salary_max is not None, self.employment_types,
            self.categories, self.experience_level, self.keywords,
        ))


class JobStore(ABC):
    @abstractmethod
    def find_active_jobs(
        self, predicate: JobPredicate, limit: int, order: JobOrder = JobOrder.RECENT
    ) -> list[JobPosting]:
        pass

    @abstractmethod
    def find_profile(self, seeker_id: str) -> SeekerProfile | None:
        pass

    @abstractmethod
    def record_search(
        self,
        seeker_id: str | None,
        query: str,
        filters: dict[str, Any],
        result_count: int,
    ) -> None:
        pass
