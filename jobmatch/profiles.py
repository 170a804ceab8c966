"""Seeker profile lookup and tenure calculation."""
from __future__ import annotations

from datetime import date

from jobmatch.log import get_logger
from jobmatch.models import EmploymentInterval, SeekerProfile
from jobmatch.stores.base import JobStore

log = get_logger(__name__)

_DAYS_PER_YEAR = 365.25


def years_of_experience(intervals: list[EmploymentInterval], today: date | None = None) -> float:
    """Sum of interval durations in years; ongoing intervals run until *today*."""
    today = today or date.today()
    total_days = 0
    for interval in intervals:
        if interval.start is None:
            continue
        end = interval.end or today
        total_days += max((end - interval.start).days, 0)
    return total_days / _DAYS_PER_YEAR


class ProfileResolver:
    def __init__(self, store: JobStore) -> None:
        self.store = store

    def resolve(self, seeker_id: str | None) -> SeekerProfile | None:
        if not seeker_id:
            return None
        try:
            profile = self.store.find_profile(seeker_id)
        except Exception as exc:
            log.error("Profile lookup failed for %s: %s", seeker_id, exc)
            return None
        if profile is None:
            log.debug("No stored profile for %s; scoring anonymously", seeker_id)
        return profile
