"""One-line match insights from the language model, or a template fallback."""
from __future__ import annotations

import random

from jobmatch.config import INSIGHT_MAX_WORDS
from jobmatch.log import get_logger
from jobmatch.models import JobPosting, Outcome, SeekerProfile

log = get_logger(__name__)

URGENT_INSIGHT = "Urgent hiring means a faster hiring process and a quick start!"
TRAINING_INSIGHT = "No experience needed - they'll train you from the start!"
POPULAR_INSIGHT = "This position is getting lots of attention from other job seekers"


def insight_templates(job: JobPosting) -> list[str]:
    category = (job.category or "this field").lower()
    place = job.city or job.region or "your area"
    return [
        f"Great opportunity to start your career with {job.company}",
        f"Build valuable experience in {category}",
        f"Join a growing company in {place}",
        "Develop new skills in a supportive environment",
        "Perfect stepping stone for your career journey",
    ]


def fallback_insight(job: JobPosting, rng: random.Random | None = None) -> str:
    if job.is_urgent:
        return URGENT_INSIGHT
    if job.no_experience_required:
        return TRAINING_INSIGHT
    return (rng or random).choice(insight_templates(job))


def insight_prompt(job: JobPosting, profile: SeekerProfile) -> str:
    salary = ""
    if job.salary_min is not None or job.salary_max is not None:
        salary = f"Salary: {job.currency} {job.salary_min or 0:,.0f}-{job.salary_max or 0:,.0f}\n"
    return (
        "Provide a brief, encouraging insight about this job for a job seeker:\n"
        f"Job: {job.title} at {job.company}\n"
        f"Location: {job.city}, {job.region}\n"
        f"{salary}"
        f"User Skills: {', '.join(profile.skills)}\n"
        f"Give one positive, actionable insight in {INSIGHT_MAX_WORDS} words or less."
    )


class InsightGenerator:
    def __init__(self, language_model, rng: random.Random | None = None) -> None:
        self.language_model = language_model
        self.rng = rng or random.Random()

    def attempt(self, job: JobPosting, profile: SeekerProfile | None) -> Outcome[str]:
        if profile is None:
            return Outcome.fallback("no profile", fallback_insight(job, self.rng))
        if not self.language_model.enabled:
            return Outcome.fallback("language model disabled", fallback_insight(job, self.rng))
        try:
            generated = self.language_model.generate_insight(insight_prompt(job, profile))
        except Exception as exc:
            log.warning("Insight generation failed for %s (%s)", job.id, exc)
            return Outcome.fallback(str(exc), fallback_insight(job, self.rng))
        if generated.ok:
            return generated
        log.debug("Insight for %s degraded (%s)", job.id, generated.detail)
        return Outcome.fallback(generated.detail, fallback_insight(job, self.rng))

    def generate(self, job: JobPosting, profile: SeekerProfile | None) -> str:
        return self.attempt(job, profile).value or fallback_insight(job, self.rng)
