"""Factor scorers and static bonuses for ranking a posting against a search."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Callable

from jobmatch.config import (
    DEFAULT_SALARY_CEILING,
    DEFAULT_SALARY_FLOOR,
    EXPERIENCE_BANDS,
    LOCATION_CITY_SHARE,
    LOCATION_REGION_SHARE,
    MID_LEVEL_YEARS,
    MIN_SKILL_DENOMINATOR,
    NEUTRAL_SKILL_SHARE,
    SENIOR_LEVEL_YEARS,
)
from jobmatch.log import get_logger
from jobmatch.models import (
    ZERO,
    FactorScore,
    JobPosting,
    MatchCriteria,
    MatchResult,
    Outcome,
    SeekerProfile,
    same_region,
)
from jobmatch.profiles import years_of_experience

log = get_logger(__name__)

Scorer = Callable[..., FactorScore]

_CURRENCY_SYMBOLS: dict[str, str] = {"ZAR": "R", "USD": "$", "EUR": "€", "GBP": "£"}


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(value, high))


def _money(amount: float, currency: str) -> str:
    symbol = _CURRENCY_SYMBOLS.get(currency.upper(), f"{currency} ")
    return f"{symbol}{amount:,.0f}"


def score_location(
    job: JobPosting, criteria: MatchCriteria, profile: SeekerProfile | None, cap: float
) -> FactorScore:
    share = 0.0
    reason = ""
    if criteria.region and same_region(job.region, criteria.region):
        share += LOCATION_REGION_SHARE
        reason = f"Located in your preferred region: {job.region}"
    if criteria.location and criteria.location.lower() in job.city.lower():
        share += LOCATION_CITY_SHARE
        reason = f"{reason} and city area" if reason else f"Located in {criteria.location} area"
    return FactorScore(_clamp(share) * cap, reason)


def score_salary(
    job: JobPosting, criteria: MatchCriteria, profile: SeekerProfile | None, cap: float
) -> FactorScore:
    wanted = criteria.salary_range
    if wanted is None or not wanted.is_valid() or wanted.width <= 0:
        return ZERO
    job_min = job.salary_min if job.salary_min is not None else DEFAULT_SALARY_FLOOR
    job_max = job.salary_max if job.salary_max is not None else DEFAULT_SALARY_CEILING
    overlap = min(job_max, wanted.max) - max(job_min, wanted.min)
    if overlap <= 0:
        return ZERO
    share = _clamp(overlap / wanted.width)
    reason = (
        f"Salary range {_money(job_min, job.currency)}-{_money(job_max, job.currency)} "
        "matches your expectations"
    )
    return FactorScore(share * cap, reason)


def basic_skill_match(job_text: str, skills: list[str], cap: float) -> FactorScore:
    """Substring count of skills in the posting text, normalised by max(len(skills), 3)."""
    text = job_text.lower()
    hits = sum(1 for skill in skills if skill and skill.lower() in text)
    share = min(hits / max(len(skills), MIN_SKILL_DENOMINATOR), 1.0)
    reason = f"{hits} of your skills match this role" if hits else ""
    return FactorScore(share * cap, reason)


class SkillScorer:
    """Skill factor: language-model verdict when available, substring count otherwise."""

    def __init__(self, language_model) -> None:
        self.language_model = language_model

    def assess(self, job: JobPosting, profile: SeekerProfile | None, cap: float) -> Outcome[FactorScore]:
        if profile is None or not profile.skills:
            return Outcome.success(FactorScore(NEUTRAL_SKILL_SHARE * cap))

        if self.language_model.enabled:
            try:
                verdict = self.language_model.score_skill_match(profile.skills, job)
            except Exception as exc:
                log.warning("Skill scoring call failed for %s (%s)", job.id, exc)
                verdict = Outcome.fallback(str(exc))
            if verdict.ok:
                share = _clamp(verdict.value.score / 100)
                return Outcome.success(FactorScore(share * cap, verdict.value.reason))
            detail = verdict.detail
        else:
            detail = "language model disabled"

        log.debug("Skill scoring for %s degraded (%s)", job.id, detail)
        return Outcome.fallback(detail, basic_skill_match(job.skill_text, profile.skills, cap))

    def __call__(
        self, job: JobPosting, criteria: MatchCriteria, profile: SeekerProfile | None, cap: float
    ) -> FactorScore:
        return self.assess(job, profile, cap).value or ZERO


def score_experience(
    job: JobPosting,
    criteria: MatchCriteria,
    profile: SeekerProfile | None,
    cap: float,
    today: date | None = None,
) -> FactorScore:
    level = job.experience_level
    if level == "entry":
        return FactorScore(EXPERIENCE_BANDS["entry"] * cap, "Perfect for your experience level")
    if profile is None or level not in ("mid", "senior"):
        return FactorScore(EXPERIENCE_BANDS["neutral"] * cap)

    years = years_of_experience(profile.experience, today)
    if level == "mid":
        if years >= MID_LEVEL_YEARS:
            return FactorScore(EXPERIENCE_BANDS["high"] * cap, "Good match for your experience")
        return FactorScore(
            EXPERIENCE_BANDS["mid_reduced"] * cap, "Slightly above your current experience level"
        )
    if years >= SENIOR_LEVEL_YEARS:
        return FactorScore(EXPERIENCE_BANDS["high"] * cap, "Matches your senior experience")
    return FactorScore(
        EXPERIENCE_BANDS["senior_low"] * cap, "Requires more experience than you currently have"
    )


def static_bonuses(job: JobPosting, criteria: MatchCriteria, bonuses: dict[str, float]) -> list[FactorScore]:
    out: list[FactorScore] = []
    if criteria.employment_types and job.employment_type in criteria.employment_types:
        out.append(FactorScore(
            bonuses["employment_type"], f"Matches preferred job type: {job.employment_type}"
        ))
    if job.is_urgent:
        out.append(FactorScore(bonuses["urgent"], "Urgent hiring - quick application process"))
    if job.is_immediate_start:
        out.append(FactorScore(bonuses["immediate_start"], "Immediate start available"))
    if job.no_experience_required:
        out.append(FactorScore(
            bonuses["no_experience"], "No experience required - perfect for career starters"
        ))
    return out


@dataclass(frozen=True)
class Factor:
    name: str
    scorer: Scorer
    cap: float


def score_candidate(
    job: JobPosting,
    criteria: MatchCriteria,
    profile: SeekerProfile | None,
    factors: list[Factor],
    bonuses: dict[str, float],
) -> MatchResult:
    parts = [f.scorer(job, criteria, profile, f.cap) for f in factors]
    parts.extend(static_bonuses(job, criteria, bonuses))
    total = _clamp(sum(p.contribution for p in parts))
    reasons = [p.reason for p in parts if p.reason]
    log.debug("Scored %s: %.3f", job.id, total)
    return MatchResult(job=job, match_score=total, reasons=reasons)
