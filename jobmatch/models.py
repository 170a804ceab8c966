"""Data models for postings, seekers, criteria and match results."""
from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field, replace
from datetime import date, datetime, timezone
from typing import Any, Generic, TypeVar

from jobmatch.config import REASON_SEPARATOR

T = TypeVar("T")

EXPERIENCE_LEVELS: tuple[str, ...] = ("entry", "mid", "senior")

_LEVEL_ALIASES: dict[str, str] = {
    "entry-level": "entry",
    "entry level": "entry",
    "junior": "entry",
    "mid-level": "mid",
    "mid level": "mid",
    "intermediate": "mid",
    "senior-level": "senior",
}


def normalize_level(level: str | None) -> str:
    """Canonical experience tag; a missing tag means an entry-level posting."""
    key = (level or "").strip().lower()
    if not key:
        return "entry"
    return _LEVEL_ALIASES.get(key, key)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def same_region(a: str | None, b: str | None) -> bool:
    """Region names compare trimmed and case-insensitively."""
    return (a or "").strip().lower() == (b or "").strip().lower()


def _parse_dt(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    else:
        dt = datetime.fromisoformat(str(value))
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def _parse_date(value: Any) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


@dataclass
class SalaryRange:
    min: float
    max: float
    currency: str = "ZAR"

    @property
    def width(self) -> float:
        return self.max - self.min

    def is_valid(self) -> bool:
        return self.min >= 0 and self.max >= self.min


@dataclass
class JobPosting:
    id: str
    title: str
    company: str
    description: str = ""
    city: str = ""
    region: str = ""
    salary_min: float | None = None
    salary_max: float | None = None
    currency: str = "ZAR"
    employment_type: str = ""
    category: str = ""
    experience_level: str = "entry"
    is_urgent: bool = False
    is_immediate_start: bool = False
    no_experience_required: bool = False
    posted_at: datetime = field(default_factory=utcnow)
    view_count: int = 0
    requirements: list[str] = field(default_factory=list)
    is_active: bool = True
    expires_at: datetime | None = None

    def __post_init__(self) -> None:
        self.experience_level = normalize_level(self.experience_level)
        self.posted_at = _parse_dt(self.posted_at) or utcnow()
        self.expires_at = _parse_dt(self.expires_at)

    def is_open(self, now: datetime | None = None) -> bool:
        now = now or utcnow()
        return self.is_active and (self.expires_at is None or self.expires_at > now)

    @property
    def skill_text(self) -> str:
        """Combined title, description and requirements used for skill matching."""
        return f"{self.title} {self.description} {json.dumps(self.requirements)}"

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["posted_at"] = self.posted_at.isoformat()
        data["expires_at"] = self.expires_at.isoformat() if self.expires_at else None
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> JobPosting:
        return cls(**data)


@dataclass
class EmploymentInterval:
    start: date
    end: date | None = None
    title: str = ""
    company: str = ""

    def __post_init__(self) -> None:
        self.start = _parse_date(self.start)  # type: ignore[assignment]
        self.end = _parse_date(self.end)

    @property
    def ongoing(self) -> bool:
        return self.end is None


@dataclass
class EducationRecord:
    institution: str = ""
    qualification: str = ""
    field_of_study: str = ""
    completed: int | None = None


@dataclass
class SeekerProfile:
    skills: list[str] = field(default_factory=list)
    experience: list[EmploymentInterval] = field(default_factory=list)
    education: list[EducationRecord] = field(default_factory=list)
    preferred_locations: list[str] = field(default_factory=list)
    expected_salary: SalaryRange | None = None
    summary: str = ""


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _clean_list(values: list[str] | None) -> list[str]:
    return [v.strip() for v in (values or []) if v and v.strip()]


@dataclass
class MatchCriteria:
    seeker_id: str | None = None
    keywords: str | None = None
    location: str | None = None
    region: str | None = None
    salary_range: SalaryRange | None = None
    employment_types: list[str] = field(default_factory=list)
    categories: list[str] = field(default_factory=list)
    experience_level: str | None = None

    def normalized(self) -> MatchCriteria:
        """Copy with malformed fields dropped instead of rejected."""
        salary = self.salary_range
        if salary is not None and not salary.is_valid():
            salary = None
        level = _clean(self.experience_level)
        return replace(
            self,
            seeker_id=_clean(self.seeker_id),
            keywords=_clean(self.keywords),
            location=_clean(self.location),
            region=_clean(self.region),
            salary_range=salary,
            employment_types=_clean_list(self.employment_types),
            categories=_clean_list(self.categories),
            experience_level=normalize_level(level) if level else None,
        )

    def filters(self) -> dict[str, Any]:
        """Non-empty search filters, excluding the seeker and keyword text."""
        data = asdict(self)
        data.pop("seeker_id")
        data.pop("keywords")
        return {k: v for k, v in data.items() if v not in (None, [], "")}

    def fingerprint(self) -> str:
        return json.dumps(asdict(self), sort_keys=True, default=str)


@dataclass(frozen=True)
class FactorScore:
    contribution: float
    reason: str = ""


ZERO = FactorScore(0.0)


@dataclass(frozen=True)
class SkillVerdict:
    score: int
    reason: str


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Either a full-fidelity value or a degraded stand-in with the cause."""

    value: T | None
    degraded: bool = False
    detail: str = ""

    @classmethod
    def success(cls, value: T) -> Outcome[T]:
        return cls(value=value)

    @classmethod
    def fallback(cls, detail: str, value: T | None = None) -> Outcome[T]:
        return cls(value=value, degraded=True, detail=detail)

    @property
    def ok(self) -> bool:
        return not self.degraded and self.value is not None


@dataclass
class MatchResult:
    job: JobPosting
    match_score: float
    reasons: list[str] = field(default_factory=list)
    insight: str | None = None

    @property
    def job_id(self) -> str:
        return self.job.id

    @property
    def match_reason(self) -> str:
        return REASON_SEPARATOR.join(r for r in self.reasons if r)

    def to_dict(self) -> dict[str, Any]:
        return {
            "job": self.job.to_dict(),
            "match_score": self.match_score,
            "reasons": list(self.reasons),
            "insight": self.insight,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MatchResult:
        return cls(
            job=JobPosting.from_dict(data["job"]),
            match_score=float(data["match_score"]),
            reasons=list(data.get("reasons", [])),
            insight=data.get("insight"),
        )
