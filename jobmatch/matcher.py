"""
Job matching orchestrator.

Runs: cache lookup → profile → candidates → factor scoring (parallel) → threshold/sort/truncate
→ insights (parallel) → cache write. Any failure in the scoring pipeline drops to basic matching.
"""
from __future__ import annotations

import random
import threading
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Any, Callable, Iterable, Iterator, TypeVar

from jobmatch.cache import KeyValueCache, MemoryCache, ResultCache, build_cache
from jobmatch.config import (
    BASIC_MATCH_START,
    BASIC_MATCH_STEP,
    POPULAR_MATCH_START,
    POPULAR_MATCH_STEP,
    MatchSettings,
    load_settings,
)
from jobmatch.insights import POPULAR_INSIGHT, InsightGenerator, fallback_insight
from jobmatch.llm import DisabledLanguageModel, build_language_model
from jobmatch.log import get_logger
from jobmatch.models import JobPosting, MatchCriteria, MatchResult, Outcome, SeekerProfile
from jobmatch.profiles import ProfileResolver
from jobmatch.scorer import (
    Factor,
    SkillScorer,
    score_candidate,
    score_experience,
    score_location,
    score_salary,
)
from jobmatch.selector import CandidateSelector
from jobmatch.stores.base import JobStore

log = get_logger(__name__)

T = TypeVar("T")
R = TypeVar("R")

BASIC_MATCH_REASON = "Good match based on your search criteria"
POPULAR_MATCH_REASON = "Popular job in your area"

_CANCEL_POLL_SECONDS = 0.05


class SearchCancelled(Exception):
    """The caller abandoned the search while scoring was in flight."""


def _fan_out(
    fn: Callable[[T], R],
    items: list[T],
    max_workers: int,
    cancel: threading.Event | None = None,
) -> list[R]:
    """Apply *fn* to every item on a per-search pool, preserving order."""
    if not items:
        return []
    pool = ThreadPoolExecutor(
        max_workers=max(1, min(max_workers, len(items))), thread_name_prefix="jobmatch"
    )
    futures = [pool.submit(fn, item) for item in items]
    try:
        pending = set(futures)
        while pending:
            if cancel is not None and cancel.is_set():
                raise SearchCancelled("search abandoned by caller")
            _, pending = wait(pending, timeout=_CANCEL_POLL_SECONDS)
        return [f.result() for f in futures]
    finally:
        pool.shutdown(wait=False, cancel_futures=True)


def _decayed(jobs: Iterable[JobPosting], start: float, step: float, floor: float) -> Iterator[tuple[JobPosting, float]]:
    """Linearly decaying scores in input order, stopping before *floor*."""
    for index, job in enumerate(jobs):
        score = round(start - index * step, 2)
        if score <= floor:
            break
        yield job, score


class MatchOrchestrator:
    def __init__(
        self,
        store: JobStore,
        *,
        cache: KeyValueCache | None = None,
        language_model: Any = None,
        settings: MatchSettings | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.settings = settings or load_settings()
        self.store = store
        self.selector = CandidateSelector(store)
        self.profiles = ProfileResolver(store)
        self.cache = ResultCache(cache if cache is not None else MemoryCache())
        language_model = language_model or DisabledLanguageModel()
        self.rng = rng or random.Random()
        self.insights = InsightGenerator(language_model, self.rng)

        caps = self.settings.factor_caps
        self.factors: list[Factor] = [
            Factor("location", score_location, caps["location"]),
            Factor("salary", score_salary, caps["salary"]),
            Factor("skills", SkillScorer(language_model), caps["skills"]),
            Factor("experience", score_experience, caps["experience"]),
        ]

    # ── public API ────────────────────────────────────────────────────────

    def find_matching_jobs(
        self,
        criteria: MatchCriteria,
        limit: int = 20,
        cancel: threading.Event | None = None,
    ) -> list[MatchResult]:
        return self._match(criteria, limit, cancel).value or []

    def get_recommendations(
        self,
        seeker_id: str,
        limit: int = 10,
        cancel: threading.Event | None = None,
    ) -> list[MatchResult]:
        key = ResultCache.recommendation_key(seeker_id, limit)
        try:
            cached = self.cache.load(key)
            if cached is not None:
                log.info("Recommendations cache hit for %s", seeker_id)
                return cached

            profile = self.profiles.resolve(seeker_id)
            if profile is None:
                return self._popular_jobs(limit)

            criteria = MatchCriteria(
                seeker_id=seeker_id,
                location=profile.preferred_locations[0] if profile.preferred_locations else None,
                salary_range=profile.expected_salary,
            )
            outcome = self._match(criteria, limit, cancel)
            if outcome.ok and outcome.value:
                self.cache.store(key, outcome.value, self.settings.recommendation_cache_ttl)
            else:
                log.info("Not caching recommendations for %s (%s)", seeker_id, outcome.detail or "empty")
            return outcome.value or []
        except Exception as exc:
            log.error("Recommendations failed for %s: %s", seeker_id, exc)
            return self._popular_jobs(limit)

    # ── pipeline ──────────────────────────────────────────────────────────

    def _match(
        self, criteria: MatchCriteria, limit: int, cancel: threading.Event | None
    ) -> Outcome[list[MatchResult]]:
        """Full search including search recording; degraded when results are not fully ranked."""
        try:
            criteria = criteria.normalized()
            outcome = self._find(criteria, limit, cancel)
        except Exception as exc:
            log.error("Job matching failed outright: %s", exc, exc_info=True)
            outcome = Outcome.fallback("matching failed", [])
        self._record_search(criteria, len(outcome.value or []))
        return outcome

    def _find(
        self, criteria: MatchCriteria, limit: int, cancel: threading.Event | None
    ) -> Outcome[list[MatchResult]]:
        log.info("Starting job matching (limit %d, seeker %s)", limit, criteria.seeker_id or "anonymous")
        if limit <= 0:
            return Outcome.success([])

        cache_key = ResultCache.match_key(criteria.seeker_id, criteria, limit) if criteria.seeker_id else None
        if cache_key:
            cached = self.cache.load(cache_key)
            if cached is not None:
                log.info("Match cache hit for %s (%d results)", criteria.seeker_id, len(cached))
                return Outcome.success(cached)

        profile = self.profiles.resolve(criteria.seeker_id)

        try:
            results = self._rank(criteria, profile, limit, cancel)
        except SearchCancelled:
            log.info("Search cancelled for %s; discarding partial results", criteria.seeker_id or "anonymous")
            return Outcome.fallback("cancelled", [])
        except Exception as exc:
            log.error("AI job matching failed (%s); using basic matching", exc)
            return Outcome.fallback("basic matching", self._basic_matching(criteria, limit))

        if cache_key and results:
            self.cache.store(cache_key, results, self.settings.match_cache_ttl)
        log.info("Matching completed: %d quality match(es)", len(results))
        return Outcome.success(results)

    def _rank(
        self,
        criteria: MatchCriteria,
        profile: SeekerProfile | None,
        limit: int,
        cancel: threading.Event | None,
    ) -> list[MatchResult]:
        s = self.settings
        candidates = self.selector.select(criteria, limit * s.candidate_overfetch)
        if not candidates:
            return []

        scored = _fan_out(
            lambda job: score_candidate(job, criteria, profile, self.factors, s.static_bonuses),
            candidates,
            s.max_workers,
            cancel,
        )
        kept = [m for m in scored if m.match_score > s.min_match_score]
        kept.sort(key=lambda m: (m.match_score, m.job.posted_at), reverse=True)
        top = kept[:limit]
        log.info("Scored %d candidates → %d above %.0f%% threshold", len(scored), len(kept), s.min_match_score * 100)

        insights = _fan_out(lambda m: self.insights.generate(m.job, profile), top, s.max_workers, cancel)
        for match, insight in zip(top, insights):
            match.insight = insight
        return top

    def _basic_matching(self, criteria: MatchCriteria, limit: int) -> list[MatchResult]:
        try:
            jobs = self.selector.select(criteria, limit)
        except Exception as exc:
            log.error("Basic job matching failed: %s", exc)
            return []
        return [
            MatchResult(
                job=job,
                match_score=score,
                reasons=[BASIC_MATCH_REASON],
                insight=fallback_insight(job, self.rng),
            )
            for job, score in _decayed(jobs, BASIC_MATCH_START, BASIC_MATCH_STEP, self.settings.min_match_score)
        ]

    def _popular_jobs(self, limit: int) -> list[MatchResult]:
        try:
            jobs = self.selector.popular(limit)
        except Exception as exc:
            log.error("Popular jobs lookup failed: %s", exc)
            return []
        return [
            MatchResult(job=job, match_score=score, reasons=[POPULAR_MATCH_REASON], insight=POPULAR_INSIGHT)
            for job, score in _decayed(jobs, POPULAR_MATCH_START, POPULAR_MATCH_STEP, self.settings.min_match_score)
        ]

    def _record_search(self, criteria: MatchCriteria, result_count: int) -> None:
        try:
            self.store.record_search(
                criteria.seeker_id, criteria.keywords or "", criteria.filters(), result_count
            )
        except Exception as exc:
            log.warning("Failed to record search: %s", exc)


def build_orchestrator(store: JobStore, settings: MatchSettings | None = None) -> MatchOrchestrator:
    """Orchestrator wired from env: language model if keyed, Redis cache if REDIS_URL is set."""
    settings = settings or load_settings()
    return MatchOrchestrator(
        store,
        cache=build_cache(settings),
        language_model=build_language_model(settings),
        settings=settings,
    )
