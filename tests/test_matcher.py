import random
import threading

import pytest

from jobmatch.cache import KeyValueCache, MemoryCache, ResultCache
from jobmatch.insights import POPULAR_INSIGHT, insight_templates
from jobmatch.matcher import (
    BASIC_MATCH_REASON,
    POPULAR_MATCH_REASON,
    MatchOrchestrator,
    build_orchestrator,
)
from jobmatch.llm import DisabledLanguageModel
from jobmatch.models import MatchCriteria, Outcome, SalaryRange, SkillVerdict
from jobmatch.scorer import Factor
from jobmatch.stores import InMemoryJobStore, StoreUnavailable
from tests import FlakyStore, SpyStore, StubLanguageModel, make_job, make_profile

FULL_TIME = MatchCriteria(employment_types=["full-time"])


def _engine(store, settings, **kwargs):
    kwargs.setdefault("rng", random.Random(7))
    return MatchOrchestrator(store, settings=settings, **kwargs)


class BrokenCache(KeyValueCache):
    def get(self, key):
        raise ConnectionError("cache down")

    def set(self, key, value, ttl_seconds):
        raise ConnectionError("cache down")


# ── ranking ──────────────────────────────────────────────────────────────

def test_results_sorted_by_score_and_threshold_applied(settings):
    store = InMemoryJobStore([
        make_job("plain", hours_ago=1),
        make_job("urgent", hours_ago=2, is_urgent=True),
        make_job("urgent-now", hours_ago=3, is_urgent=True, is_immediate_start=True),
        make_job("mid", hours_ago=4, experience_level="mid"),
    ])
    results = _engine(store, settings).find_matching_jobs(FULL_TIME)

    assert [r.job_id for r in results] == ["urgent-now", "urgent", "plain"]
    scores = [r.match_score for r in results]
    assert scores == sorted(scores, reverse=True)
    assert all(s > settings.min_match_score for s in scores)


def test_equal_scores_prefer_most_recent(settings):
    store = InMemoryJobStore([make_job("older", hours_ago=10), make_job("newer", hours_ago=1)])
    results = _engine(store, settings).find_matching_jobs(FULL_TIME)
    assert [r.job_id for r in results] == ["newer", "older"]
    assert results[0].match_score == results[1].match_score


def test_truncates_to_limit_after_over_fetching(settings):
    store = SpyStore([make_job(f"job-{i}", hours_ago=i) for i in range(6)])
    results = _engine(store, settings).find_matching_jobs(FULL_TIME, limit=2)
    assert len(results) == 2
    assert store.limits == [4]


def test_every_result_has_an_insight(settings):
    store = InMemoryJobStore([make_job("a"), make_job("b", is_urgent=True)])
    results = _engine(store, settings).find_matching_jobs(FULL_TIME)
    assert all(r.insight for r in results)


def test_non_positive_limit_returns_nothing(settings):
    store = SpyStore([make_job()])
    assert _engine(store, settings).find_matching_jobs(FULL_TIME, limit=0) == []
    assert store.limits == []


def test_invalid_salary_range_is_ignored(settings):
    store = InMemoryJobStore([make_job()])
    criteria = MatchCriteria(employment_types=["full-time"], salary_range=SalaryRange(6000, 3000))
    results = _engine(store, settings).find_matching_jobs(criteria)
    assert [r.job_id for r in results] == ["job-1"]
    assert not any("Salary range" in reason for reason in results[0].reasons)


def test_language_model_verdicts_and_insights_flow_through(settings):
    model = StubLanguageModel(
        skill=Outcome.success(SkillVerdict(90, "Your kitchen work lines up")),
        insight=Outcome.success("Lead with your food safety certificate."),
    )
    store = InMemoryJobStore([make_job()], {"s1": make_profile(skills=["food safety"])})
    results = _engine(store, settings, language_model=model).find_matching_jobs(
        MatchCriteria(seeker_id="s1")
    )
    assert results[0].insight == "Lead with your food safety certificate."
    assert "Your kitchen work lines up" in results[0].reasons
    assert len(model.insight_prompts) == 1


def test_degraded_language_model_still_ranks(settings):
    model = StubLanguageModel(skill=TimeoutError("slow"), insight=RuntimeError("503"))
    store = InMemoryJobStore([make_job()], {"s1": make_profile(skills=["cleaning"])})
    results = _engine(store, settings, language_model=model).find_matching_jobs(
        MatchCriteria(seeker_id="s1", employment_types=["full-time"])
    )
    assert [r.job_id for r in results] == ["job-1"]
    assert results[0].insight in insight_templates(results[0].job)


# ── caching ──────────────────────────────────────────────────────────────

def test_cached_results_are_served_before_recomputing(settings):
    backend = MemoryCache()
    store = InMemoryJobStore([make_job("a"), make_job("b", hours_ago=1)], {"s1": make_profile()})
    engine = _engine(store, settings, cache=backend)
    criteria = MatchCriteria(seeker_id="s1", employment_types=["full-time"])

    first = engine.find_matching_jobs(criteria)
    store.jobs.clear()
    second = engine.find_matching_jobs(criteria)

    assert [r.job_id for r in second] == [r.job_id for r in first] == ["a", "b"]
    assert [r.match_score for r in second] == [r.match_score for r in first]


def test_larger_limit_is_not_served_a_shorter_cached_list(settings):
    backend = MemoryCache()
    store = InMemoryJobStore([make_job(f"job-{i}", hours_ago=i) for i in range(6)], {"s1": make_profile()})
    engine = _engine(store, settings, cache=backend)
    criteria = MatchCriteria(seeker_id="s1", employment_types=["full-time"])

    assert len(engine.find_matching_jobs(criteria, limit=2)) == 2
    assert len(engine.find_matching_jobs(criteria, limit=5)) == 5


@pytest.mark.parametrize("limits", [(2, 5), (5, 2), (6, 1), (1, 6), (3, 3)])
def test_cache_hits_match_fresh_results_for_any_limit(settings, limits):
    jobs = [make_job(f"job-{i}", hours_ago=i, is_urgent=i % 3 == 0) for i in range(6)]
    criteria = MatchCriteria(seeker_id="s1", employment_types=["full-time"])
    warm = _engine(InMemoryJobStore(jobs, {"s1": make_profile()}), settings, cache=MemoryCache())

    for limit in limits:
        warm.find_matching_jobs(criteria, limit=limit)
    for limit in limits:
        fresh = _engine(InMemoryJobStore(jobs, {"s1": make_profile()}), settings, cache=MemoryCache())
        expected = [(r.job_id, r.match_score) for r in fresh.find_matching_jobs(criteria, limit=limit)]
        cached = [(r.job_id, r.match_score) for r in warm.find_matching_jobs(criteria, limit=limit)]
        assert cached == expected


def test_recommendations_for_a_larger_limit_are_recomputed(settings):
    profile = make_profile(preferred_locations=["Cape Town"], expected_salary=SalaryRange(3000, 6000))
    store = InMemoryJobStore([make_job(f"job-{i}", hours_ago=i) for i in range(6)], {"s1": profile})
    engine = _engine(store, settings, cache=MemoryCache())

    assert len(engine.get_recommendations("s1", limit=2)) == 2
    assert len(engine.get_recommendations("s1", limit=6)) == 6


def test_degraded_recommendations_are_not_cached(settings):
    backend = MemoryCache()
    profile = make_profile(preferred_locations=["Cape Town"], expected_salary=SalaryRange(3000, 6000))
    store = FlakyStore([make_job(f"job-{i}", hours_ago=i) for i in range(3)], {"s1": profile}, failures=1)
    engine = _engine(store, settings, cache=backend)

    degraded = engine.get_recommendations("s1")
    assert [r.match_reason for r in degraded] == [BASIC_MATCH_REASON] * 3
    assert backend.get(ResultCache.recommendation_key("s1", 10)) is None

    recovered = engine.get_recommendations("s1")
    assert all(r.match_reason != BASIC_MATCH_REASON for r in recovered)
    assert backend.get(ResultCache.recommendation_key("s1", 10)) is not None


def test_anonymous_searches_are_not_cached(settings):
    backend = MemoryCache()
    _engine(InMemoryJobStore([make_job()]), settings, cache=backend).find_matching_jobs(FULL_TIME)
    assert len(backend) == 0


def test_empty_candidate_set_is_not_cached(settings):
    backend = MemoryCache()
    store = InMemoryJobStore([], {"s1": make_profile()})
    results = _engine(store, settings, cache=backend).find_matching_jobs(MatchCriteria(seeker_id="s1"))
    assert results == []
    assert len(backend) == 0


def test_cache_outage_does_not_break_matching(settings):
    store = InMemoryJobStore([make_job()], {"s1": make_profile()})
    results = _engine(store, settings, cache=BrokenCache()).find_matching_jobs(
        MatchCriteria(seeker_id="s1", employment_types=["full-time"])
    )
    assert [r.job_id for r in results] == ["job-1"]


# ── degradation ──────────────────────────────────────────────────────────

def test_store_failure_during_scoring_uses_basic_matching(settings):
    store = FlakyStore([make_job(f"job-{i}", hours_ago=i) for i in range(3)], failures=1)
    results = _engine(store, settings).find_matching_jobs(FULL_TIME)

    assert [r.match_score for r in results] == [0.7, 0.65, 0.6]
    assert [r.job_id for r in results] == ["job-0", "job-1", "job-2"]
    assert all(r.match_reason == BASIC_MATCH_REASON for r in results)
    assert all(r.insight in insight_templates(r.job) for r in results)


def test_basic_matching_stops_at_threshold(settings):
    store = FlakyStore([make_job(f"job-{i}", hours_ago=i) for i in range(12)], failures=1)
    results = _engine(store, settings).find_matching_jobs(FULL_TIME)
    assert len(results) == 8
    assert results[-1].match_score == 0.35
    assert all(r.match_score > settings.min_match_score for r in results)


def test_basic_matching_uses_urgent_insight(settings):
    store = FlakyStore([make_job(is_urgent=True)], failures=1)
    results = _engine(store, settings).find_matching_jobs(FULL_TIME)
    assert results[0].insight.startswith("Urgent hiring")


def test_scoring_exception_uses_basic_matching(settings):
    def explode(job, criteria, profile, cap):
        raise ValueError("bad posting")

    engine = _engine(InMemoryJobStore([make_job()]), settings)
    engine.factors.append(Factor("broken", explode, 0.1))
    results = engine.find_matching_jobs(FULL_TIME)
    assert [r.match_score for r in results] == [0.7]
    assert results[0].match_reason == BASIC_MATCH_REASON


def test_total_store_outage_returns_empty(settings):
    store = FlakyStore([make_job()], failures=2)
    assert _engine(store, settings).find_matching_jobs(FULL_TIME) == []
    assert len(store.calls) == 2


def test_profile_lookup_failure_scores_anonymously(settings):
    class NoProfiles(InMemoryJobStore):
        def find_profile(self, seeker_id):
            raise StoreUnavailable("profiles table locked")

    results = _engine(NoProfiles([make_job()]), settings).find_matching_jobs(
        MatchCriteria(seeker_id="s1", employment_types=["full-time"])
    )
    assert [r.job_id for r in results] == ["job-1"]


# ── search recording and cancellation ────────────────────────────────────

def test_search_is_recorded_once(settings):
    store = InMemoryJobStore([make_job()])
    criteria = MatchCriteria(keywords="kitchen", location="Cape Town", employment_types=["full-time"])
    results = _engine(store, settings).find_matching_jobs(criteria)

    assert len(store.searches) == 1
    entry = store.searches[0]
    assert entry["query"] == "kitchen"
    assert entry["filters"] == {"location": "Cape Town", "employment_types": ["full-time"]}
    assert entry["result_count"] == len(results) == 1


def test_recording_failure_does_not_affect_results(settings):
    class ReadOnly(InMemoryJobStore):
        def record_search(self, *args, **kwargs):
            raise StoreUnavailable("read-only replica")

    results = _engine(ReadOnly([make_job()]), settings).find_matching_jobs(FULL_TIME)
    assert len(results) == 1


def test_cancelled_search_returns_nothing_and_skips_cache(settings):
    backend = MemoryCache()
    cancel = threading.Event()
    cancel.set()
    store = InMemoryJobStore([make_job()], {"s1": make_profile()})
    results = _engine(store, settings, cache=backend).find_matching_jobs(
        MatchCriteria(seeker_id="s1", employment_types=["full-time"]), cancel=cancel
    )
    assert results == []
    assert len(backend) == 0


# ── recommendations ──────────────────────────────────────────────────────

def test_recommendations_without_profile_are_popular_jobs(settings):
    store = InMemoryJobStore([
        make_job("quiet", view_count=5),
        make_job("busy", view_count=500),
        make_job("steady", view_count=50),
    ])
    results = _engine(store, settings).get_recommendations("unknown-seeker")

    assert [r.job_id for r in results] == ["busy", "steady", "quiet"]
    assert [r.match_score for r in results] == [0.6, 0.57, 0.54]
    assert all(r.match_reason == POPULAR_MATCH_REASON for r in results)
    assert all(r.insight == POPULAR_INSIGHT for r in results)


def test_popular_jobs_stop_at_threshold(settings):
    store = InMemoryJobStore([make_job(f"job-{i}", view_count=i) for i in range(15)])
    results = _engine(store, settings).get_recommendations("nobody", limit=20)
    assert len(results) == 10
    assert results[-1].match_score == 0.33


def test_recommendations_use_profile_preferences_and_cache(settings):
    backend = MemoryCache()
    profile = make_profile(preferred_locations=["Cape Town"], expected_salary=SalaryRange(3000, 6000))
    store = InMemoryJobStore(
        [make_job("cpt"), make_job("dbn", city="Durban", region="KwaZulu-Natal")],
        {"s1": profile},
    )
    engine = _engine(store, settings, cache=backend)

    results = engine.get_recommendations("s1")
    assert [r.job_id for r in results] == ["cpt"]
    assert any("Salary range" in reason for reason in results[0].reasons)
    assert backend.get(ResultCache.recommendation_key("s1", 10)) is not None

    store.jobs.clear()
    assert [r.job_id for r in engine.get_recommendations("s1")] == ["cpt"]


def test_recommendation_failure_falls_back_to_popular(settings, monkeypatch):
    store = InMemoryJobStore([make_job(view_count=3)], {"s1": make_profile()})
    engine = _engine(store, settings)

    def boom(*args, **kwargs):
        raise RuntimeError("matcher crashed")

    monkeypatch.setattr(engine.profiles, "resolve", boom)
    results = engine.get_recommendations("s1")
    assert [r.match_reason for r in results] == [POPULAR_MATCH_REASON]


def test_popular_lookup_failure_returns_empty(settings):
    assert _engine(FlakyStore([make_job()], failures=5), settings).get_recommendations("nobody") == []


# ── wiring ───────────────────────────────────────────────────────────────

def test_build_orchestrator_without_keys_uses_fallbacks(settings):
    engine = build_orchestrator(InMemoryJobStore(), settings)
    assert isinstance(engine.cache.backend, MemoryCache)
    assert isinstance(engine.insights.language_model, DisabledLanguageModel)


@pytest.mark.parametrize("workers", [1, 8])
def test_worker_count_does_not_change_results(settings, workers):
    settings.max_workers = workers
    store = InMemoryJobStore([make_job(f"job-{i}", hours_ago=i, is_urgent=i % 2 == 0) for i in range(10)])
    results = _engine(store, settings).find_matching_jobs(FULL_TIME)
    assert [r.job_id for r in results] == [
        "job-0", "job-2", "job-4", "job-6", "job-8", "job-1", "job-3", "job-5", "job-7", "job-9",
    ]
