from .base import JobOrder, JobPredicate, JobStore, StoreUnavailable
from .memory import InMemoryJobStore, matches_predicate
from .seed import load_seed, seeded_store

__all__ = [
    "JobOrder", "JobPredicate", "JobStore", "StoreUnavailable",
    "InMemoryJobStore", "matches_predicate", "load_seed", "seeded_store",
]
