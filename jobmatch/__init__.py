"""Job matching engine: candidate selection, multi-factor scoring, insights and caching."""

from .matcher import MatchOrchestrator, SearchCancelled, build_orchestrator
from .models import JobPosting, MatchCriteria, MatchResult, SalaryRange, SeekerProfile

__all__ = [
    "MatchOrchestrator", "SearchCancelled", "build_orchestrator",
    "JobPosting", "MatchCriteria", "MatchResult", "SalaryRange", "SeekerProfile",
]
__version__ = "0.1.0"
