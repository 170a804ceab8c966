#!/usr/bin/env python3
"""Run the matching engine against a YAML seed of postings and profiles."""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent))

from jobmatch.config import DATA_DIR, load_settings
from jobmatch.log import configure, get_logger
from jobmatch.models import MatchCriteria, SalaryRange
from jobmatch.search_log import CsvSearchLog

log = get_logger(__name__)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description=__doc__)
    p.add_argument("--seed", type=Path, default=DATA_DIR / "seed_jobs.yaml")
    p.add_argument("--seeker", help="seeker id from the seed profiles")
    p.add_argument("--keywords")
    p.add_argument("--location")
    p.add_argument("--region")
    p.add_argument("--salary", nargs=2, type=float, metavar=("MIN", "MAX"))
    p.add_argument("--type", dest="types", action="append", default=[])
    p.add_argument("--category", dest="categories", action="append", default=[])
    p.add_argument("--level", help="entry, mid or senior")
    p.add_argument("--limit", type=int, default=20)
    p.add_argument("--recommend", action="store_true", help="profile-driven recommendations for --seeker")
    p.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    p.add_argument("--log-file", action="store_true", help="also write logs/jobmatch_<date>.log")
    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(sys.argv[1:] if argv is None else argv)
    if args.verbose or args.log_file:
        configure(level="DEBUG" if args.verbose else None, log_file=args.log_file or None, force=True)
    if not args.seed.exists():
        print()
        print(f"  Seed file not found: {args.seed}")
        print()
        return 1

    from jobmatch.matcher import build_orchestrator
    from jobmatch.stores import seeded_store

    settings = load_settings()
    search_log = CsvSearchLog(settings.search_log_path) if settings.search_log_path else None
    engine = build_orchestrator(seeded_store(args.seed, search_log=search_log), settings)

    if args.recommend:
        if not args.seeker:
            log.error("--recommend needs --seeker")
            return 1
        results = engine.get_recommendations(args.seeker, limit=args.limit)
    else:
        criteria = MatchCriteria(
            seeker_id=args.seeker,
            keywords=args.keywords,
            location=args.location,
            region=args.region,
            salary_range=SalaryRange(*args.salary) if args.salary else None,
            employment_types=args.types,
            categories=args.categories,
            experience_level=args.level,
        )
        results = engine.find_matching_jobs(criteria, limit=args.limit)

    log.info("Matches: %d", len(results))
    for rank, match in enumerate(results, 1):
        job = match.job
        log.info("  #%d  %3.0f%%  %s @ %s (%s)", rank, match.match_score * 100, job.title, job.company, job.city)
        if match.match_reason:
            log.info("        why: %s", match.match_reason)
        if match.insight:
            log.info("        tip: %s", match.insight)
    if search_log is not None:
        log.info("Search log %s holds %d search(es)", search_log.path, len(search_log.entries()))
    return 0


if __name__ == "__main__":
    sys.exit(main())
