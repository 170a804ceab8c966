"""Append-only CSV log of searches, with advisory file locking."""
from __future__ import annotations

import csv
import fcntl
import json
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator

from jobmatch.config import DATA_DIR
from jobmatch.log import get_logger

log = get_logger(__name__)

DEFAULT_SEARCH_LOG: Path = DATA_DIR / "searches.csv"
HEADERS: list[str] = [
    "searched_at", "seeker_id", "query", "filters", "result_count",
]


@contextmanager
def _locked(f, exclusive: bool = True) -> Iterator[None]:
    """Hold an advisory fcntl lock on *f* for the duration of the block."""
    try:
        fcntl.flock(f.fileno(), fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH)
    except OSError as exc:
        log.debug("Search log lock unavailable (%s); continuing unlocked", exc)
        yield
        return
    try:
        yield
    finally:
        fcntl.flock(f.fileno(), fcntl.LOCK_UN)


class CsvSearchLog:
    def __init__(self, path: Path | str | None = None) -> None:
        self.path = Path(path) if path else DEFAULT_SEARCH_LOG

    def ensure(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if self.path.exists():
            return
        with open(self.path, "w", newline="", encoding="utf-8") as f:
            with _locked(f):
                csv.writer(f).writerow(HEADERS)
        log.info("Created search log → %s", self.path.name)

    def record(
        self,
        seeker_id: str | None,
        query: str,
        filters: dict[str, Any],
        result_count: int,
    ) -> None:
        self.ensure()
        row = {
            "searched_at": datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S"),
            "seeker_id": seeker_id or "",
            "query": query,
            "filters": json.dumps(filters, sort_keys=True, default=str),
            "result_count": str(result_count),
        }
        with open(self.path, "a", newline="", encoding="utf-8") as f:
            with _locked(f):
                csv.DictWriter(f, fieldnames=HEADERS).writerow(row)
        log.debug("Logged search %r (%d results)", query, result_count)

    def entries(self) -> list[dict[str, str]]:
        self.ensure()
        with open(self.path, "r", encoding="utf-8") as f:
            with _locked(f, exclusive=False):
                return list(csv.DictReader(f))
