"""Process-local idempotency state.

Nothing is persisted: a restart forgets every record, and the server-side
comment deduplication keeps that from producing duplicate comments. Likewise
the map is not shared across processes; a single-process deployment is
assumed. Within the process a lock guards the map, since webhook reviews
mark commits from worker threads while the sweep runs on the event loop.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable

from diffsentry_store.base import BaseTracker
from diffsentry_store.models import ReviewRecord

logger = logging.getLogger(__name__)

DEFAULT_RETENTION = timedelta(days=7)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MemoryTracker(BaseTracker):
    def __init__(self, retention: timedelta = DEFAULT_RETENTION, clock: Callable[[], datetime] = _utcnow):
        self.retention = retention
        self._clock = clock
        self._records: dict[tuple[str, int], ReviewRecord] = {}
        self._lock = threading.Lock()

    def should_review(self, repo: str, pr_number: int, head_sha: str) -> bool:
        with self._lock:
            record = self._records.get((repo, pr_number))
            if record is None or record.head_sha != head_sha:
                return True
            # Still open and unchanged: keep it from ageing out of the window.
            record.last_seen = self._clock()
            return False

    def mark_reviewed(self, repo: str, pr_number: int, head_sha: str) -> None:
        key = (repo, pr_number)
        with self._lock:
            record = self._records.get(key)
            if record is None:
                self._records[key] = ReviewRecord(
                    repo=repo, pr_number=pr_number, head_sha=head_sha, last_seen=self._clock()
                )
                return
            record.head_sha = head_sha
            record.last_seen = self._clock()

    def sweep(self) -> int:
        cutoff = self._clock() - self.retention
        with self._lock:
            stale = [key for key, record in self._records.items() if record.last_seen < cutoff]
            for key in stale:
                del self._records[key]
        if stale:
            logger.info("Cleaned up %d old PR record(s)", len(stale))
        return len(stale)

    def get(self, repo: str, pr_number: int) -> ReviewRecord | None:
        with self._lock:
            return self._records.get((repo, pr_number))

    def __len__(self) -> int:
        return len(self._records)
