"""Abstract idempotency tracker interface.

Both trigger paths (poll loop and webhook handler) share one tracker
instance, constructed at process start and passed in, so a commit reviewed
through one path is not reviewed again through the other.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from diffsentry_store.models import ReviewRecord


class BaseTracker(ABC):
    """Maps (repository, pull request) to the last reviewed commit."""

    @abstractmethod
    def should_review(self, repo: str, pr_number: int, head_sha: str) -> bool:
        """Return True if the PR is unseen or ``head_sha`` differs from the stored commit."""

    @abstractmethod
    def mark_reviewed(self, repo: str, pr_number: int, head_sha: str) -> None:
        """Record ``head_sha`` as reviewed, creating or updating the record in place."""

    @abstractmethod
    def sweep(self) -> int:
        """Evict records older than the retention window and return how many were removed."""

    @abstractmethod
    def get(self, repo: str, pr_number: int) -> ReviewRecord | None:
        """Return the record for a pull request, or None."""

    @abstractmethod
    def __len__(self) -> int:
        """Number of pull requests currently tracked."""
