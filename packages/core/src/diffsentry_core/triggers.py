"""Logic shared by the two ways a review gets triggered: polling and webhooks.

Both go through one ReviewDispatcher, which owns the idempotency check, so a
commit reviewed via one path is skipped by the other.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Iterable

from diffsentry_core.config import parse_repository

if TYPE_CHECKING:
    from diffsentry_core.gh.pull_request import RepositoryClient
    from diffsentry_core.reviewer import PullRequestReviewer
    from diffsentry_store.base import BaseTracker

logger = logging.getLogger(__name__)

RELEVANT_ACTIONS = ("opened", "synchronize", "reopened")


class ReviewDispatcher:
    def __init__(self, reviewer: PullRequestReviewer, tracker: BaseTracker):
        self.reviewer = reviewer
        self.tracker = tracker

    def is_reviewed(self, owner: str, repo: str, number: int, head_sha: str) -> bool:
        return not self.tracker.should_review(f"{owner}/{repo}", number, head_sha)

    def review_if_changed(self, owner: str, repo: str, number: int, head_sha: str) -> bool:
        """Review the pull request unless ``head_sha`` was already reviewed.

        Returns True when a review ran. Exceptions from the reviewer propagate
        and leave the commit unmarked, so it is retried on the next trigger.
        """
        slug = f"{owner}/{repo}"
        if not self.tracker.should_review(slug, number, head_sha):
            logger.debug("Skipping %s#%d - already reviewed commit %s", slug, number, head_sha[:7])
            return False

        self.reviewer.review_pull_request(owner, repo, number)
        self.tracker.mark_reviewed(slug, number, head_sha)
        return True


class PollingScanner:
    """Periodic sweep over every watched repository's open pull requests."""

    def __init__(
        self,
        client: RepositoryClient,
        dispatcher: ReviewDispatcher,
        repositories: Iterable[str],
        review_delay: float = 5,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.client = client
        self.dispatcher = dispatcher
        self.repositories = list(repositories)
        self.review_delay = review_delay
        self._sleep = sleep

    def scan_all(self) -> int:
        """Scan every repository; one failing repository never stops the rest."""
        if not self.repositories:
            logger.info("No repositories configured. Add them under 'repositories' in the config file.")
            return 0

        reviewed = 0
        for slug in self.repositories:
            try:
                owner, repo = parse_repository(slug)
                reviewed += self.scan_repository(owner, repo)
            except Exception as e:
                logger.error("Error scanning %s: %s", slug, e)
        return reviewed

    def scan_repository(self, owner: str, repo: str) -> int:
        reviewed = 0
        for pr in self.client.list_open_pull_requests(owner, repo):
            key = f"{owner}/{repo}#{pr.number}"
            try:
                if not self.dispatcher.review_if_changed(owner, repo, pr.number, pr.head_sha):
                    continue
            except Exception as e:
                logger.error("Failed to review %s: %s", key, e)
                continue
            reviewed += 1
            self._sleep(self.review_delay)

        if reviewed:
            logger.info("%s/%s: %d pull request(s) reviewed", owner, repo, reviewed)
        return reviewed


@dataclass
class PullRequestEvent:
    owner: str
    repo: str
    number: int
    action: str
    head_sha: str

    @property
    def is_relevant(self) -> bool:
        return self.action in RELEVANT_ACTIONS


def parse_pull_request_event(payload: dict) -> PullRequestEvent | None:
    """Extract the review target from a GitHub ``pull_request`` webhook payload.

    Returns None for payloads that are not pull request events.
    """
    pr = payload.get("pull_request")
    if not isinstance(pr, dict):
        return None
    repository = payload.get("repository") or {}
    return PullRequestEvent(
        owner=(repository.get("owner") or {}).get("login", ""),
        repo=repository.get("name", ""),
        number=pr.get("number", 0),
        action=payload.get("action", ""),
        head_sha=(pr.get("head") or {}).get("sha", ""),
    )
