"""Core PR review orchestration."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable

from diffsentry_core.comments import (
    build_summary_body,
    existing_comment_keys,
    filter_duplicate_comments,
    format_comment_body,
)
from diffsentry_core.parsing import parse_review_comments
from diffsentry_core.prompt import build_prompt
from diffsentry_core.providers.base import ModelError, Unreachable
from diffsentry_core.utils.code import is_reviewable_file
from diffsentry_core.utils.diff import needs_chunking, split_into_chunks

if TYPE_CHECKING:
    from diffsentry_core.gh.pull_request import RepositoryClient
    from diffsentry_core.models import ChangedFile, PullRequestInfo, ReviewComment
    from diffsentry_core.providers.base import BaseModelClient

logger = logging.getLogger(__name__)


@dataclass
class ReviewSummary:
    """Result of one review_pull_request() run that got as far as the model."""

    repo: str
    pr_number: int
    head_sha: str
    reviewed_files: list[str] = field(default_factory=list)
    failed_files: list[str] = field(default_factory=list)
    comments: list[ReviewComment] = field(default_factory=list)
    posted: bool = False
    post_error: str | None = None
    reviewed_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


class PullRequestReviewer:
    """Reviews one pull request end to end.

    Files are reviewed one after another; chunks of an oversized file are
    separated by ``chunk_delay`` seconds to stay under provider rate limits.
    """

    def __init__(
        self,
        client: RepositoryClient,
        model: BaseModelClient,
        config: dict,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.client = client
        self.model = model
        self.max_files = config.get("max_files", 40)
        self.max_lines_per_file = config.get("max_lines_per_file", 1500)
        self.exclude = config.get("exclude", [])
        self.chunk_delay = config.get("chunk_delay", 1)
        self.model_retries = config.get("model_retries", 0)
        self._sleep = sleep

    def review_pull_request(self, owner: str, repo: str, pr_number: int) -> ReviewSummary | None:
        """Review a pull request and post one batched COMMENT review.

        Returns None when there is nothing to review (draft, closed, no
        reviewable files). Errors fetching the pull request or its files
        propagate; per-file model and parse failures do not. A rejected post
        is logged and recorded in ``post_error`` so the commit is not
        re-reviewed on every trigger.
        """
        slug = f"{owner}/{repo}#{pr_number}"
        logger.info("Starting AI review for %s", slug)

        pr = self.client.get_pull_request(owner, repo, pr_number)
        if pr.draft:
            logger.info("Skipping draft PR %s", slug)
            return None
        if pr.state != "open":
            logger.info("Skipping closed PR %s", slug)
            return None

        files = self.client.list_changed_files(owner, repo, pr_number)
        if not files:
            logger.info("No files changed in %s", slug)
            return None

        reviewable = [f for f in files if is_reviewable_file(f, self.max_lines_per_file, self.exclude)]
        reviewable = reviewable[: self.max_files]
        if not reviewable:
            logger.info("No reviewable files found in %s", slug)
            return None

        logger.info("Reviewing %d file(s) in %s", len(reviewable), slug)
        summary = ReviewSummary(repo=f"{owner}/{repo}", pr_number=pr_number, head_sha=pr.head_sha)

        all_comments: list[ReviewComment] = []
        for file in reviewable:
            if not file.patch:
                continue
            logger.info("Analyzing %s", file.path)
            try:
                comments = self.review_file(file, pr)
            except Exception as e:
                logger.warning("Failed to review file %s: %s", file.path, e)
                summary.failed_files.append(file.path)
                continue
            summary.reviewed_files.append(file.path)
            all_comments.extend(comments)

        existing = self.client.list_existing_attributed_comments(owner, repo, pr_number)
        new_comments = filter_duplicate_comments(all_comments, existing_comment_keys(existing))
        summary.comments = new_comments

        if not new_comments:
            logger.info("No new issues found in %s", slug)
            return summary

        try:
            self.client.post_review(
                owner,
                repo,
                pr_number,
                build_summary_body(new_comments),
                [{"path": c.path, "line": c.line, "body": format_comment_body(c)} for c in new_comments],
            )
        except Exception as e:
            logger.error("Failed to post review for %s: %s", slug, e)
            summary.post_error = str(e)
            return summary
        summary.posted = True
        logger.info("Posted %d review comment(s) for %s", len(new_comments), slug)
        return summary

    def review_file(self, file: ChangedFile, pr: PullRequestInfo) -> list[ReviewComment]:
        if not needs_chunking(file):
            prompt = build_prompt(file.path, file.patch or "", file.additions, file.deletions, pr.title)
            return _anchor(self._ask(prompt, file.path), file.path)

        chunks = split_into_chunks(file.patch or "")
        logger.info("Large file detected (%d chars), processing %d chunk(s): %s", len(file.patch), len(chunks), file.path)

        comments: list[ReviewComment] = []
        for i, chunk in enumerate(chunks, 1):
            label = f"{file.path}[{i}/{len(chunks)}]"
            prompt = build_prompt(file.path, chunk.content, chunk.additions, chunk.deletions, pr.title)
            try:
                comments.extend(self._ask(prompt, label))
            except ModelError as e:
                logger.warning("Failed to review chunk %s: %s", label, e)
            if i < len(chunks):
                self._sleep(self.chunk_delay)

        logger.info("Completed chunked review of %s: %d issue(s) found", file.path, len(comments))
        return _anchor(comments, file.path)

    def _ask(self, prompt: str, label: str) -> list[ReviewComment]:
        response = self._complete_with_retry(prompt)
        return parse_review_comments(response.text, label)

    def _complete_with_retry(self, prompt: str):
        """Call the model, retrying only network failures with exponential backoff.

        Provider errors, safety blocks and empty responses are answers, not
        outages, so they are raised straight away.
        """
        attempt = 0
        while True:
            try:
                return self.model.complete(prompt)
            except Unreachable as e:
                if attempt >= self.model_retries:
                    raise
                delay = 2**attempt
                attempt += 1
                logger.warning(
                    "Model unreachable (attempt %d/%d): %s. Retrying in %ds...",
                    attempt,
                    self.model_retries + 1,
                    e,
                    delay,
                )
                self._sleep(delay)


def _anchor(comments: list[ReviewComment], path: str) -> list[ReviewComment]:
    """Pin every comment to the file that was reviewed.

    The model only ever sees one file per request but may echo a different
    path (often the ``file.ts`` from the prompt example); GitHub rejects the
    whole review if any comment names a file outside the diff.
    """
    anchored = []
    for c in comments:
        if c.path != path:
            logger.debug("Re-anchoring comment from %s to %s", c.path, path)
            c = replace(c, path=path)
        anchored.append(c)
    return anchored
