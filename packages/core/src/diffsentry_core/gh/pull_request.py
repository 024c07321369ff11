"""Thin PyGithub wrapper exposing only what the review pipeline consumes."""

from __future__ import annotations

import logging

from github import Auth, Github, GithubException

from diffsentry_core.comments import is_attributed
from diffsentry_core.models import ChangedFile, ExistingComment, PullRequestInfo

logger = logging.getLogger(__name__)


def get_github(token: str) -> Github:
    return Github(auth=Auth.Token(token))


def _to_info(pr) -> PullRequestInfo:
    return PullRequestInfo(
        number=pr.number,
        draft=bool(pr.draft),
        state=pr.state,
        head_sha=pr.head.sha,
        title=pr.title or "",
    )


class RepositoryClient:
    """Repository access for the reviewer, keyed by owner and repository name."""

    def __init__(self, github: Github):
        self._gh = github

    def _repo(self, owner: str, repo: str):
        return self._gh.get_repo(f"{owner}/{repo}")

    def _pull(self, owner: str, repo: str, number: int):
        return self._repo(owner, repo).get_pull(number)

    def get_pull_request(self, owner: str, repo: str, number: int) -> PullRequestInfo:
        return _to_info(self._pull(owner, repo, number))

    def list_open_pull_requests(self, owner: str, repo: str, limit: int = 50) -> list[PullRequestInfo]:
        """Return open pull requests, most recently updated first."""
        pulls = self._repo(owner, repo).get_pulls(state="open", sort="updated", direction="desc")
        return [_to_info(pr) for pr in pulls[:limit]]

    def list_changed_files(self, owner: str, repo: str, number: int) -> list[ChangedFile]:
        return [
            ChangedFile(
                path=f.filename,
                status=f.status,
                additions=f.additions or 0,
                deletions=f.deletions or 0,
                changes=f.changes or 0,
                patch=f.patch,
            )
            for f in self._pull(owner, repo, number).get_files()
        ]

    def list_existing_attributed_comments(self, owner: str, repo: str, number: int) -> list[ExistingComment]:
        """Inline comments from earlier reviews posted by this system.

        Never raises: if the lookup fails the review goes ahead without
        deduplication rather than not at all.
        """
        existing: list[ExistingComment] = []
        try:
            pr = self._pull(owner, repo, number)
            for review in pr.get_reviews():
                if not is_attributed(review.body):
                    continue
                for c in pr.get_single_review_comments(review.id):
                    # c.line is None once the line is no longer in the current diff
                    # (e.g. after a force-push). Fall back to original_line in that case.
                    line = c.line if c.line is not None else getattr(c, "original_line", None)
                    if c.path and line:
                        existing.append(ExistingComment(path=c.path, line=line))
        except GithubException as e:
            logger.warning("Failed to fetch existing comments for %s/%s#%d: %s", owner, repo, number, e)
            return []
        return existing

    def post_review(self, owner: str, repo: str, number: int, summary_body: str, comments: list[dict]) -> None:
        """Post one batched review. Always a neutral COMMENT, never APPROVE or REQUEST_CHANGES."""
        pr = self._pull(owner, repo, number)
        pr.create_review(
            body=summary_body,
            event="COMMENT",
            comments=[{"path": c["path"], "line": c["line"], "side": "RIGHT", "body": c["body"]} for c in comments],
        )
