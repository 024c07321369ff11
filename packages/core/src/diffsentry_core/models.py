"""Data types shared across the review pipeline.

These are plain dataclasses so the pipeline can be driven by fakes in tests
and by PyGithub objects in production without either leaking into the other.
"""

from __future__ import annotations

from dataclasses import dataclass, field

SEVERITIES = ("error", "warning", "info")


@dataclass
class ChangedFile:
    """One file touched by a pull request.

    ``patch`` is None for binary files and for diffs GitHub refuses to render.
    """

    path: str
    status: str  # "added" | "modified" | "removed" | "renamed"
    additions: int = 0
    deletions: int = 0
    changes: int = 0
    patch: str | None = None


@dataclass
class DiffChunk:
    """A self-contained slice of one file's patch.

    Every chunk repeats the file header so it can be reviewed on its own.
    """

    header: list[str] = field(default_factory=list)
    lines: list[str] = field(default_factory=list)
    additions: int = 0
    deletions: int = 0

    @property
    def content(self) -> str:
        return "\n".join(self.header + self.lines)


@dataclass
class ReviewComment:
    path: str
    line: int  # 1-based, new side of the diff
    severity: str  # one of SEVERITIES
    message: str
    suggestion: str | None = None

    @property
    def key(self) -> str:
        return comment_key(self.path, self.line)


@dataclass
class ExistingComment:
    """A comment this system already posted on the pull request."""

    path: str
    line: int


@dataclass
class PullRequestInfo:
    number: int
    draft: bool
    state: str  # "open" | "closed"
    head_sha: str
    title: str = ""


def comment_key(path: str, line: int) -> str:
    return f"{path}:{line}"
