"""Idempotency tracking data model.

Decoupled from diffsentry_core so the tracker can be used and tested on its
own; the core only sees the BaseTracker interface.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass
class ReviewRecord:
    """The last commit reviewed on one pull request by this process."""

    repo: str  # "owner/name"
    pr_number: int
    head_sha: str
    last_seen: datetime  # UTC
