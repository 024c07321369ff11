"""GitHub token resolution.

The token comes from GITHUB_TOKEN (read by load_config) when set. Otherwise
the session stored by `gh auth login` is used, so a local run needs no
personal access token.
"""

from __future__ import annotations

import logging
import subprocess

logger = logging.getLogger(__name__)

GH_TIMEOUT = 5


def gh_cli_token() -> str | None:
    """Return the token of the current GitHub CLI session, or None."""
    try:
        result = subprocess.run(["gh", "auth", "token"], capture_output=True, text=True, timeout=GH_TIMEOUT)
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return None
    if result.returncode != 0:
        return None
    return result.stdout.strip() or None


def resolve_github_token(config: dict) -> str | None:
    """Pick the token the review pipeline authenticates with.

    Never raises; require_credentials() turns a None into a UsageError.
    """
    if config.get("github_token"):
        return config["github_token"]
    token = gh_cli_token()
    if token:
        logger.debug("Using GitHub token from the gh CLI session")
    return token
