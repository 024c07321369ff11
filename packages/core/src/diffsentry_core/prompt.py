"""Prompt construction for a single file diff or diff chunk."""

from __future__ import annotations

SYSTEM_PROMPT = """Code security reviewer. Find critical bugs, security vulnerabilities, performance issues. Return ONLY valid JSON array.

Format: [{"path":"file.ts","line":1,"severity":"error|warning|info","message":"brief issue","suggestion":"concise fix"}]

Focus on: SQL injection, XSS, hardcoded secrets, command injection, path traversal, prototype pollution, insecure crypto.
Rules: Only significant issues, prioritize security/errors over style, use + line numbers, return [] if clean."""  # noqa: E501

TRUNCATION_MARKER = "\n... (content truncated for brevity)"

BASE_DIFF_LENGTH = 1500
MAX_EXTRA_DIFF_LENGTH = 1000


def max_diff_length(additions: int) -> int:
    """Character budget for the diff portion of a prompt.

    Larger changes get proportionally more room, capped at
    BASE_DIFF_LENGTH + MAX_EXTRA_DIFF_LENGTH.
    """
    return BASE_DIFF_LENGTH + min(max(additions, 0) * 10, MAX_EXTRA_DIFF_LENGTH)


def truncate_diff(diff: str, limit: int) -> str:
    """Cut ``diff`` to at most ``limit`` characters on a line boundary.

    A truncated diff always ends with TRUNCATION_MARKER so the model does not
    treat it as the complete change.
    """
    if len(diff) <= limit:
        return diff

    kept: list[str] = []
    length = 0
    for line in diff.split("\n"):
        # joined length of kept lines is length - 1 (no trailing newline)
        if length + len(line) > limit:
            break
        kept.append(line)
        length += len(line) + 1

    return "\n".join(kept) + TRUNCATION_MARKER


def build_prompt(path: str, diff: str, additions: int, deletions: int, pr_title: str | None = None) -> str:
    body = truncate_diff(diff, max_diff_length(additions))
    title_line = f"Pull request: {pr_title}\n" if pr_title else ""
    user_prompt = f"""{title_line}File: {path} (+{additions}/-{deletions})

{body}

JSON only:"""
    return f"{SYSTEM_PROMPT}\n\n{user_prompt}"
