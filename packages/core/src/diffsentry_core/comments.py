"""Comment deduplication and the exact text of everything posted to GitHub."""

from __future__ import annotations

from typing import Iterable

from diffsentry_core.models import ExistingComment, ReviewComment, comment_key

INLINE_BANNER = "🤖 **AI CODE REVIEW** 🤖"
INLINE_FOOTER = (
    "---\n🤖 *This comment was automatically generated by Gemini AI* 🤖\n*Self-hosted PR Reviewer - Not a human review*"
)
SUMMARY_BANNER = "🤖 **AI CODE REVIEW SUMMARY** 🤖"
SUMMARY_FOOTER = "---\n🤖 *Automatically generated by Self-hosted Gemini AI Reviewer*"
ESCALATION_NOTICE = "⚠️ **This PR has critical issues that should be addressed before merging.**"

# A review whose body contains any of these was posted by this system.
ATTRIBUTION_MARKERS = ("AI CODE REVIEW", "Generated by Gemini AI", "generated by Self-hosted Gemini AI")

_SEVERITY_EMOJI = {"error": "🔴", "warning": "🟡", "info": "🔵"}


def is_attributed(body: str | None) -> bool:
    return bool(body) and any(marker in body for marker in ATTRIBUTION_MARKERS)


def existing_comment_keys(existing: Iterable[ExistingComment]) -> set[str]:
    return {comment_key(c.path, c.line) for c in existing}


def filter_duplicate_comments(comments: list[ReviewComment], existing_keys: set[str]) -> list[ReviewComment]:
    """Drop comments whose ``path:line`` is already covered on the pull request.

    Only the position is compared: a different message on an already-commented
    line is suppressed too. Within ``comments`` the first finding for a
    position wins, so overlapping chunks never post twice on one line.
    """
    seen = set(existing_keys)
    kept = []
    for c in comments:
        if c.key in seen:
            continue
        seen.add(c.key)
        kept.append(c)
    return kept


def format_comment_body(comment: ReviewComment) -> str:
    body = (
        f"{INLINE_BANNER}\n\n"
        f"{_SEVERITY_EMOJI[comment.severity]} **{comment.severity.upper()}**: {comment.message}"
    )
    if comment.suggestion:
        body += f"\n\n**🔧 AI Suggested fix:**\n```suggestion\n{comment.suggestion}\n```"
    return f"{body}\n\n{INLINE_FOOTER}"


def severity_counts(comments: Iterable[ReviewComment]) -> dict[str, int]:
    counts = {"error": 0, "warning": 0, "info": 0}
    for c in comments:
        counts[c.severity] += 1
    return counts


def build_summary_body(comments: list[ReviewComment]) -> str:
    counts = severity_counts(comments)

    if not comments:
        return f"🤖 **AI CODE REVIEW COMPLETE** 🤖\n\n✅ No issues found in this pull request.\n\n{SUMMARY_FOOTER}"

    lines = [f"{SUMMARY_BANNER}\n"]
    if counts["error"]:
        lines.append(f"🔴 **{counts['error']}** error(s) found")
    if counts["warning"]:
        lines.append(f"🟡 **{counts['warning']}** warning(s) found")
    if counts["info"]:
        lines.append(f"🔵 **{counts['info']}** info item(s) found")

    summary = "\n".join(lines)
    summary += "\n\nPlease review the inline AI-generated comments for detailed feedback."
    if counts["error"]:
        summary += f"\n\n{ESCALATION_NOTICE}"
    return f"{summary}\n\n{SUMMARY_FOOTER}"
