"""Turn raw model text into validated ReviewComment objects.

Models wrap their JSON in prose, markdown fences, or get cut off by the
output token limit mid-element. Parsing tries, in order:

    1. the whole trimmed text
    2. the span from the first ``[`` to the last ``]``
    3. everything from the first ``[`` on, passed through repair_json_array()

and then validates each element on its own, so one malformed finding never
discards the others.
"""

from __future__ import annotations

import enum
import json
import logging

from diffsentry_core.models import SEVERITIES, ReviewComment

logger = logging.getLogger(__name__)

_CLOSERS = {"[": "]", "{": "}"}


class _ScanState(enum.Enum):
    DEFAULT = "default"
    IN_STRING = "in_string"
    ESCAPED = "escaped"


def repair_json_array(text: str) -> str:
    """Close a possibly-truncated JSON array so that it parses.

    ``text`` must start at the array's opening ``[``. The scanner tracks
    string/escape state and the stack of open brackets and braces, and
    remembers the offset just past the last object that closed as a direct
    element of the top-level array. When the input ends unbalanced, it is cut
    back to that offset (dropping the dangling partial element) and the
    brackets still open there are closed in order.

    Balanced input is returned unchanged.
    """
    text = text.strip()
    state = _ScanState.DEFAULT
    stack: list[str] = []
    cut_at = -1
    cut_stack: list[str] = []

    for i, char in enumerate(text):
        if state is _ScanState.ESCAPED:
            state = _ScanState.IN_STRING
            continue
        if state is _ScanState.IN_STRING:
            if char == "\\":
                state = _ScanState.ESCAPED
            elif char == '"':
                state = _ScanState.DEFAULT
            continue

        if char == '"':
            state = _ScanState.IN_STRING
        elif char in _CLOSERS:
            stack.append(char)
        elif char in ("]", "}"):
            if stack:
                stack.pop()
            if char == "}" and stack == ["["]:
                cut_at = i + 1
                cut_stack = list(stack)

    if not stack and state is _ScanState.DEFAULT:
        return text

    if cut_at == -1:
        # No complete element survived; keep only the opening bracket.
        cut_at = text.index("[") + 1 if "[" in text else 0
        cut_stack = ["["] if cut_at else []

    repaired = text[:cut_at]
    for opener in reversed(cut_stack):
        repaired += _CLOSERS[opener]
    return repaired


def _loads_array(candidate: str) -> list | None:
    try:
        data = json.loads(candidate)
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, list) else None


def _extract_array(raw: str, label: str) -> list | None:
    text = raw.strip()

    data = _loads_array(text)
    if data is not None:
        return data

    start = text.find("[")
    if start == -1:
        logger.debug("No JSON array found in model response for %s", label)
        return None

    end = text.rfind("]")
    if end > start:
        data = _loads_array(text[start : end + 1])
        if data is not None:
            logger.debug("Extracted embedded JSON array for %s", label)
            return data

    data = _loads_array(repair_json_array(text[start:]))
    if data is not None:
        logger.debug("Repaired truncated JSON array for %s", label)
    return data


def validate_comment(item) -> ReviewComment | None:
    """Return a ReviewComment for a well-formed element, or None."""
    if not isinstance(item, dict):
        return None

    path = item.get("path")
    message = item.get("message")
    severity = item.get("severity")
    line = item.get("line")

    if not isinstance(path, str) or not path.strip():
        return None
    if not isinstance(message, str) or not message.strip():
        return None
    if severity not in SEVERITIES:
        return None
    # bool is an int subclass; "line": true is not a line number.
    if isinstance(line, bool) or not isinstance(line, int) or line < 1:
        return None

    suggestion = item.get("suggestion")
    if not isinstance(suggestion, str) or not suggestion.strip():
        suggestion = None

    return ReviewComment(path=path, line=line, severity=severity, message=message, suggestion=suggestion)


def parse_review_comments(raw: str, label: str) -> list[ReviewComment]:
    """Parse a model response into valid review comments.

    ``label`` identifies the file (or chunk) in log messages. Never raises:
    an unrecoverable response yields an empty list.
    """
    logger.debug("Raw model response for %s: %s", label, raw)

    data = _extract_array(raw or "", label)
    if data is None:
        logger.warning("Could not parse model response for %s; skipping", label)
        return []

    comments = []
    for item in data:
        comment = validate_comment(item)
        if comment is None:
            logger.warning("Dropping invalid review comment for %s: %r", label, item)
            continue
        comments.append(comment)

    logger.debug("Parsed %d valid comment(s) for %s", len(comments), label)
    return comments
