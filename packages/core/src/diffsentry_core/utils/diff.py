"""Diff segmentation: split an oversized unified diff into reviewable chunks."""

from __future__ import annotations

from typing import TYPE_CHECKING

from diffsentry_core.models import DiffChunk

if TYPE_CHECKING:
    from diffsentry_core.models import ChangedFile

MAX_HEADER_LINES = 10
MAX_CHUNK_LINES = 100

# A file is only segmented when both thresholds are exceeded; small or
# mostly-deleted diffs go to the model in one request.
LARGE_DIFF_CHARS = 3000
LARGE_DIFF_MIN_ADDITIONS = 50


def needs_chunking(file: ChangedFile) -> bool:
    patch = file.patch or ""
    return len(patch) > LARGE_DIFF_CHARS and file.additions > LARGE_DIFF_MIN_ADDITIONS


def _is_addition(line: str) -> bool:
    return line.startswith("+") and not line.startswith("+++")


def _is_deletion(line: str) -> bool:
    return line.startswith("-") and not line.startswith("---")


def split_into_chunks(patch: str) -> list[DiffChunk]:
    """Split a unified diff into an ordered list of DiffChunk.

    Lines preceding the first ``@@`` header (at most MAX_HEADER_LINES of them)
    are treated as the file header and repeated at the top of every chunk.
    A new chunk starts at every ``@@`` header, and a chunk that grows past
    MAX_CHUNK_LINES is closed early so no single request grows unbounded.

    A diff without any ``@@`` header is returned whole as a single chunk.
    """
    lines = patch.split("\n") if patch else []

    if not any(line.startswith("@@") for line in lines):
        return [
            DiffChunk(
                lines=lines,
                additions=sum(1 for line in lines if _is_addition(line)),
                deletions=sum(1 for line in lines if _is_deletion(line)),
            )
        ]

    header: list[str] = []
    for line in lines[:MAX_HEADER_LINES]:
        if line.startswith("@@"):
            break
        header.append(line)

    chunks: list[DiffChunk] = []
    current = DiffChunk(header=list(header))

    for line in lines[len(header) :]:
        if line.startswith("@@"):
            if current.lines:
                chunks.append(current)
                current = DiffChunk(header=list(header))
            current.lines.append(line)
            continue

        current.lines.append(line)
        if _is_addition(line):
            current.additions += 1
        elif _is_deletion(line):
            current.deletions += 1

        if len(current.lines) > MAX_CHUNK_LINES:
            chunks.append(current)
            current = DiffChunk(header=list(header))

    if current.lines:
        chunks.append(current)

    return chunks
