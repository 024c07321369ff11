from __future__ import annotations

import fnmatch
from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from diffsentry_core.models import ChangedFile

NON_REVIEWABLE_EXTENSIONS = (
    ".min.js",
    ".map",
    ".lock",  # e.g. package-lock.json, Pipfile.lock
    ".svg",
    ".png",
    ".jpg",
    ".jpeg",
    ".gif",
    ".pdf",
    ".zip",
    ".tar",
    ".gz",
    ".exe",
    ".dll",
    ".so",
    ".dylib",
)


def is_source_file(file_name: str) -> bool:
    return not file_name.lower().endswith(NON_REVIEWABLE_EXTENSIONS)


def is_excluded(filename: str, patterns: Iterable[str]) -> bool:
    """Return True if filename matches any exclude pattern.

    Supports:
    - fnmatch globs on the full path: "src/generated/*.py"
    - fnmatch globs on the basename: "*.snap", "*.pb.go"
    - Directory names/prefixes: "migrations/", "vendor" (matches any file within that tree)
    """
    for pattern in patterns:
        if fnmatch.fnmatch(filename, pattern):
            return True
        if fnmatch.fnmatch(filename.rsplit("/", 1)[-1], pattern):
            return True
        prefix = pattern.rstrip("/") + "/"
        if filename.startswith(prefix) or ("/" + prefix) in filename:
            return True
    return False


def is_reviewable_file(file: ChangedFile, max_lines_per_file: int, exclude: Iterable[str] = ()) -> bool:
    if file.status == "removed":
        return False
    if file.changes > max_lines_per_file:
        return False
    if not is_source_file(file.path):
        return False
    return not is_excluded(file.path, exclude)
