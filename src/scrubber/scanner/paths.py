"""File name classifier: flags sensitive file names and build/vendor folders."""

from __future__ import annotations

import re

from scrubber.scanner.patterns import FILE_NAME_PATTERNS, FOLDER_NAME_PATTERN

CLEAN = 0
FILE_NAME_VIOLATION = 1
FOLDER_NAME_VIOLATION = 2

_SEPARATORS = re.compile(r"[/\\]")


def split_path(path: str) -> tuple[str, str]:
    """Split a path into (directory, file name) on either separator."""
    parts = _SEPARATORS.split(path)
    return "/".join(parts[:-1]), parts[-1]


def classify_path(path: str) -> int:
    """Classify a path by name.

    Returns 1 if the file name is sensitive, 2 if a containing folder is,
    0 otherwise. A file name hit always wins over a folder hit.
    """
    directory, file_name = split_path(path)

    if any(p.search(file_name) for p in FILE_NAME_PATTERNS):
        return FILE_NAME_VIOLATION

    if FOLDER_NAME_PATTERN.search(directory):
        return FOLDER_NAME_VIOLATION
    return CLEAN
