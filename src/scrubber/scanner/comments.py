"""Comment classifier: flags comments that open with a TODO/FIXME/HACK/FIX hint."""

from __future__ import annotations

from scrubber.scanner.models import Range
from scrubber.scanner.patterns import COMMENT_HINTS, COMMENT_PATTERNS, IGNORE_LINE_MARKER


def scan_comments(content: str) -> list[tuple[Range, str]]:
    """Scan content for hint comments of every supported syntax.

    Each syntax family is matched independently over the whole text, so a
    comment that looks like two families is reported twice. Only the first
    two whitespace-separated tokens of a comment are checked for a hint.
    """
    results: list[tuple[Range, str]] = []

    for pattern in COMMENT_PATTERNS.values():
        for match in pattern.finditer(content):
            comment = match.group(0)
            hint = _find_hint(comment)
            if hint is None:
                continue

            start = match.start()
            preceding = content[:start].split("\n")
            if len(preceding) > 1 and IGNORE_LINE_MARKER in preceding[-2]:
                continue

            start_line = len(preceding) - 1
            start_col = len(preceding[-1])
            comment_lines = comment.split("\n")
            end_line = start_line + len(comment_lines) - 1
            if len(comment_lines) > 1:
                end_col = len(comment_lines[-1])
            else:
                end_col = start_col + len(comment)

            results.append(
                (
                    Range.of(start_line, start_col, end_line, end_col),
                    f"Comment contains a {hint} hint",
                )
            )

    return results


def _find_hint(comment: str) -> str | None:
    head = " ".join(comment.split()[:2])
    for hint in COMMENT_HINTS:
        if hint in head:
            return hint
    return None
