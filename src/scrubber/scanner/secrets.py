"""Secret classifier: line-by-line detection of credential-shaped tokens."""

from __future__ import annotations

import logging

from scrubber.scanner.models import Range
from scrubber.scanner.patterns import IGNORE_LINE_MARKER, INDICATORS, SECRET_PATTERNS

logger = logging.getLogger(__name__)

# Lines on each side of a match searched for an indicator in strict mode
_INDICATOR_WINDOW = 5


def scan_secrets(content: str, strict: bool = True) -> list[tuple[Range, str]]:
    """Scan content for potential secret keys.

    Each line yields at most one finding: the first catalog pattern that
    matches. A line directly below the line-ignore marker is skipped.

    In strict mode a match only counts when an indicator name (``api_key``,
    ``AUTH_TOKEN``, ...) appears within five lines of it. The first match
    without one ends the scan and the whole file is reported clean.
    """
    lines = content.split("\n")
    results: list[tuple[Range, str]] = []

    for i, line in enumerate(lines):
        for pattern in SECRET_PATTERNS:
            match = pattern.regex.search(line)
            if not match:
                continue

            if i > 0 and IGNORE_LINE_MARKER in lines[i - 1]:
                break

            if strict and not _has_indicator(lines, i):
                logger.debug(
                    "Strict mode: no indicator near line %d, discarding file results",
                    i + 1,
                )
                return []

            results.append(
                (
                    Range.of(i, match.start(), i, match.end()),
                    f"Potential secret key detected: {match.group(0)}",
                )
            )
            break

    return results


def _has_indicator(lines: list[str], index: int) -> bool:
    window = "\n".join(
        lines[max(0, index - _INDICATOR_WINDOW) : min(len(lines), index + _INDICATOR_WINDOW)]
    )
    return any(indicator in window for indicator in INDICATORS)
