"""Scanner data models: positions, findings and the per-file result store."""

from __future__ import annotations

import enum
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from typing import NamedTuple


class Position(NamedTuple):
    """Zero-based line/column location inside scanned text."""

    line: int
    column: int


class Range(NamedTuple):
    """Span between two positions (end exclusive)."""

    start: Position
    end: Position

    @classmethod
    def of(cls, start_line: int, start_col: int, end_line: int, end_col: int) -> Range:
        return cls(Position(start_line, start_col), Position(end_line, end_col))


# Used for findings that concern the file as a whole rather than its text.
FILE_RANGE = Range.of(0, 0, 0, 1)


class FindingKind(enum.Enum):
    """Which classifier produced a finding."""

    FILE_PATH_VIOLATION = "file_path_violation"
    SECRET_DETECTED = "secret_detected"
    COMMENT_HINT = "comment_hint"


class Severity(enum.Enum):
    """Finding severity level."""

    WARNING = "warning"
    ERROR = "error"
    INFO = "info"


@dataclass(frozen=True)
class Finding:
    """A single detected issue inside one file."""

    range: Range
    message: str
    kind: FindingKind
    severity: Severity


@dataclass
class ResultStore:
    """Mapping of file path to its ordered findings.

    Entries are replaced wholesale on every scan; a file that produces no
    findings has no entry at all.
    """

    _results: dict[str, tuple[Finding, ...]] = field(default_factory=dict)

    def set_findings(self, path: str, findings: Sequence[Finding]) -> None:
        if findings:
            self._results[path] = tuple(findings)
        else:
            self._results.pop(path, None)

    def clear_findings(self, path: str) -> None:
        self._results.pop(path, None)

    def get(self, path: str) -> tuple[Finding, ...]:
        return self._results.get(path, ())

    def items(self) -> Iterator[tuple[str, tuple[Finding, ...]]]:
        return iter(sorted(self._results.items()))

    @property
    def finding_count(self) -> int:
        return sum(len(f) for f in self._results.values())

    def __contains__(self, path: object) -> bool:
        return path in self._results

    def __len__(self) -> int:
        return len(self._results)
