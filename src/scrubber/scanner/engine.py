"""Scan engine: per-file scan policy and whole-tree orchestration."""

from __future__ import annotations

import asyncio
import logging
import os
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from scrubber.config import (
    SCANNED_FILE_TYPES,
    TOGGLE_FIELDS,
    ScanConfiguration,
    SettingsStore,
)
from scrubber.errors import ConfigurationMissing, FileReadFailure
from scrubber.scanner.comments import scan_comments
from scrubber.scanner.models import (
    FILE_RANGE,
    Finding,
    FindingKind,
    ResultStore,
    Severity,
)
from scrubber.scanner.paths import FILE_NAME_VIOLATION, classify_path
from scrubber.scanner.patterns import IGNORE_FILE_MARKER, IGNORED_FILE_NAMES
from scrubber.scanner.secrets import scan_secrets
from scrubber.vcs import IgnoreOracle, NullRepository

logger = logging.getLogger(__name__)

# ".env", ".npmrc": a single leading dot and nothing else
_DOTFILE = re.compile(r"^\.[^./\\]+$")

# Version control metadata is never walked
_SKIP_DIRS = {".git"}


class FileSystem(Protocol):
    """Read access to the workspace."""

    async def read_text(self, path: str) -> str:
        """Return the file content decoded as UTF-8."""
        ...

    async def list_directory(self, path: str) -> list[tuple[str, bool]]:
        """Return (name, is_directory) pairs in a stable order."""
        ...


class LocalFileSystem:
    """FileSystem over the local disk; blocking calls run in a worker thread."""

    async def read_text(self, path: str) -> str:
        try:
            data = await asyncio.to_thread(Path(path).read_bytes)
        except OSError as e:
            raise FileReadFailure(f"Cannot read {path}: {e}") from e
        return data.decode("utf-8", errors="replace")

    async def list_directory(self, path: str) -> list[tuple[str, bool]]:
        return await asyncio.to_thread(_list_directory, path)


def _list_directory(path: str) -> list[tuple[str, bool]]:
    with os.scandir(path) as it:
        entries = [(entry.name, entry.is_dir(follow_symlinks=False)) for entry in it]
    return sorted(entries)


@dataclass
class ScanState:
    """Configuration and results owned by one engine for its lifetime."""

    configuration: ScanConfiguration = field(default_factory=ScanConfiguration)
    results: ResultStore = field(default_factory=ResultStore)

    @classmethod
    def from_store(cls, store: SettingsStore) -> ScanState:
        return cls(configuration=store.configuration())

    def apply_setting(self, key: str, value: Any) -> None:
        """Apply one configuration change event."""
        if value is None:
            if key == SCANNED_FILE_TYPES:
                logger.warning("Ignoring change event without a scanned file type list")
                return
            if key in TOGGLE_FIELDS:
                value = getattr(ScanConfiguration(), TOGGLE_FIELDS[key])
        try:
            self.configuration.apply(key, value)
        except ConfigurationMissing as e:
            logger.warning("Keeping previous configuration: %s", e)

    def attach(self, store: SettingsStore) -> Callable[[], None]:
        """Follow change events from *store*; returns the unsubscribe function."""
        return store.subscribe(self.apply_setting)


def classify_content(
    path: str,
    content: str,
    configuration: ScanConfiguration,
) -> list[Finding]:
    """Run the enabled classifiers over one file, in fixed order."""
    findings: list[Finding] = []

    if configuration.enable_file_path_scanning:
        violation = classify_path(path)
        if violation:
            subject = "File" if violation == FILE_NAME_VIOLATION else "Folder"
            findings.append(
                Finding(
                    range=FILE_RANGE,
                    message=f"{subject} name matches a sensitive pattern",
                    kind=FindingKind.FILE_PATH_VIOLATION,
                    severity=Severity.WARNING,
                )
            )

    if configuration.enable_secret_scanning:
        strict = configuration.enable_strict_secret_scanning
        for line_range, message in scan_secrets(content, strict=strict):
            findings.append(
                Finding(
                    range=line_range,
                    message=message,
                    kind=FindingKind.SECRET_DETECTED,
                    severity=Severity.ERROR,
                )
            )

    if configuration.enable_comment_scanning:
        for line_range, message in scan_comments(content):
            findings.append(
                Finding(
                    range=line_range,
                    message=message,
                    kind=FindingKind.COMMENT_HINT,
                    severity=Severity.INFO,
                )
            )

    return findings


class ScanEngine:
    """Decides per file whether to scan and records the findings."""

    def __init__(
        self,
        root: str | Path,
        state: ScanState | None = None,
        repository: IgnoreOracle | None = None,
        filesystem: FileSystem | None = None,
    ) -> None:
        self._root = Path(root).resolve()
        self._state = state or ScanState()
        self._repository = repository or NullRepository()
        self._fs = filesystem or LocalFileSystem()

    @property
    def root(self) -> Path:
        return self._root

    @property
    def state(self) -> ScanState:
        return self._state

    @property
    def results(self) -> ResultStore:
        return self._state.results

    async def scan_file(self, path: str | Path) -> tuple[Finding, ...]:
        """Scan one file and replace its stored findings."""
        key = str(path)
        name = Path(key).name
        config = self._state.configuration

        if name in IGNORED_FILE_NAMES:
            logger.debug("Skipping lockfile %s", key)
            return self._clear(key)

        if await self._repository.check_ignore([key]):
            logger.debug("Skipping git-ignored %s", key)
            return self._clear(key)

        if not _DOTFILE.match(name) and name.rsplit(".", 1)[-1] not in config.scanned_extensions:
            return self._clear(key)

        try:
            content = await self._fs.read_text(key)
        except FileReadFailure as e:
            logger.warning("Skipping %s: %s", key, e)
            return self._clear(key)

        if IGNORE_FILE_MARKER in content.split("\n", 1)[0]:
            logger.debug("Skipping %s: file-ignore marker", key)
            return self._clear(key)

        findings = classify_content(self._relative(key), content, config)
        if not findings:
            return self._clear(key)

        self._state.results.set_findings(key, findings)
        return tuple(findings)

    async def scan_tree(self, root: str | Path | None = None) -> ResultStore:
        """Walk a directory and scan every file not ignored by version control.

        A failure on one entry is logged and the walk continues.
        """
        stack = [Path(root).resolve() if root else self._root]

        while stack:
            directory = stack.pop()
            try:
                entries = await self._fs.list_directory(str(directory))
            except OSError as e:
                logger.warning("Cannot list %s: %s", directory, e)
                continue

            subdirs: list[Path] = []
            for name, is_dir in entries:
                if name in _SKIP_DIRS:
                    continue
                entry = directory / name
                if await self._repository.check_ignore([str(entry)]):
                    self._state.results.clear_findings(str(entry))
                    continue
                if is_dir:
                    subdirs.append(entry)
                else:
                    await self.scan_file(entry)

            stack.extend(reversed(subdirs))

        return self._state.results

    async def handle_change(self, path: str | Path) -> None:
        """React to a created or modified file.

        Any change to a ``.gitignore`` can alter the ignore status of the
        whole tree, so it triggers a full rescan.
        """
        if ".gitignore" in Path(path).name:
            logger.info("%s changed, rescanning %s", path, self._root)
            await self.scan_tree()
        else:
            await self.scan_file(path)

    def forget(self, path: str | Path) -> None:
        """Drop the findings of a deleted file."""
        self._state.results.clear_findings(str(path))

    def _clear(self, key: str) -> tuple[Finding, ...]:
        self._state.results.clear_findings(key)
        return ()

    def _relative(self, key: str) -> str:
        return relative_path(key, self._root)


def relative_path(path: str | Path, root: str | Path) -> str:
    """Path relative to *root* in posix form, or *path* itself when outside it."""
    try:
        return Path(path).resolve().relative_to(Path(root).resolve()).as_posix()
    except ValueError:
        return str(path)
