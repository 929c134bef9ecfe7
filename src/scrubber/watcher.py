"""Polling file watcher: reports created, modified and deleted files."""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

_SKIP_DIRS = {".git"}


@dataclass
class Changes:
    """Paths that differ between two snapshots."""

    created: list[str] = field(default_factory=list)
    modified: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)

    @property
    def changed(self) -> list[str]:
        return self.created + self.modified

    def __bool__(self) -> bool:
        return bool(self.created or self.modified or self.deleted)


def snapshot(root: str | Path, extra: tuple[Path, ...] = ()) -> dict[str, float]:
    """Map every file under *root* (plus *extra* files) to its mtime."""
    mtimes: dict[str, float] = {}
    for dirpath, dirs, files in os.walk(root):
        dirs[:] = [d for d in dirs if d not in _SKIP_DIRS]
        for name in files:
            path = os.path.join(dirpath, name)
            try:
                mtimes[path] = os.stat(path).st_mtime
            except OSError:
                continue
    for path in extra:
        try:
            mtimes[str(path)] = path.stat().st_mtime
        except OSError:
            continue
    return mtimes


def diff(before: dict[str, float], after: dict[str, float]) -> Changes:
    changes = Changes()
    for path, mtime in after.items():
        if path not in before:
            changes.created.append(path)
        elif before[path] != mtime:
            changes.modified.append(path)
    changes.deleted = [path for path in before if path not in after]
    return changes


class PollingWatcher:
    """Polls a tree every *interval* seconds and hands changes to a callback."""

    def __init__(
        self,
        root: str | Path,
        on_changes: Callable[[Changes], Awaitable[None]],
        interval: float = 0.5,
        extra: tuple[Path, ...] = (),
    ) -> None:
        self._root = Path(root)
        self._on_changes = on_changes
        self._interval = interval
        self._extra = extra
        self._stop_event = asyncio.Event()
        self._snapshot: dict[str, float] = {}

    def prime(self) -> None:
        """Take the baseline snapshot without reporting anything."""
        self._snapshot = snapshot(self._root, self._extra)

    async def poll(self) -> Changes:
        """Compare against the last snapshot and dispatch any changes."""
        current = await asyncio.to_thread(snapshot, self._root, self._extra)
        changes = diff(self._snapshot, current)
        self._snapshot = current
        if changes:
            logger.debug(
                "%d created, %d modified, %d deleted",
                len(changes.created),
                len(changes.modified),
                len(changes.deleted),
            )
            await self._on_changes(changes)
        return changes

    async def run(self) -> None:
        """Poll until stop() is called."""
        self._stop_event.clear()
        if not self._snapshot:
            self.prime()
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                await self.poll()

    def stop(self) -> None:
        self._stop_event.set()
