"""Git integration: ignore-status checks and repository discovery."""

from __future__ import annotations

import asyncio
import logging
import shutil
import time
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol, runtime_checkable

from scrubber.errors import GitRepositoryNotFound, GitRepositoryTimeout

logger = logging.getLogger(__name__)


@runtime_checkable
class IgnoreOracle(Protocol):
    """Answers which paths version control ignores."""

    async def check_ignore(self, paths: Sequence[str]) -> set[str]:
        """Return the subset of *paths* that are ignored."""
        ...


class GitRepository:
    """Ignore oracle backed by ``git check-ignore``."""

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    async def check_ignore(self, paths: Sequence[str]) -> set[str]:
        if not paths:
            return set()

        proc = await asyncio.create_subprocess_exec(
            "git",
            "check-ignore",
            "--",
            *paths,
            cwd=self._root,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        stdout, stderr = await proc.communicate()

        # Exit 1 means none of the paths are ignored
        if proc.returncode == 1:
            return set()
        if proc.returncode != 0:
            logger.debug(
                "git check-ignore failed (%d) for %s: %s",
                proc.returncode,
                ", ".join(paths),
                stderr.decode("utf-8", errors="replace").strip(),
            )
            return set()

        return {
            line for line in stdout.decode("utf-8", errors="replace").splitlines() if line
        }


class NullRepository:
    """Ignore oracle for workspaces scanned without git."""

    async def check_ignore(self, paths: Sequence[str]) -> set[str]:
        return set()


async def find_toplevel(path: str | Path) -> str:
    """Return the git work tree containing *path*, or "" when there is none."""
    proc = await asyncio.create_subprocess_exec(
        "git",
        "rev-parse",
        "--show-toplevel",
        cwd=path,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.DEVNULL,
    )
    stdout, _ = await proc.communicate()
    if proc.returncode != 0:
        return ""
    return stdout.decode("utf-8", errors="replace").strip()


async def wait_for_repository(
    path: str | Path,
    timeout: float = 5.0,
    interval: float = 0.1,
) -> GitRepository:
    """Poll until *path* is inside a git work tree.

    Raises GitRepositoryNotFound when git itself is unavailable and
    GitRepositoryTimeout when no repository shows up within *timeout*.
    """
    if shutil.which("git") is None:
        raise GitRepositoryNotFound("git executable not found on PATH")

    path = Path(path).resolve()
    if not path.is_dir():
        raise GitRepositoryNotFound(f"Not a directory: {path}")

    deadline = time.monotonic() + timeout
    while True:
        toplevel = await find_toplevel(path)
        if toplevel:
            logger.debug("Using git repository at %s", toplevel)
            return GitRepository(toplevel)
        if time.monotonic() > deadline:
            raise GitRepositoryTimeout(
                f"Git repository not detected under {path} within {timeout:.1f}s"
            )
        await asyncio.sleep(interval)
