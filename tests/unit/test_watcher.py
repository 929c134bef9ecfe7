"""Tests for the polling watcher and change dispatch."""

from __future__ import annotations

import asyncio
import os
from pathlib import Path

import yaml

from scrubber.cli.watch import dispatch_changes
from scrubber.config import ENABLE_COMMENT_SCANNING, SettingsStore
from scrubber.scanner.engine import ScanEngine
from scrubber.watcher import Changes, PollingWatcher, diff, snapshot


def run_async(coro):
    """Helper to run async functions in sync tests."""
    return asyncio.run(coro)


class TestSnapshot:
    def test_lists_files_and_skips_git(self, workspace: Path):
        (workspace / ".git").mkdir()
        (workspace / ".git" / "HEAD").write_text("ref: refs/heads/main\n")
        (workspace / "src").mkdir()
        (workspace / "src" / "a.py").write_text("x = 1\n")

        assert list(snapshot(workspace)) == [str(workspace / "src" / "a.py")]

    def test_extra_files(self, workspace: Path, tmp_path: Path):
        extra = tmp_path / "settings.yaml"
        extra.write_text("scanner: {}\n")

        assert str(extra) in snapshot(workspace, (extra,))

    def test_missing_extra_file_is_skipped(self, workspace: Path, tmp_path: Path):
        assert snapshot(workspace, (tmp_path / "nope.yaml",)) == {}


class TestDiff:
    def test_created_modified_deleted(self):
        before = {"a": 1.0, "b": 1.0, "c": 1.0}
        after = {"a": 1.0, "b": 2.0, "d": 1.0}

        changes = diff(before, after)

        assert changes.created == ["d"]
        assert changes.modified == ["b"]
        assert changes.deleted == ["c"]
        assert changes.changed == ["d", "b"]

    def test_no_changes_is_falsy(self):
        assert not diff({"a": 1.0}, {"a": 1.0})


class TestPollingWatcher:
    def test_poll_reports_changes(self, workspace: Path):
        existing = workspace / "old.js"
        existing.write_text("a\n")
        removed = workspace / "gone.js"
        removed.write_text("b\n")

        received: list[Changes] = []

        async def on_changes(changes: Changes) -> None:
            received.append(changes)

        watcher = PollingWatcher(workspace, on_changes)
        watcher.prime()

        (workspace / "new.js").write_text("c\n")
        os.utime(existing, (0, 12345))
        removed.unlink()

        changes = run_async(watcher.poll())

        assert received == [changes]
        assert changes.created == [str(workspace / "new.js")]
        assert changes.modified == [str(existing)]
        assert changes.deleted == [str(removed)]

    def test_quiet_poll_skips_callback(self, workspace: Path):
        received: list[Changes] = []

        async def on_changes(changes: Changes) -> None:
            received.append(changes)

        watcher = PollingWatcher(workspace, on_changes)
        watcher.prime()

        assert not run_async(watcher.poll())
        assert received == []

    def test_run_until_stopped(self, workspace: Path):
        async def scenario() -> list[Changes]:
            received: list[Changes] = []
            watcher: PollingWatcher

            async def on_changes(changes: Changes) -> None:
                received.append(changes)
                watcher.stop()

            watcher = PollingWatcher(workspace, on_changes, interval=0.01)
            watcher.prime()
            task = asyncio.create_task(watcher.run())
            await asyncio.sleep(0.02)
            (workspace / "later.py").write_text("# TODO\n")
            await asyncio.wait_for(task, timeout=5)
            return received

        received = run_async(scenario())
        assert received[0].created == [str(workspace / "later.py")]


class TestDispatchChanges:
    def test_changed_file_is_rescanned(self, engine: ScanEngine, store: SettingsStore):
        path = engine.root / "a.js"
        path.write_text("// TODO: one\n")

        run_async(dispatch_changes(engine, store, Changes(created=[str(path)])))

        assert str(path) in engine.results

    def test_deleted_file_is_forgotten(self, engine: ScanEngine, store: SettingsStore):
        path = engine.root / "a.js"
        path.write_text("// TODO: one\n")
        run_async(engine.scan_file(path))
        path.unlink()

        run_async(dispatch_changes(engine, store, Changes(deleted=[str(path)])))

        assert len(engine.results) == 0

    def test_settings_change_rescans_tree(
        self, engine: ScanEngine, store: SettingsStore, settings_path: Path
    ):
        engine.state.attach(store)
        path = engine.root / "a.js"
        path.write_text("// TODO: one\n")
        run_async(engine.scan_tree())
        assert len(engine.results) == 1

        settings_path.parent.mkdir(parents=True)
        settings_path.write_text(yaml.dump({"scanner": {ENABLE_COMMENT_SCANNING: False}}))
        run_async(dispatch_changes(engine, store, Changes(modified=[str(store.path)])))

        assert engine.state.configuration.enable_comment_scanning is False
        assert len(engine.results) == 0
