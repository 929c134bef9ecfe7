"""Tests for the scan engine (per-file policy and tree walk)."""

from __future__ import annotations

import asyncio
from pathlib import Path

from scrubber.config import ENABLE_COMMENT_SCANNING, ScanConfiguration, SettingsStore
from scrubber.errors import FileReadFailure
from scrubber.scanner.engine import (
    LocalFileSystem,
    ScanEngine,
    ScanState,
    classify_content,
)
from scrubber.scanner.models import FindingKind, Severity

from conftest import JWT, FakeRepository


def run_async(coro):
    """Helper to run async functions in sync tests."""
    return asyncio.run(coro)


class FailingFileSystem(LocalFileSystem):
    """Local file system that cannot read files with a given name."""

    def __init__(self, unreadable: str) -> None:
        self.unreadable = unreadable

    async def read_text(self, path: str) -> str:
        if Path(path).name == self.unreadable:
            raise FileReadFailure(f"Cannot read {path}: permission denied")
        return await super().read_text(path)


class TestClassifyContent:
    def test_findings_in_classifier_order(self):
        content = f"# TODO: rotate\nAPI_KEY={JWT}\n"
        findings = classify_content("build/app.py", content, ScanConfiguration())
        assert [f.kind for f in findings] == [
            FindingKind.FILE_PATH_VIOLATION,
            FindingKind.SECRET_DETECTED,
            FindingKind.COMMENT_HINT,
        ]
        assert [f.severity for f in findings] == [
            Severity.WARNING,
            Severity.ERROR,
            Severity.INFO,
        ]
        assert findings[0].message == "Folder name matches a sensitive pattern"

    def test_disabled_classifiers_do_not_run(self):
        config = ScanConfiguration(
            enable_file_path_scanning=False,
            enable_comment_scanning=False,
        )
        findings = classify_content("build/app.py", f"# TODO\nAPI_KEY={JWT}", config)
        assert [f.kind for f in findings] == [FindingKind.SECRET_DETECTED]

    def test_loose_mode_from_configuration(self):
        content = f'("{JWT}");'
        strict = classify_content("a.js", content, ScanConfiguration())
        loose = classify_content(
            "a.js", content, ScanConfiguration(enable_strict_secret_scanning=False)
        )
        assert strict == []
        assert len(loose) == 1


class TestScanFile:
    def test_env_file_is_a_path_violation(self, engine: ScanEngine, workspace: Path):
        path = workspace / ".env"
        path.write_text("FOO=bar\n")

        findings = run_async(engine.scan_file(path))

        assert len(findings) == 1
        assert findings[0].kind == FindingKind.FILE_PATH_VIOLATION
        assert findings[0].message == "File name matches a sensitive pattern"
        assert engine.results.get(str(path)) == findings

    def test_secret_with_indicator(self, engine: ScanEngine, workspace: Path):
        path = workspace / "settings.py"
        path.write_text(f"API_KEY = '{JWT}'\n")

        findings = run_async(engine.scan_file(path))

        assert [f.kind for f in findings] == [FindingKind.SECRET_DETECTED]
        assert JWT in findings[0].message

    def test_file_ignore_marker(self, engine: ScanEngine, workspace: Path):
        path = workspace / "settings.py"
        path.write_text(f"# scrubber-ignore-file\nAPI_KEY = '{JWT}'\n# TODO: x\n")

        assert run_async(engine.scan_file(path)) == ()
        assert str(path) not in engine.results

    def test_file_ignore_marker_only_on_first_line(self, engine: ScanEngine, workspace: Path):
        path = workspace / "settings.py"
        path.write_text(f"\n# scrubber-ignore-file\nAPI_KEY = '{JWT}'\n")

        assert len(run_async(engine.scan_file(path))) == 1

    def test_lockfiles_are_skipped(self, engine: ScanEngine, workspace: Path):
        path = workspace / "package-lock.json"
        path.write_text(f'{{"api_key": "{JWT}"}}\n')

        assert run_async(engine.scan_file(path)) == ()

    def test_unlisted_extension_is_skipped(self, engine: ScanEngine, workspace: Path):
        path = workspace / "notes.xyz"
        path.write_text("// TODO: something\n")

        assert run_async(engine.scan_file(path)) == ()

    def test_dotfile_ignores_extension_list(self, engine: ScanEngine, workspace: Path):
        path = workspace / ".npmrc"
        path.write_text("# TODO: pin registry\n")

        findings = run_async(engine.scan_file(path))
        assert [f.kind for f in findings] == [FindingKind.COMMENT_HINT]

    def test_git_ignored_file_is_skipped(self, workspace: Path):
        engine = ScanEngine(workspace, repository=FakeRepository(["secret.py"]))
        path = workspace / "secret.py"
        path.write_text(f"API_KEY = '{JWT}'\n")

        assert run_async(engine.scan_file(path)) == ()

    def test_rescan_replaces_previous_findings(self, engine: ScanEngine, workspace: Path):
        path = workspace / "app.js"
        path.write_text("// TODO: one\n// FIXME: two\n")
        assert len(run_async(engine.scan_file(path))) == 2

        path.write_text("// FIXME: two\n")
        assert len(run_async(engine.scan_file(path))) == 1

        path.write_text("const x = 1;\n")
        run_async(engine.scan_file(path))
        assert str(path) not in engine.results

    def test_read_failure_clears_and_continues(self, workspace: Path):
        engine = ScanEngine(
            workspace,
            repository=FakeRepository(),
            filesystem=FailingFileSystem("locked.js"),
        )
        (workspace / "locked.js").write_text("// TODO: hidden\n")
        (workspace / "open.js").write_text("// TODO: visible\n")

        results = run_async(engine.scan_tree())

        assert str(workspace / "locked.js") not in results
        assert str(workspace / "open.js") in results

    def test_workspace_location_is_not_classified(self, tmp_path: Path):
        root = tmp_path / "build" / "project"
        root.mkdir(parents=True)
        path = root / "index.js"
        path.write_text("// TODO: x\n")

        engine = ScanEngine(root, repository=FakeRepository())
        findings = run_async(engine.scan_file(path))
        assert [f.kind for f in findings] == [FindingKind.COMMENT_HINT]


class TestScanTree:
    def test_walks_subdirectories(self, engine: ScanEngine, workspace: Path):
        (workspace / "src" / "lib").mkdir(parents=True)
        (workspace / "src" / "lib" / "util.py").write_text("# TODO: a\n")
        (workspace / "src" / "main.py").write_text("# FIXME: b\n")
        (workspace / "README.md").write_text("nothing here\n")

        results = run_async(engine.scan_tree())

        assert sorted(path for path, _ in results.items()) == sorted(
            [
                str(workspace / "src" / "lib" / "util.py"),
                str(workspace / "src" / "main.py"),
            ]
        )

    def test_skips_git_directory(self, engine: ScanEngine, workspace: Path):
        (workspace / ".git").mkdir()
        (workspace / ".git" / "config.json").write_text("// TODO: internal\n")

        results = run_async(engine.scan_tree())
        assert len(results) == 0

    def test_ignored_directory_is_not_descended(self, workspace: Path):
        repository = FakeRepository(["generated"])
        engine = ScanEngine(workspace, repository=repository)
        (workspace / "generated").mkdir()
        (workspace / "generated" / "out.js").write_text("// TODO: x\n")

        results = run_async(engine.scan_tree())

        assert len(results) == 0
        assert str(workspace / "generated" / "out.js") not in repository.checked

    def test_gitignore_change_rescans_everything(self, engine: ScanEngine, workspace: Path):
        (workspace / "a.js").write_text("// TODO: a\n")
        (workspace / "b.js").write_text("// TODO: b\n")

        run_async(engine.handle_change(workspace / ".gitignore"))

        assert len(engine.results) == 2

    def test_plain_change_scans_only_that_file(self, engine: ScanEngine, workspace: Path):
        (workspace / "a.js").write_text("// TODO: a\n")
        (workspace / "b.js").write_text("// TODO: b\n")

        run_async(engine.handle_change(workspace / "a.js"))

        assert len(engine.results) == 1

    def test_forget_drops_findings(self, engine: ScanEngine, workspace: Path):
        path = workspace / "a.js"
        path.write_text("// TODO: a\n")
        run_async(engine.scan_file(path))

        engine.forget(path)
        assert len(engine.results) == 0


class TestScanState:
    def test_follows_settings_changes(self, store: SettingsStore):
        state = ScanState.from_store(store)
        unsubscribe = state.attach(store)

        store.update(ENABLE_COMMENT_SCANNING, False)
        assert state.configuration.enable_comment_scanning is False

        unsubscribe()
        store.update(ENABLE_COMMENT_SCANNING, True)
        assert state.configuration.enable_comment_scanning is False

    def test_missing_extension_list_keeps_current(self):
        state = ScanState()
        state.apply_setting("scannedFileTypes", ["py"])
        state.apply_setting("scannedFileTypes", None)
        assert state.configuration.scanned_extensions == frozenset({"py"})

    def test_removed_toggle_returns_to_default(self):
        state = ScanState()
        state.apply_setting(ENABLE_COMMENT_SCANNING, False)
        state.apply_setting(ENABLE_COMMENT_SCANNING, None)
        assert state.configuration.enable_comment_scanning is True

    def test_invalid_extension_list_keeps_current(self):
        state = ScanState()
        state.apply_setting("scannedFileTypes", ["py"])
        state.apply_setting("scannedFileTypes", "py")
        assert state.configuration.scanned_extensions == frozenset({"py"})
