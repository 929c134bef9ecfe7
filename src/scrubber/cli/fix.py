"""CLI command: scrubber fix <file> <line> [action]: apply a quick fix."""

from __future__ import annotations

import asyncio
import shutil
from pathlib import Path

import click
from rich.markup import escape

from scrubber.cli.scan import console, settings_store
from scrubber.config import toggle_setting
from scrubber.errors import ScrubberError
from scrubber.scanner.actions import FixKind, QuickFix, apply_edit, available_fixes
from scrubber.scanner.engine import classify_content, relative_path
from scrubber.vcs import find_toplevel


@click.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.argument("line", type=click.IntRange(min=1))
@click.argument(
    "action",
    required=False,
    type=click.Choice([kind.value for kind in FixKind]),
)
@click.pass_context
def fix(ctx: click.Context, file: str, line: int, action: str | None) -> None:
    """Apply a quick fix to the finding on LINE of FILE.

    Without ACTION, lists the fixes available on that line.
    """
    store = settings_store(ctx)
    try:
        configuration = store.configuration()
    except ScrubberError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise SystemExit(2)

    path = Path(file).resolve()
    # Undecodable bytes round-trip through surrogateescape
    content = path.read_bytes().decode("utf-8", errors="surrogateescape")
    workspace_path = relative_path(path, _workspace_root(path))
    findings = [
        f
        for f in classify_content(workspace_path, content, configuration)
        if f.range.start.line == line - 1
    ]
    if not findings:
        console.print(f"[yellow]No findings on line {line} of {escape(file)}.[/yellow]")
        raise SystemExit(1)

    fixes: list[QuickFix] = []
    for finding in findings:
        fixes.extend(
            available_fixes(
                finding,
                path.name,
                content,
                strict_enabled=configuration.enable_strict_secret_scanning,
            )
        )

    if action is None:
        for finding in findings:
            console.print(f"[bold]{escape(finding.message)}[/bold]")
        for quick_fix in _unique(fixes):
            console.print(f"  [cyan]{quick_fix.kind.value}[/cyan]  {quick_fix.title}")
        return

    chosen = next((f for f in fixes if f.kind.value == action), None)
    if chosen is None:
        console.print(f"[red]'{action}' is not available on line {line}.[/red]")
        raise SystemExit(1)

    if chosen.edit is not None:
        new_content = apply_edit(content, chosen.edit)
        path.write_bytes(new_content.encode("utf-8", errors="surrogateescape"))
        console.print(f"{chosen.title}: [cyan]{escape(file)}[/cyan] updated.")
    elif chosen.setting is not None:
        try:
            new_value = toggle_setting(store, chosen.setting)
        except ScrubberError as e:
            console.print(f"[red]{escape(str(e))}[/red]")
            raise SystemExit(2)
        console.print(f"{chosen.title}: {chosen.setting} = {new_value}")


def _unique(fixes: list[QuickFix]) -> list[QuickFix]:
    seen: set[FixKind] = set()
    unique = []
    for quick_fix in fixes:
        if quick_fix.kind not in seen:
            seen.add(quick_fix.kind)
            unique.append(quick_fix)
    return unique


def _workspace_root(path: Path) -> Path:
    """Directory that the classified path is made relative to.

    The enclosing git work tree, else the cwd when it contains *path*,
    else the file's own directory.
    """
    if shutil.which("git"):
        toplevel = asyncio.run(find_toplevel(path.parent))
        if toplevel:
            return Path(toplevel)
    cwd = Path.cwd().resolve()
    if path.is_relative_to(cwd):
        return cwd
    return path.parent
