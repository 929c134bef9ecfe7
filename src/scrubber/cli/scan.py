"""CLI command: scrubber scan <directory>: one-shot scan of a workspace."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from scrubber.config import ScrubberConfig, SettingsStore
from scrubber.errors import ScrubberError
from scrubber.scanner.engine import ScanEngine, ScanState
from scrubber.scanner.models import Finding, ResultStore, Severity
from scrubber.vcs import IgnoreOracle, NullRepository, wait_for_repository

console = Console(stderr=True)

_SEVERITY_COLORS = {
    Severity.INFO: "blue",
    Severity.WARNING: "yellow",
    Severity.ERROR: "red",
}

_SEVERITY_ORDER = {
    Severity.ERROR: 0,
    Severity.WARNING: 1,
    Severity.INFO: 2,
}


async def open_engine(
    directory: str | Path,
    state: ScanState,
    use_git: bool = True,
    git_timeout: float = 5.0,
) -> ScanEngine:
    """Build an engine for *directory*, waiting for its git repository."""
    repository: IgnoreOracle = NullRepository()
    if use_git:
        repository = await wait_for_repository(directory, timeout=git_timeout)
    return ScanEngine(directory, state=state, repository=repository)


def settings_store(ctx: click.Context) -> SettingsStore:
    return SettingsStore(ctx.obj.get("settings_path") if ctx.obj else None)


@click.command()
@click.argument("directory", type=click.Path(exists=True, file_okay=False))
@click.option("--no-git", is_flag=True, help="Do not consult git ignore rules.")
@click.option(
    "--strict/--loose",
    default=None,
    help="Override strict secret scanning for this run.",
)
@click.pass_context
def scan(
    ctx: click.Context,
    directory: str,
    no_git: bool,
    strict: bool | None,
) -> None:
    """Scan a workspace for secrets, sensitive paths and hint comments."""
    config = ScrubberConfig.load()
    store = settings_store(ctx)

    try:
        state = ScanState.from_store(store)
        if strict is not None:
            state.configuration.enable_strict_secret_scanning = strict
        results = asyncio.run(_scan(directory, state, not no_git, config.git_timeout))
    except ScrubberError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise SystemExit(2)

    console.print(f"[bold]Scrubber[/bold] scanned [cyan]{directory}[/cyan]\n")
    print_results(results, str(Path(directory).resolve()))

    errors = sum(
        1
        for _, findings in results.items()
        for f in findings
        if f.severity == Severity.ERROR
    )
    if errors:
        console.print(f"\n[red]{errors} potential secret(s) found[/red]")
        sys.exit(1)


async def _scan(
    directory: str,
    state: ScanState,
    use_git: bool,
    git_timeout: float,
) -> ResultStore:
    engine = await open_engine(directory, state, use_git, git_timeout)
    return await engine.scan_tree()


def print_results(results: ResultStore, base_dir: str) -> None:
    if not len(results):
        console.print("[green]No findings.[/green]")
        return

    rows: list[tuple[str, Finding]] = [
        (path, finding) for path, findings in results.items() for finding in findings
    ]
    rows.sort(
        key=lambda r: (
            _SEVERITY_ORDER.get(r[1].severity, 9),
            r[0],
            r[1].range.start.line,
        )
    )

    table = Table(title="Findings", show_lines=False)
    table.add_column("Severity", style="bold", width=10)
    table.add_column("File", style="cyan")
    table.add_column("Line", justify="right")
    table.add_column("Kind")
    table.add_column("Message", max_width=60)

    for path, finding in rows:
        table.add_row(*_row(path, finding, base_dir))

    console.print(table)
    console.print(
        f"\nTotal findings: {results.finding_count} in {len(results)} file(s)"
    )


def print_file_findings(path: str, findings: tuple[Finding, ...], base_dir: str) -> None:
    short = escape(shorten_path(path, base_dir))
    if not findings:
        console.print(f"  [green]✓[/green] {short}")
        return
    for finding in findings:
        severity, _, line, kind, message = _row(path, finding, base_dir)
        console.print(f"  {severity} [cyan]{short}[/cyan]:{line} {kind} - {message}")


def _row(path: str, finding: Finding, base_dir: str) -> tuple[str, str, str, str, str]:
    color = _SEVERITY_COLORS.get(finding.severity, "white")
    return (
        f"[{color}]{finding.severity.value}[/{color}]",
        escape(shorten_path(path, base_dir)),
        str(finding.range.start.line + 1),
        finding.kind.value,
        escape(finding.message),
    )


def shorten_path(file_path: str, base_dir: str) -> str:
    """Shorten file path relative to scan directory."""
    if file_path.startswith(base_dir):
        return file_path[len(base_dir) :].lstrip("/")
    return file_path
