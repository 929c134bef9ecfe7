"""CLI command: scrubber watch <directory>: rescan files as they change."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import click
from rich.markup import escape

from scrubber.cli.scan import (
    console,
    open_engine,
    print_file_findings,
    print_results,
    settings_store,
)
from scrubber.config import ScrubberConfig, SettingsStore
from scrubber.errors import ScrubberError
from scrubber.scanner.engine import ScanEngine, ScanState
from scrubber.watcher import Changes, PollingWatcher

logger = logging.getLogger(__name__)


@click.command()
@click.argument("directory", type=click.Path(exists=True, file_okay=False))
@click.option("--no-git", is_flag=True, help="Do not consult git ignore rules.")
@click.pass_context
def watch(ctx: click.Context, directory: str, no_git: bool) -> None:
    """Scan a workspace, then keep rescanning files as they change."""
    config = ScrubberConfig.load()
    store = settings_store(ctx)

    console.print(
        f"[bold]Scrubber[/bold] watching [cyan]{escape(directory)}[/cyan] "
        f"(poll every {config.poll_interval:.1f}s)"
    )
    console.print("  Press Ctrl+C to stop.\n")

    try:
        asyncio.run(_watch(directory, store, config, not no_git))
    except ScrubberError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise SystemExit(2)
    except KeyboardInterrupt:
        console.print("\n[dim]Stopping...[/dim]")


async def _watch(
    directory: str,
    store: SettingsStore,
    config: ScrubberConfig,
    use_git: bool,
) -> None:
    state = ScanState.from_store(store)
    state.attach(store)
    engine = await open_engine(directory, state, use_git, config.git_timeout)

    await engine.scan_tree()
    print_results(engine.results, str(engine.root))

    async def on_changes(changes: Changes) -> None:
        await dispatch_changes(engine, store, changes)

    watcher = PollingWatcher(
        engine.root,
        on_changes,
        interval=config.poll_interval,
        extra=(store.path,),
    )
    watcher.prime()
    await watcher.run()


async def dispatch_changes(
    engine: ScanEngine,
    store: SettingsStore,
    changes: Changes,
) -> None:
    """Route watcher changes through the engine and report the results."""
    settings_path = str(store.path)
    base_dir = str(engine.root)

    if settings_path in changes.changed:
        # Listeners attached to the store update the engine configuration
        changed = store.refresh()
        logger.info("Settings changed (%s), rescanning %s", ", ".join(changed), engine.root)
        await engine.scan_tree()
        print_results(engine.results, base_dir)
        return

    for path in changes.deleted:
        engine.forget(path)

    for path in changes.changed:
        await engine.handle_change(path)
        if ".gitignore" in Path(path).name:
            print_results(engine.results, base_dir)
        else:
            print_file_findings(path, engine.results.get(path), base_dir)
