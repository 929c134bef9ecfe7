"""CLI commands: scrubber config: inspect and change scanner settings."""

from __future__ import annotations

import click
from rich.markup import escape
from rich.table import Table

from scrubber.cli.scan import console, settings_store
from scrubber.config import (
    ENABLE_COMMENT_SCANNING,
    ENABLE_FILE_PATH_SCANNING,
    ENABLE_SECRET_SCANNING,
    ENABLE_STRICT_SECRET_SCANNING,
    SCANNED_FILE_TYPES,
    SettingsStore,
    parse_extensions,
    set_scanned_extensions,
    toggle_setting,
)
from scrubber.errors import ConfigurationMissing, ScrubberError, ValidationFailed
from scrubber.scanner.patterns import DEFAULT_SCANNED_EXTENSIONS

# command name → (setting key, label used in messages)
_TOGGLES = {
    "toggle-file-path": (ENABLE_FILE_PATH_SCANNING, "File path scanning"),
    "toggle-secret": (ENABLE_SECRET_SCANNING, "Secret scanning"),
    "toggle-strict-secret": (ENABLE_STRICT_SECRET_SCANNING, "Strict secret scanning"),
    "toggle-comment": (ENABLE_COMMENT_SCANNING, "Comment scanning"),
}


@click.group()
def config() -> None:
    """Show or change which files are scanned and which checks run."""


@config.command("show")
@click.pass_context
def show(ctx: click.Context) -> None:
    """Print the active scanner configuration."""
    store = settings_store(ctx)
    try:
        configuration = store.configuration()
    except ScrubberError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise SystemExit(2)

    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="dim")
    table.add_column()

    table.add_row("Settings file", escape(str(store.path)))
    table.add_row("Scanned file types", ", ".join(sorted(configuration.scanned_extensions)))
    for key, attr in (
        (ENABLE_FILE_PATH_SCANNING, "enable_file_path_scanning"),
        (ENABLE_SECRET_SCANNING, "enable_secret_scanning"),
        (ENABLE_STRICT_SECRET_SCANNING, "enable_strict_secret_scanning"),
        (ENABLE_COMMENT_SCANNING, "enable_comment_scanning"),
    ):
        value = getattr(configuration, attr)
        table.add_row(key, "[green]on[/green]" if value else "[red]off[/red]")
    console.print(table)


@config.command("set-types")
@click.argument("extensions", required=False)
@click.pass_context
def set_types(ctx: click.Context, extensions: str | None) -> None:
    """Set the scanned file extensions (comma separated, empty for defaults).

    Without an argument the current list is offered for editing and the
    prompt repeats until the input is valid.
    """
    store = settings_store(ctx)

    if extensions is None:
        try:
            current = _current_extensions(store)
        except ConfigurationMissing as e:
            console.print(f"[red]{escape(str(e))}[/red]")
            raise SystemExit(2)
        extensions = click.prompt(
            "Enter file extensions to scan, separated by commas",
            default=", ".join(current),
            value_proc=_validate_extensions,
        )

    try:
        saved = set_scanned_extensions(store, extensions)
    except ValidationFailed as e:
        raise click.BadParameter(str(e), param_hint="EXTENSIONS")
    except ScrubberError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise SystemExit(2)

    console.print(f"Scanned file extensions updated: {', '.join(saved)}")


def _current_extensions(store: SettingsStore) -> list[str]:
    section = store.section()
    if SCANNED_FILE_TYPES not in section:
        return list(DEFAULT_SCANNED_EXTENSIONS)
    value = section[SCANNED_FILE_TYPES]
    if not isinstance(value, list):
        raise ConfigurationMissing("Failed to get scanned file types from configuration.")
    return [str(ext) for ext in value]


def _validate_extensions(value: str) -> str:
    try:
        parse_extensions(value)
    except ValidationFailed as e:
        raise click.BadParameter(str(e))
    return value


def _make_toggle(name: str, key: str, label: str) -> click.Command:
    @click.pass_context
    def _toggle(ctx: click.Context) -> None:
        try:
            new_value = toggle_setting(settings_store(ctx), key)
        except ScrubberError as e:
            console.print(f"[red]{escape(str(e))}[/red]")
            raise SystemExit(2)
        console.print(f"{label} {'enabled' if new_value else 'disabled'}.")

    return click.Command(
        name,
        callback=_toggle,
        help=f"Turn {label.lower()} on or off.",
    )


for _name, (_key, _label) in _TOGGLES.items():
    config.add_command(_make_toggle(_name, _key, _label))
